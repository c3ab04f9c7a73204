"""
Service Check Loader

Loads service check definitions from the services.yaml key of a ConfigMap,
then fills in defaults and derives probe commands.
"""

import logging
from typing import Any, Dict, List, Optional

import yaml
from kubernetes.client.rest import ApiException

from ..config import CONFIGMAP_KEY, CONFIGMAP_NAME, CONFIGMAP_NAMESPACE
from ..exceptions import ConfigFetchError, ConfigFormatError
from .models import ServiceCheck, DEFAULT_ENDPOINT, DEFAULT_NAMESPACE, DEFAULT_PORT

logger = logging.getLogger(__name__)

_STRING_FIELDS = ("name", "namespace", "endpoint", "command", "path")


def build_probe_command(check: ServiceCheck) -> str:
    """
    Derive the curl probe command for a check.
    
    One -H flag is emitted per header entry, in mapping order.
    """
    header_args = "".join(f"-H '{key}: {value}' " for key, value in check.headers.items())
    return (
        f"curl {header_args}"
        f"http://{check.endpoint}.{check.namespace}:{check.port}/{check.path}"
    )


def apply_defaults(check: ServiceCheck) -> ServiceCheck:
    """Fill unset fields in place. An explicit command is never replaced."""
    if check.port == 0:
        check.port = DEFAULT_PORT
    if not check.endpoint:
        check.endpoint = DEFAULT_ENDPOINT
    if not check.namespace:
        check.namespace = DEFAULT_NAMESPACE
    if not check.command:
        check.command = build_probe_command(check)
    return check


def _parse_entry(index: int, entry: Any) -> ServiceCheck:
    if not isinstance(entry, dict):
        raise ConfigFormatError(f"services[{index}] must be a mapping, got {type(entry).__name__}")
    
    values: Dict[str, Any] = {}
    for key in _STRING_FIELDS:
        value = entry.get(key)
        if value is None:
            values[key] = ""
        elif isinstance(value, (dict, list)):
            raise ConfigFormatError(f"services[{index}].{key} must be a string")
        else:
            values[key] = str(value)
    
    port = entry.get("port")
    if port is None:
        port = 0
    elif isinstance(port, bool) or not isinstance(port, int):
        raise ConfigFormatError(f"services[{index}].port must be an integer, got {port!r}")
    
    headers = entry.get("headers")
    if headers is None:
        headers = {}
    elif not isinstance(headers, dict):
        raise ConfigFormatError(f"services[{index}].headers must be a mapping")
    
    return ServiceCheck(
        port=port,
        headers={str(k): "" if v is None else str(v) for k, v in headers.items()},
        **values,
    )


def parse_services(yaml_text: str) -> List[ServiceCheck]:
    """
    Parse a services.yaml payload and apply defaults.
    
    Args:
        yaml_text: Raw YAML document
    
    Returns:
        Service checks in document order
    
    Raises:
        ConfigFormatError: If the payload is not valid YAML or has the wrong shape
    """
    try:
        data = yaml.safe_load(yaml_text)
    except yaml.YAMLError as e:
        raise ConfigFormatError(f"Failed to parse services YAML: {e}") from e
    
    if data is None:
        return []
    if not isinstance(data, dict):
        raise ConfigFormatError("services YAML must be a mapping with a 'services' list")
    
    entries = data.get("services")
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise ConfigFormatError("'services' must be a list")
    
    return [apply_defaults(_parse_entry(i, entry)) for i, entry in enumerate(entries)]


class ServiceCheckLoader:
    """
    Loads service checks from a ConfigMap.
    
    Every call to load() reads the ConfigMap again; nothing is cached.
    
    Example:
        loader = ServiceCheckLoader(core_v1, namespace="default",
                                    name="service-check-config")
        checks = loader.load()
    """
    
    def __init__(
        self,
        core_v1,
        namespace: Optional[str] = None,
        name: Optional[str] = None,
        key: str = CONFIGMAP_KEY,
    ):
        """
        Initialize the loader.
        
        Args:
            core_v1: kubernetes CoreV1Api instance
            namespace: ConfigMap namespace
            name: ConfigMap name
            key: Data key holding the services YAML
        """
        self.core_v1 = core_v1
        self.namespace = namespace or CONFIGMAP_NAMESPACE
        self.name = name or CONFIGMAP_NAME
        self.key = key
    
    @property
    def source(self) -> str:
        return f"{self.name}.{self.namespace}"
    
    def fetch(self) -> str:
        """Read the raw services YAML from the ConfigMap."""
        try:
            config_map = self.core_v1.read_namespaced_config_map(
                name=self.name, namespace=self.namespace
            )
        except ApiException as e:
            raise ConfigFetchError(
                f"Failed to get ConfigMap {self.source}: {e.status} {e.reason}",
                namespace=self.namespace, name=self.name,
            ) from e
        except Exception as e:
            raise ConfigFetchError(
                f"Failed to get ConfigMap {self.source}: {e}",
                namespace=self.namespace, name=self.name,
            ) from e
        
        data = config_map.data or {}
        if self.key not in data:
            raise ConfigFormatError(
                f"ConfigMap {self.source} does not contain key '{self.key}'",
                namespace=self.namespace, name=self.name,
            )
        return data[self.key]
    
    def load(self) -> List[ServiceCheck]:
        """
        Fetch and parse the service checks.
        
        Raises:
            ConfigFetchError: ConfigMap missing or unreachable
            ConfigFormatError: Key missing or payload malformed
        """
        yaml_text = self.fetch()
        try:
            checks = parse_services(yaml_text)
        except ConfigFormatError as e:
            e.namespace, e.name = self.namespace, self.name
            raise
        
        logger.debug(f"Loaded {len(checks)} service checks from {self.source}")
        return checks
