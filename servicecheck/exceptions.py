"""
Service Check Exceptions
"""


class ServiceCheckError(Exception):
    """Base class for service-check errors."""


class BootstrapError(ServiceCheckError):
    """Kubernetes credentials or client could not be set up."""


class ConfigError(ServiceCheckError):
    """Service check config could not be loaded."""
    
    def __init__(self, message: str, namespace: str = "", name: str = ""):
        super().__init__(message)
        self.namespace = namespace
        self.name = name


class ConfigFetchError(ConfigError):
    """ConfigMap is missing or the API is unreachable."""


class ConfigFormatError(ConfigError):
    """ConfigMap key is missing or its payload is malformed."""
