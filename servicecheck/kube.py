"""
Kubernetes Client Bootstrap

Builds the CoreV1 API handle shared by the config loader and the remediator.
"""

import logging
from typing import Optional

from kubernetes import client, config

from .exceptions import BootstrapError

logger = logging.getLogger(__name__)


def create_core_v1(kubeconfig_path: Optional[str] = None) -> client.CoreV1Api:
    """
    Create a CoreV1Api client.
    
    Args:
        kubeconfig_path: Kubeconfig file to read; in-cluster credentials
            are used when None
    
    Returns:
        CoreV1Api instance
    
    Raises:
        BootstrapError: If credentials cannot be loaded
    """
    try:
        if kubeconfig_path:
            logger.info(f"Reading kubeconfig from: {kubeconfig_path}")
            config.load_kube_config(config_file=kubeconfig_path)
        else:
            logger.info("Using in-cluster credentials")
            config.load_incluster_config()
    except Exception as e:
        raise BootstrapError(f"Failed to load Kubernetes config: {e}") from e
    
    return client.CoreV1Api()
