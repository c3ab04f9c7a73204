"""
Service Remediator

Deletes the Kubernetes Service of an unhealthy check so that an external
reconciler recreates it. The Service is looked up by the check's endpoint,
not its display name.
"""

import logging

from kubernetes.client.rest import ApiException

from .models import RemediationResult, ServiceCheck

logger = logging.getLogger(__name__)


class Remediator:
    """
    Deletes exposure resources for failed checks.
    
    Delete errors are logged and returned, never raised. There is no retry.
    
    Example:
        remediator = Remediator(core_v1)
        result = remediator.remediate(check)
    """
    
    def __init__(self, core_v1, dry_run: bool = False):
        """
        Initialize the remediator.
        
        Args:
            core_v1: kubernetes CoreV1Api instance
            dry_run: Log the delete instead of calling the API
        """
        self.core_v1 = core_v1
        self.dry_run = dry_run
    
    def remediate(self, check: ServiceCheck) -> RemediationResult:
        """Delete the Service named check.endpoint in check.namespace."""
        result = RemediationResult(
            namespace=check.namespace,
            resource_name=check.endpoint,
            dry_run=self.dry_run,
        )
        extra = {
            "service": check.name,
            "namespace": check.namespace,
            "endpoint": check.endpoint,
        }
        
        if self.dry_run:
            logger.info(f"[dry-run] Would delete {check.slug}", extra={**extra, "outcome": "dry_run"})
            return result
        
        try:
            self.core_v1.delete_namespaced_service(
                name=check.endpoint, namespace=check.namespace
            )
        except ApiException as e:
            result.error = f"{e.status} {e.reason}"
        except Exception as e:
            result.error = str(e)
        
        if result.error:
            logger.error(
                f"Failed to delete {check.slug}: {result.error}",
                extra={**extra, "outcome": "delete_failed"},
            )
        else:
            result.deleted = True
            logger.info(f"Cleaned up {check.slug}", extra={**extra, "outcome": "deleted"})
        
        return result
