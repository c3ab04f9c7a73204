"""
Service Checker

Probes each configured service and hands failures to the remediator.
"""

import logging
from typing import List, Optional

from .models import CheckOutcome, ProbeResult, ProbeStatus, ServiceCheck
from .probes import Probe, ShellProbe
from .remediator import Remediator
from .taskgroup import TaskGroup

logger = logging.getLogger(__name__)


class ServiceChecker:
    """
    Runs exactly one probe per service check.
    
    A zero exit status is healthy. Anything else, including a probe that
    cannot be executed, triggers remediation. Errors never propagate to
    the caller.
    
    Example:
        checker = ServiceChecker(remediator=Remediator(core_v1))
        outcomes = checker.check_all(checks)
    """
    
    def __init__(
        self,
        remediator: Remediator,
        probe: Optional[Probe] = None,
        task_group: Optional[TaskGroup] = None,
    ):
        """
        Initialize the checker.
        
        Args:
            remediator: Remediator called on probe failure
            probe: Probe implementation (ShellProbe if None)
            task_group: Fan-out helper used by check_all
        """
        self.remediator = remediator
        self.probe = probe or ShellProbe()
        self.task_group = task_group or TaskGroup("service-check")
    
    def check(self, service: ServiceCheck) -> CheckOutcome:
        """Probe one service and remediate on failure."""
        try:
            probe_result = self.probe.run(service)
        except Exception as e:
            probe_result = ProbeResult(
                status=ProbeStatus.ERROR,
                command=service.command,
                error=f"{type(e).__name__}: {e}",
            )
        
        extra = {
            "service": service.name,
            "namespace": service.namespace,
            "endpoint": service.endpoint,
        }
        
        if probe_result.ok:
            logger.info(
                f"Service {service.slug} is healthy",
                extra={**extra, "outcome": "healthy"},
            )
            return CheckOutcome(check=service, probe=probe_result)
        
        logger.warning(
            f"Command failed for {service.slug}, attempting to cleanup: {probe_result.error}",
            extra={**extra, "outcome": probe_result.status.value},
        )
        remediation = self.remediator.remediate(service)
        return CheckOutcome(check=service, probe=probe_result, remediation=remediation)
    
    def check_all(self, services: List[ServiceCheck]) -> List[CheckOutcome]:
        """
        Check all services concurrently and wait for every one to finish.
        
        Returns:
            Outcomes in the same order as services
        """
        outcomes = []
        for task in self.task_group.run(self.check, services):
            if task.ok:
                outcomes.append(task.value)
            else:
                outcomes.append(CheckOutcome(
                    check=task.item,
                    probe=ProbeResult(
                        status=ProbeStatus.ERROR,
                        command=task.item.command,
                        error=f"{type(task.error).__name__}: {task.error}",
                    ),
                ))
        return outcomes
