"""
Service Health Check Module

Loads service checks from a ConfigMap, probes every service on a fixed
interval, and deletes the Service of anything that fails its probe.
"""

from .models import (
    ServiceCheck, ProbeResult, ProbeStatus, RemediationResult,
    CheckOutcome, PassResult, LoadFailurePolicy,
)
from .loader import ServiceCheckLoader, parse_services, apply_defaults, build_probe_command
from .probes import Probe, ShellProbe
from .remediator import Remediator
from .taskgroup import TaskGroup, TaskResult
from .checker import ServiceChecker
from .scheduler import ServiceCheckScheduler

__all__ = [
    "ServiceCheck",
    "ProbeResult",
    "ProbeStatus",
    "RemediationResult",
    "CheckOutcome",
    "PassResult",
    "LoadFailurePolicy",
    "ServiceCheckLoader",
    "parse_services",
    "apply_defaults",
    "build_probe_command",
    "Probe",
    "ShellProbe",
    "Remediator",
    "TaskGroup",
    "TaskResult",
    "ServiceChecker",
    "ServiceCheckScheduler",
]
