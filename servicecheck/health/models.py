"""
Service Check Data Models

Defines the service check descriptor and the results produced by
probing, remediation and a full scheduler pass.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import List, Dict, Optional, Any


DEFAULT_NAMESPACE = "default"
DEFAULT_ENDPOINT = "localhost"
DEFAULT_PORT = 80


class ProbeStatus(Enum):
    """Probe outcome status."""
    SUCCESS = "success"
    FAILURE = "failure"  # Command ran and exited non-zero
    ERROR = "error"      # Command could not be executed


class LoadFailurePolicy(Enum):
    """What the scheduler does when the config cannot be loaded."""
    ABORT = "abort"
    SKIP = "skip"


@dataclass
class ServiceCheck:
    """
    Health check definition for one service.
    
    Attributes:
        name: Display name, only used in logs
        namespace: K8s namespace of the service
        endpoint: Service name, used both as probe host and as the
            name of the Service deleted on failure
        port: Service port
        command: Probe command (derived when empty)
        path: URL path appended to the derived probe URL
        headers: Headers added to the derived curl command
    """
    name: str = ""
    namespace: str = ""
    endpoint: str = ""
    port: int = 0
    command: str = ""
    path: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    
    @property
    def slug(self) -> str:
        """Log-friendly identifier."""
        return f"'{self.endpoint}.{self.namespace}' ({self.name})"
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "namespace": self.namespace,
            "endpoint": self.endpoint,
            "port": self.port,
            "command": self.command,
            "path": self.path,
            "headers": dict(self.headers),
        }


@dataclass
class ProbeResult:
    """Result of running a single probe command."""
    status: ProbeStatus
    return_code: Optional[int] = None
    duration_ms: int = 0
    command: str = ""
    error: Optional[str] = None
    
    @property
    def ok(self) -> bool:
        return self.status == ProbeStatus.SUCCESS


@dataclass
class RemediationResult:
    """Result of deleting a service's exposure resource."""
    namespace: str
    resource_name: str
    deleted: bool = False
    dry_run: bool = False
    error: Optional[str] = None


@dataclass
class CheckOutcome:
    """Probe result for one service, plus remediation if it was needed."""
    check: ServiceCheck
    probe: ProbeResult
    remediation: Optional[RemediationResult] = None
    
    @property
    def healthy(self) -> bool:
        return self.probe.ok
    
    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.check.name,
            "namespace": self.check.namespace,
            "endpoint": self.check.endpoint,
            "healthy": self.healthy,
            "probe_status": self.probe.status.value,
            "return_code": self.probe.return_code,
            "duration_ms": self.probe.duration_ms,
            "error": self.probe.error,
            "remediation": None,
        }
        if self.remediation:
            data["remediation"] = {
                "deleted": self.remediation.deleted,
                "dry_run": self.remediation.dry_run,
                "error": self.remediation.error,
            }
        return data


@dataclass
class PassResult:
    """
    Result of one scheduler tick.
    
    Attributes:
        tick: Tick number, starting at 1
        outcomes: One outcome per configured service, in config order
        load_error: Set when the config could not be loaded
        started_at: Pass start timestamp
        finished_at: Pass end timestamp
    """
    tick: int
    outcomes: List[CheckOutcome] = field(default_factory=list)
    load_error: Optional[str] = None
    started_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    finished_at: str = ""
    
    @property
    def healthy_count(self) -> int:
        """Count of healthy services."""
        return sum(1 for o in self.outcomes if o.healthy)
    
    @property
    def remediated_count(self) -> int:
        """Count of services whose exposure resource was deleted."""
        return sum(1 for o in self.outcomes if o.remediation and o.remediation.deleted)
    
    @property
    def remediation_failed_count(self) -> int:
        """Count of failed delete attempts."""
        return sum(
            1 for o in self.outcomes
            if o.remediation and not o.remediation.deleted and not o.remediation.dry_run
        )
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "tick": self.tick,
            "load_error": self.load_error,
            "summary": {
                "total": len(self.outcomes),
                "healthy": self.healthy_count,
                "remediated": self.remediated_count,
                "remediation_failed": self.remediation_failed_count,
            },
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }
