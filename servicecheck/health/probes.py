"""
Health Probes

A probe runs one check command and reports whether it succeeded.
"""

import logging
import subprocess
import time
from abc import ABC, abstractmethod
from typing import Optional

from .models import ProbeResult, ProbeStatus, ServiceCheck

logger = logging.getLogger(__name__)


class Probe(ABC):
    """Base class for probes."""
    
    @abstractmethod
    def run(self, check: ServiceCheck) -> ProbeResult:
        """Run the probe for a service check."""


class ShellProbe(Probe):
    """
    Runs the check command through /bin/sh -c.
    
    No timeout is applied; the probe ends when the command does.
    """
    
    def __init__(self, shell: str = "/bin/sh", cwd: Optional[str] = None):
        self.shell = shell
        self.cwd = cwd
    
    def run(self, check: ServiceCheck) -> ProbeResult:
        start_time = time.time()
        
        try:
            result = subprocess.run(
                [self.shell, "-c", check.command],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                cwd=self.cwd,
            )
        except Exception as e:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.debug(f"Probe execution error for {check.slug}: {e}")
            return ProbeResult(
                status=ProbeStatus.ERROR,
                command=check.command,
                duration_ms=duration_ms,
                error=str(e),
            )
        
        duration_ms = int((time.time() - start_time) * 1000)
        # Probe output is arbitrary bytes; only stderr is kept, for the log
        stderr = (result.stderr or b"").decode("utf-8", errors="replace").strip()
        
        if result.returncode == 0:
            return ProbeResult(
                status=ProbeStatus.SUCCESS,
                return_code=0,
                duration_ms=duration_ms,
                command=check.command,
            )
        
        return ProbeResult(
            status=ProbeStatus.FAILURE,
            return_code=result.returncode,
            duration_ms=duration_ms,
            command=check.command,
            error=stderr or f"exit status {result.returncode}",
        )
