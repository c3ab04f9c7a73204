"""
Service Check Scheduler

Drives the load -> check -> remediate pass at a fixed interval. Passes never
overlap: a tick only starts once every check of the previous tick is done.
"""

import logging
import threading
import time
from datetime import datetime, UTC
from typing import Any, Callable, Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config import CHECK_INTERVAL_SECONDS
from ..exceptions import ConfigError
from .checker import ServiceChecker
from .loader import ServiceCheckLoader
from .models import LoadFailurePolicy, PassResult

logger = logging.getLogger(__name__)


class ServiceCheckScheduler:
    """
    Fixed-interval service check driver.
    
    run_forever() is a blocking loop whose clock and sleep functions can be
    injected, so tick cadence can be tested without real delays. start()
    runs the same pass in the background with APScheduler.
    
    When the config cannot be loaded, failure_policy decides what happens:
    ABORT re-raises the ConfigError out of the loop, SKIP logs it and
    waits for the next tick.
    
    Example:
        scheduler = ServiceCheckScheduler(loader, checker, interval_seconds=15)
        scheduler.run_forever()
    """
    
    def __init__(
        self,
        loader: ServiceCheckLoader,
        checker: ServiceChecker,
        interval_seconds: Optional[float] = None,
        failure_policy: LoadFailurePolicy = LoadFailurePolicy.ABORT,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], Any]] = None,
    ):
        """
        Initialize the scheduler.
        
        Args:
            loader: Loader called once per tick
            checker: Checker that fans out over the loaded services
            interval_seconds: Tick interval
            failure_policy: Behaviour on config load errors
            clock: Monotonic time source (time.monotonic if None)
            sleep: Sleep function; defaults to a wait that stop() interrupts
        """
        self.loader = loader
        self.checker = checker
        self.interval_seconds = CHECK_INTERVAL_SECONDS if interval_seconds is None else interval_seconds
        self.failure_policy = failure_policy
        
        self._stop_event = threading.Event()
        self._clock = clock or time.monotonic
        self._sleep = sleep or self._stop_event.wait
        
        self._tick = 0
        self._last_result: Optional[PassResult] = None
        self._scheduler: Optional[BackgroundScheduler] = None
        self.fatal_error: Optional[ConfigError] = None
        
        # Callbacks
        self.on_pass_complete: Optional[Callable[[PassResult], None]] = None
    
    @property
    def is_running(self) -> bool:
        """Check if the background scheduler is running."""
        return self._scheduler is not None and self._scheduler.running
    
    @property
    def last_result(self) -> Optional[PassResult]:
        return self._last_result
    
    @property
    def tick_count(self) -> int:
        return self._tick
    
    def run_pass(self) -> PassResult:
        """
        Run one tick: load the config, check every service, wait for all.
        
        Raises:
            ConfigError: If loading fails and the policy is ABORT
        """
        self._tick += 1
        result = PassResult(tick=self._tick)
        
        try:
            services = self.loader.load()
        except ConfigError as e:
            result.load_error = str(e)
            result.finished_at = datetime.now(UTC).isoformat()
            self._last_result = result
            if self.failure_policy == LoadFailurePolicy.ABORT:
                logger.critical(f"Error loading service checks from ConfigMap {self.loader.source}: {e}")
                raise
            logger.error(f"Skipping tick {self._tick}, could not load service checks: {e}")
            if self.on_pass_complete:
                self.on_pass_complete(result)
            return result
        
        logger.debug(f"Tick {self._tick}: checking {len(services)} services")
        result.outcomes = self.checker.check_all(services)
        result.finished_at = datetime.now(UTC).isoformat()
        self._last_result = result
        
        if self.on_pass_complete:
            self.on_pass_complete(result)
        
        return result
    
    def run_forever(self, max_ticks: Optional[int] = None, run_immediately: bool = False) -> None:
        """
        Block and run passes every interval until stop() or max_ticks.
        
        The first pass runs one interval after the call unless
        run_immediately is set. A pass that overruns the interval is
        followed immediately by the next one.
        
        Raises:
            ConfigError: Propagated from run_pass under the ABORT policy
        """
        self._stop_event.clear()
        logger.info(
            f"Start polling {self.loader.source} "
            f"(interval={self.interval_seconds}s, on_load_failure={self.failure_policy.value})"
        )
        
        next_fire = self._clock() + (0 if run_immediately else self.interval_seconds)
        ticks = 0
        
        while not self._stop_event.is_set():
            if max_ticks is not None and ticks >= max_ticks:
                break
            
            delay = next_fire - self._clock()
            if delay > 0:
                self._sleep(delay)
                if self._stop_event.is_set():
                    break
            
            self.run_pass()
            ticks += 1
            
            next_fire += self.interval_seconds
            now = self._clock()
            if next_fire < now:
                next_fire = now
    
    def stop(self) -> None:
        """Stop the blocking loop and the background scheduler."""
        self._stop_event.set()
        
        if self._scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Service check scheduler stopped")
        
        self._scheduler = None
    
    def start(self, run_immediately: bool = False) -> None:
        """Run passes in the background with APScheduler."""
        if self.is_running:
            logger.warning("Service check scheduler is already running")
            return
        
        self._stop_event.clear()
        self._scheduler = BackgroundScheduler()
        
        job_kwargs: Dict[str, Any] = {}
        if run_immediately:
            # next_run_time=None would add the job paused
            job_kwargs["next_run_time"] = datetime.now(UTC)
        
        self._scheduler.add_job(
            self._run_scheduled_pass,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id="service_check",
            name="Service Check Pass",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            **job_kwargs,
        )
        self._scheduler.start()
        logger.info(f"Service check scheduler started (interval={self.interval_seconds}s)")
    
    def _run_scheduled_pass(self) -> None:
        try:
            self.run_pass()
        except ConfigError as e:
            self.fatal_error = e
            if self._scheduler:
                self._scheduler.shutdown(wait=False)
    
    def get_status(self) -> Dict[str, Any]:
        """Get scheduler status."""
        return {
            "running": self.is_running,
            "interval_seconds": self.interval_seconds,
            "failure_policy": self.failure_policy.value,
            "source": self.loader.source,
            "ticks": self._tick,
            "last_pass": self._last_result.to_dict() if self._last_result else None,
            "fatal_error": str(self.fatal_error) if self.fatal_error else None,
        }
