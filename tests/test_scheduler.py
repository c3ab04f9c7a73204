"""
Tests for Service Check Scheduler
"""

import threading
import time

import pytest
from unittest.mock import Mock

from servicecheck.exceptions import ConfigFetchError, ConfigFormatError
from servicecheck.health import (
    LoadFailurePolicy, Probe, ProbeResult, ProbeStatus, Remediator,
    ServiceCheck, ServiceCheckLoader, ServiceCheckScheduler, ServiceChecker, apply_defaults,
)


class FakeClock:
    """Monotonic clock advanced only by sleep()."""
    
    def __init__(self):
        self.now = 0.0
        self.sleeps = []
    
    def __call__(self):
        return self.now
    
    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class RecordingProbe(Probe):
    """Probe that records start/end events and can be slowed per endpoint."""
    
    def __init__(self, events, delays=None):
        self.events = events
        self.delays = delays or {}
        self._lock = threading.Lock()
    
    def run(self, check):
        time.sleep(self.delays.get(check.endpoint, 0))
        with self._lock:
            self.events.append(("probe_end", check.endpoint))
        return ProbeResult(status=ProbeStatus.SUCCESS, return_code=0, command=check.command)


def make_checks(*endpoints):
    return [apply_defaults(ServiceCheck(name=e, endpoint=e, command="true")) for e in endpoints]


@pytest.fixture
def loader():
    """Create mock loader returning two services."""
    loader = Mock(spec=ServiceCheckLoader)
    loader.source = "service-check-config.default"
    loader.load.side_effect = lambda: make_checks("a", "b")
    return loader


@pytest.fixture
def checker():
    """Create mock checker that reports every service healthy."""
    checker = Mock(spec=ServiceChecker)
    checker.check_all.return_value = []
    return checker


class TestRunPass:
    """Tests for a single pass."""
    
    def test_pass_loads_and_checks(self, loader, checker):
        """Test a pass loads the config and fans out over it."""
        scheduler = ServiceCheckScheduler(loader, checker, interval_seconds=15)
        
        result = scheduler.run_pass()
        
        loader.load.assert_called_once()
        checker.check_all.assert_called_once()
        services = checker.check_all.call_args[0][0]
        assert [s.endpoint for s in services] == ["a", "b"]
        assert result.tick == 1
        assert result.load_error is None
        assert result.finished_at
        assert scheduler.last_result is result
    
    def test_abort_policy_raises(self, loader, checker):
        """Test load errors propagate under ABORT."""
        loader.load.side_effect = ConfigFetchError("ConfigMap not found")
        scheduler = ServiceCheckScheduler(loader, checker, failure_policy=LoadFailurePolicy.ABORT)
        
        with pytest.raises(ConfigFetchError):
            scheduler.run_pass()
        
        checker.check_all.assert_not_called()
        assert scheduler.last_result.load_error == "ConfigMap not found"
    
    def test_skip_policy_records_error(self, loader, checker):
        """Test load errors are recorded and swallowed under SKIP."""
        loader.load.side_effect = ConfigFormatError("bad yaml")
        scheduler = ServiceCheckScheduler(loader, checker, failure_policy=LoadFailurePolicy.SKIP)
        
        result = scheduler.run_pass()
        
        assert result.load_error == "bad yaml"
        assert result.outcomes == []
        checker.check_all.assert_not_called()
    
    def test_callback_on_pass_complete(self, loader, checker):
        """Test callback fires after each pass."""
        scheduler = ServiceCheckScheduler(loader, checker)
        completed = []
        scheduler.on_pass_complete = completed.append
        
        scheduler.run_pass()
        scheduler.run_pass()
        
        assert [r.tick for r in completed] == [1, 2]
    
    def test_default_interval(self, loader, checker):
        """Test default 15 second interval."""
        scheduler = ServiceCheckScheduler(loader, checker)
        
        assert scheduler.interval_seconds == 15
    
    def test_zero_interval_kept(self, loader, checker):
        """Test an explicit zero interval is not replaced by the default."""
        scheduler = ServiceCheckScheduler(loader, checker, interval_seconds=0)
        
        assert scheduler.interval_seconds == 0
    
    def test_zero_interval_runs_back_to_back(self, loader, checker):
        """Test a zero interval never sleeps between passes."""
        clock = FakeClock()
        scheduler = ServiceCheckScheduler(
            loader, checker, interval_seconds=0, clock=clock, sleep=clock.sleep
        )
        
        scheduler.run_forever(max_ticks=3)
        
        assert clock.sleeps == []
        assert loader.load.call_count == 3
    
    def test_callback_on_skipped_pass(self, loader, checker):
        """Test callback also fires for a pass skipped on a load error."""
        loader.load.side_effect = ConfigFormatError("bad yaml")
        scheduler = ServiceCheckScheduler(loader, checker, failure_policy=LoadFailurePolicy.SKIP)
        completed = []
        scheduler.on_pass_complete = completed.append
        
        result = scheduler.run_pass()
        
        assert completed == [result]
        assert completed[0].load_error == "bad yaml"
    
    def test_callback_not_fired_on_abort(self, loader, checker):
        """Test an aborting load error raises without a completed pass."""
        loader.load.side_effect = ConfigFetchError("gone")
        scheduler = ServiceCheckScheduler(loader, checker, failure_policy=LoadFailurePolicy.ABORT)
        completed = []
        scheduler.on_pass_complete = completed.append
        
        with pytest.raises(ConfigFetchError):
            scheduler.run_pass()
        
        assert completed == []


class TestRunForever:
    """Tests for the blocking loop with an injected clock."""
    
    def test_ticks_at_interval(self, loader, checker):
        """Test each tick waits one interval."""
        clock = FakeClock()
        scheduler = ServiceCheckScheduler(
            loader, checker, interval_seconds=15, clock=clock, sleep=clock.sleep
        )
        
        scheduler.run_forever(max_ticks=3)
        
        assert clock.sleeps == [15, 15, 15]
        assert loader.load.call_count == 3
        assert scheduler.tick_count == 3
    
    def test_run_immediately(self, loader, checker):
        """Test the first pass can skip the initial wait."""
        clock = FakeClock()
        scheduler = ServiceCheckScheduler(
            loader, checker, interval_seconds=15, clock=clock, sleep=clock.sleep
        )
        
        scheduler.run_forever(max_ticks=2, run_immediately=True)
        
        assert clock.sleeps == [15]
        assert loader.load.call_count == 2
    
    def test_slow_pass_shortens_next_wait(self, loader, checker):
        """Test the schedule stays anchored when a pass takes time."""
        clock = FakeClock()
        checker.check_all.side_effect = lambda services: clock.sleep(5) or []
        scheduler = ServiceCheckScheduler(
            loader, checker, interval_seconds=15, clock=clock, sleep=clock.sleep
        )
        
        scheduler.run_forever(max_ticks=2)
        
        # initial wait, pass, remaining 10s, pass
        assert clock.sleeps == [15, 5, 10, 5]
    
    def test_overrun_starts_next_tick_immediately(self, loader, checker):
        """Test a pass longer than the interval is followed without waiting."""
        clock = FakeClock()
        checker.check_all.side_effect = lambda services: clock.sleep(40) or []
        scheduler = ServiceCheckScheduler(
            loader, checker, interval_seconds=15, clock=clock, sleep=clock.sleep
        )
        
        scheduler.run_forever(max_ticks=3)
        
        assert clock.sleeps == [15, 40, 40, 40]
    
    def test_abort_stops_loop(self, loader, checker):
        """Test ABORT propagates out of run_forever."""
        clock = FakeClock()
        loader.load.side_effect = [make_checks("a"), ConfigFetchError("gone")]
        scheduler = ServiceCheckScheduler(
            loader, checker, interval_seconds=15, clock=clock, sleep=clock.sleep,
            failure_policy=LoadFailurePolicy.ABORT,
        )
        
        with pytest.raises(ConfigFetchError):
            scheduler.run_forever(max_ticks=5)
        
        assert scheduler.tick_count == 2
    
    def test_skip_continues(self, loader, checker):
        """Test SKIP retries on the next tick."""
        clock = FakeClock()
        loader.load.side_effect = [ConfigFetchError("gone"), make_checks("a"), make_checks("a")]
        scheduler = ServiceCheckScheduler(
            loader, checker, interval_seconds=15, clock=clock, sleep=clock.sleep,
            failure_policy=LoadFailurePolicy.SKIP,
        )
        
        scheduler.run_forever(max_ticks=3)
        
        assert loader.load.call_count == 3
        assert checker.check_all.call_count == 2
    
    def test_stop_interrupts_wait(self, loader, checker):
        """Test stop() ends the loop during the default sleep."""
        scheduler = ServiceCheckScheduler(loader, checker, interval_seconds=3600)
        thread = threading.Thread(target=scheduler.run_forever)
        thread.start()
        
        time.sleep(0.05)
        scheduler.stop()
        thread.join(timeout=2)
        
        assert not thread.is_alive()
        loader.load.assert_not_called()


class TestBarrier:
    """Passes never overlap."""
    
    def test_slowest_task_finishes_before_next_load(self):
        """Test tick N+1 loads only after every probe of tick N ended."""
        events = []
        lock = threading.Lock()
        
        def load():
            with lock:
                events.append(("load", None))
            return make_checks("fast", "slow")
        
        loader = Mock(spec=ServiceCheckLoader)
        loader.source = "test"
        loader.load.side_effect = load
        
        checker = ServiceChecker(
            remediator=Mock(spec=Remediator),
            probe=RecordingProbe(events, delays={"slow": 0.1}),
        )
        clock = FakeClock()
        scheduler = ServiceCheckScheduler(
            loader, checker, interval_seconds=0.001, clock=clock, sleep=clock.sleep
        )
        
        scheduler.run_forever(max_ticks=3)
        
        load_indexes = [i for i, e in enumerate(events) if e[0] == "load"]
        assert len(load_indexes) == 3
        for tick, start in enumerate(load_indexes):
            end = load_indexes[tick + 1] if tick + 1 < len(load_indexes) else len(events)
            probes = [e[1] for e in events[start + 1:end]]
            assert sorted(probes) == ["fast", "slow"]


class TestBackgroundScheduler:
    """Tests for APScheduler background mode."""
    
    @pytest.fixture
    def scheduler(self, loader, checker):
        """Create scheduler with mocks."""
        return ServiceCheckScheduler(loader, checker, interval_seconds=60)
    
    def test_initial_state(self, scheduler):
        """Test scheduler initial state."""
        assert not scheduler.is_running
        assert scheduler.last_result is None
    
    def test_start_stop(self, scheduler):
        """Test scheduler start and stop."""
        scheduler.start()
        assert scheduler.is_running
        
        scheduler.stop()
        assert not scheduler.is_running
    
    def test_start_twice(self, scheduler):
        """Test starting a running scheduler is a no-op."""
        scheduler.start()
        scheduler.start()
        assert scheduler.is_running
        
        scheduler.stop()
    
    def test_scheduled_pass_abort_records_fatal_error(self, scheduler, loader):
        """Test ABORT in background mode stops the scheduler."""
        loader.load.side_effect = ConfigFetchError("gone")
        scheduler.start()
        
        scheduler._run_scheduled_pass()
        
        assert isinstance(scheduler.fatal_error, ConfigFetchError)
        assert not scheduler.is_running
    
    def test_get_status(self, scheduler):
        """Test status retrieval."""
        scheduler.run_pass()
        
        status = scheduler.get_status()
        
        assert status["running"] is False
        assert status["interval_seconds"] == 60
        assert status["failure_policy"] == "abort"
        assert status["ticks"] == 1
        assert status["last_pass"]["tick"] == 1
