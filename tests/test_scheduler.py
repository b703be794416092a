"""Scheduler wiring tests."""

import signal
from unittest.mock import MagicMock, patch

import pytest
from apscheduler.triggers.interval import IntervalTrigger

from rss_monitor_agent.scheduler import JOB_ID, MAX_OVERLAPPING_RUNS, MonitorScheduler


class TestMonitorScheduler:

    def test_rejects_zero_interval(self):
        with pytest.raises(ValueError):
            MonitorScheduler(lambda: None, 0, scheduler=MagicMock())

    def test_job_runs_immediately_then_on_interval(self):
        backend = MagicMock()
        job = MagicMock()

        MonitorScheduler(job, 7, scheduler=backend).schedule()

        backend.add_job.assert_called_once()
        args, kwargs = backend.add_job.call_args
        assert args[0] is job
        assert isinstance(kwargs["trigger"], IntervalTrigger)
        assert kwargs["trigger"].interval.total_seconds() == 7 * 60
        assert kwargs["next_run_time"] is not None
        assert kwargs["id"] == JOB_ID

    def test_overlapping_runs_allowed(self):
        backend = MagicMock()
        MonitorScheduler(lambda: None, 5, scheduler=backend).schedule()
        kwargs = backend.add_job.call_args[1]
        assert kwargs["max_instances"] == MAX_OVERLAPPING_RUNS >= 10
        assert kwargs["coalesce"] is False

    def test_default_executor_pool_fits_overlapping_runs(self):
        with patch("rss_monitor_agent.scheduler.BlockingScheduler") as scheduler_cls, \
                patch("rss_monitor_agent.scheduler.ThreadPoolExecutor") as pool_cls:
            scheduler = MonitorScheduler(lambda: None, 5)

        pool_cls.assert_called_once_with(MAX_OVERLAPPING_RUNS)
        scheduler_cls.assert_called_once_with(executors={"default": pool_cls.return_value})
        assert scheduler.scheduler is scheduler_cls.return_value

    def test_stop_shuts_down_running_scheduler(self):
        backend = MagicMock()
        backend.running = True
        MonitorScheduler(lambda: None, 5, scheduler=backend).stop(signal.SIGTERM, None)
        backend.shutdown.assert_called_once_with(wait=False)

    def test_stop_when_not_running(self):
        backend = MagicMock()
        backend.running = False
        MonitorScheduler(lambda: None, 5, scheduler=backend).stop()
        backend.shutdown.assert_not_called()

    def test_start_installs_signal_handlers_and_blocks(self):
        backend = MagicMock()
        scheduler = MonitorScheduler(lambda: None, 5, scheduler=backend)

        with patch("rss_monitor_agent.scheduler.signal.signal") as set_signal:
            scheduler.start()

        handled = {call.args[0] for call in set_signal.call_args_list}
        assert handled == {signal.SIGINT, signal.SIGTERM}
        backend.start.assert_called_once()
