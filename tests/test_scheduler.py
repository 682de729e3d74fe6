"""Tests for the daily scheduler."""

import logging
from datetime import datetime, time, timedelta
from unittest.mock import MagicMock

from tools.hotfix_cleaner.scheduler import MIDNIGHT, DailyScheduler


class SteppingClock:
    """Clock that advances by a fixed step on every call."""

    def __init__(self, start: datetime, step: timedelta):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        now = self.current
        self.current += self.step
        return now


class TestNextRun:
    """Test computing the next firing instant."""

    def test_before_midnight(self):
        scheduler = DailyScheduler(MagicMock())
        now = datetime(2024, 6, 10, 15, 30)
        assert scheduler.next_run(now) == datetime(2024, 6, 11, 0, 0)

    def test_at_midnight_moves_to_next_day(self):
        """Test that the instant itself is not re-used."""
        scheduler = DailyScheduler(MagicMock())
        assert scheduler.next_run(datetime(2024, 6, 10)) == datetime(2024, 6, 11)

    def test_later_the_same_day(self):
        scheduler = DailyScheduler(MagicMock(), at=time(6, 0))
        now = datetime(2024, 6, 10, 1, 0)
        assert scheduler.next_run(now) == datetime(2024, 6, 10, 6, 0)

    def test_seconds_until_next_run(self):
        scheduler = DailyScheduler(MagicMock())
        now = datetime(2024, 6, 10, 23, 59, 30)
        assert scheduler.seconds_until_next_run(now) == 30.0

    def test_default_is_midnight(self):
        assert DailyScheduler(MagicMock()).at == MIDNIGHT


class TestRunning:
    """Test firing and stopping."""

    def test_run_pending_logs_job_failure(self, caplog):
        """Test that a failing job does not raise."""
        job = MagicMock(side_effect=RuntimeError("boom"))
        scheduler = DailyScheduler(job)

        with caplog.at_level(logging.ERROR):
            scheduler.run_pending()

        job.assert_called_once()
        assert "Scheduled job failed" in caplog.text

    def test_run_forever_fires_at_midnight(self):
        """Test that the job runs once the scheduled instant is reached."""
        clock = SteppingClock(datetime(2024, 6, 10, 23, 59, 59, 950000), timedelta(seconds=1))
        scheduler = DailyScheduler(MagicMock(), clock=clock)
        scheduler.job.side_effect = scheduler.stop

        scheduler.run_forever()

        scheduler.job.assert_called_once()
        assert scheduler.stopped

    def test_early_wakeup_does_not_fire(self):
        """Test that the job waits until the clock has reached the target."""
        clock = SteppingClock(datetime(2024, 6, 10, 23, 59, 59, 980000), timedelta(milliseconds=5))
        fired_at = []
        scheduler = DailyScheduler(MagicMock(), clock=clock)

        def job():
            fired_at.append(clock.current)
            scheduler.stop()

        scheduler.job = job
        scheduler.run_forever()

        assert fired_at
        assert fired_at[0] > datetime(2024, 6, 11)

    def test_stop_before_start(self):
        """Test that a stopped scheduler never fires."""
        job = MagicMock()
        scheduler = DailyScheduler(job)
        scheduler.stop()

        scheduler.run_forever()

        job.assert_not_called()
