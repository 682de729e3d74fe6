"""Daily trigger for scheduled cleanups."""

import threading
from datetime import datetime, time, timedelta
from typing import Callable, Optional

from shared.logger import get_logger

logger = get_logger(__name__)

MIDNIGHT = time(0, 0)


class DailyScheduler:
    """
    Runs a job once a day at a fixed local wall-clock time.

    The scheduler is owned by the process: run_forever() blocks until
    stop() is called, typically from a signal handler. Runs are not guarded
    against overlap; a job that outlasts a day delays the next tick instead.

    Attributes:
        job: Callable invoked at every tick
        at: Local time of day to fire
    """

    def __init__(
        self,
        job: Callable[[], object],
        at: time = MIDNIGHT,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.job = job
        self.at = at
        self.clock = clock or datetime.now
        self._stop_event = threading.Event()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def next_run(self, now: Optional[datetime] = None) -> datetime:
        """Next firing instant strictly after now."""
        now = now or self.clock()
        candidate = datetime.combine(now.date(), self.at)
        if candidate <= now:
            candidate += timedelta(days=1)
        return candidate

    def seconds_until_next_run(self, now: Optional[datetime] = None) -> float:
        now = now or self.clock()
        return max((self.next_run(now) - now).total_seconds(), 0.0)

    def run_pending(self) -> None:
        """Invoke the job once, logging instead of raising on failure."""
        try:
            self.job()
        except Exception:
            logger.exception("Scheduled job failed")

    def run_forever(self) -> None:
        """Fire the job at every scheduled instant until stop() is called."""
        target = self.next_run()
        logger.debug(f"Next scheduled run at {target:%Y-%m-%d %H:%M}")
        while not self._stop_event.is_set():
            delay = max((target - self.clock()).total_seconds(), 0.0)
            if self._stop_event.wait(delay):
                break
            # Event.wait may return slightly early
            if self.clock() < target:
                continue
            self.run_pending()
            target = self.next_run()
            logger.debug(f"Next scheduled run at {target:%Y-%m-%d %H:%M}")
        logger.debug("Scheduler stopped")

    def stop(self) -> None:
        self._stop_event.set()
