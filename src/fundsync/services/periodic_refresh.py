"""Background trigger that refreshes valuations at startup and on a timer."""

import logging
import threading
from typing import Optional

from fundsync.domain.views import RefreshReport
from fundsync.services.refresh_scheduler import RefreshScheduler

logger = logging.getLogger(__name__)

DEFAULT_CHECK_SECONDS = 60.0


class PeriodicRefresher:
    """
    Calls RefreshScheduler.refresh() once when started and then every
    `check_seconds` until stopped.

    Triggers are never forced, so the scheduler still decides whether the
    interval has elapsed; a check that finds nothing due is a no-op. A
    failing trigger is logged and the loop keeps running.
    """

    def __init__(self, scheduler: RefreshScheduler, check_seconds: float = DEFAULT_CHECK_SECONDS):
        if check_seconds <= 0:
            raise ValueError("check_seconds must be greater than 0")
        self._scheduler = scheduler
        self._check_seconds = check_seconds
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.last_report: Optional[RefreshReport] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the background thread; a second call while running does nothing."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name="fundsync-refresh")
        self._thread.start()
        logger.info("Auto refresh started, checking every %gs", self._check_seconds)

    def stop(self, timeout: float = 5.0) -> None:
        """Signal the loop to end and wait for an in-flight refresh to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Auto refresh thread still running after %gs", timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop_event.is_set():
            self._trigger()
            self._stop_event.wait(self._check_seconds)

    def _trigger(self) -> None:
        try:
            report = self._scheduler.refresh()
        except Exception:
            logger.exception("Auto refresh trigger failed")
            return
        self.last_report = report
        logger.debug("Auto refresh: %s", report.status.value)
