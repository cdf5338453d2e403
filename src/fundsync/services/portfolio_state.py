"""Process-scoped in-memory portfolio state shared by the scheduler and services."""

import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Iterator, Optional

from fundsync.domain.models import Holding, SchedulerState


class PortfolioState:
    """
    Owner of the resident holdings collection and the refresh clock.

    One lock guards both: a refresh cycle holds it from the fetch until its
    results are merged and persisted, and holding mutations take it for the
    duration of their write. A refresh that cannot take the lock immediately
    is skipped rather than queued.
    """

    def __init__(self, holdings: Optional[Iterable[Holding]] = None):
        self._holdings: list[Holding] = list(holdings or [])
        self._last_refresh_at: Optional[datetime] = None
        self._scheduler_state = SchedulerState.IDLE
        self._lock = threading.Lock()

    @property
    def holdings(self) -> list[Holding]:
        """Copy of the resident holdings in display order."""
        return list(self._holdings)

    @property
    def last_refresh_at(self) -> Optional[datetime]:
        """Time of the last refresh with at least one successful valuation."""
        return self._last_refresh_at

    @property
    def scheduler_state(self) -> SchedulerState:
        return self._scheduler_state

    @property
    def is_refreshing(self) -> bool:
        return self._scheduler_state == SchedulerState.REFRESHING

    def replace_holdings(self, holdings: Iterable[Holding]) -> None:
        """Swap in a new holdings list. Callers hold the lock."""
        self._holdings = list(holdings)

    def mark_refreshed(self, at: datetime) -> None:
        self._last_refresh_at = at

    def try_begin_refresh(self) -> bool:
        """Enter REFRESHING if nothing else holds the state; never blocks."""
        if not self._lock.acquire(blocking=False):
            return False
        self._scheduler_state = SchedulerState.REFRESHING
        return True

    def end_refresh(self) -> None:
        """Return to IDLE and release the state."""
        self._scheduler_state = SchedulerState.IDLE
        self._lock.release()

    @contextmanager
    def exclusive(self) -> Iterator[list[Holding]]:
        """Hold the state for a mutation; yields the current holdings."""
        with self._lock:
            yield list(self._holdings)
