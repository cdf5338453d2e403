"""Holdings store protocol."""

from typing import Protocol

from fundsync.domain.models import Holding


class HoldingsStore(Protocol):
    """
    Durable key-value persistence for the holdings collection.

    Crash-consistent but not transactional across calls. put() replaces the
    whole collection and raises PersistenceError when the write fails.
    """

    def get(self) -> list[Holding]:
        """Load all holdings in display order."""
        ...

    def put(self, holdings: list[Holding]) -> None:
        """Replace the stored holdings with `holdings`."""
        ...
