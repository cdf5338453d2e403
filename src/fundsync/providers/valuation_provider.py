"""Valuation provider protocol."""

from typing import Iterable, Protocol

from fundsync.domain.models import HistoryPage, ValuationResult
from fundsync.domain.views import ValuationBatch


class ValuationProvider(Protocol):
    """
    Protocol for valuation sources consumed by the scheduler and analysis.

    Implementations must tolerate partial failure: fetch_valuation_batch
    returns per-fund outcomes and never raises for a single fund.
    """

    def fetch_valuation(self, code: str) -> ValuationResult:
        """Fetch one fund's valuation; raises FetchError on failure."""
        ...

    def fetch_valuation_batch(self, codes: Iterable[str]) -> ValuationBatch:
        """Fetch many funds concurrently; failures are returned as values."""
        ...

    def fetch_history(self, code: str, page_size: int = 20, page_index: int = 1) -> HistoryPage:
        """Fetch one page of settled net value history."""
        ...
