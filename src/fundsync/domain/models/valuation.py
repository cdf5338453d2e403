"""Valuation results, cache entries and net value history."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fundsync.domain.models.enums import ValuationSource


@dataclass(frozen=True)
class ValuationResult:
    """
    One instrument's valuation as decoded from the provider.

    day_growth is a signed percentage. estimate is absent outside
    trading hours (settled-path results).
    """

    code: str
    day_growth: Decimal
    settled_value: Decimal
    observed_at: str
    estimate: Optional[Decimal] = None
    name: str = ""
    source: ValuationSource = ValuationSource.LIVE_ESTIMATE
    fetched_at: Optional[datetime] = None

    @property
    def current_value(self) -> Decimal:
        """Live estimate when available, otherwise the settled net value."""
        if self.estimate is not None and self.estimate > 0:
            return self.estimate
        return self.settled_value


@dataclass(frozen=True)
class CacheEntry:
    """
    Cached valuation for one instrument.

    expires_at == written_at + TTL; an entry at or past expiry is a miss.
    """

    result: ValuationResult
    written_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class NetValueRecord:
    """One settled net value in a fund's history."""

    date: str
    net_value: Decimal
    accumulated_value: Optional[Decimal] = None
    day_growth: Decimal = field(default_factory=lambda: Decimal("0"))
    purchase_status: str = ""
    redemption_status: str = ""


@dataclass(frozen=True)
class HistoryPage:
    """A page of net value history, newest first as published."""

    code: str
    records: tuple[NetValueRecord, ...]
    total: int
    page_size: int
    page_index: int

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return -(-self.total // self.page_size)
