"""View models for calculator and scheduler outputs."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from fundsync.core.exceptions import FetchError
from fundsync.domain.models import Holding, RefreshStatus, ValuationResult


@dataclass
class ProfitSnapshot:
    """Derived P/L of one holding at its current valuation. Never stored."""

    cost_amount: Decimal
    current_amount: Decimal
    profit: Decimal
    profit_rate: Decimal


@dataclass
class HoldingSnapshot:
    """A holding with its profit snapshot and optional day profit."""

    holding: Holding
    profit: ProfitSnapshot
    day_profit: Optional[Decimal] = None


@dataclass
class PortfolioSummary:
    """Aggregate of all holding snapshots."""

    total_cost: Decimal = field(default_factory=lambda: Decimal("0"))
    total_current: Decimal = field(default_factory=lambda: Decimal("0"))
    total_profit: Decimal = field(default_factory=lambda: Decimal("0"))
    total_profit_rate: Decimal = field(default_factory=lambda: Decimal("0"))
    total_day_profit: Decimal = field(default_factory=lambda: Decimal("0"))
    day_profit_rate: Decimal = field(default_factory=lambda: Decimal("0"))
    has_day_profit: bool = False
    holding_count: int = 0

    @property
    def headline_profit(self) -> Decimal:
        """Day profit when any holding carries a day change, else cumulative profit."""
        return self.total_day_profit if self.has_day_profit else self.total_profit


@dataclass
class DistributionItem:
    """Single holding's share of total current value."""

    code: str
    name: str
    value: Decimal
    percentage: Decimal


@dataclass
class NetValueSnapshot:
    """Net values of several funds on one date (input to the trend series)."""

    date: str
    net_values: dict[str, Decimal] = field(default_factory=dict)


@dataclass
class TrendPoint:
    """Total portfolio value on one date."""

    date: str
    value: Decimal


@dataclass
class ValuationBatch:
    """Per-instrument outcomes of a batch fetch; failures are values, not raised."""

    results: dict[str, Union[ValuationResult, FetchError]] = field(default_factory=dict)

    @property
    def succeeded(self) -> dict[str, ValuationResult]:
        return {
            code: outcome
            for code, outcome in self.results.items()
            if isinstance(outcome, ValuationResult)
        }

    @property
    def failed(self) -> dict[str, FetchError]:
        return {
            code: outcome
            for code, outcome in self.results.items()
            if isinstance(outcome, FetchError)
        }


@dataclass
class RefreshReport:
    """What one refresh trigger did."""

    status: RefreshStatus
    summary: Optional[PortfolioSummary] = None
    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    notice: Optional[str] = None
    persisted: bool = False
    finished_at: Optional[datetime] = None

    @property
    def fetched(self) -> bool:
        return self.status in (RefreshStatus.SUCCESS, RefreshStatus.PARTIAL, RefreshStatus.FAILED)
