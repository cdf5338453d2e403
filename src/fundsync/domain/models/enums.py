"""Enumerations for domain models."""

from enum import Enum


class TransactionType(str, Enum):
    """Types of holding transactions."""

    BUY = "BUY"
    SELL = "SELL"


class ValuationSource(str, Enum):
    """Provider endpoint a valuation was decoded from."""

    LIVE_ESTIMATE = "LIVE_ESTIMATE"  # intraday estimate, trading hours only
    SETTLED = "SETTLED"  # last published net value


class SchedulerState(str, Enum):
    """Refresh scheduler states."""

    IDLE = "IDLE"
    REFRESHING = "REFRESHING"


class RefreshStatus(str, Enum):
    """Outcome of a single refresh trigger."""

    SKIPPED_BUSY = "skipped_busy"
    NOT_DUE = "not_due"
    NO_HOLDINGS = "no_holdings"
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
