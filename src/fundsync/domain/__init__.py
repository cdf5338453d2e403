"""Domain layer - business models with no I/O."""

from fundsync.domain.models import (
    Holding,
    Transaction,
    TransactionType,
    ValuationResult,
    ValuationSource,
    CacheEntry,
    NetValueRecord,
    HistoryPage,
    SchedulerState,
    RefreshStatus,
)

__all__ = [
    "Holding",
    "Transaction",
    "TransactionType",
    "ValuationResult",
    "ValuationSource",
    "CacheEntry",
    "NetValueRecord",
    "HistoryPage",
    "SchedulerState",
    "RefreshStatus",
]
