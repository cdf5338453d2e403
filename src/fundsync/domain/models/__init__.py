"""Domain models package."""

from fundsync.domain.models.enums import (
    TransactionType,
    ValuationSource,
    SchedulerState,
    RefreshStatus,
)
from fundsync.domain.models.fund import FundInfo
from fundsync.domain.models.holding import Holding, parse_fund_code
from fundsync.domain.models.transaction import Transaction
from fundsync.domain.models.valuation import (
    ValuationResult,
    CacheEntry,
    NetValueRecord,
    HistoryPage,
)

__all__ = [
    "TransactionType",
    "ValuationSource",
    "SchedulerState",
    "RefreshStatus",
    "FundInfo",
    "Holding",
    "parse_fund_code",
    "Transaction",
    "ValuationResult",
    "CacheEntry",
    "NetValueRecord",
    "HistoryPage",
]
