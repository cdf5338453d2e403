"""Pydantic schemas for API request/response."""

from fundsync.api.schemas.holding import (
    HoldingCreateRequest,
    HoldingUpdateRequest,
    HoldingResponse,
)
from fundsync.api.schemas.transaction import (
    TransactionCreateRequest,
    TransactionResponse,
    TransactionListResponse,
    TransactionAppliedResponse,
)
from fundsync.api.schemas.portfolio import (
    PortfolioSummaryResponse,
    RefreshResponse,
    DistributionItemResponse,
    TrendPointResponse,
)
from fundsync.api.schemas.fund import (
    FundInfoResponse,
    ValuationResponse,
    NetValueRecordResponse,
    HistoryPageResponse,
)

__all__ = [
    "HoldingCreateRequest",
    "HoldingUpdateRequest",
    "HoldingResponse",
    "TransactionCreateRequest",
    "TransactionResponse",
    "TransactionListResponse",
    "TransactionAppliedResponse",
    "PortfolioSummaryResponse",
    "RefreshResponse",
    "DistributionItemResponse",
    "TrendPointResponse",
    "FundInfoResponse",
    "ValuationResponse",
    "NetValueRecordResponse",
    "HistoryPageResponse",
]
