"""View models for service outputs."""

from fundsync.domain.views.portfolio import (
    ProfitSnapshot,
    HoldingSnapshot,
    PortfolioSummary,
    DistributionItem,
    NetValueSnapshot,
    TrendPoint,
    ValuationBatch,
    RefreshReport,
)

__all__ = [
    "ProfitSnapshot",
    "HoldingSnapshot",
    "PortfolioSummary",
    "DistributionItem",
    "NetValueSnapshot",
    "TrendPoint",
    "ValuationBatch",
    "RefreshReport",
]
