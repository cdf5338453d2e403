"""Service layer: valuation cache, calculator, scheduler and holdings management."""

from fundsync.services.valuation_cache import ValuationCache
from fundsync.services import portfolio_calculator
from fundsync.services.portfolio_state import PortfolioState
from fundsync.services.refresh_scheduler import RefreshScheduler
from fundsync.services.holding_service import (
    HoldingService,
    HoldingCreate,
    HoldingUpdate,
    TransactionCreate,
)
from fundsync.services.analysis_service import AnalysisService
from fundsync.services.periodic_refresh import PeriodicRefresher

__all__ = [
    "ValuationCache",
    "portfolio_calculator",
    "PortfolioState",
    "RefreshScheduler",
    "HoldingService",
    "HoldingCreate",
    "HoldingUpdate",
    "TransactionCreate",
    "AnalysisService",
    "PeriodicRefresher",
]
