"""API routers package."""

from fundsync.api.routers.holdings import router as holdings_router
from fundsync.api.routers.portfolio import router as portfolio_router
from fundsync.api.routers.funds import router as funds_router

__all__ = [
    "holdings_router",
    "portfolio_router",
    "funds_router",
]
