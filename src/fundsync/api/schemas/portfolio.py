"""Pydantic schemas for portfolio endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from fundsync.domain.models.enums import RefreshStatus


class PortfolioSummaryResponse(BaseModel):
    """Aggregate profit figures across all holdings."""

    model_config = {"from_attributes": True}

    total_cost: Decimal
    total_current: Decimal
    total_profit: Decimal
    total_profit_rate: Decimal
    total_day_profit: Decimal
    day_profit_rate: Decimal
    has_day_profit: bool
    holding_count: int
    headline_profit: Decimal


class RefreshResponse(BaseModel):
    """Outcome of a refresh trigger."""

    status: RefreshStatus
    summary: Optional[PortfolioSummaryResponse] = None
    succeeded: list[str]
    failed: list[str]
    notice: Optional[str] = None
    persisted: bool
    last_refresh_at: Optional[datetime] = None


class DistributionItemResponse(BaseModel):
    """Single holding's share of total current value."""

    model_config = {"from_attributes": True}

    code: str
    name: str
    value: Decimal
    percentage: Decimal


class TrendPointResponse(BaseModel):
    """Total portfolio value on one date."""

    model_config = {"from_attributes": True}

    date: str
    value: Decimal
