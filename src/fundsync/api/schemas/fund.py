"""Pydantic schemas for fund lookup endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from fundsync.domain.models.enums import ValuationSource


class ValuationResponse(BaseModel):
    """Provider valuation for one fund."""

    model_config = {"from_attributes": True}

    code: str
    name: str
    estimate: Optional[Decimal] = None
    day_growth: Decimal
    settled_value: Decimal
    current_value: Decimal
    observed_at: str
    source: ValuationSource
    fetched_at: Optional[datetime] = None


class NetValueRecordResponse(BaseModel):
    """One settled net value."""

    model_config = {"from_attributes": True}

    date: str
    net_value: Decimal
    accumulated_value: Optional[Decimal] = None
    day_growth: Decimal
    purchase_status: str
    redemption_status: str


class HistoryPageResponse(BaseModel):
    """One page of net value history."""

    code: str
    records: list[NetValueRecordResponse]
    total: int
    page_size: int
    page_index: int
    total_pages: int


class FundInfoResponse(BaseModel):
    """One fund search hit."""

    model_config = {"from_attributes": True}

    code: str
    name: str
    fund_type: str
    pinyin: str
