"""Pydantic schemas for transaction endpoints."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from fundsync.api.schemas.holding import HoldingResponse
from fundsync.domain.models.enums import TransactionType


class TransactionCreateRequest(BaseModel):
    """Request schema for a buy or sell against a holding."""

    txn_type: TransactionType = Field(..., description="BUY or SELL")
    shares: Decimal = Field(..., gt=0, description="Shares bought or sold")
    amount: Decimal = Field(default=Decimal("0"), ge=0, description="Cash paid (BUY)")
    txn_date: Optional[date] = Field(default=None, description="Trade date; defaults to today")
    note: Optional[str] = Field(default=None, max_length=500, description="Optional note")


class TransactionResponse(BaseModel):
    """Response schema for a single transaction."""

    model_config = {"from_attributes": True}

    txn_id: str
    holding_id: str
    code: str
    txn_type: TransactionType
    shares: Decimal
    amount: Decimal
    txn_date: Optional[date] = None
    note: Optional[str] = None
    created_at: Optional[datetime] = None


class TransactionListResponse(BaseModel):
    """Response schema for a list of transactions."""

    transactions: list[TransactionResponse]
    total: int


class TransactionAppliedResponse(BaseModel):
    """The stored transaction and the holding it re-based."""

    transaction: TransactionResponse
    holding: HoldingResponse
