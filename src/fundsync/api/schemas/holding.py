"""Pydantic schemas for holding endpoints."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class HoldingCreateRequest(BaseModel):
    """Request schema for adding a holding."""

    code: str = Field(..., description="6-digit fund code")
    name: str = Field(..., min_length=1, max_length=100, description="Fund display name")
    shares: Decimal = Field(default=Decimal("0"), ge=0, description="Shares held")
    cost_price: Decimal = Field(..., gt=0, description="Cost price per share")
    add_date: Optional[date] = Field(default=None, description="Date added; defaults to today")

    @field_validator("code")
    @classmethod
    def strip_code(cls, v: str) -> str:
        return v.strip()


class HoldingUpdateRequest(BaseModel):
    """Request schema for editing a holding (partial update)."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    shares: Optional[Decimal] = Field(default=None, ge=0)
    cost_price: Optional[Decimal] = Field(default=None, gt=0)


class HoldingResponse(BaseModel):
    """A holding with its derived profit figures."""

    holding_id: str
    code: str
    name: str
    shares: Decimal
    cost_price: Decimal
    last_value: Optional[Decimal] = None
    day_change: Optional[Decimal] = None
    valuation_time: Optional[str] = None
    add_date: Optional[date] = None
    updated_at: Optional[datetime] = None
    # Derived, never stored
    cost_amount: Decimal
    current_amount: Decimal
    profit: Decimal
    profit_rate: Decimal
    day_profit: Optional[Decimal] = None
