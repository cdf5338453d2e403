"""Holding domain model."""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

FUND_CODE_PATTERN = re.compile(r"^[0-9]{6}$")


def parse_fund_code(value: Optional[str]) -> Optional[str]:
    """Normalize user input to a 6-digit fund code; None when it is not one."""
    if value is None:
        return None
    code = value.strip()
    return code if FUND_CODE_PATTERN.match(code) else None


@dataclass
class Holding:
    """
    A fund position tracked against its cost basis.

    shares >= 0 and cost_price > 0 are enforced by HoldingService.
    last_value, day_change and valuation_time are only written by a
    successful valuation refresh.
    """

    holding_id: str
    code: str
    name: str
    shares: Decimal
    cost_price: Decimal
    last_value: Optional[Decimal] = None
    day_change: Optional[Decimal] = None
    valuation_time: Optional[str] = None
    add_date: Optional[date] = None
    updated_at: Optional[datetime] = field(default=None)

    @property
    def current_value(self) -> Decimal:
        """Valuation used for P/L; falls back to cost price when never valued."""
        if self.last_value:
            return self.last_value
        return self.cost_price

    @property
    def has_day_change(self) -> bool:
        return self.day_change is not None
