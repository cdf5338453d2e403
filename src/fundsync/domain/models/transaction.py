"""Transaction domain model."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from fundsync.domain.models.enums import TransactionType


@dataclass
class Transaction:
    """
    A buy or sell applied to a holding.

    BUY: amount is the cash paid for `shares` units.
    SELL: only `shares` affects the holding; amount is informational.
    """

    txn_id: str
    holding_id: str
    code: str
    txn_type: TransactionType
    shares: Decimal
    amount: Decimal = field(default_factory=lambda: Decimal("0"))
    txn_date: Optional[date] = None
    note: Optional[str] = None
    created_at: Optional[datetime] = field(default=None)

    def __post_init__(self) -> None:
        if isinstance(self.txn_type, str):
            self.txn_type = TransactionType(self.txn_type)

    @property
    def is_buy(self) -> bool:
        return self.txn_type == TransactionType.BUY
