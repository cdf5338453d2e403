"""Holding service: add, edit and remove holdings and their transactions."""

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional

from fundsync.core.exceptions import (
    DuplicateHoldingError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from fundsync.core.timezone import now_market
from fundsync.domain.models import (
    Holding,
    Transaction,
    TransactionType,
    parse_fund_code,
)
from fundsync.repositories.protocols import HoldingsStore, TransactionRepository
from fundsync.services import portfolio_calculator as calculator
from fundsync.services.portfolio_state import PortfolioState

logger = logging.getLogger(__name__)


@dataclass
class HoldingCreate:
    """Input data for adding a holding."""

    code: str
    name: str
    cost_price: Decimal
    shares: Decimal = field(default_factory=lambda: Decimal("0"))
    add_date: Optional[date] = None


@dataclass
class HoldingUpdate:
    """Partial update data for editing a holding."""

    name: Optional[str] = None
    shares: Optional[Decimal] = None
    cost_price: Optional[Decimal] = None


@dataclass
class TransactionCreate:
    """Input data for a buy or sell against a holding."""

    holding_id: str
    txn_type: TransactionType
    shares: Decimal
    amount: Decimal = field(default_factory=lambda: Decimal("0"))
    txn_date: Optional[date] = None
    note: Optional[str] = None


class HoldingService:
    """
    Service for managing holdings and their transactions.

    Every mutation runs while holding the portfolio state, writes the
    holdings store, and only then swaps the new list into memory. A failed
    write raises PersistenceError and leaves memory untouched. A transaction
    is stored before its holding is re-based and removed again if the
    holdings write fails.
    """

    def __init__(
        self,
        state: PortfolioState,
        holdings_store: HoldingsStore,
        transaction_repo: TransactionRepository,
        clock: Callable[[], datetime] = now_market,
    ):
        self._state = state
        self._holdings_store = holdings_store
        self._transaction_repo = transaction_repo
        self._clock = clock

    def list_holdings(self) -> list[Holding]:
        return self._state.holdings

    def get_holding(self, holding_id: str) -> Holding:
        """Get holding by ID."""
        return self._find(self._state.holdings, holding_id)

    def add_holding(self, data: HoldingCreate) -> Holding:
        """
        Add a holding for a fund not yet tracked.

        Raises ValidationError for bad input and DuplicateHoldingError when
        the fund code is already held.
        """
        code = parse_fund_code(data.code)
        if code is None:
            raise ValidationError("Fund code must be 6 digits")
        name = (data.name or "").strip()
        if not name:
            raise ValidationError("Fund name is required")
        self._validate_amounts(data.shares, data.cost_price)

        now = self._clock()
        holding = Holding(
            holding_id=str(uuid.uuid4()),
            code=code,
            name=name,
            shares=calculator.round_decimal(Decimal(data.shares), calculator.SHARE_PLACES),
            cost_price=calculator.round_decimal(Decimal(data.cost_price), calculator.PRICE_PLACES),
            add_date=data.add_date or now.date(),
            updated_at=now,
        )

        with self._state.exclusive() as holdings:
            if any(h.code == code for h in holdings):
                raise DuplicateHoldingError(code)
            self._save(holdings + [holding])

        logger.info("Added holding %s (%s)", code, name)
        return holding

    def update_holding(self, holding_id: str, patch: HoldingUpdate) -> Holding:
        """Edit name, shares or cost price of a holding."""
        with self._state.exclusive() as holdings:
            holding = self._find(holdings, holding_id)

            name = holding.name
            if patch.name is not None:
                name = patch.name.strip()
                if not name:
                    raise ValidationError("Fund name is required")
            shares = holding.shares if patch.shares is None else Decimal(patch.shares)
            cost_price = holding.cost_price if patch.cost_price is None else Decimal(patch.cost_price)
            self._validate_amounts(shares, cost_price)

            updated = replace(
                holding,
                name=name,
                shares=calculator.round_decimal(shares, calculator.SHARE_PLACES),
                cost_price=calculator.round_decimal(cost_price, calculator.PRICE_PLACES),
                updated_at=self._clock(),
            )
            self._save([updated if h.holding_id == holding_id else h for h in holdings])

        return updated

    def delete_holding(self, holding_id: str) -> None:
        """Remove a holding and its transaction records."""
        with self._state.exclusive() as holdings:
            holding = self._find(holdings, holding_id)
            self._save([h for h in holdings if h.holding_id != holding_id])

        for txn in self._transaction_repo.list_all(holding_id):
            self._transaction_repo.delete(txn.txn_id)
        logger.info("Deleted holding %s", holding.code)

    def apply_transaction(self, data: TransactionCreate) -> tuple[Holding, Transaction]:
        """
        Record a buy or sell and re-base the holding.

        Returns the updated holding and the stored transaction.
        """
        try:
            txn_type = TransactionType(data.txn_type)
        except ValueError:
            raise ValidationError(f"Unknown transaction type: {data.txn_type}") from None
        shares = Decimal(data.shares)
        amount = Decimal(data.amount)
        if shares <= 0:
            raise ValidationError("Transaction shares must be greater than 0")
        if amount < 0:
            raise ValidationError("Transaction amount cannot be negative")

        now = self._clock()
        with self._state.exclusive() as holdings:
            holding = self._find(holdings, data.holding_id)
            transaction = Transaction(
                txn_id=str(uuid.uuid4()),
                holding_id=holding.holding_id,
                code=holding.code,
                txn_type=txn_type,
                shares=shares,
                amount=amount,
                txn_date=data.txn_date or now.date(),
                note=data.note,
                created_at=now,
            )
            updated = replace(calculator.apply_transaction(holding, transaction), updated_at=now)
            created = self._transaction_repo.create(transaction)
            try:
                self._save([updated if h.holding_id == holding.holding_id else h for h in holdings])
            except PersistenceError:
                self._transaction_repo.delete(created.txn_id)
                raise

        logger.info(
            "%s %s shares of %s; now holding %s",
            txn_type.value,
            shares,
            holding.code,
            updated.shares,
        )
        return updated, created

    def list_transactions(self, holding_id: Optional[str] = None) -> list[Transaction]:
        """List transactions, newest first."""
        return self._transaction_repo.list_all(holding_id)

    def delete_transaction(self, txn_id: str) -> None:
        """Delete a transaction record. The holding it re-based is not rewound."""
        if self._transaction_repo.get_by_id(txn_id) is None:
            raise NotFoundError("Transaction", txn_id)
        self._transaction_repo.delete(txn_id)

    def _save(self, holdings: list[Holding]) -> None:
        self._holdings_store.put(holdings)
        self._state.replace_holdings(holdings)

    @staticmethod
    def _find(holdings: list[Holding], holding_id: str) -> Holding:
        for holding in holdings:
            if holding.holding_id == holding_id:
                return holding
        raise NotFoundError("Holding", holding_id)

    @staticmethod
    def _validate_amounts(shares: Decimal, cost_price: Decimal) -> None:
        if shares is None or Decimal(shares) < 0:
            raise ValidationError("Shares cannot be negative")
        if cost_price is None or Decimal(cost_price) <= 0:
            raise ValidationError("Cost price must be greater than 0")
