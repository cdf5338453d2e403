"""SQLAlchemy implementation of TransactionRepository."""

from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fundsync.core.exceptions import PersistenceError
from fundsync.domain.models import Transaction
from fundsync.repositories.sqlalchemy.orm_models import TransactionORM


class SqlAlchemyTransactionRepository:
    """SQLAlchemy-backed transaction repository."""

    def __init__(self, db: Session):
        self._db = db

    def create(self, transaction: Transaction) -> Transaction:
        """Persist a new transaction."""
        orm_txn = TransactionORM(
            txn_id=transaction.txn_id,
            holding_id=transaction.holding_id,
            code=transaction.code,
            txn_type=transaction.txn_type,
            shares=transaction.shares,
            amount=transaction.amount,
            txn_date=transaction.txn_date,
            note=transaction.note,
            created_at=transaction.created_at,
        )
        try:
            self._db.add(orm_txn)
            self._db.commit()
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise PersistenceError(f"Failed to save transaction: {exc}") from exc
        self._db.refresh(orm_txn)
        return self._to_domain(orm_txn)

    def get_by_id(self, txn_id: str) -> Optional[Transaction]:
        """Retrieve transaction by ID."""
        orm_txn = self._db.get(TransactionORM, txn_id)
        return self._to_domain(orm_txn) if orm_txn else None

    def list_all(self, holding_id: Optional[str] = None) -> list[Transaction]:
        """List transactions, newest first, optionally for one holding."""
        query = self._db.query(TransactionORM)
        if holding_id is not None:
            query = query.filter(TransactionORM.holding_id == holding_id)
        orm_txns = query.order_by(
            TransactionORM.txn_date.desc(),
            TransactionORM.created_at.desc(),
        ).all()
        return [self._to_domain(t) for t in orm_txns]

    def delete(self, txn_id: str) -> None:
        """Delete a transaction record."""
        try:
            self._db.query(TransactionORM).filter(TransactionORM.txn_id == txn_id).delete()
            self._db.commit()
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise PersistenceError(f"Failed to delete transaction: {exc}") from exc

    @staticmethod
    def _to_domain(orm: TransactionORM) -> Transaction:
        """Convert ORM transaction to domain model."""
        return Transaction(
            txn_id=orm.txn_id,
            holding_id=orm.holding_id,
            code=orm.code,
            txn_type=orm.txn_type,
            shares=Decimal(str(orm.shares)),
            amount=Decimal(str(orm.amount)) if orm.amount is not None else Decimal("0"),
            txn_date=orm.txn_date,
            note=orm.note,
            created_at=orm.created_at,
        )
