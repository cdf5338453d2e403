"""SQLAlchemy ORM model definitions."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
    Enum as SqlEnum,
)

from fundsync.repositories.sqlalchemy.database import Base
from fundsync.domain.models.enums import TransactionType


class HoldingORM(Base):
    """SQLAlchemy model for Holding."""

    __tablename__ = "holdings"

    holding_id = Column(String(36), primary_key=True)
    position = Column(Integer, nullable=False, default=0)
    code = Column(String(6), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    shares = Column(Numeric(precision=18, scale=2), nullable=False, default=Decimal("0"))
    cost_price = Column(Numeric(precision=18, scale=4), nullable=False)
    last_value = Column(Numeric(precision=18, scale=4), nullable=True)
    day_change = Column(Numeric(precision=10, scale=4), nullable=True)
    valuation_time = Column(String(32), nullable=True)
    add_date = Column(Date, nullable=True)
    updated_at = Column(DateTime, nullable=True, default=datetime.utcnow)


class TransactionORM(Base):
    """SQLAlchemy model for Transaction."""

    __tablename__ = "transactions"

    txn_id = Column(String(36), primary_key=True)
    holding_id = Column(String(36), nullable=False, index=True)
    code = Column(String(6), nullable=False)
    txn_type = Column(SqlEnum(TransactionType), nullable=False)
    shares = Column(Numeric(precision=18, scale=2), nullable=False)
    amount = Column(Numeric(precision=18, scale=2), nullable=False, default=Decimal("0"))
    txn_date = Column(Date, nullable=True)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class SettingORM(Base):
    """SQLAlchemy model for a single user setting (JSON-encoded value)."""

    __tablename__ = "settings"

    key = Column(String(64), primary_key=True)
    value = Column(Text, nullable=True)
