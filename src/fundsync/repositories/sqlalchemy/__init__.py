"""SQLAlchemy repository implementations."""

from fundsync.repositories.sqlalchemy.database import (
    get_engine,
    get_session_factory,
    init_db,
    reset_database,
    Base,
)
from fundsync.repositories.sqlalchemy.holdings_store import SqlAlchemyHoldingsStore
from fundsync.repositories.sqlalchemy.settings_store import SqlAlchemySettingsStore
from fundsync.repositories.sqlalchemy.transaction_repo import SqlAlchemyTransactionRepository

__all__ = [
    "get_engine",
    "get_session_factory",
    "init_db",
    "reset_database",
    "Base",
    "SqlAlchemyHoldingsStore",
    "SqlAlchemySettingsStore",
    "SqlAlchemyTransactionRepository",
]
