"""Repository layer: protocols and SQLAlchemy implementations."""

from fundsync.repositories.protocols import (
    HoldingsStore,
    SettingsStore,
    TransactionRepository,
)

__all__ = [
    "HoldingsStore",
    "SettingsStore",
    "TransactionRepository",
]
