"""Repository protocol definitions (interfaces)."""

from fundsync.repositories.protocols.holdings_store import HoldingsStore
from fundsync.repositories.protocols.settings_store import SettingsStore
from fundsync.repositories.protocols.transaction_repo import TransactionRepository

__all__ = [
    "HoldingsStore",
    "SettingsStore",
    "TransactionRepository",
]
