"""Transaction repository protocol."""

from typing import Optional, Protocol

from fundsync.domain.models import Transaction


class TransactionRepository(Protocol):
    """Interface for buy/sell transaction records."""

    def create(self, transaction: Transaction) -> Transaction:
        """Persist a new transaction."""
        ...

    def get_by_id(self, txn_id: str) -> Optional[Transaction]:
        """Retrieve transaction by ID."""
        ...

    def list_all(self, holding_id: Optional[str] = None) -> list[Transaction]:
        """List transactions, newest first, optionally for one holding."""
        ...

    def delete(self, txn_id: str) -> None:
        """Delete a transaction record."""
        ...
