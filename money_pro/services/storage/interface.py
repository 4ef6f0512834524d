"""
Abstract Storage Interface

DESIGN DECISION: Two layers of storage interfaces.
1. A raw key-value store holding opaque blobs (bytes per key)
2. Collection storages (transactions, balances, audit log) that encode the
   whole collection into one key and overwrite it on every change

Business logic only sees the collection interfaces, so a key-value file
directory, an in-memory dict or a real database can back the same ledger.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from money_pro.models.audit import AuditEvent
from money_pro.models.ledger import Balance, Transaction


class KeyValueStoreInterface(ABC):
    """
    Abstract interface for a flat key-value blob store.

    Values are opaque bytes. A write replaces the whole value for its key.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """
        Read the blob stored under a key.

        Returns:
            The stored bytes, or None if the key has never been written
        """
        pass

    @abstractmethod
    def set(self, key: str, value: bytes) -> None:
        """
        Overwrite the blob stored under a key.

        Raises:
            StorageError: If the write fails
            InvalidKeyError: If the key is not storable
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if the key existed
        """
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """List all stored keys (sorted)."""
        pass


class TransactionStorageInterface(ABC):
    """Abstract interface for the transaction collection."""

    @abstractmethod
    def add_transaction(self, transaction: Transaction) -> Transaction:
        """
        Append a transaction and persist the collection.

        Raises:
            DuplicateError: If a transaction with the same ID exists
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def add_transactions(self, transactions: list[Transaction]) -> list[Transaction]:
        """Append several transactions with a single write."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        """Retrieve a transaction by ID, or None."""
        pass

    @abstractmethod
    def delete_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        """
        Remove a transaction and persist the collection.

        Returns:
            The removed transaction, or None if it did not exist
        """
        pass

    @abstractmethod
    def list_transactions(self) -> list[Transaction]:
        """All transactions in insertion order."""
        pass

    @abstractmethod
    def replace_all(self, transactions: list[Transaction]) -> None:
        """Replace the whole collection with a single write."""
        pass


class BalanceStorageInterface(ABC):
    """Abstract interface for the balance account collection."""

    @abstractmethod
    def add_balance(self, balance: Balance) -> Balance:
        """
        Append a balance account and persist the collection.

        Raises:
            DuplicateError: If an account with the same ID exists
        """
        pass

    @abstractmethod
    def get_balance(self, balance_id: UUID) -> Optional[Balance]:
        """Retrieve a balance account by ID, or None."""
        pass

    @abstractmethod
    def update_balance(self, balance: Balance) -> Balance:
        """
        Replace an existing account.

        Raises:
            NotFoundError: If the account doesn't exist
        """
        pass

    @abstractmethod
    def update_balances(self, balances: list[Balance]) -> list[Balance]:
        """
        Replace several existing accounts with a single write.

        Raises:
            NotFoundError: If any account doesn't exist (nothing is written)
        """
        pass

    @abstractmethod
    def delete_balance(self, balance_id: UUID) -> bool:
        """Remove an account. Returns True if it existed."""
        pass

    @abstractmethod
    def list_balances(self) -> list[Balance]:
        """All accounts in insertion order."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Events sharing a correlation ID, in chronological order."""
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Events for one entity, in chronological order."""
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """The most recent events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class InvalidKeyError(StorageError):
    """Key cannot be stored by the key-value backend."""
    pass
