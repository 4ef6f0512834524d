"""
Key-Value Collection Storages

Each collection (transactions, balances, audit log) lives under one key as a
JSON array. The collection is decoded once when the storage is created and
kept in memory; every mutation re-encodes the whole collection and overwrites
the key.

IMPORTANT: A blob that cannot be decoded yields an EMPTY collection.
The failure is logged and kept in `load_error`; it is never raised.
The in-memory collection only changes after the write succeeded.
"""

from typing import Generic, Optional, TypeVar
from uuid import UUID

import structlog
from pydantic import BaseModel, TypeAdapter, ValidationError

from money_pro.models.audit import AuditEvent
from money_pro.models.ledger import Balance, Transaction
from money_pro.services.storage.interface import (
    AuditStorageInterface,
    BalanceStorageInterface,
    DuplicateError,
    KeyValueStoreInterface,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)
from money_pro.services.storage.key_value import validate_key


ItemT = TypeVar("ItemT", bound=BaseModel)

logger = structlog.get_logger(__name__)


class KeyValueCollection(Generic[ItemT]):
    """A list of pydantic records encoded as one blob under one key."""

    def __init__(
        self,
        store: KeyValueStoreInterface,
        key: str,
        item_type: type,
    ):
        self._store = store
        self._key = validate_key(key)
        self._adapter = TypeAdapter(list[item_type])
        self._items: list[ItemT] = []
        self.load_error: Optional[str] = None
        self.reload()

    @property
    def key(self) -> str:
        return self._key

    def reload(self) -> None:
        """Re-read the collection from the store."""
        self.load_error = None
        raw = self._store.get(self._key)
        if raw is None:
            self._items = []
            return

        try:
            self._items = self._adapter.validate_json(raw)
        except ValidationError as e:
            self._items = []
            self.load_error = str(e)
            logger.warning(
                "collection_decode_failed",
                key=self._key,
                error_count=e.error_count(),
            )

    def _save(self, items: list[ItemT]) -> None:
        encoded = self._adapter.dump_json(items)
        self._store.set(self._key, encoded)
        self._items = list(items)

    def _items_copy(self) -> list[ItemT]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)


class KeyValueTransactionStorage(KeyValueCollection[Transaction], TransactionStorageInterface):
    """Transactions stored under one key (default 'SavedTransactions')."""

    def __init__(self, store: KeyValueStoreInterface, key: str = "SavedTransactions"):
        super().__init__(store, key, Transaction)

    def add_transaction(self, transaction: Transaction) -> Transaction:
        self.add_transactions([transaction])
        return transaction

    def add_transactions(self, transactions: list[Transaction]) -> list[Transaction]:
        existing = {tx.id for tx in self._items}
        for tx in transactions:
            if tx.id in existing:
                raise DuplicateError(f"Transaction already exists: {tx.id}")
            existing.add(tx.id)

        self._save(self._items + list(transactions))
        return transactions

    def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        for tx in self._items:
            if tx.id == transaction_id:
                return tx
        return None

    def delete_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        for idx, tx in enumerate(self._items):
            if tx.id == transaction_id:
                remaining = self._items[:idx] + self._items[idx + 1:]
                self._save(remaining)
                return tx
        return None

    def list_transactions(self) -> list[Transaction]:
        return self._items_copy()

    def replace_all(self, transactions: list[Transaction]) -> None:
        ids = [tx.id for tx in transactions]
        if len(ids) != len(set(ids)):
            raise DuplicateError("Transaction IDs must be unique")
        self._save(list(transactions))


class KeyValueBalanceStorage(KeyValueCollection[Balance], BalanceStorageInterface):
    """Balance accounts stored under one key (default 'SavedBalances')."""

    def __init__(self, store: KeyValueStoreInterface, key: str = "SavedBalances"):
        super().__init__(store, key, Balance)

    def add_balance(self, balance: Balance) -> Balance:
        if self.get_balance(balance.id) is not None:
            raise DuplicateError(f"Balance account already exists: {balance.id}")
        self._save(self._items + [balance])
        return balance

    def get_balance(self, balance_id: UUID) -> Optional[Balance]:
        for balance in self._items:
            if balance.id == balance_id:
                return balance
        return None

    def update_balance(self, balance: Balance) -> Balance:
        self.update_balances([balance])
        return balance

    def update_balances(self, balances: list[Balance]) -> list[Balance]:
        replacements = {b.id: b for b in balances}
        known = {b.id for b in self._items}
        missing = [str(bid) for bid in replacements if bid not in known]
        if missing:
            raise NotFoundError(f"Balance account not found: {', '.join(missing)}")

        updated = [replacements.get(b.id, b) for b in self._items]
        self._save(updated)
        return balances

    def delete_balance(self, balance_id: UUID) -> bool:
        remaining = [b for b in self._items if b.id != balance_id]
        if len(remaining) == len(self._items):
            return False
        self._save(remaining)
        return True

    def list_balances(self) -> list[Balance]:
        return self._items_copy()


class KeyValueAuditStorage(KeyValueCollection[AuditEvent], AuditStorageInterface):
    """
    Audit log stored under one key (default 'AuditLog').

    Only the newest `max_events` events are kept.
    """

    def __init__(
        self,
        store: KeyValueStoreInterface,
        key: str = "AuditLog",
        max_events: int = 5000,
    ):
        self._max_events = max_events
        super().__init__(store, key, AuditEvent)

    def append_event(self, event: AuditEvent) -> bool:
        events = self._items + [event]
        if len(events) > self._max_events:
            events = events[-self._max_events:]
        try:
            self._save(events)
        except StorageError as e:
            logger.warning(
                "audit_event_not_persisted",
                event_id=str(event.event_id),
                error=str(e),
            )
            return False
        return True

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._items if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._items
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._items, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
