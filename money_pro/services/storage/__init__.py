"""
Storage Services Package

Provides abstract interfaces and key-value backed implementations for the
transaction, balance and audit collections.
"""

from money_pro.services.storage.interface import (
    AuditStorageInterface,
    BalanceStorageInterface,
    DuplicateError,
    InvalidKeyError,
    KeyValueStoreInterface,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)
from money_pro.services.storage.key_value import (
    FileKeyValueStore,
    InMemoryKeyValueStore,
)
from money_pro.services.storage.collection_storage import (
    KeyValueAuditStorage,
    KeyValueBalanceStorage,
    KeyValueCollection,
    KeyValueTransactionStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BalanceStorageInterface",
    "KeyValueStoreInterface",
    "TransactionStorageInterface",
    # Exceptions
    "DuplicateError",
    "InvalidKeyError",
    "NotFoundError",
    "StorageError",
    # Key-value implementations
    "FileKeyValueStore",
    "InMemoryKeyValueStore",
    "KeyValueAuditStorage",
    "KeyValueBalanceStorage",
    "KeyValueCollection",
    "KeyValueTransactionStorage",
]
