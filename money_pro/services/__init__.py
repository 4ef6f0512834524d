"""Services package."""

from money_pro.services.storage import (
    AuditStorageInterface,
    BalanceStorageInterface,
    DuplicateError,
    FileKeyValueStore,
    InMemoryKeyValueStore,
    InvalidKeyError,
    KeyValueAuditStorage,
    KeyValueBalanceStorage,
    KeyValueStoreInterface,
    KeyValueTransactionStorage,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "BalanceStorageInterface",
    "DuplicateError",
    "FileKeyValueStore",
    "InMemoryKeyValueStore",
    "InvalidKeyError",
    "KeyValueAuditStorage",
    "KeyValueBalanceStorage",
    "KeyValueStoreInterface",
    "KeyValueTransactionStorage",
    "NotFoundError",
    "StorageError",
    "TransactionStorageInterface",
]
