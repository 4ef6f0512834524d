"""Shared fixtures."""

from decimal import Decimal

import pytest

from money_pro.audit import AuditLogger
from money_pro.config import get_settings
from money_pro.orchestrator import LedgerFlow
from money_pro.services.storage import (
    InMemoryKeyValueStore,
    KeyValueAuditStorage,
    KeyValueBalanceStorage,
    KeyValueTransactionStorage,
)
from money_pro.validation import LedgerValidator


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch, tmp_path):
    """Default settings for every test, never the real data directory."""
    monkeypatch.setenv("MONEY_PRO_STORAGE_DATA_DIR", str(tmp_path / "data"))
    for name in ("CURRENCY_SYMBOL", "RECENT_TRANSACTIONS_LIMIT", "TRANSFER_KEYWORD", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def audit_storage(store):
    return KeyValueAuditStorage(store)


@pytest.fixture
def ledger(store, audit_storage):
    balances = KeyValueBalanceStorage(store)
    return LedgerFlow(
        transaction_storage=KeyValueTransactionStorage(store),
        balance_storage=balances,
        validator=LedgerValidator(balances),
        audit_logger=AuditLogger(audit_storage),
    )


@pytest.fixture
def accounts(ledger):
    """A funded cheque account and an empty savings account."""
    cheque = ledger.add_balance("Cheque", Decimal("1000"))
    savings = ledger.add_balance("Savings", Decimal("0"))
    return cheque, savings
