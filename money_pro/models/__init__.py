"""Data models package."""

from money_pro.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from money_pro.models.budget import (
    Budget,
    BudgetItem,
    BudgetPeriod,
    BudgetType,
    ItemFrequency,
    ItemType,
)
from money_pro.models.ledger import (
    Balance,
    LedgerSummary,
    QueryResult,
    Transaction,
    TransactionDraft,
    TransactionFilter,
    TransactionQuery,
    TransactionType,
    TransferRequest,
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    # Ledger
    "Balance",
    "LedgerSummary",
    "QueryResult",
    "Transaction",
    "TransactionDraft",
    "TransactionFilter",
    "TransactionQuery",
    "TransactionType",
    "TransferRequest",
    "ValidationIssue",
    "ValidationResult",
    # Budgets
    "Budget",
    "BudgetItem",
    "BudgetPeriod",
    "BudgetType",
    "ItemFrequency",
    "ItemType",
    # Audit
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
