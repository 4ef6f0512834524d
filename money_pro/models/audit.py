"""
Audit Models for Money Pro

Every ledger mutation is recorded as an audit event:
1. Traceability of how each balance reached its amount
2. Debugging information when a stored blob could not be read
3. Ability to reconstruct history after a transaction was deleted

DESIGN DECISION: Audit logs are append-only. Events are never modified.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Balance accounts
    BALANCE_ADDED = "balance_added"
    BALANCE_DELETED = "balance_deleted"
    BALANCE_ADJUSTED = "balance_adjusted"

    # Transactions
    TRANSACTION_RECORDED = "transaction_recorded"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSFER_COMPLETED = "transfer_completed"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # Budgets
    BUDGET_CREATED = "budget_created"
    BUDGET_DELETED = "budget_deleted"
    BUDGET_ITEMS_CHANGED = "budget_items_changed"

    # Storage
    COLLECTION_DECODE_FAILED = "collection_decode_failed"
    SAVE_FAILED = "save_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of the audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'balance', 'budget')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., both legs of a transfer)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.balance_added(balance_id, name, amount)
        event = AuditEventBuilder.transfer_completed(transfer_id, ...)
    """

    @staticmethod
    def balance_added(
        balance_id: UUID,
        name: str,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_ADDED,
            entity_type="balance",
            entity_id=balance_id,
            correlation_id=correlation_id,
            description=f"Balance account added: {name}",
            details={"name": name, "amount": str(amount)},
            is_user_action=True,
        )

    @staticmethod
    def balance_deleted(
        balance_id: UUID,
        name: str,
        orphaned_transactions: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_DELETED,
            entity_type="balance",
            entity_id=balance_id,
            correlation_id=correlation_id,
            description=f"Balance account deleted: {name}",
            details={
                "name": name,
                "orphaned_transactions": orphaned_transactions,
            },
            is_user_action=True,
        )

    @staticmethod
    def balance_adjusted(
        balance_id: UUID,
        previous_amount: Decimal,
        new_amount: Decimal,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_ADJUSTED,
            entity_type="balance",
            entity_id=balance_id,
            correlation_id=correlation_id,
            description=f"Balance adjusted ({reason})",
            details={
                "previous_amount": str(previous_amount),
                "new_amount": str(new_amount),
                "reason": reason,
            },
        )

    @staticmethod
    def transaction_recorded(
        transaction_id: UUID,
        title: str,
        amount: Decimal,
        transaction_type: str,
        balance_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_RECORDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction recorded: {title}",
            details={
                "amount": str(amount),
                "type": transaction_type,
                "balance_account_id": str(balance_id),
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: UUID,
        title: str,
        balance_reverted: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction deleted: {title}",
            details={"balance_reverted": balance_reverted},
            is_user_action=True,
        )

    @staticmethod
    def transfer_completed(
        transfer_id: UUID,
        source_id: UUID,
        destination_id: UUID,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_COMPLETED,
            entity_type="transfer",
            entity_id=transfer_id,
            correlation_id=correlation_id,
            description=f"Transferred {amount} between accounts",
            details={
                "source_id": str(source_id),
                "destination_id": str(destination_id),
                "amount": str(amount),
            },
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        subject: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=subject,
            correlation_id=correlation_id,
            description=f"{subject.capitalize()} validation failed",
            details={"issues": issues},
        )

    @staticmethod
    def budget_created(
        budget_id: UUID,
        name: str,
        budget_type: str,
        period: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_CREATED,
            entity_type="budget",
            entity_id=budget_id,
            description=f"Budget created: {name}",
            details={"type": budget_type, "period": period},
            is_user_action=True,
        )

    @staticmethod
    def budget_deleted(budget_id: UUID, name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_DELETED,
            entity_type="budget",
            entity_id=budget_id,
            description=f"Budget deleted: {name}",
            is_user_action=True,
        )

    @staticmethod
    def budget_items_changed(
        budget_id: UUID,
        item_count: int,
        total_amount: Decimal,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_ITEMS_CHANGED,
            entity_type="budget",
            entity_id=budget_id,
            description=f"Budget now has {item_count} item(s)",
            details={
                "item_count": item_count,
                "total_amount": str(total_amount),
            },
            is_user_action=True,
        )

    @staticmethod
    def collection_decode_failed(
        key: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COLLECTION_DECODE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="collection",
            description=f"Stored collection '{key}' could not be decoded; starting empty",
            details={"key": key},
            error_message=error_message,
        )

    @staticmethod
    def save_failed(
        key: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="collection",
            correlation_id=correlation_id,
            description=f"Failed to save collection '{key}'",
            details={"key": key},
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"System error: {error_type}",
            details=details or {},
            error_code=error_type,
            error_message=error_message,
        )
