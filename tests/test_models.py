"""
Tests for Money Pro

Test strategy:
1. Unit tests for individual components (models, validators, storage)
2. Integration tests for flows (with in-memory or tmp_path storage)
3. No real user data touched (never the default data directory)
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from money_pro.models.ledger import (
    Balance,
    LedgerSummary,
    Transaction,
    TransactionDraft,
    TransactionFilter,
    TransactionQuery,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)
from money_pro.models.budget import (
    Budget,
    BudgetItem,
    BudgetPeriod,
    BudgetType,
    ItemType,
)
from money_pro.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestLedgerModels:
    """Tests for transaction and balance models."""

    def test_transaction_creation(self):
        """Test Transaction model creation."""
        account_id = uuid4()
        tx = Transaction(
            title="Groceries",
            amount=Decimal("250.00"),
            type=TransactionType.EXPENSE,
            balance_account_id=account_id,
        )
        assert tx.title == "Groceries"
        assert tx.balance_account_id == account_id
        assert tx.is_transfer is False
        assert tx.is_income is False

    def test_transaction_strips_whitespace(self):
        """Test that whitespace is stripped from the title."""
        tx = Transaction(
            title="  Salary  ",
            amount=Decimal("100"),
            type=TransactionType.INCOME,
            balance_account_id=uuid4(),
        )
        assert tx.title == "Salary"

    def test_transaction_date_stored_as_naive_utc(self):
        """Aware dates are converted to UTC and made naive."""
        tx = Transaction(
            title="Coffee",
            amount=Decimal("3"),
            type=TransactionType.EXPENSE,
            balance_account_id=uuid4(),
            date=datetime(2024, 3, 1, 14, 30, tzinfo=timezone(timedelta(hours=2))),
        )
        assert tx.date == datetime(2024, 3, 1, 12, 30)
        assert tx.date.tzinfo is None

    def test_transaction_rejects_empty_title(self):
        """Test that a blank title is rejected."""
        with pytest.raises(ValueError):
            Transaction(
                title="   ",
                amount=Decimal("1"),
                type=TransactionType.EXPENSE,
                balance_account_id=uuid4(),
            )

    def test_balance_delta_income(self):
        """Income adds its absolute amount."""
        tx = Transaction(
            title="Salary",
            amount=Decimal("1000"),
            type=TransactionType.INCOME,
            balance_account_id=uuid4(),
        )
        assert tx.balance_delta == Decimal("1000")

    def test_balance_delta_expense_ignores_sign(self):
        """Expenses subtract their magnitude whatever sign was stored."""
        positive = Transaction(
            title="Rent",
            amount=Decimal("500"),
            type=TransactionType.EXPENSE,
            balance_account_id=uuid4(),
        )
        negative = Transaction(
            title="Transfer to Savings",
            amount=Decimal("-500"),
            type=TransactionType.EXPENSE,
            balance_account_id=uuid4(),
            transfer_id=uuid4(),
        )
        assert positive.balance_delta == Decimal("-500")
        assert negative.balance_delta == Decimal("-500")
        assert negative.is_transfer is True

    def test_balance_defaults_to_zero(self):
        """Test Balance default amount."""
        balance = Balance(name="Cash")
        assert balance.amount == Decimal("0")

    def test_balance_with_amount_returns_copy(self):
        """with_amount leaves the original untouched."""
        balance = Balance(name="Cheque", amount=Decimal("10"))
        updated = balance.with_amount(Decimal("25"))
        assert updated.amount == Decimal("25")
        assert updated.id == balance.id
        assert balance.amount == Decimal("10")

    def test_draft_keeps_amount_as_text(self):
        """Numeric amounts on a draft are converted to text."""
        draft = TransactionDraft(title="Coffee", amount=Decimal("3.50"))
        assert draft.amount == "3.50"
        assert draft.type == TransactionType.EXPENSE

        draft = TransactionDraft(title="Coffee", amount=12)
        assert draft.amount == "12"

    def test_ledger_summary_net(self):
        """Net is income minus expenses."""
        summary = LedgerSummary(
            total_income=Decimal("300"),
            total_expenses=Decimal("120.50"),
        )
        assert summary.net == Decimal("179.50")
        assert summary.model_dump()["net"] == Decimal("179.50")


class TestTransactionFilter:
    """Tests for the transaction filter predicate."""

    def _tx(self, **overrides):
        fields = {
            "title": "Groceries at Market",
            "amount": Decimal("50"),
            "type": TransactionType.EXPENSE,
            "balance_account_id": uuid4(),
            "date": datetime(2024, 3, 15, 18, 30),
        }
        fields.update(overrides)
        return Transaction(**fields)

    def test_empty_filter_matches_everything(self):
        """Test that a filter with no criteria matches."""
        assert TransactionFilter().matches(self._tx())
        assert TransactionFilter().matches(self._tx(transfer_id=uuid4()))

    def test_title_match_is_case_insensitive(self):
        """Title substring match ignores case."""
        assert TransactionFilter(title_contains="MARKET").matches(self._tx())
        assert not TransactionFilter(title_contains="rent").matches(self._tx())

    def test_date_range_is_inclusive(self):
        """Both ends of the range match on the calendar day."""
        tx = self._tx()
        assert TransactionFilter(date_from=date(2024, 3, 15), date_to=date(2024, 3, 15)).matches(tx)
        assert not TransactionFilter(date_from=date(2024, 3, 16)).matches(tx)
        assert not TransactionFilter(date_to=date(2024, 3, 14)).matches(tx)

    def test_transfer_flags(self):
        """Transfers can be excluded or selected on their own."""
        transfer = self._tx(transfer_id=uuid4())
        plain = self._tx()
        assert not TransactionFilter(include_transfers=False).matches(transfer)
        assert TransactionFilter(include_transfers=False).matches(plain)
        assert TransactionFilter(transfers_only=True).matches(transfer)
        assert not TransactionFilter(transfers_only=True).matches(plain)

    def test_type_and_account(self):
        """Type and account criteria must both hold."""
        account_id = uuid4()
        tx = self._tx(balance_account_id=account_id)
        assert TransactionFilter(type=TransactionType.EXPENSE, balance_account_id=account_id).matches(tx)
        assert not TransactionFilter(type=TransactionType.INCOME).matches(tx)
        assert not TransactionFilter(balance_account_id=uuid4()).matches(tx)

    def test_reversed_date_range_rejected(self):
        """Test that date_to cannot be before date_from."""
        with pytest.raises(ValueError, match="date_to cannot be before date_from"):
            TransactionFilter(date_from=date(2024, 3, 2), date_to=date(2024, 3, 1))

    def test_transfers_only_requires_include(self):
        """Test that the two transfer flags cannot contradict each other."""
        with pytest.raises(ValueError, match="transfers_only requires include_transfers"):
            TransactionFilter(transfers_only=True, include_transfers=False)


class TestBudgetModels:
    """Tests for budget models."""

    def test_budget_item_rejects_negative_amount(self):
        """Test that negative planned amounts are rejected."""
        with pytest.raises(ValueError):
            BudgetItem(name="Rent", amount=Decimal("-1"), category="Housing")

    def test_budget_totals(self):
        """total_amount ignores item type; typed totals don't."""
        budget = Budget(
            name="March",
            items=[
                BudgetItem(name="Salary", amount=Decimal("1000"), type=ItemType.INCOME, category="Work"),
                BudgetItem(name="Rent", amount=Decimal("600"), category="Housing"),
                BudgetItem(name="Food", amount=Decimal("150"), category="Living"),
            ],
        )
        assert budget.item_count == 3
        assert budget.total_amount == Decimal("1750")
        assert budget.income_total == Decimal("1000")
        assert budget.expense_total == Decimal("750")
        assert budget.net_amount == Decimal("250")

    def test_budget_defaults(self):
        """Test Budget defaults."""
        budget = Budget(name="Plan")
        assert budget.type == BudgetType.SPENDING
        assert budget.period == BudgetPeriod.MONTHLY
        assert budget.items == []
        assert budget.total_amount == Decimal("0")

    def test_budget_date_validation(self):
        """Test that end_date cannot be before start_date."""
        with pytest.raises(ValueError, match="Budget end date cannot be before start date"):
            Budget(
                name="Broken",
                start_date=date(2024, 3, 10),
                end_date=date(2024, 3, 1),
            )


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.BALANCE_ADDED,
            description="Balance added",
        )
        assert event.event_type == AuditEventType.BALANCE_ADDED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_RECORDED,
            description="Transaction recorded",
            details={"title": "Groceries", "amount": "50"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "transaction_recorded"
        assert log_dict["details"]["title"] == "Groceries"
        assert log_dict["entity_id"] is None

    def test_audit_event_builder_transfer_completed(self):
        """Test AuditEventBuilder.transfer_completed."""
        transfer_id = uuid4()
        correlation_id = uuid4()

        event = AuditEventBuilder.transfer_completed(
            transfer_id=transfer_id,
            source_id=uuid4(),
            destination_id=uuid4(),
            amount=Decimal("75"),
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.TRANSFER_COMPLETED
        assert event.entity_type == "transfer"
        assert event.entity_id == transfer_id
        assert event.correlation_id == correlation_id

    def test_audit_event_builder_save_failed_is_error(self):
        """Test AuditEventBuilder.save_failed severity."""
        event = AuditEventBuilder.save_failed(key="SavedBalances", error_message="disk full")
        assert event.event_type == AuditEventType.SAVE_FAILED
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "disk full"

    def test_audit_event_builder_decode_failed_is_warning(self):
        """Test AuditEventBuilder.collection_decode_failed severity."""
        event = AuditEventBuilder.collection_decode_failed(
            key="SavedTransactions",
            error_message="bad json",
        )
        assert event.event_type == AuditEventType.COLLECTION_DECODE_FAILED
        assert event.severity == AuditSeverity.WARNING


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            subject="transaction",
            schema_valid=False,
            semantic_valid=False,
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="Amount is required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            subject="transfer",
            schema_valid=True,
            semantic_valid=True,
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="overdraft",
                    message="Transfer leaves Cash at R-10.00",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0

    def test_validation_result_rejects_unknown_subject(self):
        """Test subject pattern."""
        with pytest.raises(ValueError):
            ValidationResult(
                subject="bill",
                schema_valid=True,
                semantic_valid=True,
                is_valid=True,
            )


class TestTransactionQuery:
    """Tests for the structured query model."""

    def test_query_defaults(self):
        """Test TransactionQuery defaults."""
        query = TransactionQuery()
        assert query.query_type == "list"
        assert query.limit == 10
        assert query.filter.include_transfers is True

    def test_query_rejects_unknown_aggregation(self):
        """Test aggregation pattern."""
        with pytest.raises(ValueError):
            TransactionQuery(query_type="aggregate", aggregation_type="median")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
