"""
Tests for the query executor.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from money_pro.models.ledger import (
    Balance,
    Transaction,
    TransactionFilter,
    TransactionQuery,
    TransactionType,
)
from money_pro.queries import QueryExecutor, newest_first
from money_pro.services.storage import (
    InMemoryKeyValueStore,
    KeyValueBalanceStorage,
    KeyValueTransactionStorage,
)


CHEQUE_ID = uuid4()
SAVINGS_ID = uuid4()
TRANSFER_ID = uuid4()


@pytest.fixture
def executor():
    store = InMemoryKeyValueStore()
    balances = KeyValueBalanceStorage(store)
    balances.add_balance(Balance(id=CHEQUE_ID, name="Cheque", amount=Decimal("700")))
    balances.add_balance(Balance(id=SAVINGS_ID, name="Savings", amount=Decimal("300")))

    transactions = KeyValueTransactionStorage(store)
    transactions.add_transactions([
        Transaction(
            title="Salary", amount=Decimal("1000"), type=TransactionType.INCOME,
            balance_account_id=CHEQUE_ID, date=datetime(2024, 1, 25, 9, 0),
        ),
        Transaction(
            title="Rent", amount=Decimal("400"), type=TransactionType.EXPENSE,
            balance_account_id=CHEQUE_ID, date=datetime(2024, 2, 1, 8, 0),
        ),
        Transaction(
            title="Groceries", amount=Decimal("100"), type=TransactionType.EXPENSE,
            balance_account_id=CHEQUE_ID, date=datetime(2024, 2, 10, 17, 0),
        ),
        Transaction(
            title="Transfer to Savings", amount=Decimal("-300"), type=TransactionType.EXPENSE,
            balance_account_id=CHEQUE_ID, date=datetime(2024, 2, 15, 12, 0),
            transfer_id=TRANSFER_ID,
        ),
        Transaction(
            title="Transfer from Cheque", amount=Decimal("300"), type=TransactionType.INCOME,
            balance_account_id=SAVINGS_ID, date=datetime(2024, 2, 15, 12, 0),
            transfer_id=TRANSFER_ID,
        ),
        Transaction(
            title="Coffee", amount=Decimal("4.50"), type=TransactionType.EXPENSE,
            balance_account_id=CHEQUE_ID, date=datetime(2023, 12, 31, 10, 0),
        ),
    ])
    return QueryExecutor(transactions, balances)


def titles(transactions):
    return [tx.title for tx in transactions]


class TestViews:
    """Tests for the list views."""

    def test_list_newest_first(self, executor):
        """Test transactions are ordered newest first."""
        assert titles(executor.list_transactions()) == [
            "Transfer to Savings",
            "Transfer from Cheque",
            "Groceries",
            "Rent",
            "Salary",
            "Coffee",
        ]

    def test_limit_and_offset(self, executor):
        """Test paging through the list."""
        assert titles(executor.list_transactions(limit=2, offset=2)) == ["Groceries", "Rent"]

    def test_recent_default_limit(self, executor):
        """Test the recent view uses the configured limit."""
        assert len(executor.recent_transactions()) == 5
        assert len(executor.recent_transactions(limit=1)) == 1

    def test_recent_limit_from_environment(self, executor, monkeypatch):
        """Test the recent view limit can be configured."""
        from money_pro.config import get_settings

        monkeypatch.setenv("RECENT_TRANSACTIONS_LIMIT", "2")
        get_settings.cache_clear()
        assert len(executor.recent_transactions()) == 2

    def test_transfer_legs(self, executor):
        """Only the outgoing leg of each transfer is listed."""
        assert titles(executor.transfer_legs()) == ["Transfer to Savings"]

    def test_non_transfer_transactions(self, executor):
        """Incoming legs stay in the general list."""
        assert "Transfer to Savings" not in titles(executor.non_transfer_transactions())
        assert "Transfer from Cheque" in titles(executor.non_transfer_transactions())

    def test_transactions_for_balance(self, executor):
        """Test the per-account history."""
        assert titles(executor.transactions_for_balance(SAVINGS_ID)) == ["Transfer from Cheque"]

    def test_filter_by_month(self, executor):
        """Test a date-range filter."""
        february = TransactionFilter(
            date_from=date(2024, 2, 1),
            date_to=date(2024, 2, 29),
            include_transfers=False,
        )
        assert titles(executor.list_transactions(february)) == ["Groceries", "Rent"]

    def test_newest_first_is_stable(self):
        """Equal dates keep their original order."""
        when = datetime(2024, 1, 1)
        a = Transaction(title="A", amount=Decimal("1"), type=TransactionType.INCOME,
                        balance_account_id=uuid4(), date=when)
        b = Transaction(title="B", amount=Decimal("1"), type=TransactionType.INCOME,
                        balance_account_id=uuid4(), date=when)
        assert titles(newest_first([a, b])) == ["A", "B"]


class TestSummary:
    """Tests for the headline aggregates."""

    def test_total_balance(self, executor):
        """Test the sum of all accounts."""
        assert executor.total_balance() == Decimal("1000")

    def test_summary_without_transfers(self, executor):
        """Test transfers are excluded by default."""
        summary = executor.summarize()
        assert summary.total_income == Decimal("1000")
        assert summary.total_expenses == Decimal("504.50")
        assert summary.net == Decimal("495.50")
        assert summary.transaction_count == 4

    def test_summary_with_transfers(self, executor):
        """Expense totals use absolute amounts."""
        summary = executor.summarize(include_transfers=True)
        assert summary.total_income == Decimal("1300")
        assert summary.total_expenses == Decimal("804.50")
        assert summary.include_transfers is True

    def test_total_balance_without_balance_storage(self):
        """Test the executor works without balances."""
        executor = QueryExecutor(KeyValueTransactionStorage(InMemoryKeyValueStore()))
        assert executor.total_balance() == Decimal("0")
        assert executor.summarize().transaction_count == 0


class TestExecute:
    """Tests for structured queries."""

    def test_list_query(self, executor):
        """Test a list query returns serialisable rows."""
        result = executor.execute(TransactionQuery(
            filter=TransactionFilter(title_contains="rent"),
        ))
        assert result.success is True
        assert result.data_found is True
        assert result.result_count == 1
        assert result.results[0]["title"] == "Rent"
        assert result.results[0]["amount"] == "400"
        assert "title contains: rent" in result.query_description

    def test_sum_of_expenses(self, executor):
        """Test sum aggregate over absolute amounts."""
        result = executor.execute(TransactionQuery(
            query_type="aggregate",
            aggregation_type="sum",
            filter=TransactionFilter(type=TransactionType.EXPENSE),
        ))
        assert result.aggregation_result["total_amount"] == Decimal("804.50")
        assert result.aggregation_result["transaction_count"] == 4

    @pytest.mark.parametrize("aggregation,key,expected", [
        ("count", "count", 6),
        ("min", "minimum_amount", Decimal("4.50")),
        ("max", "maximum_amount", Decimal("1000")),
    ])
    def test_other_aggregates(self, executor, aggregation, key, expected):
        """Test count, min and max."""
        result = executor.execute(TransactionQuery(
            query_type="aggregate",
            aggregation_type=aggregation,
        ))
        assert result.aggregation_result[key] == expected

    def test_average(self, executor):
        """Test the average aggregate."""
        result = executor.execute(TransactionQuery(
            query_type="aggregate",
            aggregation_type="average",
            filter=TransactionFilter(title_contains="Transfer"),
        ))
        assert result.aggregation_result["average_amount"] == Decimal("300")

    def test_grouped_by_month(self, executor):
        """Test a grouped breakdown."""
        result = executor.execute(TransactionQuery(
            query_type="aggregate",
            aggregation_type="sum",
            group_by="month",
            filter=TransactionFilter(type=TransactionType.EXPENSE, include_transfers=False),
        ))
        assert result.aggregation_result["breakdown"] == {
            "2023-12": Decimal("4.50"),
            "2024-02": Decimal("500"),
        }
        assert result.query_description.endswith("grouped by month")

    def test_grouped_by_type(self, executor):
        """Test grouping by transaction type."""
        result = executor.execute(TransactionQuery(
            query_type="aggregate",
            aggregation_type="count",
            group_by="type",
        ))
        assert result.aggregation_result["breakdown"] == {"expense": 4, "income": 2}

    def test_aggregate_without_matches(self, executor):
        """Test an aggregate that matches nothing."""
        result = executor.execute(TransactionQuery(
            query_type="aggregate",
            filter=TransactionFilter(title_contains="nothing like this"),
        ))
        assert result.success is True
        assert result.data_found is False
        assert result.aggregation_result is None

    def test_exists(self, executor):
        """Test the exists query."""
        found = executor.execute(TransactionQuery(
            query_type="exists",
            filter=TransactionFilter(title_contains="coffee"),
        ))
        assert found.results[0] == {"exists": True, "answer": "yes"}
        assert found.results[1]["title"] == "Coffee"

        missing = executor.execute(TransactionQuery(
            query_type="exists",
            filter=TransactionFilter(title_contains="yacht"),
        ))
        assert missing.data_found is False
        assert missing.results == [{"exists": False, "answer": "no"}]

    def test_date_range_description(self, executor):
        """Test the human-readable range in descriptions."""
        result = executor.execute(TransactionQuery(
            filter=TransactionFilter(date_from=date(2024, 2, 1), date_to=date(2024, 2, 29)),
        ))
        assert "in February 2024" in result.query_description
