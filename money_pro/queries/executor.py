"""
Query Execution Engine

Every view of the ledger is a filter/sort/reduce over the stored
collections: recent transactions, transfer lists, per-account history,
income/expense totals and grouped aggregates.

GUARANTEES:
- Only returns data that is in storage
- Newest transactions first
- Expense totals are sums of absolute amounts, so transfer debits stored
  as negative amounts never reduce a total
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

from money_pro.config import get_settings
from money_pro.models.ledger import (
    LedgerSummary,
    QueryResult,
    Transaction,
    TransactionFilter,
    TransactionQuery,
    TransactionType,
)
from money_pro.services.storage import (
    BalanceStorageInterface,
    TransactionStorageInterface,
)


class QueryExecutionError(Exception):
    """Error during query execution."""
    pass


def newest_first(transactions: list[Transaction]) -> list[Transaction]:
    """Sort by date, newest first (stable for equal dates)."""
    return sorted(transactions, key=lambda tx: tx.date, reverse=True)


class QueryExecutor:
    """
    Read-side of the ledger.

    Works directly on the storage interfaces; nothing here mutates state.
    """

    def __init__(
        self,
        transaction_storage: TransactionStorageInterface,
        balance_storage: Optional[BalanceStorageInterface] = None,
    ):
        self._transactions = transaction_storage
        self._balances = balance_storage

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def list_transactions(
        self,
        transaction_filter: Optional[TransactionFilter] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Transaction]:
        """Matching transactions, newest first."""
        predicate = transaction_filter or TransactionFilter()
        matching = [
            tx for tx in self._transactions.list_transactions()
            if predicate.matches(tx)
        ]
        ordered = newest_first(matching)
        if limit is None:
            return ordered[offset:]
        return ordered[offset:offset + limit]

    def recent_transactions(self, limit: Optional[int] = None) -> list[Transaction]:
        """The latest transactions (default count from settings)."""
        if limit is None:
            limit = get_settings().app.recent_transactions_limit
        return self.list_transactions(limit=limit)

    def transfer_legs(self) -> list[Transaction]:
        """Outgoing legs of transfers (one per transfer)."""
        return self.list_transactions(TransactionFilter(
            type=TransactionType.EXPENSE,
            transfers_only=True,
        ))

    def non_transfer_transactions(self) -> list[Transaction]:
        """Everything that is not the outgoing leg of a transfer."""
        return [
            tx for tx in self.list_transactions()
            if not (tx.is_transfer and tx.type == TransactionType.EXPENSE)
        ]

    def transactions_for_balance(self, balance_id: UUID) -> list[Transaction]:
        return self.list_transactions(TransactionFilter(balance_account_id=balance_id))

    # -------------------------------------------------------------------------
    # Aggregates
    # -------------------------------------------------------------------------

    def total_balance(self) -> Decimal:
        if self._balances is None:
            return Decimal("0")
        return sum(
            (b.amount for b in self._balances.list_balances()),
            Decimal("0"),
        )

    def summarize(self, include_transfers: bool = False) -> LedgerSummary:
        """
        Available balance plus income and expense totals.

        Transfers only move money between accounts, so they are left out of
        the income/expense totals unless asked for.
        """
        transactions = self.list_transactions(
            TransactionFilter(include_transfers=include_transfers)
        )
        income = Decimal("0")
        expenses = Decimal("0")
        for tx in transactions:
            if tx.is_income:
                income += abs(tx.amount)
            else:
                expenses += abs(tx.amount)

        return LedgerSummary(
            total_balance=self.total_balance(),
            total_income=income,
            total_expenses=expenses,
            transaction_count=len(transactions),
            include_transfers=include_transfers,
        )

    # -------------------------------------------------------------------------
    # Structured queries
    # -------------------------------------------------------------------------

    def execute(self, query: TransactionQuery) -> QueryResult:
        """
        Execute a structured query and return results.

        Failures are reported in the result, not raised.
        """
        try:
            if query.query_type == "aggregate":
                return self._execute_aggregate(query)
            elif query.query_type == "exists":
                return self._execute_exists(query)
            else:
                return self._execute_list(query)
        except (QueryExecutionError, ArithmeticError) as e:
            return QueryResult(
                query_id=query.query_id,
                success=False,
                error_message=str(e),
                data_found=False,
                result_count=0,
                query_description=f"Query failed: {e}",
            )

    def _execute_list(self, query: TransactionQuery) -> QueryResult:
        transactions = self.list_transactions(
            query.filter,
            limit=query.limit,
            offset=query.offset,
        )
        results = [self._transaction_to_dict(tx) for tx in transactions]

        return QueryResult(
            query_id=query.query_id,
            success=True,
            data_found=len(results) > 0,
            result_count=len(results),
            results=results,
            query_description=self._describe("Listing transactions", query.filter),
        )

    def _execute_aggregate(self, query: TransactionQuery) -> QueryResult:
        transactions = self.list_transactions(query.filter)

        if not transactions:
            return QueryResult(
                query_id=query.query_id,
                success=True,
                data_found=False,
                result_count=0,
                query_description="No transactions found for aggregation",
            )

        amounts = [abs(tx.amount) for tx in transactions]
        aggregation_type = query.aggregation_type or "sum"

        aggregation_result = {}
        if aggregation_type == "sum":
            aggregation_result["total_amount"] = sum(amounts, Decimal("0"))
            aggregation_result["transaction_count"] = len(amounts)
        elif aggregation_type == "count":
            aggregation_result["count"] = len(amounts)
        elif aggregation_type == "average":
            aggregation_result["average_amount"] = sum(amounts, Decimal("0")) / len(amounts)
            aggregation_result["transaction_count"] = len(amounts)
        elif aggregation_type == "min":
            aggregation_result["minimum_amount"] = min(amounts)
        elif aggregation_type == "max":
            aggregation_result["maximum_amount"] = max(amounts)

        if query.group_by:
            aggregation_result["breakdown"] = self._grouped_aggregate(
                transactions, query.group_by, aggregation_type
            )

        description = self._describe(f"Calculating {aggregation_type}", query.filter)
        if query.group_by:
            description += f" | grouped by {query.group_by}"

        return QueryResult(
            query_id=query.query_id,
            success=True,
            data_found=True,
            result_count=len(transactions),
            aggregation_result=aggregation_result,
            query_description=description,
        )

    def _grouped_aggregate(
        self,
        transactions: list[Transaction],
        group_by: str,
        aggregation_type: str,
    ) -> dict:
        """Calculate aggregation grouped by a field."""
        key_for: dict[str, Callable[[Transaction], str]] = {
            "type": lambda tx: tx.type.value,
            "balance": lambda tx: str(tx.balance_account_id),
            "month": lambda tx: tx.date.strftime("%Y-%m"),
            "year": lambda tx: str(tx.date.year),
        }
        if group_by not in key_for:
            raise QueryExecutionError(f"Cannot group by {group_by}")

        groups = defaultdict(list)
        for tx in transactions:
            groups[key_for[group_by](tx)].append(abs(tx.amount))

        result = {}
        for key, amounts in sorted(groups.items()):
            if aggregation_type == "count":
                result[key] = len(amounts)
            elif aggregation_type == "average":
                result[key] = sum(amounts, Decimal("0")) / len(amounts)
            elif aggregation_type == "min":
                result[key] = min(amounts)
            elif aggregation_type == "max":
                result[key] = max(amounts)
            else:  # Default to sum
                result[key] = sum(amounts, Decimal("0"))

        return result

    def _execute_exists(self, query: TransactionQuery) -> QueryResult:
        matches = self.list_transactions(query.filter, limit=1)
        exists = len(matches) > 0

        result_data = [{"exists": exists, "answer": "yes" if exists else "no"}]
        if exists:
            result_data.append(self._transaction_to_dict(matches[0]))

        return QueryResult(
            query_id=query.query_id,
            success=True,
            data_found=exists,
            result_count=1 if exists else 0,
            results=result_data,
            query_description=self._describe("Checking for transactions", query.filter),
        )

    # -------------------------------------------------------------------------
    # Formatting
    # -------------------------------------------------------------------------

    def _transaction_to_dict(self, tx: Transaction) -> dict:
        return {
            "id": str(tx.id),
            "title": tx.title,
            "amount": str(tx.amount),
            "type": tx.type.value,
            "date": tx.date.isoformat(),
            "balance_account_id": str(tx.balance_account_id),
            "is_transfer": tx.is_transfer,
        }

    def _describe(self, prefix: str, transaction_filter: TransactionFilter) -> str:
        parts = [prefix]
        if transaction_filter.type:
            parts.append(f"type: {transaction_filter.type.value}")
        if transaction_filter.balance_account_id:
            parts.append(f"account: {transaction_filter.balance_account_id}")
        if transaction_filter.title_contains:
            parts.append(f"title contains: {transaction_filter.title_contains}")
        if transaction_filter.date_from or transaction_filter.date_to:
            parts.append(self._date_range_str(
                transaction_filter.date_from, transaction_filter.date_to
            ))
        if transaction_filter.transfers_only:
            parts.append("transfers only")
        elif not transaction_filter.include_transfers:
            parts.append("excluding transfers")
        return " | ".join(parts)

    def _date_range_str(
        self,
        date_from: Optional[date],
        date_to: Optional[date],
    ) -> str:
        """Format date range for description."""
        if date_from and date_to:
            if date_from == date_to:
                return f"on {date_from.strftime('%d %b %Y')}"
            elif date_from.month == date_to.month and date_from.year == date_to.year:
                return f"in {date_from.strftime('%B %Y')}"
            elif date_from.year == date_to.year:
                return f"from {date_from.strftime('%b')} to {date_to.strftime('%b %Y')}"
            else:
                return f"from {date_from.strftime('%b %Y')} to {date_to.strftime('%b %Y')}"
        elif date_from:
            return f"from {date_from.strftime('%d %b %Y')}"
        elif date_to:
            return f"until {date_to.strftime('%d %b %Y')}"
        return ""
