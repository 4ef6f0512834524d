"""
Budget Planner

Ad-hoc budgets live only in memory for the lifetime of the planner.
They are plans, not ledger entries: adding an item never touches a balance.
"""

import calendar
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Union
from uuid import UUID

import structlog

from money_pro.audit import AuditLogger
from money_pro.models.audit import AuditEventBuilder
from money_pro.models.budget import (
    Budget,
    BudgetItem,
    BudgetPeriod,
    BudgetType,
    ItemFrequency,
    ItemType,
)


logger = structlog.get_logger(__name__)


class BudgetNotFoundError(LookupError):
    """No budget with the requested ID."""
    pass


def period_window(budget: Budget, on: date) -> tuple[date, Optional[date]]:
    """
    The period of a budget that contains a given day.

    Daily budgets cover the day itself, weekly budgets run in 7-day blocks
    anchored on the start date, monthly budgets cover the calendar month and
    custom budgets cover start_date..end_date (open-ended without an end date).
    """
    if budget.period == BudgetPeriod.DAILY:
        return on, on

    if budget.period == BudgetPeriod.WEEKLY:
        offset = (on - budget.start_date).days % 7
        window_start = on - timedelta(days=offset)
        return window_start, window_start + timedelta(days=6)

    if budget.period == BudgetPeriod.MONTHLY:
        last_day = calendar.monthrange(on.year, on.month)[1]
        return on.replace(day=1), on.replace(day=last_day)

    return budget.start_date, budget.end_date


class BudgetPlanner:
    """Create budgets and manage their items."""

    def __init__(self, audit_logger: Optional[AuditLogger] = None):
        self._budgets: list[Budget] = []
        self._audit_logger = audit_logger

    def create_budget(
        self,
        name: str,
        budget_type: BudgetType = BudgetType.SPENDING,
        period: BudgetPeriod = BudgetPeriod.MONTHLY,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Budget:
        budget = Budget(
            name=name,
            type=budget_type,
            period=period,
            start_date=start_date or date.today(),
            end_date=end_date,
        )
        self._budgets.append(budget)

        logger.info("budget_created", budget_id=str(budget.id), period=period.value)
        if self._audit_logger is not None:
            self._audit_logger.log(AuditEventBuilder.budget_created(
                budget_id=budget.id,
                name=budget.name,
                budget_type=budget.type.value,
                period=budget.period.value,
            ))
        return budget

    def get_budget(self, budget_id: UUID) -> Budget:
        return self._budgets[self._index_of(budget_id)]

    def list_budgets(self, budget_type: Optional[BudgetType] = None) -> list[Budget]:
        if budget_type is None:
            return list(self._budgets)
        return [b for b in self._budgets if b.type == budget_type]

    def debt_budgets(self) -> list[Budget]:
        return self.list_budgets(BudgetType.DEBT)

    def delete_budget(self, budget_id: UUID) -> Budget:
        budget = self._budgets.pop(self._index_of(budget_id))
        if self._audit_logger is not None:
            self._audit_logger.log(AuditEventBuilder.budget_deleted(budget.id, budget.name))
        return budget

    def add_item(
        self,
        budget_id: UUID,
        name: str,
        amount: Union[Decimal, str],
        category: str,
        item_type: ItemType = ItemType.EXPENSE,
        frequency: ItemFrequency = ItemFrequency.FIXED,
        item_date: Optional[date] = None,
    ) -> BudgetItem:
        item = BudgetItem(
            name=name,
            amount=amount,
            type=item_type,
            frequency=frequency,
            category=category,
            date=item_date or date.today(),
        )
        budget = self.get_budget(budget_id)
        self.replace_items(budget_id, budget.items + [item])
        return item

    def remove_items(self, budget_id: UUID, item_ids: Iterable[UUID]) -> int:
        """Remove items by ID; unknown IDs are ignored. Returns how many were removed."""
        doomed = set(item_ids)
        budget = self.get_budget(budget_id)
        kept = [item for item in budget.items if item.id not in doomed]
        removed = len(budget.items) - len(kept)
        if removed:
            self.replace_items(budget_id, kept)
        return removed

    def replace_items(self, budget_id: UUID, items: list[BudgetItem]) -> Budget:
        index = self._index_of(budget_id)
        updated = self._budgets[index].model_copy(update={"items": list(items)})
        self._budgets[index] = updated

        if self._audit_logger is not None:
            self._audit_logger.log(AuditEventBuilder.budget_items_changed(
                budget_id=updated.id,
                item_count=updated.item_count,
                total_amount=updated.total_amount,
            ))
        return updated

    def items_in_window(self, budget_id: UUID, on: Optional[date] = None) -> list[BudgetItem]:
        """Items dated inside the budget period that contains `on` (default today)."""
        budget = self.get_budget(budget_id)
        window_start, window_end = period_window(budget, on or date.today())
        return [
            item for item in budget.items
            if item.date >= window_start and (window_end is None or item.date <= window_end)
        ]

    def _index_of(self, budget_id: UUID) -> int:
        for idx, budget in enumerate(self._budgets):
            if budget.id == budget_id:
                return idx
        raise BudgetNotFoundError(f"Budget not found: {budget_id}")
