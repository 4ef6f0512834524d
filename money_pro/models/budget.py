"""
Budget Models for Money Pro

Budgets are ad-hoc plans held in memory only. They are never persisted and
never touch balance accounts.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


class BudgetType(str, Enum):
    SPENDING = "Spending"
    DEBT = "Debt"


class BudgetPeriod(str, Enum):
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    CUSTOM = "Custom"


class ItemType(str, Enum):
    INCOME = "Income"
    EXPENSE = "Expense"


class ItemFrequency(str, Enum):
    FIXED = "Fixed"
    VARIABLE = "Variable"


class BudgetItem(BaseModel):
    """A planned income or expense entry inside a budget."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Planned amount"
    )
    type: ItemType = ItemType.EXPENSE
    frequency: ItemFrequency = ItemFrequency.FIXED
    category: str = Field(..., min_length=1, max_length=100)
    date: dt.date = Field(default_factory=dt.date.today)


class Budget(BaseModel):
    """
    A named group of planned items over a period.

    total_amount is the plain sum of item amounts regardless of type; the
    typed totals are available separately.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=100)
    type: BudgetType = BudgetType.SPENDING
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    items: list[BudgetItem] = Field(default_factory=list)
    start_date: dt.date = Field(default_factory=dt.date.today)
    end_date: Optional[dt.date] = None

    @model_validator(mode="after")
    def validate_dates(self) -> "Budget":
        if self.end_date and self.end_date < self.start_date:
            raise ValueError("Budget end date cannot be before start date")
        return self

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def total_amount(self) -> Decimal:
        return sum((item.amount for item in self.items), Decimal("0"))

    @property
    def income_total(self) -> Decimal:
        return sum(
            (item.amount for item in self.items if item.type == ItemType.INCOME),
            Decimal("0"),
        )

    @property
    def expense_total(self) -> Decimal:
        return sum(
            (item.amount for item in self.items if item.type == ItemType.EXPENSE),
            Decimal("0"),
        )

    @property
    def net_amount(self) -> Decimal:
        return self.income_total - self.expense_total
