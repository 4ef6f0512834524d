"""Budget planning package."""

from money_pro.budgets.planner import BudgetNotFoundError, BudgetPlanner, period_window

__all__ = ["BudgetNotFoundError", "BudgetPlanner", "period_window"]
