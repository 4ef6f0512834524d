"""Query execution package."""

from money_pro.queries.executor import QueryExecutionError, QueryExecutor, newest_first

__all__ = ["QueryExecutionError", "QueryExecutor", "newest_first"]
