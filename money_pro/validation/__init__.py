"""Validation package."""

from money_pro.validation.validator import LedgerValidator

__all__ = ["LedgerValidator"]
