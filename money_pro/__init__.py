"""
Money Pro - Source Package

A personal finance tracker for a single user: income/expense transactions
recorded against named balance accounts, transfers between accounts, and
ad-hoc budgets.

DESIGN PRINCIPLES:
1. Every collection is one blob in a local key-value store
2. Balance changes follow one rule (see Transaction.balance_delta)
3. Invalid input is reported, never silently corrected
4. Every ledger mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Money Pro Team"
