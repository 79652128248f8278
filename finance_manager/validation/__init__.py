"""
Validation package.
"""

from finance_manager.validation.consistency import LedgerConsistencyChecker

__all__ = ["LedgerConsistencyChecker"]
