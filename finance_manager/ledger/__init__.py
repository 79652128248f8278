"""
Ledger Package

The salary ledger (carry-forward allocation across monthly periods) and
read views over the personal account.
"""

from finance_manager.ledger.account import PersonalAccountLedger
from finance_manager.ledger.salary import SalaryLedger

__all__ = [
    "PersonalAccountLedger",
    "SalaryLedger",
]
