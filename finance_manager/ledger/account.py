"""
Personal Account Ledger

Read views over the PersonalAccount aggregate: statements, recent
activity, filters and totals. Writes stay on the aggregate itself
(``add_transaction`` / ``update_transaction_status``).
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from finance_manager.models.account import (
    AccountTransaction,
    PersonalAccount,
    TransactionStatus,
    TransactionType,
)
from finance_manager.utils import date_in_range, sum_money


class PersonalAccountLedger:
    """Queries over one personal account."""

    def __init__(self, account: PersonalAccount):
        self._account = account

    @property
    def account(self) -> PersonalAccount:
        return self._account

    def statement(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[AccountTransaction]:
        """
        Transactions inside ``[start, end]`` in chronological order.

        Same-day transactions keep their insertion order.
        """
        selected = [
            t for t in self._account.transactions
            if date_in_range(t.date, start, end)
        ]
        return sorted(selected, key=lambda t: t.date)

    def recent_transactions(self, limit: int = 5) -> list[AccountTransaction]:
        """Newest first."""
        indexed = list(enumerate(self._account.transactions))
        indexed.sort(key=lambda pair: (pair[1].date, pair[0]), reverse=True)
        return [t for _, t in indexed[:limit]]

    def by_status(self, status: TransactionStatus) -> list[AccountTransaction]:
        return [t for t in self._account.transactions if t.status == status]

    def by_type(self, transaction_type: TransactionType) -> list[AccountTransaction]:
        return [t for t in self._account.transactions if t.type == transaction_type]

    def total_spent(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Decimal:
        """Cash paid out (positive amounts) in the range."""
        return sum_money(t.amount for t in self.statement(start, end) if t.is_outflow)

    def total_received(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Decimal:
        """Cash received (absolute value of negative amounts) in the range."""
        return sum_money(-t.amount for t in self.statement(start, end) if t.is_inflow)
