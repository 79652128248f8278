"""
Salary Ledger

Tracks, per employee and per calendar month, how much salary is due and
how much has been paid, and allocates payments across those months.

CARRY-FORWARD ALGORITHM:
1. Unpaid periods are taken oldest month first (strict FIFO, no skipping)
2. Each period receives min(remaining, total_due - amount_paid)
3. Whatever is left after every unpaid period is satisfied becomes an
   advance: a new period one month after the employee's latest period
   (or in the payment month when the employee has none), with
   total_due = amount_paid = remaining

Generating the month later charges the salary to that advance: total_due
rises to the monthly salary (never below amount_paid) and the period
becomes a regular one.

Planning and committing are separate steps. ``plan_payment`` never
mutates, so the reconciliation engine can validate the whole operation
before anything changes.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

import structlog

from finance_manager.errors import (
    DuplicatePeriod,
    InconsistentState,
    InvalidAmount,
    require_positive,
)
from finance_manager.models.salary import (
    PaymentAllocationResult,
    SalaryAllocation,
    SalaryPeriod,
    UnpaidPeriod,
)
from finance_manager.services.storage import DirectoryInterface
from finance_manager.utils import (
    AmountLike,
    add_months,
    month_label,
    start_of_month,
    sum_money,
    to_money,
)


logger = structlog.get_logger(__name__)


class SalaryLedger:
    """
    All salary periods, keyed by (employee_id, month).

    Periods keep their insertion order for storage; per-employee views are
    sorted by month.
    """

    def __init__(
        self,
        directory: DirectoryInterface,
        periods: Optional[Iterable[SalaryPeriod]] = None,
    ):
        self._directory = directory
        self._periods: list[SalaryPeriod] = []
        self._index: dict[tuple[UUID, date], SalaryPeriod] = {}
        for period in periods or []:
            self._insert(period)

    # =========================================================================
    # PERIODS
    # =========================================================================

    @property
    def periods(self) -> list[SalaryPeriod]:
        """Every period, in storage order."""
        return list(self._periods)

    def has_period(self, employee_id: UUID, month: date) -> bool:
        return (employee_id, start_of_month(month)) in self._index

    def get_period(self, employee_id: UUID, month: date) -> Optional[SalaryPeriod]:
        return self._index.get((employee_id, start_of_month(month)))

    def periods_for(self, employee_id: UUID) -> list[SalaryPeriod]:
        """An employee's periods, oldest month first."""
        return sorted(
            (p for p in self._periods if p.employee_id == employee_id),
            key=lambda p: p.month,
        )

    def add_salary_period(
        self,
        employee_id: UUID,
        month: date,
        total_due: AmountLike,
        notes: Optional[str] = None,
    ) -> SalaryPeriod:
        """
        Create a period for ``start_of_month(month)``.

        Raises:
            DuplicatePeriod: If the employee already has that month
            InvalidAmount: If total_due is negative
        """
        month = start_of_month(month)
        total_due = to_money(total_due)
        if total_due < 0:
            raise InvalidAmount(total_due, f"Salary due cannot be negative, got {total_due}")
        if self.has_period(employee_id, month):
            raise DuplicatePeriod(employee_id, month)

        period = SalaryPeriod(
            employee_id=employee_id,
            month=month,
            total_due=total_due,
            notes=notes,
        )
        self._insert(period)
        logger.info(
            "salary_period_added",
            employee_id=str(employee_id),
            month=month.isoformat(),
            total_due=str(total_due),
        )
        return period

    def create_monthly_periods_for_all_employees(
        self,
        reference_date: date,
    ) -> list[SalaryPeriod]:
        """
        Make sure every employee has a period for the reference month.

        An advance already booked for the month becomes the month's regular
        period: its ``total_due`` is raised to the monthly salary (never
        below what was paid) and the advance payment stays credited.
        Regular periods are left untouched, so calling this twice for the
        same month changes nothing the second time.

        Returns:
            The periods created or charged by this call
        """
        month = start_of_month(reference_date)
        created = []
        for employee in self._directory.list_employees():
            period = self.get_period(employee.id, month)
            if period is None:
                created.append(
                    self.add_salary_period(employee.id, month, employee.monthly_salary)
                )
            elif period.is_advance:
                period.total_due = max(employee.monthly_salary, period.amount_paid)
                period.is_advance = False
                created.append(period)
                logger.info(
                    "salary_advance_charged",
                    employee_id=str(employee.id),
                    month=month.isoformat(),
                    total_due=str(period.total_due),
                    amount_paid=str(period.amount_paid),
                )

        logger.info(
            "monthly_periods_generated",
            month=month.isoformat(),
            created=len(created),
        )
        return created

    # =========================================================================
    # BALANCES
    # =========================================================================

    def get_unpaid_periods(self, employee_id: UUID) -> list[UnpaidPeriod]:
        """Months that still carry a balance, oldest first."""
        return [
            UnpaidPeriod(month=p.month, unpaid_amount=p.unpaid_amount)
            for p in self.periods_for(employee_id)
            if p.unpaid_amount > 0
        ]

    def total_unpaid(self, employee_id: UUID) -> Decimal:
        """Sum of unpaid balances; an overpaid period contributes zero."""
        return sum_money(p.unpaid_amount for p in self.periods_for(employee_id))

    def total_paid(self, employee_id: UUID) -> Decimal:
        return sum_money(p.amount_paid for p in self.periods_for(employee_id))

    def advance_paid(self, employee_id: UUID) -> Decimal:
        """Amount paid ahead through advance periods."""
        return sum_money(
            p.amount_paid for p in self.periods_for(employee_id) if p.is_advance
        )

    # =========================================================================
    # PAYMENTS
    # =========================================================================

    def plan_payment(
        self,
        employee_id: UUID,
        amount: AmountLike,
        payment_date: date,
    ) -> PaymentAllocationResult:
        """
        Compute the carry-forward allocation without changing anything.

        Raises:
            InvalidAmount: If amount <= 0
        """
        amount = require_positive(to_money(amount))
        remaining = amount
        allocations: list[SalaryAllocation] = []

        periods = self.periods_for(employee_id)
        for period in periods:
            if remaining <= 0:
                break
            unpaid = period.unpaid_amount
            if unpaid <= 0:
                continue
            to_apply = min(remaining, unpaid)
            allocations.append(SalaryAllocation(month=period.month, amount_applied=to_apply))
            remaining -= to_apply

        if remaining > 0:
            if periods:
                advance_month = add_months(periods[-1].month, 1)
            else:
                advance_month = start_of_month(payment_date)
            allocations.append(
                SalaryAllocation(
                    month=advance_month,
                    amount_applied=remaining,
                    is_advance=True,
                )
            )

        return PaymentAllocationResult(
            employee_id=employee_id,
            amount=amount,
            payment_date=payment_date,
            allocations=allocations,
        )

    def apply_allocation(self, result: PaymentAllocationResult) -> None:
        """
        Commit a planned allocation.

        Every step is checked before the first period changes, so a stale
        plan leaves the ledger as it was.

        Raises:
            InconsistentState: If the plan no longer fits the ledger
        """
        employee_id = result.employee_id
        if result.allocated_total != result.amount:
            raise InconsistentState(
                "Allocation does not add up to the payment",
                details={
                    "employee_id": str(employee_id),
                    "amount": str(result.amount),
                    "allocated": str(result.allocated_total),
                },
            )

        for allocation in result.allocations:
            period = self.get_period(employee_id, allocation.month)
            if allocation.is_advance:
                if period is not None:
                    raise InconsistentState(
                        "Advance month already has a salary period",
                        details={
                            "employee_id": str(employee_id),
                            "month": allocation.month.isoformat(),
                        },
                    )
            elif period is None or period.unpaid_amount < allocation.amount_applied:
                raise InconsistentState(
                    "Planned allocation exceeds the unpaid balance",
                    details={
                        "employee_id": str(employee_id),
                        "month": allocation.month.isoformat(),
                        "amount_applied": str(allocation.amount_applied),
                        "unpaid": str(period.unpaid_amount) if period else None,
                    },
                )

        for allocation in result.allocations:
            if allocation.is_advance:
                self._insert(
                    SalaryPeriod(
                        employee_id=employee_id,
                        month=allocation.month,
                        total_due=allocation.amount_applied,
                        amount_paid=allocation.amount_applied,
                        notes=f"Advance paid on {result.payment_date.isoformat()}",
                        is_advance=True,
                    )
                )
                logger.info(
                    "salary_advance_created",
                    employee_id=str(employee_id),
                    month=allocation.month.isoformat(),
                    amount=str(allocation.amount_applied),
                )
            else:
                period = self.get_period(employee_id, allocation.month)
                period.amount_paid = period.amount_paid + allocation.amount_applied

        logger.info(
            "salary_payment_applied",
            employee_id=str(employee_id),
            amount=str(result.amount),
            months=[month_label(m) for m in result.months_covered],
        )

    def apply_payment(
        self,
        employee_id: UUID,
        amount: AmountLike,
        payment_date: date,
    ) -> PaymentAllocationResult:
        """
        Allocate a payment oldest month first and book any excess as an
        advance.

        Raises:
            InvalidAmount: If amount <= 0
        """
        result = self.plan_payment(employee_id, amount, payment_date)
        self.apply_allocation(result)
        return result

    # =========================================================================
    # ROLLBACK
    # =========================================================================

    def snapshot(self) -> list[SalaryPeriod]:
        """Deep copy of every period, for ``restore``."""
        return [p.model_copy(deep=True) for p in self._periods]

    def restore(self, snapshot: list[SalaryPeriod]) -> None:
        """Replace the ledger contents with a snapshot."""
        self._periods = []
        self._index = {}
        for period in snapshot:
            self._insert(period.model_copy(deep=True))

    def _insert(self, period: SalaryPeriod) -> None:
        if period.key in self._index:
            raise DuplicatePeriod(period.employee_id, period.month)
        self._periods.append(period)
        self._index[period.key] = period

