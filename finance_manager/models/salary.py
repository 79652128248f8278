"""
Salary Ledger Models

A SalaryPeriod is one employee's salary obligation for one calendar
month. Payments are allocated across periods oldest-first; anything left
over is booked as an advance period.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from finance_manager.utils import ZERO, Money, start_of_month, sum_money


class SalaryPeriod(BaseModel):
    """
    One employee's due / paid salary record for one month.

    ``month`` is always normalized to the first day of the month.
    ``amount_paid`` may reach ``total_due`` but the ledger never pushes it
    further: overpayments become a separate advance period.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
    )

    employee_id: UUID = Field(
        ...,
        description="Employee this obligation belongs to"
    )
    month: date = Field(
        ...,
        description="First day of the salary month"
    )
    total_due: Money = Field(
        ...,
        ge=0,
        description="Salary due for the month"
    )
    amount_paid: Money = Field(
        default=ZERO,
        ge=0,
        description="Amount paid so far"
    )
    notes: Optional[str] = Field(
        default=None,
        max_length=1000,
    )
    is_advance: bool = Field(
        default=False,
        description="Created from an overpayment (salary paid in advance)"
    )

    @field_validator('month')
    @classmethod
    def normalize_month(cls, v: date) -> date:
        return start_of_month(v)

    @property
    def unpaid_amount(self) -> Decimal:
        """Outstanding balance, floored at zero."""
        return max(self.total_due - self.amount_paid, ZERO)

    @property
    def is_fully_paid(self) -> bool:
        return self.unpaid_amount == ZERO

    @property
    def key(self) -> tuple[UUID, date]:
        return (self.employee_id, self.month)


class UnpaidPeriod(BaseModel):
    """Read-only view of a period that still has a balance."""

    month: date
    unpaid_amount: Money


class SalaryAllocation(BaseModel):
    """Part of a payment applied to one month."""

    month: date
    amount_applied: Money = Field(..., gt=0)
    is_advance: bool = False


class PaymentAllocationResult(BaseModel):
    """
    Outcome of the carry-forward algorithm for one payment.

    Allocations are ordered oldest month first; an advance, if any, is
    always last.
    """

    employee_id: UUID
    amount: Money = Field(..., gt=0)
    payment_date: date
    allocations: list[SalaryAllocation] = Field(default_factory=list)

    @property
    def allocated_total(self) -> Decimal:
        return sum_money(a.amount_applied for a in self.allocations)

    @property
    def advance_amount(self) -> Decimal:
        return sum_money(a.amount_applied for a in self.allocations if a.is_advance)

    @property
    def advance_month(self) -> Optional[date]:
        for allocation in self.allocations:
            if allocation.is_advance:
                return allocation.month
        return None

    @property
    def months_covered(self) -> list[date]:
        return [a.month for a in self.allocations]

    def as_pairs(self) -> list[tuple[date, Decimal]]:
        """``[(month, amount_applied), ...]`` for audit output and tests."""
        return [(a.month, a.amount_applied) for a in self.allocations]


class EmployeeSalarySummary(BaseModel):
    """Per-employee salary position, used by the salary overview."""

    employee_id: UUID
    employee_name: str
    monthly_salary: Money
    total_unpaid: Money
    total_paid: Money
    advance_paid: Money
    unpaid_periods: list[UnpaidPeriod] = Field(default_factory=list)
