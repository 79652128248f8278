"""
Analytics result models.

Raw numbers only; formatting and colours belong to the presentation layer.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, computed_field

from finance_manager.utils import ZERO, Money


class TimeRange(str, Enum):
    """Window for the personal cash-flow view."""
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class FinancialMetric(BaseModel):
    """A labelled value: a KPI or one slice of a distribution."""

    key: str = Field(..., description="Stable machine-readable key")
    label: str = Field(..., description="Human-readable label")
    value: Money = ZERO


class MonthlyData(BaseModel):
    month: date
    income: Money = ZERO
    expenses: Money = ZERO

    @computed_field
    @property
    def profit(self) -> Decimal:
        return self.income - self.expenses


class CashFlowPoint(BaseModel):
    """Money spent from / received into the personal account in one bucket."""

    period_start: date
    spent: Money = ZERO
    received: Money = ZERO

    @computed_field
    @property
    def net(self) -> Decimal:
        return self.spent - self.received


class ClientFinancialSummary(BaseModel):
    client_id: UUID
    client_name: str
    total_contract_value: Money = ZERO
    total_paid: Money = ZERO
    total_outstanding: Money = ZERO
    progress_percent: Money = ZERO
