"""
Directory Models

Employees, expenses and clients are owned by the surrounding application.
The ledger core only reads them: employees for salary generation,
expenses for reimbursement joins, clients and projects for analytics.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from finance_manager.utils import ZERO, Money, sum_money


class ExpenseCategory(str, Enum):
    TRAVEL = "travel"
    ACCOMMODATION = "accommodation"
    MEALS = "meals"
    EQUIPMENT = "equipment"
    SUPPLIES = "supplies"
    TRANSPORTATION = "transportation"
    CLIENT_MEETING = "client_meeting"
    MARKETING = "marketing"
    SOFTWARE = "software"
    TRAINING = "training"
    OTHER = "other"


class ExpenseStatus(str, Enum):
    """Approval status of a company expense."""
    PENDING = "pending"
    APPROVED = "approved"
    REIMBURSED = "reimbursed"
    REJECTED = "rejected"


class Employee(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=200)
    monthly_salary: Money = Field(default=ZERO, ge=0)
    position: Optional[str] = Field(default=None, max_length=100)
    company_id: Optional[UUID] = None
    is_active: bool = True


class Expense(BaseModel):
    """A company expense, possibly paid from the owner's own pocket."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    date: date
    amount: Money = Field(..., ge=0)
    category: ExpenseCategory = ExpenseCategory.OTHER
    status: ExpenseStatus = ExpenseStatus.PENDING
    description: str = Field(default="", max_length=500)
    company_id: Optional[UUID] = None
    paid_from_personal_funds: bool = False


class ClientPayment(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    date: date
    amount: Money = Field(..., ge=0)
    notes: Optional[str] = None


class Project(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=200)
    contract_amount: Money = Field(default=ZERO, ge=0)
    payments: list[ClientPayment] = Field(default_factory=list)

    @property
    def total_paid(self) -> Decimal:
        return sum_money(p.amount for p in self.payments)

    @property
    def outstanding(self) -> Decimal:
        return self.contract_amount - self.total_paid


class Client(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=200)
    company_id: Optional[UUID] = None
    projects: list[Project] = Field(default_factory=list)

    @property
    def total_contract_value(self) -> Decimal:
        return sum_money(p.contract_amount for p in self.projects)

    @property
    def total_paid(self) -> Decimal:
        return sum_money(p.total_paid for p in self.projects)

    @property
    def total_balance_amount(self) -> Decimal:
        """Contract value not yet paid, across all projects."""
        return sum_money(p.outstanding for p in self.projects)

    def all_payments(self) -> list[ClientPayment]:
        return [payment for project in self.projects for payment in project.payments]
