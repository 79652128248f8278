"""
Data Models Package

This package contains all Pydantic models used by the ledger core.
All data flowing through the system must conform to these schemas.
"""

from finance_manager.models.account import (
    ALLOWED_TRANSITIONS,
    AccountTransaction,
    PaymentMethod,
    PersonalAccount,
    TransactionStatus,
    TransactionType,
    can_transition,
    default_status_for,
)
from finance_manager.models.analytics import (
    CashFlowPoint,
    ClientFinancialSummary,
    FinancialMetric,
    MonthlyData,
    TimeRange,
)
from finance_manager.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from finance_manager.models.business import (
    Client,
    ClientPayment,
    Employee,
    Expense,
    ExpenseCategory,
    ExpenseStatus,
    Project,
)
from finance_manager.models.salary import (
    EmployeeSalarySummary,
    PaymentAllocationResult,
    SalaryAllocation,
    SalaryPeriod,
    UnpaidPeriod,
)
from finance_manager.models.validation import (
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    # Personal account
    "ALLOWED_TRANSITIONS",
    "AccountTransaction",
    "PaymentMethod",
    "PersonalAccount",
    "TransactionStatus",
    "TransactionType",
    "can_transition",
    "default_status_for",
    # Analytics
    "CashFlowPoint",
    "ClientFinancialSummary",
    "FinancialMetric",
    "MonthlyData",
    "TimeRange",
    # Audit
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Directory
    "Client",
    "ClientPayment",
    "Employee",
    "Expense",
    "ExpenseCategory",
    "ExpenseStatus",
    "Project",
    # Salary ledger
    "EmployeeSalarySummary",
    "PaymentAllocationResult",
    "SalaryAllocation",
    "SalaryPeriod",
    "UnpaidPeriod",
    # Validation
    "ValidationIssue",
    "ValidationResult",
]
