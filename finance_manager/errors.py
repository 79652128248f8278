"""
Ledger exceptions.

Every error carries structured attributes so callers can catch by type
and read the data instead of parsing messages.

    LedgerError
    +-- InvalidAmount       non-positive amount on a payment operation
    +-- DuplicatePeriod     salary period already exists for employee + month
    +-- UnknownEntity       referenced employee / expense / transaction missing
    +-- InconsistentState   internal invariant violated (programming error)

InvalidAmount and DuplicatePeriod are correctable input errors.
InconsistentState is meant for logs and diagnostics, not end users.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID


class LedgerError(Exception):
    """Base exception for ledger operations."""

    code = "ledger_error"


class InvalidAmount(LedgerError):
    """A payment or period amount is out of range."""

    code = "invalid_amount"

    def __init__(self, amount: Any, message: Optional[str] = None):
        self.amount = amount
        super().__init__(message or f"Amount must be greater than zero, got {amount}")


class DuplicatePeriod(LedgerError):
    """A salary period already exists for this employee and month."""

    code = "duplicate_period"

    def __init__(self, employee_id: UUID, month: date):
        self.employee_id = employee_id
        self.month = month
        super().__init__(
            f"Salary period for employee {employee_id} and month "
            f"{month.isoformat()} already exists"
        )


class UnknownEntity(LedgerError):
    """A referenced entity does not exist."""

    code = "unknown_entity"

    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"Unknown {entity_type}: {entity_id}")


class InconsistentState(LedgerError):
    """An internal invariant does not hold."""

    code = "inconsistent_state"

    def __init__(self, message: str, details: Optional[dict] = None):
        self.details = details or {}
        super().__init__(message)


def require_positive(amount: Decimal) -> Decimal:
    """Raise InvalidAmount unless ``amount > 0``."""
    if amount <= 0:
        raise InvalidAmount(amount)
    return amount
