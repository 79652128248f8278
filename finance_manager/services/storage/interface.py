"""
Abstract Storage Interface

The ledger core talks to storage only through these interfaces, so the
backend can be swapped (JSON files, in-memory for tests, a database later)
without touching ledger logic.

The interface is intentionally simple: whole-document load/save for the
two ledgers, read-only lookups for the directory, append-only audit.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from finance_manager.models.account import PersonalAccount
from finance_manager.models.audit import AuditEvent
from finance_manager.models.business import Client, Employee, Expense
from finance_manager.models.salary import SalaryPeriod


class LedgerStorageInterface(ABC):
    """
    Load/save contract for the salary ledger and the personal account.

    Storage format is opaque to the core; only a stable round-trip of the
    entity shapes is required.
    """

    @abstractmethod
    def load_salary_periods(self) -> list[SalaryPeriod]:
        """
        Load every stored salary period.

        Returns:
            Periods in storage order (empty list when nothing is stored)
        """
        pass

    @abstractmethod
    def save_salary_periods(self, periods: list[SalaryPeriod]) -> None:
        """
        Replace the stored salary periods.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def load_personal_account(self) -> Optional[PersonalAccount]:
        """
        Load the personal account.

        Returns:
            The account, or None when none has been saved yet

        Raises:
            InconsistentState: If the stored balance does not match the
                stored transactions
        """
        pass

    @abstractmethod
    def save_personal_account(self, account: PersonalAccount) -> None:
        """
        Replace the stored personal account.

        Raises:
            StorageError: If the write fails
        """
        pass


class DirectoryInterface(ABC):
    """
    Read-only lookups into data owned by the surrounding application.

    A lookup that finds nothing returns None; it is an absent join, not
    an error.
    """

    @abstractmethod
    def get_employee(self, employee_id: UUID) -> Optional[Employee]:
        pass

    @abstractmethod
    def list_employees(self) -> list[Employee]:
        pass

    @abstractmethod
    def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        pass

    @abstractmethod
    def list_expenses(self) -> list[Expense]:
        pass

    @abstractmethod
    def list_clients(self) -> list[Client]:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (one reconciliation).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageConnectionError(StorageError):
    """Storage backend is unreachable or unreadable."""
    pass
