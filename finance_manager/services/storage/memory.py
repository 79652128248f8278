"""
In-memory storage.

Used by tests and by callers that embed the ledger without persistence.
Loads and saves go through deep copies so callers never share mutable
state with the store.
"""

from typing import Iterable, Optional
from uuid import UUID

from finance_manager.models.account import PersonalAccount
from finance_manager.models.audit import AuditEvent
from finance_manager.models.business import Client, Employee, Expense
from finance_manager.models.salary import SalaryPeriod
from finance_manager.services.storage.interface import (
    AuditStorageInterface,
    DirectoryInterface,
    LedgerStorageInterface,
)


class InMemoryLedgerStorage(LedgerStorageInterface):

    def __init__(
        self,
        periods: Optional[Iterable[SalaryPeriod]] = None,
        account: Optional[PersonalAccount] = None,
    ):
        self._periods = [p.model_copy(deep=True) for p in periods or []]
        self._account = account.model_copy(deep=True) if account else None
        self.save_count = 0

    def load_salary_periods(self) -> list[SalaryPeriod]:
        return [p.model_copy(deep=True) for p in self._periods]

    def save_salary_periods(self, periods: list[SalaryPeriod]) -> None:
        self._periods = [p.model_copy(deep=True) for p in periods]
        self.save_count += 1

    def load_personal_account(self) -> Optional[PersonalAccount]:
        if self._account is None:
            return None
        return self._account.model_copy(deep=True)

    def save_personal_account(self, account: PersonalAccount) -> None:
        self._account = account.model_copy(deep=True)
        self.save_count += 1


class InMemoryDirectory(DirectoryInterface):
    """Directory backed by plain lists; ``add_*`` helpers seed it."""

    def __init__(
        self,
        employees: Optional[Iterable[Employee]] = None,
        expenses: Optional[Iterable[Expense]] = None,
        clients: Optional[Iterable[Client]] = None,
    ):
        self._employees = {e.id: e for e in employees or []}
        self._expenses = {e.id: e for e in expenses or []}
        self._clients = {c.id: c for c in clients or []}

    def add_employee(self, employee: Employee) -> Employee:
        self._employees[employee.id] = employee
        return employee

    def add_expense(self, expense: Expense) -> Expense:
        self._expenses[expense.id] = expense
        return expense

    def add_client(self, client: Client) -> Client:
        self._clients[client.id] = client
        return client

    def remove_expense(self, expense_id: UUID) -> None:
        self._expenses.pop(expense_id, None)

    def get_employee(self, employee_id: UUID) -> Optional[Employee]:
        return self._employees.get(employee_id)

    def list_employees(self) -> list[Employee]:
        return list(self._employees.values())

    def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        return self._expenses.get(expense_id)

    def list_expenses(self) -> list[Expense]:
        return list(self._expenses.values())

    def list_clients(self) -> list[Client]:
        return list(self._clients.values())


class InMemoryAuditStorage(AuditStorageInterface):

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_events_by_entity(self, entity_type: str, entity_id: UUID) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        # reverse insertion order keeps same-timestamp events stable
        return list(reversed(self._events))[:limit]
