"""
JSON File Storage Implementation

Local documents under a single data directory:

    salary_periods.json     list of salary periods
    personal_account.json   the personal account, with its computed totals
    directory.json          employees / expenses / clients (read-only here)
    audit_log.jsonl         one audit event per line, append-only

TRADEOFFS:
- Whole-document rewrites (fine for a personal ledger, not for big volumes)
- No transactions; writes go to a temp file and are swapped in with
  os.replace, so a reader sees either the old or the new document
- Transient OSErrors on write are retried with exponential backoff

The implementation follows the abstract interface, so a database backend
can replace it without changing ledger logic.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional
from uuid import UUID

import structlog
from pydantic import TypeAdapter, ValidationError
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finance_manager.config import StorageSettings
from finance_manager.errors import InconsistentState
from finance_manager.models.account import PersonalAccount
from finance_manager.models.audit import AuditEvent
from finance_manager.models.business import Client, Employee, Expense
from finance_manager.models.salary import SalaryPeriod
from finance_manager.services.storage.interface import (
    AuditStorageInterface,
    DirectoryInterface,
    LedgerStorageInterface,
    StorageConnectionError,
    StorageError,
)
from finance_manager.utils import to_money


logger = structlog.get_logger(__name__)

SALARY_PERIODS_FILE = "salary_periods.json"
PERSONAL_ACCOUNT_FILE = "personal_account.json"
DIRECTORY_FILE = "directory.json"
AUDIT_LOG_FILE = "audit_log.jsonl"

_periods_adapter = TypeAdapter(list[SalaryPeriod])


class JsonDocumentStore:
    """
    Low-level file access shared by the JSON storages.

    Handles the data directory and provides retry logic for writes.
    """

    def __init__(
        self,
        data_dir: Path,
        write_retry_attempts: int = 3,
    ):
        self.data_dir = Path(data_dir)
        self._write_retry_attempts = write_retry_attempts

    @classmethod
    def from_settings(cls, settings: StorageSettings) -> "JsonDocumentStore":
        return cls(settings.data_dir, settings.write_retry_attempts)

    def path(self, name: str) -> Path:
        return self.data_dir / name

    def read_json(self, name: str) -> Optional[Any]:
        """Parsed document, or None when the file does not exist."""
        path = self.path(name)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StorageConnectionError(f"Failed to read {path}: {e}")

    def write_text(self, name: str, text: str) -> None:
        """
        Replace a document atomically.

        Raises:
            StorageError: If every attempt fails
        """
        path = self.path(name)
        try:
            for attempt in Retrying(
                stop=stop_after_attempt(self._write_retry_attempts),
                wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
                retry=retry_if_exception_type(OSError),
                reraise=True,
            ):
                with attempt:
                    self._replace(path, text)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}")

    def append_line(self, name: str, line: str) -> None:
        path = self.path(name)
        try:
            for attempt in Retrying(
                stop=stop_after_attempt(self._write_retry_attempts),
                wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
                retry=retry_if_exception_type(OSError),
                reraise=True,
            ):
                with attempt:
                    self.data_dir.mkdir(parents=True, exist_ok=True)
                    with path.open("a", encoding="utf-8") as f:
                        f.write(line.rstrip("\n") + "\n")
        except OSError as e:
            raise StorageError(f"Failed to append to {path}: {e}")

    def read_lines(self, name: str) -> list[str]:
        """Non-blank lines; undecodable bytes come back as U+FFFD."""
        path = self.path(name)
        if not path.exists():
            return []
        try:
            with path.open("r", encoding="utf-8", errors="replace") as f:
                return [line for line in f.read().splitlines() if line.strip()]
        except OSError as e:
            raise StorageConnectionError(f"Failed to read {path}: {e}")

    def _replace(self, path: Path, text: str) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.data_dir,
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise


class JsonFileLedgerStorage(LedgerStorageInterface):
    """
    Salary periods and the personal account as JSON documents.

    The account document carries its computed ``total_balance``; loading
    recomputes it from the transactions and refuses a mismatch.
    """

    def __init__(self, store: JsonDocumentStore):
        self._store = store

    def load_salary_periods(self) -> list[SalaryPeriod]:
        data = self._store.read_json(SALARY_PERIODS_FILE)
        if data is None:
            return []
        try:
            return _periods_adapter.validate_python(data)
        except ValidationError as e:
            raise StorageConnectionError(f"Invalid salary period document: {e}")

    def save_salary_periods(self, periods: list[SalaryPeriod]) -> None:
        text = _periods_adapter.dump_json(periods, indent=2).decode("utf-8")
        self._store.write_text(SALARY_PERIODS_FILE, text)
        logger.debug("salary_periods_saved", count=len(periods))

    def load_personal_account(self) -> Optional[PersonalAccount]:
        data = self._store.read_json(PERSONAL_ACCOUNT_FILE)
        if data is None:
            return None
        try:
            account = PersonalAccount.model_validate(data)
        except ValidationError as e:
            raise StorageConnectionError(f"Invalid personal account document: {e}")

        stored_balance = data.get("total_balance")
        if stored_balance is not None and to_money(stored_balance) != account.total_balance:
            raise InconsistentState(
                "Stored account balance does not match its transactions",
                details={
                    "stored_balance": str(stored_balance),
                    "computed_balance": str(account.total_balance),
                    "transaction_count": len(account.transactions),
                },
            )
        return account

    def save_personal_account(self, account: PersonalAccount) -> None:
        self._store.write_text(PERSONAL_ACCOUNT_FILE, account.model_dump_json(indent=2))
        logger.debug(
            "personal_account_saved",
            transaction_count=len(account.transactions),
            total_balance=str(account.total_balance),
        )


class JsonFileDirectory(DirectoryInterface):
    """
    Read-only view of ``directory.json``.

    The document is read once; call ``reload()`` after the owning
    application rewrites it.
    """

    def __init__(self, store: JsonDocumentStore):
        self._store = store
        self._employees: dict[UUID, Employee] = {}
        self._expenses: dict[UUID, Expense] = {}
        self._clients: dict[UUID, Client] = {}
        self.reload()

    def reload(self) -> None:
        data = self._store.read_json(DIRECTORY_FILE) or {}
        try:
            employees = [Employee.model_validate(e) for e in data.get("employees", [])]
            expenses = [Expense.model_validate(e) for e in data.get("expenses", [])]
            clients = [Client.model_validate(c) for c in data.get("clients", [])]
        except ValidationError as e:
            raise StorageConnectionError(f"Invalid directory document: {e}")

        self._employees = {e.id: e for e in employees}
        self._expenses = {e.id: e for e in expenses}
        self._clients = {c.id: c for c in clients}

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


class JsonFileAuditStorage(AuditStorageInterface):
    """
    Append-only JSON-lines audit log.

    Lines that fail to parse are skipped with a warning so one corrupt
    line never hides the rest of the trail.
    """

    def __init__(self, store: JsonDocumentStore):
        self._store = store

    def append_event(self, event: AuditEvent) -> bool:
        self._store.append_line(AUDIT_LOG_FILE, event.to_json_line())
        return True

    def _read_events(self) -> list[AuditEvent]:
        events = []
        for number, line in enumerate(self._store.read_lines(AUDIT_LOG_FILE), start=1):
            try:
                events.append(AuditEvent.model_validate_json(line))
            except ValidationError as e:
                logger.warning("audit_line_unreadable", line_number=number, error=str(e))
        return events

    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_events_by_entity(self, entity_type: str, entity_id: UUID) -> list[AuditEvent]:
        events = [
            e for e in self._read_events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._read_events()))[:limit]
