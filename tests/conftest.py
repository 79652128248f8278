"""
Shared fixtures.

Everything runs against the in-memory backends; file storage tests use
pytest's tmp_path.
"""

from datetime import date
from decimal import Decimal

import pytest

from finance_manager.audit import AuditLogger
from finance_manager.ledger import SalaryLedger
from finance_manager.models import Employee, PersonalAccount
from finance_manager.orchestrator import ReconciliationEngine
from finance_manager.services.storage import (
    InMemoryAuditStorage,
    InMemoryDirectory,
    InMemoryLedgerStorage,
)


@pytest.fixture
def employee() -> Employee:
    return Employee(name="Asha Rao", monthly_salary=Decimal("1000.00"), position="Engineer")


@pytest.fixture
def directory(employee) -> InMemoryDirectory:
    return InMemoryDirectory(employees=[employee])


@pytest.fixture
def salary_ledger(directory) -> SalaryLedger:
    return SalaryLedger(directory)


@pytest.fixture
def account() -> PersonalAccount:
    return PersonalAccount(owner_name="Owner")


@pytest.fixture
def ledger_storage() -> InMemoryLedgerStorage:
    return InMemoryLedgerStorage()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def engine(salary_ledger, account, directory, ledger_storage, audit_logger) -> ReconciliationEngine:
    return ReconciliationEngine(
        salary_ledger=salary_ledger,
        account=account,
        directory=directory,
        storage=ledger_storage,
        audit_logger=audit_logger,
    )


@pytest.fixture
def jan() -> date:
    return date(2025, 1, 1)
