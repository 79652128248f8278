"""
Tests for settings and the application factory.
"""

import json
import logging
import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

import structlog
from pydantic import ValidationError

from finance_manager.audit import configure_logging
from finance_manager.config import (
    AnalyticsSettings,
    AppSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)
from finance_manager.errors import InconsistentState, UnknownEntity
from finance_manager.models import (
    AuditEventBuilder,
    AuditEventType,
    Employee,
    SalaryPeriod,
    TransactionStatus,
    TransactionType,
)
from finance_manager.orchestrator import create_app_components
from finance_manager.services.storage import (
    DIRECTORY_FILE,
    PERSONAL_ACCOUNT_FILE,
    InMemoryAuditStorage,
    InMemoryDirectory,
    InMemoryLedgerStorage,
    JsonDocumentStore,
    JsonFileAuditStorage,
)


@pytest.fixture
def memory_env(monkeypatch):
    monkeypatch.setenv("FINANCE_STORAGE_BACKEND", "memory")


@pytest.fixture
def json_env(monkeypatch, tmp_path):
    monkeypatch.setenv("FINANCE_STORAGE_BACKEND", "json")
    monkeypatch.setenv("FINANCE_STORAGE_DATA_DIR", str(tmp_path))
    return tmp_path


@pytest.fixture
def seeded_directory(json_env):
    employee = Employee(name="Asha Rao", monthly_salary=Decimal("1000"))
    (json_env / DIRECTORY_FILE).write_text(
        json.dumps({"employees": [employee.model_dump(mode="json")]}),
        encoding="utf-8",
    )
    return employee


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch):
        """Test the documented defaults."""
        monkeypatch.delenv("FINANCE_STORAGE_BACKEND", raising=False)
        assert StorageSettings().backend == "json"
        assert AnalyticsSettings().monthly_window == 12
        assert AnalyticsSettings().recent_transactions_limit == 5
        assert AppSettings().strict_status_updates is False

    def test_env_overrides(self, monkeypatch, tmp_path):
        """Test prefixed environment variables and log level casing."""
        monkeypatch.setenv("FINANCE_STORAGE_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("FINANCE_ANALYTICS_MONTHLY_WINDOW", "6")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("STRICT_STATUS_UPDATES", "true")

        settings = Settings()

        assert settings.storage.data_dir == tmp_path
        assert settings.analytics.monthly_window == 6
        assert settings.app.log_level == "DEBUG"
        assert settings.app.strict_status_updates is True

    def test_invalid_backend(self, monkeypatch):
        """Test an unknown backend is rejected."""
        monkeypatch.setenv("FINANCE_STORAGE_BACKEND", "postgres")
        with pytest.raises(ValidationError):
            StorageSettings()

    def test_validate_all_settings(self, monkeypatch):
        """Test the startup check reports the failing group."""
        monkeypatch.setenv("FINANCE_ANALYTICS_MONTHLY_WINDOW", "0")
        get_settings.cache_clear()
        try:
            results = validate_all_settings()
        finally:
            get_settings.cache_clear()

        assert results["storage"] is True
        assert results["app"] is True
        assert results["analytics"] is False
        assert "analytics_error" in results

    def test_debug_mode_drives_logging(self):
        """Test debug_mode forces DEBUG and the console renderer."""
        root = logging.getLogger()
        saved_level = root.level
        saved_config = structlog.get_config()
        try:
            configure_logging(AppSettings(debug_mode=True, log_level="ERROR", log_format="json"))
            assert root.level == logging.DEBUG
            assert isinstance(structlog.get_config()["processors"][-1], structlog.dev.ConsoleRenderer)

            configure_logging(AppSettings(debug_mode=False, log_level="WARNING", log_format="json"))
            assert root.level == logging.WARNING
            assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)
        finally:
            root.setLevel(saved_level)
            structlog.configure(**saved_config)

        assert not hasattr(AppSettings(), "app_environment")


class TestMemoryApp:
    """Tests for create_app_components with the in-memory backend."""

    def test_fresh_app(self, memory_env, monkeypatch):
        """Test a new app gets an empty ledger and a default account."""
        monkeypatch.setenv("ACCOUNT_OWNER_NAME", "Priya")

        app = create_app_components(Settings())

        assert app.salary_ledger.periods == []
        assert app.account.owner_name == "Priya"
        assert app.account.transactions == []
        assert app.account_ledger.account is app.account
        assert app.engine.account is app.account

    def test_components_share_state(self, memory_env):
        """Test a payment through the engine is visible to analytics."""
        employee = Employee(name="Ben", monthly_salary=Decimal("500"))
        app = create_app_components(Settings(), directory=InMemoryDirectory(employees=[employee]))

        app.engine.create_monthly_periods_for_all_employees(date(2025, 3, 1))
        app.engine.salary_payment_with_carry_forward(Decimal("200"), date(2025, 3, 5), employee.id)

        overview = app.analytics.get_salary_overview()
        assert overview[0].total_unpaid == Decimal("300.00")
        breakdown = app.analytics.get_transaction_type_breakdown()
        assert breakdown[0].key == TransactionType.SALARY_PAYMENT.value
        assert app.check_consistency().is_valid

    def test_explicit_backends(self, memory_env):
        """Test passed-in backends are used as given."""
        employee_id = uuid4()
        storage = InMemoryLedgerStorage(periods=[
            SalaryPeriod(employee_id=employee_id, month=date(2025, 1, 1), total_due=100),
        ])
        audit_storage = InMemoryAuditStorage()

        app = create_app_components(Settings(), storage=storage, audit_storage=audit_storage)

        assert app.storage is storage
        assert app.audit_logger.storage is audit_storage
        assert app.salary_ledger.total_unpaid(employee_id) == Decimal("100.00")

    def test_inconsistent_periods_refused(self, memory_env):
        """Test duplicate stored periods stop startup."""
        employee_id = uuid4()
        period = SalaryPeriod(employee_id=employee_id, month=date(2025, 1, 1), total_due=100)
        audit_storage = InMemoryAuditStorage()

        with pytest.raises(InconsistentState):
            create_app_components(
                Settings(),
                storage=InMemoryLedgerStorage(periods=[period, period]),
                audit_storage=audit_storage,
            )
        assert audit_storage.events[-1].event_type == AuditEventType.INCONSISTENT_STATE_DETECTED

    def test_strict_status_updates_from_settings(self, memory_env, monkeypatch):
        """Test the engine picks up strict mode from settings."""
        monkeypatch.setenv("STRICT_STATUS_UPDATES", "true")
        app = create_app_components(Settings())

        with pytest.raises(UnknownEntity):
            app.engine.update_transaction_status(uuid4(), TransactionStatus.CANCELLED)


class TestJsonApp:
    """Tests for create_app_components with JSON files on disk."""

    def test_state_survives_restart(self, seeded_directory, json_env):
        """Test a payment is still there after rebuilding the app."""
        app = create_app_components(Settings())
        app.engine.create_monthly_periods_for_all_employees(date(2025, 1, 1))
        app.engine.salary_payment_with_carry_forward(
            Decimal("1200"), date(2025, 1, 31), seeded_directory.id,
        )

        restarted = create_app_components(Settings())

        ledger = restarted.salary_ledger
        assert ledger.get_period(seeded_directory.id, date(2025, 1, 1)).amount_paid == Decimal("1000.00")
        assert ledger.get_period(seeded_directory.id, date(2025, 2, 1)).is_advance
        assert restarted.account.total_balance == Decimal("1200.00")
        assert restarted.engine.find_incomplete_reconciliations() == []

    def test_corrupted_balance_refused(self, seeded_directory, json_env):
        """Test a stored balance that disagrees with the transactions."""
        app = create_app_components(Settings())
        app.engine.record_personal_deposit(Decimal("50"), date(2025, 1, 2))

        path = json_env / PERSONAL_ACCOUNT_FILE
        data = json.loads(path.read_text(encoding="utf-8"))
        data["total_balance"] = "0.00"
        path.write_text(json.dumps(data), encoding="utf-8")

        with pytest.raises(InconsistentState):
            create_app_components(Settings())

        audit = JsonFileAuditStorage(JsonDocumentStore(json_env))
        assert audit.get_recent_events(limit=1)[0].event_type == AuditEventType.INCONSISTENT_STATE_DETECTED

    def test_dangling_reconciliation_reported(self, seeded_directory, json_env):
        """Test a started operation with no outcome is found after restart."""
        audit = JsonFileAuditStorage(JsonDocumentStore(json_env))
        correlation_id = uuid4()
        audit.append_event(AuditEventBuilder.reconciliation_started(
            "salary_payment", correlation_id, {"employee_id": str(seeded_directory.id)},
        ))

        app = create_app_components(Settings())

        incomplete = app.engine.find_incomplete_reconciliations()
        assert [e.correlation_id for e in incomplete] == [correlation_id]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
