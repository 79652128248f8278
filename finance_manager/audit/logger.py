"""
Audit Logger

Every ledger mutation is logged. This provides:
1. Complete traceability of allocations and postings
2. Debugging capability when a reconciliation fails
3. An operation intent log (started / completed / failed per correlation id)

The audit logger:
- Runs inline with the ledger operation (the core is synchronous)
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
import sys
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_manager.config import AppSettings
from finance_manager.models.account import AccountTransaction
from finance_manager.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from finance_manager.models.salary import PaymentAllocationResult
from finance_manager.services.storage import AuditStorageInterface


def configure_logging(settings: Optional[AppSettings] = None) -> None:
    """
    Configure structlog for local logging.

    JSON lines by default; ``log_format="console"`` switches to the
    human-readable renderer. ``debug_mode`` forces DEBUG and the console
    renderer.
    """
    settings = settings or AppSettings()
    if settings.debug_mode:
        level = logging.DEBUG
    else:
        level = getattr(logging, settings.log_level)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )
    logging.getLogger().setLevel(level)

    if settings.debug_mode or settings.log_format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and the intent log)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_period_created(
        self,
        employee_id: UUID,
        month: date,
        total_due: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.salary_period_created(
            employee_id=employee_id,
            month=month,
            total_due=total_due,
            correlation_id=correlation_id,
        ))

    def log_periods_generated(
        self,
        reference_month: date,
        created_count: int,
        employee_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.salary_periods_generated(
            reference_month=reference_month,
            created_count=created_count,
            employee_count=employee_count,
            correlation_id=correlation_id,
        ))

    def log_salary_payment(
        self,
        result: PaymentAllocationResult,
        correlation_id: UUID,
    ) -> None:
        """Log an applied allocation, plus the advance when there is one."""
        self.log(AuditEventBuilder.salary_payment_applied(
            employee_id=result.employee_id,
            amount=result.amount,
            allocations=result.as_pairs(),
            correlation_id=correlation_id,
        ))
        if result.advance_month is not None:
            self.log(AuditEventBuilder.salary_advance_recorded(
                employee_id=result.employee_id,
                month=result.advance_month,
                amount=result.advance_amount,
                correlation_id=correlation_id,
            ))

    def log_transaction_posted(
        self,
        transaction: AccountTransaction,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.transaction_posted(
            transaction_id=transaction.id,
            transaction_type=transaction.type.value,
            amount=transaction.amount,
            status=transaction.status.value,
            correlation_id=correlation_id,
        ))

    def log_status_updated(
        self,
        transaction_id: UUID,
        new_status: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.transaction_status_updated(
            transaction_id=transaction_id,
            new_status=new_status,
            correlation_id=correlation_id,
        ))

    def log_status_rejected(
        self,
        transaction_id: UUID,
        requested_status: str,
        reason: str,
    ) -> None:
        self.log(AuditEventBuilder.transaction_status_rejected(
            transaction_id=transaction_id,
            requested_status=requested_status,
            reason=reason,
        ))

    def log_expense_reimbursed(
        self,
        expense_id: UUID,
        amount: Decimal,
        reimbursed_transaction_ids: list[UUID],
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.expense_reimbursed(
            expense_id=expense_id,
            amount=amount,
            reimbursed_transaction_ids=reimbursed_transaction_ids,
            correlation_id=correlation_id,
        ))

    def log_reconciliation_started(
        self,
        operation: str,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> None:
        self.log(AuditEventBuilder.reconciliation_started(
            operation=operation,
            correlation_id=correlation_id,
            details=details or {},
        ))

    def log_reconciliation_completed(
        self,
        operation: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.reconciliation_completed(
            operation=operation,
            correlation_id=correlation_id,
        ))

    def log_reconciliation_failed(
        self,
        operation: str,
        error: Exception,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.reconciliation_failed(
            operation=operation,
            error=error,
            correlation_id=correlation_id,
        ))

    def log_inconsistent_state(
        self,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.log(AuditEventBuilder.inconsistent_state(
            message=message,
            details=details,
        ))

    def log_save_failed(
        self,
        target: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.save_failed(
            target=target,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a reconciliation and pass it through every
    event the operation emits.
    """
    return uuid4()
