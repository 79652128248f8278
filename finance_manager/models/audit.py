"""
Audit Models for Finance Manager

Every ledger mutation is logged for audit purposes. This provides:
1. Complete traceability of salary allocations and account postings
2. Debugging information when a reconciliation fails half-way
3. An intent log: a started reconciliation without a matching
   completed/failed event marks an operation that needs attention

Audit logs are append-only. Nothing deletes or modifies them.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Salary ledger
    SALARY_PERIOD_CREATED = "salary_period_created"
    SALARY_PERIODS_GENERATED = "salary_periods_generated"
    SALARY_PAYMENT_APPLIED = "salary_payment_applied"
    SALARY_ADVANCE_RECORDED = "salary_advance_recorded"

    # Personal account
    TRANSACTION_POSTED = "transaction_posted"
    TRANSACTION_STATUS_UPDATED = "transaction_status_updated"
    TRANSACTION_STATUS_REJECTED = "transaction_status_rejected"
    EXPENSE_REIMBURSED = "expense_reimbursed"

    # Reconciliation intent log
    RECONCILIATION_STARTED = "reconciliation_started"
    RECONCILIATION_COMPLETED = "reconciliation_completed"
    RECONCILIATION_FAILED = "reconciliation_failed"

    # Integrity and persistence
    INCONSISTENT_STATE_DETECTED = "inconsistent_state_detected"
    SAVE_FAILED = "save_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _json_default(value: Any) -> str:
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    raise TypeError(f"Not JSON serializable: {type(value).__name__}")


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every ledger mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'employee', 'transaction', 'expense')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - ties together the events of one reconciliation
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": json.loads(json.dumps(self.details, default=_json_default)),
            "error_code": self.error_code,
            "error_message": self.error_message,
        }

    def to_json_line(self) -> str:
        """One line of the JSON-lines audit file."""
        return self.model_dump_json()


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.salary_payment_applied(employee_id, result, correlation_id)
        event = AuditEventBuilder.transaction_posted(transaction, correlation_id)
    """

    @staticmethod
    def salary_period_created(
        employee_id: UUID,
        month: date,
        total_due: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SALARY_PERIOD_CREATED,
            entity_type="employee",
            entity_id=employee_id,
            correlation_id=correlation_id,
            description=f"Salary period created for {month:%Y-%m}",
            details={
                "month": month.isoformat(),
                "total_due": str(total_due),
            },
        )

    @staticmethod
    def salary_periods_generated(
        reference_month: date,
        created_count: int,
        employee_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SALARY_PERIODS_GENERATED,
            entity_type="salary_ledger",
            correlation_id=correlation_id,
            description=(
                f"Monthly periods for {reference_month:%Y-%m}: "
                f"{created_count} created for {employee_count} employees"
            ),
            details={
                "month": reference_month.isoformat(),
                "created": created_count,
                "employees": employee_count,
            },
        )

    @staticmethod
    def salary_payment_applied(
        employee_id: UUID,
        amount: Decimal,
        allocations: list[tuple[date, Decimal]],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SALARY_PAYMENT_APPLIED,
            entity_type="employee",
            entity_id=employee_id,
            correlation_id=correlation_id,
            description=f"Salary payment of {amount} allocated over {len(allocations)} months",
            details={
                "amount": str(amount),
                "allocations": [
                    {"month": month.isoformat(), "amount": str(applied)}
                    for month, applied in allocations
                ],
            },
        )

    @staticmethod
    def salary_advance_recorded(
        employee_id: UUID,
        month: date,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SALARY_ADVANCE_RECORDED,
            entity_type="employee",
            entity_id=employee_id,
            correlation_id=correlation_id,
            description=f"Salary advance of {amount} booked against {month:%Y-%m}",
            details={
                "month": month.isoformat(),
                "amount": str(amount),
            },
        )

    @staticmethod
    def transaction_posted(
        transaction_id: UUID,
        transaction_type: str,
        amount: Decimal,
        status: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_POSTED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction posted: {transaction_type} {amount}",
            details={
                "type": transaction_type,
                "amount": str(amount),
                "status": status,
            },
        )

    @staticmethod
    def transaction_status_updated(
        transaction_id: UUID,
        new_status: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_STATUS_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction status changed to {new_status}",
            details={"status": new_status},
        )

    @staticmethod
    def transaction_status_rejected(
        transaction_id: UUID,
        requested_status: str,
        reason: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_STATUS_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Status change to {requested_status} ignored: {reason}",
            details={
                "requested_status": requested_status,
                "reason": reason,
            },
        )

    @staticmethod
    def expense_reimbursed(
        expense_id: UUID,
        amount: Decimal,
        reimbursed_transaction_ids: list[UUID],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_REIMBURSED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense reimbursed: {amount}",
            details={
                "amount": str(amount),
                "reimbursed_transactions": [str(t) for t in reimbursed_transaction_ids],
            },
        )

    @staticmethod
    def reconciliation_started(
        operation: str,
        correlation_id: UUID,
        details: dict,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECONCILIATION_STARTED,
            entity_type="reconciliation",
            correlation_id=correlation_id,
            description=f"Reconciliation started: {operation}",
            details={"operation": operation, **details},
        )

    @staticmethod
    def reconciliation_completed(
        operation: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECONCILIATION_COMPLETED,
            entity_type="reconciliation",
            correlation_id=correlation_id,
            description=f"Reconciliation completed: {operation}",
            details={"operation": operation},
        )

    @staticmethod
    def reconciliation_failed(
        operation: str,
        error: Exception,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECONCILIATION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="reconciliation",
            correlation_id=correlation_id,
            description=f"Reconciliation failed and was rolled back: {operation}",
            details={"operation": operation},
            error_code=getattr(error, "code", type(error).__name__),
            error_message=str(error),
        )

    @staticmethod
    def inconsistent_state(
        message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCONSISTENT_STATE_DETECTED,
            severity=AuditSeverity.CRITICAL,
            description="Ledger invariant violated",
            details=details or {},
            error_code="inconsistent_state",
            error_message=message,
        )

    @staticmethod
    def save_failed(
        target: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            description=f"Failed to save {target}",
            error_message=error_message,
            details={"target": target},
            correlation_id=correlation_id,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
