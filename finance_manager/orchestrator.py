"""
Main Orchestrator for Finance Manager

This module ties together all the components and defines the
end-to-end flows for:
1. Salary payment (validate → plan allocation → apply → post → persist)
2. Expense reimbursement (validate → post → mark pending as reimbursed → persist)
3. Personal postings and status changes
4. Salary period creation and monthly generation

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every input is validated before anything changes
- A multi-step operation is all-or-nothing: on any failure the ledgers
  are restored to their state before the call
- Every operation is audited, bracketed by reconciliation started /
  completed / failed events that share one correlation id

A started event with no completed or failed partner means the process
died mid-operation; ``find_incomplete_reconciliations`` lists those.
"""

from contextlib import contextmanager
from datetime import date
from typing import Iterator, Optional
from uuid import UUID

import structlog
from pydantic import BaseModel, Field

from finance_manager.analytics import AnalyticsAggregator
from finance_manager.audit import AuditLogger, configure_logging, create_correlation_id
from finance_manager.config import Settings, get_settings
from finance_manager.errors import (
    InconsistentState,
    LedgerError,
    UnknownEntity,
    require_positive,
)
from finance_manager.ledger import PersonalAccountLedger, SalaryLedger
from finance_manager.models.account import (
    AccountTransaction,
    PaymentMethod,
    PersonalAccount,
    TransactionStatus,
    TransactionType,
    can_transition,
)
from finance_manager.models.audit import AuditEvent, AuditEventType
from finance_manager.models.business import Employee
from finance_manager.models.salary import PaymentAllocationResult, SalaryPeriod
from finance_manager.models.validation import ValidationResult
from finance_manager.services.storage import (
    AuditStorageInterface,
    DirectoryInterface,
    InMemoryAuditStorage,
    InMemoryDirectory,
    InMemoryLedgerStorage,
    JsonDocumentStore,
    JsonFileAuditStorage,
    JsonFileDirectory,
    JsonFileLedgerStorage,
    LedgerStorageInterface,
)
from finance_manager.utils import AmountLike, month_label, start_of_month, to_money
from finance_manager.validation import LedgerConsistencyChecker


logger = structlog.get_logger(__name__)

# Longer coverage lists are summarized as a range in descriptions
_MAX_LISTED_MONTHS = 6


class ReconciliationResult(BaseModel):
    """What one engine operation changed."""

    correlation_id: UUID
    operation: str
    allocation: Optional[PaymentAllocationResult] = None
    transaction: Optional[AccountTransaction] = None
    updated_transaction_ids: list[UUID] = Field(default_factory=list)


def _describe_salary_payment(employee: Employee, plan: PaymentAllocationResult) -> str:
    labels = []
    for allocation in plan.allocations:
        label = month_label(allocation.month)
        labels.append(f"{label} (advance)" if allocation.is_advance else label)

    if len(labels) > _MAX_LISTED_MONTHS:
        covered = f"{labels[0]} to {labels[-1]} ({len(labels)} months)"
    else:
        covered = ", ".join(labels)
    return f"Salary payment to {employee.name}: {covered}"


class ReconciliationEngine:
    """
    Coordinates the salary ledger and the personal account.

    Flow for every mutating operation:
    1. Validate inputs (nothing has changed yet)
    2. Snapshot ledger and account, audit "started"
    3. Apply the mutations
    4. Persist periods, then the account
    5. Audit "completed"

    Any exception in 3 or 4 restores the snapshot, re-persists it best
    effort, audits "failed" and re-raises.
    """

    def __init__(
        self,
        salary_ledger: SalaryLedger,
        account: PersonalAccount,
        directory: DirectoryInterface,
        storage: Optional[LedgerStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        strict_status_updates: bool = False,
        audit_scan_limit: int = 1000,
    ):
        self._salary_ledger = salary_ledger
        self._account = account
        self._directory = directory
        self._storage = storage
        self._audit = audit_logger or AuditLogger()
        self._strict_status_updates = strict_status_updates
        self._audit_scan_limit = audit_scan_limit

    @property
    def salary_ledger(self) -> SalaryLedger:
        return self._salary_ledger

    @property
    def account(self) -> PersonalAccount:
        return self._account

    # =========================================================================
    # PERSISTENCE AND ROLLBACK
    # =========================================================================

    def _persist(self) -> None:
        if self._storage is None:
            return
        self._storage.save_salary_periods(self._salary_ledger.periods)
        self._storage.save_personal_account(self._account)

    def _restore(
        self,
        periods: list[SalaryPeriod],
        account: PersonalAccount,
        correlation_id: UUID,
    ) -> None:
        self._salary_ledger.restore(periods)
        # in place: analytics and account views hold this same instance
        self._account.transactions = account.transactions
        self._account.last_updated = account.last_updated

        try:
            self._persist()
        except Exception as e:
            logger.error(
                "rollback_persist_failed",
                correlation_id=str(correlation_id),
                error=str(e),
            )
            self._audit.log_save_failed(
                target="rolled back ledger state",
                error_message=str(e),
                correlation_id=correlation_id,
            )

    @contextmanager
    def _reconciliation(
        self,
        operation: str,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> Iterator[None]:
        periods_snapshot = self._salary_ledger.snapshot()
        account_snapshot = self._account.model_copy(deep=True)
        self._audit.log_reconciliation_started(operation, correlation_id, details)

        try:
            yield
            self._persist()
        except Exception as e:
            logger.error(
                "reconciliation_failed",
                operation=operation,
                correlation_id=str(correlation_id),
                error=str(e),
                error_type=type(e).__name__,
            )
            self._restore(periods_snapshot, account_snapshot, correlation_id)
            if isinstance(e, InconsistentState):
                self._audit.log_inconsistent_state(str(e), e.details)
            elif not isinstance(e, LedgerError):
                self._audit.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"operation": operation},
                    correlation_id=correlation_id,
                )
            self._audit.log_reconciliation_failed(operation, e, correlation_id)
            raise

        self._audit.log_reconciliation_completed(operation, correlation_id)

    def _require_employee(self, employee_id: UUID) -> Employee:
        employee = self._directory.get_employee(employee_id)
        if employee is None:
            raise UnknownEntity("employee", employee_id)
        return employee

    # =========================================================================
    # SALARY
    # =========================================================================

    def salary_payment_with_carry_forward(
        self,
        amount: AmountLike,
        payment_date: date,
        employee_id: UUID,
        payment_method: PaymentMethod = PaymentMethod.BANK_TRANSFER,
        paid_from_personal_funds: bool = True,
        reference_number: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ReconciliationResult:
        """
        Allocate a salary payment and, when the owner paid it personally,
        post the matching personal-account transaction.

        Both changes happen or neither does.

        Raises:
            InvalidAmount: If amount <= 0
            UnknownEntity: If the employee is not in the directory
        """
        amount = require_positive(to_money(amount))
        employee = self._require_employee(employee_id)
        correlation_id = create_correlation_id()

        plan = self._salary_ledger.plan_payment(employee_id, amount, payment_date)

        transaction = None
        if paid_from_personal_funds:
            transaction = AccountTransaction(
                date=payment_date,
                amount=amount,
                description=_describe_salary_payment(employee, plan),
                type=TransactionType.SALARY_PAYMENT,
                status=TransactionStatus.COMPLETED,
                related_employee_id=employee_id,
                payment_method=payment_method,
                reference_number=reference_number,
                notes=notes,
            )

        details = {
            "employee_id": str(employee_id),
            "amount": str(amount),
            "paid_from_personal_funds": paid_from_personal_funds,
        }
        with self._reconciliation("salary_payment", correlation_id, details):
            self._salary_ledger.apply_allocation(plan)
            self._audit.log_salary_payment(plan, correlation_id)
            if transaction is not None:
                self._account.add_transaction(transaction)
                self._audit.log_transaction_posted(transaction, correlation_id)

        logger.info(
            "salary_payment_reconciled",
            employee_id=str(employee_id),
            amount=str(amount),
            allocations=len(plan.allocations),
            advance=str(plan.advance_amount),
        )
        return ReconciliationResult(
            correlation_id=correlation_id,
            operation="salary_payment",
            allocation=plan,
            transaction=transaction,
        )

    def add_salary_period(
        self,
        employee_id: UUID,
        month: date,
        total_due: AmountLike,
        notes: Optional[str] = None,
    ) -> SalaryPeriod:
        """
        Raises:
            DuplicatePeriod: If the employee already has that month
            InvalidAmount: If total_due is negative
        """
        correlation_id = create_correlation_id()
        details = {"employee_id": str(employee_id), "month": month.isoformat()}
        with self._reconciliation("add_salary_period", correlation_id, details):
            period = self._salary_ledger.add_salary_period(employee_id, month, total_due, notes)
            self._audit.log_period_created(
                employee_id, period.month, period.total_due, correlation_id
            )
        return period

    def create_monthly_periods_for_all_employees(
        self,
        reference_date: date,
    ) -> list[SalaryPeriod]:
        """Idempotent: a second call for the same month creates nothing."""
        correlation_id = create_correlation_id()
        details = {"reference_date": reference_date.isoformat()}
        with self._reconciliation("generate_monthly_periods", correlation_id, details):
            created = self._salary_ledger.create_monthly_periods_for_all_employees(
                reference_date
            )
            for period in created:
                self._audit.log_period_created(
                    period.employee_id, period.month, period.total_due, correlation_id
                )
            self._audit.log_periods_generated(
                reference_month=start_of_month(reference_date),
                created_count=len(created),
                employee_count=len(self._directory.list_employees()),
                correlation_id=correlation_id,
            )
        return created

    # =========================================================================
    # PERSONAL ACCOUNT
    # =========================================================================

    def record_expense_reimbursement(
        self,
        expense_id: UUID,
        amount: AmountLike,
        reimbursement_date: date,
        payment_method: PaymentMethod = PaymentMethod.BANK_TRANSFER,
        reference_number: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ReconciliationResult:
        """
        Post money received from the company for an expense and mark the
        expense's pending personal payments as reimbursed.

        Raises:
            InvalidAmount: If amount <= 0
            UnknownEntity: If the expense is not in the directory
        """
        amount = require_positive(to_money(amount))
        expense = self._directory.get_expense(expense_id)
        if expense is None:
            raise UnknownEntity("expense", expense_id)
        correlation_id = create_correlation_id()

        transaction = AccountTransaction(
            date=reimbursement_date,
            amount=-amount,
            description=f"Reimbursement: {expense.description or expense.category.value}"[:500],
            type=TransactionType.COMPANY_REIMBURSEMENT,
            status=TransactionStatus.COMPLETED,
            related_expense_id=expense_id,
            payment_method=payment_method,
            reference_number=reference_number,
            notes=notes,
        )
        pending_ids = [t.id for t in self._account.pending_for_expense(expense_id)]

        details = {"expense_id": str(expense_id), "amount": str(amount)}
        with self._reconciliation("expense_reimbursement", correlation_id, details):
            self._account.add_transaction(transaction)
            self._audit.log_transaction_posted(transaction, correlation_id)
            for transaction_id in pending_ids:
                changed = self._account.update_transaction_status(
                    transaction_id,
                    TransactionStatus.REIMBURSED,
                    reimbursement_date=reimbursement_date,
                )
                if not changed:
                    raise InconsistentState(
                        "Pending expense payment could not be marked reimbursed",
                        details={"transaction_id": str(transaction_id)},
                    )
                self._audit.log_status_updated(
                    transaction_id, TransactionStatus.REIMBURSED.value, correlation_id
                )
            self._audit.log_expense_reimbursed(expense_id, amount, pending_ids, correlation_id)

        return ReconciliationResult(
            correlation_id=correlation_id,
            operation="expense_reimbursement",
            transaction=transaction,
            updated_transaction_ids=pending_ids,
        )

    def record_personal_expense_payment(
        self,
        expense_id: UUID,
        amount: AmountLike,
        payment_date: date,
        payment_method: PaymentMethod = PaymentMethod.CASH,
        description: Optional[str] = None,
        reference_number: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ReconciliationResult:
        """
        The owner paid a company expense personally. Posted as pending
        until the company reimburses it.

        Raises:
            InvalidAmount: If amount <= 0
            UnknownEntity: If the expense is not in the directory
        """
        amount = require_positive(to_money(amount))
        expense = self._directory.get_expense(expense_id)
        if expense is None:
            raise UnknownEntity("expense", expense_id)
        correlation_id = create_correlation_id()

        transaction = AccountTransaction(
            date=payment_date,
            amount=amount,
            description=(
                description
                or f"Expense paid: {expense.description or expense.category.value}"
            )[:500],
            type=TransactionType.EXPENSE_PAYMENT,
            related_expense_id=expense_id,
            payment_method=payment_method,
            reference_number=reference_number,
            notes=notes,
        )

        details = {"expense_id": str(expense_id), "amount": str(amount)}
        with self._reconciliation("personal_expense_payment", correlation_id, details):
            self._account.add_transaction(transaction)
            self._audit.log_transaction_posted(transaction, correlation_id)

        return ReconciliationResult(
            correlation_id=correlation_id,
            operation="personal_expense_payment",
            transaction=transaction,
        )

    def record_personal_deposit(
        self,
        amount: AmountLike,
        deposit_date: date,
        description: str = "Personal deposit",
        payment_method: Optional[PaymentMethod] = None,
        reference_number: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ReconciliationResult:
        """
        Raises:
            InvalidAmount: If amount <= 0
        """
        amount = require_positive(to_money(amount))
        correlation_id = create_correlation_id()

        transaction = AccountTransaction(
            date=deposit_date,
            amount=-amount,
            description=description,
            type=TransactionType.PERSONAL_DEPOSIT,
            status=TransactionStatus.COMPLETED,
            payment_method=payment_method,
            reference_number=reference_number,
            notes=notes,
        )

        with self._reconciliation("personal_deposit", correlation_id, {"amount": str(amount)}):
            self._account.add_transaction(transaction)
            self._audit.log_transaction_posted(transaction, correlation_id)

        return ReconciliationResult(
            correlation_id=correlation_id,
            operation="personal_deposit",
            transaction=transaction,
        )

    def update_transaction_status(
        self,
        transaction_id: UUID,
        status: TransactionStatus,
        reimbursement_date: Optional[date] = None,
    ) -> bool:
        """
        Change a transaction's status and persist it.

        Returns False, changing nothing, when the transition is not allowed
        or the id is unknown (the latter raises UnknownEntity when strict
        status updates are configured).
        """
        status = TransactionStatus(status)
        transaction = self._account.get_transaction(transaction_id)

        if transaction is None:
            if self._strict_status_updates:
                raise UnknownEntity("transaction", transaction_id)
            logger.warning(
                "transaction_not_found",
                transaction_id=str(transaction_id),
                requested_status=status.value,
            )
            self._audit.log_status_rejected(transaction_id, status.value, "unknown transaction")
            return False

        if not can_transition(transaction.status, status):
            self._audit.log_status_rejected(
                transaction_id,
                status.value,
                f"{transaction.status.value} cannot change to {status.value}",
            )
            return False

        correlation_id = create_correlation_id()
        details = {"transaction_id": str(transaction_id), "status": status.value}
        with self._reconciliation("transaction_status_update", correlation_id, details):
            self._account.update_transaction_status(
                transaction_id, status, reimbursement_date=reimbursement_date
            )
            self._audit.log_status_updated(transaction_id, status.value, correlation_id)
        return True

    # =========================================================================
    # RECOVERY
    # =========================================================================

    def find_incomplete_reconciliations(self) -> list[AuditEvent]:
        """
        Started events with no completed / failed partner, oldest first.

        Only the most recent ``audit_scan_limit`` events are scanned; with
        no audit storage there is nothing to scan.
        """
        storage = self._audit.storage
        if storage is None:
            return []

        started: dict[UUID, AuditEvent] = {}
        finished: set[UUID] = set()
        for event in storage.get_recent_events(limit=self._audit_scan_limit):
            if event.correlation_id is None:
                continue
            if event.event_type == AuditEventType.RECONCILIATION_STARTED:
                started[event.correlation_id] = event
            elif event.event_type in (
                AuditEventType.RECONCILIATION_COMPLETED,
                AuditEventType.RECONCILIATION_FAILED,
            ):
                finished.add(event.correlation_id)

        incomplete = [e for cid, e in started.items() if cid not in finished]
        incomplete.sort(key=lambda e: e.timestamp)
        return incomplete


class FinanceApp:
    """
    The assembled application.

    Owns the single ledger state; every component receives the same
    instances by reference.
    """

    def __init__(
        self,
        settings: Settings,
        storage: LedgerStorageInterface,
        directory: DirectoryInterface,
        audit_logger: AuditLogger,
        salary_ledger: SalaryLedger,
        account: PersonalAccount,
        engine: ReconciliationEngine,
        analytics: AnalyticsAggregator,
        checker: LedgerConsistencyChecker,
    ):
        self.settings = settings
        self.storage = storage
        self.directory = directory
        self.audit_logger = audit_logger
        self.salary_ledger = salary_ledger
        self.account = account
        self.account_ledger = PersonalAccountLedger(account)
        self.engine = engine
        self.analytics = analytics
        self.checker = checker

    def check_consistency(self) -> ValidationResult:
        """Re-run the consistency checks over the live state."""
        return self.checker.check(self.salary_ledger.periods, self.account)


def create_app_components(
    settings: Optional[Settings] = None,
    storage: Optional[LedgerStorageInterface] = None,
    directory: Optional[DirectoryInterface] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
) -> FinanceApp:
    """
    Factory function to create all application components.

    Backends not passed in are built from the storage settings (JSON files
    under ``data_dir``, or in-memory). Stored state is loaded and checked
    before anything is handed out.

    Raises:
        InconsistentState: If the stored state breaks a ledger invariant
        StorageConnectionError: If a stored document cannot be read
    """
    settings = settings or get_settings()
    app_settings = settings.app
    storage_settings = settings.storage
    configure_logging(app_settings)

    if storage_settings.backend == "memory":
        storage = storage or InMemoryLedgerStorage()
        directory = directory or InMemoryDirectory()
        audit_storage = audit_storage or InMemoryAuditStorage()
    else:
        store = JsonDocumentStore.from_settings(storage_settings)
        storage = storage or JsonFileLedgerStorage(store)
        directory = directory or JsonFileDirectory(store)
        audit_storage = audit_storage or JsonFileAuditStorage(store)

    audit_logger = AuditLogger(audit_storage)
    checker = LedgerConsistencyChecker(audit_logger)

    try:
        periods = storage.load_salary_periods()
        account = storage.load_personal_account()
    except InconsistentState as e:
        audit_logger.log_inconsistent_state(str(e), e.details)
        raise

    if account is None:
        account = PersonalAccount(
            owner_name=app_settings.account_owner_name,
            account_holder=app_settings.account_holder,
            bank_name=app_settings.account_bank_name,
            account_number=app_settings.account_number,
        )
        logger.info("personal_account_created", owner_name=account.owner_name)

    checker.assert_consistent(periods, account)

    salary_ledger = SalaryLedger(directory, periods)
    engine = ReconciliationEngine(
        salary_ledger=salary_ledger,
        account=account,
        directory=directory,
        storage=storage,
        audit_logger=audit_logger,
        strict_status_updates=app_settings.strict_status_updates,
        audit_scan_limit=settings.analytics.audit_scan_limit,
    )
    analytics = AnalyticsAggregator(
        directory=directory,
        salary_ledger=salary_ledger,
        account=account,
        settings=settings.analytics,
    )

    incomplete = engine.find_incomplete_reconciliations()
    if incomplete:
        logger.warning(
            "incomplete_reconciliations_found",
            count=len(incomplete),
            correlation_ids=[str(e.correlation_id) for e in incomplete],
        )

    return FinanceApp(
        settings=settings,
        storage=storage,
        directory=directory,
        audit_logger=audit_logger,
        salary_ledger=salary_ledger,
        account=account,
        engine=engine,
        analytics=analytics,
        checker=checker,
    )
