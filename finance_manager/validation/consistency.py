"""
Ledger Consistency Checks

Runs over loaded ledger state (typically right after storage load) and
reports anything that breaks the ledger invariants:

ERRORS (the ledger cannot be trusted):
- Two salary periods for the same employee and month
- A period month that is not the first of the month
- Negative due / paid amounts
- Two transactions sharing an id

WARNINGS (suspicious but workable):
- A regular (non-advance) period paid beyond its due amount
- A reimbursement date on a transaction that is not reimbursed

IMPORTANT: The checker NEVER fixes anything. It reports; callers decide.
"""

from typing import Iterable, Optional

from finance_manager.audit import AuditLogger
from finance_manager.errors import InconsistentState
from finance_manager.models.account import PersonalAccount, TransactionStatus
from finance_manager.models.salary import SalaryPeriod
from finance_manager.models.validation import ValidationIssue, ValidationResult


class LedgerConsistencyChecker:
    """Validates salary periods and the personal account together."""

    def __init__(self, audit_logger: Optional[AuditLogger] = None):
        self._audit = audit_logger

    def _check_periods(self, periods: Iterable[SalaryPeriod]) -> list[ValidationIssue]:
        issues = []
        seen = set()

        for period in periods:
            label = f"salary_period[{period.employee_id}:{period.month.isoformat()}]"

            if period.key in seen:
                issues.append(ValidationIssue(
                    field=label,
                    issue_type="duplicate_period",
                    message="More than one salary period for this employee and month",
                    severity="error",
                    suggested_fix="Merge the duplicate periods",
                ))
            seen.add(period.key)

            if period.month.day != 1:
                issues.append(ValidationIssue(
                    field=label,
                    issue_type="unnormalized_month",
                    message=f"Period month {period.month.isoformat()} is not a month start",
                    severity="error",
                ))

            if period.total_due < 0 or period.amount_paid < 0:
                issues.append(ValidationIssue(
                    field=label,
                    issue_type="negative_amount",
                    message="Salary period amounts cannot be negative",
                    severity="error",
                ))
            elif period.amount_paid > period.total_due and not period.is_advance:
                issues.append(ValidationIssue(
                    field=label,
                    issue_type="overpaid_period",
                    message=(
                        f"Paid {period.amount_paid} against {period.total_due} due; "
                        "overpayments are normally booked as advances"
                    ),
                    severity="warning",
                ))

        return issues

    def _check_account(self, account: PersonalAccount) -> list[ValidationIssue]:
        issues = []
        seen = set()

        for transaction in account.transactions:
            label = f"transaction[{transaction.id}]"

            if transaction.id in seen:
                issues.append(ValidationIssue(
                    field=label,
                    issue_type="duplicate_transaction_id",
                    message="Transaction id is used more than once",
                    severity="error",
                ))
            seen.add(transaction.id)

            if (
                transaction.reimbursement_date is not None
                and transaction.status != TransactionStatus.REIMBURSED
            ):
                issues.append(ValidationIssue(
                    field=label,
                    issue_type="stray_reimbursement_date",
                    message=(
                        f"Reimbursement date set on a {transaction.status.value} transaction"
                    ),
                    severity="warning",
                ))

        return issues

    def check(
        self,
        periods: Iterable[SalaryPeriod],
        account: Optional[PersonalAccount] = None,
    ) -> ValidationResult:
        """
        Run every check.

        Returns:
            ValidationResult; ``is_valid`` is False when any error was found
        """
        issues = self._check_periods(periods)
        if account is not None:
            issues.extend(self._check_account(account))

        has_errors = any(issue.severity == "error" for issue in issues)
        warnings = [issue.message for issue in issues if issue.severity == "warning"]

        return ValidationResult(
            is_valid=not has_errors,
            issues=issues,
            warnings=warnings,
        )

    def assert_consistent(
        self,
        periods: Iterable[SalaryPeriod],
        account: Optional[PersonalAccount] = None,
    ) -> ValidationResult:
        """
        Like ``check`` but raises on errors.

        Raises:
            InconsistentState: If any error-level issue was found
        """
        result = self.check(periods, account)
        if result.has_errors:
            details = {
                "issues": [
                    issue.model_dump() for issue in result.issues
                    if issue.severity == "error"
                ],
            }
            message = f"Ledger consistency check failed with {result.error_count} errors"
            if self._audit:
                self._audit.log_inconsistent_state(message, details)
            raise InconsistentState(message, details=details)
        return result
