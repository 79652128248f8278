"""
Analytics Aggregator

DESIGN DECISION: Analytics are DETERMINISTIC read-only rollups.
Every number comes from the directory collections and the live ledgers;
nothing is estimated, cached or written back.

GUARANTEES:
- Empty input gives zeros / empty lists, never an error
- No division by zero (ratios fall back to 0)
- Time series contain every bucket of the window, ascending, including
  buckets with no activity
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional
from uuid import UUID

from finance_manager.config import AnalyticsSettings
from finance_manager.ledger import PersonalAccountLedger, SalaryLedger
from finance_manager.models.account import (
    AccountTransaction,
    PersonalAccount,
    TransactionType,
)
from finance_manager.models.analytics import (
    CashFlowPoint,
    ClientFinancialSummary,
    FinancialMetric,
    MonthlyData,
    TimeRange,
)
from finance_manager.models.business import (
    Client,
    Employee,
    Expense,
    ExpenseCategory,
    ExpenseStatus,
)
from finance_manager.models.salary import EmployeeSalarySummary
from finance_manager.services.storage import DirectoryInterface
from finance_manager.utils import (
    ZERO,
    add_months,
    date_in_range,
    end_of_month,
    months_between,
    start_of_month,
    sum_money,
    to_money,
)


# Months looked back from the reference date for each cash-flow range
_RANGE_MONTHS = {
    TimeRange.MONTH: 1,
    TimeRange.QUARTER: 3,
    TimeRange.YEAR: 12,
}


def _percent(part: Decimal, whole: Decimal) -> Decimal:
    if whole <= 0:
        return ZERO
    return to_money(part / whole * 100)


def _months_back(value: date, months: int) -> date:
    """Same day ``months`` earlier, clamped to the end of a shorter month."""
    first = add_months(value, -months)
    return first.replace(day=min(value.day, end_of_month(first).day))


class AnalyticsAggregator:
    """
    Dashboard numbers over the ledgers and the directory.

    An optional ``company_id`` restricts employees, expenses and clients to
    one company. The personal account is never filtered: it belongs to
    the owner, not to a company.
    """

    def __init__(
        self,
        directory: DirectoryInterface,
        salary_ledger: SalaryLedger,
        account: PersonalAccount,
        company_id: Optional[UUID] = None,
        settings: Optional[AnalyticsSettings] = None,
    ):
        self._directory = directory
        self._salary_ledger = salary_ledger
        self._account_ledger = PersonalAccountLedger(account)
        self._company_id = company_id
        self._settings = settings or AnalyticsSettings()

    # =========================================================================
    # FILTERED COLLECTIONS
    # =========================================================================

    def _in_company(self, company_id: Optional[UUID]) -> bool:
        return self._company_id is None or company_id == self._company_id

    def _employees(self) -> list[Employee]:
        return [e for e in self._directory.list_employees() if self._in_company(e.company_id)]

    def _expenses(self) -> list[Expense]:
        return [e for e in self._directory.list_expenses() if self._in_company(e.company_id)]

    def _clients(self) -> list[Client]:
        return [c for c in self._directory.list_clients() if self._in_company(c.company_id)]

    # =========================================================================
    # KPIs
    # =========================================================================

    def total_revenue(self) -> Decimal:
        """Client payments received across all projects."""
        return sum_money(client.total_paid for client in self._clients())

    def total_expenses(self) -> Decimal:
        return sum_money(expense.amount for expense in self._expenses())

    def calculate_kpis(self) -> list[FinancialMetric]:
        """
        Headline numbers, in display order.

        ``profit_margin`` is a percentage and is 0 when there is no revenue.
        """
        revenue = self.total_revenue()
        expenses = self.total_expenses()
        profit = revenue - expenses
        pending = sum_money(
            e.amount for e in self._expenses() if e.status == ExpenseStatus.PENDING
        )
        outstanding = sum_money(c.total_balance_amount for c in self._clients())

        return [
            FinancialMetric(key="total_revenue", label="Total Revenue", value=revenue),
            FinancialMetric(key="total_expenses", label="Total Expenses", value=expenses),
            FinancialMetric(key="profit", label="Profit", value=profit),
            FinancialMetric(
                key="profit_margin",
                label="Profit Margin",
                value=_percent(profit, revenue),
            ),
            FinancialMetric(key="pending_payments", label="Pending Payments", value=pending),
            FinancialMetric(
                key="outstanding_balance",
                label="Outstanding Balance",
                value=outstanding,
            ),
        ]

    # =========================================================================
    # SERIES AND DISTRIBUTIONS
    # =========================================================================

    def get_monthly_financial_data(
        self,
        reference_date: Optional[date] = None,
        months: Optional[int] = None,
    ) -> list[MonthlyData]:
        """
        Income (client payments) and expenses per month, ending with the
        reference month. Exactly one entry per month of the window.
        """
        reference_date = reference_date or date.today()
        months = months or self._settings.monthly_window
        if months <= 0:
            return []

        last = start_of_month(reference_date)
        window = months_between(add_months(last, -(months - 1)), last)

        payments = [p for client in self._clients() for p in client.all_payments()]
        expenses = self._expenses()

        series = []
        for month in window:
            month_end = end_of_month(month)
            series.append(MonthlyData(
                month=month,
                income=sum_money(
                    p.amount for p in payments if date_in_range(p.date, month, month_end)
                ),
                expenses=sum_money(
                    e.amount for e in expenses if date_in_range(e.date, month, month_end)
                ),
            ))
        return series

    def get_expense_distribution(self) -> list[FinancialMetric]:
        """Expense totals per category, largest first; empty categories omitted."""
        expenses = self._expenses()
        distribution = []
        for category in ExpenseCategory:
            total = sum_money(e.amount for e in expenses if e.category == category)
            if total > 0:
                distribution.append(FinancialMetric(
                    key=category.value,
                    label=category.value.replace("_", " ").title(),
                    value=total,
                ))
        distribution.sort(key=lambda m: m.value, reverse=True)
        return distribution

    def get_client_revenue_distribution(self) -> list[FinancialMetric]:
        """Revenue per client, largest first; clients with no payments omitted."""
        distribution = [
            FinancialMetric(key=str(client.id), label=client.name, value=client.total_paid)
            for client in self._clients()
            if client.total_paid > 0
        ]
        distribution.sort(key=lambda m: m.value, reverse=True)
        return distribution

    # =========================================================================
    # PERSONAL ACCOUNT
    # =========================================================================

    def get_cash_flow(
        self,
        time_range: TimeRange = TimeRange.MONTH,
        reference_date: Optional[date] = None,
    ) -> list[CashFlowPoint]:
        """
        Spent / received per bucket over the window ending at the
        reference date.

        A week is bucketed by day over the last seven days; the longer
        ranges are bucketed by month.
        """
        end = reference_date or date.today()
        time_range = TimeRange(time_range)

        if time_range == TimeRange.WEEK:
            start = end - timedelta(days=7)
            buckets = [start + timedelta(days=i) for i in range((end - start).days + 1)]

            def bucket_of(value: date) -> date:
                return value
        else:
            start = _months_back(end, _RANGE_MONTHS[time_range])
            buckets = months_between(start, end)
            bucket_of = start_of_month

        totals = {bucket: [ZERO, ZERO] for bucket in buckets}
        for transaction in self._account_ledger.statement(start, end):
            bucket = totals[bucket_of(transaction.date)]
            if transaction.is_outflow:
                bucket[0] += transaction.amount
            else:
                bucket[1] += -transaction.amount

        return [
            CashFlowPoint(period_start=bucket, spent=spent, received=received)
            for bucket, (spent, received) in totals.items()
        ]

    def get_transaction_type_breakdown(self) -> list[FinancialMetric]:
        """Money paid out per transaction type, largest first."""
        totals: dict[TransactionType, Decimal] = {}
        for transaction in self._account_ledger.account.transactions:
            if transaction.is_outflow:
                totals[transaction.type] = totals.get(transaction.type, ZERO) + transaction.amount

        breakdown = [
            FinancialMetric(
                key=tx_type.value,
                label=tx_type.value.replace("_", " ").title(),
                value=amount,
            )
            for tx_type, amount in totals.items()
        ]
        breakdown.sort(key=lambda m: m.value, reverse=True)
        return breakdown

    def get_recent_transactions(self, limit: Optional[int] = None) -> list[AccountTransaction]:
        return self._account_ledger.recent_transactions(
            limit or self._settings.recent_transactions_limit
        )

    def get_personal_statement(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[AccountTransaction]:
        return self._account_ledger.statement(start, end)

    # =========================================================================
    # CLIENTS AND SALARIES
    # =========================================================================

    def get_client_financial_summary(self, client_id: UUID) -> Optional[ClientFinancialSummary]:
        """Contract progress for one client; None when the client is unknown."""
        for client in self._clients():
            if client.id != client_id:
                continue
            contract = client.total_contract_value
            paid = client.total_paid
            return ClientFinancialSummary(
                client_id=client.id,
                client_name=client.name,
                total_contract_value=contract,
                total_paid=paid,
                total_outstanding=client.total_balance_amount,
                progress_percent=_percent(paid, contract),
            )
        return None

    def get_salary_overview(self) -> list[EmployeeSalarySummary]:
        """Salary position of every employee, largest unpaid balance first."""
        overview = [
            EmployeeSalarySummary(
                employee_id=employee.id,
                employee_name=employee.name,
                monthly_salary=employee.monthly_salary,
                total_unpaid=self._salary_ledger.total_unpaid(employee.id),
                total_paid=self._salary_ledger.total_paid(employee.id),
                advance_paid=self._salary_ledger.advance_paid(employee.id),
                unpaid_periods=self._salary_ledger.get_unpaid_periods(employee.id),
            )
            for employee in self._employees()
        ]
        overview.sort(key=lambda s: (-s.total_unpaid, s.employee_name))
        return overview
