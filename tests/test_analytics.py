"""
Tests for the analytics aggregator.
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from finance_manager.analytics import AnalyticsAggregator
from finance_manager.config import AnalyticsSettings
from finance_manager.ledger import SalaryLedger
from finance_manager.models import (
    AccountTransaction,
    Client,
    ClientPayment,
    Employee,
    Expense,
    ExpenseCategory,
    ExpenseStatus,
    PersonalAccount,
    Project,
    TimeRange,
    TransactionType,
)
from finance_manager.services.storage import InMemoryDirectory


REF = date(2025, 6, 15)


def kpi_map(aggregator):
    return {m.key: m.value for m in aggregator.calculate_kpis()}


def make_client(name, contract, payments, company_id=None):
    return Client(
        name=name,
        company_id=company_id,
        projects=[Project(
            name=f"{name} project",
            contract_amount=Decimal(contract),
            payments=[ClientPayment(date=d, amount=Decimal(a)) for d, a in payments],
        )],
    )


def posting(day, amount, tx_type=TransactionType.OTHER):
    return AccountTransaction(
        date=day,
        amount=Decimal(amount),
        description="entry",
        type=tx_type,
    )


@pytest.fixture
def empty_aggregator():
    directory = InMemoryDirectory()
    return AnalyticsAggregator(directory, SalaryLedger(directory), PersonalAccount())


@pytest.fixture
def business_directory():
    return InMemoryDirectory(
        clients=[
            make_client("Acme", "1000", [(date(2025, 5, 3), "300"), (date(2025, 6, 1), "100")]),
            make_client("Globex", "500", [(date(2024, 1, 10), "50")]),
        ],
        expenses=[
            Expense(date=date(2025, 6, 2), amount=Decimal("60"), category=ExpenseCategory.TRAVEL),
            Expense(
                date=date(2025, 5, 20),
                amount=Decimal("40"),
                category=ExpenseCategory.CLIENT_MEETING,
                status=ExpenseStatus.APPROVED,
            ),
            Expense(date=date(2025, 6, 9), amount=Decimal("10"), category=ExpenseCategory.TRAVEL),
        ],
    )


@pytest.fixture
def aggregator(business_directory):
    return AnalyticsAggregator(
        business_directory, SalaryLedger(business_directory), PersonalAccount(),
    )


class TestKPIs:
    """Tests for calculate_kpis."""

    def test_empty_input_is_all_zero(self, empty_aggregator):
        """Test zero revenue gives zeros and a 0 margin, not an error."""
        kpis = kpi_map(empty_aggregator)
        assert set(kpis) == {
            "total_revenue", "total_expenses", "profit",
            "profit_margin", "pending_payments", "outstanding_balance",
        }
        assert all(value == Decimal("0") for value in kpis.values())

    def test_values(self, aggregator):
        """Test revenue, expenses, margin and balances."""
        kpis = kpi_map(aggregator)
        assert kpis["total_revenue"] == Decimal("450.00")
        assert kpis["total_expenses"] == Decimal("110.00")
        assert kpis["profit"] == Decimal("340.00")
        assert kpis["profit_margin"] == Decimal("75.56")
        assert kpis["pending_payments"] == Decimal("70.00")
        assert kpis["outstanding_balance"] == Decimal("1050.00")

    def test_round_margin(self):
        """Test a 400 revenue / 100 expense margin of 75."""
        directory = InMemoryDirectory(
            clients=[make_client("Solo", "400", [(REF, "400")])],
            expenses=[Expense(date=REF, amount=Decimal("100"))],
        )
        aggregator = AnalyticsAggregator(directory, SalaryLedger(directory), PersonalAccount())
        assert kpi_map(aggregator)["profit_margin"] == Decimal("75.00")

    def test_expenses_without_revenue(self):
        """Test a loss with no revenue keeps the margin at zero."""
        directory = InMemoryDirectory(expenses=[Expense(date=REF, amount=Decimal("25"))])
        aggregator = AnalyticsAggregator(directory, SalaryLedger(directory), PersonalAccount())
        kpis = kpi_map(aggregator)
        assert kpis["profit"] == Decimal("-25.00")
        assert kpis["profit_margin"] == Decimal("0")


class TestMonthlySeries:
    """Tests for get_monthly_financial_data."""

    def test_twelve_month_window(self, aggregator):
        """Test one entry per month, ascending, ending at the reference month."""
        series = aggregator.get_monthly_financial_data(REF)
        assert len(series) == 12
        assert series[0].month == date(2024, 7, 1)
        assert series[-1].month == date(2025, 6, 1)

    def test_buckets(self, aggregator):
        """Test income and expenses land in their months."""
        series = {m.month: m for m in aggregator.get_monthly_financial_data(REF)}
        assert series[date(2025, 5, 1)].income == Decimal("300.00")
        assert series[date(2025, 5, 1)].expenses == Decimal("40.00")
        assert series[date(2025, 6, 1)].income == Decimal("100.00")
        assert series[date(2025, 6, 1)].expenses == Decimal("70.00")
        assert series[date(2025, 6, 1)].profit == Decimal("30.00")
        assert series[date(2024, 7, 1)].income == Decimal("0")

    def test_window_from_settings(self, business_directory):
        """Test the configured window length."""
        aggregator = AnalyticsAggregator(
            business_directory,
            SalaryLedger(business_directory),
            PersonalAccount(),
            settings=AnalyticsSettings(monthly_window=3),
        )
        months = [m.month for m in aggregator.get_monthly_financial_data(REF)]
        assert months == [date(2025, 4, 1), date(2025, 5, 1), date(2025, 6, 1)]

    def test_empty_input(self, empty_aggregator):
        """Test an empty directory still yields every month."""
        series = empty_aggregator.get_monthly_financial_data(REF, months=6)
        assert len(series) == 6
        assert all(m.income == 0 and m.expenses == 0 for m in series)


class TestDistributions:
    """Tests for expense and client distributions."""

    def test_expense_distribution(self, aggregator):
        """Test per-category totals, largest first."""
        distribution = aggregator.get_expense_distribution()
        assert [(m.key, m.label, m.value) for m in distribution] == [
            ("travel", "Travel", Decimal("70.00")),
            ("client_meeting", "Client Meeting", Decimal("40.00")),
        ]

    def test_client_revenue_distribution(self, aggregator, business_directory):
        """Test per-client revenue, largest first."""
        distribution = aggregator.get_client_revenue_distribution()
        assert [m.label for m in distribution] == ["Acme", "Globex"]
        assert distribution[0].value == Decimal("400.00")
        acme = business_directory.list_clients()[0]
        assert distribution[0].key == str(acme.id)

    def test_empty(self, empty_aggregator):
        """Test empty distributions."""
        assert empty_aggregator.get_expense_distribution() == []
        assert empty_aggregator.get_client_revenue_distribution() == []


class TestCashFlow:
    """Tests for get_cash_flow."""

    @pytest.fixture
    def cash_aggregator(self):
        account = PersonalAccount(transactions=[
            posting(date(2025, 6, 10), "100", TransactionType.SALARY_PAYMENT),
            posting(date(2025, 6, 10), "-30", TransactionType.COMPANY_REIMBURSEMENT),
            posting(date(2025, 6, 15), "20", TransactionType.EXPENSE_PAYMENT),
            posting(date(2025, 4, 2), "50", TransactionType.EXPENSE_PAYMENT),
            posting(date(2025, 3, 10), "999"),
        ])
        directory = InMemoryDirectory()
        return AnalyticsAggregator(directory, SalaryLedger(directory), account)

    def test_week_buckets_by_day(self, cash_aggregator):
        """Test eight daily buckets including empty days."""
        flow = cash_aggregator.get_cash_flow(TimeRange.WEEK, REF)
        assert [p.period_start for p in flow] == [date(2025, 6, d) for d in range(8, 16)]
        by_day = {p.period_start: p for p in flow}
        assert by_day[date(2025, 6, 10)].spent == Decimal("100.00")
        assert by_day[date(2025, 6, 10)].received == Decimal("30.00")
        assert by_day[date(2025, 6, 10)].net == Decimal("70.00")
        assert by_day[date(2025, 6, 9)].spent == Decimal("0")

    def test_month(self, cash_aggregator):
        """Test the month range covers the previous and current month."""
        flow = cash_aggregator.get_cash_flow(TimeRange.MONTH, REF)
        assert [p.period_start for p in flow] == [date(2025, 5, 1), date(2025, 6, 1)]
        assert flow[1].spent == Decimal("120.00")

    def test_quarter_excludes_before_start(self, cash_aggregator):
        """Test the quarter starts three months back to the day."""
        flow = cash_aggregator.get_cash_flow(TimeRange.QUARTER, REF)
        assert [p.period_start for p in flow] == [
            date(2025, 3, 1), date(2025, 4, 1), date(2025, 5, 1), date(2025, 6, 1),
        ]
        assert flow[0].spent == Decimal("0")
        assert flow[1].spent == Decimal("50.00")

    def test_year(self, cash_aggregator):
        """Test a year gives thirteen monthly buckets."""
        flow = cash_aggregator.get_cash_flow("year", REF)
        assert len(flow) == 13
        assert flow[0].period_start == date(2024, 6, 1)
        assert sum(p.spent for p in flow) == Decimal("1169.00")

    def test_empty_account(self, empty_aggregator):
        """Test every bucket is present with no transactions."""
        flow = empty_aggregator.get_cash_flow(TimeRange.WEEK, REF)
        assert len(flow) == 8
        assert all(p.spent == 0 and p.received == 0 for p in flow)

    def test_type_breakdown(self, cash_aggregator):
        """Test outflows grouped by type, largest first."""
        breakdown = cash_aggregator.get_transaction_type_breakdown()
        assert [(m.key, m.value) for m in breakdown] == [
            ("other", Decimal("999.00")),
            ("salary_payment", Decimal("100.00")),
            ("expense_payment", Decimal("70.00")),
        ]

    def test_recent_transactions(self, cash_aggregator):
        """Test newest first with the configured default limit."""
        recent = cash_aggregator.get_recent_transactions()
        assert len(recent) == 5
        assert recent[0].date == date(2025, 6, 15)
        assert [t.date for t in cash_aggregator.get_recent_transactions(limit=2)] == [
            date(2025, 6, 15), date(2025, 6, 10),
        ]

    def test_personal_statement(self, cash_aggregator):
        """Test the statement is chronological and bounded."""
        statement = cash_aggregator.get_personal_statement(date(2025, 4, 1), date(2025, 6, 10))
        assert [t.date for t in statement] == [
            date(2025, 4, 2), date(2025, 6, 10), date(2025, 6, 10),
        ]


class TestClientSummary:
    """Tests for get_client_financial_summary."""

    def test_progress(self, aggregator, business_directory):
        """Test paid over contract as a percentage."""
        acme = business_directory.list_clients()[0]
        summary = aggregator.get_client_financial_summary(acme.id)
        assert summary.client_name == "Acme"
        assert summary.total_contract_value == Decimal("1000.00")
        assert summary.total_paid == Decimal("400.00")
        assert summary.total_outstanding == Decimal("600.00")
        assert summary.progress_percent == Decimal("40.00")

    def test_zero_contract(self):
        """Test zero contract value gives zero progress."""
        client = make_client("Pro bono", "0", [])
        directory = InMemoryDirectory(clients=[client])
        aggregator = AnalyticsAggregator(directory, SalaryLedger(directory), PersonalAccount())
        assert aggregator.get_client_financial_summary(client.id).progress_percent == Decimal("0")

    def test_unknown_client(self, aggregator):
        """Test None for a client not in the directory."""
        assert aggregator.get_client_financial_summary(uuid4()) is None


class TestSalaryOverview:
    """Tests for get_salary_overview."""

    def test_sorted_by_unpaid(self):
        """Test the largest unpaid balance comes first."""
        asha = Employee(name="Asha", monthly_salary=Decimal("1000"))
        ben = Employee(name="Ben", monthly_salary=Decimal("2000"))
        cy = Employee(name="Cy", monthly_salary=Decimal("0"))
        directory = InMemoryDirectory(employees=[asha, ben, cy])
        ledger = SalaryLedger(directory)
        ledger.create_monthly_periods_for_all_employees(date(2025, 1, 1))
        ledger.apply_payment(ben.id, Decimal("1500"), date(2025, 1, 20))
        ledger.apply_payment(cy.id, Decimal("80"), date(2025, 1, 20))

        overview = AnalyticsAggregator(directory, ledger, PersonalAccount()).get_salary_overview()

        assert [s.employee_name for s in overview] == ["Asha", "Ben", "Cy"]
        assert overview[0].total_unpaid == Decimal("1000.00")
        assert overview[1].total_unpaid == Decimal("500.00")
        assert overview[1].total_paid == Decimal("1500.00")
        assert overview[2].advance_paid == Decimal("80.00")
        assert [p.month for p in overview[0].unpaid_periods] == [date(2025, 1, 1)]


class TestCompanyFilter:
    """Tests for the optional company restriction."""

    def test_only_matching_company(self):
        """Test employees, expenses and clients from other companies are ignored."""
        ours, theirs = uuid4(), uuid4()
        directory = InMemoryDirectory(
            employees=[
                Employee(name="In", monthly_salary=Decimal("1"), company_id=ours),
                Employee(name="Out", monthly_salary=Decimal("1"), company_id=theirs),
            ],
            expenses=[
                Expense(date=REF, amount=Decimal("10"), company_id=ours),
                Expense(date=REF, amount=Decimal("99"), company_id=theirs),
            ],
            clients=[
                make_client("Ours", "100", [(REF, "100")], company_id=ours),
                make_client("Theirs", "100", [(REF, "50")], company_id=theirs),
            ],
        )
        aggregator = AnalyticsAggregator(
            directory, SalaryLedger(directory), PersonalAccount(), company_id=ours,
        )

        kpis = kpi_map(aggregator)
        assert kpis["total_revenue"] == Decimal("100.00")
        assert kpis["total_expenses"] == Decimal("10.00")
        assert [s.employee_name for s in aggregator.get_salary_overview()] == ["In"]
        assert [m.label for m in aggregator.get_client_revenue_distribution()] == ["Ours"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
