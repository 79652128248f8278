"""
Tests for money and calendar-month utilities.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from finance_manager.errors import InvalidAmount, require_positive
from finance_manager.utils import (
    ZERO,
    add_months,
    date_in_range,
    end_of_month,
    month_label,
    months_between,
    start_of_month,
    sum_money,
    to_money,
)


class TestMonthBoundaries:
    """Tests for start_of_month / end_of_month."""

    def test_start_of_month(self):
        """Test that any day maps to the first of its month."""
        assert start_of_month(date(2025, 3, 17)) == date(2025, 3, 1)
        assert start_of_month(date(2025, 3, 1)) == date(2025, 3, 1)

    def test_start_of_month_drops_time(self):
        """Test that datetimes come back as plain dates."""
        result = start_of_month(datetime(2025, 3, 17, 23, 59))
        assert result == date(2025, 3, 1)
        assert type(result) is date

    def test_end_of_month(self):
        """Test last day, including leap years."""
        assert end_of_month(date(2025, 1, 10)) == date(2025, 1, 31)
        assert end_of_month(date(2024, 2, 10)) == date(2024, 2, 29)
        assert end_of_month(date(2025, 2, 10)) == date(2025, 2, 28)
        assert end_of_month(date(2025, 4, 30)) == date(2025, 4, 30)


class TestMonthArithmetic:
    """Tests for add_months / months_between."""

    def test_add_months_across_years(self):
        """Test shifting forwards and backwards over year boundaries."""
        assert add_months(date(2024, 12, 15), 1) == date(2025, 1, 1)
        assert add_months(date(2025, 1, 31), -1) == date(2024, 12, 1)
        assert add_months(date(2025, 6, 1), -18) == date(2023, 12, 1)
        assert add_months(date(2025, 6, 1), 0) == date(2025, 6, 1)

    def test_months_between_inclusive(self):
        """Test that both ends are included, ascending."""
        months = months_between(date(2024, 11, 20), date(2025, 2, 3))
        assert months == [
            date(2024, 11, 1),
            date(2024, 12, 1),
            date(2025, 1, 1),
            date(2025, 2, 1),
        ]

    def test_months_between_single_month(self):
        """Test a range inside one month."""
        assert months_between(date(2025, 5, 2), date(2025, 5, 30)) == [date(2025, 5, 1)]

    def test_months_between_reversed_is_empty(self):
        """Test that start after end gives no months."""
        assert months_between(date(2025, 5, 1), date(2025, 4, 1)) == []

    def test_twelve_month_window(self):
        """Test the window used by the monthly series."""
        last = date(2025, 6, 1)
        months = months_between(add_months(last, -11), last)
        assert len(months) == 12
        assert months[0] == date(2024, 7, 1)


class TestDateRange:
    """Tests for date_in_range."""

    def test_inclusive_bounds(self):
        """Test that both bounds are inclusive."""
        assert date_in_range(date(2025, 1, 1), date(2025, 1, 1), date(2025, 1, 31))
        assert date_in_range(date(2025, 1, 31), date(2025, 1, 1), date(2025, 1, 31))
        assert not date_in_range(date(2025, 2, 1), date(2025, 1, 1), date(2025, 1, 31))

    def test_open_bounds(self):
        """Test that a missing bound does not filter."""
        assert date_in_range(date(1999, 1, 1), None, date(2025, 1, 1))
        assert date_in_range(date(2099, 1, 1), date(2025, 1, 1), None)
        assert date_in_range(date(2025, 1, 1))

    def test_month_label(self):
        """Test the short month label."""
        assert month_label(date(2025, 1, 20)) == "Jan 2025"


class TestMoney:
    """Tests for amount conversion and summing."""

    def test_to_money_quantizes(self):
        """Test two decimal places with half-up rounding."""
        assert to_money("10") == Decimal("10.00")
        assert to_money("2.675") == Decimal("2.68")
        assert to_money(Decimal("2.665")) == Decimal("2.67")
        assert to_money(7) == Decimal("7.00")

    def test_to_money_float_goes_through_str(self):
        """Test floats do not leak binary error."""
        assert to_money(0.1) == Decimal("0.10")
        assert to_money(2.675) == Decimal("2.68")

    def test_to_money_rejects_garbage(self):
        """Test invalid and non-finite input."""
        with pytest.raises(ValueError):
            to_money("abc")
        with pytest.raises(ValueError):
            to_money("Infinity")
        with pytest.raises(ValueError):
            to_money(Decimal("NaN"))

    def test_sum_money(self):
        """Test summing mixed inputs and the empty case."""
        assert sum_money([]) == ZERO
        assert sum_money(["1.10", 2, Decimal("0.05")]) == Decimal("3.15")

    def test_require_positive(self):
        """Test the shared amount guard."""
        assert require_positive(Decimal("0.01")) == Decimal("0.01")
        with pytest.raises(InvalidAmount) as exc:
            require_positive(Decimal("0"))
        assert exc.value.amount == Decimal("0")
        with pytest.raises(InvalidAmount):
            require_positive(Decimal("-5"))
