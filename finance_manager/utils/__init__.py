"""Money and calendar-month utilities."""

from finance_manager.utils.money import (
    CENT,
    ZERO,
    AmountLike,
    Money,
    sum_money,
    to_money,
)
from finance_manager.utils.periods import (
    add_months,
    date_in_range,
    end_of_month,
    month_label,
    months_between,
    start_of_month,
)

__all__ = [
    "CENT",
    "ZERO",
    "AmountLike",
    "Money",
    "add_months",
    "date_in_range",
    "end_of_month",
    "month_label",
    "months_between",
    "start_of_month",
    "sum_money",
    "to_money",
]
