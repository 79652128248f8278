"""
Calendar month helpers.

All ledger dates are naive ``datetime.date`` values on the proleptic
Gregorian calendar. A "month" is always represented by its first day.
"""

import calendar
from datetime import date, datetime
from typing import Optional, Union

DateLike = Union[date, datetime]


def _as_date(value: DateLike) -> date:
    # datetime is a subclass of date, so check it first
    if isinstance(value, datetime):
        return value.date()
    return value


def start_of_month(value: DateLike) -> date:
    """Return the first day of the month containing ``value``."""
    d = _as_date(value)
    return date(d.year, d.month, 1)


def end_of_month(value: DateLike) -> date:
    """Return the last day of the month containing ``value``."""
    d = _as_date(value)
    last_day = calendar.monthrange(d.year, d.month)[1]
    return date(d.year, d.month, last_day)


def add_months(value: DateLike, months: int) -> date:
    """
    Shift a month start by ``months`` (may be negative).

    The result is always a first-of-month date.
    """
    d = start_of_month(value)
    index = d.year * 12 + (d.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def months_between(start: DateLike, end: DateLike) -> list[date]:
    """
    List every month start from ``start`` to ``end``, inclusive, ascending.

    Returns an empty list when ``start`` falls after ``end``.
    """
    current = start_of_month(start)
    last = start_of_month(end)
    months = []
    while current <= last:
        months.append(current)
        current = add_months(current, 1)
    return months


def date_in_range(
    value: DateLike,
    start: Optional[DateLike] = None,
    end: Optional[DateLike] = None,
) -> bool:
    """Inclusive range check; a missing bound is open."""
    d = _as_date(value)
    if start is not None and d < _as_date(start):
        return False
    if end is not None and d > _as_date(end):
        return False
    return True


def month_label(month: DateLike) -> str:
    """Short label used in transaction descriptions, e.g. ``Jan 2025``."""
    return start_of_month(month).strftime("%b %Y")
