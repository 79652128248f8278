"""
Amount arithmetic.

Amounts are ``Decimal`` values with two decimal places. Floats are
converted through ``str`` so ``0.1`` becomes ``Decimal("0.10")`` and not
the binary approximation.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Iterable, Union

from pydantic import AfterValidator

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

AmountLike = Union[Decimal, int, float, str]


def to_money(value: AmountLike) -> Decimal:
    """Convert to a 2-place Decimal, rounding half up."""
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, float):
        amount = Decimal(str(value))
    else:
        try:
            amount = Decimal(value)
        except InvalidOperation as e:
            raise ValueError(f"Not a valid amount: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Amount must be finite: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def sum_money(values: Iterable[AmountLike]) -> Decimal:
    """Sum amounts; an empty iterable sums to ``ZERO``."""
    total = ZERO
    for value in values:
        total += to_money(value)
    return total


# Pydantic field type: any Decimal-compatible input, stored quantized
Money = Annotated[Decimal, AfterValidator(to_money)]
