"""Fixed-point helpers for monetary fields (two decimal places, round half up)."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# NUMERIC(15,2): 13 integer digits
MAX_AMOUNT = Decimal("10000000000000")
TOO_LARGE = "must be less than 10,000,000,000,000"

MoneyInput = Union[Decimal, float, int, str, None]


def to_decimal(value: MoneyInput) -> Decimal:
    """Convert a wire value to Decimal; None and "" become zero."""
    if value is None or value == "":
        return ZERO
    if isinstance(value, bool):
        raise ValueError("must be a number")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            # str() first so 0.1 becomes Decimal("0.1"), not its binary expansion
            result = Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError("must be a number") from exc
    if not result.is_finite():
        raise ValueError("must be a finite number")
    return result


def _to_cents(amount: Decimal) -> Decimal:
    if abs(amount) >= MAX_AMOUNT:
        raise ValueError(TOO_LARGE)
    try:
        cents = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValueError(TOO_LARGE) from exc
    if abs(cents) >= MAX_AMOUNT:
        raise ValueError(TOO_LARGE)
    return cents


def round_money(value: MoneyInput) -> Decimal:
    """Round half up to the nearest 0.01; reject negatives and amounts a column cannot hold."""
    amount = _to_cents(to_decimal(value))
    if amount < 0:
        raise ValueError("must not be negative")
    return amount


def sum_money(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO).quantize(CENT, rounding=ROUND_HALF_UP)


def is_within_limit(value: MoneyInput) -> bool:
    return abs(to_decimal(value)) < MAX_AMOUNT


def has_at_most_two_decimals(value: MoneyInput) -> bool:
    """True when value carries no precision below a cent (client-side form check)."""
    amount = to_decimal(value)
    if not is_within_limit(amount):
        return amount == amount.to_integral_value()
    return amount == amount.quantize(CENT)
