"""Utility functions for the DSR calculator.

This module provides helpers for turning user input into ``Decimal`` values
and for rounding engine output the way the result dashboard displays it. Amount
strings may use commas, ``k``/``m`` suffixes or the Korean ``만`` (10^4) and
``억`` (10^8) units.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, getcontext
from typing import Union

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

Number = Union[int, float, str, Decimal]

_AMOUNT_SUFFIXES = (
    ("억", Decimal("100000000")),
    ("만", Decimal("10000")),
    ("k", Decimal("1000")),
    ("m", Decimal("1000000")),
)


def to_decimal(value: Number) -> Decimal:
    """Convert ``value`` into a ``Decimal``.

    Floats go through ``str`` so that ``4.5`` becomes ``Decimal("4.5")`` rather
    than its binary expansion. NaN and infinities are rejected.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    else:
        return decimal_from_str(value)
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value!r}")
    return result


def whole_months(value) -> int:
    """Convert a term to an ``int``, refusing booleans and fractional months."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid term: {value!r}")
    if isinstance(value, int):
        return value
    months = to_decimal(value)
    if months != months.to_integral_value():
        raise ValueError(f"Term must be a whole number of months: {value!r}")
    return int(months)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and surrounding whitespace. It raises
    ``ValueError`` if conversion fails.
    """
    try:
        cleaned = value.replace(",", "").strip()
        result = Decimal(cleaned)
    except Exception as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def parse_amount(value: str) -> Decimal:
    """Parse a won amount with optional unit suffix.

    Accepts plain numbers ("50000000"), shorthand ``k``/``m`` suffixes
    ("500k") and Korean units, including compound forms such as "1억2000만".
    A trailing "원" is ignored.
    """
    text = value.strip().lower().replace(",", "").replace(" ", "")
    if text.endswith("원"):
        text = text[:-1]
    if not text:
        raise ValueError(f"Invalid amount: {value!r}")

    total = Decimal("0")
    matched = False
    for suffix, factor in _AMOUNT_SUFFIXES:
        if suffix in text:
            head, _, text = text.partition(suffix)
            total += decimal_from_str(head or "1") * factor
            matched = True
    if text:
        total += decimal_from_str(text)
    elif not matched:
        raise ValueError(f"Invalid amount: {value!r}")
    return total


def parse_percent(value: str) -> Decimal:
    """Parse a percentage string such as "4.5" or "4.5%".

    Unlike fractional inputs elsewhere, rates here are always percentages:
    "0.5" means half a percent.
    """
    text = value.strip()
    if text.endswith("%"):
        text = text[:-1]
    return decimal_from_str(text)


def round_ratio(value: Decimal) -> Decimal:
    """Round a percentage ratio half-up to two decimal places."""
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def round_won(value: Decimal) -> int:
    """Round a currency amount half-up to whole won."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
