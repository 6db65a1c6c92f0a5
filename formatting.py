# formatting.py
"""
en-US display formatting for report figures.

Output matches the browser's Intl.NumberFormat so exported reports are
byte-identical: rounding is half away from zero on the exact value of the
float, and negative amounts that round to zero keep their sign ("-$0").
"""
import math
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Any

_EXACT = Context(prec=800)


def _as_number(value: Any) -> float:
    try:
        number = float(value or 0)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(number) else number


def _grouped(number: float, places: str, scale: int = 1) -> str:
    if math.isinf(number):
        return "∞"
    exact = _EXACT.multiply(Decimal(abs(number)), Decimal(scale))
    return f"{exact.quantize(Decimal(places), rounding=ROUND_HALF_UP, context=_EXACT):,}"


def _sign(number: float) -> str:
    return "-" if math.copysign(1.0, number) < 0 else ""


def format_currency(value: Any) -> str:
    """Whole dollars: 1234.5 -> "$1,235"."""
    number = _as_number(value)
    return f"{_sign(number)}${_grouped(number, '1')}"


def format_percent(value: Any) -> str:
    """Fraction to percent with two decimals: 0.12345 -> "12.35%"."""
    number = _as_number(value)
    return f"{_sign(number)}{_grouped(number, '0.01', scale=100)}%"


def format_date(value: Any) -> str:
    if not value:
        return "N/A"
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return "N/A"
    if not isinstance(value, date):
        return "N/A"
    return f"{value:%B} {value.day}, {value.year}"
