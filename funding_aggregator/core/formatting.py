"""
Cell rendering for output tables.

Rates are stored as fractions everywhere; the ×100 percentage scaling happens
only here. Missing values render as an empty string.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo


HUNDRED = Decimal("100")


def _quantize(value: Decimal, places: int) -> str:
    exponent = Decimal(1).scaleb(-places)
    return f"{value.quantize(exponent, rounding=ROUND_HALF_UP):f}"


def format_percentage(value: Optional[Decimal], places: int) -> str:
    """
    Render a fractional rate as a percentage with exactly ``places`` decimals.

    >>> format_percentage(Decimal("0.00015"), 4)
    '0.0150'
    >>> format_percentage(Decimal("0.00015"), 2)
    '0.02'
    """
    if value is None or value.is_nan():
        return ""
    return _quantize(value * HUNDRED, places)


def format_decimal(value: Optional[Decimal], places: int) -> str:
    if value is None or value.is_nan():
        return ""
    return _quantize(value, places)


@lru_cache(maxsize=None)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def format_timestamp(value: Optional[datetime], timezone_name: str) -> str:
    """
    Render an instant in ``timezone_name`` as ``YYYY/M/D HH:MM:SS``.

    Naive datetimes are taken as UTC.
    """
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=_zone("UTC"))
    local = value.astimezone(_zone(timezone_name))
    return f"{local.year}/{local.month}/{local.day} {local:%H:%M:%S}"
