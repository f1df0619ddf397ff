"""
Month-granularity date helpers.

Subscriptions are billed per calendar month, so every date that enters the
store is collapsed to the first day of its month and rendered back as MM-YYYY.
"""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional, Union

from subservice.core.exceptions import ValidationError

MONTH_FORMAT = "MM-YYYY"

_MONTH_RE = re.compile(r"([0-9]{2})-([0-9]{4})")


def parse_month(value: str, field: str = "date") -> date:
    """Parse an MM-YYYY string into the first day of that month."""
    if not isinstance(value, str):
        raise ValidationError(f"invalid {field}: expected {MONTH_FORMAT}")
    match = _MONTH_RE.fullmatch(value)
    if not match:
        raise ValidationError(f"invalid {field}: expected {MONTH_FORMAT}, got {value!r}")
    month, year = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12 or year < 1:
        raise ValidationError(f"invalid {field}: month out of range in {value!r}")
    return date(year, month, 1)


def parse_optional_month(value: Optional[str], field: str = "date") -> Optional[date]:
    if value is None:
        return None
    return parse_month(value, field)


def first_of_month(value: Union[date, datetime]) -> date:
    """Drop the day and time components of a date or datetime."""
    return date(value.year, value.month, 1)


def format_month(value: Optional[date]) -> Optional[str]:
    if value is None:
        return None
    return f"{value.month:02d}-{value.year:04d}"
