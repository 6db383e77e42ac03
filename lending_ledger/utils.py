"""Utility functions for the lending ledger.

This module provides helpers for parsing user input into Python data types and
for handling dates, including whole-week differences and Monday-aligned
calendar weeks. It uses Python's ``datetime`` module for the week arithmetic
and ``Decimal`` for amounts so that currency values are never rounded through
binary floats.
"""

from __future__ import annotations

import random
import string
import time
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation, getcontext
from typing import Optional, Union

getcontext().prec = 28  # increase decimal precision to avoid rounding errors


def parse_iso_date(value: Union[str, date]) -> date:
    """Parse a ``YYYY-MM-DD`` string into a ``date`` object.

    ``date`` instances are returned unchanged. Only zero padded ISO dates are
    accepted so that the textual ordering used by date-range filters matches
    the calendar ordering.

    Raises
    ------
    ValueError
        If the string is not a valid ISO calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip() if isinstance(value, str) else ""
    if len(text) != 10:
        raise ValueError(f"Invalid date (expected YYYY-MM-DD): {value}")
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"Invalid date (expected YYYY-MM-DD): {value}") from exc


def parse_optional_date(value: Optional[str]) -> Optional[date]:
    """Like :func:`parse_iso_date` but maps empty input to ``None``."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_iso_date(value)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = str(value).replace(",", "").strip()
        result = Decimal(cleaned)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def parse_amount(value: str) -> Decimal:
    """Parse an amount with optional ``k``/``m`` suffixes ("5k" is 5000)."""
    text = str(value).strip().lower().replace(",", "")
    factor = Decimal(1)
    if text.endswith("k"):
        factor = Decimal(1_000)
        text = text[:-1]
    elif text.endswith("m"):
        factor = Decimal(1_000_000)
        text = text[:-1]
    return decimal_from_str(text) * factor


def weeks_between(later: date, earlier: date) -> int:
    """Return the number of whole weeks from ``earlier`` to ``later``.

    Partial weeks are truncated toward zero, so six days is 0 weeks and
    minus eight days is -1 week.
    """
    days = (later - earlier).days
    if days >= 0:
        return days // 7
    return -((-days) // 7)


def start_of_week(dt: date) -> date:
    """Return the Monday of the calendar week containing ``dt``."""
    return dt - timedelta(days=dt.weekday())


def end_of_week(dt: date) -> date:
    """Return the Sunday of the calendar week containing ``dt``."""
    return start_of_week(dt) + timedelta(days=6)


def generate_id() -> str:
    """Return a fresh identifier of the form ``<millis>-<9 random chars>``."""
    alphabet = string.ascii_lowercase + string.digits
    suffix = "".join(random.choices(alphabet, k=9))
    return f"{int(time.time() * 1000)}-{suffix}"


def format_currency(amount: Decimal) -> str:
    """Format an amount as whole rupees with Indian digit grouping."""
    quantized = int(amount.quantize(Decimal("1")))
    sign = "-" if quantized < 0 else ""
    digits = str(abs(quantized))
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join(groups + [tail])
    return f"{sign}₹{digits}"


def format_date(dt: date) -> str:
    """Format a date as e.g. ``1st Jan`` or ``22nd Mar``."""
    day = dt.day
    if 3 < day < 21:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix} {dt.strftime('%b')}"
