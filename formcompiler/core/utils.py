"""
Shared utility functions for the schema compiler.
"""

import math
from datetime import datetime
from typing import Any

import psutil
from dateutil import parser as dateutil_parser


class _Missing:
    """Marker for a key absent from a submission (distinct from None)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def parse_date(value: str) -> datetime | None:
    """Parse a date string into a datetime object.

    Supports ISO 8601 formats and anything python-dateutil understands.
    Returns None if the value cannot be parsed.

    Args:
        value: The date string to parse.

    Returns:
        A datetime, or None if parsing fails.
    """
    if not value or not isinstance(value, str):
        return None

    try:
        return dateutil_parser.parse(value)
    except (ValueError, TypeError, OverflowError):
        return None


def is_number(value: Any) -> bool:
    """True for finite ints and floats. Booleans are not numbers here."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def to_number(value: Any) -> int | float | None:
    """Return a numeric value for numbers and numeric strings, else None."""
    if is_number(value):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def strict_equals(left: Any, right: Any) -> bool:
    """Equality without cross-type coercion.

    ``1 == True`` and ``1 == "1"`` are both false here; ints and floats
    still compare by value.
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if is_number(left) and is_number(right):
        return left == right
    if type(left) is not type(right):
        return False
    return left == right


def memory_usage_mb() -> float:
    """Resident memory of the current process in megabytes."""
    rss = psutil.Process().memory_info().rss
    return round(rss / 1024 / 1024, 2)
