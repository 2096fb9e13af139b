"""
Type coercion for loosely-typed submitted values.

Browsers and API clients deliver checkbox states, numbers and dates in
many shapes ("on", "1", 1, True, "2026-02-12", epoch millis...). These
helpers map them to the canonical Python type of the field, raising
CoercionError for values that cannot be interpreted.
"""

import math
from collections.abc import Mapping
from datetime import date, datetime, timezone
from typing import Any

from formcompiler.core.errors import CoercionError
from formcompiler.core.utils import is_number, parse_date, to_number

# Every other string maps to False, including unknown words like "maybe".
TRUTHY_STRINGS = frozenset({"true", "1", "yes", "on"})


def coerce_boolean(value: Any) -> bool:
    """Coerce a checkbox value to a bool.

    - bool: unchanged
    - numbers: only 1 is True
    - strings (trimmed, case-insensitive): "true", "1", "yes", "on" are True,
      anything else is False
    - None, mappings, sequences and other objects: CoercionError

    Absent values are handled by the caller, which knows whether the field
    is required.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    raise CoercionError("invalid_boolean", received=_describe(value))


def coerce_number(value: Any) -> int | float:
    """Coerce a number or numeric string. Booleans, NaN and inf are rejected."""
    if isinstance(value, float) and not math.isfinite(value):
        raise CoercionError("invalid_number", received=_describe(value))

    number = to_number(value)
    if number is None:
        raise CoercionError("invalid_number", received=_describe(value))
    return number


def coerce_date(value: Any) -> date | datetime:
    """Coerce a date, datetime, parseable string or epoch milliseconds."""
    if isinstance(value, (date, datetime)):
        return value

    if is_number(value):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise CoercionError("invalid_date", received=_describe(value))

    if isinstance(value, str):
        parsed = parse_date(value.strip())
        if parsed is not None:
            return parsed

    raise CoercionError("invalid_date", received=_describe(value))


def _describe(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple, set)):
        return "array"
    return type(value).__name__
