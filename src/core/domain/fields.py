"""Field helpers shared by the domain ``from_dict`` constructors.

Values are checked, not coerced: a numeric field holding a string is
rejected rather than parsed. Only ISO dates, enum values and booleans are
converted, since those have a single unambiguous text form.
"""

from __future__ import annotations

import math
import numbers
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, TypeVar

from src.core.domain.errors import InvalidInputError

E = TypeVar("E", bound=Enum)

DAYS_PER_YEAR = 365.0

TRUE_TEXT = frozenset({"true", "yes", "1"})
FALSE_TEXT = frozenset({"false", "no", "0"})


def year_fraction(start: date, end: date) -> float:
    """Return the Act/365 year fraction between two dates (may be negative)."""
    return (end - start).days / DAYS_PER_YEAR


def require(
    data: Mapping[str, Any],
    key: str,
    trade_id: str | None = None,
) -> Any:
    """Return ``data[key]`` or raise InvalidInputError naming the field."""
    if key not in data or data[key] is None:
        raise InvalidInputError("required field is missing", field=key, trade_id=trade_id)
    return data[key]


def parse_number(
    value: Any,
    field: str,
    trade_id: str | None = None,
) -> float:
    """Validate a numeric value and return it as float.

    Raises:
        InvalidInputError: If the value is not a finite real number
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidInputError(
            f"expected a number, got {type(value).__name__}",
            field=field,
            trade_id=trade_id,
        )
    if not math.isfinite(value):
        raise InvalidInputError("must be finite", field=field, trade_id=trade_id)
    return float(value)


def optional_number(
    data: Mapping[str, Any],
    key: str,
    default: float | None = None,
    trade_id: str | None = None,
) -> float | None:
    """Return an optional numeric field, or ``default`` when absent."""
    value = data.get(key)
    if value is None:
        return default
    return parse_number(value, key, trade_id)


def optional_bool(
    data: Mapping[str, Any],
    key: str,
    default: bool = False,
    trade_id: str | None = None,
) -> bool:
    """Return a boolean field given as a bool or as true/false text.

    Raises:
        InvalidInputError: If the value is neither
    """
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUE_TEXT:
            return True
        if text in FALSE_TEXT:
            return False
    raise InvalidInputError(
        f"expected true or false, got {value!r}", field=key, trade_id=trade_id
    )


def parse_date(
    value: Any,
    field: str,
    trade_id: str | None = None,
) -> date:
    """Accept a date, datetime or ISO-8601 string.

    Raises:
        InvalidInputError: If the value cannot be read as a date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError as e:
            raise InvalidInputError(
                f"invalid ISO date '{value}'", field=field, trade_id=trade_id
            ) from e
    raise InvalidInputError(
        f"expected a date, got {type(value).__name__}", field=field, trade_id=trade_id
    )


def optional_date(
    data: Mapping[str, Any],
    key: str,
    trade_id: str | None = None,
) -> date | None:
    """Return an optional date field, or None when absent."""
    value = data.get(key)
    if value is None or value == "":
        return None
    return parse_date(value, key, trade_id)


def parse_enum(
    enum_cls: type[E],
    value: Any,
    field: str,
    trade_id: str | None = None,
) -> E:
    """Resolve an enum member by value or by name.

    Raises:
        InvalidInputError: If the value names no member of ``enum_cls``
    """
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        for member in enum_cls:
            if value == member.value or value.upper() == member.name:
                return member
    allowed = ", ".join(str(m.value) for m in enum_cls)
    raise InvalidInputError(
        f"unrecognized {enum_cls.__name__} '{value}' (allowed: {allowed})",
        field=field,
        trade_id=trade_id,
    )
