from __future__ import annotations

import enum
import json
import math
import uuid
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any

from meter_monitoring.core.errors import InvalidFilterValueError

_BOOL_TRUE = {"1", "true", "yes", "y"}
_BOOL_FALSE = {"0", "false", "no", "n"}
_NULL_LITERALS = {"null", "none"}


def _is_composite_text(text: str) -> bool:
    return text.startswith("{") or text.startswith("[")


def _unwrap_tagged_text(text: str) -> str:
    # Typed wrappers are serialized as `...:"payload"}`; keep the last segment.
    tail = text.split(":")[-1]
    return tail.strip().rstrip("}]").strip().strip('"')


def decode_filter_literal(value: Any) -> Any:
    """Normalize a filter value as it arrives from the transport boundary.

    Composite values (objects, arrays, or text holding one) are unwrapped to
    the plain string after their last ``:``. Plain text loses surrounding
    whitespace and quotes. Numbers, booleans and None are returned unchanged.
    """
    if value is None or isinstance(value, (bool, int, float, Decimal)):
        return value
    if isinstance(value, (dict, list, tuple)):
        return _unwrap_tagged_text(json.dumps(value, default=str))
    if isinstance(value, (date, datetime, uuid.UUID, enum.Enum)):
        return value
    text = str(value).strip()
    if _is_composite_text(text):
        return _unwrap_tagged_text(text)
    return text.strip('"')


def _coerce_bool(member: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    text = str(value or "").strip().lower()
    if text in _BOOL_TRUE:
        return True
    if text in _BOOL_FALSE:
        return False
    raise InvalidFilterValueError(member, "boolean", value)


def _coerce_number(member: str, value: Any, python_type: type):
    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidFilterValueError(member, "number", value)
    if python_type in {int, float} and isinstance(value, (int, float)) and not isinstance(value, bool):
        if python_type is int and isinstance(value, float) and not value.is_integer():
            return value
        return python_type(value)
    if python_type is Decimal and isinstance(value, (Decimal, int)):
        return Decimal(value)
    text = str(value).strip()
    if not text:
        raise InvalidFilterValueError(member, "number", value)
    try:
        number = Decimal(text.replace(",", "."))
    except (ValueError, TypeError, InvalidOperation):
        raise InvalidFilterValueError(member, "number", value)
    if not number.is_finite():
        raise InvalidFilterValueError(member, "number", value)
    if python_type is int:
        return int(number) if number == number.to_integral_value() else float(number)
    if python_type is float:
        return float(number)
    return number


def _coerce_temporal(member: str, value: Any, kind: str) -> datetime:
    """Parse a date or ISO datetime literal; date-only text means midnight."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    text = str(value or "").strip()
    if not text:
        raise InvalidFilterValueError(member, kind, value)
    try:
        if "T" not in text and " " not in text:
            return datetime.combine(date.fromisoformat(text), time.min)
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise InvalidFilterValueError(member, kind, value)



def _coerce_uuid(member: str, value: Any) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value or "").strip())
    except ValueError:
        raise InvalidFilterValueError(member, "uuid", value)


def _coerce_enum(member: str, value: Any, python_type: type[enum.Enum]) -> enum.Enum:
    if isinstance(value, python_type):
        return value
    try:
        return python_type(value)
    except ValueError:
        pass
    text = str(value).strip()
    for item in python_type:
        if item.name.lower() == text.lower() or str(item.value) == text:
            return item
    raise InvalidFilterValueError(member, python_type.__name__, value)


def coerce_filter_value(member: str, python_type: Any, value: Any) -> Any:
    """Convert a decoded literal to the field's type so comparisons are typed."""
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() in _NULL_LITERALS and python_type is not str:
        return None
    if not isinstance(python_type, type):
        return value
    if python_type is bool:
        return _coerce_bool(member, value)
    if issubclass(python_type, enum.Enum):
        return _coerce_enum(member, value, python_type)
    if python_type in {int, float, Decimal}:
        return _coerce_number(member, value, python_type)
    if python_type is datetime:
        return _coerce_temporal(member, value, "datetime")
    if python_type is date:
        return _coerce_temporal(member, value, "date").date()
    if python_type is uuid.UUID:
        return _coerce_uuid(member, value)
    if python_type is str:
        return value if isinstance(value, str) else str(value)
    return value


def runtime_type(value: Any) -> Any:
    """Type used for coercion when a field has no declared type."""
    if value is None:
        return None
    if isinstance(value, bool):
        return bool
    if isinstance(value, enum.Enum):
        return type(value)
    for candidate in (datetime, date, int, float, Decimal, uuid.UUID, str):
        if isinstance(value, candidate):
            return candidate
    return None
