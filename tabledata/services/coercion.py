"""Coercion of request text to the Python type of a column.

Every coercer raises ``ValueError`` on bad input; callers decide whether that
is a bad filter (400) or an invalid record (422).
"""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

TRUE_WORDS = {"1", "true", "yes", "y", "on", "checked"}
FALSE_WORDS = {"0", "false", "no", "n", "off", "unchecked"}


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    text = str(value or "").strip().lower()
    if text in TRUE_WORDS:
        return True
    if text in FALSE_WORDS:
        return False
    raise ValueError("boolean")


def coerce_number(value: Any, python_type: type) -> Any:
    if isinstance(value, bool):
        raise ValueError("number")
    if python_type in {int, float} and isinstance(value, (int, float)):
        if python_type is int and isinstance(value, float) and not value.is_integer():
            raise ValueError("number")
        return python_type(value)
    if python_type is Decimal and isinstance(value, (Decimal, int, float)):
        return Decimal(str(value))
    text = str(value).strip()
    if not text:
        raise ValueError("number")
    normalized = text.replace(",", ".")
    try:
        if python_type is int:
            return int(normalized)
        if python_type is float:
            return float(normalized)
        if python_type is Decimal:
            return Decimal(normalized)
        return python_type(normalized)
    except (ValueError, TypeError, InvalidOperation):
        raise ValueError("number")


def coerce_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    if not text:
        raise ValueError("date")
    # Either YYYY-MM-DD or a full ISO datetime, of which the date part is taken.
    if "T" in text or " " in text:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    return date.fromisoformat(text)


def coerce_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value or "").strip()
        if not text:
            raise ValueError("datetime")
        if "T" not in text and " " not in text and len(text) == 10:
            # Date-only value for a timestamp column means start of the day.
            parsed = datetime.combine(date.fromisoformat(text), datetime.min.time())
        else:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_date_only_literal(raw_value: Any) -> bool:
    if isinstance(raw_value, date) and not isinstance(raw_value, datetime):
        return True
    if not isinstance(raw_value, str):
        return False
    text = raw_value.strip()
    if not text or "T" in text or " " in text:
        return False
    try:
        date.fromisoformat(text)
        return True
    except ValueError:
        return False


def coerce_json(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


def coerce_for_kind(kind: str, python_type: type | None, value: Any) -> Any:
    """Coerce ``value`` for a column of the given kind; ``None`` passes through."""
    if value is None:
        return None
    if kind == "boolean":
        return coerce_bool(value)
    if kind in {"number", "decimal"} and python_type is not None:
        return coerce_number(value, python_type)
    if kind == "date":
        return coerce_date(value)
    if kind == "datetime":
        return coerce_datetime(value)
    if kind == "json":
        return coerce_json(value)
    if kind == "multiselect" and isinstance(value, (list, tuple)):
        return ",".join(str(item).strip() for item in value if str(item).strip())
    if isinstance(value, (dict, list)):
        raise ValueError("text")
    return value if isinstance(value, str) else str(value)
