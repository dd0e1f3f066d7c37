"""Input validation and coercion rules for policy and ledger records."""

from __future__ import annotations

import math
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any

from broker_console.core.errors import ValidationError

ZERO = Decimal("0")
TRUE_WORDS = {"true", "yes", "y", "1", "on"}


def parse_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """Coerce a stored or typed amount to Decimal, returning default when unusable."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return default
        return Decimal(str(value))
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return default
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            return default
        return parsed if parsed.is_finite() else default
    return default


def parse_bool(value: Any) -> bool:
    """Coerce a stored flag; text is read by word, so "false" stays False."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in TRUE_WORDS
    if isinstance(value, (int, float)):
        return value == 1
    return False


def parse_date(value: Any) -> date | None:
    """Coerce a stored calendar date (date, datetime, or ISO text) to date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None


def parse_timestamp(value: Any) -> datetime | None:
    """Coerce a stored timestamp (datetime or ISO-8601 text) to datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def local_date(value: date | datetime) -> date:
    """Return the local calendar day of a date or timestamp."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone().date()
        return value.date()
    return value


def timestamp_value(value: date | datetime | None) -> float:
    """Return a numeric timestamp for ordering; missing values order as 0."""
    if value is None:
        return 0.0
    if isinstance(value, datetime):
        return value.timestamp()
    return datetime.combine(value, time()).timestamp()


def within_days(value: date | datetime, start: date, end: date) -> bool:
    """Check value against [start 00:00:00.000, end 23:59:59.999] by local day."""
    day = local_date(value)
    return start <= day <= end


def require_fields(fields: dict[str, Any]) -> None:
    """Raise one error naming every empty required field."""
    missing = [label for label, value in fields.items() if _is_empty(value)]
    if missing:
        raise ValidationError(f"Please fill in all required fields: {', '.join(missing)}.")


def validate_amount(value: Any, field_name: str, default: Decimal | None = None) -> Decimal:
    """Parse a typed amount; empty input falls back to default when one is given."""
    if _is_empty(value):
        if default is not None:
            return default
        raise ValidationError(f"{field_name} is required.")

    amount = parse_decimal(value, default=Decimal("NaN"))
    if amount.is_nan():
        if default is not None:
            return default
        raise ValidationError(f"{field_name} must be a number.")
    if amount < 0:
        raise ValidationError(f"{field_name} cannot be negative.")
    return amount


def validate_date(value: Any, field_name: str) -> date:
    """Parse a typed calendar date in YYYY-MM-DD form."""
    parsed = parse_date(value)
    if parsed is None:
        raise ValidationError(f"{field_name} must be a date in YYYY-MM-DD format.")
    return parsed


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False
