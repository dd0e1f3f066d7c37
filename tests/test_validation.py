"""Tests for validation and coercion rules."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from broker_console.core.errors import ValidationError
from broker_console.core.validation import (
    parse_bool,
    parse_date,
    parse_decimal,
    parse_timestamp,
    require_fields,
    timestamp_value,
    validate_amount,
    validate_date,
    within_days,
)


def test_parse_decimal_accepts_numbers_and_text() -> None:
    assert parse_decimal(12) == Decimal("12")
    assert parse_decimal(12.5) == Decimal("12.5")
    assert parse_decimal(" 99.90 ") == Decimal("99.90")


def test_parse_decimal_defaults_for_unusable_values() -> None:
    assert parse_decimal(None) == Decimal("0")
    assert parse_decimal("abc") == Decimal("0")
    assert parse_decimal("") == Decimal("0")
    assert parse_decimal(float("nan")) == Decimal("0")
    assert parse_decimal(True) == Decimal("0")
    assert parse_decimal({"amount": 1}) == Decimal("0")


def test_parse_bool_reads_stored_flags() -> None:
    assert parse_bool(True) is True
    assert parse_bool("true") is True
    assert parse_bool(" Yes ") is True
    assert parse_bool(1) is True
    assert parse_bool("false") is False
    assert parse_bool("no") is False
    assert parse_bool("") is False
    assert parse_bool(None) is False
    assert parse_bool(0) is False


def test_parse_date_and_timestamp() -> None:
    assert parse_date("2024-03-01") == date(2024, 3, 1)
    assert parse_date("2024-03-01T10:00:00Z") == date(2024, 3, 1)
    assert parse_date("not a date") is None
    assert parse_date(None) is None
    assert parse_timestamp("2024-03-01T10:00:00Z") == datetime(2024, 3, 1, 10, tzinfo=timezone.utc)
    assert parse_timestamp("garbage") is None


def test_timestamp_value_orders_missing_first() -> None:
    assert timestamp_value(None) == 0.0
    assert timestamp_value(date(2024, 1, 2)) > timestamp_value(date(2024, 1, 1))


def test_within_days_is_inclusive_on_both_ends() -> None:
    start, end = date(2024, 1, 1), date(2024, 1, 31)
    assert within_days(date(2024, 1, 1), start, end)
    assert within_days(date(2024, 1, 31), start, end)
    assert within_days(datetime(2024, 1, 31, 23, 59, 59, 999000), start, end)
    assert not within_days(date(2024, 2, 1), start, end)


def test_require_fields_names_every_missing_field() -> None:
    require_fields({"Policy Number": "P-1", "Total Amount": "10"})
    with pytest.raises(ValidationError) as info:
        require_fields({"Policy Number": " ", "Total Amount": "10", "Policy Date": None})
    assert "Policy Number" in str(info.value)
    assert "Policy Date" in str(info.value)
    assert "Total Amount" not in str(info.value)


def test_validate_amount_rules() -> None:
    assert validate_amount("150.25", "Total Amount") == Decimal("150.25")
    assert validate_amount("", "Commission", default=Decimal("0")) == Decimal("0")
    assert validate_amount("n/a", "Commission", default=Decimal("0")) == Decimal("0")
    with pytest.raises(ValidationError):
        validate_amount("abc", "Total Amount")
    with pytest.raises(ValidationError):
        validate_amount("-5", "Total Amount")


def test_validate_date() -> None:
    assert validate_date("2024-12-31", "Valid Until") == date(2024, 12, 31)
    with pytest.raises(ValueError):
        validate_date("31/12/2024", "Valid Until")
