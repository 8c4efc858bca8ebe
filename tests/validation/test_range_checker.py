from datetime import datetime, timedelta, timezone

import pytest

from core.errors import ValidationError
from services.range_checker import (
    check_amount,
    check_date,
    validate,
    validate_date_range,
)


def test_amount_bounds_and_precision():
    assert check_amount(0) == []
    assert check_amount(10.99) == []
    assert check_amount(1_000_000_000) == []
    assert check_amount(-1)[0]["message"] == "Amount cannot be less than 0"
    assert check_amount(1_000_000_001)[0]["message"] == "Amount cannot exceed 1000000000"
    assert "decimal places" in check_amount(10.999)[0]["message"]


def test_amount_rejects_booleans():
    assert check_amount(True)[0]["message"] == "Amount must be a number"


def test_date_window():
    now = datetime.now(timezone.utc)
    assert check_date(now.isoformat()) == []
    assert check_date((now - timedelta(days=365 * 11)).isoformat())
    assert check_date((now + timedelta(days=3)).isoformat())
    assert check_date("yesterday-ish")[0]["message"] == "Invalid date"


def test_validate_aggregates_errors_across_fields():
    with pytest.raises(ValidationError) as exc:
        validate({"amount": -5, "limit": 0, "skip": -1})
    fields = sorted(e["field"] for e in exc.value.errors)
    assert fields == ["amount", "limit", "skip"]


def test_validate_limit_upper_bound():
    with pytest.raises(ValidationError):
        validate({"limit": 1001})
    assert validate({"limit": 1000, "skip": 0}) is True


def test_generic_rules():
    rules = {
        "note": {"min_length": 2, "max_length": 5},
        "tags": {"min_items": 1, "max_items": 2},
        "score": {"min": 1, "max": 3},
    }
    assert validate({"note": "abc", "tags": ["a"], "score": 2}, rules) is True
    with pytest.raises(ValidationError) as exc:
        validate({"note": "a", "tags": ["a", "b", "c"], "score": 9}, rules)
    assert len(exc.value.errors) == 3


def test_date_range_ordering_and_span():
    start, end = validate_date_range("2024-01-01", "2024-01-31T23:59:59Z")
    assert start < end
    assert start.tzinfo is not None

    with pytest.raises(ValidationError):
        validate_date_range("2024-02-01", "2024-01-01")
    with pytest.raises(ValidationError):
        validate_date_range("2015-01-01", "2024-01-01")
    with pytest.raises(ValidationError):
        validate_date_range("garbage", "2024-01-01")


def test_five_calendar_years_allowed_across_leap_days():
    start, end = validate_date_range("2020-01-01", "2025-01-01")
    assert (end - start).days == 1827

    with pytest.raises(ValidationError):
        validate_date_range("2020-01-01", "2025-01-02")
