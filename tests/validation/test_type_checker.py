import pytest

from core.errors import ValidationError
from services.type_checker import SCHEMAS, check_type, collect_errors, validate


def _fields(exc):
    return [e["field"] for e in exc.value.errors]


def test_valid_transaction_passes():
    data = {"amount": 12.5, "date": "2024-06-01", "category": "Food", "type": "expense"}
    assert validate(data, SCHEMAS["transaction"]) is True


def test_all_violations_collected_in_one_error():
    with pytest.raises(ValidationError) as exc:
        validate({"amount": "12", "type": "transfer"}, SCHEMAS["transaction"])
    fields = _fields(exc)
    assert "amount" in fields
    assert "type" in fields
    assert "date" in fields
    assert "category" in fields


def test_booleans_are_not_numbers():
    assert check_type("amount", True, "number") is not None
    assert check_type("limit", False, "integer") is not None
    assert check_type("amount", 3, "number") is None


def test_integer_accepts_integral_floats_only():
    assert check_type("limit", 5.0, "integer") is None
    assert check_type("limit", 5.5, "integer") is not None


def test_date_type_accepts_iso_strings_only():
    assert check_type("date", "2024-06-01T10:00:00Z", "date") is None
    assert check_type("date", "not a date", "date") is not None
    assert check_type("date", 20240601, "date") is not None


def test_enum_and_length_rules():
    errors = collect_errors({"category": "x" * 101, "status": "archived"}, SCHEMAS["transaction_update"])
    messages = {e["field"]: e["message"] for e in errors}
    assert messages["category"] == "Maximum length is 100"
    assert messages["status"] == 'Value "archived" is not valid'


def test_tags_limited_to_twenty():
    errors = collect_errors({"tags": ["t"] * 21}, SCHEMAS["transaction_update"])
    assert errors[0]["field"] == "tags"


def test_wrong_type_skips_bound_checks():
    errors = collect_errors({"limit": "ten"}, SCHEMAS["query"])
    assert len(errors) == 1
    assert errors[0]["expected"] == "integer"


def test_aggregate_schema_rejects_unknown_group_by():
    with pytest.raises(ValidationError) as exc:
        validate({"operation": "sum", "group_by": "merchant"}, SCHEMAS["aggregate"])
    assert _fields(exc) == ["group_by"]
