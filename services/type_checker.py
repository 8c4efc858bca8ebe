# FILE: services/type_checker.py
"""
Type Checker

- Validates an object against a declarative per-field schema
- Collects every violation before raising (one round trip for the caller)
"""

import math
from typing import Any, Dict, List, Mapping, Optional

from core.errors import ValidationError
from services.utils import parse_instant

FieldRules = Dict[str, Any]
Schema = Dict[str, FieldRules]

TRANSACTION_TYPES = ["expense", "income"]
TRANSACTION_STATUSES = ["pending", "confirmed", "cancelled"]
AGGREGATE_OPERATIONS = ["sum", "avg", "count", "min", "max"]
GROUP_BY_FIELDS = ["category", "type", "payment_method", "status", "month", "year", "day", "week"]
COMPARE_TYPES = ["period", "category"]
COMPARE_METRICS = ["sum", "avg", "count"]

# -----------------------------
# Predefined schemas
# -----------------------------
SCHEMAS: Dict[str, Schema] = {
    "transaction": {
        "amount": {"type": "number", "required": True, "min": 0, "max": 1_000_000_000},
        "date": {"type": "date", "required": True},
        "category": {"type": "string", "required": True, "min_length": 1, "max_length": 100},
        "type": {"type": "string", "required": True, "enum": TRANSACTION_TYPES},
        "description": {"type": "string", "max_length": 500},
        "subcategory": {"type": "string", "max_length": 100},
        "tags": {"type": "array", "max_length": 20},
        "payment_method": {"type": "string", "max_length": 100},
        "merchant": {"type": "string", "max_length": 200},
        "status": {"type": "string", "enum": TRANSACTION_STATUSES},
    },
    "transaction_update": {
        "amount": {"type": "number", "min": 0, "max": 1_000_000_000},
        "date": {"type": "date"},
        "category": {"type": "string", "min_length": 1, "max_length": 100},
        "type": {"type": "string", "enum": TRANSACTION_TYPES},
        "description": {"type": "string", "max_length": 500},
        "subcategory": {"type": "string", "max_length": 100},
        "tags": {"type": "array", "max_length": 20},
        "payment_method": {"type": "string", "max_length": 100},
        "merchant": {"type": "string", "max_length": 200},
        "status": {"type": "string", "enum": TRANSACTION_STATUSES},
    },
    "query": {
        "filters": {"type": "object"},
        "exclude": {"type": "object"},
        "sort": {"type": "object"},
        "limit": {"type": "integer", "min": 1, "max": 1000},
        "skip": {"type": "integer", "min": 0},
        "logic": {"type": "string"},
        "named_period": {"type": "string"},
    },
    "aggregate": {
        "operation": {"type": "string", "required": True, "enum": AGGREGATE_OPERATIONS},
        "group_by": {"type": "string", "enum": GROUP_BY_FIELDS},
        "filters": {"type": "object"},
        "logic": {"type": "string"},
        "named_period": {"type": "string"},
    },
    "compare": {
        "compare_type": {"type": "string", "required": True, "enum": COMPARE_TYPES},
        "metric": {"type": "string", "enum": COMPARE_METRICS},
        "filters": {"type": "object"},
    },
}


def get_schema(name: str) -> Schema:
    return SCHEMAS[name]


# -----------------------------
# Type predicates
# -----------------------------
def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not (isinstance(value, float) and (math.isnan(value) or math.isinf(value)))


def _is_integer(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def _is_date(value: Any) -> bool:
    try:
        parse_instant(value)
    except (ValueError, OverflowError):
        return False
    return True


_TYPE_CHECKS = {
    "string": lambda v: isinstance(v, str),
    "number": _is_number,
    "integer": _is_integer,
    "boolean": lambda v: isinstance(v, bool),
    "array": lambda v: isinstance(v, (list, tuple)),
    "object": lambda v: isinstance(v, Mapping),
    "date": _is_date,
}


def check_type(field: str, value: Any, expected: str) -> Optional[Dict[str, Any]]:
    check = _TYPE_CHECKS.get(expected)
    if check is None:
        return {"field": field, "message": f"Unknown validation type: {expected}"}
    if not check(value):
        return {
            "field": field,
            "message": f"Must be of type {expected}",
            "expected": expected,
            "received": type(value).__name__,
        }
    return None


# -----------------------------
# Core: validate
# -----------------------------
def collect_errors(data: Mapping[str, Any], schema: Schema) -> List[Dict[str, Any]]:
    errors: List[Dict[str, Any]] = []

    for field, rules in schema.items():
        value = data.get(field)

        if value is None:
            if rules.get("required"):
                errors.append({
                    "field": field,
                    "message": f'Field "{field}" is required',
                    "expected": rules.get("type"),
                })
            continue

        type_error = check_type(field, value, rules.get("type"))
        if type_error:
            errors.append(type_error)
            # Bounds on a value of the wrong type are meaningless
            continue

        if "enum" in rules and value not in rules["enum"]:
            errors.append({
                "field": field,
                "message": f'Value "{value}" is not valid',
                "expected": rules["enum"],
                "received": value,
            })

        if "min" in rules and value < rules["min"]:
            errors.append({"field": field, "message": f"Minimum value is {rules['min']}", "received": value})

        if "max" in rules and value > rules["max"]:
            errors.append({"field": field, "message": f"Maximum value is {rules['max']}", "received": value})

        if "min_length" in rules and len(value) < rules["min_length"]:
            errors.append({
                "field": field,
                "message": f"Minimum length is {rules['min_length']}",
                "received": len(value),
            })

        if "max_length" in rules and len(value) > rules["max_length"]:
            errors.append({
                "field": field,
                "message": f"Maximum length is {rules['max_length']}",
                "received": len(value),
            })

    return errors


def validate(data: Mapping[str, Any], schema: Schema) -> bool:
    """Return True or raise ValidationError carrying every violation."""
    errors = collect_errors(data, schema)
    if errors:
        raise ValidationError("Type validation failed", errors)
    return True
