# FILE: services/range_checker.py
"""
Range Checker

- Numeric, date, length and pagination bounds for intent params
- Defaults cover amount, date, limit and skip; callers may add rules
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from dateutil.relativedelta import relativedelta

from core.errors import ValidationError
from services.utils import parse_instant

MAX_AMOUNT = 1_000_000_000
MAX_AMOUNT_DECIMALS = 2
MAX_LIMIT = 1000
MAX_SKIP = 1_000_000
MAX_RANGE_YEARS = 5
DATE_LOOKBACK_YEARS = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def default_rules(now: Optional[datetime] = None) -> Dict[str, Dict[str, Any]]:
    now = now or _utcnow()
    return {
        "amount": {"min": 0, "max": MAX_AMOUNT, "decimals": MAX_AMOUNT_DECIMALS},
        "date": {
            "min": now - relativedelta(years=DATE_LOOKBACK_YEARS),
            "max": now + timedelta(days=1),
        },
        "limit": {"min": 1, "max": MAX_LIMIT},
        "skip": {"min": 0, "max": MAX_SKIP},
    }


# -----------------------------
# Single-field checks
# -----------------------------
def _decimal_places(value: Any) -> int:
    try:
        exponent = Decimal(str(value)).normalize().as_tuple().exponent
    except InvalidOperation:
        return 0
    return -exponent if isinstance(exponent, int) and exponent < 0 else 0


def check_amount(value: Any, rules: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
    rules = rules or default_rules()["amount"]
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return [{"field": "amount", "message": "Amount must be a number", "received": value}]

    errors: List[Dict[str, Any]] = []
    if value < rules["min"]:
        errors.append({"field": "amount", "message": f"Amount cannot be less than {rules['min']}", "received": value})
    if value > rules["max"]:
        errors.append({"field": "amount", "message": f"Amount cannot exceed {rules['max']}", "received": value})
    if _decimal_places(value) > rules.get("decimals", MAX_AMOUNT_DECIMALS):
        errors.append({
            "field": "amount",
            "message": f"Amount may have at most {rules.get('decimals', MAX_AMOUNT_DECIMALS)} decimal places",
            "received": value,
        })
    return errors


def check_date(value: Any, rules: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
    rules = rules or default_rules()["date"]
    try:
        instant = parse_instant(value)
    except (ValueError, OverflowError):
        return [{"field": "date", "message": "Invalid date", "received": value}]

    errors: List[Dict[str, Any]] = []
    if instant < rules["min"]:
        errors.append({
            "field": "date",
            "message": f"Date cannot be before {rules['min'].date().isoformat()}",
            "received": value,
        })
    if instant > rules["max"]:
        errors.append({
            "field": "date",
            "message": f"Date cannot be after {rules['max'].date().isoformat()}",
            "received": value,
        })
    return errors


def _check_bounded_int(field: str, value: Any, rules: Mapping[str, Any]) -> List[Dict[str, Any]]:
    if isinstance(value, bool) or not isinstance(value, int):
        return [{"field": field, "message": f"{field} must be an integer", "received": value}]
    if value < rules["min"] or value > rules["max"]:
        return [{
            "field": field,
            "message": f"{field} must be between {rules['min']} and {rules['max']}",
            "received": value,
        }]
    return []


def check_limit(value: Any, rules: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
    return _check_bounded_int("limit", value, rules or default_rules()["limit"])


def check_skip(value: Any, rules: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
    return _check_bounded_int("skip", value, rules or default_rules()["skip"])


def check_generic(field: str, value: Any, rules: Mapping[str, Any]) -> List[Dict[str, Any]]:
    errors: List[Dict[str, Any]] = []
    is_number = isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)

    if is_number and "min" in rules and value < rules["min"]:
        errors.append({"field": field, "message": f"Minimum value is {rules['min']}", "received": value})
    if is_number and "max" in rules and value > rules["max"]:
        errors.append({"field": field, "message": f"Maximum value is {rules['max']}", "received": value})

    if isinstance(value, str):
        if "min_length" in rules and len(value) < rules["min_length"]:
            errors.append({"field": field, "message": f"Minimum length is {rules['min_length']}", "received": len(value)})
        if "max_length" in rules and len(value) > rules["max_length"]:
            errors.append({"field": field, "message": f"Maximum length is {rules['max_length']}", "received": len(value)})

    if isinstance(value, (list, tuple)):
        if "min_items" in rules and len(value) < rules["min_items"]:
            errors.append({"field": field, "message": f"At least {rules['min_items']} items required", "received": len(value)})
        if "max_items" in rules and len(value) > rules["max_items"]:
            errors.append({"field": field, "message": f"At most {rules['max_items']} items allowed", "received": len(value)})

    return errors


_FIELD_CHECKS: Dict[str, Callable[[Any, Optional[Mapping[str, Any]]], List[Dict[str, Any]]]] = {
    "amount": check_amount,
    "date": check_date,
    "limit": check_limit,
    "skip": check_skip,
}


# -----------------------------
# Core: validate
# -----------------------------
def validate(
    data: Mapping[str, Any],
    rules: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> bool:
    """
    Check every present field against the default rules merged with `rules`.
    Raises a single ValidationError listing all violations.
    """
    merged: Dict[str, Dict[str, Any]] = default_rules()
    for field, extra in (rules or {}).items():
        merged[field] = {**merged.get(field, {}), **extra}

    errors: List[Dict[str, Any]] = []
    for field, field_rules in merged.items():
        value = data.get(field)
        if value is None:
            continue
        check = _FIELD_CHECKS.get(field)
        if check is not None:
            errors.extend(check(value, field_rules))
        else:
            errors.extend(check_generic(field, value, field_rules))

    if errors:
        raise ValidationError("Range validation failed", errors)
    return True


def validate_date_range(start: Any, end: Any) -> Tuple[datetime, datetime]:
    """Parse an explicit [start, end] pair and return it as aware datetimes."""
    errors: List[Dict[str, Any]] = []
    parsed: Dict[str, datetime] = {}
    for field, value in (("start", start), ("end", end)):
        try:
            parsed[field] = parse_instant(value)
        except (ValueError, OverflowError):
            errors.append({"field": f"date_range.{field}", "message": "Invalid date", "received": value})
    if errors:
        raise ValidationError("Invalid date range", errors)

    start_dt, end_dt = parsed["start"], parsed["end"]
    if start_dt > end_dt:
        raise ValidationError(
            "Start date must be before end date",
            [{"field": "date_range", "message": "start is after end", "received": {"start": start, "end": end}}],
        )
    if end_dt > start_dt + relativedelta(years=MAX_RANGE_YEARS):
        raise ValidationError(
            f"Date range cannot exceed {MAX_RANGE_YEARS} years",
            [{"field": "date_range", "message": f"span exceeds {MAX_RANGE_YEARS} years"}],
        )
    return start_dt, end_dt
