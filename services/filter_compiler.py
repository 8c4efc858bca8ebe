# FILE: services/filter_compiler.py
"""
Boolean Filter Compiler

- Converts a declarative filter map -> Prisma-compatible "where" dictionary
- One builder per recognized key, combined under AND / OR
- Exclusions compile the same way and are wrapped in NOT (none may match)
- Owner scoping is applied on top so OR logic can never widen results
"""

from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from core.errors import MaliciousInputError, ValidationError
from services.utils import parse_instant

Predicate = Dict[str, Any]

STORE_OPERATOR_KEYS = {"AND", "OR", "NOT"}
LOGIC_MODES = {"AND", "OR"}


class FilterKey(str, Enum):
    DATE_RANGE = "date_range"
    AMOUNT_RANGE = "amount_range"
    CATEGORIES = "categories"
    EXCLUDE_CATEGORIES = "exclude_categories"
    TAGS = "tags"
    EXCLUDE_TAGS = "exclude_tags"
    STATUS = "status"
    PAYMENT_METHOD = "payment_method"
    TYPE = "type"
    MERCHANT = "merchant"
    USER_ID = "user_id"


# -----------------------------
# Helpers
# -----------------------------
def _as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def _instant_bound(field: str, value: Any) -> str:
    try:
        return parse_instant(value).isoformat()
    except (ValueError, OverflowError) as e:
        raise ValidationError(
            f"Invalid date in '{field}'",
            [{"field": field, "message": "expected an ISO-8601 date", "received": str(value)}],
        ) from e


def _amount_bound(field: str, value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(
            f"Invalid amount in '{field}'",
            [{"field": field, "message": "expected a number", "received": value}],
        )
    return value


def _range(
    field: str,
    value: Any,
    low_key: str,
    high_key: str,
    bound: Callable[[str, Any], Any],
) -> Optional[Predicate]:
    if not isinstance(value, Mapping):
        raise ValidationError(
            f"'{field}' filter must be an object",
            [{"field": field, "message": f"expected {{{low_key}, {high_key}}}", "received": value}],
        )
    cond: Dict[str, Any] = {}
    if value.get(low_key) is not None:
        cond["gte"] = bound(f"{field}.{low_key}", value[low_key])
    if value.get(high_key) is not None:
        cond["lte"] = bound(f"{field}.{high_key}", value[high_key])
    return cond or None


def _is_scalar(value: Any) -> bool:
    return not isinstance(value, (Mapping, list, tuple, set))


def _scalar_list(field: str, value: Any) -> List[Any]:
    values = _as_list(value)
    if not all(_is_scalar(v) for v in values):
        raise ValidationError(
            f"'{field}' must be a value or a list of values",
            [{"field": field, "message": "expected scalars", "received": value}],
        )
    return values


def _equality(field: str) -> Callable[[Any], Optional[Predicate]]:
    def build(value: Any) -> Optional[Predicate]:
        if isinstance(value, (list, tuple, set)):
            values = _scalar_list(field, value)
            return {field: {"in": values}} if values else None
        if not _is_scalar(value):
            raise ValidationError(
                f"'{field}' filter must be a value or a list of values",
                [{"field": field, "message": "only equality or set membership is supported", "received": value}],
            )
        return {field: value}

    return build


# -----------------------------
# Builders (one per FilterKey)
# -----------------------------
def _date_range(value: Any) -> Optional[Predicate]:
    cond = _range("date_range", value, "start", "end", _instant_bound)
    return {"date": cond} if cond else None


def _amount_range(value: Any) -> Optional[Predicate]:
    cond = _range("amount_range", value, "min", "max", _amount_bound)
    return {"amount": cond} if cond else None


def _categories(value: Any) -> Optional[Predicate]:
    values = _scalar_list("categories", value)
    if not values:
        return None
    return {"category": {"in": values, "mode": "insensitive"}}


def _exclude_categories(value: Any) -> Optional[Predicate]:
    values = _scalar_list("exclude_categories", value)
    if not values:
        return None
    return {"category": {"not_in": values, "mode": "insensitive"}}


def _lower_tags(value: Any) -> List[str]:
    # Tags are stored lower-cased; list operators have no insensitive mode
    return [str(tag).lower() for tag in _as_list(value)]


def _tags(value: Any) -> Optional[Predicate]:
    tags = _lower_tags(value)
    if not tags:
        return None
    return {"tags": {"has_every": tags}}


def _exclude_tags(value: Any) -> Optional[Predicate]:
    tags = _lower_tags(value)
    if not tags:
        return None
    return {"NOT": [{"tags": {"has_some": tags}}]}


def _merchant(value: Any) -> Optional[Predicate]:
    if value == "":
        return None
    return {"merchant": {"contains": str(value), "mode": "insensitive"}}


FILTER_BUILDERS: Dict[FilterKey, Callable[[Any], Optional[Predicate]]] = {
    FilterKey.DATE_RANGE: _date_range,
    FilterKey.AMOUNT_RANGE: _amount_range,
    FilterKey.CATEGORIES: _categories,
    FilterKey.EXCLUDE_CATEGORIES: _exclude_categories,
    FilterKey.TAGS: _tags,
    FilterKey.EXCLUDE_TAGS: _exclude_tags,
    FilterKey.STATUS: _equality("status"),
    FilterKey.PAYMENT_METHOD: _equality("payment_method"),
    FilterKey.TYPE: _equality("type"),
    FilterKey.MERCHANT: _merchant,
    FilterKey.USER_ID: _equality("user_id"),
}


def _generic(key: str, value: Any) -> Predicate:
    if key in STORE_OPERATOR_KEYS or key.startswith("$"):
        raise MaliciousInputError("Store operator keys are not allowed in filters", {"key": key})
    if not _is_scalar(value):
        raise ValidationError(
            f"Filter '{key}' must be a scalar value",
            [{"field": key, "message": "unrecognized filters only support equality", "received": value}],
        )
    return {key: value}


# -----------------------------
# Core: compile
# -----------------------------
def compile_conditions(filter_map: Optional[Mapping[str, Any]]) -> List[Predicate]:
    if not filter_map:
        return []
    if not isinstance(filter_map, Mapping):
        raise ValidationError(
            "Filters must be an object",
            [{"field": "filters", "message": "expected an object", "received": filter_map}],
        )

    conditions: List[Predicate] = []
    for key, value in filter_map.items():
        if value is None:
            continue
        if not isinstance(key, str):
            raise ValidationError("Filter keys must be strings", [{"field": "filters", "received": key}])
        try:
            filter_key = FilterKey(key)
        except ValueError:
            conditions.append(_generic(key, value))
            continue
        condition = FILTER_BUILDERS[filter_key](value)
        if condition:
            conditions.append(condition)
    return conditions


def normalize_logic(logic: Optional[str]) -> str:
    if logic is None:
        return "AND"
    mode = logic.upper() if isinstance(logic, str) else None
    if mode not in LOGIC_MODES:
        raise ValidationError(
            f"Invalid logic '{logic}'",
            [{"field": "logic", "message": "must be AND or OR", "expected": sorted(LOGIC_MODES), "received": logic}],
        )
    return mode


def combine(conditions: List[Predicate], logic: str = "AND") -> Predicate:
    if not conditions:
        return {}
    if len(conditions) == 1:
        return conditions[0]
    return {logic: conditions}


def compile_filters(filter_map: Optional[Mapping[str, Any]], logic: Optional[str] = "AND") -> Predicate:
    """
    filter map + logic -> where dictionary.
    {} matches everything; a single condition is returned unwrapped.
    """
    mode = normalize_logic(logic)
    return combine(compile_conditions(filter_map), mode)


def add_not_filter(predicate: Predicate, not_map: Optional[Mapping[str, Any]]) -> Predicate:
    """Exclude every record matching any condition of `not_map`."""
    excluded = compile_conditions(not_map)
    if not excluded:
        return predicate
    not_clause: Predicate = {"NOT": excluded}
    if not predicate:
        return not_clause
    return {"AND": [predicate, not_clause]}


def scope_to_owner(predicate: Predicate, user_id: str) -> Predicate:
    owner: Predicate = {"user_id": user_id}
    if not predicate:
        return owner
    return {"AND": [owner, predicate]}
