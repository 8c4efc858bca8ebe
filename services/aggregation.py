# FILE: services/aggregation.py
"""
Aggregation

- Describes a reduction (where + operation + optional group_by) as a pipeline
- Reduces rows Python-side with Decimal arithmetic (prisma-client-py lacks
  a portable grouped reduction), shared by every record store
- Date groupings are computed in the caller's timezone
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from services.period_resolver import resolve_timezone
from services.utils import parse_instant

AGGREGATE_OPERATIONS = ["sum", "avg", "count", "min", "max"]
FIELD_GROUPS = ["category", "type", "payment_method", "status"]
DATE_GROUPS = ["month", "year", "day", "week"]
GROUP_BY_VALUES = FIELD_GROUPS + DATE_GROUPS
# Every metric at once (used by comparisons)
SUMMARY = "summary"

# operation -> result field
METRIC_FIELDS = {
    "sum": "total",
    "avg": "average",
    "count": "count",
    "min": "minimum",
    "max": "maximum",
}


@dataclass(frozen=True)
class AggregationPipeline:
    where: Dict[str, Any] = field(default_factory=dict)
    operation: str = "sum"
    group_by: Optional[str] = None
    timezone: str = "UTC"
    value_field: str = "amount"


# -----------------------------
# Helper: extract Decimal list
# -----------------------------
def _to_decimal_list(rows: List[Any], attr: str = "amount") -> List[Decimal]:
    vals: List[Decimal] = []
    for r in rows:
        v = r.get(attr) if isinstance(r, dict) else getattr(r, attr, None)
        if v is None:
            continue
        vals.append(Decimal(str(v)))
    return vals


# -----------------------------
# Helper: compute aggregate
# -----------------------------
def _compute_aggregate(decimals: List[Decimal], op: str) -> Optional[float]:
    if op == "count":
        return len(decimals)
    if not decimals:
        return None if op in ("min", "max") else 0.0
    if op == "sum":
        return float(sum(decimals))
    if op == "avg":
        return float(sum(decimals) / Decimal(len(decimals)))
    if op == "min":
        return float(min(decimals))
    if op == "max":
        return float(max(decimals))
    return None


def reduce_rows(rows: List[Any], operation: str, value_field: str = "amount") -> Dict[str, Any]:
    """One result row: the metric field plus the row count."""
    decimals = _to_decimal_list(rows, value_field)
    result: Dict[str, Any] = {"count": len(rows)}
    operations = AGGREGATE_OPERATIONS if operation == SUMMARY else [operation]
    for op in operations:
        if op != "count":
            result[METRIC_FIELDS[op]] = _compute_aggregate(decimals, op)
    return result


# -----------------------------
# Group keys
# -----------------------------
def _field_value(row: Any, name: str) -> Any:
    return row.get(name) if isinstance(row, dict) else getattr(row, name, None)


def _date_key(fmt: Callable) -> Callable[[Any, Any], Any]:
    def key(row: Any, zone) -> Any:
        value = _field_value(row, "date")
        if value is None:
            return None
        return fmt(parse_instant(value).astimezone(zone))

    return key


_GROUP_KEYS: Dict[str, Callable[[Any, Any], Any]] = {
    "month": _date_key(lambda d: d.strftime("%Y-%m")),
    "day": _date_key(lambda d: d.strftime("%Y-%m-%d")),
    # Sunday-based week number, matching the resolver's week boundaries
    "week": _date_key(lambda d: f"{d.year:04d}-W{d.strftime('%U')}"),
    "year": _date_key(lambda d: d.year),
}


def group_key(row: Any, group_by: str, zone) -> Any:
    if group_by in _GROUP_KEYS:
        return _GROUP_KEYS[group_by](row, zone)
    value = _field_value(row, group_by)
    return getattr(value, "value", value)


def _sort_key(item: Tuple[Any, Any]) -> Tuple[int, Any]:
    key = item[0]
    return (0, "") if key is None else (1, key)


# -----------------------------
# Core: run pipeline
# -----------------------------
def run_pipeline(rows: List[Any], pipeline: AggregationPipeline) -> List[Dict[str, Any]]:
    """
    Ungrouped -> a single row with group None.
    Grouped -> one row per key, ascending, None first.
    """
    if not pipeline.group_by:
        return [{"group": None, **reduce_rows(rows, pipeline.operation, pipeline.value_field)}]

    zone = resolve_timezone(pipeline.timezone)
    groups: Dict[Any, List[Any]] = {}
    for row in rows:
        groups.setdefault(group_key(row, pipeline.group_by, zone), []).append(row)

    return [
        {"group": key, **reduce_rows(items, pipeline.operation, pipeline.value_field)}
        for key, items in sorted(groups.items(), key=_sort_key)
    ]
