# FILE: services/memory_store.py
"""
In-memory Record Store

- Keeps transactions in-process (RECORD_STORE=memory, tests)
- Evaluates the same Prisma-style where dictionaries the compiler emits
"""

import copy
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from core.log import get_logger
from services.aggregation import AggregationPipeline, run_pipeline
from services.record_store import BulkWriteResult, Record, Sort
from services.utils import deep_serialize, parse_instant

logger = get_logger("memory_store")

DATE_FIELDS = {"date", "created_at", "updated_at"}
FIELD_OPERATORS = {
    "equals", "in", "not_in", "gt", "gte", "lt", "lte",
    "contains", "startswith", "endswith", "has", "has_every", "has_some", "not", "mode",
}


# -----------------------------
# Value coercion
# -----------------------------
def _comparable(field: str, value: Any, insensitive: bool = False) -> Any:
    if value is None:
        return None
    if field in DATE_FIELDS:
        return parse_instant(value)
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return Decimal(str(value))
    if isinstance(value, str) and insensitive:
        return value.lower()
    return value


def _text(value: Any, insensitive: bool) -> str:
    text = "" if value is None else str(value)
    return text.lower() if insensitive else text


def _is_operator_map(cond: Any) -> bool:
    return isinstance(cond, Mapping) and bool(cond) and set(cond).issubset(FIELD_OPERATORS)


# -----------------------------
# Where evaluation
# -----------------------------
def _match_field(field: str, value: Any, cond: Any) -> bool:
    if not _is_operator_map(cond):
        return _comparable(field, value) == _comparable(field, cond)

    insensitive = cond.get("mode") == "insensitive"
    current = _comparable(field, value, insensitive)

    for op, operand in cond.items():
        if op == "mode":
            continue
        if op == "equals":
            ok = current == _comparable(field, operand, insensitive)
        elif op == "in":
            ok = current in [_comparable(field, o, insensitive) for o in operand]
        elif op == "not_in":
            ok = current not in [_comparable(field, o, insensitive) for o in operand]
        elif op in ("gt", "gte", "lt", "lte"):
            if current is None:
                return False
            bound = _comparable(field, operand)
            ok = {
                "gt": current > bound,
                "gte": current >= bound,
                "lt": current < bound,
                "lte": current <= bound,
            }[op]
        elif op == "contains":
            ok = value is not None and _text(operand, insensitive) in _text(value, insensitive)
        elif op == "startswith":
            ok = value is not None and _text(value, insensitive).startswith(_text(operand, insensitive))
        elif op == "endswith":
            ok = value is not None and _text(value, insensitive).endswith(_text(operand, insensitive))
        elif op == "has":
            ok = operand in (value or [])
        elif op == "has_every":
            ok = all(item in (value or []) for item in operand)
        elif op == "has_some":
            ok = any(item in (value or []) for item in operand)
        elif op == "not":
            ok = not _match_field(field, value, operand)
        else:
            ok = False
        if not ok:
            return False
    return True


def matches(record: Mapping[str, Any], where: Optional[Mapping[str, Any]]) -> bool:
    if not where:
        return True
    for key, cond in where.items():
        if key == "AND":
            if not all(matches(record, c) for c in _clauses(cond)):
                return False
        elif key == "OR":
            if not any(matches(record, c) for c in _clauses(cond)):
                return False
        elif key == "NOT":
            if any(matches(record, c) for c in _clauses(cond)):
                return False
        elif not _match_field(key, record.get(key), cond):
            return False
    return True


def _clauses(cond: Any) -> List[Mapping[str, Any]]:
    return list(cond) if isinstance(cond, (list, tuple)) else [cond]


class InMemoryTransactionStore:
    """
    Async record store over a plain dict keyed by id.
    Records are stored and returned in their serialized (JSON-safe) form.
    """

    def __init__(self, records: Optional[List[Dict[str, Any]]] = None):
        self._records: Dict[str, Record] = {}
        self.seed(records or [])

    def __len__(self) -> int:
        return len(self._records)

    def seed(self, records: List[Dict[str, Any]]) -> None:
        for record in records:
            self._insert(record)

    # -----------------------------
    # Normalization
    # -----------------------------
    @staticmethod
    def _normalize(fields: Mapping[str, Any]) -> Dict[str, Any]:
        data = dict(fields)
        if data.get("date") is not None:
            data["date"] = parse_instant(data["date"]).isoformat()
        if data.get("tags") is not None:
            data["tags"] = [str(t).lower() for t in data["tags"]]
        return deep_serialize(data)

    def _insert(self, record: Mapping[str, Any]) -> Record:
        now = datetime.now(timezone.utc).isoformat()
        data = {
            "status": "confirmed",
            "tags": [],
            **self._normalize(record),
        }
        data.setdefault("id", uuid.uuid4().hex)
        data.setdefault("created_at", now)
        data["updated_at"] = now
        self._records[data["id"]] = data
        return data

    def _select(self, where: Optional[Mapping[str, Any]]) -> List[Record]:
        return [r for r in self._records.values() if matches(r, where)]

    # -----------------------------
    # RecordStore
    # -----------------------------
    async def find(self, where: Dict[str, Any], sort: Optional[Sort] = None, limit: Optional[int] = 50, skip: int = 0) -> List[Record]:
        rows = self._select(where)
        for order in reversed(sort or []):
            for field, direction in order.items():
                rows.sort(
                    key=lambda r, f=field: (r.get(f) is not None, _comparable(f, r.get(f)) if r.get(f) is not None else 0),
                    reverse=str(direction).lower() == "desc",
                )
        rows = rows[skip:]
        if limit is not None:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    async def count(self, where: Dict[str, Any]) -> int:
        return len(self._select(where))

    async def aggregate(self, pipeline: AggregationPipeline) -> List[Dict[str, Any]]:
        return run_pipeline(self._select(pipeline.where), pipeline)

    async def create(self, record: Dict[str, Any]) -> Record:
        created = self._insert(record)
        logger.debug(f"[STORE] created id={created['id']}")
        return copy.deepcopy(created)

    async def update_one(self, record_id: str, updates: Dict[str, Any]) -> Optional[Record]:
        current = self._records.get(record_id)
        if current is None:
            return None
        current.update(self._normalize(updates))
        current["updated_at"] = datetime.now(timezone.utc).isoformat()
        return copy.deepcopy(current)

    async def update_many(self, where: Dict[str, Any], updates: Dict[str, Any]) -> BulkWriteResult:
        normalized = self._normalize(updates)
        matched = self._select(where)
        modified = 0
        for record in matched:
            if any(record.get(k) != v for k, v in normalized.items()):
                record.update(normalized)
                record["updated_at"] = datetime.now(timezone.utc).isoformat()
                modified += 1
        return BulkWriteResult(matched_count=len(matched), modified_count=modified)

    async def delete_one(self, record_id: str) -> bool:
        return self._records.pop(record_id, None) is not None

    async def delete_many(self, where: Dict[str, Any]) -> int:
        doomed = [r["id"] for r in self._select(where)]
        for record_id in doomed:
            del self._records[record_id]
        return len(doomed)

    async def ping(self) -> bool:
        return True
