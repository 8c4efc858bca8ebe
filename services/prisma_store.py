# FILE: services/prisma_store.py
"""
Prisma Record Store

- Runs the engine's where dictionaries against prisma-client-py
- Reductions are Python-side (see services/aggregation)
- Driver failures surface as DatabaseError; timeouts surface as BridgeTimeoutError
"""

import asyncio
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, TypeVar

import httpx

from core.errors import BridgeError, BridgeTimeoutError, DatabaseError
from core.log import get_logger
from services.aggregation import AggregationPipeline, run_pipeline
from services.record_store import BulkWriteResult, Record, Sort
from services.utils import deep_serialize, parse_instant

logger = get_logger("prisma_store")

T = TypeVar("T")

DATE_FIELDS = {"date", "created_at", "updated_at"}
DECIMAL_FIELDS = {"amount"}
COMBINATORS = {"AND", "OR", "NOT"}


# -----------------------------
# Helper: coerce values to client types
# -----------------------------
def _coerce_value(field: str, value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return [_coerce_value(field, v) for v in value]
    if field in DATE_FIELDS and not isinstance(value, bool):
        return parse_instant(value)
    if field in DECIMAL_FIELDS and isinstance(value, (int, float)) and not isinstance(value, bool):
        return Decimal(str(value))
    return value


def _prepare_where(where: Any, field: Optional[str] = None) -> Any:
    """Date bounds -> datetime, amounts -> Decimal, everywhere in the tree."""
    if isinstance(where, Mapping):
        prepared: Dict[str, Any] = {}
        for key, value in where.items():
            if key in COMBINATORS:
                prepared[key] = _prepare_where(value)
            elif key == "mode" or field is not None and key in ("contains", "startswith", "endswith"):
                prepared[key] = value
            elif field is None:
                prepared[key] = _prepare_where(value, key)
            else:
                # operator inside a field condition
                prepared[key] = _prepare_where(value, field) if isinstance(value, Mapping) else _coerce_value(field, value)
        return prepared
    if isinstance(where, (list, tuple)) and field is None:
        return [_prepare_where(w) for w in where]
    return _coerce_value(field, where) if field else where


def _prepare_data(data: Mapping[str, Any]) -> Dict[str, Any]:
    prepared = {k: _coerce_value(k, v) for k, v in data.items()}
    if prepared.get("tags") is not None:
        prepared["tags"] = [str(t).lower() for t in prepared["tags"]]
    return prepared


class PrismaTransactionStore:
    def __init__(self, db):
        self.db = db

    async def _call(self, operation: str, fn: Callable[[], Awaitable[T]]) -> T:
        try:
            return await fn()
        except (BridgeError, asyncio.TimeoutError, asyncio.CancelledError):
            raise
        except httpx.TimeoutException as e:
            logger.warning(f"[STORE TIMEOUT] operation={operation}")
            raise BridgeTimeoutError(f"Database operation timed out: {operation}", {"operation": operation}) from e
        except Exception as e:
            logger.exception(f"[STORE ERROR] operation={operation}")
            raise DatabaseError(f"Database operation failed: {operation}", operation, str(e)) from e

    # -----------------------------
    # Reads
    # -----------------------------
    async def find(self, where: Dict[str, Any], sort: Optional[Sort] = None, limit: Optional[int] = 50, skip: int = 0) -> List[Record]:
        find_kwargs: Dict[str, Any] = {"where": _prepare_where(where), "skip": skip}
        if limit is not None:
            find_kwargs["take"] = limit
        if sort:
            find_kwargs["order"] = sort

        rows = await self._call("find", lambda: self.db.transaction.find_many(**find_kwargs))
        return deep_serialize(rows)

    async def count(self, where: Dict[str, Any]) -> int:
        return await self._call("count", lambda: self.db.transaction.count(where=_prepare_where(where)))

    async def aggregate(self, pipeline: AggregationPipeline) -> List[Dict[str, Any]]:
        rows = await self._call("aggregate", lambda: self.db.transaction.find_many(where=_prepare_where(pipeline.where)))
        return run_pipeline(deep_serialize(rows), pipeline)

    # -----------------------------
    # Writes
    # -----------------------------
    async def create(self, record: Dict[str, Any]) -> Record:
        created = await self._call("create", lambda: self.db.transaction.create(data=_prepare_data(record)))
        return deep_serialize(created)

    async def update_one(self, record_id: str, updates: Dict[str, Any]) -> Optional[Record]:
        updated = await self._call(
            "update",
            lambda: self.db.transaction.update(where={"id": record_id}, data=_prepare_data(updates)),
        )
        return deep_serialize(updated) if updated is not None else None

    async def update_many(self, where: Dict[str, Any], updates: Dict[str, Any]) -> BulkWriteResult:
        count = await self._call(
            "update_many",
            lambda: self.db.transaction.update_many(where=_prepare_where(where), data=_prepare_data(updates)),
        )
        # The client reports a single affected-row count
        return BulkWriteResult(matched_count=count, modified_count=count)

    async def delete_one(self, record_id: str) -> bool:
        deleted = await self._call("delete", lambda: self.db.transaction.delete(where={"id": record_id}))
        return deleted is not None

    async def delete_many(self, where: Dict[str, Any]) -> int:
        return await self._call("delete_many", lambda: self.db.transaction.delete_many(where=_prepare_where(where)))

    async def ping(self) -> bool:
        return bool(self.db.is_connected())
