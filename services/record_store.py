# FILE: services/record_store.py
"""
Record Store contract.

The engine only talks to storage through this interface. `where` arguments
are Prisma-style where dictionaries; records come back as JSON-safe dicts.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from services.aggregation import AggregationPipeline

Record = Dict[str, Any]
Sort = List[Dict[str, str]]


@dataclass(frozen=True)
class BulkWriteResult:
    matched_count: int
    modified_count: int


class RecordStore(Protocol):
    async def find(self, where: Dict[str, Any], sort: Optional[Sort] = None, limit: Optional[int] = 50, skip: int = 0) -> List[Record]:
        ...

    async def count(self, where: Dict[str, Any]) -> int:
        ...

    async def aggregate(self, pipeline: AggregationPipeline) -> List[Dict[str, Any]]:
        ...

    async def create(self, record: Dict[str, Any]) -> Record:
        ...

    async def update_one(self, record_id: str, updates: Dict[str, Any]) -> Optional[Record]:
        ...

    async def update_many(self, where: Dict[str, Any], updates: Dict[str, Any]) -> BulkWriteResult:
        ...

    async def delete_one(self, record_id: str) -> bool:
        ...

    async def delete_many(self, where: Dict[str, Any]) -> int:
        ...

    async def ping(self) -> bool:
        ...
