import math
from typing import Any, Dict, List

from core.errors import ValidationError
from core.intent import IntentEnvelope
from core.log import get_logger
from executors.base import BaseExecutor
from services import range_checker, type_checker

logger = get_logger("query_executor")

DEFAULT_LIMIT = 50
DEFAULT_SORT = [{"date": "desc"}]
SORTABLE_FIELDS = {
    "date",
    "amount",
    "category",
    "subcategory",
    "type",
    "status",
    "payment_method",
    "merchant",
    "created_at",
    "updated_at",
}
_DIRECTIONS = {"asc": "asc", "desc": "desc", 1: "asc", -1: "desc"}


def normalize_sort(sort: Any) -> List[Dict[str, str]]:
    """{"amount": "asc", "date": -1} -> [{"amount": "asc"}, {"date": "desc"}]"""
    if not sort:
        return list(DEFAULT_SORT)

    errors = []
    order: List[Dict[str, str]] = []
    for field, direction in sort.items():
        if field not in SORTABLE_FIELDS:
            errors.append({"field": f"sort.{field}", "message": "field is not sortable", "expected": sorted(SORTABLE_FIELDS)})
            continue
        key = direction.lower() if isinstance(direction, str) else direction
        if isinstance(key, bool) or not isinstance(key, (str, int)) or key not in _DIRECTIONS:
            errors.append({"field": f"sort.{field}", "message": "direction must be asc or desc", "received": direction})
            continue
        order.append({field: _DIRECTIONS[key]})

    if errors:
        raise ValidationError("Invalid sort", errors)
    return order


class QueryExecutor(BaseExecutor):
    """
    Paginated transaction search.
    """

    description = "Search transactions with filters, sorting and pagination"

    async def execute(self, intent: IntentEnvelope) -> dict:
        params = intent.params
        type_checker.validate(params, type_checker.SCHEMAS["query"])

        limit = int(params.get("limit") if params.get("limit") is not None else DEFAULT_LIMIT)
        skip = int(params.get("skip") if params.get("skip") is not None else 0)
        range_checker.validate({"limit": limit, "skip": skip})
        sort = normalize_sort(params.get("sort"))

        where = await self.build_where(
            intent,
            filters=params.get("filters"),
            logic=params.get("logic", "AND"),
            named_period=params.get("named_period"),
            exclude=params.get("exclude"),
        )

        transactions = await self.store.find(where, sort=sort, limit=limit, skip=skip)
        total = await self.store.count(where)
        count = len(transactions)

        logger.info(
            f"[QUERY] user_id={intent.user_id}, returned={count}, total={total}",
            extra={"user_id": intent.user_id, "operation": "query"},
        )

        return {
            "transactions": transactions,
            "count": count,
            "total": total,
            "has_more": skip + count < total,
            "page_info": {
                "limit": limit,
                "skip": skip,
                "current_page": skip // limit + 1,
                "total_pages": math.ceil(total / limit) if total else 0,
            },
        }
