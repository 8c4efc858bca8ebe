from typing import Any, Dict

from core.intent import IntentEnvelope
from core.log import get_logger
from executors.base import BaseExecutor
from services import type_checker
from services.aggregation import AggregationPipeline

logger = get_logger("aggregate_executor")


def _result_fields(row: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in row.items() if k != "group"}


class AggregateExecutor(BaseExecutor):
    """
    sum / avg / count / min / max over the caller's transactions,
    optionally grouped by a field or a calendar bucket.
    """

    description = "Compute sum, avg, count, min or max, optionally grouped"

    async def execute(self, intent: IntentEnvelope) -> dict:
        params = dict(intent.params)
        if params.get("operation") is None:
            params["operation"] = "sum"
        type_checker.validate(params, type_checker.SCHEMAS["aggregate"])

        operation = params["operation"]
        group_by = params.get("group_by")

        where = await self.build_where(
            intent,
            filters=params.get("filters"),
            logic=params.get("logic", "AND"),
            named_period=params.get("named_period"),
        )
        rows = await self.store.aggregate(
            AggregationPipeline(
                where=where,
                operation=operation,
                group_by=group_by,
                timezone=intent.context.user_timezone,
            )
        )

        logger.info(
            f"[AGGREGATE] user_id={intent.user_id}, operation={operation}, group_by={group_by}, rows={len(rows)}",
            extra={"user_id": intent.user_id, "operation": "aggregate"},
        )

        if not group_by:
            result = _result_fields(rows[0]) if rows else {"count": 0}
            return {"operation": operation, "result": result}

        groups = [{"group": row["group"], **_result_fields(row)} for row in rows]
        return {
            "operation": operation,
            "group_by": group_by,
            "groups": groups,
            "total_groups": len(groups),
        }
