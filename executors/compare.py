from decimal import Decimal
from typing import Any, Dict, Mapping

from core.errors import ValidationError
from core.intent import IntentEnvelope
from core.log import get_logger
from executors.base import BaseExecutor
from services import type_checker
from services.aggregation import METRIC_FIELDS, SUMMARY, AggregationPipeline

logger = get_logger("compare_executor")


def calculate_difference(side_a: Mapping[str, Any], side_b: Mapping[str, Any], metric: str) -> Dict[str, Any]:
    field = METRIC_FIELDS[metric]
    value_a = Decimal(str(side_a.get(field) or 0))
    value_b = Decimal(str(side_b.get(field) or 0))

    absolute = value_b - value_a
    percentage = round(float(absolute / value_a * 100), 2) if value_a != 0 else 0

    if absolute > 0:
        direction = "increase"
    elif absolute < 0:
        direction = "decrease"
    else:
        direction = "equal"

    return {
        "absolute": float(absolute),
        "percentage": percentage,
        "direction": direction,
        "metric_used": metric,
    }


class CompareExecutor(BaseExecutor):
    """
    Runs the same reduction over two periods or two categories
    and reports the difference B - A.
    """

    description = "Compare two periods or two categories"

    async def execute(self, intent: IntentEnvelope) -> dict:
        params = dict(intent.params)
        if params.get("compare_type") is None:
            params["compare_type"] = "period"
        if params.get("metric") is None:
            params["metric"] = "sum"
        type_checker.validate(params, type_checker.SCHEMAS["compare"])

        compare_type = params["compare_type"]
        metric = params["metric"]
        filters = params.get("filters") or {}

        if compare_type == "period":
            side_a, side_b = await self._compare_periods(intent, params, filters)
        else:
            side_a, side_b = await self._compare_categories(intent, params, filters)

        difference = calculate_difference(side_a, side_b, metric)

        logger.info(
            f"[COMPARE] user_id={intent.user_id}, type={compare_type}, metric={metric}, direction={difference['direction']}",
            extra={"user_id": intent.user_id, "operation": "compare"},
        )

        return {
            "compare_type": compare_type,
            "metric": metric,
            f"{compare_type}_a": side_a,
            f"{compare_type}_b": side_b,
            "difference": difference,
        }

    async def _summarize(self, intent: IntentEnvelope, filters: Mapping[str, Any], named_period: Any = None) -> Dict[str, Any]:
        where = await self.build_where(intent, filters=filters, named_period=named_period)
        rows = await self.store.aggregate(
            AggregationPipeline(where=where, operation=SUMMARY, timezone=intent.context.user_timezone)
        )
        row = rows[0] if rows else {"count": 0}
        return {k: v for k, v in row.items() if k != "group"}

    async def _compare_periods(self, intent: IntentEnvelope, params: Mapping[str, Any], filters: Mapping[str, Any]):
        period_a, period_b = params.get("period_a"), params.get("period_b")
        if not period_a or not period_b:
            raise ValidationError(
                "period_a and period_b are required for a period comparison",
                [{"field": name, "message": "required"} for name in ("period_a", "period_b") if not params.get(name)],
            )

        sides = []
        for period, field in ((period_a, "period_a"), (period_b, "period_b")):
            resolved = await self.resolve_period(period, intent, field)
            side_filters = {k: v for k, v in filters.items() if k != "period"}
            side_filters["date_range"] = resolved.to_filter()
            summary = await self._summarize(intent, side_filters)
            sides.append({"period": period, "date_range": resolved.to_filter(), **summary})
        return sides[0], sides[1]

    async def _compare_categories(self, intent: IntentEnvelope, params: Mapping[str, Any], filters: Mapping[str, Any]):
        category_a, category_b = params.get("category_a"), params.get("category_b")
        if not category_a or not category_b:
            raise ValidationError(
                "category_a and category_b are required for a category comparison",
                [{"field": name, "message": "required"} for name in ("category_a", "category_b") if not params.get(name)],
            )

        sides = []
        for category in (category_a, category_b):
            side_filters = {**filters, "categories": [category]}
            summary = await self._summarize(intent, side_filters, params.get("named_period"))
            sides.append({"category": category, **summary})
        return sides[0], sides[1]
