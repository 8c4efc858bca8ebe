from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

from core.errors import ValidationError
from core.intent import IntentEnvelope
from services.filter_compiler import add_not_filter, compile_filters, scope_to_owner
from services.period_resolver import PeriodResolver, ResolvedPeriod
from services.range_checker import validate_date_range


class BaseExecutor(ABC):
    """
    Base contract for all operation executors.
    Executors take an IntentEnvelope and return the operation's data dict.
    They raise BridgeError subclasses; envelopes are built by the dispatcher.
    """

    description: str = ""

    def __init__(self, store, periods: Optional[PeriodResolver] = None):
        self.store = store
        self.periods = periods or PeriodResolver()

    @abstractmethod
    async def execute(self, intent: IntentEnvelope) -> dict:
        pass

    # -----------------------------
    # Periods
    # -----------------------------
    async def resolve_period(self, period: Any, intent: IntentEnvelope, field: str = "period") -> ResolvedPeriod:
        """
        Accepts a period name, {"named_period": name} or an explicit
        {"start", "end"} range.
        """
        if isinstance(period, str):
            return await self.periods.resolve(period, intent.context.user_timezone, intent.user_id)

        if isinstance(period, Mapping):
            if period.get("named_period"):
                return await self.periods.resolve(
                    period["named_period"], intent.context.user_timezone, intent.user_id
                )
            if "start" in period and "end" in period:
                start, end = validate_date_range(period["start"], period["end"])
                return ResolvedPeriod(start, end)

        raise ValidationError(
            f"Invalid {field}",
            [{
                "field": field,
                "message": "expected a period name, {named_period} or {start, end}",
                "received": period,
            }],
        )

    async def apply_period(
        self,
        filters: Dict[str, Any],
        named_period: Any,
        intent: IntentEnvelope,
    ) -> Dict[str, Any]:
        """Fold named_period / filters.period into filters.date_range."""
        period = filters.pop("period", None)

        if named_period is not None:
            if not isinstance(named_period, str):
                raise ValidationError(
                    "named_period must be a string",
                    [{"field": "named_period", "message": "expected a period name", "received": named_period}],
                )
            filters["date_range"] = (await self.resolve_period(named_period, intent, "named_period")).to_filter()
        elif period is not None:
            filters["date_range"] = (await self.resolve_period(period, intent, "filters.period")).to_filter()
        else:
            date_range = filters.get("date_range")
            if isinstance(date_range, Mapping) and date_range.get("start") is not None and date_range.get("end") is not None:
                validate_date_range(date_range["start"], date_range["end"])

        return filters

    # -----------------------------
    # Predicates
    # -----------------------------
    async def build_where(
        self,
        intent: IntentEnvelope,
        filters: Optional[Mapping[str, Any]] = None,
        logic: Optional[str] = "AND",
        named_period: Any = None,
        exclude: Optional[Mapping[str, Any]] = None,
        require_conditions: bool = False,
    ) -> Dict[str, Any]:
        """
        filters -> owner-scoped where dictionary.
        The caller's filter map is copied, never mutated.
        With require_conditions, filters that compile to nothing are refused
        """
        if filters is not None and not isinstance(filters, Mapping):
            raise ValidationError(
                "Filters must be an object",
                [{"field": "filters", "message": "expected an object", "received": filters}],
            )

        working = dict(filters or {})
        # Ownership comes from the context only
        working.pop("user_id", None)
        working = await self.apply_period(working, named_period, intent)

        where = compile_filters(working, logic)
        if exclude:
            where = add_not_filter(where, exclude)
        if require_conditions and not where:
            raise ValidationError(
                "Filters must select at least one condition",
                [{"field": "filters", "message": "no usable filter conditions", "received": filters}],
            )
        return scope_to_owner(where, intent.user_id)
