from typing import Any, Dict, List, Mapping

from core.errors import NotFoundError, ValidationError
from core.intent import IntentEnvelope
from core.log import get_logger
from executors.base import BaseExecutor
from executors.insert import collect_field_errors
from models.transaction import PROTECTED_FIELDS, UPDATABLE_FIELDS
from services.filter_compiler import scope_to_owner

logger = get_logger("update_executor")


def check_update_fields(updates: Any) -> Dict[str, Any]:
    if not isinstance(updates, Mapping) or not updates:
        raise ValidationError(
            "No fields to update",
            [{"field": "updates", "message": "updates must be a non-empty object"}],
        )

    errors: List[Dict[str, Any]] = []
    for field in updates:
        if field in PROTECTED_FIELDS:
            errors.append({"field": field, "message": f'Field "{field}" cannot be updated'})
        elif field not in UPDATABLE_FIELDS:
            errors.append({"field": field, "message": f'Unknown field "{field}"', "expected": sorted(UPDATABLE_FIELDS)})
    if errors:
        raise ValidationError("Invalid update fields", errors)

    errors = collect_field_errors(updates, "transaction_update")
    if errors:
        raise ValidationError("Invalid update values", errors)

    cleaned = dict(updates)
    if cleaned.get("tags") is not None:
        cleaned["tags"] = [str(tag).strip().lower() for tag in cleaned["tags"] if str(tag).strip()]
    return cleaned


class UpdateExecutor(BaseExecutor):
    """
    Updates one transaction by id, or many by filters (needs confirm: true).
    """

    description = "Update one transaction by id, or several by filters with confirmation"

    async def execute(self, intent: IntentEnvelope) -> dict:
        params = intent.params
        updates = check_update_fields(params.get("updates"))
        record_id = params.get("id")
        filters = params.get("filters")

        if record_id:
            return await self._update_by_id(intent, str(record_id), updates)

        if filters:
            if params.get("confirm") is not True:
                raise ValidationError(
                    "Confirmation required for bulk update",
                    {"hint": 'Add "confirm": true to the params'},
                )
            return await self._update_by_filters(intent, params, updates)

        raise ValidationError(
            'Either "id" or "filters" is required to update',
            [{"field": "id", "message": "provide id or filters"}],
        )

    async def _update_by_id(self, intent: IntentEnvelope, record_id: str, updates: Dict[str, Any]) -> dict:
        existing = await self.store.find(scope_to_owner({"id": record_id}, intent.user_id), limit=1)
        if not existing:
            raise NotFoundError("Transaction", record_id)

        updated = await self.store.update_one(record_id, updates)
        if updated is None:
            raise NotFoundError("Transaction", record_id)

        logger.info(
            f"[UPDATE] user_id={intent.user_id}, id={record_id}, fields={sorted(updates)}",
            extra={"user_id": intent.user_id, "operation": "update"},
        )
        return {"transaction": updated, "message": "Transaction updated successfully"}

    async def _update_by_filters(self, intent: IntentEnvelope, params: Mapping[str, Any], updates: Dict[str, Any]) -> dict:
        where = await self.build_where(
            intent,
            filters=params.get("filters"),
            logic=params.get("logic", "AND"),
            named_period=params.get("named_period"),
            require_conditions=True,
        )
        result = await self.store.update_many(where, updates)

        logger.info(
            f"[UPDATE] user_id={intent.user_id}, matched={result.matched_count}, modified={result.modified_count}",
            extra={"user_id": intent.user_id, "operation": "update"},
        )
        return {
            "matched_count": result.matched_count,
            "modified_count": result.modified_count,
            "message": f"{result.modified_count} transaction(s) updated",
        }
