from core.errors import NotFoundError, ValidationError
from core.intent import IntentEnvelope
from core.log import get_logger
from executors.base import BaseExecutor
from services.filter_compiler import scope_to_owner

logger = get_logger("delete_executor")


class DeleteExecutor(BaseExecutor):
    """
    Removes one transaction by id, or many by filters.
    Always needs confirm: true, checked before the store is touched.
    """

    description = "Delete transactions (requires confirm: true)"

    async def execute(self, intent: IntentEnvelope) -> dict:
        params = intent.params

        if params.get("confirm") is not True:
            raise ValidationError(
                "Confirmation required to delete",
                {"hint": 'Add "confirm": true to the params'},
            )

        record_id = params.get("id")
        if record_id:
            record_id = str(record_id)
            existing = await self.store.find(scope_to_owner({"id": record_id}, intent.user_id), limit=1)
            if not existing:
                raise NotFoundError("Transaction", record_id)

            if not await self.store.delete_one(record_id):
                raise NotFoundError("Transaction", record_id)

            logger.info(
                f"[DELETE] user_id={intent.user_id}, id={record_id}",
                extra={"user_id": intent.user_id, "operation": "delete"},
            )
            return {"deleted": existing[0], "message": "Transaction deleted successfully"}

        if params.get("filters"):
            where = await self.build_where(
                intent,
                filters=params["filters"],
                logic=params.get("logic", "AND"),
                named_period=params.get("named_period"),
                require_conditions=True,
            )
            deleted_count = await self.store.delete_many(where)

            logger.info(
                f"[DELETE] user_id={intent.user_id}, deleted_count={deleted_count}",
                extra={"user_id": intent.user_id, "operation": "delete"},
            )
            return {
                "deleted_count": deleted_count,
                "message": f"{deleted_count} transaction(s) deleted",
            }

        raise ValidationError(
            'Either "id" or "filters" is required to delete',
            [{"field": "id", "message": "provide id or filters"}],
        )
