from typing import Any, Dict, List, Mapping

from pydantic import ValidationError as PydanticValidationError

from core.errors import ValidationError, field_errors
from core.intent import IntentEnvelope
from core.log import get_logger
from executors.base import BaseExecutor
from models.transaction import TransactionRecord
from services import range_checker, type_checker

logger = get_logger("insert_executor")


def collect_field_errors(data: Mapping[str, Any], schema_name: str) -> List[Dict[str, Any]]:
    """Shape errors first; bounds only for fields whose shape is already valid."""
    errors = type_checker.collect_errors(data, type_checker.SCHEMAS[schema_name])
    failed = {e["field"] for e in errors}

    if data.get("amount") is not None and "amount" not in failed:
        errors.extend(range_checker.check_amount(data["amount"]))
    if data.get("date") is not None and "date" not in failed:
        errors.extend(range_checker.check_date(data["date"]))
    return errors


class InsertExecutor(BaseExecutor):
    """
    Creates one transaction owned by the caller.
    """

    description = "Create a new transaction"

    async def execute(self, intent: IntentEnvelope) -> dict:
        params = {k: v for k, v in intent.params.items() if k != "user_id"}

        errors = collect_field_errors(params, "transaction")
        if errors:
            raise ValidationError("Invalid transaction", errors)

        try:
            record = TransactionRecord.model_validate({**params, "user_id": intent.user_id})
        except PydanticValidationError as e:
            raise ValidationError("Invalid transaction", field_errors(e.errors())) from e

        created = await self.store.create(record.model_dump(exclude_none=True))

        logger.info(
            f"[INSERT] user_id={intent.user_id}, id={created.get('id')}, amount={record.amount}",
            extra={"user_id": intent.user_id, "operation": "insert"},
        )

        return {
            "transaction": created,
            "message": "Transaction created successfully",
        }
