# FILE: services/intent_dispatcher.py
"""
Intent Dispatcher

- Single entry point: envelope in, result envelope out
- Validates the envelope, cleans params, picks the executor
- Enforces the per-intent timeout and times execution
- Only place where exceptions become failure envelopes
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from configurations.config import BRIDGE_TIMEOUT_SECONDS, DEBUG, INPUT_POLICY, MAX_STRING_LENGTH
from core.errors import (
    BridgeError,
    BridgeTimeoutError,
    InternalError,
    OperationNotFoundError,
    ValidationError,
    field_errors,
)
from core.intent import IntentEnvelope
from core.log import get_logger
from core.operation import OperationKind
from executors.aggregate import AggregateExecutor
from executors.base import BaseExecutor
from executors.compare import CompareExecutor
from executors.delete import DeleteExecutor
from executors.insert import InsertExecutor
from executors.query import QueryExecutor
from executors.update import UpdateExecutor
from services import sanitizer
from services.period_resolver import PeriodResolver, make_store_payday_lookup
from services.utils import deep_serialize

logger = get_logger("intent_dispatcher")

INPUT_POLICIES = ("sanitize", "strict")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class IntentDispatcher:
    def __init__(
        self,
        store,
        resolver: Optional[PeriodResolver] = None,
        timeout: float = BRIDGE_TIMEOUT_SECONDS,
        input_policy: str = INPUT_POLICY,
        max_string_length: int = MAX_STRING_LENGTH,
    ):
        if input_policy not in INPUT_POLICIES:
            raise ValueError(f"Unknown input policy: {input_policy}")

        self.store = store
        self.periods = resolver or PeriodResolver(payday_lookup=make_store_payday_lookup(store))
        self.timeout = timeout
        self.input_policy = input_policy
        self.max_string_length = max_string_length

        self.executors: Dict[OperationKind, BaseExecutor] = {
            OperationKind.QUERY: QueryExecutor(store, self.periods),
            OperationKind.INSERT: InsertExecutor(store, self.periods),
            OperationKind.UPDATE: UpdateExecutor(store, self.periods),
            OperationKind.DELETE: DeleteExecutor(store, self.periods),
            OperationKind.AGGREGATE: AggregateExecutor(store, self.periods),
            OperationKind.COMPARE: CompareExecutor(store, self.periods),
        }

    # -----------------------------
    # Envelope
    # -----------------------------
    def parse(self, payload: Any) -> IntentEnvelope:
        if not isinstance(payload, Mapping):
            raise ValidationError(
                "Intent must be an object",
                [{"field": "intent", "message": "expected an object"}],
            )

        try:
            intent = IntentEnvelope.model_validate(dict(payload))
        except PydanticValidationError as e:
            raise ValidationError("Invalid intent envelope", field_errors(e.errors())) from e

        if intent.operation not in OperationKind.values():
            raise OperationNotFoundError(intent.operation, OperationKind.values())

        return intent.model_copy(update={"params": self.clean_params(intent.params)})

    def clean_params(self, params: Dict[str, Any]) -> Dict[str, Any]:
        sanitizer.assert_safe_keys(params)
        if self.input_policy == "strict":
            sanitizer.deep_validate(params)
        return sanitizer.sanitize(params, self.max_string_length)

    # -----------------------------
    # Core: process
    # -----------------------------
    async def process(self, payload: Any) -> Dict[str, Any]:
        started = time.perf_counter()
        operation = payload.get("operation") if isinstance(payload, Mapping) else None
        user_id = None

        try:
            intent = self.parse(payload)
            user_id = intent.user_id
            executor = self.executors[OperationKind(intent.operation)]

            logger.info(
                f"[INTENT] user_id={user_id}, operation={intent.operation}",
                extra={"user_id": user_id, "operation": intent.operation},
            )

            data = await asyncio.wait_for(executor.execute(intent), timeout=self.timeout)
            elapsed_ms = int((time.perf_counter() - started) * 1000)

            logger.info(
                f"[INTENT DONE] user_id={user_id}, operation={intent.operation}, execution_time_ms={elapsed_ms}",
                extra={"user_id": user_id, "operation": intent.operation, "execution_time_ms": elapsed_ms},
            )
            return {
                "success": True,
                "data": deep_serialize(data),
                "metadata": {
                    "operation": intent.operation,
                    "execution_time_ms": elapsed_ms,
                    "timestamp": _now_iso(),
                },
            }

        except BridgeError as e:
            return self._failure(e, operation, user_id)
        except asyncio.TimeoutError:
            error = BridgeTimeoutError(
                f"Operation timed out after {self.timeout:g}s",
                {"timeout_seconds": self.timeout},
            )
            return self._failure(error, operation, user_id)
        except Exception as e:
            logger.exception(
                f"[DISPATCH ERROR] user_id={user_id}, operation={operation}, exception={e}",
                extra={"user_id": user_id, "operation": operation, "error_code": "INTERNAL_ERROR"},
            )
            error = InternalError(
                "An unexpected error occurred",
                {"exception": str(e), "type": type(e).__name__} if DEBUG else None,
            )
            return error.to_response()

    def _failure(self, error: BridgeError, operation: Any, user_id: Optional[str]) -> Dict[str, Any]:
        logger.warning(
            f"[DISPATCH ERROR] user_id={user_id}, operation={operation}, code={error.code.value}, message={error.message}",
            extra={"user_id": user_id, "operation": operation, "error_code": error.code.value},
        )
        response = error.to_response()
        response["error"]["details"] = deep_serialize(response["error"]["details"])
        return response

    # -----------------------------
    # Introspection
    # -----------------------------
    def available_operations(self) -> List[Dict[str, str]]:
        return [
            {"name": kind.value, "description": executor.description}
            for kind, executor in self.executors.items()
        ]

    async def health_check(self) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            "status": "ok",
            "store_connected": False,
            "operations": OperationKind.values(),
        }
        try:
            info["store_connected"] = bool(await self.store.ping())
        except Exception as e:
            logger.warning(f"[HEALTH] store ping failed: {e}")
            info["store_error"] = str(e)

        if not info["store_connected"]:
            info["status"] = "degraded"
        return info
