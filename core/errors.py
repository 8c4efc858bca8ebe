# core/errors.py
"""
Error taxonomy for the finance bridge.

Every failure raised by a handler, validator or store is a BridgeError.
The dispatcher is the only place that turns them into failure envelopes.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MALICIOUS_INPUT = "MALICIOUS_INPUT"
    NOT_FOUND = "NOT_FOUND"
    DATABASE_ERROR = "DATABASE_ERROR"
    TIMEOUT = "TIMEOUT"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.MALICIOUS_INPUT: 400,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.DATABASE_ERROR: 503,
    ErrorCode.TIMEOUT: 504,
}


class BridgeError(Exception):
    """Base class: a code, a human message and optional structured details."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.timestamp = datetime.now(timezone.utc).isoformat()

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp,
            },
        }


class ValidationError(BridgeError):
    """Malformed, missing or out-of-range input. `details` lists every violation."""

    code = ErrorCode.VALIDATION_ERROR

    @property
    def errors(self) -> List[Dict[str, Any]]:
        if isinstance(self.details, list):
            return self.details
        return []


class OperationNotFoundError(ValidationError):
    def __init__(self, operation: str, valid_operations: List[str]):
        super().__init__(
            f"Operation '{operation}' does not exist",
            {"provided": operation, "valid_operations": valid_operations},
        )


class MaliciousInputError(BridgeError):
    code = ErrorCode.MALICIOUS_INPUT


class NotFoundError(BridgeError):
    code = ErrorCode.NOT_FOUND

    def __init__(self, resource: str, resource_id: Any):
        super().__init__(f"{resource} '{resource_id}' not found", {"id": resource_id})


class DatabaseError(BridgeError):
    code = ErrorCode.DATABASE_ERROR

    def __init__(self, message: str, operation: Optional[str] = None, original: Optional[str] = None):
        details = {"operation": operation, "original": original} if operation or original else None
        super().__init__(message, details)


class BridgeTimeoutError(BridgeError):
    code = ErrorCode.TIMEOUT


class UnauthorizedError(BridgeError):
    code = ErrorCode.UNAUTHORIZED


class ForbiddenError(BridgeError):
    code = ErrorCode.FORBIDDEN


class InternalError(BridgeError):
    code = ErrorCode.INTERNAL_ERROR


def field_errors(raw_errors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """pydantic `exc.errors()` -> the field/message list ValidationError carries."""
    return [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg")}
        for err in raw_errors
    ]
