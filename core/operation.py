# core/operation.py
from enum import Enum


class OperationKind(str, Enum):
    """
    The closed set of intents the bridge accepts.
    """

    QUERY = "query"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    AGGREGATE = "aggregate"
    COMPARE = "compare"

    # -----------------------------
    # Semantic helpers (SAFE)
    # -----------------------------
    def is_read_only(self) -> bool:
        return self in {OperationKind.QUERY, OperationKind.AGGREGATE, OperationKind.COMPARE}

    def is_write(self) -> bool:
        return not self.is_read_only()

    def may_be_destructive(self) -> bool:
        return self in {OperationKind.UPDATE, OperationKind.DELETE}

    @classmethod
    def values(cls) -> list:
        return [member.value for member in cls]
