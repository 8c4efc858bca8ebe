# core/intent.py
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

from configurations.config import DEFAULT_TIMEZONE


class IntentContext(BaseModel):
    """
    Caller identity attached to every intent.
    user_id scopes every predicate the engine builds.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    user_id: str = Field(..., min_length=1)
    user_timezone: str = Field(default=DEFAULT_TIMEZONE)
    currency: Optional[str] = None

    @field_validator("user_id", mode="before")
    @classmethod
    def normalize_user_id(cls, v: Any) -> Any:
        if v is None:
            return v
        # Numeric ids are accepted and normalized to strings
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(int(v))
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("user_timezone", mode="before")
    @classmethod
    def default_timezone(cls, v: Any) -> Any:
        return v or DEFAULT_TIMEZONE


class IntentEnvelope(BaseModel):
    """
    A passive container that represents what the caller wants.
    This does NOT execute logic.
    Immutable once dispatched.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    operation: StrictStr
    params: Dict[str, Any] = Field(default_factory=dict, strict=True)
    context: IntentContext

    @field_validator("params", mode="before")
    @classmethod
    def params_default(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def user_id(self) -> str:
        return self.context.user_id
