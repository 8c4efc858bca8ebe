# models/transaction.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from services.utils import parse_instant


class TransactionRecord(BaseModel):
    """A validated transaction ready to be written to the store."""

    model_config = ConfigDict(extra="ignore")

    user_id: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0, description="The amount of the transaction")
    date: datetime = Field(..., description="When the transaction happened")
    category: str = Field(..., min_length=1, max_length=100)
    type: Literal["expense", "income"]
    description: Optional[str] = Field(None, max_length=500)
    subcategory: Optional[str] = Field(None, max_length=100)
    tags: List[str] = Field(default_factory=list, max_length=20)
    payment_method: Optional[str] = Field(None, max_length=100)
    merchant: Optional[str] = Field(None, max_length=200)
    status: Literal["pending", "confirmed", "cancelled"] = "confirmed"

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, v):
        return parse_instant(v)

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v):
        if not v:
            return []
        # Stored lower-cased so tag filters are case-insensitive
        return [str(tag).strip().lower() for tag in v if str(tag).strip()]


UPDATABLE_FIELDS = {
    "amount",
    "date",
    "category",
    "type",
    "description",
    "subcategory",
    "tags",
    "payment_method",
    "merchant",
    "status",
}
PROTECTED_FIELDS = {"id", "_id", "user_id", "created_at"}
