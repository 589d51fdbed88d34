"""
Domain models for records persisted in the document store.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRecord(BaseModel):
    """One record per caller identity; created lazily on first request."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Identity provider user identifier.")
    email: Optional[str] = None
    display_name: Optional[str] = Field(None, alias="displayName")
    is_anonymous: bool = Field(True, alias="isAnonymous")
    is_subscribed: bool = Field(False, alias="isSubscribed")
    usage_count: int = Field(0, ge=0, alias="usageCount")
    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt")
    payment_customer_id: Optional[str] = Field(None, alias="paymentCustomerId")

    def to_item(self) -> dict:
        """Serialize to the snake_case item shape stored under ``user#<id>``."""
        item = self.model_dump(mode="json", by_alias=False)
        item["pk"] = user_partition_key(self.id)
        item["sk"] = USER_SORT_KEY
        return item

    @classmethod
    def from_item(cls, item: dict) -> "UserRecord":
        data = {key: value for key, value in item.items() if key not in ("pk", "sk")}
        return cls.model_validate(data)


class StockRecord(BaseModel):
    """Catalog entry for a tradable issuer; ``id`` is the ticker."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    company_name: str = Field(..., min_length=1)
    data_bundle_path: str = Field(..., min_length=1, alias="dataBundlePath")


class FeedbackRecord(BaseModel):
    """Stored summary of a single feedback submission."""

    model_config = ConfigDict(populate_by_name=True)

    original_feedback: str = Field(..., alias="originalFeedback")
    summary: str
    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt")


USER_SORT_KEY = "profile"
CATALOG_PARTITION_KEY = "catalog"
FEEDBACK_PARTITION_KEY = "feedback"


def user_partition_key(user_id: str) -> str:
    return f"user#{user_id}"


def stock_sort_key(ticker: str) -> str:
    return f"stock#{ticker.upper()}"


__all__ = [
    "CATALOG_PARTITION_KEY",
    "FEEDBACK_PARTITION_KEY",
    "FeedbackRecord",
    "StockRecord",
    "USER_SORT_KEY",
    "UserRecord",
    "stock_sort_key",
    "user_partition_key",
]
