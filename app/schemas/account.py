"""Schemas for user profiles and subscription checkout."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UserProfileRequest(BaseModel):
    """Profile details reported by the client after sign-in."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., min_length=1, alias="userId")
    is_anonymous: bool = Field(True, alias="isAnonymous")
    display_name: Optional[str] = Field(None, alias="displayName")
    email: Optional[str] = None


class UserStatus(BaseModel):
    """User record plus the number of free analyses left."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    email: Optional[str] = None
    display_name: Optional[str] = Field(None, alias="displayName")
    is_anonymous: bool = Field(..., alias="isAnonymous")
    is_subscribed: bool = Field(..., alias="isSubscribed")
    usage_count: int = Field(..., alias="usageCount")
    created_at: datetime = Field(..., alias="createdAt")
    payment_customer_id: Optional[str] = Field(None, alias="paymentCustomerId")
    remaining_analyses: Optional[int] = Field(
        None,
        alias="remainingAnalyses",
        description="Free analyses left; null for subscribed users.",
    )


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., min_length=1, alias="userId")


class CheckoutResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")


__all__ = [
    "CheckoutRequest",
    "CheckoutResponse",
    "UserProfileRequest",
    "UserStatus",
]
