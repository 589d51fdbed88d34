"""Public schema exports."""

from .account import CheckoutRequest, CheckoutResponse, UserProfileRequest, UserStatus
from .recommendation import (
    MAX_BUNDLE_REFS,
    AnalysisMode,
    AnalysisRequest,
    CandidateScore,
    ChatMessage,
    FeedbackRequest,
    FollowUpRequest,
    FollowUpResponse,
    RecommendationRefusal,
    RecommendationResult,
    TopPickRequest,
)

__all__ = [
    "AnalysisMode",
    "AnalysisRequest",
    "CandidateScore",
    "ChatMessage",
    "CheckoutRequest",
    "CheckoutResponse",
    "FeedbackRequest",
    "FollowUpRequest",
    "FollowUpResponse",
    "MAX_BUNDLE_REFS",
    "RecommendationRefusal",
    "RecommendationResult",
    "TopPickRequest",
    "UserProfileRequest",
    "UserStatus",
]
