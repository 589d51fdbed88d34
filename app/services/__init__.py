"""Service layer exports."""

from .billing import BillingService
from .catalog import StockCatalogService
from .feedback import FeedbackService
from .follow_up import FollowUpService
from .recommendation_router import RecommendationRouter, select_mode
from .recommendations import RecommendationService
from .usage_gate import DenialReason, GateOutcome, UsageGate
from .users import DocumentStore, UserService

__all__ = [
    "BillingService",
    "DenialReason",
    "DocumentStore",
    "FeedbackService",
    "FollowUpService",
    "GateOutcome",
    "RecommendationRouter",
    "RecommendationService",
    "StockCatalogService",
    "UsageGate",
    "UserService",
    "select_mode",
]
