"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    close_clients,
    get_billing_service,
    get_bundle_storage_client,
    get_document_store,
    get_feedback_service,
    get_follow_up_service,
    get_gemini_client,
    get_recommendation_router,
    get_recommendation_service,
    get_stock_catalog_service,
    get_stripe_client,
    get_usage_gate,
    get_user_service,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "close_clients",
    "get_app_settings",
    "get_billing_service",
    "get_bundle_storage_client",
    "get_document_store",
    "get_feedback_service",
    "get_follow_up_service",
    "get_gemini_client",
    "get_recommendation_router",
    "get_recommendation_service",
    "get_stock_catalog_service",
    "get_stripe_client",
    "get_usage_gate",
    "get_user_service",
]
