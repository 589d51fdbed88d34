"""
Factory functions to provide shared clients and services as FastAPI dependencies.

Each factory is cached so clients are built once per process and reused by
every request.
"""

from functools import lru_cache

from app.clients import (
    BundleStorageClient,
    build_gcs_client,
    DynamoDBClient,
    GeminiClient,
    SQLiteStore,
    StripeBillingClient,
)
from app.core.config import get_settings
from app.services import (
    BillingService,
    DocumentStore,
    FeedbackService,
    FollowUpService,
    RecommendationRouter,
    RecommendationService,
    StockCatalogService,
    UsageGate,
    UserService,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_document_store() -> DocumentStore:
    """Provide the configured document store backend."""
    settings = _settings()
    if settings.storage_backend == "dynamodb":
        return DynamoDBClient(settings.aws)
    return SQLiteStore(settings.db_path)


@lru_cache()
def get_gemini_client() -> GeminiClient:
    """Provide Gemini client instance."""
    return GeminiClient(_settings().gemini)


@lru_cache()
def get_bundle_storage_client() -> BundleStorageClient:
    """Provide data bundle fetcher with app-lifetime GCS and HTTP clients."""
    storage_settings = _settings().storage
    return BundleStorageClient(
        storage_settings, gcs_client=build_gcs_client(storage_settings)
    )


async def close_clients() -> None:
    """Release connection pools held by cached clients."""
    if get_bundle_storage_client.cache_info().currsize:
        await get_bundle_storage_client().aclose()
        get_bundle_storage_client.cache_clear()


@lru_cache()
def get_stripe_client() -> StripeBillingClient:
    """Provide Stripe wrapper; missing keys surface when an operation needs them."""
    return StripeBillingClient(_settings().stripe)


def get_user_service() -> UserService:
    return UserService(get_document_store())


def get_usage_gate() -> UsageGate:
    """Build the quota gate using the configured free allowance."""
    return UsageGate(
        get_document_store(),
        get_user_service(),
        quota=_settings().free_analysis_quota,
    )


def get_stock_catalog_service() -> StockCatalogService:
    return StockCatalogService(get_document_store())


def get_recommendation_router() -> RecommendationRouter:
    return RecommendationRouter(get_gemini_client(), get_bundle_storage_client())


def get_recommendation_service() -> RecommendationService:
    """Build the gated recommendation pipeline."""
    return RecommendationService(
        gate=get_usage_gate(),
        router=get_recommendation_router(),
        catalog=get_stock_catalog_service(),
    )


def get_follow_up_service() -> FollowUpService:
    return FollowUpService(get_gemini_client())


def get_feedback_service() -> FeedbackService:
    return FeedbackService(get_gemini_client(), get_document_store())


def get_billing_service() -> BillingService:
    """Build checkout and webhook handling over Stripe and the user store."""
    return BillingService(get_stripe_client(), get_user_service())


__all__ = [
    "close_clients",
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
