"""Expose constructed client wrappers."""

from .bundle_storage import BundleStorageClient, build_gcs_client
from .dynamodb import DynamoDBClient
from .gemini import GeminiClient, GeminiModelError
from .sqlite_store import SQLiteStore
from .stripe_billing import StripeBillingClient

__all__ = [
    "BundleStorageClient",
    "build_gcs_client",
    "DynamoDBClient",
    "GeminiClient",
    "GeminiModelError",
    "SQLiteStore",
    "StripeBillingClient",
]
