"""
Domain error taxonomy.

Quota and authentication refusals are not exceptions; they are returned as
``RecommendationRefusal`` payloads so callers can decide between a paywall and
a sign-in prompt.
"""

from __future__ import annotations


class ProfitScoutError(RuntimeError):
    """Base class for errors surfaced to API callers."""


class DataFetchError(ProfitScoutError):
    """A data bundle reference was malformed or could not be downloaded."""

    def __init__(self, ref: str, reason: str) -> None:
        super().__init__(f"Failed to fetch data bundle '{ref}': {reason}")
        self.ref = ref
        self.reason = reason


class OutputValidationError(ProfitScoutError):
    """The model response did not match the expected output schema."""


class ConfigurationError(ProfitScoutError):
    """Required external configuration is missing."""


class WebhookVerificationError(ProfitScoutError):
    """A payment provider event failed signature verification."""


__all__ = [
    "ConfigurationError",
    "DataFetchError",
    "OutputValidationError",
    "ProfitScoutError",
    "WebhookVerificationError",
]
