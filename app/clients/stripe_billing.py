"""Thin async wrapper over the Stripe SDK."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import stripe

from app.core.config import StripeSettings
from app.core.errors import ConfigurationError, WebhookVerificationError


class StripeBillingClient:
    """Customer, checkout session, subscription, and webhook helpers."""

    def __init__(self, settings: StripeSettings) -> None:
        self._settings = settings
        self._client = stripe.StripeClient(settings.secret_key) if settings.secret_key else None

    @property
    def price_id(self) -> str:
        if not self._settings.price_id:
            raise ConfigurationError("Stripe Price ID is not configured.")
        return self._settings.price_id

    async def create_customer(self, *, user_id: str, email: str | None) -> str:
        params: dict[str, Any] = {"metadata": {"user_id": user_id}}
        if email:
            params["email"] = email
        customer = await asyncio.to_thread(
            self._require_client().customers.create, params=params
        )
        return customer.id

    async def create_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
    ) -> str:
        params = {
            "payment_method_types": ["card"],
            "mode": "subscription",
            "customer": customer_id,
            "line_items": [{"price": price_id, "quantity": 1}],
            "success_url": success_url,
            "cancel_url": cancel_url,
        }
        session = await asyncio.to_thread(
            self._require_client().checkout.sessions.create, params=params
        )
        if not session.id:
            raise RuntimeError("Could not create Stripe Checkout Session.")
        return session.id

    async def retrieve_subscription(self, subscription_id: str) -> dict[str, Any]:
        subscription = await asyncio.to_thread(
            self._require_client().subscriptions.retrieve, subscription_id
        )
        return {
            "id": subscription.id,
            "customer": subscription.customer,
            "status": subscription.status,
        }

    def construct_event(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        """Verify the ``Stripe-Signature`` header and decode the event."""
        secret = self._settings.webhook_secret
        if not secret:
            raise ConfigurationError("Stripe webhook secret is not configured.")
        if not signature:
            raise WebhookVerificationError("Missing Stripe-Signature header.")
        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise WebhookVerificationError(f"Invalid payload encoding: {exc}") from exc
        try:
            stripe.WebhookSignature.verify_header(body, signature, secret)
        except stripe.SignatureVerificationError as exc:
            raise WebhookVerificationError(str(exc)) from exc
        try:
            event = json.loads(body)
        except json.JSONDecodeError as exc:
            raise WebhookVerificationError(f"Invalid payload: {exc}") from exc
        if not isinstance(event, dict) or "type" not in event:
            raise WebhookVerificationError("Invalid payload: missing event type.")
        return event

    def _require_client(self) -> stripe.StripeClient:
        if self._client is None:
            raise ConfigurationError("Stripe secret key is not configured.")
        return self._client


__all__ = ["StripeBillingClient"]
