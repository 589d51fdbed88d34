"""Subscription checkout and payment-provider webhook handling."""

from __future__ import annotations

import logging
from typing import Any

from app.clients.stripe_billing import StripeBillingClient
from app.services.users import UserService

logger = logging.getLogger(__name__)

_SUBSCRIPTION_CHANGED = ("customer.subscription.created", "customer.subscription.updated")
_SUBSCRIPTION_DELETED = "customer.subscription.deleted"
_CHECKOUT_COMPLETED = "checkout.session.completed"


class BillingService:
    """Create checkout sessions and apply subscription lifecycle events.

    Webhook handling is the only code path that changes ``is_subscribed``.
    """

    def __init__(self, stripe_client: StripeBillingClient, users: UserService) -> None:
        self._stripe = stripe_client
        self._users = users

    async def create_checkout_session(
        self, *, user_id: str, success_url: str, cancel_url: str
    ) -> str:
        price_id = self._stripe.price_id
        user = self._users.get_or_create(user_id)

        customer_id = user.payment_customer_id
        if not customer_id:
            customer_id = await self._stripe.create_customer(
                user_id=user_id, email=user.email
            )
            self._users.set_payment_customer_id(user_id, customer_id)
            logger.info("Created payment customer %s for user %s", customer_id, user_id)

        return await self._stripe.create_checkout_session(
            customer_id=customer_id,
            price_id=price_id,
            success_url=success_url,
            cancel_url=cancel_url,
        )

    async def handle_webhook(self, payload: bytes, signature: str | None) -> str:
        """Verify and apply one event; returns the event type."""
        event = self._stripe.construct_event(payload, signature)
        event_type = event["type"]
        data_object: dict[str, Any] = (event.get("data") or {}).get("object") or {}

        if event_type in _SUBSCRIPTION_CHANGED:
            self._apply(data_object.get("customer"), data_object.get("status") == "active")
        elif event_type == _SUBSCRIPTION_DELETED:
            self._apply(data_object.get("customer"), False)
        elif event_type == _CHECKOUT_COMPLETED:
            subscription_id = data_object.get("subscription")
            if data_object.get("mode") == "subscription" and subscription_id:
                subscription = await self._stripe.retrieve_subscription(subscription_id)
                self._apply(subscription.get("customer"), True)
        else:
            logger.info("Unhandled event type %s", event_type)
        return event_type

    def _apply(self, customer: Any, is_subscribed: bool) -> None:
        customer_id = customer.get("id") if isinstance(customer, dict) else customer
        if not customer_id:
            logger.warning("Webhook event carried no customer id; ignoring.")
            return
        user = self._users.find_by_payment_customer_id(customer_id)
        if user is None:
            logger.warning("No user found with payment customer id %s", customer_id)
            return
        self._users.set_subscription_status(user.id, is_subscribed)
        logger.info("Set is_subscribed=%s for user %s", is_subscribed, user.id)


__all__ = ["BillingService"]
