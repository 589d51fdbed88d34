try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import hashlib
import hmac
import json
import time

import httpx
import pytest

from app.clients import StripeBillingClient
from app.core.config import StripeSettings
from app.core.errors import ConfigurationError, WebhookVerificationError
from app.main import app
from app.services import BillingService, UserService

WEBHOOK_SECRET = "whsec_unit_test"

pytestmark = pytest.mark.anyio("asyncio")


class RecordingStripe(StripeBillingClient):
    """Real signature verification; network calls are replaced by canned data."""

    def __init__(self, settings: StripeSettings, subscriptions: dict | None = None) -> None:
        super().__init__(settings)
        self.subscriptions = subscriptions or {}
        self.customers_created: list[str] = []
        self.sessions: list[dict] = []

    async def create_customer(self, *, user_id: str, email: str | None) -> str:
        self.customers_created.append(user_id)
        return f"cus_{user_id}"

    async def create_checkout_session(self, **kwargs) -> str:
        self.sessions.append(kwargs)
        return f"cs_test_{len(self.sessions)}"

    async def retrieve_subscription(self, subscription_id: str) -> dict:
        return self.subscriptions[subscription_id]


def _settings(**overrides) -> StripeSettings:
    settings = StripeSettings(
        STRIPE_SECRET_KEY="sk_test_unit",
        STRIPE_WEBHOOK_SECRET=WEBHOOK_SECRET,
        STRIPE_PRICE_ID="price_unit",
    )
    return settings.model_copy(update=overrides)


def _sign(payload: str, secret: str = WEBHOOK_SECRET) -> str:
    timestamp = int(time.time())
    digest = hmac.new(
        secret.encode("utf-8"), f"{timestamp}.{payload}".encode("utf-8"), hashlib.sha256
    ).hexdigest()
    return f"t={timestamp},v1={digest}"


def _event(event_type: str, data_object: dict) -> str:
    return json.dumps(
        {"id": "evt_test", "type": event_type, "data": {"object": data_object}}
    )


@pytest.fixture()
def users(sqlite_store) -> UserService:
    service = UserService(sqlite_store)
    service.get_or_create("alice")
    service.set_payment_customer_id("alice", "cus_alice")
    return service


@pytest.fixture()
def stripe_client() -> RecordingStripe:
    return RecordingStripe(
        _settings(),
        subscriptions={"sub_1": {"id": "sub_1", "customer": "cus_alice", "status": "active"}},
    )


@pytest.fixture()
def billing(stripe_client, users) -> BillingService:
    return BillingService(stripe_client, users)


@pytest.fixture()
async def client(billing):
    from app import dependencies

    app.dependency_overrides.clear()
    app.dependency_overrides[dependencies.get_billing_service] = lambda: billing
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http
    app.dependency_overrides.clear()


async def _post_event(client, payload: str, signature: str | None = None):
    headers = {"content-type": "application/json"}
    headers["stripe-signature"] = signature if signature is not None else _sign(payload)
    return await client.post("/api/billing/webhook", content=payload, headers=headers)


async def test_active_subscription_marks_user_subscribed(client, users):
    payload = _event(
        "customer.subscription.created", {"customer": "cus_alice", "status": "active"}
    )

    response = await _post_event(client, payload)

    assert response.status_code == 200
    assert response.json() == {"received": True}
    assert users.get("alice").is_subscribed is True


async def test_non_active_update_clears_subscription(client, users):
    users.set_subscription_status("alice", True)
    payload = _event(
        "customer.subscription.updated", {"customer": "cus_alice", "status": "past_due"}
    )

    response = await _post_event(client, payload)

    assert response.status_code == 200
    assert users.get("alice").is_subscribed is False


async def test_deleted_subscription_clears_flag(client, users):
    users.set_subscription_status("alice", True)
    payload = _event(
        "customer.subscription.deleted",
        {"customer": {"id": "cus_alice"}, "status": "canceled"},
    )

    await _post_event(client, payload)

    assert users.get("alice").is_subscribed is False


async def test_replayed_event_is_idempotent(client, users):
    payload = _event(
        "customer.subscription.created", {"customer": "cus_alice", "status": "active"}
    )

    first = await _post_event(client, payload)
    second = await _post_event(client, payload)

    assert first.status_code == second.status_code == 200
    assert users.get("alice").is_subscribed is True


async def test_checkout_completed_retrieves_subscription(client, users):
    payload = _event(
        "checkout.session.completed",
        {"mode": "subscription", "subscription": "sub_1", "customer": "cus_alice"},
    )

    response = await _post_event(client, payload)

    assert response.status_code == 200
    assert users.get("alice").is_subscribed is True


async def test_unmapped_event_is_acknowledged_without_changes(client, users):
    payload = _event("invoice.paid", {"customer": "cus_alice"})

    response = await _post_event(client, payload)

    assert response.status_code == 200
    assert users.get("alice").is_subscribed is False


async def test_unknown_customer_is_ignored(client, users):
    payload = _event(
        "customer.subscription.created", {"customer": "cus_nobody", "status": "active"}
    )

    response = await _post_event(client, payload)

    assert response.status_code == 200
    assert users.get("alice").is_subscribed is False


async def test_bad_signature_is_rejected_without_changes(client, users):
    payload = _event(
        "customer.subscription.created", {"customer": "cus_alice", "status": "active"}
    )

    response = await _post_event(client, payload, signature=_sign(payload, "whsec_other"))

    assert response.status_code == 400
    assert response.json()["error"].startswith("Webhook Error:")
    assert users.get("alice").is_subscribed is False


async def test_missing_signature_is_rejected(client):
    payload = _event("invoice.paid", {})

    response = await client.post("/api/billing/webhook", content=payload)

    assert response.status_code == 400


async def test_tampered_payload_is_rejected(client, users):
    original = _event(
        "customer.subscription.created", {"customer": "cus_bob", "status": "active"}
    )
    tampered = original.replace("cus_bob", "cus_alice")

    response = await _post_event(client, tampered, signature=_sign(original))

    assert response.status_code == 400
    assert users.get("alice").is_subscribed is False


async def test_non_utf8_payload_is_rejected(client, users):
    response = await client.post(
        "/api/billing/webhook",
        content=b"\xff\xfe{}",
        headers={"stripe-signature": _sign("{}")},
    )

    assert response.status_code == 400
    assert response.json()["error"].startswith("Webhook Error:")
    assert users.get("alice").is_subscribed is False


async def test_missing_webhook_secret_is_configuration_error(users):
    billing = BillingService(
        RecordingStripe(_settings(webhook_secret=None)), users
    )
    payload = _event("invoice.paid", {})

    with pytest.raises(ConfigurationError):
        await billing.handle_webhook(payload.encode(), _sign(payload))


async def test_construct_event_requires_event_type():
    stripe_client = RecordingStripe(_settings())
    payload = json.dumps({"id": "evt_no_type"})

    with pytest.raises(WebhookVerificationError):
        stripe_client.construct_event(payload.encode(), _sign(payload))


async def test_checkout_creates_customer_once(stripe_client, sqlite_store):
    users = UserService(sqlite_store)
    users.get_or_create("carol", email="carol@example.com")
    billing = BillingService(stripe_client, users)

    first = await billing.create_checkout_session(
        user_id="carol", success_url="https://app/dashboard", cancel_url="https://app/dashboard"
    )
    second = await billing.create_checkout_session(
        user_id="carol", success_url="https://app/dashboard", cancel_url="https://app/dashboard"
    )

    assert (first, second) == ("cs_test_1", "cs_test_2")
    assert stripe_client.customers_created == ["carol"]
    assert users.get("carol").payment_customer_id == "cus_carol"
    assert stripe_client.sessions[0]["price_id"] == "price_unit"


async def test_checkout_endpoint_uses_request_origin(client, stripe_client):
    response = await client.post(
        "/api/billing/checkout",
        json={"userId": "dave"},
        headers={"origin": "https://profitscout.example.com"},
    )

    assert response.status_code == 200
    assert response.json() == {"sessionId": "cs_test_1"}
    assert stripe_client.sessions[0]["success_url"] == (
        "https://profitscout.example.com/dashboard"
    )


async def test_checkout_without_price_id_fails(users):
    stripe_client = RecordingStripe(_settings(price_id=None))
    billing = BillingService(stripe_client, users)

    from app import dependencies

    app.dependency_overrides.clear()
    app.dependency_overrides[dependencies.get_billing_service] = lambda: billing
    transport = httpx.ASGITransport(app=app)
    try:
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
            response = await http.post(
                "/api/billing/checkout",
                json={"userId": "alice"},
                headers={"origin": "https://profitscout.example.com"},
            )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert "Price ID" in response.json()["detail"]
    assert stripe_client.customers_created == []
