"""
FastAPI routes for the ProfitScout recommendation service.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from app.clients.gemini import GeminiModelError
from app.core.errors import (
    ConfigurationError,
    DataFetchError,
    OutputValidationError,
    WebhookVerificationError,
)
from app.dependencies import (
    get_app_settings,
    get_billing_service,
    get_feedback_service,
    get_follow_up_service,
    get_recommendation_service,
    get_stock_catalog_service,
    get_usage_gate,
    get_user_service,
)
from app.models.user import StockRecord, UserRecord
from app.schemas import (
    AnalysisRequest,
    CheckoutRequest,
    CheckoutResponse,
    FeedbackRequest,
    FollowUpRequest,
    FollowUpResponse,
    RecommendationRefusal,
    RecommendationResult,
    TopPickRequest,
    UserProfileRequest,
    UserStatus,
)

router = APIRouter()
logger = logging.getLogger(__name__)

_REFUSAL_STATUS = {
    "auth": HTTPStatus.UNAUTHORIZED,
    "subscription": HTTPStatus.PAYMENT_REQUIRED,
}


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get(
    "/stocks",
    response_model=list[StockRecord],
    status_code=HTTPStatus.OK,
)
async def list_stocks(
    catalog: Annotated[Any, Depends(get_stock_catalog_service)],
) -> list[StockRecord]:
    """Return the tradable issuers users can pick from."""
    return catalog.list_stocks()


@router.post("/users", response_model=UserStatus, status_code=HTTPStatus.OK)
async def sync_user_profile(
    payload: UserProfileRequest,
    users: Annotated[Any, Depends(get_user_service)],
    gate: Annotated[Any, Depends(get_usage_gate)],
) -> UserStatus:
    """Create the caller's record on first sign-in and merge profile details."""
    user = users.get_or_create(
        payload.user_id,
        is_anonymous=payload.is_anonymous,
        display_name=payload.display_name,
        email=payload.email,
    )
    return _user_status(user, gate)


@router.get("/users/{user_id}", response_model=UserStatus, status_code=HTTPStatus.OK)
async def get_user_status(
    user_id: str,
    users: Annotated[Any, Depends(get_user_service)],
    gate: Annotated[Any, Depends(get_usage_gate)],
) -> UserStatus:
    """Report subscription state and remaining free analyses."""
    user = users.get(user_id)
    if user is None:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail="User not found.")
    return _user_status(user, gate)


@router.post(
    "/recommendations",
    response_model=RecommendationResult,
    response_model_exclude_none=True,
    responses={
        401: {"model": RecommendationRefusal},
        402: {"model": RecommendationRefusal},
    },
)
async def request_recommendation(
    payload: AnalysisRequest,
    service: Annotated[Any, Depends(get_recommendation_service)],
) -> Any:
    """Run the gated recommendation pipeline for the selected bundles."""
    try:
        outcome = await service.recommend(payload)
    except Exception as exc:  # pylint: disable=broad-except
        _raise_for_pipeline_error(exc)
    return _refusal_or_result(outcome)


@router.post(
    "/recommendations/top-pick",
    response_model=RecommendationResult,
    response_model_exclude_none=True,
    responses={
        401: {"model": RecommendationRefusal},
        402: {"model": RecommendationRefusal},
    },
)
async def request_top_pick(
    payload: TopPickRequest,
    service: Annotated[Any, Depends(get_recommendation_service)],
) -> Any:
    """Sample the catalog and let the pipeline choose a single winner."""
    try:
        outcome = await service.top_pick(payload.user_id, payload.count)
    except LookupError as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc)) from exc
    except Exception as exc:  # pylint: disable=broad-except
        _raise_for_pipeline_error(exc)
    return _refusal_or_result(outcome)


@router.post("/follow-up", response_model=FollowUpResponse, status_code=HTTPStatus.OK)
async def answer_follow_up(
    payload: FollowUpRequest,
    service: Annotated[Any, Depends(get_follow_up_service)],
) -> FollowUpResponse:
    """Answer a question about a previous recommendation (not metered)."""
    try:
        return await service.answer(payload)
    except GeminiModelError as exc:
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc


@router.post("/feedback", status_code=HTTPStatus.NO_CONTENT)
async def submit_feedback(
    payload: FeedbackRequest,
    service: Annotated[Any, Depends(get_feedback_service)],
) -> Response:
    """Summarize and store free-text feedback."""
    try:
        await service.submit(payload.feedback_text)
    except GeminiModelError as exc:
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc
    return Response(status_code=HTTPStatus.NO_CONTENT)


@router.post(
    "/billing/checkout", response_model=CheckoutResponse, status_code=HTTPStatus.OK
)
async def create_checkout_session(
    request: Request,
    payload: CheckoutRequest,
    billing: Annotated[Any, Depends(get_billing_service)],
    settings: Annotated[Any, Depends(get_app_settings)],
) -> CheckoutResponse:
    """Start a subscription checkout and return the session id for redirect."""
    origin = request.headers.get("origin") or (
        str(settings.frontend_base_url) if settings.frontend_base_url else None
    )
    try:
        if not origin:
            raise ConfigurationError(
                "Request origin unknown; set FRONTEND_BASE_URL for checkout redirects."
            )
        return_url = f"{origin.rstrip('/')}/dashboard"
        session_id = await billing.create_checkout_session(
            user_id=payload.user_id, success_url=return_url, cancel_url=return_url
        )
    except ConfigurationError as exc:
        logger.error("Checkout misconfigured: %s", exc)
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc
    return CheckoutResponse(session_id=session_id)


@router.post("/billing/webhook", status_code=HTTPStatus.OK)
async def stripe_webhook(
    request: Request,
    billing: Annotated[Any, Depends(get_billing_service)],
) -> Any:
    """Apply a signed subscription lifecycle event from Stripe."""
    body = await request.body()
    signature = request.headers.get("stripe-signature")
    try:
        await billing.handle_webhook(body, signature)
    except WebhookVerificationError as exc:
        logger.error("Webhook signature verification failed: %s", exc)
        return JSONResponse(
            status_code=HTTPStatus.BAD_REQUEST,
            content={"error": f"Webhook Error: {exc}"},
        )
    except ConfigurationError as exc:
        logger.error("Webhook misconfigured: %s", exc)
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc
    return {"received": True}


def _user_status(user: UserRecord, gate: Any) -> UserStatus:
    return UserStatus(
        **user.model_dump(by_alias=False),
        remaining_analyses=gate.remaining_for(user),
    )


def _refusal_or_result(outcome: Any) -> Any:
    if isinstance(outcome, RecommendationRefusal):
        status = _REFUSAL_STATUS.get(outcome.required or "", HTTPStatus.FORBIDDEN)
        return JSONResponse(
            status_code=status, content=outcome.model_dump(exclude_none=True)
        )
    return outcome


def _raise_for_pipeline_error(exc: Exception) -> NoReturn:
    """Translate pipeline failures into HTTP errors; unknown errors propagate."""
    if isinstance(exc, (DataFetchError, OutputValidationError)):
        raise HTTPException(status_code=HTTPStatus.BAD_GATEWAY, detail=str(exc)) from exc
    if isinstance(exc, GeminiModelError):
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc
    if isinstance(exc, ConfigurationError):
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc
    raise exc


__all__ = ["router"]
