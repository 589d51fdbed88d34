"""
Gate-then-route orchestration for analysis requests.
"""

from __future__ import annotations

import logging

from app.core.logging import new_trace_id, trace_logger
from app.schemas import AnalysisRequest, RecommendationRefusal, RecommendationResult
from app.services.catalog import StockCatalogService
from app.services.recommendation_router import RecommendationRouter
from app.services.usage_gate import UsageGate

logger = logging.getLogger(__name__)

AUTH_REQUIRED = RecommendationRefusal(error="Authentication required", required="auth")
QUOTA_EXCEEDED = RecommendationRefusal(error="Usage limit reached", required="subscription")


class RecommendationService:
    """Consume quota, then dispatch to the router.

    A denied gate returns a refusal before any bundle fetch or model call.
    """

    def __init__(
        self,
        gate: UsageGate,
        router: RecommendationRouter,
        catalog: StockCatalogService,
    ) -> None:
        self._gate = gate
        self._router = router
        self._catalog = catalog

    async def recommend(
        self, request: AnalysisRequest
    ) -> RecommendationResult | RecommendationRefusal:
        trace_id = new_trace_id()
        log = trace_logger(logger, trace_id)
        user_id = (request.user_id or "").strip()
        log.info("Recommendation requested by %s", user_id or "<anonymous>")

        if not user_id:
            log.warning("Refusing request without identity")
            return AUTH_REQUIRED

        outcome = self._gate.check_and_consume(user_id)
        if not outcome.granted:
            log.warning("Refusing request: %s", outcome.reason.value if outcome.reason else "denied")
            return QUOTA_EXCEEDED

        try:
            result = await self._router.recommend(request, trace_id=trace_id)
        except Exception:
            log.exception("Recommendation pipeline failed")
            raise
        log.info("Recommendation completed (mode=%s)", result.mode.value if result.mode else "?")
        return result

    async def top_pick(
        self, user_id: str | None, count: int
    ) -> RecommendationResult | RecommendationRefusal:
        """Sample catalog stocks and run them through the normal pipeline."""
        stocks = self._catalog.sample(count)
        if not stocks:
            raise LookupError("No stocks available in the catalog.")
        request = AnalysisRequest(
            user_id=user_id,
            bundle_refs=[stock.data_bundle_path for stock in stocks],
        )
        if len(stocks) == 1:
            request = request.model_copy(
                update={"ticker": stocks[0].id, "company_name": stocks[0].company_name}
            )
        return await self.recommend(request)


__all__ = ["AUTH_REQUIRED", "QUOTA_EXCEEDED", "RecommendationService"]
