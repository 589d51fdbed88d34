"""Select an analysis mode for a request and run its prompt pipeline."""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from app.clients import BundleStorageClient, GeminiClient
from app.core.errors import OutputValidationError
from app.core.logging import trace_logger
from app.schemas import AnalysisMode, AnalysisRequest, RecommendationResult
from app.services.prompts import render_prompt
from app.services.scoring import format_scoreboard, rank_bundles

logger = logging.getLogger(__name__)

_MAX_FIELD_CHARS = 6000


def select_mode(request: AnalysisRequest) -> AnalysisMode:
    """Map the request shape to exactly one mode; first match wins."""
    if request.sector and request.sector.strip():
        return AnalysisMode.SECTOR_OR_INDUSTRY
    count = len(request.bundle_refs)
    if count == 0:
        return AnalysisMode.AI_TOP_PICK_SINGLE
    if count == 1:
        return AnalysisMode.SINGLE_STOCK
    if count == 2:
        return AnalysisMode.COMPARE_TWO_STOCKS
    return AnalysisMode.MULTI_STOCK_TOP_PICK


class RecommendationRouter:
    """Resolve bundles, assemble the mode's prompt, and validate model output."""

    def __init__(self, gemini_client: GeminiClient, bundle_client: BundleStorageClient) -> None:
        self._gemini = gemini_client
        self._bundles = bundle_client

    async def recommend(
        self, request: AnalysisRequest, *, trace_id: str = "-"
    ) -> RecommendationResult:
        log = trace_logger(logger, trace_id)
        mode = select_mode(request)
        log.info("Routing request as %s (%d bundle refs)", mode.value, len(request.bundle_refs))

        prompt, extras = await self.build_prompt(mode, request)
        payload = await self._gemini.generate_json(prompt)
        result = _validate_output(payload, mode)
        log.info("Model output validated for %s", mode.value)
        return result.model_copy(update={"mode": mode, **extras})

    async def build_prompt(
        self, mode: AnalysisMode, request: AnalysisRequest
    ) -> tuple[str, dict[str, Any]]:
        """Return the rendered prompt and any fields to merge into the result."""
        if mode is AnalysisMode.SECTOR_OR_INDUSTRY:
            return render_prompt(mode, sector=request.sector.strip()), {}

        if mode is AnalysisMode.AI_TOP_PICK_SINGLE:
            return render_prompt(mode), {}

        bundles = await self._bundles.fetch_many(request.bundle_refs)

        if mode is AnalysisMode.SINGLE_STOCK:
            bundle = bundles[0]
            prompt = render_prompt(
                mode,
                subject=_subject(request, bundle),
                bundle=_bundle_json(bundle),
            )
            return prompt, {}

        if mode is AnalysisMode.COMPARE_TWO_STOCKS:
            prompt = render_prompt(
                mode,
                first_ref=_label(bundles[0], request.bundle_refs[0]),
                first_bundle=_bundle_json(bundles[0]),
                second_ref=_label(bundles[1], request.bundle_refs[1]),
                second_bundle=_bundle_json(bundles[1]),
            )
            return prompt, {}

        ranking = rank_bundles(bundles)
        prompt = render_prompt(
            mode,
            candidate_count=str(len(bundles)),
            winner=ranking[0].ticker,
            scoreboard=format_scoreboard(ranking),
            bundles="\n\n".join(_bundle_json(bundle) for bundle in bundles),
        )
        return prompt, {"ranking": ranking}


def _validate_output(payload: Any, mode: AnalysisMode) -> RecommendationResult:
    if not isinstance(payload, dict):
        raise OutputValidationError(
            f"{mode.value} output must be a JSON object, got {type(payload).__name__}."
        )
    try:
        return RecommendationResult.model_validate(
            {
                "recommendationText": payload.get("recommendationText"),
                "reasoningBullets": payload.get("reasoningBullets"),
                "sectionsOverview": payload.get("sectionsOverview"),
            }
        )
    except ValidationError as exc:
        raise OutputValidationError(
            f"{mode.value} output failed schema validation: {exc.errors()}"
        ) from exc


def _subject(request: AnalysisRequest, bundle: dict[str, Any]) -> str:
    ticker = request.ticker or bundle.get("ticker") or "the selected company"
    company = request.company_name or bundle.get("company_name")
    return f"{ticker} - {company}" if company else str(ticker)


def _label(bundle: dict[str, Any], ref: str) -> str:
    return str(bundle.get("ticker") or ref)


def _bundle_json(bundle: dict[str, Any]) -> str:
    """Serialize a bundle, truncating oversized text fields."""
    trimmed = {
        key: (value[: _MAX_FIELD_CHARS - 3] + "...")
        if isinstance(value, str) and len(value) > _MAX_FIELD_CHARS
        else value
        for key, value in bundle.items()
    }
    return json.dumps(trimmed, default=str)


__all__ = ["RecommendationRouter", "select_mode"]
