"""Client wrapper for interacting with Google Gemini models."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Iterable

import google.generativeai as genai
from google.api_core.exceptions import GoogleAPICallError, NotFound

from app.core.config import GeminiSettings


_TEXT_FALLBACKS: tuple[str, ...] = (
    "gemini-1.5-pro",
    "gemini-1.5-flash",
)

logger = logging.getLogger(__name__)


class GeminiModelError(RuntimeError):
    """Raised when Gemini cannot fulfill a request due to configuration issues."""


class GeminiClient:
    """Prompt-in, text-or-JSON-out access to the configured model."""

    def __init__(self, settings: GeminiSettings) -> None:
        self._settings = settings
        # Configure the global client once per process.
        genai.configure(api_key=settings.api_key)

    async def generate_text(self, prompt: str) -> str:
        """Produce a free-form text response using the configured model."""

        def _invoke() -> str:
            response = self._invoke_with_models(
                models=self._text_model_candidates(),
                error_prefix="Gemini text generate_content failed",
                call=lambda model: model.generate_content(
                    prompt,
                    generation_config={"temperature": self._settings.temperature},
                ),
            )
            return _response_text(response)

        return await asyncio.to_thread(_invoke)

    async def generate_json(self, prompt: str) -> dict[str, Any]:
        """Ask the model for a single JSON object and parse it.

        Unparseable output is returned as ``{"raw": <text>}`` so schema
        validation downstream reports it.
        """

        def _invoke() -> str:
            response = self._invoke_with_models(
                models=self._text_model_candidates(),
                error_prefix="Gemini generate_content failed",
                call=lambda model: model.generate_content(
                    prompt,
                    generation_config={
                        "temperature": self._settings.temperature,
                        "response_mime_type": "application/json",
                    },
                ),
            )
            return _response_text(response)

        raw = await asyncio.to_thread(_invoke)
        return _parse_json_response(raw)

    def _invoke_with_models(
        self,
        *,
        models: Iterable[str],
        error_prefix: str,
        call: Callable[[genai.GenerativeModel], Any],
    ) -> Any:
        """Try the configured model followed by fallbacks when available."""

        model_sequence = list(models)
        last_not_found: NotFound | None = None
        for index, model_name in enumerate(model_sequence):
            generative_model = genai.GenerativeModel(model_name)
            try:
                return call(generative_model)
            except NotFound as exc:  # pragma: no cover - network call
                last_not_found = exc
                logger.warning(
                    "Gemini model '%s' not found (attempt %d/%d); trying fallback.",
                    model_name,
                    index + 1,
                    len(model_sequence),
                )
                continue
            except GoogleAPICallError as exc:  # pragma: no cover - network call
                raise GeminiModelError(f"{error_prefix}: {exc.message}") from exc

        if last_not_found is not None:
            primary = model_sequence[0] if model_sequence else "unknown"
            raise GeminiModelError(
                f"Gemini model '{primary}' is not available. "
                "Update GEMINI_MODEL_NAME to a supported value."
            ) from last_not_found

        raise GeminiModelError(f"{error_prefix}: Unknown error invoking Gemini.")

    def _text_model_candidates(self) -> list[str]:
        return _collect_candidates(self._settings.model_name, _TEXT_FALLBACKS)


def _collect_candidates(
    configured: str | None,
    fallbacks: tuple[str, ...],
) -> list[str]:
    """Return distinct model names prioritizing the configured value."""
    seen: set[str] = set()
    candidates: list[str] = []
    for name in (configured, *fallbacks):
        if not name:
            continue
        cleaned = name.strip()
        if not cleaned or cleaned in seen:
            continue
        seen.add(cleaned)
        candidates.append(cleaned)
    return candidates


def _response_text(response: Any) -> str:
    # `.text` raises ValueError when every candidate was blocked or empty.
    try:
        return response.text or ""
    except ValueError as exc:
        raise GeminiModelError(
            f"Gemini returned no usable text (blocked or empty candidates): {exc}"
        ) from exc


def _parse_json_response(payload: str) -> Any:
    payload = payload.strip()
    if payload.startswith("```"):
        # Strip a markdown code fence the model sometimes adds.
        payload = payload.strip("`")
        if payload.lower().startswith("json"):
            payload = payload[4:]
        payload = payload.strip()
    if not payload:
        return {}
    try:
        return json.loads(payload)
    except json.JSONDecodeError:
        return {"raw": payload}


__all__ = ["GeminiClient", "GeminiModelError"]
