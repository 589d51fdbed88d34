"""Pytest configuration shared across the suite."""

from __future__ import annotations

import json
from typing import Any

import pytest

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


class StubGemini:
    """Records prompts and replays canned responses."""

    def __init__(self, json_response: Any = None, text_response: str = "") -> None:
        self.json_response = json_response if json_response is not None else valid_output()
        self.text_response = text_response
        self.prompts: list[str] = []

    async def generate_json(self, prompt: str) -> Any:
        self.prompts.append(prompt)
        return self.json_response

    async def generate_text(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.text_response


class StubBundleClient:
    """In-memory bundle lookup keyed by reference."""

    def __init__(self, bundles: dict[str, dict[str, Any]] | None = None) -> None:
        self.bundles = bundles or {}
        self.fetched: list[str] = []

    async def fetch(self, ref: str) -> dict[str, Any]:
        from app.core.errors import DataFetchError

        self.fetched.append(ref)
        if ref not in self.bundles:
            raise DataFetchError(ref, "object not found")
        return json.loads(json.dumps(self.bundles[ref]))

    async def fetch_many(self, refs: list[str]) -> list[dict[str, Any]]:
        return [await self.fetch(ref) for ref in refs]


def valid_output(**overrides: Any) -> dict[str, Any]:
    payload = {
        "recommendationText": "BUY - Revenue up 12% with expanding margins.",
        "reasoningBullets": [
            "Revenue increased 12% year-over-year.",
            "Operating margin expanded from 18% to 22%.",
            "Trading above its 50-day moving average.",
        ],
        "sectionsOverview": ["Earnings Call: guidance raised."],
    }
    payload.update(overrides)
    return payload


def make_bundle(ticker: str, **fields: Any) -> dict[str, Any]:
    bundle = {
        "ticker": ticker,
        "company_name": f"{ticker} Corp",
        "sec_mda": "",
        "technicals": [],
        "key_metrics": {},
    }
    bundle.update(fields)
    return bundle


@pytest.fixture
def stub_gemini() -> StubGemini:
    return StubGemini()


@pytest.fixture
def sqlite_store(tmp_path):
    from app.clients import SQLiteStore

    return SQLiteStore(str(tmp_path / "profitscout.db"))
