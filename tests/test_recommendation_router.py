try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import re

import pytest
from pydantic import ValidationError

from app.core.errors import DataFetchError, OutputValidationError
from app.schemas import AnalysisMode, AnalysisRequest
from app.services.prompts import PromptRenderError, render_prompt
from app.services.recommendation_router import RecommendationRouter, select_mode
from conftest import StubBundleClient, StubGemini, make_bundle, valid_output

pytestmark = pytest.mark.anyio("asyncio")

_SLOT = re.compile(r"\$\{?[_a-zA-Z][_a-zA-Z0-9]*\}?")


def _refs(count: int) -> list[str]:
    return [f"gs://bundles/stock-{index}.json" for index in range(count)]


@pytest.mark.parametrize(
    ("count", "sector", "expected"),
    [
        (0, None, AnalysisMode.AI_TOP_PICK_SINGLE),
        (1, None, AnalysisMode.SINGLE_STOCK),
        (2, None, AnalysisMode.COMPARE_TWO_STOCKS),
        (3, None, AnalysisMode.MULTI_STOCK_TOP_PICK),
        (10, None, AnalysisMode.MULTI_STOCK_TOP_PICK),
        (0, "tech", AnalysisMode.SECTOR_OR_INDUSTRY),
        (2, "semiconductors", AnalysisMode.SECTOR_OR_INDUSTRY),
        (0, "   ", AnalysisMode.AI_TOP_PICK_SINGLE),
        (1, "", AnalysisMode.SINGLE_STOCK),
    ],
)
def test_select_mode_partitions_input_space(count, sector, expected):
    request = AnalysisRequest(bundle_refs=_refs(count), sector=sector)
    assert select_mode(request) is expected


def test_ticker_hints_do_not_affect_mode():
    plain = AnalysisRequest(bundle_refs=_refs(1))
    hinted = AnalysisRequest(bundle_refs=_refs(1), ticker="AAPL", company_name="Apple")
    assert select_mode(plain) is select_mode(hinted) is AnalysisMode.SINGLE_STOCK


def test_more_than_ten_refs_rejected_at_schema_boundary():
    with pytest.raises(ValidationError):
        AnalysisRequest(bundle_refs=_refs(11))


def test_camel_case_payload_accepted():
    request = AnalysisRequest.model_validate(
        {"userId": "u1", "bundleRefs": _refs(2), "companyName": "Apple"}
    )
    assert request.user_id == "u1"
    assert request.company_name == "Apple"
    assert select_mode(request) is AnalysisMode.COMPARE_TWO_STOCKS


def test_render_prompt_requires_mode_slots():
    with pytest.raises(PromptRenderError):
        render_prompt(AnalysisMode.SECTOR_OR_INDUSTRY)


def test_render_prompt_ignores_irrelevant_values():
    prompt = render_prompt(AnalysisMode.AI_TOP_PICK_SINGLE, sector="energy", bundle="{}")
    assert "energy" not in prompt
    assert not _SLOT.search(prompt)


async def test_sector_prompt_skips_bundle_fetch():
    gemini = StubGemini()
    bundles = StubBundleClient()
    router = RecommendationRouter(gemini, bundles)

    result = await router.recommend(
        AnalysisRequest(bundle_refs=[], sector="Renewable Energy")
    )

    assert result.mode is AnalysisMode.SECTOR_OR_INDUSTRY
    assert bundles.fetched == []
    assert "Sector/Industry: Renewable Energy" in gemini.prompts[0]
    assert not _SLOT.search(gemini.prompts[0])


async def test_single_stock_prompt_embeds_bundle_and_hints():
    ref = "gs://bundles/aapl.json"
    gemini = StubGemini()
    bundles = StubBundleClient({ref: make_bundle("AAPL", sec_mda="Strong demand.")})
    router = RecommendationRouter(gemini, bundles)

    result = await router.recommend(
        AnalysisRequest(bundle_refs=[ref], ticker="AAPL", company_name="Apple Inc.")
    )

    prompt = gemini.prompts[0]
    assert result.mode is AnalysisMode.SINGLE_STOCK
    assert result.recommendation_text.startswith("BUY")
    assert len(result.reasoning_bullets) == 3
    assert "AAPL - Apple Inc." in prompt
    assert "Strong demand." in prompt
    assert not _SLOT.search(prompt.split("Data bundle:")[0])


async def test_compare_two_prompt_labels_both_stocks():
    refs = ["gs://bundles/msft.json", "gs://bundles/goog.json"]
    gemini = StubGemini()
    bundles = StubBundleClient(
        {refs[0]: make_bundle("MSFT"), refs[1]: make_bundle("GOOG")}
    )
    router = RecommendationRouter(gemini, bundles)

    result = await router.recommend(AnalysisRequest(bundle_refs=refs))

    assert result.mode is AnalysisMode.COMPARE_TWO_STOCKS
    assert bundles.fetched == refs
    assert "First stock (MSFT)" in gemini.prompts[0]
    assert "Second stock (GOOG)" in gemini.prompts[0]


async def test_multi_stock_ranks_candidates_before_prompting():
    refs = _refs(3)
    gemini = StubGemini()
    bundles = StubBundleClient(
        {
            refs[0]: make_bundle("AAA", key_metrics={"pe_ratio": 40}),
            refs[1]: make_bundle(
                "BBB",
                key_metrics={"pe_ratio": 10, "revenue_growth_yoy": 20},
                technicals=[{"SMA_20": 110, "SMA_50": 100, "RSI_14": 55}],
            ),
            refs[2]: make_bundle("CCC"),
        }
    )
    router = RecommendationRouter(gemini, bundles)

    result = await router.recommend(AnalysisRequest(bundle_refs=refs))

    assert result.mode is AnalysisMode.MULTI_STOCK_TOP_PICK
    assert [score.ticker for score in result.ranking] == ["BBB", "CCC", "AAA"]
    assert "The winner is BBB" in gemini.prompts[0]
    assert "1. BBB: composite +3" in gemini.prompts[0]


async def test_any_fetch_failure_fails_whole_request():
    refs = _refs(3)
    gemini = StubGemini()
    bundles = StubBundleClient({refs[0]: make_bundle("AAA"), refs[2]: make_bundle("CCC")})
    router = RecommendationRouter(gemini, bundles)

    with pytest.raises(DataFetchError) as excinfo:
        await router.recommend(AnalysisRequest(bundle_refs=refs))

    assert excinfo.value.ref == refs[1]
    assert gemini.prompts == []


@pytest.mark.parametrize(
    "payload",
    [
        {"raw": "not json"},
        valid_output(recommendationText="   "),
        valid_output(reasoningBullets=["only one"]),
        valid_output(reasoningBullets=["a", "b", "c", "d", "e", "f"]),
        ["not", "an", "object"],
    ],
)
async def test_invalid_model_output_raises(payload):
    router = RecommendationRouter(StubGemini(json_response=payload), StubBundleClient())

    with pytest.raises(OutputValidationError):
        await router.recommend(AnalysisRequest(bundle_refs=[]))
