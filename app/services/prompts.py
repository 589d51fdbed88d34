"""
Prompt templates, one per analysis mode.

Templates use ``string.Template`` named slots. ``render_prompt`` substitutes
only the slots a mode declares and refuses to emit a prompt that still holds
an unresolved placeholder.
"""

from __future__ import annotations

import re
from string import Template
from textwrap import dedent

from app.schemas import AnalysisMode

_OUTPUT_CONTRACT = dedent(
    """
    Respond strictly in JSON with the schema: {
      "recommendationText": string,
      "reasoningBullets": [string, string, string (3-5 entries)],
      "sectionsOverview": [string]
    }
    Do not include prose outside the JSON object.
    """
).strip()

_ADVISOR_STRUCTURE = dedent(
    """
    Structure your response as follows:

    1. recommendationText: BUY, HOLD, or SELL upfront, with a 1-sentence summary of the key rationale.
    2. reasoningBullets: 3-5 bullet points highlighting the most impactful factors.
    3. sectionsOverview: 4-6 major analysis sections (e.g., Business Profile, Earnings Summary,
       MD&A, Price Trends, Technicals, Financials/Ratios) with 1-sentence overviews each.

    Keep the entire response under 500 words and encourage follow-up questions for more depth.
    """
).strip()

TEMPLATES: dict[AnalysisMode, Template] = {
    AnalysisMode.SECTOR_OR_INDUSTRY: Template(
        "You are a financial advisor providing investment recommendations.\n\n"
        "Provide a concise buy/hold/sell recommendation for the sector or industry "
        "based on aggregated data from key stocks or trends (sector growth, regulatory "
        "risks, market trends).\n\n"
        f"{_ADVISOR_STRUCTURE}\n\n"
        "Sector/Industry: $sector\n\n"
        f"{_OUTPUT_CONTRACT}"
    ),
    AnalysisMode.AI_TOP_PICK_SINGLE: Template(
        "You are a financial advisor providing investment recommendations.\n\n"
        'You are in "AI Top Pick" mode. Pick a single promising stock from a '
        "well-known company, provide a concise buy/hold/sell recommendation for it, "
        "and justify your choice. Name the ticker in recommendationText.\n\n"
        f"{_ADVISOR_STRUCTURE}\n\n"
        f"{_OUTPUT_CONTRACT}"
    ),
    AnalysisMode.SINGLE_STOCK: Template(
        "You are a financial-analysis agent that issues concise BUY / HOLD / SELL "
        "recommendations on any Russell 1000 company. Your analysis for $subject "
        "must be up to 750 words.\n\n"
        "Reason strictly from the JSON bundle below. You must reference specific "
        "numbers from the data: instead of \"revenue has grown\" write \"Revenue "
        "increased 12% year-over-year\".\n\n"
        "recommendationText: \"BUY\", \"HOLD\", or \"SELL\" followed by a one-sentence "
        "thesis.\n"
        "reasoningBullets: 3-5 data-backed bullets covering Business Profile & Moat, "
        "Financial Health & Earnings, Valuation, Technicals & Price Action, and "
        "Risks & Catalysts.\n"
        "sectionsOverview: one line each for Earnings Call, MD&A, Technicals, Stock "
        "Price, Financials, Ratios, and Key Metrics.\n\n"
        "Data bundle:\n$bundle\n\n"
        f"{_OUTPUT_CONTRACT}"
    ),
    AnalysisMode.COMPARE_TWO_STOCKS: Template(
        "You are a financial advisor providing investment recommendations.\n\n"
        "Provide concise buy/hold/sell recommendations for each of the two stocks "
        "based on the provided data bundles, including a comparative analysis "
        "(earnings growth vs. peer, tariff risks, price trends). State the call for "
        "each stock in recommendationText.\n\n"
        f"{_ADVISOR_STRUCTURE}\n\n"
        "First stock ($first_ref):\n$first_bundle\n\n"
        "Second stock ($second_ref):\n$second_bundle\n\n"
        f"{_OUTPUT_CONTRACT}"
    ),
    AnalysisMode.MULTI_STOCK_TOP_PICK: Template(
        "You are a financial-analysis agent surfacing the single best investment "
        "idea, the AI Top Pick, from $candidate_count company bundles. Reason "
        "strictly from the data provided; no external calls are allowed.\n\n"
        "A deterministic scoreboard has already been computed (Composite Score = "
        "Earnings + MD&A + Technical + Valuation/Quality; ties broken by lowest "
        "leverage, then highest YoY revenue growth). The winner is $winner. Do not "
        "change the ranking.\n\n"
        "Scoreboard:\n$scoreboard\n\n"
        "recommendationText: \"AI Top Pick: $winner\" with a one-sentence punchline.\n"
        "reasoningBullets: 3-5 bullets on why it is #1.\n"
        "sectionsOverview: one line per runner-up in scoreboard order "
        "(TICKER - score, one-phrase reason), then a snapshot of the top pick: "
        "Business | Earnings | MD&A | Technicals | Valuation.\n\n"
        "Bundles:\n$bundles\n\n"
        f"{_OUTPUT_CONTRACT}"
    ),
}

_PLACEHOLDER = re.compile(r"\$\{?[_a-zA-Z][_a-zA-Z0-9]*\}?")


class PromptRenderError(ValueError):
    """A template could not be fully resolved for the selected mode."""


def template_fields(mode: AnalysisMode) -> set[str]:
    """Names of the slots a mode's template declares."""
    return set(TEMPLATES[mode].get_identifiers())


def render_prompt(mode: AnalysisMode, **values: str) -> str:
    """Fill the template for ``mode``; extra values are ignored, missing ones fail."""
    template = TEMPLATES[mode]
    relevant = {key: values[key] for key in template_fields(mode) if key in values}
    try:
        prompt = template.substitute(relevant)
    except (KeyError, ValueError) as exc:
        raise PromptRenderError(f"Unresolved slot for {mode.value}: {exc}") from exc
    _ensure_resolved(template, relevant, prompt, mode)
    return prompt


def _ensure_resolved(
    template: Template, values: dict[str, str], prompt: str, mode: AnalysisMode
) -> None:
    # Placeholders coming from substituted data are fine; only template text counts.
    skeleton = template.safe_substitute({key: "" for key in values})
    leftover = _PLACEHOLDER.findall(skeleton)
    if leftover:
        raise PromptRenderError(
            f"Unresolved slot for {mode.value}: {', '.join(sorted(set(leftover)))}"
        )
    if not prompt.strip():
        raise PromptRenderError(f"Empty prompt rendered for {mode.value}")


__all__ = ["PromptRenderError", "TEMPLATES", "render_prompt", "template_fields"]
