"""
Composite scoring for multi-stock top-pick analyses.

Each bundle is scored on four components (earnings momentum, MD&A
risk/opportunity, technical bias, valuation and quality). Bundles are loosely
structured JSON, so every lookup tolerates missing or differently named
fields and simply contributes nothing when data is absent.
"""

from __future__ import annotations

import math
import re
from typing import Any, Iterable, Mapping, Optional

from app.schemas import CandidateScore

_GROWTH_DRIVERS: dict[str, tuple[str, ...]] = {
    "demand": ("record demand", "strong demand", "increased demand"),
    "expansion": ("expansion", "new markets", "market share gains"),
    "product": ("new product", "product launch", "innovation"),
    "margin": ("margin expansion", "cost savings", "efficiency gains"),
    "ai": ("artificial intelligence", "ai adoption", "data center"),
}
_RISK_FACTORS: dict[str, tuple[str, ...]] = {
    "macro": ("recession", "macroeconomic", "inflation", "interest rate"),
    "tariff": ("tariff", "trade restriction", "export control"),
    "liquidity": ("liquidity", "going concern", "refinancing", "covenant"),
    "regulation": ("regulatory", "regulation", "litigation", "antitrust"),
}


def score_bundle(bundle: Mapping[str, Any], fallback_ticker: str = "?") -> CandidateScore:
    ticker = str(bundle.get("ticker") or fallback_ticker).upper()
    revenue_growth = revenue_growth_yoy(bundle)
    leverage = debt_to_equity(bundle)

    earnings = _sign(revenue_growth) + _sign(_eps_growth(bundle))
    mdna = mdna_score(str(bundle.get("sec_mda") or ""))
    technical = technical_score(bundle.get("technicals"))
    valuation = valuation_score(bundle, leverage)

    return CandidateScore(
        ticker=ticker,
        composite_score=earnings + mdna + technical + valuation,
        earnings_score=earnings,
        mdna_score=mdna,
        technical_score=technical,
        valuation_score=valuation,
        leverage=leverage,
        revenue_growth_yoy=revenue_growth,
    )


def rank_candidates(scores: Iterable[CandidateScore]) -> list[CandidateScore]:
    """Highest composite first; ties go to lower leverage, then higher growth."""
    inf = float("inf")

    def sort_key(score: CandidateScore) -> tuple:
        leverage = score.leverage if _finite(score.leverage) else inf
        growth = score.revenue_growth_yoy if _finite(score.revenue_growth_yoy) else -inf
        return (-score.composite_score, leverage, -growth, score.ticker)

    return sorted(scores, key=sort_key)


def rank_bundles(bundles: list[Mapping[str, Any]]) -> list[CandidateScore]:
    return rank_candidates(
        score_bundle(bundle, fallback_ticker=f"CANDIDATE{index + 1}")
        for index, bundle in enumerate(bundles)
    )


def format_scoreboard(ranking: list[CandidateScore]) -> str:
    lines = []
    for position, score in enumerate(ranking, start=1):
        leverage = f"{score.leverage:.2f}" if score.leverage is not None else "n/a"
        growth = (
            f"{score.revenue_growth_yoy:+.1f}%"
            if score.revenue_growth_yoy is not None
            else "n/a"
        )
        lines.append(
            f"{position}. {score.ticker}: composite {score.composite_score:+d} "
            f"(earnings {score.earnings_score:+d}, mdna {score.mdna_score:+d}, "
            f"technical {score.technical_score:+d}, valuation {score.valuation_score:+d}; "
            f"debt/equity {leverage}, revenue YoY {growth})"
        )
    return "\n".join(lines)


def mdna_score(text: str) -> int:
    """+1 per growth-driver family mentioned, -1 per risk family."""
    lowered = text.lower()
    drivers = sum(
        1 for phrases in _GROWTH_DRIVERS.values() if _mentions(lowered, phrases)
    )
    risks = sum(1 for phrases in _RISK_FACTORS.values() if _mentions(lowered, phrases))
    return drivers - risks


def technical_score(technicals: Any) -> int:
    if not isinstance(technicals, list) or not technicals:
        return 0
    latest = technicals[-1]
    if not isinstance(latest, Mapping):
        return 0
    score = 0
    sma_20 = _number(latest, "SMA_20", "sma_20", "sma20")
    sma_50 = _number(latest, "SMA_50", "sma_50", "sma50")
    if sma_20 is not None and sma_50 is not None:
        score += 1 if sma_20 > sma_50 else -1
    rsi = _number(latest, "RSI_14", "rsi_14", "rsi")
    if rsi is not None:
        if rsi > 70:
            score -= 1
        elif rsi < 30:
            score += 1
    return score


def valuation_score(bundle: Mapping[str, Any], leverage: Optional[float]) -> int:
    metrics = _metrics(bundle)
    score = 0
    pe = _number(metrics, "pe_ratio", "peRatio", "price_earnings_ratio", "pe")
    if pe is not None and pe > 0:
        if pe > 25:
            score -= 1
        elif pe < 15:
            score += 1
    if leverage is not None and leverage > 2:
        score -= 1
    margins = _quarterly_series(bundle, "operating_margin", "operatingMargin")
    if len(margins) >= 2 and margins[-1] != margins[-2]:
        score += 1 if margins[-1] > margins[-2] else -1
    return score


def revenue_growth_yoy(bundle: Mapping[str, Any]) -> Optional[float]:
    """Year-over-year revenue growth in percent."""
    direct = _number(
        _metrics(bundle), "revenue_growth_yoy", "revenueGrowthYoY", "revenue_growth"
    )
    if direct is not None:
        return direct
    revenues = _quarterly_series(bundle, "revenue", "totalRevenue")
    if len(revenues) >= 5 and revenues[-5]:
        return (revenues[-1] / revenues[-5] - 1) * 100
    return None


def debt_to_equity(bundle: Mapping[str, Any]) -> Optional[float]:
    return _number(
        _metrics(bundle), "debt_to_equity", "debtToEquity", "debt_equity_ratio"
    )


def _eps_growth(bundle: Mapping[str, Any]) -> Optional[float]:
    direct = _number(_metrics(bundle), "eps_growth_yoy", "epsGrowthYoY", "eps_growth")
    if direct is not None:
        return direct
    eps = _quarterly_series(bundle, "eps", "EPS")
    if len(eps) >= 5:
        return eps[-1] - eps[-5]
    return None


def _metrics(bundle: Mapping[str, Any]) -> dict[str, Any]:
    merged: dict[str, Any] = {}
    for key in ("key_metrics", "ratios"):
        value = bundle.get(key)
        if isinstance(value, list) and value and isinstance(value[-1], Mapping):
            value = value[-1]
        if isinstance(value, Mapping):
            merged.update(value)
    return merged


def _quarterly_series(bundle: Mapping[str, Any], *keys: str) -> list[float]:
    """Values of ``keys`` across quarterly income statements, oldest first."""
    statements = bundle.get("financial_statements")
    if isinstance(statements, Mapping):
        statements = statements.get("income_statement") or statements.get("quarters")
    if not isinstance(statements, list):
        return []
    series = []
    for statement in statements:
        if isinstance(statement, Mapping):
            value = _number(statement, *keys)
            if value is not None:
                series.append(value)
    return series


def _number(mapping: Mapping[str, Any], *keys: str) -> Optional[float]:
    for key in keys:
        value = mapping.get(key)
        if isinstance(value, bool) or value is None:
            continue
        try:
            number = float(value)
        except (TypeError, ValueError):
            continue
        if math.isfinite(number):
            return number
    return None


def _finite(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value)


def _mentions(text: str, phrases: tuple[str, ...]) -> bool:
    return any(re.search(rf"\b{re.escape(phrase)}\b", text) for phrase in phrases)


def _sign(value: Optional[float]) -> int:
    if value is None or value == 0:
        return 0
    return 1 if value > 0 else -1


__all__ = [
    "debt_to_equity",
    "format_scoreboard",
    "mdna_score",
    "rank_bundles",
    "rank_candidates",
    "revenue_growth_yoy",
    "score_bundle",
    "technical_score",
    "valuation_score",
]
