"""
Pydantic models for recommendation, follow-up, and feedback requests.
"""

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_BUNDLE_REFS = 10


class AnalysisMode(str, Enum):
    """Recommendation strategy selected from the shape of the request."""

    SECTOR_OR_INDUSTRY = "SectorOrIndustry"
    AI_TOP_PICK_SINGLE = "AITopPickSingle"
    SINGLE_STOCK = "SingleStock"
    COMPARE_TWO_STOCKS = "CompareTwoStocks"
    MULTI_STOCK_TOP_PICK = "MultiStockTopPick"


class AnalysisRequest(BaseModel):
    """Incoming payload asking for a buy/hold/sell recommendation."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(
        None,
        alias="userId",
        description="Caller identity; requests without one are refused.",
    )
    bundle_refs: List[str] = Field(
        default_factory=list,
        alias="bundleRefs",
        max_length=MAX_BUNDLE_REFS,
        description="Ordered data bundle URIs (gs:// or https://), at most 10.",
    )
    sector: Optional[str] = Field(
        None, description="Sector or industry to analyze instead of stocks."
    )
    ticker: Optional[str] = Field(None, description="Display hint for one stock.")
    company_name: Optional[str] = Field(
        None, alias="companyName", description="Display hint for one stock."
    )


class TopPickRequest(BaseModel):
    """Ask the service to sample the catalog and pick a winner."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")
    count: int = Field(MAX_BUNDLE_REFS, ge=1, le=MAX_BUNDLE_REFS)


class CandidateScore(BaseModel):
    """Locally computed ranking entry for multi-stock analyses."""

    model_config = ConfigDict(populate_by_name=True)

    ticker: str
    composite_score: int = Field(..., alias="compositeScore")
    earnings_score: int = Field(0, alias="earningsScore")
    mdna_score: int = Field(0, alias="mdnaScore")
    technical_score: int = Field(0, alias="technicalScore")
    valuation_score: int = Field(0, alias="valuationScore")
    leverage: Optional[float] = None
    revenue_growth_yoy: Optional[float] = Field(None, alias="revenueGrowthYoy")


class RecommendationResult(BaseModel):
    """Structured output contract every prompt variant must satisfy."""

    model_config = ConfigDict(populate_by_name=True)

    recommendation_text: str = Field(..., alias="recommendationText")
    reasoning_bullets: List[str] = Field(
        ..., alias="reasoningBullets", min_length=3, max_length=5
    )
    sections_overview: Optional[List[str]] = Field(None, alias="sectionsOverview")
    mode: Optional[AnalysisMode] = None
    ranking: Optional[List[CandidateScore]] = None

    @field_validator("recommendation_text")
    @classmethod
    def _require_text(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("recommendationText must not be empty.")
        return value.strip()

    @field_validator("reasoning_bullets")
    @classmethod
    def _require_bullets(cls, value: List[str]) -> List[str]:
        cleaned = [bullet.strip() for bullet in value]
        if any(not bullet for bullet in cleaned):
            raise ValueError("reasoningBullets entries must not be empty.")
        return cleaned


class RecommendationRefusal(BaseModel):
    """Typed refusal returned instead of a recommendation."""

    error: str
    required: Optional[Literal["subscription", "auth"]] = None


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class FollowUpRequest(BaseModel):
    """Follow-up question about a previously issued recommendation."""

    model_config = ConfigDict(populate_by_name=True)

    question: str = Field(..., min_length=1)
    tickers: List[str] = Field(default_factory=list, max_length=2)
    initial_recommendation: str = Field(..., alias="initialRecommendation")
    chat_history: List[ChatMessage] = Field(
        default_factory=list, alias="chatHistory"
    )


class FollowUpResponse(BaseModel):
    answer: str


class FeedbackRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    feedback_text: str = Field(..., min_length=1, alias="feedbackText")


__all__ = [
    "AnalysisMode",
    "AnalysisRequest",
    "CandidateScore",
    "ChatMessage",
    "FeedbackRequest",
    "FollowUpRequest",
    "FollowUpResponse",
    "MAX_BUNDLE_REFS",
    "RecommendationRefusal",
    "RecommendationResult",
    "TopPickRequest",
]
