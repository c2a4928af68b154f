from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

Language = Literal["ko", "en"]
MarketPotential = Literal["low", "medium", "high"]


class TextFeatures(BaseModel):
    """Heuristic features derived from an idea's title and description.

    Produced by the Text Feature Extractor.  Lists are ordered most
    relevant first and contain no duplicates.
    """

    categories: List[str] = Field(
        default_factory=list,
        max_length=3,
        description="Up to 3 categories, most relevant first",
    )
    keywords: List[str] = Field(
        default_factory=list,
        max_length=10,
        description="Top terms by frequency (ties by first occurrence)",
    )
    sentiment: float = Field(
        default=0.0,
        ge=-1.0,
        le=1.0,
        description="Polarity in [-1, 1]",
    )
    language: Language = "en"
    market_potential: MarketPotential = "low"
    technical_complexity: int = Field(
        default=3,
        ge=1,
        le=5,
        description="1 (simple) / 3 (moderate or unknown) / 5 (complex)",
    )
    innovation_score: float = Field(
        default=50.0,
        ge=0.0,
        le=100.0,
        description="50 base, keyword and framing bonuses, clamped 0-100",
    )


class IdeaClassification(BaseModel):
    """Placement of an idea in the fixed idea taxonomy."""

    primary_category: str
    sub_categories: List[str] = Field(default_factory=list, max_length=2)
    confidence_score: float = Field(..., ge=0.0, le=100.0)
    suggested_tags: List[str] = Field(default_factory=list, max_length=5)


# ── Extraction outcome (tagged result) ──────────────────────────────────

@dataclass(frozen=True)
class Ok:
    """Full analysis, the completion service answered."""

    features: TextFeatures

    @property
    def is_fallback(self) -> bool:
        return False


@dataclass(frozen=True)
class Fallback:
    """Degraded analysis, computed entirely by deterministic rules."""

    features: TextFeatures
    reason: str

    @property
    def is_fallback(self) -> bool:
        return True


ExtractionOutcome = Union[Ok, Fallback]


# ── API payloads ────────────────────────────────────────────────────────

class AnalyzeRequest(BaseModel):
    title: Optional[str] = Field(default=None, max_length=255)
    text: str = Field(..., max_length=20000)
    force_refresh: bool = False

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("text must not be empty")
        return v


class TextAnalysisResponse(BaseModel):
    features: TextFeatures
    outcome: Literal["ok", "fallback"]
    fallback_reason: Optional[str] = None
    content_hash: str
    cached: bool
    classification: Optional[IdeaClassification] = None
    analyzed_at: datetime


class SentimentDistribution(BaseModel):
    positive: int = 0
    neutral: int = 0
    negative: int = 0


class KeywordCount(BaseModel):
    keyword: str
    count: int


class TextAnalyticsResponse(BaseModel):
    """Aggregate view over recently cached analyses."""

    total_analyses: int
    language_breakdown: Dict[str, int] = Field(default_factory=dict)
    category_breakdown: Dict[str, int] = Field(default_factory=dict)
    sentiment_distribution: SentimentDistribution = Field(default_factory=SentimentDistribution)
    top_keywords: List[KeywordCount] = Field(default_factory=list)
    average_sentiment: float = 0.0


class CachedAnalysis(BaseModel):
    content_hash: str
    features: TextFeatures
    fallback_reason: Optional[str] = None
    processed_at: Optional[datetime] = None


class CacheEvictionResponse(BaseModel):
    deleted: int
