from typing import Literal

from pydantic import BaseModel, Field

TrendDirection = Literal["rising", "stable", "falling"]
Level = Literal["low", "medium", "high"]


class MarketSignal(BaseModel):
    """Trend and competition snapshot for one keyword.

    Supplied by the upstream ingestion feed; zero or more per idea.
    """

    keyword: str
    search_volume: int = Field(default=0, ge=0)
    trend_direction: TrendDirection = "stable"
    market_size_estimate: float = Field(default=0.0, ge=0.0)
    competition_level: Level = "medium"
    revenue_potential: Level = "medium"
    confidence_score: float = Field(default=50.0, ge=0.0, le=100.0)
