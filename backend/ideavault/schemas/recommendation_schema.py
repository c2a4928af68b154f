from typing import List, Tuple

from pydantic import BaseModel, Field


class UserTasteProfile(BaseModel):
    """Purchase preferences derived from a user's completed purchases.

    Never stored; rebuilt on every recommendation call.
    """

    categories: List[str] = Field(default_factory=list, description="Most purchased first")
    package_types: List[str] = Field(default_factory=list, description="Most purchased first")
    price_range: Tuple[float, float] = Field(..., description="(min, max) = mean price * (0.5, 1.5)")
    tech_stack: List[str] = Field(default_factory=list, description="Most frequent first")
    difficulty_levels: List[int] = Field(default_factory=lambda: [1, 2, 3])


class RecommendationScore(BaseModel):
    idea_id: str
    score: float = Field(
        ...,
        ge=0.0,
        description="Ranking key 0.4*collaborative + 0.4*content + 0.2*popularity (not a percentage)",
    )
    reasons: List[str] = Field(default_factory=list, max_length=4)


class RecommendRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    limit: int = Field(default=6, ge=1, le=50)
    exclude_ids: List[str] = Field(default_factory=list)


class RecommendResponse(BaseModel):
    recommendations: List[RecommendationScore]


class ClickEventRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    idea_id: str = Field(..., min_length=1)
    position: int = Field(..., ge=0, description="0-based rank at which the idea was shown")
