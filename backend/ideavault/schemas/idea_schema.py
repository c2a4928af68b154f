from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class IdeaMetrics(BaseModel):
    """Immutable snapshot of a listed idea, read once per scoring call."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    category: str = ""
    tech_stack: List[str] = Field(
        default_factory=list,
        description="Technologies in listing order, de-duplicated case-insensitively",
    )
    implementation_difficulty: int = Field(default=3, ge=1, le=5)
    target_audience: str = ""
    revenue_model: str = ""

    # Marketplace extras (recommendation engine only)
    package_type: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0.0)
    view_count: int = Field(default=0, ge=0)
    purchase_count: int = Field(default=0, ge=0)
    created_at: Optional[datetime] = None

    @field_validator("tech_stack")
    @classmethod
    def dedupe_tech_stack(cls, v: List[str]) -> List[str]:
        seen: set[str] = set()
        unique: List[str] = []
        for tech in v:
            tech = tech.strip()
            if tech and tech.lower() not in seen:
                seen.add(tech.lower())
                unique.append(tech)
        return unique


class PurchaseRecord(BaseModel):
    """A completed purchase together with the idea as it was bought."""

    buyer_id: str
    idea: IdeaMetrics
    purchased_at: Optional[datetime] = None


class IdeaFilter(BaseModel):
    """Query options for ``get_active_approved_ideas``.

    ``order_by`` is applied descending; ties fall back to ``created_at``.
    """

    categories: Optional[List[str]] = None
    require_approved: bool = True
    order_by: Optional[str] = Field(
        default=None,
        pattern="^(purchase_count|created_at)$",
    )
    limit: Optional[int] = Field(default=None, ge=1)
