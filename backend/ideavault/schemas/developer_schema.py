from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class DeveloperProfile(BaseModel):
    """Aggregated skill and track-record data for a prospective implementer."""

    user_id: str
    github_username: Optional[str] = Field(
        default=None,
        description="External identity reference; missing lowers prediction confidence",
    )
    skill_scores: Dict[str, float] = Field(
        default_factory=dict,
        description="technology -> 0-100 skill level (keys lower-cased)",
    )
    project_completion_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    average_project_duration_days: float = Field(default=90.0, ge=0.0)
    success_rate: float = Field(default=0.0, ge=0.0, le=100.0)
    preferred_tech_stack: List[str] = Field(default_factory=list)
    specialization_areas: List[str] = Field(default_factory=list)

    @classmethod
    def new_developer(cls, user_id: str) -> "DeveloperProfile":
        """Default profile for a developer with no recorded history."""
        return cls(user_id=user_id)
