from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class PredictionFactors(BaseModel):
    """Rule-based SWOT explanation of a prediction."""

    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    opportunities: List[str] = Field(default_factory=list)
    risks: List[str] = Field(default_factory=list)


class SuccessPrediction(BaseModel):
    """Success prediction for one (idea, developer) pair.

    Produced by the Success Prediction Engine.  ``prediction_score`` is
    the weighted composite of the four sub-scores.
    """

    prediction_score: float = Field(
        ...,
        ge=0.0,
        le=100.0,
        description="0.25*MT + 0.25*TF + 0.30*DM + 0.20*FP",
    )
    market_timing_score: float = Field(
        ...,
        ge=0.0,
        le=100.0,
        description="50 base, trend average, competition penalty, market size bonus",
    )
    technical_feasibility_score: float = Field(
        ...,
        ge=20.0,
        le=100.0,
        description="80 base, difficulty and complex-tech penalties, mature-tech bonus",
    )
    developer_match_score: float = Field(
        ...,
        ge=0.0,
        le=100.0,
        description="0.4*alignment + 0.3*success_rate + 0.2*completion_rate + 0.1*specialization",
    )
    funding_probability_score: float = Field(
        ...,
        ge=10.0,
        le=100.0,
        description="40 base, category, revenue model and revenue potential bonuses",
    )
    confidence_interval: float = Field(
        ...,
        ge=50.0,
        le=100.0,
        description="100 minus data-quality deductions, floored at 50",
    )
    factors: PredictionFactors = Field(default_factory=PredictionFactors)
    recommendation: str


class PredictionRequest(BaseModel):
    idea_id: str = Field(..., min_length=1)
    developer_id: str = Field(..., min_length=1)
    force_refresh: bool = False


class PredictionResponse(BaseModel):
    prediction: SuccessPrediction
    cached: bool
    generated_at: datetime


class StoredPrediction(BaseModel):
    """One row of the append-only prediction history."""

    id: str
    idea_id: str
    developer_id: str
    prediction: SuccessPrediction
    model_version: str
    created_at: datetime


class PredictionHistoryResponse(BaseModel):
    predictions: List[StoredPrediction]
    total: int


class PredictionFeedbackRequest(BaseModel):
    feedback: Optional[str] = Field(default=None, max_length=2000)
    actual_outcome: Optional[float] = Field(default=None, ge=0.0, le=100.0)

    @model_validator(mode="after")
    def require_content(self) -> "PredictionFeedbackRequest":
        if self.feedback is None and self.actual_outcome is None:
            raise ValueError("Either feedback or actual_outcome is required")
        return self


class PredictionFeedbackResponse(BaseModel):
    id: str
    prediction_id: str
    message: str
