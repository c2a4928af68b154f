import uuid

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, String, Text

from ..database import Base
from .idea import GUID, utcnow


class SuccessPredictionRecord(Base):
    """Append-only prediction history. Rows are never updated."""

    __tablename__ = "success_predictions"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    idea_id = Column(GUID(), ForeignKey("ideas.id"), nullable=False, index=True)
    developer_id = Column(GUID(), ForeignKey("users.id"), nullable=False, index=True)

    prediction_score = Column(Float, nullable=False)
    market_timing_score = Column(Float, nullable=False)
    technical_feasibility_score = Column(Float, nullable=False)
    developer_match_score = Column(Float, nullable=False)
    funding_probability_score = Column(Float, nullable=False)
    confidence_interval = Column(Float, nullable=False)

    prediction_factors = Column(JSON, nullable=False, default=dict)
    recommendation = Column(Text, nullable=False, default="")
    model_version = Column(String, nullable=False, default="rules-v1")
    created_at = Column(DateTime, default=utcnow, index=True)


class PredictionFeedback(Base):
    """User feedback / observed outcome attached to a stored prediction."""

    __tablename__ = "prediction_feedback"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    prediction_id = Column(GUID(), ForeignKey("success_predictions.id"), nullable=False, index=True)
    feedback = Column(Text, nullable=True)
    actual_outcome = Column(Float, nullable=True)  # 0-100
    created_at = Column(DateTime, default=utcnow)
