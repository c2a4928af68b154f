from sqlalchemy import Column, DateTime, Float, Integer, String

from ..database import Base
from .idea import utcnow


class MarketAnalytics(Base):
    """One trend/competition snapshot for a keyword, written by the ingestion feed."""

    __tablename__ = "market_analytics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    keyword = Column(String, nullable=False, index=True)
    search_volume = Column(Integer, nullable=False, default=0)
    trend_direction = Column(String, nullable=False, default="stable")     # rising | stable | falling
    market_size_estimate = Column(Float, nullable=False, default=0.0)
    competition_level = Column(String, nullable=False, default="medium")   # low | medium | high
    revenue_potential = Column(String, nullable=False, default="medium")   # low | medium | high
    confidence_score = Column(Float, nullable=False, default=50.0)
    analysis_date = Column(DateTime, default=utcnow, index=True)
