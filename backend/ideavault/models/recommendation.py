from sqlalchemy import Column, DateTime, Integer

from ..database import Base
from .idea import GUID, utcnow


class RecommendationClick(Base):
    __tablename__ = "recommendation_clicks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(GUID(), nullable=False, index=True)
    idea_id = Column(GUID(), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    clicked_at = Column(DateTime, default=utcnow)
