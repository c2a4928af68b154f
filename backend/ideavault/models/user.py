import uuid

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, String
from sqlalchemy.orm import relationship

from ..database import Base
from .idea import GUID, utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, index=True, nullable=False)
    username = Column(String, unique=True, index=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    analytics = relationship("DeveloperAnalytics", back_populates="user", uselist=False)


class DeveloperAnalytics(Base):
    """Aggregated track record of a developer.

    Written by the progress-tracking service; the scoring core only reads it.
    """

    __tablename__ = "developer_analytics"

    user_id = Column(GUID(), ForeignKey("users.id"), primary_key=True)
    github_username = Column(String, nullable=True)
    skill_scores = Column(JSON, nullable=False, default=dict)        # {"react": 85, ...}
    project_completion_rate = Column(Float, nullable=False, default=0.0)  # 0-1
    average_project_duration = Column(Float, nullable=False, default=90.0)  # days
    preferred_tech_stack = Column(JSON, nullable=False, default=list)
    success_rate = Column(Float, nullable=False, default=0.0)        # 0-100
    specialization_areas = Column(JSON, nullable=False, default=list)
    last_updated = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="analytics")
