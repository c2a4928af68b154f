import uuid

from sqlalchemy import Column, DateTime, Float, ForeignKey, String
from sqlalchemy.orm import relationship

from ..database import Base
from .idea import GUID, utcnow


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    buyer_id = Column(GUID(), ForeignKey("users.id"), nullable=False, index=True)
    idea_id = Column(GUID(), ForeignKey("ideas.id"), nullable=False, index=True)
    amount = Column(Float, nullable=True)
    status = Column(String, nullable=False, default="pending")  # pending | completed | refunded
    created_at = Column(DateTime, default=utcnow)

    idea = relationship("Idea", lazy="joined")
