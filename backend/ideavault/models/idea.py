import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.types import TypeDecorator, CHAR


from ..database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp (SQLite drops tzinfo on read)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class GUID(TypeDecorator):
    """Platform-independent UUID type.

    Uses CHAR(36) to store UUIDs as strings, compatible with all backends
    including SQLite.
    """

    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            return uuid.UUID(value)
        return value


class Idea(Base):
    __tablename__ = "ideas"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String, nullable=False, index=True)

    # Technical metadata read by the prediction engine
    tech_stack = Column(JSON, nullable=False, default=list)
    implementation_difficulty = Column(Integer, nullable=True, default=3)
    target_audience = Column(String, nullable=True, default="")
    revenue_model = Column(String, nullable=True, default="")

    # Marketplace metadata read by the recommendation engine
    package_type = Column(String, nullable=True)
    price = Column(Float, nullable=True)
    view_count = Column(Integer, nullable=False, default=0)
    purchase_count = Column(Integer, nullable=False, default=0)

    # "active" | "inactive" and "pending" | "approved" | "rejected"
    status = Column(String, nullable=False, default="active", index=True)
    validation_status = Column(String, nullable=False, default="pending", index=True)

    seller_id = Column(GUID(), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow)
