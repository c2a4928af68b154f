from sqlalchemy import JSON, Column, DateTime, String, Text

from ..database import Base
from .idea import utcnow


class TextFeatureCache(Base):
    """Content-addressed cache of extracted text features.

    Keyed by the SHA-256 of the analysed input; entries never expire.
    """

    __tablename__ = "nlp_analysis_cache"

    content_hash = Column(String(64), primary_key=True)
    original_text = Column(Text, nullable=False)
    features = Column(JSON, nullable=False)
    fallback_reason = Column(String, nullable=True)  # NULL = full analysis succeeded
    language_detected = Column(String(2), nullable=False, index=True)
    processed_at = Column(DateTime, default=utcnow, index=True)
