"""Persistent store contracts and their SQLAlchemy implementation.

The engines only see the ``ScoringStore`` protocol.  ``SqlScoringStore``
opens one short-lived session per call and runs the blocking query in a
worker thread, so engine code can bound every read with
``asyncio.wait_for`` and run independent reads concurrently.

Unknown or malformed ids read as "absent" (``None`` / empty list); the
engines decide whether absence is an error.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence, Tuple, TypeVar

from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..exceptions import ExternalServiceError, NotFoundError, ScoringError
from ..models import (
    DeveloperAnalytics,
    Idea,
    MarketAnalytics,
    PredictionFeedback,
    RecommendationClick,
    SuccessPredictionRecord,
    TextFeatureCache,
    Transaction,
    User,
)
from ..models.idea import utcnow
from ..schemas.developer_schema import DeveloperProfile
from ..schemas.idea_schema import IdeaFilter, IdeaMetrics, PurchaseRecord
from ..schemas.market_schema import MarketSignal
from ..schemas.prediction_schema import PredictionFactors, StoredPrediction, SuccessPrediction
from ..schemas.text_features_schema import CachedAnalysis, TextFeatures

logger = logging.getLogger(__name__)

MODEL_VERSION = "rules-v1"

T = TypeVar("T")


async def bounded_read(awaitable: Awaitable[T], timeout: float, what: str) -> T:
    """Await a store call within *timeout*.

    Timeouts and backend failures become ``ExternalServiceError``;
    ``ScoringError`` subclasses (e.g. ``NotFoundError``) pass through.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise ExternalServiceError("store", f"{what} timed out after {timeout:.1f}s") from exc
    except ScoringError:
        raise
    except Exception as exc:
        raise ExternalServiceError("store", f"{what} failed: {exc}") from exc


class ScoringStore(Protocol):
    # ── reads ──
    async def get_idea(self, idea_id: str) -> Optional[IdeaMetrics]: ...
    async def get_developer_profile(self, user_id: str) -> Optional[DeveloperProfile]: ...
    async def get_market_signals(self, keywords: Sequence[str], limit: int = 10) -> List[MarketSignal]: ...
    async def get_completed_purchases(self, user_id: str, limit: int = 50) -> List[PurchaseRecord]: ...
    async def get_active_approved_ideas(self, idea_filter: Optional[IdeaFilter] = None) -> List[IdeaMetrics]: ...
    async def get_peer_purchases(self, user_id: str, idea_ids: Sequence[str]) -> List[Tuple[str, str]]: ...
    async def get_predictions(
        self, developer_id: str, idea_id: Optional[str] = None, limit: int = 10
    ) -> List[StoredPrediction]: ...
    async def get_text_features(self, content_hash: str) -> Optional[CachedAnalysis]: ...
    async def list_text_features(self, limit: int = 20, language: Optional[str] = None) -> List[CachedAnalysis]: ...

    # ── writes ──
    async def append_prediction(self, idea_id: str, developer_id: str, prediction: SuccessPrediction) -> str: ...
    async def append_prediction_feedback(
        self, prediction_id: str, feedback: Optional[str], actual_outcome: Optional[float]
    ) -> str: ...
    async def append_click_event(self, user_id: str, idea_id: str, position: int, timestamp: datetime) -> None: ...
    async def upsert_text_features(
        self, content_hash: str, text: str, features: TextFeatures, fallback_reason: Optional[str]
    ) -> None: ...
    async def delete_text_features(
        self, content_hash: Optional[str] = None, older_than: Optional[datetime] = None
    ) -> int: ...


# ===================================================================== #
#  Row -> schema mapping                                                  #
# ===================================================================== #

def _as_uuid(value: object) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def _idea_to_metrics(row: Idea) -> IdeaMetrics:
    difficulty = row.implementation_difficulty or 3
    return IdeaMetrics(
        id=str(row.id),
        title=row.title,
        description=row.description or "",
        category=row.category or "",
        tech_stack=list(row.tech_stack or []),
        implementation_difficulty=min(5, max(1, int(difficulty))),
        target_audience=row.target_audience or "",
        revenue_model=row.revenue_model or "",
        package_type=row.package_type,
        price=row.price,
        view_count=row.view_count or 0,
        purchase_count=row.purchase_count or 0,
        created_at=row.created_at,
    )


def _analytics_to_profile(user_id: str, row: DeveloperAnalytics) -> DeveloperProfile:
    return DeveloperProfile(
        user_id=user_id,
        github_username=row.github_username or None,
        skill_scores={str(k).lower(): float(v) for k, v in (row.skill_scores or {}).items()},
        project_completion_rate=row.project_completion_rate or 0.0,
        average_project_duration_days=row.average_project_duration or 90.0,
        success_rate=row.success_rate or 0.0,
        preferred_tech_stack=list(row.preferred_tech_stack or []),
        specialization_areas=list(row.specialization_areas or []),
    )


def _record_to_stored(row: SuccessPredictionRecord) -> StoredPrediction:
    factors = dict(row.prediction_factors or {})
    return StoredPrediction(
        id=str(row.id),
        idea_id=str(row.idea_id),
        developer_id=str(row.developer_id),
        prediction=SuccessPrediction(
            prediction_score=row.prediction_score,
            market_timing_score=row.market_timing_score,
            technical_feasibility_score=row.technical_feasibility_score,
            developer_match_score=row.developer_match_score,
            funding_probability_score=row.funding_probability_score,
            confidence_interval=row.confidence_interval,
            factors=PredictionFactors(**factors),
            recommendation=row.recommendation,
        ),
        model_version=row.model_version,
        created_at=row.created_at,
    )


def _cache_to_analysis(row: TextFeatureCache) -> CachedAnalysis:
    return CachedAnalysis(
        content_hash=row.content_hash,
        features=TextFeatures(**row.features),
        fallback_reason=row.fallback_reason,
        processed_at=row.processed_at,
    )


# ===================================================================== #
#  SQLAlchemy implementation                                              #
# ===================================================================== #

class SqlScoringStore:
    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    # ------------------------------------------------------------------ #
    #  Reads                                                               #
    # ------------------------------------------------------------------ #

    async def get_idea(self, idea_id: str) -> Optional[IdeaMetrics]:
        return await asyncio.to_thread(self._get_idea, idea_id)

    def _get_idea(self, idea_id: str) -> Optional[IdeaMetrics]:
        key = _as_uuid(idea_id)
        if key is None:
            return None
        with self._session_factory() as db:
            row = db.get(Idea, key)
            return _idea_to_metrics(row) if row is not None else None

    async def get_developer_profile(self, user_id: str) -> Optional[DeveloperProfile]:
        return await asyncio.to_thread(self._get_developer_profile, user_id)

    def _get_developer_profile(self, user_id: str) -> Optional[DeveloperProfile]:
        """``None`` when the user does not exist, default profile when it has no analytics."""
        key = _as_uuid(user_id)
        if key is None:
            return None
        with self._session_factory() as db:
            user = db.get(User, key)
            if user is None:
                return None
            analytics = db.get(DeveloperAnalytics, key)
            if analytics is None:
                return DeveloperProfile.new_developer(str(key))
            return _analytics_to_profile(str(key), analytics)

    async def get_market_signals(self, keywords: Sequence[str], limit: int = 10) -> List[MarketSignal]:
        return await asyncio.to_thread(self._get_market_signals, list(keywords), limit)

    def _get_market_signals(self, keywords: List[str], limit: int) -> List[MarketSignal]:
        if not keywords:
            return []
        with self._session_factory() as db:
            rows = (
                db.query(MarketAnalytics)
                .filter(MarketAnalytics.keyword.in_(keywords))
                .order_by(desc(MarketAnalytics.analysis_date), desc(MarketAnalytics.id))
                .limit(limit)
                .all()
            )
            return [
                MarketSignal(
                    keyword=row.keyword,
                    search_volume=max(0, row.search_volume or 0),
                    trend_direction=row.trend_direction,
                    market_size_estimate=max(0.0, row.market_size_estimate or 0.0),
                    competition_level=row.competition_level,
                    revenue_potential=row.revenue_potential,
                    confidence_score=min(100.0, max(0.0, row.confidence_score or 0.0)),
                )
                for row in rows
            ]

    async def get_completed_purchases(self, user_id: str, limit: int = 50) -> List[PurchaseRecord]:
        return await asyncio.to_thread(self._get_completed_purchases, user_id, limit)

    def _get_completed_purchases(self, user_id: str, limit: int) -> List[PurchaseRecord]:
        key = _as_uuid(user_id)
        if key is None:
            return []
        with self._session_factory() as db:
            rows = (
                db.query(Transaction)
                .filter(Transaction.buyer_id == key, Transaction.status == "completed")
                .order_by(desc(Transaction.created_at))
                .limit(limit)
                .all()
            )
            return [
                PurchaseRecord(
                    buyer_id=str(row.buyer_id),
                    idea=_idea_to_metrics(row.idea),
                    purchased_at=row.created_at,
                )
                for row in rows
                if row.idea is not None
            ]

    async def get_active_approved_ideas(self, idea_filter: Optional[IdeaFilter] = None) -> List[IdeaMetrics]:
        return await asyncio.to_thread(self._get_active_approved_ideas, idea_filter or IdeaFilter())

    def _get_active_approved_ideas(self, idea_filter: IdeaFilter) -> List[IdeaMetrics]:
        with self._session_factory() as db:
            query = db.query(Idea).filter(Idea.status == "active")
            if idea_filter.require_approved:
                query = query.filter(Idea.validation_status == "approved")
            if idea_filter.categories is not None:
                if not idea_filter.categories:
                    return []
                query = query.filter(Idea.category.in_(idea_filter.categories))
            if idea_filter.order_by == "purchase_count":
                query = query.order_by(desc(Idea.purchase_count), desc(Idea.created_at))
            elif idea_filter.order_by == "created_at":
                query = query.order_by(desc(Idea.created_at))
            if idea_filter.limit:
                query = query.limit(idea_filter.limit)
            return [_idea_to_metrics(row) for row in query.all()]

    async def get_peer_purchases(self, user_id: str, idea_ids: Sequence[str]) -> List[Tuple[str, str]]:
        return await asyncio.to_thread(self._get_peer_purchases, user_id, list(idea_ids))

    def _get_peer_purchases(self, user_id: str, idea_ids: List[str]) -> List[Tuple[str, str]]:
        """(buyer_id, idea_id) of other users' completed purchases of *idea_ids*."""
        keys = [k for k in (_as_uuid(i) for i in idea_ids) if k is not None]
        if not keys:
            return []
        with self._session_factory() as db:
            query = db.query(Transaction.buyer_id, Transaction.idea_id).filter(
                Transaction.status == "completed",
                Transaction.idea_id.in_(keys),
            )
            own_key = _as_uuid(user_id)
            if own_key is not None:
                query = query.filter(Transaction.buyer_id != own_key)
            return [(str(buyer), str(idea)) for buyer, idea in query.all()]

    async def get_predictions(
        self, developer_id: str, idea_id: Optional[str] = None, limit: int = 10
    ) -> List[StoredPrediction]:
        return await asyncio.to_thread(self._get_predictions, developer_id, idea_id, limit)

    def _get_predictions(self, developer_id: str, idea_id: Optional[str], limit: int) -> List[StoredPrediction]:
        dev_key = _as_uuid(developer_id)
        if dev_key is None:
            return []
        with self._session_factory() as db:
            query = db.query(SuccessPredictionRecord).filter(SuccessPredictionRecord.developer_id == dev_key)
            if idea_id is not None:
                idea_key = _as_uuid(idea_id)
                if idea_key is None:
                    return []
                query = query.filter(SuccessPredictionRecord.idea_id == idea_key)
            rows = query.order_by(desc(SuccessPredictionRecord.created_at)).limit(limit).all()
            return [_record_to_stored(row) for row in rows]

    async def get_text_features(self, content_hash: str) -> Optional[CachedAnalysis]:
        return await asyncio.to_thread(self._get_text_features, content_hash)

    def _get_text_features(self, content_hash: str) -> Optional[CachedAnalysis]:
        with self._session_factory() as db:
            row = db.get(TextFeatureCache, content_hash)
            return _cache_to_analysis(row) if row is not None else None

    async def list_text_features(self, limit: int = 20, language: Optional[str] = None) -> List[CachedAnalysis]:
        return await asyncio.to_thread(self._list_text_features, limit, language)

    def _list_text_features(self, limit: int, language: Optional[str]) -> List[CachedAnalysis]:
        with self._session_factory() as db:
            query = db.query(TextFeatureCache)
            if language:
                query = query.filter(TextFeatureCache.language_detected == language)
            rows = query.order_by(desc(TextFeatureCache.processed_at)).limit(limit).all()
            return [_cache_to_analysis(row) for row in rows]

    # ------------------------------------------------------------------ #
    #  Writes                                                              #
    # ------------------------------------------------------------------ #

    async def append_prediction(self, idea_id: str, developer_id: str, prediction: SuccessPrediction) -> str:
        return await asyncio.to_thread(self._append_prediction, idea_id, developer_id, prediction)

    def _append_prediction(self, idea_id: str, developer_id: str, prediction: SuccessPrediction) -> str:
        record = SuccessPredictionRecord(
            idea_id=_as_uuid(idea_id),
            developer_id=_as_uuid(developer_id),
            prediction_score=prediction.prediction_score,
            market_timing_score=prediction.market_timing_score,
            technical_feasibility_score=prediction.technical_feasibility_score,
            developer_match_score=prediction.developer_match_score,
            funding_probability_score=prediction.funding_probability_score,
            confidence_interval=prediction.confidence_interval,
            prediction_factors=prediction.factors.model_dump(),
            recommendation=prediction.recommendation,
            model_version=MODEL_VERSION,
        )
        with self._session_factory() as db:
            db.add(record)
            db.commit()
            return str(record.id)

    async def append_prediction_feedback(
        self, prediction_id: str, feedback: Optional[str], actual_outcome: Optional[float]
    ) -> str:
        return await asyncio.to_thread(self._append_prediction_feedback, prediction_id, feedback, actual_outcome)

    def _append_prediction_feedback(
        self, prediction_id: str, feedback: Optional[str], actual_outcome: Optional[float]
    ) -> str:
        key = _as_uuid(prediction_id)
        with self._session_factory() as db:
            if key is None or db.get(SuccessPredictionRecord, key) is None:
                raise NotFoundError("Prediction", prediction_id)
            row = PredictionFeedback(prediction_id=key, feedback=feedback, actual_outcome=actual_outcome)
            db.add(row)
            db.commit()
            return str(row.id)

    async def append_click_event(self, user_id: str, idea_id: str, position: int, timestamp: datetime) -> None:
        await asyncio.to_thread(self._append_click_event, user_id, idea_id, position, timestamp)

    def _append_click_event(self, user_id: str, idea_id: str, position: int, timestamp: datetime) -> None:
        user_key, idea_key = _as_uuid(user_id), _as_uuid(idea_id)
        if user_key is None or idea_key is None:
            raise ValueError(f"Invalid click event ids: user={user_id!r} idea={idea_id!r}")
        with self._session_factory() as db:
            db.add(RecommendationClick(user_id=user_key, idea_id=idea_key, position=position, clicked_at=timestamp))
            db.commit()

    async def upsert_text_features(
        self, content_hash: str, text: str, features: TextFeatures, fallback_reason: Optional[str]
    ) -> None:
        await asyncio.to_thread(self._upsert_text_features, content_hash, text, features, fallback_reason)

    def _upsert_text_features(
        self, content_hash: str, text: str, features: TextFeatures, fallback_reason: Optional[str]
    ) -> None:
        values = dict(
            original_text=text,
            features=features.model_dump(),
            fallback_reason=fallback_reason,
            language_detected=features.language,
            processed_at=utcnow(),
        )
        with self._session_factory() as db:
            row = db.get(TextFeatureCache, content_hash)
            if row is None:
                db.add(TextFeatureCache(content_hash=content_hash, **values))
            else:
                for field, value in values.items():
                    setattr(row, field, value)
            try:
                db.commit()
            except IntegrityError:
                # A concurrent caller inserted the same hash first; identical content, keep theirs.
                db.rollback()
                logger.info("Text feature cache entry %s already written", content_hash[:12])

    async def delete_text_features(
        self, content_hash: Optional[str] = None, older_than: Optional[datetime] = None
    ) -> int:
        return await asyncio.to_thread(self._delete_text_features, content_hash, older_than)

    def _delete_text_features(self, content_hash: Optional[str], older_than: Optional[datetime]) -> int:
        with self._session_factory() as db:
            query = db.query(TextFeatureCache)
            if content_hash is not None:
                query = query.filter(TextFeatureCache.content_hash == content_hash)
            if older_than is not None:
                query = query.filter(TextFeatureCache.processed_at < older_than)
            deleted = query.delete(synchronize_session=False)
            db.commit()
            return deleted
