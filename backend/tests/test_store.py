"""SqlScoringStore tests against a file-based SQLite database."""

import asyncio
import os
import sys
import uuid
from datetime import timedelta

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ideavault.database import Base
from ideavault.exceptions import ExternalServiceError, NotFoundError
from ideavault.models import (
    DeveloperAnalytics,
    Idea,
    MarketAnalytics,
    RecommendationClick,
    TextFeatureCache,
    Transaction,
    User,
)
from ideavault.models.idea import utcnow
from ideavault.schemas.idea_schema import IdeaFilter
from ideavault.schemas.prediction_schema import PredictionFactors, SuccessPrediction
from ideavault.schemas.text_features_schema import TextFeatures
from ideavault.services.store import SqlScoringStore, bounded_read

# ---------------------------------------------------------------------------
# Test database setup (file-based SQLite for compatibility)
# ---------------------------------------------------------------------------
TEST_DATABASE_URL = "sqlite:///./test_store.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

store = SqlScoringStore(TestingSessionLocal)

_user_counter = 0


@pytest.fixture(autouse=True)
def setup_db():
    """Create tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def _add(*rows):
    with TestingSessionLocal() as db:
        db.add_all(rows)
        db.commit()


def _user():
    global _user_counter
    _user_counter += 1
    user_id = uuid.uuid4()
    _add(User(id=user_id, email=f"dev{_user_counter}@example.com", username=f"dev_{_user_counter}"))
    return user_id


def _idea(**overrides):
    data = dict(
        id=uuid.uuid4(),
        title="TutorAI",
        description="AI tutoring platform",
        category="EdTech",
        tech_stack=["Python", "React"],
        implementation_difficulty=2,
        revenue_model="subscription",
        status="active",
        validation_status="approved",
    )
    data.update(overrides)
    _add(Idea(**data))
    return data["id"]


def _prediction(score=70.0):
    return SuccessPrediction(
        prediction_score=score,
        market_timing_score=50.0,
        technical_feasibility_score=80.0,
        developer_match_score=60.0,
        funding_probability_score=40.0,
        confidence_interval=75.0,
        factors=PredictionFactors(strengths=["Low technical complexity enables rapid development"]),
        recommendation="Recommended: Good potential for success, consider addressing identified weaknesses.",
    )


class TestIdeaReads:
    def test_get_idea(self):
        idea_id = _idea(implementation_difficulty=None)

        idea = asyncio.run(store.get_idea(str(idea_id)))

        assert idea.id == str(idea_id)
        assert idea.tech_stack == ["Python", "React"]
        assert idea.implementation_difficulty == 3

    def test_unknown_and_malformed_ids(self):
        assert asyncio.run(store.get_idea(str(uuid.uuid4()))) is None
        assert asyncio.run(store.get_idea("not-a-uuid")) is None

    def test_active_approved_filtering(self):
        approved = _idea(purchase_count=1)
        popular = _idea(purchase_count=9)
        _idea(validation_status="pending")
        _idea(status="inactive")

        ideas = asyncio.run(store.get_active_approved_ideas(IdeaFilter(order_by="purchase_count")))

        assert [i.id for i in ideas] == [str(popular), str(approved)]

    def test_category_filter_includes_unapproved_when_asked(self):
        _idea(category="FinTech", validation_status="pending")
        _idea(category="Gaming")

        ideas = asyncio.run(
            store.get_active_approved_ideas(IdeaFilter(categories=["FinTech"], require_approved=False))
        )

        assert [i.category for i in ideas] == ["FinTech"]
        assert asyncio.run(store.get_active_approved_ideas(IdeaFilter(categories=[]))) == []

    def test_limit(self):
        for _ in range(3):
            _idea()
        assert len(asyncio.run(store.get_active_approved_ideas(IdeaFilter(limit=2)))) == 2


class TestDeveloperProfile:
    def test_unknown_user(self):
        assert asyncio.run(store.get_developer_profile(str(uuid.uuid4()))) is None

    def test_user_without_analytics_is_new_developer(self):
        user_id = _user()

        profile = asyncio.run(store.get_developer_profile(str(user_id)))

        assert profile.user_id == str(user_id)
        assert profile.skill_scores == {}
        assert profile.success_rate == 0.0

    def test_analytics_mapped(self):
        user_id = _user()
        _add(
            DeveloperAnalytics(
                user_id=user_id,
                github_username="octocat",
                skill_scores={"React": 85},
                project_completion_rate=0.75,
                success_rate=90.0,
                specialization_areas=["EdTech"],
            )
        )

        profile = asyncio.run(store.get_developer_profile(str(user_id)))

        assert profile.github_username == "octocat"
        assert profile.skill_scores == {"react": 85.0}
        assert profile.project_completion_rate == 0.75
        assert profile.specialization_areas == ["EdTech"]


class TestMarketSignals:
    def test_newest_first_and_filtered(self):
        now = utcnow()
        _add(
            MarketAnalytics(keyword="tutor", trend_direction="falling", analysis_date=now - timedelta(days=2)),
            MarketAnalytics(keyword="tutor", trend_direction="rising", analysis_date=now),
            MarketAnalytics(keyword="crypto", trend_direction="stable", analysis_date=now),
        )

        signals = asyncio.run(store.get_market_signals(["tutor", "platform"]))

        assert [s.trend_direction for s in signals] == ["rising", "falling"]

    def test_limit_and_empty_keywords(self):
        _add(*[MarketAnalytics(keyword="tutor") for _ in range(4)])
        assert len(asyncio.run(store.get_market_signals(["tutor"], limit=3))) == 3
        assert asyncio.run(store.get_market_signals([])) == []


class TestPurchases:
    def test_completed_purchases_and_peers(self):
        buyer, peer = _user(), _user()
        idea_a, idea_b = _idea(category="FinTech"), _idea(category="AI")
        now = utcnow()
        _add(
            Transaction(buyer_id=buyer, idea_id=idea_a, status="completed", created_at=now - timedelta(days=1)),
            Transaction(buyer_id=buyer, idea_id=idea_b, status="completed", created_at=now),
            Transaction(buyer_id=buyer, idea_id=idea_b, status="refunded", created_at=now),
            Transaction(buyer_id=peer, idea_id=idea_a, status="completed"),
            Transaction(buyer_id=peer, idea_id=idea_b, status="pending"),
        )

        purchases = asyncio.run(store.get_completed_purchases(str(buyer)))
        peers = asyncio.run(store.get_peer_purchases(str(buyer), [str(idea_a), str(idea_b)]))

        assert [p.idea.category for p in purchases] == ["AI", "FinTech"]
        assert peers == [(str(peer), str(idea_a))]


class TestPredictionHistory:
    def test_append_and_read(self):
        developer, idea_id = _user(), _idea()

        first = asyncio.run(store.append_prediction(str(idea_id), str(developer), _prediction(60.0)))
        second = asyncio.run(store.append_prediction(str(idea_id), str(developer), _prediction(80.0)))
        history = asyncio.run(store.get_predictions(str(developer), str(idea_id)))

        assert {h.id for h in history} == {first, second}
        assert all(h.model_version == "rules-v1" for h in history)
        assert history[0].created_at >= history[1].created_at
        stored = next(h for h in history if h.id == second)
        assert stored.prediction == _prediction(80.0)

    def test_feedback(self):
        developer, idea_id = _user(), _idea()
        prediction_id = asyncio.run(store.append_prediction(str(idea_id), str(developer), _prediction()))

        feedback_id = asyncio.run(store.append_prediction_feedback(prediction_id, "Launched", 85.0))

        assert uuid.UUID(feedback_id)
        with pytest.raises(NotFoundError):
            asyncio.run(store.append_prediction_feedback(str(uuid.uuid4()), "x", None))


class TestClicks:
    def test_click_written(self):
        user_id, idea_id = uuid.uuid4(), uuid.uuid4()

        asyncio.run(store.append_click_event(str(user_id), str(idea_id), 3, utcnow()))

        with TestingSessionLocal() as db:
            row = db.query(RecommendationClick).one()
            assert (row.user_id, row.idea_id, row.position) == (user_id, idea_id, 3)

    def test_malformed_ids_rejected(self):
        with pytest.raises(ValueError):
            asyncio.run(store.append_click_event("u1", "a", 0, utcnow()))


class TestTextFeatureCache:
    def test_upsert_insert_then_update(self):
        key = "a" * 64
        asyncio.run(store.upsert_text_features(key, "text", TextFeatures(keywords=["one"]), "completion timed out"))
        asyncio.run(store.upsert_text_features(key, "text", TextFeatures(keywords=["two"]), None))

        cached = asyncio.run(store.get_text_features(key))

        assert cached.features.keywords == ["two"]
        assert cached.fallback_reason is None
        with TestingSessionLocal() as db:
            assert db.query(TextFeatureCache).count() == 1

    def test_list_by_language(self):
        asyncio.run(store.upsert_text_features("a" * 64, "hello", TextFeatures(language="en"), None))
        asyncio.run(store.upsert_text_features("b" * 64, "안녕", TextFeatures(language="ko"), None))

        rows = asyncio.run(store.list_text_features(language="ko"))

        assert [r.content_hash for r in rows] == ["b" * 64]

    def test_delete(self):
        asyncio.run(store.upsert_text_features("a" * 64, "one", TextFeatures(), None))
        asyncio.run(store.upsert_text_features("b" * 64, "two", TextFeatures(), None))

        assert asyncio.run(store.delete_text_features(content_hash="a" * 64)) == 1
        assert asyncio.run(store.delete_text_features(older_than=utcnow() - timedelta(days=1))) == 0
        assert asyncio.run(store.delete_text_features(older_than=utcnow() + timedelta(seconds=1))) == 1
        assert asyncio.run(store.get_text_features("b" * 64)) is None


class TestBoundedRead:
    def test_timeout_becomes_external_service_error(self):
        async def slow():
            await asyncio.sleep(1)

        with pytest.raises(ExternalServiceError) as exc_info:
            asyncio.run(bounded_read(slow(), 0.01, "slow read"))
        assert "timed out" in exc_info.value.reason

    def test_backend_failure_wrapped(self):
        async def broken():
            raise RuntimeError("disk on fire")

        with pytest.raises(ExternalServiceError):
            asyncio.run(bounded_read(broken(), 1.0, "broken read"))

    def test_not_found_passes_through(self):
        async def missing():
            raise NotFoundError("Idea", "x")

        with pytest.raises(NotFoundError):
            asyncio.run(bounded_read(missing(), 1.0, "idea read"))
