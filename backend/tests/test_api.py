"""HTTP surface tests: analysis, prediction and recommendation routes, error mapping."""

import asyncio
import os
import sys
import uuid

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ideavault.database import Base
from ideavault.dependencies import build_services, get_services
from ideavault.exceptions import ExternalServiceError
from ideavault.main import app
from ideavault.models import DeveloperAnalytics, Idea, User
from ideavault.schemas.prediction_schema import PredictionFactors, SuccessPrediction
from ideavault.schemas.text_features_schema import TextFeatures

from fakes import FakeCompletion, FakeStore

# ---------------------------------------------------------------------------
# Test database setup (file-based SQLite for compatibility)
# ---------------------------------------------------------------------------
TEST_DATABASE_URL = "sqlite:///./test_api.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

COMPLETION_ANSWER = (
    '{"categories": ["education", "ai"], "primary_category": "EdTech", '
    '"sub_categories": ["AI & Machine Learning"], "confidence": 85, "tags": ["Tutoring"]}'
)

client = TestClient(app)

services = None


@pytest.fixture(autouse=True)
def setup_db():
    """Create tables and fresh services before each test, drop after."""
    global services
    Base.metadata.create_all(bind=engine)
    services = build_services(session_factory=TestingSessionLocal, completion=FakeCompletion(COMPLETION_ANSWER))
    app.dependency_overrides[get_services] = lambda: services
    yield
    Base.metadata.drop_all(bind=engine)
    app.dependency_overrides.pop(get_services, None)


def _add(*rows):
    with TestingSessionLocal() as db:
        db.add_all(rows)
        db.commit()


def _seed_pair():
    """A developer with analytics and an approved EdTech idea; returns their ids as strings."""
    developer_id, idea_id = uuid.uuid4(), uuid.uuid4()
    _add(
        User(id=developer_id, email="dev@example.com", username="dev"),
        DeveloperAnalytics(
            user_id=developer_id,
            github_username="octocat",
            skill_scores={"python": 90, "react": 80, "docker": 70},
            project_completion_rate=0.9,
            success_rate=85.0,
            specialization_areas=["EdTech"],
        ),
        Idea(
            id=idea_id,
            title="TutorAI",
            description="AI tutoring platform for students",
            category="EdTech",
            tech_stack=["Python", "React"],
            implementation_difficulty=2,
            revenue_model="subscription",
            status="active",
            validation_status="approved",
        ),
    )
    return str(developer_id), str(idea_id)


def _stored_prediction(developer_id, idea_id):
    prediction = SuccessPrediction(
        prediction_score=70.0,
        market_timing_score=50.0,
        technical_feasibility_score=76.0,
        developer_match_score=70.0,
        funding_probability_score=80.0,
        confidence_interval=80.0,
        factors=PredictionFactors(),
        recommendation="Recommended: Good potential for success, consider addressing identified weaknesses.",
    )
    return asyncio.run(services.store.append_prediction(idea_id, developer_id, prediction))


# ===================================================================== #
#  General                                                                #
# ===================================================================== #

class TestGeneral:
    def test_health(self):
        res = client.get("/health")
        assert res.status_code == 200
        assert res.json()["status"] == "healthy"

    def test_root_lists_endpoints(self):
        res = client.get("/")
        assert res.status_code == 200
        assert "predict" in res.json()["endpoints"]


# ===================================================================== #
#  Analysis                                                               #
# ===================================================================== #

class TestAnalyze:
    def test_analyze(self):
        res = client.post("/analyze", json={"title": "TutorAI", "text": "AI tutoring platform for students"})
        assert res.status_code == 200
        data = res.json()
        assert data["outcome"] == "ok"
        assert data["fallback_reason"] is None
        assert data["cached"] is False
        assert len(data["content_hash"]) == 64
        assert data["features"]["categories"] == ["education", "ai"]
        assert data["features"]["language"] == "en"
        assert data["classification"]["primary_category"] == "EdTech"
        assert data["classification"]["suggested_tags"] == ["tutoring"]

    def test_completion_outage_reports_fallback(self):
        global services
        services = build_services(
            session_factory=TestingSessionLocal,
            completion=FakeCompletion(ExternalServiceError("openai", "down")),
        )

        res = client.post("/analyze", json={"text": "A blockchain payment app"})

        assert res.status_code == 200
        data = res.json()
        assert data["outcome"] == "fallback"
        assert "openai unavailable" in data["fallback_reason"]
        assert data["classification"]["confidence_score"] == 50

    def test_malformed_classification_answer_still_succeeds(self):
        global services
        services = build_services(
            session_factory=TestingSessionLocal,
            completion=FakeCompletion('{"categories": ["education"], "primary_category": "EdTech", "tags": 5}'),
        )

        res = client.post("/analyze", json={"text": "An AI tutor for kids"})

        assert res.status_code == 200
        assert res.json()["classification"]["confidence_score"] == 50

    def test_blank_text_rejected(self):
        res = client.post("/analyze", json={"text": "   "})
        assert res.status_code == 422

    def test_analytics(self):
        asyncio.run(services.store.upsert_text_features(
            "a" * 64, "great", TextFeatures(language="en", sentiment=0.5, keywords=["tutor"], categories=["education"]), None
        ))
        asyncio.run(services.store.upsert_text_features(
            "b" * 64, "문제", TextFeatures(language="ko", sentiment=-0.3, keywords=["tutor"]), "timeout"
        ))

        res = client.get("/analyze/analytics")

        assert res.status_code == 200
        data = res.json()
        assert data["total_analyses"] == 2
        assert data["language_breakdown"] == {"en": 1, "ko": 1}
        assert data["sentiment_distribution"] == {"positive": 1, "neutral": 0, "negative": 1}
        assert data["top_keywords"] == [{"keyword": "tutor", "count": 2}]
        assert data["average_sentiment"] == 0.1

    def test_analytics_empty(self):
        res = client.get("/analyze/analytics", params={"language": "ko"})
        assert res.status_code == 200
        assert res.json()["total_analyses"] == 0

    def test_cache_eviction(self):
        asyncio.run(services.store.upsert_text_features("a" * 64, "x", TextFeatures(), None))

        res = client.delete("/analyze/cache", params={"content_hash": "a" * 64})

        assert res.status_code == 200
        assert res.json() == {"deleted": 1}

    def test_cache_eviction_requires_a_filter(self):
        assert client.delete("/analyze/cache").status_code == 422
        assert client.delete("/analyze/cache", params={"content_hash": "short"}).status_code == 422


# ===================================================================== #
#  Prediction                                                             #
# ===================================================================== #

class TestPredict:
    def test_predict(self):
        developer_id, idea_id = _seed_pair()

        res = client.post("/predict", json={"idea_id": idea_id, "developer_id": developer_id})

        assert res.status_code == 200
        data = res.json()
        assert data["cached"] is False
        prediction = data["prediction"]
        assert 0 <= prediction["prediction_score"] <= 100
        assert prediction["technical_feasibility_score"] == 76.0
        assert prediction["market_timing_score"] == 50.0
        assert prediction["recommendation"]
        assert set(prediction["factors"]) == {"strengths", "weaknesses", "opportunities", "risks"}

    def test_recent_prediction_reused(self):
        developer_id, idea_id = _seed_pair()
        _stored_prediction(developer_id, idea_id)

        res = client.post("/predict", json={"idea_id": idea_id, "developer_id": developer_id})

        assert res.status_code == 200
        assert res.json()["cached"] is True
        assert res.json()["prediction"]["prediction_score"] == 70.0

    def test_force_refresh(self):
        developer_id, idea_id = _seed_pair()
        _stored_prediction(developer_id, idea_id)

        res = client.post(
            "/predict", json={"idea_id": idea_id, "developer_id": developer_id, "force_refresh": True}
        )

        assert res.json()["cached"] is False

    def test_unknown_idea(self):
        developer_id, _ = _seed_pair()
        res = client.post("/predict", json={"idea_id": str(uuid.uuid4()), "developer_id": developer_id})
        assert res.status_code == 404
        assert res.json()["success"] is False

    def test_missing_developer_id(self):
        res = client.post("/predict", json={"idea_id": str(uuid.uuid4())})
        assert res.status_code == 422

    def test_history(self):
        developer_id, idea_id = _seed_pair()
        prediction_id = _stored_prediction(developer_id, idea_id)

        res = client.get("/predict/history", params={"developer_id": developer_id})

        assert res.status_code == 200
        data = res.json()
        assert data["total"] == 1
        assert data["predictions"][0]["id"] == prediction_id
        assert data["predictions"][0]["model_version"] == "rules-v1"

    def test_feedback(self):
        developer_id, idea_id = _seed_pair()
        prediction_id = _stored_prediction(developer_id, idea_id)

        res = client.post(f"/predict/{prediction_id}/feedback", json={"feedback": "Shipped", "actual_outcome": 82})

        assert res.status_code == 201
        assert res.json()["prediction_id"] == prediction_id
        assert res.json()["message"] == "Feedback recorded"

    def test_feedback_validation_and_unknown(self):
        assert client.post(f"/predict/{uuid.uuid4()}/feedback", json={}).status_code == 422
        res = client.post(f"/predict/{uuid.uuid4()}/feedback", json={"feedback": "x"})
        assert res.status_code == 404

    def test_store_outage_is_503(self):
        global services
        store = FakeStore()
        store.fail.add("get_predictions")
        services = build_services(completion=FakeCompletion(COMPLETION_ANSWER), store=store)

        res = client.get("/predict/history", params={"developer_id": "dev-1"})

        assert res.status_code == 503
        assert res.json()["error"] == "Service unavailable"


# ===================================================================== #
#  Recommendation                                                         #
# ===================================================================== #

class TestRecommend:
    def test_recommend_popular_for_new_user(self):
        _seed_pair()

        res = client.post("/recommend", json={"user_id": str(uuid.uuid4())})

        assert res.status_code == 200
        recommendations = res.json()["recommendations"]
        assert len(recommendations) == 1
        assert recommendations[0]["reasons"]

    def test_empty_catalogue(self):
        res = client.post("/recommend", json={"user_id": str(uuid.uuid4())})
        assert res.status_code == 200
        assert res.json() == {"recommendations": []}

    def test_limit_validated(self):
        res = client.post("/recommend", json={"user_id": "u1", "limit": 0})
        assert res.status_code == 422

    def test_click_accepted(self):
        res = client.post(
            "/recommend/click",
            json={"user_id": str(uuid.uuid4()), "idea_id": str(uuid.uuid4()), "position": 0},
        )
        assert res.status_code == 202
        assert res.json() == {"status": "accepted"}

    def test_negative_position_rejected(self):
        res = client.post("/recommend/click", json={"user_id": "u1", "idea_id": "a", "position": -1})
        assert res.status_code == 422
