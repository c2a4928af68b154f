"""Recommendation tests: taste profile, the three signals, ranking, fallback, click tracking."""

import asyncio
import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from ideavault.exceptions import ValidationError
from ideavault.schemas.idea_schema import IdeaMetrics, PurchaseRecord
from ideavault.services.background import BackgroundDispatcher
from ideavault.services.recommendation_engine import (
    FALLBACK_SCORE,
    REASON_CATEGORY,
    REASON_COLLABORATIVE,
    REASON_DEFAULT,
    REASON_PACKAGE,
    REASON_POPULAR,
    RecommendationEngine,
    build_taste_profile,
    collaborative_scores,
    combine_scores,
    content_score,
    popularity_scores,
    reasons_for,
)

from fakes import FakeStore


def _idea(idea_id, **overrides):
    data = dict(
        id=idea_id,
        title=f"Idea {idea_id}",
        category="FinTech",
        package_type="basic",
        price=100.0,
        tech_stack=["React", "Node"],
        implementation_difficulty=2,
    )
    data.update(overrides)
    return IdeaMetrics(**data)


def _purchase(idea, buyer="u1"):
    return PurchaseRecord(buyer_id=buyer, idea=idea)


def _marketplace():
    """u1 bought p1; 'a' is a close FinTech match, 'b' an unrelated game."""
    store = FakeStore()
    store.purchases["u1"] = [_purchase(_idea("p1"))]
    store.add_idea(_idea("a", price=120.0, tech_stack=["react"], view_count=100, purchase_count=10))
    store.add_idea(
        _idea("b", category="Gaming", package_type="premium", price=500.0, tech_stack=[],
              implementation_difficulty=5, view_count=50, purchase_count=0)
    )
    store.peer_purchases = [("u2", "a"), ("u3", "a"), ("u1", "a")]
    return store


def _engine(store):
    dispatcher = BackgroundDispatcher()
    return RecommendationEngine(store, dispatcher, store_timeout=1.0), dispatcher


# ===================================================================== #
#  Pure signal math                                                       #
# ===================================================================== #

class TestTasteProfile:
    def test_built_from_purchases(self):
        purchases = [
            _purchase(_idea("1", price=100.0, implementation_difficulty=2)),
            _purchase(_idea("2", price=300.0, implementation_difficulty=3, tech_stack=["React"])),
            _purchase(_idea("3", category="AI", price=None, implementation_difficulty=5, package_type=None)),
        ]
        taste = build_taste_profile(purchases)

        assert taste.categories == ["FinTech", "AI"]
        assert taste.package_types == ["basic"]
        assert taste.price_range == (100.0, 300.0)
        assert taste.tech_stack[0] == "React"
        assert taste.difficulty_levels == [3]

    def test_defaults_without_purchases(self):
        taste = build_taste_profile([])
        assert taste.categories == []
        assert taste.price_range == (50_000.0, 150_000.0)
        assert taste.difficulty_levels == [1, 2, 3]


class TestSignals:
    def test_content_score_full_match(self):
        taste = build_taste_profile([_purchase(_idea("p1"))])
        # 40 category + 20 package + 20 price + 2 * 3 tech + 5 difficulty
        assert content_score(_idea("x"), taste) == 91

    def test_content_tech_bonus_capped(self):
        stack = ["A1", "B2", "C3", "D4", "E5", "F6"]
        taste = build_taste_profile([_purchase(_idea("p1", tech_stack=stack))])
        idea = _idea("x", category="Other", package_type=None, price=None, tech_stack=stack, implementation_difficulty=5)
        assert content_score(idea, taste) == 15

    def test_collaborative_counts_distinct_peers(self):
        scores = collaborative_scores([("u2", "a"), ("u2", "a"), ("u3", "a"), ("u3", "b")])
        assert scores == {"a": 2.0, "b": 1.0}

    def test_popularity(self):
        ideas = [
            _idea("a", view_count=100, purchase_count=10),
            _idea("b", view_count=50, purchase_count=0),
        ]
        assert popularity_scores(ideas) == {"a": 100.0, "b": 15.0}

    def test_popularity_without_activity(self):
        assert popularity_scores([_idea("a")]) == {"a": 0.0}
        assert popularity_scores([]) == {}

    def test_reasons(self):
        assert reasons_for(2, 88, 100) == [REASON_COLLABORATIVE, REASON_CATEGORY, REASON_PACKAGE, REASON_POPULAR]
        assert reasons_for(0, 40, 0) == [REASON_PACKAGE]
        assert reasons_for(0, 0, 10) == [REASON_DEFAULT]

    def test_combine_breaks_ties_by_id(self):
        ranked = combine_scores({}, {"b": 10.0, "a": 10.0}, {"c": 20.0})
        assert [r.idea_id for r in ranked] == ["a", "b", "c"]
        assert ranked[0].score == 4.0


# ===================================================================== #
#  Engine                                                                 #
# ===================================================================== #

class TestRecommend:
    def test_ranking(self):
        engine, _ = _engine(_marketplace())

        ranked = asyncio.run(engine.recommend("u1"))

        assert [r.idea_id for r in ranked] == ["a", "b"]
        # 0.4 * 2 + 0.4 * 88 + 0.2 * 100
        assert ranked[0].score == pytest.approx(56.0)
        assert ranked[0].reasons == [REASON_COLLABORATIVE, REASON_CATEGORY, REASON_PACKAGE, REASON_POPULAR]
        assert ranked[1].score == pytest.approx(3.0)
        assert ranked[1].reasons == [REASON_DEFAULT]

    def test_limit(self):
        engine, _ = _engine(_marketplace())
        assert len(asyncio.run(engine.recommend("u1", limit=1))) == 1

    def test_excluded_ideas_never_returned(self):
        engine, _ = _engine(_marketplace())
        ranked = asyncio.run(engine.recommend("u1", exclude_ids=["a"]))
        assert [r.idea_id for r in ranked] == ["b"]

    def test_new_user_gets_popularity_ranking(self):
        engine, _ = _engine(_marketplace())
        ranked = asyncio.run(engine.recommend("stranger"))
        assert ranked[0].idea_id == "a"
        assert REASON_COLLABORATIVE not in ranked[0].reasons

    def test_unapproved_ideas_not_recommended(self):
        store = _marketplace()
        store.add_idea(_idea("pending", view_count=1000, purchase_count=100), validation_status="pending")
        engine, _ = _engine(store)

        ranked = asyncio.run(engine.recommend("u1"))

        assert "pending" not in [r.idea_id for r in ranked]

    def test_failing_stage_falls_back_to_popular(self):
        store = _marketplace()
        store.fail.add("get_completed_purchases")
        engine, _ = _engine(store)

        ranked = asyncio.run(engine.recommend("u1"))

        assert [r.idea_id for r in ranked] == ["a", "b"]
        assert all(r.score == FALLBACK_SCORE for r in ranked)
        assert all(r.reasons == [REASON_POPULAR] for r in ranked)

    def test_fallback_respects_exclusion_and_limit(self):
        store = _marketplace()
        store.fail.add("get_peer_purchases")
        engine, _ = _engine(store)

        ranked = asyncio.run(engine.recommend("u1", limit=1, exclude_ids=["a"]))

        assert [r.idea_id for r in ranked] == ["b"]

    def test_empty_catalogue(self):
        engine, _ = _engine(FakeStore())
        assert asyncio.run(engine.recommend("u1")) == []

    def test_invalid_limit(self):
        engine, _ = _engine(FakeStore())
        with pytest.raises(ValidationError):
            asyncio.run(engine.recommend("u1", limit=0))


class TestClickTracking:
    def test_click_recorded_in_background(self):
        store = FakeStore()
        engine, dispatcher = _engine(store)

        async def run():
            engine.track_click("u1", "a", 2)
            await dispatcher.drain()

        asyncio.run(run())

        assert len(store.clicks) == 1
        user_id, idea_id, position, clicked_at = store.clicks[0]
        assert (user_id, idea_id, position) == ("u1", "a", 2)
        assert clicked_at is not None

    def test_negative_position_rejected(self):
        engine, _ = _engine(FakeStore())
        with pytest.raises(ValidationError):
            engine.track_click("u1", "a", -1)

    def test_write_failure_is_swallowed(self):
        store = FakeStore()
        store.fail.add("append_click_event")
        engine, dispatcher = _engine(store)

        async def run():
            engine.track_click("u1", "a", 0)
            await dispatcher.drain()

        asyncio.run(run())

        assert store.clicks == []
