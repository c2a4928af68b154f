"""Recommendation Engine.

Ranks ideas for a user from three signals:

  - collaborative: other buyers of ideas in the user's top categories
  - content: similarity to the user's purchase taste profile
  - popularity: views and purchases across the approved catalogue

Combined score = 0.4 * collaborative + 0.4 * content + 0.2 * popularity.
It is a ranking key, not a percentage, and is never normalized.

Any signal failure (or nothing to rank) degrades to the most purchased,
most recent approved ideas at a flat score of 50.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from statistics import mean
from typing import Dict, Iterable, List, Set

from ..constants import (
    DEFAULT_AVERAGE_PRICE,
    DEFAULT_DIFFICULTY_LEVELS,
    POPULARITY_POOL_SIZE,
    PURCHASE_HISTORY_LIMIT,
    TASTE_TOP_CATEGORIES,
)
from ..exceptions import ValidationError
from ..models.idea import utcnow
from ..schemas.idea_schema import IdeaFilter, IdeaMetrics, PurchaseRecord
from ..schemas.recommendation_schema import RecommendationScore, UserTasteProfile
from .background import BackgroundDispatcher
from .scoring_engine import RECOMMENDATION_WEIGHTS, weighted_sum
from .store import ScoringStore, bounded_read

logger = logging.getLogger(__name__)

FALLBACK_SCORE = 50.0

REASON_COLLABORATIVE = "Similar users showed interest"
REASON_CATEGORY = "Matches your preferred category"
REASON_PACKAGE = "Matches your preferred package type"
REASON_POPULAR = "Popular idea"
REASON_DEFAULT = "Recommended for you"

Scores = Dict[str, float]


# ===================================================================== #
#  Pure signal math                                                       #
# ===================================================================== #

def _ranked(values: Iterable[str]) -> List[str]:
    """Most frequent first; ties keep first-seen order."""
    return [value for value, _ in Counter(v for v in values if v).most_common()]


def build_taste_profile(purchases: List[PurchaseRecord]) -> UserTasteProfile:
    ideas = [p.idea for p in purchases]
    prices = [i.price for i in ideas if i.price]
    avg_price = mean(prices) if prices else DEFAULT_AVERAGE_PRICE
    difficulties = [i.implementation_difficulty for i in ideas]

    return UserTasteProfile(
        categories=_ranked(i.category for i in ideas),
        package_types=_ranked(i.package_type or "" for i in ideas),
        price_range=(max(0.0, avg_price * 0.5), avg_price * 1.5),
        tech_stack=_ranked(t for i in ideas for t in i.tech_stack),
        difficulty_levels=[round(mean(difficulties))] if difficulties else list(DEFAULT_DIFFICULTY_LEVELS),
    )


def collaborative_scores(peer_purchases: List[tuple[str, str]]) -> Scores:
    """+1 per distinct peer who bought the idea."""
    baskets: Dict[str, Set[str]] = {}
    for buyer_id, idea_id in peer_purchases:
        baskets.setdefault(buyer_id, set()).add(idea_id)

    scores: Scores = {}
    for basket in baskets.values():
        for idea_id in basket:
            scores[idea_id] = scores.get(idea_id, 0.0) + 1.0
    return scores


def content_score(idea: IdeaMetrics, taste: UserTasteProfile) -> float:
    score = 0.0
    if idea.category in taste.categories:
        score += 40
    if idea.package_type and idea.package_type in taste.package_types:
        score += 20
    low, high = taste.price_range
    if idea.price is not None and low <= idea.price <= high:
        score += 20
    preferred = {t.lower() for t in taste.tech_stack}
    shared = sum(1 for t in idea.tech_stack if t.lower() in preferred)
    score += min(15, shared * 3)
    if idea.implementation_difficulty in taste.difficulty_levels:
        score += 5
    return score


def content_scores(ideas: List[IdeaMetrics], taste: UserTasteProfile, exclude: Set[str]) -> Scores:
    scores: Scores = {}
    for idea in ideas:
        if idea.id in exclude:
            continue
        score = content_score(idea, taste)
        if score > 0:
            scores[idea.id] = score
    return scores


def popularity_scores(ideas: List[IdeaMetrics]) -> Scores:
    """30 * views / max_views + 70 * purchases / max_purchases."""
    if not ideas:
        return {}
    max_views = max(i.view_count for i in ideas)
    max_purchases = max(i.purchase_count for i in ideas)
    scores: Scores = {}
    for idea in ideas:
        view_part = idea.view_count / max_views * 30 if max_views > 0 else 0.0
        purchase_part = idea.purchase_count / max_purchases * 70 if max_purchases > 0 else 0.0
        scores[idea.id] = view_part + purchase_part
    return scores


def reasons_for(collaborative: float, content: float, popularity: float) -> List[str]:
    reasons = []
    if collaborative > 0:
        reasons.append(REASON_COLLABORATIVE)
    if content > 40:
        reasons.append(REASON_CATEGORY)
    if content > 20:
        reasons.append(REASON_PACKAGE)
    if popularity > 50:
        reasons.append(REASON_POPULAR)
    return reasons or [REASON_DEFAULT]


def combine_scores(collaborative: Scores, content: Scores, popularity: Scores) -> List[RecommendationScore]:
    """Weighted union of the three signals, best first (ties by idea id)."""
    combined = []
    for idea_id in set(collaborative) | set(content) | set(popularity):
        signals = {
            "collaborative": collaborative.get(idea_id, 0.0),
            "content": content.get(idea_id, 0.0),
            "popularity": popularity.get(idea_id, 0.0),
        }
        combined.append(
            RecommendationScore(
                idea_id=idea_id,
                score=round(weighted_sum(signals, RECOMMENDATION_WEIGHTS), 4),
                reasons=reasons_for(**signals),
            )
        )
    combined.sort(key=lambda r: (-r.score, r.idea_id))
    return combined


# ===================================================================== #
#  Engine                                                                 #
# ===================================================================== #

class RecommendationEngine:
    def __init__(
        self,
        store: ScoringStore,
        dispatcher: BackgroundDispatcher,
        *,
        store_timeout: float = 5.0,
    ):
        self._store = store
        self._dispatcher = dispatcher
        self._store_timeout = store_timeout

    async def recommend(
        self, user_id: str, limit: int = 6, exclude_ids: Iterable[str] = ()
    ) -> List[RecommendationScore]:
        if limit < 1:
            raise ValidationError("limit must be at least 1")
        exclude = set(exclude_ids)

        try:
            purchases = await self._read(
                self._store.get_completed_purchases(user_id, PURCHASE_HISTORY_LIMIT), "purchase history"
            )
            taste = build_taste_profile(purchases)
            collaborative, content, popularity = await asyncio.gather(
                self._collaborative(user_id, taste),
                self._content(taste, exclude),
                self._popularity(),
            )
        except Exception as exc:
            logger.warning("Recommendation signals failed for user %s, using fallback: %s", user_id, exc)
            return await self._fallback(limit, exclude)

        ranked = [r for r in combine_scores(collaborative, content, popularity) if r.idea_id not in exclude]
        if not ranked:
            logger.info("No recommendation candidates for user %s, using fallback", user_id)
            return await self._fallback(limit, exclude)
        return ranked[:limit]

    def track_click(self, user_id: str, idea_id: str, position: int) -> None:
        """Record that *user_id* opened *idea_id* shown at *position* (background write)."""
        if position < 0:
            raise ValidationError("position must be >= 0")
        clicked_at = utcnow()
        self._dispatcher.dispatch(
            f"recommendation-click:{idea_id}",
            lambda: self._store.append_click_event(user_id, idea_id, position, clicked_at),
        )

    # ------------------------------------------------------------------ #
    #  Signal stages                                                       #
    # ------------------------------------------------------------------ #

    async def _read(self, awaitable, what: str):
        return await bounded_read(awaitable, self._store_timeout, what)

    async def _collaborative(self, user_id: str, taste: UserTasteProfile) -> Scores:
        top = taste.categories[:TASTE_TOP_CATEGORIES]
        if not top:
            return {}
        ideas = await self._read(
            self._store.get_active_approved_ideas(IdeaFilter(categories=top, require_approved=False)),
            "category ideas",
        )
        if not ideas:
            return {}
        peers = await self._read(
            self._store.get_peer_purchases(user_id, [i.id for i in ideas]), "peer purchases"
        )
        return collaborative_scores(peers)

    async def _content(self, taste: UserTasteProfile, exclude: Set[str]) -> Scores:
        ideas = await self._read(self._store.get_active_approved_ideas(IdeaFilter()), "catalogue")
        return content_scores(ideas, taste, exclude)

    async def _popularity(self) -> Scores:
        ideas = await self._read(
            self._store.get_active_approved_ideas(
                IdeaFilter(order_by="purchase_count", limit=POPULARITY_POOL_SIZE)
            ),
            "popular ideas",
        )
        return popularity_scores(ideas)

    async def _fallback(self, limit: int, exclude: Set[str]) -> List[RecommendationScore]:
        ideas = await self._read(
            self._store.get_active_approved_ideas(
                IdeaFilter(order_by="purchase_count", limit=limit + len(exclude))
            ),
            "fallback ideas",
        )
        return [
            RecommendationScore(idea_id=idea.id, score=FALLBACK_SCORE, reasons=[REASON_POPULAR])
            for idea in ideas
            if idea.id not in exclude
        ][:limit]
