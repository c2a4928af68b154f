"""Success Prediction Engine.

Scores how likely an idea is to succeed when built by a given developer.

Pipeline
--------
1. Load idea + developer (concurrently; missing -> ``NotFoundError``)
2. Market signals from the idea's top 3 extracted keywords (failure -> none)
3. Four sub-scores (pure, in order), each guarded by a neutral default
4. Weighted composite, confidence interval, SWOT factors, recommendation
5. Append to the prediction history (background, never blocks)
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

from ..constants import (
    COMPETITION_PENALTY,
    COMPLEX_TECHNOLOGIES,
    CUTTING_EDGE_TECHNOLOGIES,
    HIGH_POTENTIAL_CATEGORIES,
    LARGE_MARKET_BONUS,
    LARGE_MARKET_THRESHOLD,
    MATURE_TECHNOLOGIES,
    STRONG_REVENUE_MODELS,
    TREND_ADJUSTMENT,
)
from ..exceptions import NotFoundError
from ..models.idea import utcnow
from ..schemas.developer_schema import DeveloperProfile
from ..schemas.idea_schema import IdeaMetrics
from ..schemas.market_schema import MarketSignal
from ..schemas.prediction_schema import PredictionFactors, StoredPrediction, SuccessPrediction
from .background import BackgroundDispatcher
from .scoring_engine import (
    DEVELOPER_MATCH_WEIGHTS,
    PREDICTION_WEIGHTS,
    _clamp,
    count_matching,
    tech_matches,
    weighted_sum,
)
from .store import ScoringStore, bounded_read
from .text_features import TextFeatureExtractor

logger = logging.getLogger(__name__)

MARKET_KEYWORD_COUNT = 3
MARKET_SIGNAL_LIMIT = 10

# Neutral defaults when a sub-score computation fails.
NEUTRAL_MARKET_TIMING = 50.0
NEUTRAL_TECHNICAL_FEASIBILITY = 80.0
NEUTRAL_DEVELOPER_MATCH = 0.0
NEUTRAL_FUNDING_PROBABILITY = 40.0

NEUTRAL_ALIGNMENT = 50.0
PARTIAL_SKILL_MATCH = 0.8

RECOMMENDATION_BANDS: List[Tuple[float, str]] = [
    (80.0, "Highly recommended: Strong potential for success with favorable market conditions and good developer match."),
    (65.0, "Recommended: Good potential for success, consider addressing identified weaknesses."),
    (50.0, "Proceed with caution: Moderate potential, significant risks need mitigation."),
]
NOT_RECOMMENDED = (
    "Not recommended: High risk of failure, consider alternative ideas or different developer match."
)


# ===================================================================== #
#  Sub-scores (pure)                                                      #
# ===================================================================== #

def market_timing_score(signals: List[MarketSignal]) -> float:
    """50 base + mean trend adjustment - summed competition penalty + large-market bonus."""
    if not signals:
        return NEUTRAL_MARKET_TIMING
    score = NEUTRAL_MARKET_TIMING
    score += sum(TREND_ADJUSTMENT.get(s.trend_direction, 0.0) for s in signals) / len(signals)
    score -= sum(COMPETITION_PENALTY.get(s.competition_level, 0.0) for s in signals)
    if any(s.market_size_estimate > LARGE_MARKET_THRESHOLD for s in signals):
        score += LARGE_MARKET_BONUS
    return _clamp(score)


def technical_feasibility_score(idea: IdeaMetrics) -> float:
    score = 80.0
    score -= (idea.implementation_difficulty - 1) * 10
    score -= 8 * count_matching(idea.tech_stack, COMPLEX_TECHNOLOGIES)
    score += 3 * count_matching(idea.tech_stack, MATURE_TECHNOLOGIES)
    return _clamp(score, 20.0, 100.0)


def tech_stack_alignment(tech_stack: List[str], developer: DeveloperProfile) -> float:
    """How well the developer's skills cover the idea's stack.

    Exact skill match counts the full level, a substring match (either
    direction) 0.8 of it.  Neutral 50 when either side is empty.
    """
    skills = {k.lower(): v for k, v in developer.skill_scores.items()}
    if not tech_stack or not skills:
        return NEUTRAL_ALIGNMENT

    total = 0.0
    matched = 0
    for tech in tech_stack:
        name = tech.lower().strip()
        if name in skills:
            total += skills[name]
            matched += 1
            continue
        partial = next((s for s in skills if s in name or name in s), None)
        if partial is not None:
            total += skills[partial] * PARTIAL_SKILL_MATCH
            matched += 1

    fraction = matched / len(tech_stack)
    average = total / matched if matched else 0.0
    return fraction * 70 + average * 0.3


def specialization_overlap(category: str, areas: List[str]) -> float:
    """Share of the developer's areas that contain (or sit inside) the category, x100."""
    category = category.lower().strip()
    if not category or not areas:
        return 0.0
    matching = [a for a in areas if a.lower() and (category in a.lower() or a.lower() in category)]
    return len(matching) / len(areas) * 100


def developer_match_score(idea: IdeaMetrics, developer: DeveloperProfile) -> float:
    return _clamp(
        weighted_sum(
            {
                "alignment": tech_stack_alignment(idea.tech_stack, developer),
                "success_rate": developer.success_rate,
                "completion_rate": developer.project_completion_rate,
                "specialization": specialization_overlap(idea.category, developer.specialization_areas),
            },
            DEVELOPER_MATCH_WEIGHTS,
        )
    )


def funding_probability_score(idea: IdeaMetrics, signals: List[MarketSignal]) -> float:
    score = NEUTRAL_FUNDING_PROBABILITY
    category = idea.category.lower()
    if any(c in category for c in HIGH_POTENTIAL_CATEGORIES):
        score += 25
    revenue_model = idea.revenue_model.lower()
    if any(m in revenue_model for m in STRONG_REVENUE_MODELS):
        score += 15
    if any(s.revenue_potential == "high" for s in signals):
        score += 20
    return _clamp(score, 10.0, 100.0)


# ===================================================================== #
#  Explanation (pure)                                                     #
# ===================================================================== #

def confidence_interval(idea: IdeaMetrics, developer: DeveloperProfile, signals: List[MarketSignal]) -> float:
    confidence = 100.0
    if not developer.github_username:
        confidence -= 10
    if len(developer.skill_scores) < 3:
        confidence -= 15
    if not signals:
        confidence -= 20
    if not idea.tech_stack:
        confidence -= 10
    if developer.project_completion_rate == 0:
        confidence -= 15
    return max(50.0, confidence)


def swot_factors(idea: IdeaMetrics, developer: DeveloperProfile, signals: List[MarketSignal]) -> PredictionFactors:
    factors = PredictionFactors()

    if developer.success_rate > 80:
        factors.strengths.append("Proven track record of successful project completion")
    if idea.implementation_difficulty <= 2:
        factors.strengths.append("Low technical complexity enables rapid development")

    if developer.success_rate < 50:
        factors.weaknesses.append("Limited history of successful project delivery")
    if idea.implementation_difficulty >= 4:
        factors.weaknesses.append("High technical complexity may lead to delays")

    if any(s.trend_direction == "rising" for s in signals):
        factors.opportunities.append("Growing market trend provides expansion potential")
    if any(s.competition_level == "low" for s in signals):
        factors.opportunities.append("Low competition allows for market leadership")

    if any(s.competition_level == "high" for s in signals):
        factors.risks.append("High market competition may limit growth")
    if any(tech_matches(t, c) for t in idea.tech_stack for c in CUTTING_EDGE_TECHNOLOGIES):
        factors.risks.append("Cutting-edge technology may face adoption challenges")

    return factors


def recommendation_text(score: float) -> str:
    for threshold, text in RECOMMENDATION_BANDS:
        if score >= threshold:
            return text
    return NOT_RECOMMENDED


# ===================================================================== #
#  Engine                                                                 #
# ===================================================================== #

class PredictionEngine:
    def __init__(
        self,
        store: ScoringStore,
        extractor: TextFeatureExtractor,
        dispatcher: BackgroundDispatcher,
        *,
        store_timeout: float = 5.0,
        reuse_hours: int = 24,
    ):
        self._store = store
        self._extractor = extractor
        self._dispatcher = dispatcher
        self._store_timeout = store_timeout
        self._reuse_window = timedelta(hours=reuse_hours)

    async def predict(self, idea_id: str, developer_id: str) -> SuccessPrediction:
        idea, developer = await asyncio.gather(
            self._load_idea(idea_id),
            self._load_developer(developer_id),
        )
        signals = await self._market_signals(idea)

        market, technical, dev_match, funding = (
            self._guarded("market_timing", lambda: market_timing_score(signals), NEUTRAL_MARKET_TIMING),
            self._guarded("technical_feasibility", lambda: technical_feasibility_score(idea), NEUTRAL_TECHNICAL_FEASIBILITY),
            self._guarded("developer_match", lambda: developer_match_score(idea, developer), NEUTRAL_DEVELOPER_MATCH),
            self._guarded("funding_probability", lambda: funding_probability_score(idea, signals), NEUTRAL_FUNDING_PROBABILITY),
        )
        sub_scores = {
            "market_timing": round(market, 2),
            "technical_feasibility": round(technical, 2),
            "developer_match": round(dev_match, 2),
            "funding_probability": round(funding, 2),
        }
        composite = round(weighted_sum(sub_scores, PREDICTION_WEIGHTS), 2)

        prediction = SuccessPrediction(
            prediction_score=composite,
            market_timing_score=sub_scores["market_timing"],
            technical_feasibility_score=sub_scores["technical_feasibility"],
            developer_match_score=sub_scores["developer_match"],
            funding_probability_score=sub_scores["funding_probability"],
            confidence_interval=confidence_interval(idea, developer, signals),
            factors=swot_factors(idea, developer, signals),
            recommendation=recommendation_text(composite),
        )
        logger.info(
            "Prediction idea=%s developer=%s score=%.2f confidence=%.0f",
            idea_id, developer_id, composite, prediction.confidence_interval,
        )

        self._dispatcher.dispatch(
            f"prediction-append:{idea_id}",
            lambda: self._store.append_prediction(idea.id, developer.user_id, prediction),
        )
        return prediction

    async def predict_or_reuse(
        self, idea_id: str, developer_id: str, *, force_refresh: bool = False
    ) -> Tuple[SuccessPrediction, bool, datetime]:
        """Newest stored prediction for the pair if it is inside the reuse window, else a fresh one.

        Returns ``(prediction, cached, generated_at)``.
        """
        if not force_refresh:
            recent = await self._recent_prediction(idea_id, developer_id)
            if recent is not None:
                return recent.prediction, True, recent.created_at
        prediction = await self.predict(idea_id, developer_id)
        return prediction, False, utcnow()

    async def history(
        self, developer_id: str, idea_id: Optional[str] = None, limit: int = 10
    ) -> List[StoredPrediction]:
        return await bounded_read(
            self._store.get_predictions(developer_id, idea_id, limit),
            self._store_timeout,
            "prediction history read",
        )

    async def add_feedback(
        self, prediction_id: str, feedback: Optional[str], actual_outcome: Optional[float]
    ) -> str:
        """Attach outcome feedback to a stored prediction; the prediction itself is never changed."""
        return await bounded_read(
            self._store.append_prediction_feedback(prediction_id, feedback, actual_outcome),
            self._store_timeout,
            "prediction feedback write",
        )

    # ------------------------------------------------------------------ #
    #  Internals                                                           #
    # ------------------------------------------------------------------ #

    async def _load_idea(self, idea_id: str) -> IdeaMetrics:
        idea = await bounded_read(self._store.get_idea(idea_id), self._store_timeout, "idea read")
        if idea is None:
            raise NotFoundError("Idea", idea_id)
        return idea

    async def _load_developer(self, developer_id: str) -> DeveloperProfile:
        developer = await bounded_read(
            self._store.get_developer_profile(developer_id), self._store_timeout, "developer read"
        )
        if developer is None:
            raise NotFoundError("Developer", developer_id)
        return developer

    async def _market_signals(self, idea: IdeaMetrics) -> List[MarketSignal]:
        try:
            outcome = await self._extractor.analyze(idea.description, idea.title)
            keywords = outcome.features.keywords[:MARKET_KEYWORD_COUNT]
            if not keywords:
                return []
            return await bounded_read(
                self._store.get_market_signals(keywords, MARKET_SIGNAL_LIMIT),
                self._store_timeout,
                "market signal read",
            )
        except Exception as exc:
            logger.warning("Market signals unavailable for idea %s: %s", idea.id, exc)
            return []

    async def _recent_prediction(self, idea_id: str, developer_id: str) -> Optional[StoredPrediction]:
        try:
            stored = await self.history(developer_id, idea_id, limit=1)
        except Exception as exc:
            logger.warning("Prediction reuse lookup failed: %s", exc)
            return None
        if stored and utcnow() - stored[0].created_at < self._reuse_window:
            return stored[0]
        return None

    @staticmethod
    def _guarded(name: str, compute: Callable[[], float], default: float) -> float:
        try:
            return compute()
        except Exception:
            logger.warning("Sub-score %s failed, using neutral %.0f", name, default, exc_info=True)
            return default
