"""Service wiring.

``build_services`` constructs every scoring component once; the app
lifespan stores the result on ``app.state.services`` and routes pull the
pieces they need through ``Depends``.  Tests swap the whole bundle with
``app.dependency_overrides[get_services]``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .config import get_completion_timeout, get_prediction_reuse_hours, get_store_timeout
from .database import SessionLocal
from .services.background import BackgroundDispatcher
from .services.completion_client import CompletionClient, OpenAICompletionClient
from .services.prediction_engine import PredictionEngine
from .services.recommendation_engine import RecommendationEngine
from .services.store import ScoringStore, SqlScoringStore
from .services.text_features import TextFeatureExtractor


@dataclass
class ScoringServices:
    store: ScoringStore
    completion: CompletionClient
    dispatcher: BackgroundDispatcher
    extractor: TextFeatureExtractor
    predictor: PredictionEngine
    recommender: RecommendationEngine
    store_timeout: float


def build_services(
    session_factory: Callable[[], Session] = SessionLocal,
    completion: Optional[CompletionClient] = None,
    store: Optional[ScoringStore] = None,
) -> ScoringServices:
    store = store if store is not None else SqlScoringStore(session_factory)
    completion = completion if completion is not None else OpenAICompletionClient()
    dispatcher = BackgroundDispatcher()
    store_timeout = get_store_timeout()

    extractor = TextFeatureExtractor(
        completion,
        store,
        dispatcher,
        completion_timeout=get_completion_timeout(),
        store_timeout=store_timeout,
    )
    return ScoringServices(
        store=store,
        completion=completion,
        dispatcher=dispatcher,
        extractor=extractor,
        predictor=PredictionEngine(
            store,
            extractor,
            dispatcher,
            store_timeout=store_timeout,
            reuse_hours=get_prediction_reuse_hours(),
        ),
        recommender=RecommendationEngine(store, dispatcher, store_timeout=store_timeout),
        store_timeout=store_timeout,
    )


def get_services(request: Request) -> ScoringServices:
    return request.app.state.services


def get_extractor(services: ScoringServices = Depends(get_services)) -> TextFeatureExtractor:
    return services.extractor


def get_prediction_engine(services: ScoringServices = Depends(get_services)) -> PredictionEngine:
    return services.predictor


def get_recommendation_engine(services: ScoringServices = Depends(get_services)) -> RecommendationEngine:
    return services.recommender
