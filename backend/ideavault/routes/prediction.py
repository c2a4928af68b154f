"""Success prediction routes.

The route is thin; all scoring lives in ``PredictionEngine``.
``NotFoundError`` / ``ExternalServiceError`` are mapped to 404 / 503 by
the app-level handlers in ``main``.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..dependencies import get_prediction_engine
from ..schemas.prediction_schema import (
    PredictionFeedbackRequest,
    PredictionFeedbackResponse,
    PredictionHistoryResponse,
    PredictionRequest,
    PredictionResponse,
)
from ..services.prediction_engine import PredictionEngine
from ..timing import request_timer

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/predict",
    tags=["Prediction"],
)


@router.post(
    "",
    response_model=PredictionResponse,
    summary="Predict Idea Success",
    response_description="Success prediction for the idea/developer pair",
)
async def predict_success(
    payload: PredictionRequest,
    engine: PredictionEngine = Depends(get_prediction_engine),
) -> PredictionResponse:
    """Score an idea for a developer, reusing a recent prediction unless ``force_refresh`` is set."""
    async with request_timer("predict"):
        prediction, cached, generated_at = await engine.predict_or_reuse(
            payload.idea_id,
            payload.developer_id,
            force_refresh=payload.force_refresh,
        )
    return PredictionResponse(prediction=prediction, cached=cached, generated_at=generated_at)


@router.get(
    "/history",
    response_model=PredictionHistoryResponse,
    summary="Prediction History",
)
async def prediction_history(
    developer_id: str = Query(..., min_length=1),
    idea_id: Optional[str] = Query(default=None),
    limit: int = Query(default=10, ge=1, le=50),
    engine: PredictionEngine = Depends(get_prediction_engine),
) -> PredictionHistoryResponse:
    predictions = await engine.history(developer_id, idea_id, limit)
    return PredictionHistoryResponse(predictions=predictions, total=len(predictions))


@router.post(
    "/{prediction_id}/feedback",
    response_model=PredictionFeedbackResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record Prediction Outcome",
)
async def prediction_feedback(
    prediction_id: str,
    payload: PredictionFeedbackRequest,
    engine: PredictionEngine = Depends(get_prediction_engine),
) -> PredictionFeedbackResponse:
    feedback_id = await engine.add_feedback(prediction_id, payload.feedback, payload.actual_outcome)
    logger.info("Feedback %s recorded for prediction %s", feedback_id, prediction_id)
    return PredictionFeedbackResponse(
        id=feedback_id,
        prediction_id=prediction_id,
        message="Feedback recorded",
    )
