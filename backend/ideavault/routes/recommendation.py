from fastapi import APIRouter, Depends, status

from ..dependencies import get_recommendation_engine
from ..schemas.recommendation_schema import ClickEventRequest, RecommendRequest, RecommendResponse
from ..services.recommendation_engine import RecommendationEngine
from ..timing import request_timer

router = APIRouter(
    prefix="/recommend",
    tags=["Recommendation"],
)


@router.post(
    "",
    response_model=RecommendResponse,
    summary="Recommend Ideas",
    response_description="Ranked ideas with the reasons they were picked",
)
async def recommend_ideas(
    payload: RecommendRequest,
    engine: RecommendationEngine = Depends(get_recommendation_engine),
) -> RecommendResponse:
    async with request_timer("recommend"):
        recommendations = await engine.recommend(payload.user_id, payload.limit, payload.exclude_ids)
    return RecommendResponse(recommendations=recommendations)


@router.post(
    "/click",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Track Recommendation Click",
)
async def track_click(
    payload: ClickEventRequest,
    engine: RecommendationEngine = Depends(get_recommendation_engine),
) -> dict:
    """Queue a click event; the write happens in the background."""
    engine.track_click(payload.user_id, payload.idea_id, payload.position)
    return {"status": "accepted"}
