"""Text analysis routes.

Thin layer over ``TextFeatureExtractor``; the analytics aggregation is a
pure function over cached analyses.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from datetime import datetime, timezone
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import ScoringServices, get_extractor, get_services
from ..models.idea import utcnow
from ..schemas.text_features_schema import (
    AnalyzeRequest,
    CachedAnalysis,
    CacheEvictionResponse,
    Fallback,
    KeywordCount,
    SentimentDistribution,
    TextAnalysisResponse,
    TextAnalyticsResponse,
)
from ..services.store import bounded_read
from ..services.text_features import TextFeatureExtractor
from ..timing import request_timer

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/analyze",
    tags=["Analysis"],
)

SENTIMENT_BAND = 0.1
TOP_KEYWORDS = 10


def summarize_analyses(analyses: List[CachedAnalysis]) -> TextAnalyticsResponse:
    """Language, category, sentiment and keyword breakdown.  No I/O."""
    if not analyses:
        return TextAnalyticsResponse(total_analyses=0)

    languages: Counter[str] = Counter()
    categories: Counter[str] = Counter()
    keywords: Counter[str] = Counter()
    sentiment = SentimentDistribution()

    for analysis in analyses:
        features = analysis.features
        languages[features.language] += 1
        categories.update(features.categories)
        keywords.update(features.keywords)
        if features.sentiment > SENTIMENT_BAND:
            sentiment.positive += 1
        elif features.sentiment < -SENTIMENT_BAND:
            sentiment.negative += 1
        else:
            sentiment.neutral += 1

    average = sum(a.features.sentiment for a in analyses) / len(analyses)
    return TextAnalyticsResponse(
        total_analyses=len(analyses),
        language_breakdown=dict(languages),
        category_breakdown=dict(categories),
        sentiment_distribution=sentiment,
        top_keywords=[KeywordCount(keyword=k, count=c) for k, c in keywords.most_common(TOP_KEYWORDS)],
        average_sentiment=round(average, 4),
    )


@router.post(
    "",
    response_model=TextAnalysisResponse,
    summary="Analyze Idea Text",
    response_description="Extracted text features, outcome tag and taxonomy placement",
)
async def analyze_text(
    payload: AnalyzeRequest,
    extractor: TextFeatureExtractor = Depends(get_extractor),
) -> TextAnalysisResponse:
    """Extract features from an idea's title and description."""
    async with request_timer("analyze"):
        run, classification = await asyncio.gather(
            extractor.analyze_detailed(payload.text, payload.title, force_refresh=payload.force_refresh),
            extractor.classify_idea(f"{payload.title or ''} {payload.text}".strip()),
        )

    outcome = run.outcome
    return TextAnalysisResponse(
        features=outcome.features,
        outcome="fallback" if outcome.is_fallback else "ok",
        fallback_reason=outcome.reason if isinstance(outcome, Fallback) else None,
        content_hash=run.content_hash,
        cached=run.cached,
        classification=classification,
        analyzed_at=utcnow(),
    )


@router.get(
    "/analytics",
    response_model=TextAnalyticsResponse,
    summary="Text Analysis Analytics",
    response_description="Aggregates over the most recent cached analyses",
)
async def analysis_analytics(
    limit: int = Query(default=100, ge=1, le=1000),
    language: Optional[Literal["ko", "en"]] = Query(default=None),
    services: ScoringServices = Depends(get_services),
) -> TextAnalyticsResponse:
    analyses = await bounded_read(
        services.store.list_text_features(limit, language),
        services.store_timeout,
        "text feature cache listing",
    )
    return summarize_analyses(analyses)


@router.delete(
    "/cache",
    response_model=CacheEvictionResponse,
    summary="Evict Cached Analyses",
)
async def evict_cache(
    content_hash: Optional[str] = Query(default=None, min_length=64, max_length=64),
    older_than: Optional[datetime] = Query(default=None),
    services: ScoringServices = Depends(get_services),
) -> CacheEvictionResponse:
    """Delete one cached analysis by hash, or every analysis older than a timestamp."""
    if content_hash is None and older_than is None:
        raise HTTPException(
            status_code=422,
            detail="Provide content_hash or older_than",
        )
    if older_than is not None and older_than.tzinfo is not None:
        # Stored timestamps are naive UTC.
        older_than = older_than.astimezone(timezone.utc).replace(tzinfo=None)
    deleted = await bounded_read(
        services.store.delete_text_features(content_hash, older_than),
        services.store_timeout,
        "text feature cache eviction",
    )
    logger.info("Evicted %d cached analyses", deleted)
    return CacheEvictionResponse(deleted=deleted)
