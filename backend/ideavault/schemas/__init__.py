# Schemas package
from .developer_schema import DeveloperProfile
from .idea_schema import IdeaFilter, IdeaMetrics, PurchaseRecord
from .market_schema import MarketSignal
from .prediction_schema import PredictionFactors, SuccessPrediction
from .recommendation_schema import RecommendationScore, UserTasteProfile
from .text_features_schema import (
    ExtractionOutcome,
    Fallback,
    IdeaClassification,
    Ok,
    TextFeatures,
)

__all__ = [
    "DeveloperProfile",
    "ExtractionOutcome",
    "Fallback",
    "IdeaClassification",
    "IdeaFilter",
    "IdeaMetrics",
    "MarketSignal",
    "Ok",
    "PredictionFactors",
    "PurchaseRecord",
    "RecommendationScore",
    "SuccessPrediction",
    "TextFeatures",
    "UserTasteProfile",
]
