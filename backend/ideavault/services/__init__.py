from .background import BackgroundDispatcher
from .completion_client import CompletionClient, OpenAICompletionClient
from .prediction_engine import PredictionEngine
from .recommendation_engine import RecommendationEngine
from .store import ScoringStore, SqlScoringStore
from .text_features import TextFeatureExtractor

__all__ = [
    "BackgroundDispatcher",
    "CompletionClient",
    "OpenAICompletionClient",
    "PredictionEngine",
    "RecommendationEngine",
    "ScoringStore",
    "SqlScoringStore",
    "TextFeatureExtractor",
]
