from .idea import Idea
from .market import MarketAnalytics
from .prediction import PredictionFeedback, SuccessPredictionRecord
from .recommendation import RecommendationClick
from .text_feature_cache import TextFeatureCache
from .transaction import Transaction
from .user import DeveloperAnalytics, User

__all__ = [
    "DeveloperAnalytics",
    "Idea",
    "MarketAnalytics",
    "PredictionFeedback",
    "RecommendationClick",
    "SuccessPredictionRecord",
    "TextFeatureCache",
    "Transaction",
    "User",
]
