from .config import RecommenderConfig, load_config
from .db import create_db_and_tables, engine, make_engine
from .errors import (
    InvalidInputError,
    NotFoundError,
    RecommendationError,
    TransientIOError,
    UserNotFoundError,
)
from .logic.recommender import RankingOutcome, RecommendationEngine
from .logic.scoring import RankedRecommendation
from .models import (
    RATE_PREFERENCE,
    CardBenefit,
    CardType,
    Category,
    CreditCard,
    RateType,
    Recommendation,
    User,
    UserSpending,
)
from .service import RecommendationService
from .store import SqlStore

__all__ = [
    "RecommenderConfig",
    "load_config",
    "create_db_and_tables",
    "engine",
    "make_engine",
    "InvalidInputError",
    "NotFoundError",
    "RecommendationError",
    "TransientIOError",
    "UserNotFoundError",
    "RankingOutcome",
    "RecommendationEngine",
    "RankedRecommendation",
    "RATE_PREFERENCE",
    "CardBenefit",
    "CardType",
    "Category",
    "CreditCard",
    "RateType",
    "Recommendation",
    "User",
    "UserSpending",
    "RecommendationService",
    "SqlStore",
]
