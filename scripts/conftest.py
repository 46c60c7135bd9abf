import sys
from pathlib import Path

import pytest

# --- PATH FIXER ---
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.append(str(PROJECT_ROOT))

from gotocard import (  # noqa: E402
    RecommendationService,
    RecommenderConfig,
    SqlStore,
    create_db_and_tables,
    make_engine,
)


@pytest.fixture
def config():
    return RecommenderConfig(database_url="sqlite://", retry_backoff=0.0)


@pytest.fixture
def db_engine():
    engine = make_engine("sqlite://")
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(db_engine):
    return SqlStore(db_engine)


@pytest.fixture
def service(store, config):
    svc = RecommendationService(store, config, sleep=lambda _: None)
    yield svc
    svc.shutdown()


@pytest.fixture
def dining_setup(store):
    """
    Two categories, three cards and one user spending $500 on Dining.

    Card ids: 1 = 5% cashback capped at $300, 2 = 4x points with a fee,
    3 = miles card that needs a high income.
    """
    dining = store.add_category("Dining", "Restaurants", "🍽️")
    groceries = store.add_category("Groceries", "Supermarkets", "🛒")

    cashback = store.add_card(
        "Dining Cashback",
        "DBS",
        benefits=[{"category_id": dining, "cashback_rate": 5.0, "cap": 300}],
    )
    points = store.add_card(
        "Points Plus",
        "HSBC",
        annual_fee=120.0,
        benefits=[
            {"category_id": dining, "points_rate": 4.0},
            {"category_id": groceries, "points_rate": 2.0},
        ],
    )
    premium = store.add_card(
        "Premium Miles",
        "Citi",
        annual_fee=588.0,
        min_income=120000.0,
        benefits=[{"category_id": dining, "miles_rate": 2.0}],
    )

    user_id = store.add_user("Alex", "alex@example.com", annual_income=60000.0)
    store.add_spending(user_id, dining, 200.0, 5, 2024)
    store.add_spending(user_id, dining, 300.0, 5, 2024)

    return {
        "user_id": user_id,
        "dining": dining,
        "groceries": groceries,
        "cashback": cashback,
        "points": points,
        "premium": premium,
    }
