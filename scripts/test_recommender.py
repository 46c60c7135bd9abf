"""Tests for the RecommendationEngine pipeline (pure, no service or locks)."""

import pytest

from gotocard import RecommenderConfig
from gotocard.logic.catalog import BenefitCatalog, BenefitRule, CardInfo, CategoryInfo
from gotocard.logic.recommender import (
    STATUS_NO_CANDIDATES,
    STATUS_NO_ELIGIBLE_CARDS,
    STATUS_OK,
    RecommendationEngine,
)
from gotocard.logic.spending import SpendingRecord, aggregate_spending
from gotocard.models import RateType

DINING = CategoryInfo(id=1, name="Dining")
TRAVEL = CategoryInfo(id=2, name="Travel")
PETROL = CategoryInfo(id=3, name="Petrol")


@pytest.fixture
def engine(config):
    return RecommendationEngine(config)


def profile_of(*amounts, category_id=DINING.id):
    return aggregate_spending(SpendingRecord(category_id, a, 5, 2024) for a in amounts)


def premium_only_catalog() -> BenefitCatalog:
    return BenefitCatalog.build(
        [CardInfo(id=1, name="Premium", bank="Citi", annual_fee=588.0, min_income=120000.0)],
        [BenefitRule(card_id=1, category=DINING, miles_rate=2.0)],
    )


# --- Against the seeded store ---


def test_dining_ranking_from_store(engine, store, dining_setup):
    catalog = store.load_catalog()
    profile = aggregate_spending(store.list_spending(dining_setup["user_id"]))

    outcome = engine.rank(catalog, profile, income=60000.0)

    assert outcome.status == STATUS_OK
    assert outcome.used_defaults is False
    assert outcome.excluded_card_ids == [dining_setup["premium"]]

    first, second = outcome.recommendations
    assert first.card.id == dining_setup["cashback"]
    assert first.estimated_reward == 15.0
    assert first.score == 100
    assert second.card.id == dining_setup["points"]
    assert second.estimated_reward == 20.0
    assert second.reward_type == RateType.POINTS
    assert second.score == 73


def test_no_recommendation_violates_income_gate(engine, store, dining_setup):
    catalog = store.load_catalog()
    profile = aggregate_spending(store.list_spending(dining_setup["user_id"]))

    for income in (None, 0.0, 60000.0, 119999.99, 120000.0, 500000.0):
        outcome = engine.rank(catalog, profile, income=income)
        for rec in outcome.recommendations:
            assert income is None or income >= rec.card.min_income


def test_unknown_income_is_not_gated(engine, store, dining_setup):
    catalog = store.load_catalog()
    profile = aggregate_spending(store.list_spending(dining_setup["user_id"]))

    outcome = engine.rank(catalog, profile, income=None)

    assert dining_setup["premium"] in [r.card.id for r in outcome.recommendations]
    assert outcome.excluded_card_ids == []


# --- Edge cases ---


def test_zero_spend_uses_default_assumptions(engine, store, dining_setup):
    user_id = store.add_user("New", "new@example.com")
    store.add_spending(user_id, dining_setup["dining"], 0.0, 6, 2024)
    profile = aggregate_spending(store.list_spending(user_id))

    outcome = engine.rank(store.load_catalog(), profile, income=None)

    assert outcome.used_defaults is True
    assert outcome.status == STATUS_OK
    assert outcome.recommendations[0].card.id == dining_setup["cashback"]
    assert all("default assumptions" in r.reason for r in outcome.recommendations)
    # Every catalog pair is valued, including categories with no spend
    assert {r.category.id for r in outcome.recommendations} == {
        dining_setup["dining"],
        dining_setup["groceries"],
    }


def test_zero_spend_keeps_min_spend_card_in_fallback(engine, store, dining_setup):
    gated = store.add_card(
        "Live Fresh",
        "DBS",
        benefits=[{"category_id": dining_setup["dining"], "cashback_rate": 5.0, "min_spend": 800}],
    )
    user_id = store.add_user("New", "new@example.com")
    store.add_spending(user_id, dining_setup["dining"], 0.0, 6, 2024)
    profile = aggregate_spending(store.list_spending(user_id))

    outcome = engine.rank(store.load_catalog(), profile, income=None)

    rec = next(r for r in outcome.recommendations if r.card.id == gated)
    assert rec.estimated_reward == 0.0
    assert "default assumptions" in rec.reason
    assert "Spend $800.00 more to qualify" in rec.reason


def test_fallback_prefers_higher_advertised_rate_on_ties(engine, store, dining_setup):
    outcome = engine.rank(store.load_catalog(), aggregate_spending([]), income=60000.0)

    points = [r for r in outcome.recommendations if r.card.id == dining_setup["points"]]
    assert [r.category.id for r in points] == [
        dining_setup["dining"],
        dining_setup["groceries"],
    ]


def test_split_and_single_records_rank_identically(engine):
    catalog = BenefitCatalog.build(
        [
            CardInfo(id=1, name="Cashback", bank="DBS"),
            CardInfo(id=2, name="Points", bank="HSBC", annual_fee=120.0),
        ],
        [
            BenefitRule(card_id=1, category=DINING, cashback_rate=5.0, cap=300),
            BenefitRule(card_id=2, category=DINING, points_rate=4.0),
        ],
    )

    split = engine.rank(catalog, profile_of(300.0, 200.0))
    single = engine.rank(catalog, profile_of(500.0))

    assert split.to_dict()["recommendations"] == single.to_dict()["recommendations"]
    assert split.to_dict()["spending"]["total_spend"] == 500.0
    assert split.to_dict()["spending"]["categories"][DINING.id]["transaction_count"] == 2


def test_ranking_is_deterministic(engine, store, dining_setup):
    catalog = store.load_catalog()
    profile = aggregate_spending(store.list_spending(dining_setup["user_id"]))

    runs = [engine.rank(catalog, profile, income=60000.0).to_dict() for _ in range(5)]

    assert all(run == runs[0] for run in runs)


def test_all_candidates_ineligible(engine):
    outcome = engine.rank(premium_only_catalog(), profile_of(250.0), income=50000.0)

    assert outcome.status == STATUS_NO_ELIGIBLE_CARDS
    assert outcome.recommendations == []
    assert outcome.excluded_card_ids == [1]


def test_no_card_covers_spend_categories(engine):
    outcome = engine.rank(
        premium_only_catalog(), profile_of(80.0, category_id=PETROL.id), income=None
    )

    assert outcome.status == STATUS_NO_CANDIDATES
    assert outcome.recommendations == []


def test_results_are_truncated_to_max_results():
    engine = RecommendationEngine(RecommenderConfig(max_results=2))
    catalog = BenefitCatalog.build(
        [CardInfo(id=i, name=f"Card {i}", bank="Bank") for i in range(1, 5)],
        [BenefitRule(card_id=i, category=DINING, cashback_rate=float(i)) for i in range(1, 5)],
    )

    outcome = engine.rank(catalog, profile_of(100.0))

    assert [r.card.id for r in outcome.recommendations] == [4, 3]
    assert [r.rank for r in outcome.recommendations] == [1, 2]


def test_miles_valued_with_configured_mile_value(store, dining_setup):
    engine = RecommendationEngine(RecommenderConfig(mile_value=0.05))
    profile = aggregate_spending(store.list_spending(dining_setup["user_id"]))

    outcome = engine.rank(store.load_catalog(), profile, income=None)

    premium = next(r for r in outcome.recommendations if r.card.id == dining_setup["premium"])
    assert premium.reward_type == RateType.MILES
    assert premium.estimated_reward == pytest.approx(50.0)
