import json
import logging
import traceback
from logging import getLogger

from mcp.server.fastmcp import FastMCP

from gotocard import (
    RecommendationService,
    SqlStore,
    create_db_and_tables,
    engine,
    load_config,
)
from gotocard.errors import RecommendationError
from gotocard.logic.rewards import RewardEstimator
from gotocard.logic.scoring import describe_rate
from gotocard.logic.spending import validate_amount

config = load_config()
logger = getLogger(__name__)

store = SqlStore(engine)
service = RecommendationService(store, config)

mcp = FastMCP("gotocard-recommender")


# ======================= RESOURCES =======================
# Resources expose static/dynamic data for LLM clients
# =========================================================


@mcp.resource("gotocard://categories")
def list_categories() -> str:
    """
    Returns every spending category cards can reward.

    Use this resource to map a user's words ("restaurants", "food") onto a
    category id before calling the recommendation tools.
    """
    return json.dumps([c.to_dict() for c in store.list_categories()], indent=2)


# ========================= TOOLS =========================
# Tools allow LLM clients to perform actions
# =========================================================


@mcp.tool()
def generate_recommendations(user_id: int) -> dict:
    """
    Recomputes the ranked card recommendations for a user from their
    recorded spending and stores them, replacing any previous list.

    HOW TO PRESENT:
    - Lead with the rank 1 card, its score (0-100) and estimated monthly reward.
    - Quote the `reason` text; it already mentions caps and minimum spend gaps.
    - If `used_defaults` is true, tell the user the ranking is based on default
      assumptions because no spending has been recorded yet.
    - If status is "no_eligible_cards", every card needs a higher income than
      the user's; say so rather than recommending anything.

    Args:
        user_id (int): The user's ID.

    Returns:
        dict: status, used_defaults and the ranked recommendations.
    """
    try:
        outcome = service.generate_outcome(user_id)
        return outcome.to_dict()
    except RecommendationError as e:
        logger.warning(f"Could not generate recommendations for {user_id}: {e}")
        return e.to_dict()
    except Exception as e:
        logger.error(f"Error generating recommendations: {str(e)}")
        logger.error(traceback.format_exc())
        return {"status": "error", "message": str(e)}


@mcp.tool()
def get_recommendations(user_id: int, category_id: int | None = None) -> dict:
    """
    Returns the most recently generated recommendations for a user without
    recomputing them. An empty list means generate_recommendations has not
    been called yet.

    Args:
        user_id (int): The user's ID.
        category_id (int): Optional. Only return recommendations for this category.

    Returns:
        dict: A list of ranked recommendations.
    """
    try:
        if category_id is None:
            recs = service.get(user_id)
        else:
            recs = service.get_by_category(user_id, category_id)
        return {
            "status": "success",
            "count": len(recs),
            "recommendations": [r.to_dict() for r in recs],
        }
    except RecommendationError as e:
        return e.to_dict()
    except Exception as e:
        logger.error(f"Error fetching recommendations: {str(e)}")
        logger.error(traceback.format_exc())
        return {"status": "error", "message": str(e)}


@mcp.tool()
def estimate_card_reward(card_id: int, category_id: int, monthly_spend: float) -> dict:
    """
    Estimates what one card would return in one category for a given monthly
    spend, before the annual fee. Useful for "what if I spent $X on dining?"
    questions.

    Args:
        card_id (int): The card's ID.
        category_id (int): The category's ID.
        monthly_spend (float): Spend in that category per month.

    Returns:
        dict: Estimated reward, rate used, and whether the cap or minimum spend applies.
    """
    try:
        monthly_spend = validate_amount(monthly_spend)
        catalog = store.load_catalog()
        card = catalog.card(card_id)
        if card is None:
            return {"status": "error", "message": f"Card {card_id} not found or inactive"}

        benefit = next(
            (b for b in catalog.for_card(card_id) if b.category_id == category_id), None
        )
        if benefit is None:
            return {
                "status": "success",
                "card": card.to_dict(),
                "estimated_reward": 0.0,
                "message": "This card has no targeted reward for that category.",
            }

        estimator = RewardEstimator(config.point_value, config.mile_value)
        estimate = estimator.estimate(benefit, monthly_spend)
        return {
            "status": "success",
            "card": card.to_dict(),
            "category": benefit.category.to_dict(),
            "estimated_reward": round(estimate.amount, 2),
            "rate": describe_rate(estimate.rate_type, estimate.rate),
            "rewarded_spend": round(estimate.rewarded_spend, 2),
            "cap_binding": estimate.cap_binding,
            "qualifying": estimate.qualifying,
            "shortfall": round(estimate.shortfall, 2),
            "monthly_fee": round(card.annual_fee / 12, 2),
        }
    except RecommendationError as e:
        logger.warning(f"Rejected reward estimate for card {card_id}: {e}")
        return e.to_dict()
    except Exception as e:
        logger.error(f"Error estimating reward: {e}")
        return {"status": "error", "message": str(e)}


if __name__ == "__main__":
    logging.basicConfig(level=config.log_level)
    create_db_and_tables()
    mcp.run()
