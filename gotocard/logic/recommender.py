"""
Card Recommender - ranks (card, category) pairs for one user.

================================================================================
PIPELINE
================================================================================

    catalog snapshot + spending profile + income
        → enumerate candidate pairs
        → income gate (ineligible pairs are excluded, not scored as zero)
        → RewardEstimator (monthly reward per pair)
        → Scorer (net value → 0-100 score → deterministic order → reason)
        → top-N

CANDIDATES:
-----------
- With spending history: every active card holding a benefit for a category
  the user spends in, valued at that category's monthly total.
- Without spending history (no records, or all zero): every benefit in the
  catalog, valued at a spend of zero. Net values collapse to -fee/12, so the
  cheapest cards lead and the advertised rate breaks ties. Reasons say the
  ranking uses default assumptions.

STATUS:
-------
- "ok"                 → at least one recommendation
- "no_eligible_cards"  → candidates existed but the income gate removed all
- "no_candidates"      → nothing in the catalog matches the user's categories

The engine is a pure function of its inputs: the same catalog, profile and
income always produce the same list, in the same order, with the same text.
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import Any, Dict, List, Optional

from gotocard.config import RecommenderConfig
from gotocard.logic.catalog import BenefitCatalog, BenefitRule, CardInfo
from gotocard.logic.rewards import RewardEstimator
from gotocard.logic.scoring import Candidate, RankedRecommendation, Scorer, is_eligible
from gotocard.logic.spending import SpendingProfile

logger = getLogger(__name__)

STATUS_OK = "ok"
STATUS_NO_ELIGIBLE_CARDS = "no_eligible_cards"
STATUS_NO_CANDIDATES = "no_candidates"


@dataclass
class RankingOutcome:
    recommendations: List[RankedRecommendation] = field(default_factory=list)
    excluded_card_ids: List[int] = field(default_factory=list)
    used_defaults: bool = False
    status: str = STATUS_OK
    # Spending the ranking was computed from
    profile: Optional[SpendingProfile] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "used_defaults": self.used_defaults,
            "excluded_card_ids": self.excluded_card_ids,
            "spending": self.profile.to_dict() if self.profile else None,
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


class RecommendationEngine:
    """
    Combines the estimator and scorer over one immutable snapshot.

    Usage:
        engine = RecommendationEngine(config)
        outcome = engine.rank(catalog, profile, income=user.annual_income)
    """

    def __init__(self, config: RecommenderConfig):
        self.config = config
        self.estimator = RewardEstimator(config.point_value, config.mile_value)
        self.scorer = Scorer(config.negative_band)

    def rank(
        self,
        catalog: BenefitCatalog,
        profile: SpendingProfile,
        income: Optional[float] = None,
    ) -> RankingOutcome:
        fallback = not profile.has_signal
        pairs = self._candidate_pairs(catalog, profile, fallback)

        outcome = RankingOutcome(used_defaults=fallback, profile=profile)
        if not pairs:
            outcome.status = STATUS_NO_CANDIDATES
            return outcome

        candidates = []
        excluded = set()
        for card, benefit in pairs:
            if not is_eligible(card, income):
                excluded.add(card.id)
                continue
            spend = 0.0 if fallback else profile.spend_for(benefit.category_id)
            candidates.append(self._analyze_pair(card, benefit, spend))

        outcome.excluded_card_ids = sorted(excluded)
        if not candidates:
            logger.info(
                f"All {len(excluded)} candidate card(s) excluded by the income gate"
            )
            outcome.status = STATUS_NO_ELIGIBLE_CARDS
            return outcome

        ranked = self.scorer.rank(candidates, fallback=fallback)
        outcome.recommendations = ranked[: self.config.max_results]
        return outcome

    def _candidate_pairs(
        self, catalog: BenefitCatalog, profile: SpendingProfile, fallback: bool
    ) -> List[tuple[CardInfo, BenefitRule]]:
        if fallback:
            return catalog.all_pairs()

        pairs = []
        for category_id in sorted(profile.categories):
            pairs.extend(catalog.for_category(category_id))
        return pairs

    def _analyze_pair(self, card: CardInfo, benefit: BenefitRule, spend: float) -> Candidate:
        """Estimate one pair without touching any store."""
        return Candidate(
            card=card,
            benefit=benefit,
            estimate=self.estimator.estimate(benefit, spend),
            nominal_value=self.estimator.nominal_value(benefit),
        )
