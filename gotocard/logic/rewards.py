from dataclasses import dataclass, field
from typing import Dict, Optional

from gotocard.logic.catalog import BenefitRule
from gotocard.models import RATE_PREFERENCE, RateType


@dataclass
class RewardEstimate:
    """Standardized output for the reward estimator (one month, one category)."""

    amount: float = 0.0
    rate_type: Optional[RateType] = None
    rate: float = 0.0
    rewarded_spend: float = 0.0
    cap_binding: bool = False
    qualifying: bool = True
    shortfall: float = 0.0  # How much more spend is needed to reach min_spend
    values_by_type: Dict[RateType, float] = field(default_factory=dict)


class RewardEstimator:
    """
    Estimates the monthly monetary reward of one benefit for a spend amount.

    Flow: Min-spend gate → Cap clamp → Value every rate → Pick primary rate

    The annual fee is not applied here: amortizing it depends on how the card
    is used across all categories, which is the scorer's concern.
    """

    def __init__(self, point_value: float, mile_value: float):
        self.point_value = point_value
        self.mile_value = mile_value

    def rates(self, benefit: BenefitRule) -> Dict[RateType, float]:
        return {
            RateType.CASHBACK: benefit.cashback_rate,
            RateType.MILES: benefit.miles_rate,
            RateType.POINTS: benefit.points_rate,
        }

    def primary_rate(self, benefit: BenefitRule) -> tuple[Optional[RateType], float]:
        """First nonzero rate in RATE_PREFERENCE order."""
        rates = self.rates(benefit)
        for rate_type in RATE_PREFERENCE:
            if rates[rate_type] > 0:
                return rate_type, rates[rate_type]
        return None, 0.0

    def value_per_dollar(self, rate_type: RateType, rate: float) -> float:
        """Dollars returned per dollar of rewarded spend."""
        if rate_type == RateType.CASHBACK:
            return rate / 100
        if rate_type == RateType.POINTS:
            return rate * self.point_value
        return rate * self.mile_value

    def value_of(self, rate_type: RateType, rate: float, spend: float) -> float:
        if rate_type == RateType.CASHBACK:
            return spend * rate / 100
        return spend * self.value_per_dollar(rate_type, rate)

    def nominal_value(self, benefit: BenefitRule) -> float:
        """Advertised value of the primary rate, independent of spend."""
        rate_type, rate = self.primary_rate(benefit)
        if rate_type is None:
            return 0.0
        return self.value_per_dollar(rate_type, rate)

    def estimate(self, benefit: BenefitRule, spend: float) -> RewardEstimate:
        rate_type, rate = self.primary_rate(benefit)
        result = RewardEstimate(rate_type=rate_type, rate=rate)

        # GATE 1: Minimum spend
        if spend < benefit.min_spend:
            result.qualifying = False
            result.shortfall = benefit.min_spend - spend
            return result

        # GATE 2: Cap is a ceiling on rewarded spend, not on the reward itself
        rewarded_spend = max(spend, 0.0)
        if benefit.cap > 0 and rewarded_spend > benefit.cap:
            rewarded_spend = benefit.cap
            result.cap_binding = True
        result.rewarded_spend = rewarded_spend

        # GATE 3: Value each nonzero rate on its own
        for kind, kind_rate in self.rates(benefit).items():
            if kind_rate > 0:
                result.values_by_type[kind] = self.value_of(kind, kind_rate, rewarded_spend)

        if rate_type is not None:
            result.amount = result.values_by_type[rate_type]

        return result
