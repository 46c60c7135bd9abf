"""
Scorer & Ranker - turns reward estimates into comparable 0-100 scores.

Scores depend only on dollarized net monthly value (reward minus amortized
annual fee), so cashback, points and miles cards compare on one scale.

Scale:
    net >= 0  ->  [negative_band, 100], linear against the best net value
    net <  0  ->  [0, negative_band), linear against the worst net value

Ordering (fully deterministic):
    score desc -> annual fee asc -> estimated reward desc
    -> (fallback only) advertised rate desc -> card id asc -> category id asc
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from gotocard.logic.catalog import BenefitRule, CardInfo, CategoryInfo
from gotocard.logic.rewards import RewardEstimate
from gotocard.models import RateType


@dataclass
class Candidate:
    """One eligible (card, category) pair with its reward estimate."""

    card: CardInfo
    benefit: BenefitRule
    estimate: RewardEstimate
    nominal_value: float = 0.0

    @property
    def category(self) -> CategoryInfo:
        return self.benefit.category

    @property
    def monthly_fee(self) -> float:
        return self.card.annual_fee / 12

    @property
    def net_value(self) -> float:
        return self.estimate.amount - self.monthly_fee


@dataclass(frozen=True)
class RankedRecommendation:
    """A ranked, explained recommendation as returned to callers."""

    rank: int
    card: CardInfo
    category: CategoryInfo
    score: int
    estimated_reward: float
    reward_type: Optional[RateType]
    reason: str

    def to_dict(self) -> dict:
        return {
            "rank": self.rank,
            "card": self.card.to_dict(),
            "category": self.category.to_dict(),
            "score": self.score,
            "estimated_reward": self.estimated_reward,
            "reward_type": self.reward_type.value if self.reward_type else None,
            "reason": self.reason,
        }


def is_eligible(card: CardInfo, income: Optional[float]) -> bool:
    """Income gate. Unknown income never excludes a card."""
    if income is None:
        return True
    return income >= card.min_income


def describe_rate(rate_type: Optional[RateType], rate: float) -> str:
    if rate_type == RateType.CASHBACK:
        return f"{rate:.2f}% cashback"
    if rate_type == RateType.MILES:
        return f"{rate:.1f}x miles"
    if rate_type == RateType.POINTS:
        return f"{rate:.1f}x points"
    return "no listed reward rate"


def format_money(value: float) -> str:
    if value < 0:
        return f"-${-value:,.2f}"
    return f"${value:,.2f}"


class Scorer:
    def __init__(self, negative_band: int = 20):
        self.negative_band = negative_band

    def normalize(self, candidates: list[Candidate]) -> list[int]:
        """Map each candidate's net value onto 0-100."""
        nets = [c.net_value for c in candidates]
        ceiling = max((n for n in nets if n > 0), default=0.0)
        floor = min((n for n in nets if n < 0), default=0.0)
        band = self.negative_band

        scores = []
        for net in nets:
            if net >= 0:
                raw = band + (100 - band) * net / ceiling if ceiling > 0 else band
                score = int(raw + 0.5)
            else:
                raw = band * (1 - net / floor)
                score = min(int(raw + 0.5), max(band - 1, 0))
            scores.append(max(0, min(100, score)))
        return scores

    def sort_key(self, candidate: Candidate, score: int, fallback: bool) -> tuple:
        key = [-score, candidate.card.annual_fee, -round(candidate.estimate.amount, 2)]
        if fallback:
            key.append(-candidate.nominal_value)
        key.extend([candidate.card.id, candidate.category.id])
        return tuple(key)

    def reason(self, candidate: Candidate, fallback: bool) -> str:
        estimate = candidate.estimate
        category_name = candidate.category.name
        rate_text = describe_rate(estimate.rate_type, estimate.rate)
        fee = candidate.card.annual_fee
        parts = []

        if fallback:
            parts.append(
                "Based on default assumptions (no spending history yet): "
                f"earns {rate_text} on {category_name}."
            )
        elif estimate.rate_type is None:
            parts.append(f"This card lists no reward rate for {category_name}.")
        else:
            sentence = (
                f"Earn {rate_text} on {category_name}. "
                f"Estimated monthly reward: ${estimate.amount:,.2f}"
            )
            if estimate.cap_binding:
                sentence += (
                    f" (capped: only the first ${candidate.benefit.cap:,.2f} "
                    "of monthly spend is rewarded)"
                )
            parts.append(sentence + ".")

        if not estimate.qualifying:
            parts.append(
                f"Spend ${estimate.shortfall:,.2f} more to qualify "
                f"(minimum ${candidate.benefit.min_spend:,.2f} per month)."
            )

        if fee > 0:
            parts.append(
                f"Annual fee: ${fee:,.0f}; net monthly value: {format_money(candidate.net_value)}."
            )
        else:
            parts.append("No annual fee.")

        return " ".join(parts)

    def rank(self, candidates: list[Candidate], fallback: bool = False) -> list[RankedRecommendation]:
        scores = self.normalize(candidates)
        ordered = sorted(
            zip(candidates, scores),
            key=lambda pair: self.sort_key(pair[0], pair[1], fallback),
        )
        return [
            RankedRecommendation(
                rank=position,
                card=candidate.card,
                category=candidate.category,
                score=score,
                estimated_reward=round(candidate.estimate.amount, 2),
                reward_type=candidate.estimate.rate_type,
                reason=self.reason(candidate, fallback),
            )
            for position, (candidate, score) in enumerate(ordered, start=1)
        ]
