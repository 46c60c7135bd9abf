"""
Benefit Catalog - read-only snapshot of (card, category) -> reward rule.

The snapshot is built once per generate() call from the store and never
mutated afterwards, so the scoring pipeline can run without touching the
database.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from gotocard.models import CardBenefit, Category, CreditCard


@dataclass(frozen=True)
class CategoryInfo:
    id: int
    name: str
    description: str = ""
    icon: str = ""

    @classmethod
    def from_model(cls, category: Category) -> "CategoryInfo":
        return cls(
            id=category.id,
            name=category.name,
            description=category.description,
            icon=category.icon,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
        }


@dataclass(frozen=True)
class CardInfo:
    id: int
    name: str
    bank: str
    card_type: str = "other"
    annual_fee: float = 0.0
    min_income: float = 0.0
    welcome_bonus: Optional[str] = None
    image_url: Optional[str] = None
    is_active: bool = True

    @classmethod
    def from_model(cls, card: CreditCard) -> "CardInfo":
        card_type = card.card_type
        return cls(
            id=card.id,
            name=card.name,
            bank=card.bank,
            card_type=getattr(card_type, "value", card_type),
            annual_fee=float(card.annual_fee or 0.0),
            min_income=float(card.min_income or 0.0),
            welcome_bonus=card.welcome_bonus,
            image_url=card.image_url,
            is_active=card.is_active,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "bank": self.bank,
            "card_type": self.card_type,
            "annual_fee": self.annual_fee,
            "min_income": self.min_income,
            "welcome_bonus": self.welcome_bonus,
            "image_url": self.image_url,
        }


@dataclass(frozen=True)
class BenefitRule:
    card_id: int
    category: CategoryInfo
    cashback_rate: float = 0.0
    points_rate: float = 0.0
    miles_rate: float = 0.0
    cap: float = 0.0
    min_spend: float = 0.0
    description: str = ""

    @property
    def category_id(self) -> int:
        return self.category.id

    @classmethod
    def from_model(cls, benefit: CardBenefit, category: CategoryInfo) -> "BenefitRule":
        return cls(
            card_id=benefit.card_id,
            category=category,
            cashback_rate=float(benefit.cashback_rate or 0.0),
            points_rate=float(benefit.points_rate or 0.0),
            miles_rate=float(benefit.miles_rate or 0.0),
            cap=float(benefit.cap or 0.0),
            min_spend=float(benefit.min_spend or 0.0),
            description=benefit.description,
        )


@dataclass
class BenefitCatalog:
    """
    Lookup over active cards and their benefits.

    Unknown card or category ids give empty results: a card with no targeted
    reward for a category is a normal business state.
    """

    _cards: dict[int, CardInfo] = field(default_factory=dict)
    _categories: dict[int, CategoryInfo] = field(default_factory=dict)
    _by_card: dict[int, list[BenefitRule]] = field(default_factory=dict)
    _by_category: dict[int, list[tuple[CardInfo, BenefitRule]]] = field(
        default_factory=dict
    )

    @classmethod
    def build(
        cls,
        cards: Iterable[CardInfo],
        benefits: Iterable[BenefitRule],
        categories: Iterable[CategoryInfo] = (),
    ) -> "BenefitCatalog":
        catalog = cls()
        for card in sorted(cards, key=lambda c: c.id):
            if card.is_active:
                catalog._cards[card.id] = card
        for category in categories:
            catalog._categories[category.id] = category

        seen: set[tuple[int, int]] = set()
        for benefit in benefits:
            card = catalog._cards.get(benefit.card_id)
            if card is None:
                continue
            # One rule per (card, category); the first listed wins
            if (card.id, benefit.category_id) in seen:
                continue
            seen.add((card.id, benefit.category_id))
            catalog._categories.setdefault(benefit.category_id, benefit.category)
            catalog._by_card.setdefault(card.id, []).append(benefit)
            catalog._by_category.setdefault(benefit.category_id, []).append(
                (card, benefit)
            )

        for pairs in catalog._by_category.values():
            pairs.sort(key=lambda pair: pair[0].id)
        return catalog

    def for_category(self, category_id: int) -> list[tuple[CardInfo, BenefitRule]]:
        return list(self._by_category.get(category_id, []))

    def for_card(self, card_id: int) -> list[BenefitRule]:
        return list(self._by_card.get(card_id, []))

    def card(self, card_id: int) -> Optional[CardInfo]:
        return self._cards.get(card_id)

    def category(self, category_id: int) -> Optional[CategoryInfo]:
        return self._categories.get(category_id)

    def cards(self) -> list[CardInfo]:
        return list(self._cards.values())

    def categories(self) -> list[CategoryInfo]:
        return [self._categories[k] for k in sorted(self._categories)]

    def all_pairs(self) -> list[tuple[CardInfo, BenefitRule]]:
        """Every (card, benefit) pair ordered by category id, then card id."""
        pairs = []
        for category_id in sorted(self._by_category):
            pairs.extend(self._by_category[category_id])
        return pairs
