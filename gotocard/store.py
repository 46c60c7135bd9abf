"""
Store - the read/write contracts the recommendation service depends on.

Every read returns detached snapshot objects (CardInfo, BenefitRule, ...) so
the scoring pipeline never holds a session open.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Protocol

from sqlalchemy import delete
from sqlalchemy.engine import Engine
from sqlmodel import Session, col, select

from gotocard.logic.catalog import BenefitCatalog, BenefitRule, CardInfo, CategoryInfo
from gotocard.logic.scoring import RankedRecommendation
from gotocard.logic.spending import SpendingRecord
from gotocard.models import (
    CardBenefit,
    CardType,
    Category,
    CreditCard,
    Recommendation,
    User,
    UserSpending,
)


@dataclass(frozen=True)
class UserInfo:
    id: int
    name: str
    email: str
    annual_income: Optional[float] = None


class RecommendationStore(Protocol):
    def list_active_cards(self) -> list[CardInfo]:
        ...

    def list_benefits(self, card_id: int) -> list[BenefitRule]:
        ...

    def load_catalog(self) -> BenefitCatalog:
        ...

    def list_spending(self, user_id: int) -> list[SpendingRecord]:
        ...

    def get_user(self, user_id: int) -> Optional[UserInfo]:
        ...

    def replace_recommendations(
        self, user_id: int, recommendations: list[RankedRecommendation]
    ) -> None:
        ...

    def list_recommendations(
        self, user_id: int, category_id: Optional[int] = None
    ) -> list[RankedRecommendation]:
        ...


class SqlStore:
    """RecommendationStore backed by SQLModel tables."""

    def __init__(self, engine: Engine):
        self.engine = engine

    # --- Catalog reads ---

    def list_active_cards(self) -> list[CardInfo]:
        with Session(self.engine) as session:
            statement = (
                select(CreditCard)
                .where(CreditCard.is_active == True)  # noqa: E712
                .order_by(CreditCard.id)
            )
            return [CardInfo.from_model(card) for card in session.exec(statement).all()]

    def list_benefits(self, card_id: int) -> list[BenefitRule]:
        with Session(self.engine) as session:
            statement = (
                select(CardBenefit, Category)
                .join(Category, CardBenefit.category_id == Category.id)
                .where(CardBenefit.card_id == card_id)
                .order_by(CardBenefit.id)
            )
            return [
                BenefitRule.from_model(benefit, CategoryInfo.from_model(category))
                for benefit, category in session.exec(statement).all()
            ]

    def list_categories(self) -> list[CategoryInfo]:
        with Session(self.engine) as session:
            statement = select(Category).order_by(Category.id)
            return [CategoryInfo.from_model(c) for c in session.exec(statement).all()]

    def load_catalog(self) -> BenefitCatalog:
        """Bulk-read every active card and benefit in one session."""
        with Session(self.engine) as session:
            cards = session.exec(
                select(CreditCard)
                .where(CreditCard.is_active == True)  # noqa: E712
                .order_by(CreditCard.id)
            ).all()
            rows = session.exec(
                select(CardBenefit, Category)
                .join(Category, CardBenefit.category_id == Category.id)
                .join(CreditCard, CardBenefit.card_id == CreditCard.id)
                .where(CreditCard.is_active == True)  # noqa: E712
                .order_by(CardBenefit.id)
            ).all()
            categories = session.exec(select(Category).order_by(Category.id)).all()

            return BenefitCatalog.build(
                cards=[CardInfo.from_model(card) for card in cards],
                benefits=[
                    BenefitRule.from_model(benefit, CategoryInfo.from_model(category))
                    for benefit, category in rows
                ],
                categories=[CategoryInfo.from_model(c) for c in categories],
            )

    # --- User reads ---

    def get_user(self, user_id: int) -> Optional[UserInfo]:
        with Session(self.engine) as session:
            user = session.get(User, user_id)
            if user is None:
                return None
            return UserInfo(
                id=user.id,
                name=user.name,
                email=user.email,
                annual_income=user.annual_income,
            )

    def list_spending(self, user_id: int) -> list[SpendingRecord]:
        with Session(self.engine) as session:
            statement = (
                select(UserSpending)
                .where(UserSpending.user_id == user_id)
                .order_by(UserSpending.id)
            )
            return [SpendingRecord.from_model(s) for s in session.exec(statement).all()]

    # --- Recommendation cache ---

    def replace_recommendations(
        self, user_id: int, recommendations: list[RankedRecommendation]
    ) -> None:
        """Delete the user's rows and insert the new ones in one transaction."""
        generated_at = datetime.now()
        with Session(self.engine) as session:
            session.execute(delete(Recommendation).where(Recommendation.user_id == user_id))
            for rec in recommendations:
                session.add(
                    Recommendation(
                        user_id=user_id,
                        card_id=rec.card.id,
                        category_id=rec.category.id,
                        rank=rec.rank,
                        score=rec.score,
                        estimated_reward=rec.estimated_reward,
                        reward_type=rec.reward_type,
                        reason=rec.reason,
                        generated_at=generated_at,
                    )
                )
            session.commit()

    def list_recommendations(
        self, user_id: int, category_id: Optional[int] = None
    ) -> list[RankedRecommendation]:
        with Session(self.engine) as session:
            statement = (
                select(Recommendation, CreditCard, Category)
                .join(CreditCard, Recommendation.card_id == CreditCard.id)
                .join(Category, Recommendation.category_id == Category.id)
                .where(Recommendation.user_id == user_id)
            )
            if category_id is not None:
                statement = statement.where(Recommendation.category_id == category_id)
            statement = statement.order_by(col(Recommendation.rank))

            return [
                RankedRecommendation(
                    rank=rec.rank,
                    card=CardInfo.from_model(card),
                    category=CategoryInfo.from_model(category),
                    score=rec.score,
                    estimated_reward=rec.estimated_reward,
                    reward_type=rec.reward_type,
                    reason=rec.reason,
                )
                for rec, card, category in session.exec(statement).all()
            ]

    # --- Seeding helpers (scripts and tests) ---

    def add_user(self, name: str, email: str, annual_income: Optional[float] = None) -> int:
        with Session(self.engine) as session:
            user = User(name=name, email=email, annual_income=annual_income)
            session.add(user)
            session.commit()
            return user.id

    def add_category(self, name: str, description: str = "", icon: str = "") -> int:
        with Session(self.engine) as session:
            category = Category(name=name, description=description, icon=icon)
            session.add(category)
            session.commit()
            return category.id

    def add_card(
        self,
        name: str,
        bank: str,
        benefits: Iterable[dict] = (),
        card_type: CardType = CardType.OTHER,
        annual_fee: float = 0.0,
        min_income: float = 0.0,
        is_active: bool = True,
        **extra,
    ) -> int:
        """
        Insert a card with its benefits.

        Each benefit dict takes CardBenefit fields, e.g.
        {"category_id": 1, "cashback_rate": 5.0, "cap": 300}.
        """
        with Session(self.engine) as session:
            card = CreditCard(
                name=name,
                bank=bank,
                card_type=card_type,
                annual_fee=annual_fee,
                min_income=min_income,
                is_active=is_active,
                **extra,
            )
            card.benefits = [CardBenefit(**benefit) for benefit in benefits]
            session.add(card)
            session.commit()
            return card.id

    def add_spending(
        self, user_id: int, category_id: int, amount: float, month: int, year: int
    ) -> int:
        with Session(self.engine) as session:
            spending = UserSpending(
                user_id=user_id,
                category_id=category_id,
                amount=amount,
                month=month,
                year=year,
            )
            session.add(spending)
            session.commit()
            return spending.id
