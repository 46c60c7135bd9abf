from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import Field, Relationship, SQLModel

# --- 0. Enums ---


class CardType(str, Enum):
    """Card network printed on the card."""

    VISA = "visa"
    MASTERCARD = "mastercard"
    OTHER = "other"


class RateType(str, Enum):
    """How a benefit pays out."""

    CASHBACK = "cashback"  # Percentage of spend returned as cash
    MILES = "miles"  # Multiplier, converted with the configured mile value
    POINTS = "points"  # Multiplier, converted with the configured point value


# Display precedence when a benefit carries more than one nonzero rate.
RATE_PREFERENCE: tuple[RateType, ...] = (
    RateType.CASHBACK,
    RateType.MILES,
    RateType.POINTS,
)


# --- 1. Users ---
class User(SQLModel, table=True):
    """
    A person we generate recommendations for.

    annual_income is optional: None means the income is unknown and the
    minimum-income gate is not applied.
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(index=True, unique=True)
    annual_income: Optional[float] = Field(default=None, ge=0)
    created_at: datetime = Field(default_factory=datetime.now)

    spendings: list["UserSpending"] = Relationship(
        back_populates="user", sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )


# --- 2. Reference data ---
class Category(SQLModel, table=True):
    """Spending category (Dining, Groceries, ...). Never deleted while referenced."""

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    description: str = ""
    icon: str = ""


class CreditCard(SQLModel, table=True):
    """
    A card product offered by a bank.

    source_url records where the scraper found it (singsaver / moneysmart).
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    bank: str
    card_type: CardType = Field(default=CardType.OTHER)

    annual_fee: float = Field(default=0.0, ge=0)
    min_income: float = Field(default=0.0, ge=0)

    welcome_bonus: Optional[str] = None
    image_url: Optional[str] = None
    description: str = ""
    source_url: Optional[str] = None
    is_active: bool = Field(default=True, index=True)

    # Benefits are meaningless without their card
    benefits: list["CardBenefit"] = Relationship(
        back_populates="card", sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )


# --- 3. Benefits (The "Logic") ---
class CardBenefit(SQLModel, table=True):
    """
    A card's reward rule for one category.

    Any of the three rates may be nonzero; the estimator values each one and
    RATE_PREFERENCE decides which is shown.
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    card_id: int = Field(foreign_key="creditcard.id", index=True)
    category_id: int = Field(foreign_key="category.id", index=True)

    # The Math
    cashback_rate: float = Field(default=0.0, ge=0)  # e.g., 5.0 (5%)
    points_rate: float = Field(default=0.0, ge=0)  # e.g., 4.0 (4x)
    miles_rate: float = Field(default=0.0, ge=0)  # e.g., 1.2 (1.2 mpd)

    # Constraints
    cap: float = Field(default=0.0, ge=0)  # Monthly spend ceiling, 0 = uncapped
    min_spend: float = Field(default=0.0, ge=0)

    description: str = ""

    card: CreditCard = Relationship(back_populates="benefits")
    category: Category = Relationship()


# --- 4. Spending ---
class UserSpending(SQLModel, table=True):
    """
    One user-entered spending record.

    Several records may share (user, category, month, year); they are summed.
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    category_id: int = Field(foreign_key="category.id")

    amount: float
    month: int
    year: int

    created_at: datetime = Field(default_factory=datetime.now)

    user: User = Relationship(back_populates="spendings")


# --- 5. Cached recommendations ---
class Recommendation(SQLModel, table=True):
    """
    A stored row of the last generated ranking for a user.

    Derived data: every generate() replaces all rows of the user.
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    card_id: int = Field(foreign_key="creditcard.id")
    category_id: int = Field(foreign_key="category.id")

    rank: int
    score: int
    estimated_reward: float
    reward_type: Optional[RateType] = None
    reason: str

    generated_at: datetime = Field(default_factory=datetime.now)
