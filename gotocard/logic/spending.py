"""
Spending Profile Aggregator.

Reduces raw UserSpending rows into per-category monthly totals. Records are
user-entered and high volume, so a malformed row is logged and skipped
instead of failing the whole run.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from logging import getLogger
from typing import Iterable, Optional

from gotocard.errors import InvalidInputError

logger = getLogger(__name__)


@dataclass(frozen=True)
class SpendingRecord:
    """Plain copy of a UserSpending row, detached from the session."""

    category_id: int
    amount: float
    month: int
    year: int

    @classmethod
    def from_model(cls, spending) -> "SpendingRecord":
        return cls(
            category_id=spending.category_id,
            amount=spending.amount,
            month=spending.month,
            year=spending.year,
        )


@dataclass
class CategorySpend:
    total: float = 0.0
    transaction_count: int = 0


@dataclass
class SpendingProfile:
    categories: dict[int, CategorySpend] = field(default_factory=dict)
    total_spend: float = 0.0
    # Distinct (year, month) periods touched by valid records
    period_count: int = 0
    skipped: int = 0

    @property
    def has_signal(self) -> bool:
        """False when there is no recorded spend to score against."""
        return self.total_spend > 0

    def spend_for(self, category_id: int) -> float:
        entry = self.categories.get(category_id)
        return entry.total if entry else 0.0

    def to_dict(self) -> dict:
        return {
            "categories": {
                category_id: {
                    "total": round(entry.total, 2),
                    "transaction_count": entry.transaction_count,
                }
                for category_id, entry in sorted(self.categories.items())
            },
            "total_spend": round(self.total_spend, 2),
            "period_count": self.period_count,
            "skipped": self.skipped,
        }


def validate_amount(amount) -> float:
    """Raise InvalidInputError unless amount is a finite number >= 0."""
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise InvalidInputError(f"Amount must be a number, got {amount!r}")
    if not math.isfinite(amount) or amount < 0:
        raise InvalidInputError(f"Amount must be a finite value >= 0, got {amount}")
    return float(amount)


def validate_spending(record: SpendingRecord) -> SpendingRecord:
    """Raise InvalidInputError for amounts or periods we cannot use."""
    validate_amount(record.amount)
    if not isinstance(record.month, int) or not 1 <= record.month <= 12:
        raise InvalidInputError(f"Month must be 1-12, got {record.month!r}")
    if not isinstance(record.year, int) or not 1000 <= record.year <= 9999:
        raise InvalidInputError(f"Year must have four digits, got {record.year!r}")
    return record


def aggregate_spending(
    records: Iterable[SpendingRecord],
    month: Optional[int] = None,
    year: Optional[int] = None,
) -> SpendingProfile:
    """
    Group records by category and sum them.

    Window:
    - month and year given: only records of that period.
    - otherwise: for each category, the most recent (year, month) it has
      records for.

    Multiple records in the same period are summed, never deduplicated.
    Passing only one of month or year raises InvalidInputError.
    """
    if (month is None) != (year is None):
        raise InvalidInputError("month and year must be given together")

    profile = SpendingProfile()
    valid: list[SpendingRecord] = []

    for record in records:
        try:
            valid.append(validate_spending(record))
        except InvalidInputError as e:
            profile.skipped += 1
            logger.warning(
                f"Skipping spending record for category {record.category_id}: {e.message}"
            )

    profile.period_count = len({(r.year, r.month) for r in valid})

    if month is not None and year is not None:
        window = [r for r in valid if r.month == month and r.year == year]
    else:
        latest: dict[int, tuple[int, int]] = {}
        for r in valid:
            period = (r.year, r.month)
            if period > latest.get(r.category_id, (0, 0)):
                latest[r.category_id] = period
        window = [r for r in valid if (r.year, r.month) == latest[r.category_id]]

    for r in window:
        entry = profile.categories.setdefault(r.category_id, CategorySpend())
        entry.total += float(r.amount)
        entry.transaction_count += 1

    profile.total_spend = sum(entry.total for entry in profile.categories.values())

    if profile.skipped:
        logger.info(f"Aggregated spending with {profile.skipped} record(s) skipped")

    return profile
