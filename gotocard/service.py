"""
Recommendation Service - orchestrates one generate() run.

Flow: user check → snapshot reads (retried) → rank (time-boxed) → replace

Runs for the same user are serialized by a per-user lock so the stored list
is always the output of exactly one complete run. Runs for different users
share nothing but the read-only catalog and proceed in parallel.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from logging import getLogger
from typing import Callable, List, Optional, TypeVar

from sqlalchemy.exc import OperationalError

from gotocard.config import RecommenderConfig
from gotocard.errors import TransientIOError, UserNotFoundError
from gotocard.logic.recommender import RankingOutcome, RecommendationEngine
from gotocard.logic.scoring import RankedRecommendation
from gotocard.logic.spending import aggregate_spending
from gotocard.store import RecommendationStore

logger = getLogger(__name__)

T = TypeVar("T")


class KeyedLocks:
    """One lock per key, created on first use."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[int, threading.Lock] = {}

    def get(self, key: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock


class RecommendationService:
    """
    Usage:
        service = RecommendationService(SqlStore(engine), config)
        recs = service.generate(user_id)
        same = service.get(user_id)
    """

    def __init__(
        self,
        store: RecommendationStore,
        config: RecommenderConfig,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.config = config
        self.engine = RecommendationEngine(config)
        self._locks = KeyedLocks()
        self._sleep = sleep
        self._executor = ThreadPoolExecutor(thread_name_prefix="gotocard-rank")

    def generate(self, user_id: int) -> List[RankedRecommendation]:
        """Recompute the ranking for a user and replace the stored list."""
        return self.generate_outcome(user_id).recommendations

    def generate_outcome(self, user_id: int) -> RankingOutcome:
        user = self._with_retries(f"get_user({user_id})", lambda: self.store.get_user(user_id))
        if user is None:
            raise UserNotFoundError(user_id)

        with self._locks.get(user_id):
            started = time.monotonic()

            catalog = self._with_retries("load_catalog", self.store.load_catalog)
            records = self._with_retries(
                f"list_spending({user_id})", lambda: self.store.list_spending(user_id)
            )

            remaining = self.config.generation_timeout - (time.monotonic() - started)
            outcome = self._rank_with_budget(
                lambda: self.engine.rank(
                    catalog, aggregate_spending(records), income=user.annual_income
                ),
                remaining,
                user_id,
            )

            self._with_retries(
                f"replace_recommendations({user_id})",
                lambda: self.store.replace_recommendations(user_id, outcome.recommendations),
            )

        logger.info(
            f"Generated {len(outcome.recommendations)} recommendation(s) for user "
            f"{user_id} (status={outcome.status}, defaults={outcome.used_defaults})"
        )
        return outcome

    def get(self, user_id: int) -> List[RankedRecommendation]:
        """Last committed list for the user; empty if never generated."""
        return self._with_retries(
            f"list_recommendations({user_id})",
            lambda: self.store.list_recommendations(user_id),
        )

    def get_by_category(self, user_id: int, category_id: int) -> List[RankedRecommendation]:
        return self._with_retries(
            f"list_recommendations({user_id}, {category_id})",
            lambda: self.store.list_recommendations(user_id, category_id=category_id),
        )

    def refresh(self, user_id: int) -> None:
        self.generate(user_id)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)

    def _rank_with_budget(
        self, compute: Callable[[], RankingOutcome], budget: float, user_id: int
    ) -> RankingOutcome:
        if budget <= 0:
            raise TransientIOError(f"Generation budget exhausted for user {user_id}")
        future = self._executor.submit(compute)
        try:
            return future.result(timeout=budget)
        except FutureTimeoutError:
            # cancel() only stops a ranking that has not started yet
            if future.cancel():
                logger.error(f"Ranking for user {user_id} not started within {budget:.2f}s")
            else:
                logger.error(
                    f"Ranking for user {user_id} exceeded {budget:.2f}s; "
                    "its result will be discarded when the worker finishes"
                )
            raise TransientIOError(
                f"Recommendation generation timed out for user {user_id}"
            )

    def _with_retries(self, label: str, operation: Callable[[], T]) -> T:
        """Run a store call, backing off on connection-level failures."""
        delay = self.config.retry_backoff
        attempts = self.config.retry_attempts
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                return operation()
            except OperationalError as e:
                last_error = e
                if attempt < attempts:
                    logger.warning(
                        f"{label} failed, retrying... (attempt {attempt + 1}/{attempts}): {e}"
                    )
                    self._sleep(delay)
                    delay *= 2

        logger.error(f"{label} failed after {attempts} attempt(s): {last_error}")
        raise TransientIOError(f"Store unavailable during {label}") from last_error
