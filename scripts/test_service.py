"""Tests for RecommendationService: persistence, retries, budgets and locking."""

import threading
import time

import pytest
from sqlalchemy.exc import OperationalError

from gotocard import (
    RecommendationService,
    RecommenderConfig,
    SqlStore,
    TransientIOError,
    UserNotFoundError,
    create_db_and_tables,
    make_engine,
)
from gotocard.service import KeyedLocks


class FlakyStore(SqlStore):
    """SqlStore whose load_catalog fails a fixed number of times first."""

    def __init__(self, engine, failures):
        super().__init__(engine)
        self.failures = failures
        self.calls = 0

    def load_catalog(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))
        return super().load_catalog()


# --- Generate / get ---


def test_generate_then_get_returns_same_list(service, dining_setup):
    user_id = dining_setup["user_id"]

    generated = service.generate(user_id)
    stored = service.get(user_id)

    assert [r.to_dict() for r in stored] == [r.to_dict() for r in generated]
    assert [r.card.id for r in stored] == [dining_setup["cashback"], dining_setup["points"]]


def test_generate_is_idempotent(service, dining_setup):
    user_id = dining_setup["user_id"]

    first = [r.to_dict() for r in service.generate(user_id)]
    second = [r.to_dict() for r in service.generate(user_id)]

    assert first == second
    assert len(service.get(user_id)) == len(first)


def test_get_before_generate_is_empty(service, dining_setup):
    assert service.get(dining_setup["user_id"]) == []


def test_generate_unknown_user(service, dining_setup):
    with pytest.raises(UserNotFoundError) as excinfo:
        service.generate(9999)

    assert excinfo.value.code == "user_not_found"
    assert excinfo.value.to_dict()["status"] == "error"


def test_regenerate_replaces_previous_rows(service, store, dining_setup):
    user_id = dining_setup["user_id"]
    service.generate(user_id)

    # New spending moves the user into Groceries as well
    store.add_spending(user_id, dining_setup["groceries"], 400.0, 5, 2024)
    service.refresh(user_id)

    stored = service.get(user_id)
    assert [r.rank for r in stored] == list(range(1, len(stored) + 1))
    pairs = [(r.card.id, r.category.id) for r in stored]
    assert len(pairs) == len(set(pairs)) == 3


def test_get_by_category(service, dining_setup):
    user_id = dining_setup["user_id"]
    service.generate(user_id)

    dining = service.get_by_category(user_id, dining_setup["dining"])
    groceries = service.get_by_category(user_id, dining_setup["groceries"])

    assert len(dining) == 2
    assert all(r.category.id == dining_setup["dining"] for r in dining)
    assert groceries == []


def test_outcome_reports_income_exclusions(service, store, dining_setup):
    user_id = store.add_user("Student", "student@example.com", annual_income=0.0)
    store.add_spending(user_id, dining_setup["dining"], 100.0, 5, 2024)

    outcome = service.generate_outcome(user_id)

    assert outcome.status == "ok"
    assert outcome.excluded_card_ids == [dining_setup["premium"]]
    assert [r.card.id for r in service.get(user_id)] == [
        r.card.id for r in outcome.recommendations
    ]


def test_empty_result_clears_stored_list(service, store, dining_setup):
    user_id = dining_setup["user_id"]
    service.generate(user_id)

    with store.engine.begin() as conn:
        conn.exec_driver_sql("UPDATE creditcard SET is_active = 0")
    outcome = service.generate_outcome(user_id)

    assert outcome.status == "no_candidates"
    assert service.get(user_id) == []


# --- Transient failures ---


def test_store_failure_is_retried(db_engine, config, dining_setup):
    sleeps = []
    store = FlakyStore(db_engine, failures=2)
    service = RecommendationService(store, config, sleep=sleeps.append)

    try:
        recs = service.generate(dining_setup["user_id"])
    finally:
        service.shutdown()

    assert len(recs) == 2
    assert store.calls == 3
    assert len(sleeps) == 2


def test_retry_backoff_doubles(db_engine, dining_setup):
    sleeps = []
    config = RecommenderConfig(retry_attempts=4, retry_backoff=0.5)
    service = RecommendationService(FlakyStore(db_engine, failures=3), config, sleep=sleeps.append)

    try:
        service.generate(dining_setup["user_id"])
    finally:
        service.shutdown()

    assert sleeps == [0.5, 1.0, 2.0]


def test_retries_exhausted_raise_transient_error(db_engine, config, dining_setup):
    store = FlakyStore(db_engine, failures=10)
    service = RecommendationService(store, config, sleep=lambda _: None)

    try:
        with pytest.raises(TransientIOError) as excinfo:
            service.generate(dining_setup["user_id"])
    finally:
        service.shutdown()

    assert excinfo.value.retryable is True
    assert store.calls == config.retry_attempts
    # Nothing was written
    assert service.get(dining_setup["user_id"]) == []


def test_ranking_over_budget_times_out(store, dining_setup, monkeypatch, caplog):
    config = RecommenderConfig(generation_timeout=0.1, retry_backoff=0.0)
    service = RecommendationService(store, config)

    def slow_rank(*args, **kwargs):
        time.sleep(0.5)

    monkeypatch.setattr(service.engine, "rank", slow_rank)

    try:
        with pytest.raises(TransientIOError):
            service.generate(dining_setup["user_id"])
    finally:
        service.shutdown()

    assert service.get(dining_setup["user_id"]) == []
    assert "result will be discarded" in caplog.text


# --- Concurrency ---


def test_keyed_locks_are_per_key():
    locks = KeyedLocks()

    assert locks.get(1) is locks.get(1)
    assert locks.get(1) is not locks.get(2)


class TestConcurrentGenerate:
    """Runs against a file database so each thread gets its own connection."""

    @pytest.fixture
    def store(self, tmp_path):
        engine = make_engine(f"sqlite:///{tmp_path / 'concurrent.db'}")
        create_db_and_tables(engine)
        yield SqlStore(engine)
        engine.dispose()

    @pytest.fixture
    def config(self):
        return RecommenderConfig(retry_attempts=5, retry_backoff=0.05)

    def test_same_user_never_sees_mixed_lists(self, store, config, dining_setup):
        service = RecommendationService(store, config)
        user_id = dining_setup["user_id"]
        errors = []

        def run():
            try:
                service.generate(user_id)
            except Exception as e:  # noqa: BLE001
                errors.append(e)

        threads = [threading.Thread(target=run) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        service.shutdown()

        assert errors == []
        stored = service.get(user_id)
        assert [r.rank for r in stored] == [1, 2]
        assert [r.card.id for r in stored] == [dining_setup["cashback"], dining_setup["points"]]

    def test_different_users_generate_in_parallel(self, store, config, dining_setup):
        other = store.add_user("Priya", "priya@example.com", annual_income=150000.0)
        store.add_spending(other, dining_setup["dining"], 1000.0, 5, 2024)
        service = RecommendationService(store, config)

        threads = [
            threading.Thread(target=service.generate, args=(user_id,))
            for user_id in (dining_setup["user_id"], other) * 3
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        service.shutdown()

        assert len(service.get(dining_setup["user_id"])) == 2
        assert len(service.get(other)) == 3
