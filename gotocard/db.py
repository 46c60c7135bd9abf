from pathlib import Path

from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from gotocard.config import load_config
from gotocard.models import (  # noqa: F401
    CardBenefit,
    Category,
    CreditCard,
    Recommendation,
    User,
    UserSpending,
)


def make_engine(database_url: str) -> Engine:
    """
    Create an engine for the given URL.

    check_same_thread=False is needed for SQLite when generate() runs in
    worker threads. In-memory databases share one connection so every
    session sees the same data.
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url)

    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    db_file = database_url.removeprefix("sqlite:///")
    Path(db_file).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, connect_args={"check_same_thread": False})


engine = make_engine(load_config().database_url)


def create_db_and_tables(target: Engine = engine) -> None:
    """
    Creates all tables defined in gotocard.models.
    Run this once when you set up the project or change the schema.
    """
    SQLModel.metadata.create_all(target)
