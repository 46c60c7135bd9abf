from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

ENV_PREFIX = "GOTOCARD_"


class RecommenderConfig(BaseModel):
    """Tunable assumptions for scoring plus runtime budgets."""

    database_url: str = "sqlite:///data/gotocard.db"

    # Cash value of one point / one mile. Business assumptions, not market facts.
    point_value: float = Field(default=0.01, ge=0)
    mile_value: float = Field(default=0.015, ge=0)

    max_results: int = Field(default=10, ge=1)
    # Scores in [0, negative_band) are reserved for negative net value
    negative_band: int = Field(default=20, ge=0, le=100)

    generation_timeout: float = Field(default=5.0, gt=0)
    retry_attempts: int = Field(default=3, ge=1)
    retry_backoff: float = Field(default=0.2, ge=0)

    log_level: str = "INFO"


def load_config() -> RecommenderConfig:
    """Build a config from GOTOCARD_* environment variables."""
    overrides = {}
    for name in RecommenderConfig.model_fields:
        value = os.getenv(f"{ENV_PREFIX}{name.upper()}")
        if value is not None:
            overrides[name] = value
    return RecommenderConfig(**overrides)

