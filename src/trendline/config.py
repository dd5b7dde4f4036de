"""Application configuration and environment loading utilities (Pydantic v2)."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)

# Load .env if present (non-fatal if missing)
load_dotenv(dotenv_path=Path(".env"), override=False)


class Settings(BaseSettings):
    """Runtime settings loaded from ``TRENDLINE_*`` env vars with sane defaults."""

    model_config = SettingsConfigDict(
        env_prefix="TRENDLINE_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    LOG_LEVEL: str = Field(default="INFO")

    # External / IO
    HTTP_TIMEOUT: float = Field(default=15.0, gt=0)
    DATA_DIR: Path = Field(default_factory=lambda: Path("data"))
    RATINGS_TTL_SECONDS: float = Field(default=6 * 60 * 60, gt=0)
    RATING_MATCH_SCORE: int = Field(default=85, ge=0, le=100)

    # Angle discovery
    DEFAULT_SEASON_SPAN: int = Field(default=3, ge=1)
    MIN_ANGLE_SAMPLE: int = Field(default=20, ge=1)
    RECENT_FORM_GAMES: int = Field(default=10, ge=1)

    # Pick scoring
    RULE_TABLE_PATH: Optional[Path] = Field(default=None)

    # Bankroll
    DEFAULT_BANKROLL: float = Field(default=1000.0, ge=0)
    KELLY_MULTIPLIER: float = Field(default=0.25, ge=0, le=1)  # quarter Kelly

    # Teasers (standard 2-team, 6-point college teaser)
    TEASER_POINTS: float = Field(default=6.0)
    TEASER_PROB_BOOST: float = Field(default=0.15, ge=0, le=1)
    TEASER_PROB_CAP: float = Field(default=0.95, gt=0, le=1)
    TEASER_ODDS: int = Field(default=-110)

    # Same-game legs: measured ATS/O-U correlation r=0.0049, treated as independent.
    # Revalidate against fresh graded seasons before changing.
    SGP_CORRELATION: float = Field(default=0.0, ge=-1, le=1)

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return str(v).strip().upper()

    @field_validator("TEASER_ODDS")
    @classmethod
    def _valid_american(cls, v: int) -> int:
        if -100 < v < 100:
            raise ValueError("American odds must be <= -100 or >= 100")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
