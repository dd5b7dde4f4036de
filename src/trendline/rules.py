"""Versioned tier rule tables for pick confidence.

Tables are data: an ordered, first-match-wins list of tier rules plus the
interest-score bands that weight each angle. Recalibrating a table means
shipping a new version and re-running the backtest tier check against a
held-out season before it is used.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .config import get_settings
from .data_models import Strength
from .exceptions import RuleTableError
from .logging_utils import configure_logging

LOGGER = configure_logging(__name__)


class InterestBand(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_interest: int = Field(..., ge=0)
    weight: float = Field(..., ge=0)


class TierRule(BaseModel):
    """Thresholds a scored pick must clear to earn ``tier`` stars."""

    model_config = ConfigDict(frozen=True)

    tier: int = Field(..., ge=1, le=5)
    min_score: float = Field(..., ge=0)
    min_agreement: float = Field(0.0, ge=0, le=1)
    min_edge: float = Field(0.0)
    min_significant: int = Field(0, ge=0)

    def matches(self, score: float, agreement: float, edge: float, significant: int) -> bool:
        return (
            score >= self.min_score
            and agreement >= self.min_agreement
            and edge >= self.min_edge
            and significant >= self.min_significant
        )


class RuleTable(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: str = Field(..., min_length=1)
    rules: list[TierRule] = Field(..., min_length=1)
    interest_bands: list[InterestBand] = Field(..., min_length=1)
    strength_multipliers: dict[Strength, float]
    default_weight: float = Field(1.0, ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> "RuleTable":
        tiers = [rule.tier for rule in self.rules]
        if any(upper <= lower for upper, lower in zip(tiers, tiers[1:])):
            raise ValueError(f"rules must be listed by strictly descending tier, got {tiers}")
        bands = [band.min_interest for band in self.interest_bands]
        if any(upper <= lower for upper, lower in zip(bands, bands[1:])):
            raise ValueError("interest bands must be listed by strictly descending min_interest")
        missing = [strength.value for strength in Strength if strength not in self.strength_multipliers]
        if missing:
            raise ValueError(f"strength multipliers missing for {missing}")
        ordered = [self.strength_multipliers[s] for s in sorted(Strength, key=lambda s: s.rank, reverse=True)]
        if any(upper < lower for upper, lower in zip(ordered, ordered[1:])):
            raise ValueError("strength multipliers must not increase as strength decreases")
        return self

    def weight_for(self, interest_score: int) -> float:
        for band in self.interest_bands:
            if interest_score >= band.min_interest:
                return band.weight
        return self.default_weight

    def multiplier(self, strength: Strength) -> float:
        return self.strength_multipliers[strength]

    def assign(self, score: float, agreement: float, edge: float, significant: int) -> Optional[TierRule]:
        """First rule the inputs clear, or ``None`` for no pick."""

        for rule in self.rules:
            if rule.matches(score, agreement, edge, significant):
                return rule
        return None


DEFAULT_RULE_TABLE = RuleTable(
    version="v1",
    rules=[
        TierRule(tier=5, min_score=15.0, min_agreement=0.8, min_edge=0.08, min_significant=2),
        TierRule(tier=4, min_score=9.0, min_agreement=0.7, min_edge=0.05, min_significant=1),
        TierRule(tier=3, min_score=4.0, min_agreement=0.6, min_edge=0.03, min_significant=0),
    ],
    interest_bands=[
        InterestBand(min_interest=70, weight=10),
        InterestBand(min_interest=50, weight=7),
        InterestBand(min_interest=35, weight=5),
        InterestBand(min_interest=20, weight=3),
    ],
    strength_multipliers={
        Strength.STRONG: 1.0,
        Strength.MODERATE: 0.7,
        Strength.WEAK: 0.4,
        Strength.NOISE: 0.0,
    },
    default_weight=1.0,
)


def load_rule_table(path: Path | str) -> RuleTable:
    """Load a JSON rule table, raising :class:`RuleTableError` when it is unreadable or invalid."""

    path = Path(path)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise RuleTableError(f"Could not read rule table {path}: {exc}") from exc
    try:
        table = RuleTable.model_validate(payload)
    except ValidationError as exc:
        raise RuleTableError(f"Invalid rule table {path}: {exc}") from exc
    LOGGER.info("Loaded rule table %s from %s", table.version, path)
    return table


@lru_cache()
def active_rule_table() -> RuleTable:
    """The configured rule table, falling back to the built-in ``v1`` table."""

    path = get_settings().RULE_TABLE_PATH
    if path is None:
        return DEFAULT_RULE_TABLE
    return load_rule_table(path)
