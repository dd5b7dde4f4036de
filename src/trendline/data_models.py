"""Typed data models for game records, trend summaries, angles, picks and parlays."""

from __future__ import annotations

import calendar
import datetime as dt
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, computed_field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .exceptions import PickStateError
from .odds import american_to_implied_prob


class Sport(str, Enum):
    NFL = "NFL"
    NCAAF = "NCAAF"
    NCAAMB = "NCAAMB"


class Perspective(str, Enum):
    HOME = "home"
    AWAY = "away"
    FAVORITE = "favorite"
    UNDERDOG = "underdog"
    TEAM = "team"
    OPPONENT = "opponent"


class SpreadResult(str, Enum):
    COVERED = "COVERED"
    LOST = "LOST"
    PUSH = "PUSH"


class TotalResult(str, Enum):
    OVER = "OVER"
    UNDER = "UNDER"
    PUSH = "PUSH"


class Strength(str, Enum):
    """Statistical strength tiers, totally ordered ``strong > moderate > weak > noise``."""

    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"
    NOISE = "noise"

    @property
    def rank(self) -> int:
        return _STRENGTH_RANK[self]

    def at_least(self, other: "Strength") -> bool:
        return self.rank >= other.rank


_STRENGTH_RANK = {
    Strength.NOISE: 0,
    Strength.WEAK: 1,
    Strength.MODERATE: 2,
    Strength.STRONG: 3,
}


class Favors(str, Enum):
    HOME = "home"
    AWAY = "away"
    OVER = "over"
    UNDER = "under"
    NEUTRAL = "neutral"


class Market(str, Enum):
    ATS = "ATS"
    OU = "OU"
    SU = "SU"
    PROP = "PROP"


class PickType(str, Enum):
    SPREAD = "SPREAD"
    OVER_UNDER = "OVER_UNDER"
    PLAYER_PROP = "PLAYER_PROP"


class PickResult(str, Enum):
    PENDING = "PENDING"
    WIN = "WIN"
    LOSS = "LOSS"
    PUSH = "PUSH"


class LegType(str, Enum):
    SPREAD = "SPREAD"
    OVER_UNDER = "OVER_UNDER"
    MONEYLINE = "MONEYLINE"
    PLAYER_PROP = "PLAYER_PROP"


class GameRecord(BaseModel):
    """Immutable fact describing one played or scheduled contest.

    Spread is stored from the home team's perspective (negative means the home
    team is favored) and ``spread_result`` is the home team's settlement.
    Keys may be given in camelCase, as written by ingestion, or snake_case.
    """

    model_config = ConfigDict(
        frozen=True, populate_by_name=True, alias_generator=to_camel, extra="ignore"
    )

    game_id: Optional[str] = None
    sport: Sport
    season: int
    game_date: dt.date
    home_team: str
    away_team: str

    home_score: Optional[int] = None
    away_score: Optional[int] = None

    spread: Optional[float] = None
    over_under: Optional[float] = None
    home_moneyline: Optional[int] = None
    away_moneyline: Optional[int] = None
    spread_result: Optional[SpreadResult] = None
    ou_result: Optional[TotalResult] = None

    home_rank: Optional[int] = None
    away_rank: Optional[int] = None
    home_kenpom_rank: Optional[int] = None
    away_kenpom_rank: Optional[int] = None

    is_conference_game: bool = False
    is_playoff: bool = False
    is_neutral_site: bool = False

    week: Optional[str] = None
    day_of_week: Optional[str] = None
    is_primetime: bool = False
    primetime_slot: Optional[str] = None
    weather_category: Optional[str] = None
    temperature: Optional[float] = None
    wind_mph: Optional[float] = None

    is_bowl_game: bool = False
    bowl_name: Optional[str] = None

    is_ncaat: bool = Field(default=False, alias="isNCAAT")
    is_nit: bool = Field(default=False, alias="isNIT")
    is_conf_tourney: bool = False
    overtimes: int = 0
    home_seed: Optional[int] = None
    away_seed: Optional[int] = None

    home_adj_em: Optional[float] = Field(default=None, alias="homeAdjEM")
    away_adj_em: Optional[float] = Field(default=None, alias="awayAdjEM")
    home_adj_oe: Optional[float] = Field(default=None, alias="homeAdjOE")
    away_adj_oe: Optional[float] = Field(default=None, alias="awayAdjOE")
    home_adj_de: Optional[float] = Field(default=None, alias="homeAdjDE")
    away_adj_de: Optional[float] = Field(default=None, alias="awayAdjDE")
    home_adj_tempo: Optional[float] = None
    away_adj_tempo: Optional[float] = None
    fm_home_pred: Optional[float] = None
    fm_away_pred: Optional[float] = None
    fm_home_win_prob: Optional[float] = None
    fm_thrill_score: Optional[float] = None

    home_rest_days: Optional[int] = None
    away_rest_days: Optional[int] = None
    rest_advantage: Optional[int] = None
    # None means "not enriched"; resolved from rest days via the sport config.
    home_is_bye_week: Optional[bool] = None
    away_is_bye_week: Optional[bool] = None
    is_short_week: Optional[bool] = None
    home_is_back_to_back: Optional[bool] = None
    away_is_back_to_back: Optional[bool] = None

    home_conference: Optional[str] = None
    away_conference: Optional[str] = None

    expected_pace: Optional[float] = None
    pace_mismatch: Optional[float] = None
    efficiency_gap: Optional[float] = None
    kenpom_pred_margin: Optional[float] = None
    is_kenpom_upset: bool = False
    game_style: Optional[str] = None

    @field_validator("home_team", "away_team")
    @classmethod
    def _strip_teams(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("team name must not be blank")
        return value

    @field_validator(
        "is_conference_game",
        "is_playoff",
        "is_neutral_site",
        "is_primetime",
        "is_bowl_game",
        "is_ncaat",
        "is_nit",
        "is_conf_tourney",
        "overtimes",
        "is_kenpom_upset",
        mode="before",
    )
    @classmethod
    def _blank_flag_as_default(cls, value: object, info: ValidationInfo) -> object:
        # Mixed-sport files leave other sports' flags blank.
        if value is None or (isinstance(value, str) and not value.strip()):
            return cls.model_fields[info.field_name].default
        return value

    @field_validator("week", mode="before")
    @classmethod
    def _week_as_text(cls, value: object) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return str(value).strip() or None

    @field_validator("spread_result", "ou_result", mode="before")
    @classmethod
    def _upper_result(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip().upper()
            return value or None
        return value

    @property
    def is_final(self) -> bool:
        return self.home_score is not None and self.away_score is not None

    @property
    def score_difference(self) -> Optional[int]:
        if not self.is_final:
            return None
        return self.home_score - self.away_score

    @property
    def total_points(self) -> Optional[int]:
        if not self.is_final:
            return None
        return self.home_score + self.away_score

    @property
    def winner(self) -> Optional[str]:
        diff = self.score_difference
        if diff is None or diff == 0:
            return None
        return self.home_team if diff > 0 else self.away_team

    @property
    def month(self) -> int:
        return self.game_date.month

    @property
    def year(self) -> int:
        return self.game_date.year

    @property
    def month_name(self) -> str:
        return calendar.month_name[self.game_date.month]


def format_record(wins: int, losses: int, pushes: int = 0) -> str:
    """Format ``wins-losses[-pushes]``; the push part only appears when non-zero."""

    if pushes > 0:
        return f"{wins}-{losses}-{pushes}"
    return f"{wins}-{losses}"


class OutcomeBucket(BaseModel):
    """Win/loss/push counts for one outcome type (SU, ATS or O/U)."""

    model_config = ConfigDict(frozen=True)

    wins: int = Field(default=0, ge=0)
    losses: int = Field(default=0, ge=0)
    pushes: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_total(self) -> "OutcomeBucket":
        if self.wins + self.losses + self.pushes != self.total:
            raise ValueError("wins + losses + pushes must equal total")
        return self

    @classmethod
    def from_counts(cls, wins: int, losses: int, pushes: int = 0) -> "OutcomeBucket":
        return cls(wins=wins, losses=losses, pushes=pushes, total=wins + losses + pushes)

    @computed_field  # type: ignore[misc]
    @property
    def win_pct(self) -> Optional[float]:
        """Percentage of decided outcomes won; pushes are excluded, None when nothing was decided."""
        decided = self.wins + self.losses
        if decided == 0:
            return None
        return round(self.wins / decided * 100, 1)

    @property
    def decided(self) -> int:
        return self.wins + self.losses

    @property
    def record(self) -> str:
        return format_record(self.wins, self.losses, self.pushes)


class SeasonBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    season: int
    games: int = 0
    wins: int = 0
    losses: int = 0
    ats_covered: int = 0
    ats_lost: int = 0


class TrendSummary(BaseModel):
    """Aggregated outcome counts and averages for a filtered record set."""

    model_config = ConfigDict(frozen=True)

    total_games: int = 0
    straight_up: OutcomeBucket = Field(default_factory=OutcomeBucket)
    ats: OutcomeBucket = Field(default_factory=OutcomeBucket)
    over_under: OutcomeBucket = Field(default_factory=OutcomeBucket)

    avg_points_for: Optional[float] = None
    avg_points_against: Optional[float] = None
    avg_total_points: Optional[float] = None
    avg_margin: Optional[float] = None
    avg_spread: Optional[float] = None
    avg_over_under: Optional[float] = None

    by_season: list[SeasonBreakdown] = Field(default_factory=list)


class SignificanceResult(BaseModel):
    """One-proportion z-test of an observed hit rate against a baseline."""

    model_config = ConfigDict(frozen=True)

    strength: Strength
    label: str
    p_value: float = Field(..., ge=0.0, le=1.0)
    observed_rate: Optional[float] = None
    baseline_rate: float
    confidence_interval: Optional[tuple[float, float]] = None
    z_score: float
    sample_size: float = Field(..., ge=0)
    is_significant: bool


class SituationalAngle(BaseModel):
    """A situational filter's record and significance, oriented to the side it favors."""

    model_config = ConfigDict(frozen=True)

    angle_id: str
    description: str
    favors: Favors
    market: Market
    record: str
    rate: Optional[float] = Field(None, description="Hit rate as a percentage of decided outcomes.")
    sample_size: int = Field(..., ge=0)
    significance: SignificanceResult
    interest_score: int = Field(0, ge=0)


class ReasoningEntry(BaseModel):
    """One angle's contribution to a pick; contributions sum to the trend score."""

    model_config = ConfigDict(frozen=True)

    angle: str
    weight: float
    strength: Strength
    multiplier: float
    sign: int = Field(..., ge=-1, le=1)
    contribution: float
    record: Optional[str] = None


class Pick(BaseModel):
    """A scored recommendation; only ``result`` ever changes, exactly once."""

    model_config = ConfigDict(frozen=True)

    game_id: Optional[str] = None
    pick_type: PickType
    pick_side: str
    line: Optional[float] = None
    trend_score: float
    confidence: int = Field(..., ge=1, le=5)
    headline: str
    reasoning: list[ReasoningEntry] = Field(default_factory=list)
    result: PickResult = PickResult.PENDING
    rule_table_version: str
    player_name: Optional[str] = None
    prop_stat: Optional[str] = None

    @property
    def is_graded(self) -> bool:
        return self.result is not PickResult.PENDING

    def settle(self, outcome: PickResult) -> "Pick":
        """Return a copy with the one permitted PENDING → WIN/LOSS/PUSH transition applied."""

        if outcome is PickResult.PENDING:
            raise PickStateError("A pick cannot be settled back to PENDING")
        if self.is_graded:
            raise PickStateError(
                f"Pick for {self.game_id or self.pick_side} already settled as {self.result.value}"
            )
        return self.model_copy(update={"result": outcome})


class NoPick(BaseModel):
    """Tier-0 outcome: the angles did not clear any rule in the table."""

    model_config = ConfigDict(frozen=True)

    game_id: Optional[str] = None
    pick_type: PickType
    trend_score: float = 0.0
    reason: str
    reasoning: list[ReasoningEntry] = Field(default_factory=list)
    rule_table_version: str

    @property
    def confidence(self) -> int:
        return 0


class ParlayLeg(BaseModel):
    """One priced leg; ``implied_prob`` defaults to the vig-inclusive price of ``odds``."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    type: LegType = LegType.SPREAD
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    pick_side: Optional[str] = None
    line: Optional[float] = None
    odds: int
    implied_prob: Optional[float] = Field(None, gt=0.0, lt=1.0)
    model_prob: float = Field(..., ge=0.0, le=1.0)
    game_id: Optional[str] = None

    @model_validator(mode="after")
    def _fill_implied(self) -> "ParlayLeg":
        implied = american_to_implied_prob(self.odds)
        if self.implied_prob is None:
            object.__setattr__(self, "implied_prob", implied)
        return self


class TeaserLegAdjustment(BaseModel):
    model_config = ConfigDict(frozen=True)

    original_line: float
    teased_line: float
    original_prob: float
    teased_prob: float


class TeaserAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    teaser_points: float
    adjusted_legs: list[TeaserLegAdjustment]
    teased_joint_prob: float
    teaser_odds: int
    teaser_ev: float
    recommendation: Literal["strong", "moderate", "avoid"]


class ParlayAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    legs: list[ParlayLeg]
    leg_count: int
    is_same_game: bool
    true_joint_prob: float
    book_implied_prob: float
    decimal_odds: float
    parlay_odds: int
    expected_value: float
    kelly_fraction: float
    suggested_stake: float
    correlation_assumption: float
    teaser_analysis: Optional[TeaserAnalysis] = None
