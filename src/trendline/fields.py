"""Closed whitelist of queryable fields and the table that resolves each one.

Adding a field means adding a :class:`FilterField` member *and* a
:data:`FIELD_TABLE` entry; :func:`verify_field_table` runs at import so a
mismatch fails at startup instead of at query time.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Literal, Mapping, Optional

from .data_models import GameRecord
from .exceptions import FieldTableError
from .sports import derive_rest_flags

Side = Literal["home", "away"]
Resolver = Callable[[GameRecord, Optional[Side]], Any]


class FieldKind(str, Enum):
    NUMBER = "number"
    BOOLEAN = "boolean"
    STRING = "string"
    DATE = "date"


class FilterField(str, Enum):
    # Core
    SPORT = "sport"
    SEASON = "season"
    GAME_DATE = "gameDate"
    HOME_TEAM = "homeTeam"
    AWAY_TEAM = "awayTeam"
    # Scores
    HOME_SCORE = "homeScore"
    AWAY_SCORE = "awayScore"
    SCORE_DIFFERENCE = "scoreDifference"
    TOTAL_POINTS = "totalPoints"
    WINNER = "winner"
    # Rankings
    HOME_RANK = "homeRank"
    AWAY_RANK = "awayRank"
    HOME_KENPOM_RANK = "homeKenpomRank"
    AWAY_KENPOM_RANK = "awayKenpomRank"
    # Betting
    SPREAD = "spread"
    OVER_UNDER = "overUnder"
    SPREAD_RESULT = "spreadResult"
    OU_RESULT = "ouResult"
    # Context
    IS_CONFERENCE_GAME = "isConferenceGame"
    IS_PLAYOFF = "isPlayoff"
    IS_NEUTRAL_SITE = "isNeutralSite"
    # Scheduling
    WEEK = "week"
    DAY_OF_WEEK = "dayOfWeek"
    IS_PRIMETIME = "isPrimetime"
    PRIMETIME_SLOT = "primetimeSlot"
    # Weather
    WEATHER_CATEGORY = "weatherCategory"
    TEMPERATURE = "temperature"
    WIND_MPH = "windMph"
    # College football
    IS_BOWL_GAME = "isBowlGame"
    BOWL_NAME = "bowlName"
    # College basketball
    IS_NCAAT = "isNCAAT"
    IS_NIT = "isNIT"
    IS_CONF_TOURNEY = "isConfTourney"
    OVERTIMES = "overtimes"
    HOME_SEED = "homeSeed"
    AWAY_SEED = "awaySeed"
    # Efficiency ratings
    HOME_ADJ_EM = "homeAdjEM"
    AWAY_ADJ_EM = "awayAdjEM"
    HOME_ADJ_OE = "homeAdjOE"
    AWAY_ADJ_OE = "awayAdjOE"
    HOME_ADJ_DE = "homeAdjDE"
    AWAY_ADJ_DE = "awayAdjDE"
    HOME_ADJ_TEMPO = "homeAdjTempo"
    AWAY_ADJ_TEMPO = "awayAdjTempo"
    # Prediction feed
    FM_HOME_PRED = "fmHomePred"
    FM_AWAY_PRED = "fmAwayPred"
    FM_HOME_WIN_PROB = "fmHomeWinProb"
    FM_THRILL_SCORE = "fmThrillScore"
    # Rest
    HOME_REST_DAYS = "homeRestDays"
    AWAY_REST_DAYS = "awayRestDays"
    REST_ADVANTAGE = "restAdvantage"
    HOME_IS_BYE_WEEK = "homeIsByeWeek"
    AWAY_IS_BYE_WEEK = "awayIsByeWeek"
    IS_SHORT_WEEK = "isShortWeek"
    HOME_IS_BACK_TO_BACK = "homeIsBackToBack"
    AWAY_IS_BACK_TO_BACK = "awayIsBackToBack"
    # Conferences
    HOME_CONFERENCE = "homeConference"
    AWAY_CONFERENCE = "awayConference"
    # Matchup metrics
    EXPECTED_PACE = "expectedPace"
    PACE_MISMATCH = "paceMismatch"
    EFFICIENCY_GAP = "efficiencyGap"
    KENPOM_PRED_MARGIN = "kenpomPredMargin"
    IS_KENPOM_UPSET = "isKenpomUpset"
    GAME_STYLE = "gameStyle"
    # Computed
    MONTH = "month"
    YEAR = "year"
    MONTH_NAME = "monthName"
    # Perspective-aware
    IS_HOME = "isHome"
    IS_FAVORITE = "isFavorite"
    PERSPECTIVE_SPREAD = "perspectiveSpread"
    REST_DAYS = "restDays"
    OPPONENT_REST_DAYS = "opponentRestDays"
    RANK = "rank"
    OPPONENT_RANK = "opponentRank"


@dataclass(frozen=True)
class FieldSpec:
    kind: FieldKind
    resolver: Resolver
    perspective_aware: bool = False


def _attr(name: str) -> Resolver:
    def resolve(record: GameRecord, side: Optional[Side]) -> Any:
        value = getattr(record, name)
        if isinstance(value, Enum):
            return value.value
        return value

    return resolve


def _rest_flag(name: str) -> Resolver:
    def resolve(record: GameRecord, side: Optional[Side]) -> Any:
        stored = getattr(record, name)
        if stored is not None:
            return stored
        if record.home_rest_days is None and record.away_rest_days is None:
            return None
        flags = derive_rest_flags(record.sport, record.home_rest_days, record.away_rest_days)
        return getattr(flags, name)

    return resolve


def _rest_advantage(record: GameRecord, side: Optional[Side]) -> Any:
    if record.rest_advantage is not None:
        return record.rest_advantage
    if record.home_rest_days is None or record.away_rest_days is None:
        return None
    return record.home_rest_days - record.away_rest_days


def home_is_favorite(record: GameRecord) -> Optional[bool]:
    """Whether the home side is favored; a pick'em line counts the home side as favorite."""

    if record.spread is None:
        return None
    return record.spread <= 0


def _sided(home_attr: str, away_attr: str, opponent: bool = False) -> Resolver:
    def resolve(record: GameRecord, side: Optional[Side]) -> Any:
        if side is None:
            return None
        own_home = side == "home"
        if opponent:
            own_home = not own_home
        return getattr(record, home_attr if own_home else away_attr)

    return resolve


def _is_home(record: GameRecord, side: Optional[Side]) -> Any:
    if side is None:
        return None
    return side == "home"


def _is_favorite(record: GameRecord, side: Optional[Side]) -> Any:
    home_fav = home_is_favorite(record)
    if side is None or home_fav is None:
        return None
    return home_fav if side == "home" else not home_fav


def oriented_spread(record: GameRecord, side: Optional[Side]) -> Optional[float]:
    """Spread from ``side``'s view; positive always means that side is getting points."""

    if side is None or record.spread is None:
        return None
    return record.spread if side == "home" else -record.spread


_N, _B, _S, _D = FieldKind.NUMBER, FieldKind.BOOLEAN, FieldKind.STRING, FieldKind.DATE

FIELD_TABLE: Mapping[FilterField, FieldSpec] = {
    FilterField.SPORT: FieldSpec(_S, _attr("sport")),
    FilterField.SEASON: FieldSpec(_N, _attr("season")),
    FilterField.GAME_DATE: FieldSpec(_D, _attr("game_date")),
    FilterField.HOME_TEAM: FieldSpec(_S, _attr("home_team")),
    FilterField.AWAY_TEAM: FieldSpec(_S, _attr("away_team")),
    FilterField.HOME_SCORE: FieldSpec(_N, _attr("home_score")),
    FilterField.AWAY_SCORE: FieldSpec(_N, _attr("away_score")),
    FilterField.SCORE_DIFFERENCE: FieldSpec(_N, _attr("score_difference")),
    FilterField.TOTAL_POINTS: FieldSpec(_N, _attr("total_points")),
    FilterField.WINNER: FieldSpec(_S, _attr("winner")),
    FilterField.HOME_RANK: FieldSpec(_N, _attr("home_rank")),
    FilterField.AWAY_RANK: FieldSpec(_N, _attr("away_rank")),
    FilterField.HOME_KENPOM_RANK: FieldSpec(_N, _attr("home_kenpom_rank")),
    FilterField.AWAY_KENPOM_RANK: FieldSpec(_N, _attr("away_kenpom_rank")),
    FilterField.SPREAD: FieldSpec(_N, oriented_spread, perspective_aware=True),
    FilterField.OVER_UNDER: FieldSpec(_N, _attr("over_under")),
    FilterField.SPREAD_RESULT: FieldSpec(_S, _attr("spread_result")),
    FilterField.OU_RESULT: FieldSpec(_S, _attr("ou_result")),
    FilterField.IS_CONFERENCE_GAME: FieldSpec(_B, _attr("is_conference_game")),
    FilterField.IS_PLAYOFF: FieldSpec(_B, _attr("is_playoff")),
    FilterField.IS_NEUTRAL_SITE: FieldSpec(_B, _attr("is_neutral_site")),
    FilterField.WEEK: FieldSpec(_S, _attr("week")),
    FilterField.DAY_OF_WEEK: FieldSpec(_S, _attr("day_of_week")),
    FilterField.IS_PRIMETIME: FieldSpec(_B, _attr("is_primetime")),
    FilterField.PRIMETIME_SLOT: FieldSpec(_S, _attr("primetime_slot")),
    FilterField.WEATHER_CATEGORY: FieldSpec(_S, _attr("weather_category")),
    FilterField.TEMPERATURE: FieldSpec(_N, _attr("temperature")),
    FilterField.WIND_MPH: FieldSpec(_N, _attr("wind_mph")),
    FilterField.IS_BOWL_GAME: FieldSpec(_B, _attr("is_bowl_game")),
    FilterField.BOWL_NAME: FieldSpec(_S, _attr("bowl_name")),
    FilterField.IS_NCAAT: FieldSpec(_B, _attr("is_ncaat")),
    FilterField.IS_NIT: FieldSpec(_B, _attr("is_nit")),
    FilterField.IS_CONF_TOURNEY: FieldSpec(_B, _attr("is_conf_tourney")),
    FilterField.OVERTIMES: FieldSpec(_N, _attr("overtimes")),
    FilterField.HOME_SEED: FieldSpec(_N, _attr("home_seed")),
    FilterField.AWAY_SEED: FieldSpec(_N, _attr("away_seed")),
    FilterField.HOME_ADJ_EM: FieldSpec(_N, _attr("home_adj_em")),
    FilterField.AWAY_ADJ_EM: FieldSpec(_N, _attr("away_adj_em")),
    FilterField.HOME_ADJ_OE: FieldSpec(_N, _attr("home_adj_oe")),
    FilterField.AWAY_ADJ_OE: FieldSpec(_N, _attr("away_adj_oe")),
    FilterField.HOME_ADJ_DE: FieldSpec(_N, _attr("home_adj_de")),
    FilterField.AWAY_ADJ_DE: FieldSpec(_N, _attr("away_adj_de")),
    FilterField.HOME_ADJ_TEMPO: FieldSpec(_N, _attr("home_adj_tempo")),
    FilterField.AWAY_ADJ_TEMPO: FieldSpec(_N, _attr("away_adj_tempo")),
    FilterField.FM_HOME_PRED: FieldSpec(_N, _attr("fm_home_pred")),
    FilterField.FM_AWAY_PRED: FieldSpec(_N, _attr("fm_away_pred")),
    FilterField.FM_HOME_WIN_PROB: FieldSpec(_N, _attr("fm_home_win_prob")),
    FilterField.FM_THRILL_SCORE: FieldSpec(_N, _attr("fm_thrill_score")),
    FilterField.HOME_REST_DAYS: FieldSpec(_N, _attr("home_rest_days")),
    FilterField.AWAY_REST_DAYS: FieldSpec(_N, _attr("away_rest_days")),
    FilterField.REST_ADVANTAGE: FieldSpec(_N, _rest_advantage),
    FilterField.HOME_IS_BYE_WEEK: FieldSpec(_B, _rest_flag("home_is_bye_week")),
    FilterField.AWAY_IS_BYE_WEEK: FieldSpec(_B, _rest_flag("away_is_bye_week")),
    FilterField.IS_SHORT_WEEK: FieldSpec(_B, _rest_flag("is_short_week")),
    FilterField.HOME_IS_BACK_TO_BACK: FieldSpec(_B, _rest_flag("home_is_back_to_back")),
    FilterField.AWAY_IS_BACK_TO_BACK: FieldSpec(_B, _rest_flag("away_is_back_to_back")),
    FilterField.HOME_CONFERENCE: FieldSpec(_S, _attr("home_conference")),
    FilterField.AWAY_CONFERENCE: FieldSpec(_S, _attr("away_conference")),
    FilterField.EXPECTED_PACE: FieldSpec(_N, _attr("expected_pace")),
    FilterField.PACE_MISMATCH: FieldSpec(_N, _attr("pace_mismatch")),
    FilterField.EFFICIENCY_GAP: FieldSpec(_N, _attr("efficiency_gap")),
    FilterField.KENPOM_PRED_MARGIN: FieldSpec(_N, _attr("kenpom_pred_margin")),
    FilterField.IS_KENPOM_UPSET: FieldSpec(_B, _attr("is_kenpom_upset")),
    FilterField.GAME_STYLE: FieldSpec(_S, _attr("game_style")),
    FilterField.MONTH: FieldSpec(_N, _attr("month")),
    FilterField.YEAR: FieldSpec(_N, _attr("year")),
    FilterField.MONTH_NAME: FieldSpec(_S, _attr("month_name")),
    FilterField.IS_HOME: FieldSpec(_B, _is_home, perspective_aware=True),
    FilterField.IS_FAVORITE: FieldSpec(_B, _is_favorite, perspective_aware=True),
    FilterField.PERSPECTIVE_SPREAD: FieldSpec(_N, oriented_spread, perspective_aware=True),
    FilterField.REST_DAYS: FieldSpec(_N, _sided("home_rest_days", "away_rest_days"), perspective_aware=True),
    FilterField.OPPONENT_REST_DAYS: FieldSpec(
        _N, _sided("home_rest_days", "away_rest_days", opponent=True), perspective_aware=True
    ),
    FilterField.RANK: FieldSpec(_N, _sided("home_rank", "away_rank"), perspective_aware=True),
    FilterField.OPPONENT_RANK: FieldSpec(
        _N, _sided("home_rank", "away_rank", opponent=True), perspective_aware=True
    ),
}


def verify_field_table(table: Mapping[FilterField, FieldSpec] | None = None) -> None:
    """Raise :class:`FieldTableError` when the whitelist and resolver table disagree."""

    table = FIELD_TABLE if table is None else table
    missing = sorted(field.value for field in FilterField if field not in table)
    extra = sorted(str(key) for key in table if not isinstance(key, FilterField))
    broken = sorted(
        field.value
        for field, spec in table.items()
        if isinstance(field, FilterField)
        and (not isinstance(spec, FieldSpec) or not callable(spec.resolver))
    )
    if missing or extra or broken:
        raise FieldTableError(
            "Field table out of sync with whitelist: "
            f"missing={missing or '-'} unknown={extra or '-'} invalid={broken or '-'}"
        )


def field_spec(field: FilterField | str) -> FieldSpec:
    return FIELD_TABLE[FilterField(field)]


def resolve_field(record: GameRecord, field: FilterField | str, side: Optional[Side] = None) -> Any:
    """Resolve a whitelisted field on ``record`` as seen from ``side``."""

    return field_spec(field).resolver(record, side)


verify_field_table()
