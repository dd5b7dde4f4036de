"""Perspective orientation, trend summaries and the query pipeline."""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Iterable, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from .data_models import (
    GameRecord,
    OutcomeBucket,
    Perspective,
    SeasonBreakdown,
    SpreadResult,
    TotalResult,
    TrendSummary,
)
from .fields import Side, home_is_favorite, oriented_spread, resolve_field
from .filters import matches_all
from .logging_utils import configure_logging
from .query import TrendQuery

LOGGER = configure_logging(__name__)


def team_side(record: GameRecord, team: str) -> Optional[Side]:
    """Which side ``team`` played on: exact case-insensitive name first, then substring."""

    needle = team.strip().lower()
    if not needle:
        return None
    home = record.home_team.lower()
    away = record.away_team.lower()
    if home == needle:
        return "home"
    if away == needle:
        return "away"
    if needle in home:
        return "home"
    if needle in away:
        return "away"
    return None


def _flip(side: Optional[Side]) -> Optional[Side]:
    if side is None:
        return None
    return "away" if side == "home" else "home"


def perspective_side(
    record: GameRecord, perspective: Perspective | str, team: Optional[str] = None
) -> Optional[Side]:
    """Resolve the side a perspective looks from, or ``None`` when the record is ineligible.

    Favorite/underdog need a spread; team/opponent need the team to appear in the game.
    """

    perspective = Perspective(perspective)
    if perspective is Perspective.HOME:
        return "home"
    if perspective is Perspective.AWAY:
        return "away"
    if perspective in (Perspective.FAVORITE, Perspective.UNDERDOG):
        home_fav = home_is_favorite(record)
        if home_fav is None:
            return None
        favorite: Side = "home" if home_fav else "away"
        return favorite if perspective is Perspective.FAVORITE else _flip(favorite)
    if not team:
        return None
    side = team_side(record, team)
    return side if perspective is Perspective.TEAM else _flip(side)


def _ats_outcome(record: GameRecord, side: Side) -> Optional[SpreadResult]:
    result = record.spread_result
    if result is None or result is SpreadResult.PUSH or side == "home":
        return result
    return SpreadResult.LOST if result is SpreadResult.COVERED else SpreadResult.COVERED


def _mean(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    return round(sum(values) / len(values), 1)


def summarize(
    records: Iterable[GameRecord], perspective: Perspective | str = Perspective.HOME, team: Optional[str] = None
) -> TrendSummary:
    """Fold records into SU, ATS and O/U buckets from one perspective.

    Each bucket only counts the records that carry what it needs: SU needs
    both scores and excludes ties, ATS needs a settled spread result and O/U
    a settled total. Records the perspective cannot orient are skipped.
    """

    su_w = su_l = 0
    ats_w = ats_l = ats_p = 0
    ou_w = ou_l = ou_p = 0
    points_for: list[float] = []
    points_against: list[float] = []
    totals: list[float] = []
    margins: list[float] = []
    spreads: list[float] = []
    lines: list[float] = []
    seasons: dict[int, dict[str, int]] = defaultdict(
        lambda: {"games": 0, "wins": 0, "losses": 0, "ats_covered": 0, "ats_lost": 0}
    )
    counted = 0

    for record in records:
        side = perspective_side(record, perspective, team)
        if side is None:
            LOGGER.debug("Skipping %s: no %s side", record.game_id or record.game_date, perspective)
            continue
        counted += 1
        season = seasons[record.season]
        season["games"] += 1

        if record.is_final:
            own, other = (
                (record.home_score, record.away_score) if side == "home" else (record.away_score, record.home_score)
            )
            points_for.append(own)
            points_against.append(other)
            totals.append(own + other)
            margins.append(own - other)
            if own > other:
                su_w += 1
                season["wins"] += 1
            elif own < other:
                su_l += 1
                season["losses"] += 1

        ats = _ats_outcome(record, side)
        if ats is SpreadResult.COVERED:
            ats_w += 1
            season["ats_covered"] += 1
        elif ats is SpreadResult.LOST:
            ats_l += 1
            season["ats_lost"] += 1
        elif ats is SpreadResult.PUSH:
            ats_p += 1

        if record.ou_result is TotalResult.OVER:
            ou_w += 1
        elif record.ou_result is TotalResult.UNDER:
            ou_l += 1
        elif record.ou_result is TotalResult.PUSH:
            ou_p += 1

        spread = oriented_spread(record, side)
        if spread is not None:
            spreads.append(spread)
        if record.over_under is not None:
            lines.append(record.over_under)

    return TrendSummary(
        total_games=counted,
        straight_up=OutcomeBucket.from_counts(su_w, su_l),
        ats=OutcomeBucket.from_counts(ats_w, ats_l, ats_p),
        over_under=OutcomeBucket.from_counts(ou_w, ou_l, ou_p),
        avg_points_for=_mean(points_for),
        avg_points_against=_mean(points_against),
        avg_total_points=_mean(totals),
        avg_margin=_mean(margins),
        avg_spread=_mean(spreads),
        avg_over_under=_mean(lines),
        by_season=[SeasonBreakdown(season=key, **seasons[key]) for key in sorted(seasons)],
    )


class TrendResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: TrendQuery
    games: list[GameRecord]
    summary: TrendSummary


def _sort_key(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


def _order(games: list[GameRecord], query: TrendQuery) -> list[GameRecord]:
    if query.order_by is None:
        return sorted(games, key=lambda game: game.game_date, reverse=True)

    field = query.order_by.field
    keyed = [
        (resolve_field(game, field, perspective_side(game, query.perspective, query.team)), game)
        for game in games
    ]
    present = [(value, game) for value, game in keyed if value is not None]
    absent = [game for value, game in keyed if value is None]
    present.sort(key=lambda item: _sort_key(item[0]), reverse=query.order_by.direction == "desc")
    return [game for _, game in present] + absent


def evaluate_query(query: TrendQuery, records: Iterable[GameRecord]) -> TrendResult:
    """Run a trend query: sport, seasons, team, filters, perspective, order, limit, summary.

    The function is pure; the same query over the same records always yields
    the same games and summary.
    """

    pool = list(records)
    if query.sport != "ALL":
        pool = [game for game in pool if game.sport.value == query.sport]
    if query.season_range is not None:
        start, end = query.season_range
        pool = [game for game in pool if start <= game.season <= end]
    if query.team:
        pool = [game for game in pool if team_side(game, query.team) is not None]

    eligible = []
    for game in pool:
        side = perspective_side(game, query.perspective, query.team)
        if matches_all(game, query.filters, side) and side is not None:
            eligible.append(game)

    ordered = _order(eligible, query)
    if query.limit is not None:
        ordered = ordered[: query.limit]

    summary = summarize(ordered, query.perspective, query.team)
    LOGGER.debug(
        "Query %s/%s with %d filters matched %d games",
        query.sport,
        query.perspective.value,
        len(query.filters),
        len(ordered),
    )
    return TrendResult(query=query, games=ordered, summary=summary)
