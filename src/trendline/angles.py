"""Situational angle catalog, reverse-lookup discovery and matchup angles."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Sequence

from .config import get_settings
from .data_models import (
    Favors,
    GameRecord,
    Market,
    Perspective,
    SignificanceResult,
    SituationalAngle,
    Sport,
    SpreadResult,
    Strength,
    TrendSummary,
    format_record,
)
from .fields import FilterField
from .filters import matches_all
from .logging_utils import configure_logging
from .query import Filter, FilterOperator, TrendQuery, build_filter
from .significance import compute_significance, strength_at_least, strongest
from .sports import get_sport_config
from .trends import evaluate_query, perspective_side, summarize, team_side

LOGGER = configure_logging(__name__)

ALL_SPORTS = (Sport.NFL, Sport.NCAAF, Sport.NCAAMB)
FOOTBALL = (Sport.NFL, Sport.NCAAF)
COLLEGE = (Sport.NCAAF, Sport.NCAAMB)

# Market-level significance is only computed once this many outcomes are decided.
MIN_DECIDED_FOR_MARKET = 10
HEADLINE_MIN_SAMPLE = 20
H2H_MIN_MEETINGS = 3
RECENT_FORM_MIN_DECIDED = 5


class AngleCategory(str, Enum):
    WEATHER = "weather"
    SPREAD = "spread"
    REST = "rest"
    PRIMETIME = "primetime"
    RANKING = "ranking"
    CONFERENCE = "conference"
    PLAYOFF = "playoff"
    MONTH = "month"
    COMBINED = "combined"


@dataclass(frozen=True)
class AngleTemplate:
    """A named, reusable filter combination evaluated from one perspective."""

    id: str
    label: str
    category: AngleCategory
    sports: tuple[Sport, ...]
    perspective: Perspective
    filters: tuple[Filter, ...]
    min_sample: Optional[int] = None

    def applies_to(self, sport: Sport | str) -> bool:
        return Sport(sport) in self.sports


def _f(field_: FilterField, operator: FilterOperator, value: object) -> Filter:
    return build_filter(field_, operator, value)


_EQ, _LT, _LTE, _GT, _GTE, _BETWEEN = (
    FilterOperator.EQ,
    FilterOperator.LT,
    FilterOperator.LTE,
    FilterOperator.GT,
    FilterOperator.GTE,
    FilterOperator.BETWEEN,
)
_HOME, _AWAY, _FAV, _DOG = Perspective.HOME, Perspective.AWAY, Perspective.FAVORITE, Perspective.UNDERDOG
F = FilterField

# Spread filters are perspective-oriented: negative gives points, positive gets them.
ANGLE_TEMPLATES: tuple[AngleTemplate, ...] = (
    # Weather
    AngleTemplate("cold-home", "Home teams in cold weather (< 32°F)", AngleCategory.WEATHER, FOOTBALL, _HOME,
                  (_f(F.TEMPERATURE, _LT, 32),)),
    AngleTemplate("cold-away", "Away teams in cold weather (< 32°F)", AngleCategory.WEATHER, FOOTBALL, _AWAY,
                  (_f(F.TEMPERATURE, _LT, 32),)),
    AngleTemplate("cold-underdog", "Underdogs in cold weather (< 32°F)", AngleCategory.WEATHER, FOOTBALL, _DOG,
                  (_f(F.TEMPERATURE, _LT, 32),)),
    AngleTemplate("wind-home", "Home teams in windy games (20+ mph)", AngleCategory.WEATHER, FOOTBALL, _HOME,
                  (_f(F.WIND_MPH, _GTE, 20),)),
    AngleTemplate("snow-home", "Home teams in snow games", AngleCategory.WEATHER, FOOTBALL, _HOME,
                  (_f(F.WEATHER_CATEGORY, _EQ, "SNOW"),)),
    AngleTemplate("rain-underdog", "Underdogs in rain games", AngleCategory.WEATHER, FOOTBALL, _DOG,
                  (_f(F.WEATHER_CATEGORY, _EQ, "RAIN"),)),
    # Spread
    AngleTemplate("home-big-fav", "Home favorites of 10+ points", AngleCategory.SPREAD, ALL_SPORTS, _HOME,
                  (_f(F.SPREAD, _LTE, -10),)),
    AngleTemplate("home-small-fav", "Home favorites of 1-3 points", AngleCategory.SPREAD, ALL_SPORTS, _HOME,
                  (_f(F.SPREAD, _BETWEEN, [-3, -1]),)),
    AngleTemplate("away-underdog-3-7", "Road underdogs of 3-7 points", AngleCategory.SPREAD, ALL_SPORTS, _AWAY,
                  (_f(F.SPREAD, _BETWEEN, [3, 7]),)),
    AngleTemplate("home-underdog", "Home underdogs", AngleCategory.SPREAD, ALL_SPORTS, _HOME,
                  (_f(F.SPREAD, _GT, 0),)),
    AngleTemplate("big-underdog", "Underdogs of 14+ points", AngleCategory.SPREAD, ALL_SPORTS, _DOG,
                  (_f(F.SPREAD, _GTE, 14),)),
    AngleTemplate("pick-em", "Pick'em games (spread within 1 point)", AngleCategory.SPREAD, ALL_SPORTS, _HOME,
                  (_f(F.SPREAD, _BETWEEN, [-1, 1]),)),
    # Rest
    AngleTemplate("rest-advantage-home", "Home teams with rest advantage (4+ extra days)", AngleCategory.REST,
                  FOOTBALL, _HOME, (_f(F.REST_ADVANTAGE, _GTE, 4),)),
    AngleTemplate("bye-week-home", "Home teams coming off bye week", AngleCategory.REST, (Sport.NFL,), _HOME,
                  (_f(F.HOME_IS_BYE_WEEK, _EQ, True),)),
    AngleTemplate("short-week-away", "Away teams on short week", AngleCategory.REST, (Sport.NFL,), _AWAY,
                  (_f(F.IS_SHORT_WEEK, _EQ, True),)),
    AngleTemplate("back-to-back-home", "Home teams in back-to-back games", AngleCategory.REST, (Sport.NCAAMB,),
                  _HOME, (_f(F.HOME_IS_BACK_TO_BACK, _EQ, True),)),
    AngleTemplate("back-to-back-away", "Away teams in back-to-back games", AngleCategory.REST, (Sport.NCAAMB,),
                  _AWAY, (_f(F.AWAY_IS_BACK_TO_BACK, _EQ, True),)),
    # Primetime
    AngleTemplate("primetime-home", "Home teams in primetime games", AngleCategory.PRIMETIME, (Sport.NFL,), _HOME,
                  (_f(F.IS_PRIMETIME, _EQ, True),)),
    AngleTemplate("primetime-underdog", "Underdogs in primetime games", AngleCategory.PRIMETIME, (Sport.NFL,),
                  _DOG, (_f(F.IS_PRIMETIME, _EQ, True),)),
    AngleTemplate("mnf-home", "Home teams on Monday Night Football", AngleCategory.PRIMETIME, (Sport.NFL,), _HOME,
                  (_f(F.DAY_OF_WEEK, _EQ, "Mon"),)),
    AngleTemplate("thursday-home", "Home teams in Thursday games", AngleCategory.PRIMETIME, (Sport.NFL,), _HOME,
                  (_f(F.DAY_OF_WEEK, _EQ, "Thu"),)),
    # Ranking
    AngleTemplate("ranked-vs-unranked-home", "Ranked home teams vs unranked opponents", AngleCategory.RANKING,
                  (Sport.NCAAF,), _HOME, (_f(F.HOME_RANK, _LTE, 25), _f(F.AWAY_RANK, _EQ, None))),
    AngleTemplate("unranked-home-vs-ranked", "Unranked home teams vs ranked opponents", AngleCategory.RANKING,
                  (Sport.NCAAF,), _HOME, (_f(F.HOME_RANK, _EQ, None), _f(F.AWAY_RANK, _LTE, 25))),
    AngleTemplate("top10-matchup", "Top 10 vs Top 10 matchups", AngleCategory.RANKING, (Sport.NCAAF,), _HOME,
                  (_f(F.HOME_RANK, _LTE, 10), _f(F.AWAY_RANK, _LTE, 10))),
    # Conference
    AngleTemplate("conference-home", "Home teams in conference games", AngleCategory.CONFERENCE, COLLEGE, _HOME,
                  (_f(F.IS_CONFERENCE_GAME, _EQ, True),)),
    AngleTemplate("non-conference-home", "Home teams in non-conference games", AngleCategory.CONFERENCE, COLLEGE,
                  _HOME, (_f(F.IS_CONFERENCE_GAME, _EQ, False),)),
    # Playoff / postseason
    AngleTemplate("bowl-favorite", "Favorites in bowl games", AngleCategory.PLAYOFF, (Sport.NCAAF,), _FAV,
                  (_f(F.IS_BOWL_GAME, _EQ, True),)),
    AngleTemplate("bowl-underdog", "Underdogs in bowl games", AngleCategory.PLAYOFF, (Sport.NCAAF,), _DOG,
                  (_f(F.IS_BOWL_GAME, _EQ, True),)),
    AngleTemplate("playoff-home", "Home teams in playoff games", AngleCategory.PLAYOFF, (Sport.NFL,), _HOME,
                  (_f(F.IS_PLAYOFF, _EQ, True),)),
    AngleTemplate("playoff-underdog", "Underdogs in playoff games", AngleCategory.PLAYOFF, (Sport.NFL,), _DOG,
                  (_f(F.IS_PLAYOFF, _EQ, True),)),
    AngleTemplate("ncaat-underdog", "Underdogs in NCAA Tournament", AngleCategory.PLAYOFF, (Sport.NCAAMB,), _DOG,
                  (_f(F.IS_NCAAT, _EQ, True),)),
    AngleTemplate("ncaat-high-seed", "Higher seeds (1-4) in NCAA Tournament", AngleCategory.PLAYOFF,
                  (Sport.NCAAMB,), _HOME, (_f(F.IS_NCAAT, _EQ, True), _f(F.HOME_SEED, _LTE, 4))),
    AngleTemplate("conf-tourney-underdog", "Underdogs in conference tournaments", AngleCategory.PLAYOFF,
                  (Sport.NCAAMB,), _DOG, (_f(F.IS_CONF_TOURNEY, _EQ, True),)),
    # Month
    AngleTemplate("september-home", "Home teams in September (early season)", AngleCategory.MONTH, FOOTBALL, _HOME,
                  (_f(F.MONTH, _EQ, 9),)),
    AngleTemplate("november-home", "Home teams in November", AngleCategory.MONTH, FOOTBALL, _HOME,
                  (_f(F.MONTH, _EQ, 11),)),
    AngleTemplate("december-underdog", "Underdogs in December", AngleCategory.MONTH, FOOTBALL, _DOG,
                  (_f(F.MONTH, _EQ, 12),)),
    AngleTemplate("march-underdog", "Underdogs in March (tournament time)", AngleCategory.MONTH, (Sport.NCAAMB,),
                  _DOG, (_f(F.MONTH, _EQ, 3),)),
    # Combined
    AngleTemplate("cold-home-underdog", "Home underdogs in cold weather (< 32°F)", AngleCategory.COMBINED, FOOTBALL,
                  _HOME, (_f(F.TEMPERATURE, _LT, 32), _f(F.SPREAD, _GTE, 1))),
    AngleTemplate("primetime-road-dog", "Road underdogs in primetime", AngleCategory.COMBINED, (Sport.NFL,), _AWAY,
                  (_f(F.IS_PRIMETIME, _EQ, True), _f(F.IS_FAVORITE, _EQ, False))),
    AngleTemplate("bye-week-fav", "Home favorites coming off bye week", AngleCategory.COMBINED, (Sport.NFL,), _HOME,
                  (_f(F.HOME_IS_BYE_WEEK, _EQ, True), _f(F.IS_FAVORITE, _EQ, True))),
    AngleTemplate("neutral-underdog", "Underdogs at neutral sites", AngleCategory.COMBINED, COLLEGE, _DOG,
                  (_f(F.IS_NEUTRAL_SITE, _EQ, True),)),
    AngleTemplate("kenpom-upset-pick", "Efficiency-rated toss-ups (predicted margin within 3)",
                  AngleCategory.COMBINED, (Sport.NCAAMB,), _DOG, (_f(F.KENPOM_PRED_MARGIN, _BETWEEN, [-3, 3]),)),
)


def get_angle_templates(sport: Sport | str | None = None) -> list[AngleTemplate]:
    if sport is None:
        return list(ANGLE_TEMPLATES)
    return [template for template in ANGLE_TEMPLATES if template.applies_to(sport)]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_interest_score(significance: SignificanceResult, total_games: int) -> int:
    """Rank how interesting a finding is from its p-value, effect size and sample."""

    score = 0.0
    p = significance.p_value
    if p < 0.001:
        score += 40
    elif p < 0.01:
        score += 30
    elif p < 0.05:
        score += 20
    elif p < 0.1:
        score += 10

    if significance.observed_rate is not None:
        score += _round_half_up(abs(significance.observed_rate - significance.baseline_rate) * 200)

    if total_games >= 100:
        score += 20
    elif total_games >= 50:
        score += 15
    elif total_games >= 30:
        score += 10
    elif total_games >= 20:
        score += 5

    if significance.strength is Strength.STRONG:
        score *= 1.5
    elif significance.strength is Strength.MODERATE:
        score *= 1.2
    return _round_half_up(score)


def _pct(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value:g}%"


@dataclass(frozen=True)
class DiscoveredAngle:
    template: AngleTemplate
    sport: Sport
    summary: TrendSummary
    ats_significance: SignificanceResult
    ou_significance: Optional[SignificanceResult]
    win_significance: SignificanceResult
    headline: str
    interest_score: int
    season_range: Optional[tuple[int, int]] = None

    @property
    def best_strength(self) -> Strength:
        sigs = [self.ats_significance, self.win_significance]
        if self.ou_significance is not None:
            sigs.append(self.ou_significance)
        return strongest(sig.strength for sig in sigs)

    @property
    def is_significant(self) -> bool:
        return self.ats_significance.is_significant or self.win_significance.is_significant


@dataclass(frozen=True)
class ReverseLookupResult:
    angles: list[DiscoveredAngle] = field(default_factory=list)
    templates_scanned: int = 0
    significant_count: int = 0


def _headline(
    template: AngleTemplate,
    sport: Sport,
    summary: TrendSummary,
    ats: SignificanceResult,
    ou: Optional[SignificanceResult],
    win: SignificanceResult,
) -> str:
    parts: list[str] = []
    ats_pct = summary.ats.win_pct
    over_pct = summary.over_under.win_pct
    if ats.is_significant and ats.sample_size >= HEADLINE_MIN_SAMPLE:
        parts.append(f"{summary.ats.record} ATS ({_pct(ats_pct)})")
    if win.is_significant and win.sample_size >= HEADLINE_MIN_SAMPLE:
        parts.append(f"{_pct(summary.straight_up.win_pct)} win rate")
    if ou is not None and ou.is_significant and ou.sample_size >= HEADLINE_MIN_SAMPLE and over_pct is not None:
        if over_pct > 55:
            parts.append(f"{summary.over_under.record} O/U ({over_pct:g}% overs)")
        elif over_pct < 45:
            parts.append(f"{summary.over_under.record} O/U ({100 - over_pct:.1f}% unders)")

    if not parts:
        if ats_pct is not None and (ats_pct > 55 or ats_pct < 45):
            parts.append(f"{summary.ats.record} ATS ({_pct(ats_pct)})")
        else:
            parts.append(f"{_pct(summary.straight_up.win_pct)} win rate in {summary.total_games} games")
    return f"{sport.value} {template.label}: {', '.join(parts)}"


def _market_significance(bucket_wins: int, bucket_losses: int) -> Optional[SignificanceResult]:
    if bucket_wins + bucket_losses < MIN_DECIDED_FOR_MARKET:
        return None
    return compute_significance(bucket_wins, bucket_losses, 0.5)


def evaluate_template(
    template: AngleTemplate,
    records: Iterable[GameRecord],
    sport: Sport | str,
    season_range: Optional[tuple[int, int]] = None,
    team: Optional[str] = None,
    min_sample: Optional[int] = None,
) -> Optional[DiscoveredAngle]:
    """Run one template as a trend query; ``None`` when the sample is too small."""

    sport = Sport(sport)
    query = TrendQuery(
        sport=sport.value,
        team=team,
        perspective=template.perspective,
        filters=list(template.filters),
        season_range=season_range,
    )
    summary = evaluate_query(query, records).summary

    floor = min_sample or template.min_sample or get_settings().MIN_ANGLE_SAMPLE
    if summary.total_games < floor:
        LOGGER.debug("Template %s: %d games below sample floor %d", template.id, summary.total_games, floor)
        return None

    ats = _market_significance(summary.ats.wins, summary.ats.losses) or compute_significance(0, 0)
    ou = _market_significance(summary.over_under.wins, summary.over_under.losses)
    baseline = get_sport_config(sport).win_baseline(template.perspective.value)
    win = compute_significance(summary.straight_up.wins, summary.straight_up.losses, baseline)

    interest = max(
        compute_interest_score(ats, summary.total_games),
        compute_interest_score(ou, summary.total_games) if ou is not None else 0,
        compute_interest_score(win, summary.total_games),
    )
    return DiscoveredAngle(
        template=template,
        sport=sport,
        summary=summary,
        ats_significance=ats,
        ou_significance=ou,
        win_significance=win,
        headline=_headline(template, sport, summary, ats, ou, win),
        interest_score=interest,
        season_range=season_range,
    )


def discover_angles(
    records: Sequence[GameRecord],
    sport: Sport | str | None = None,
    team: Optional[str] = None,
    season_range: Optional[tuple[int, int]] = None,
    max_results: int = 25,
    min_strength: Strength | str = Strength.WEAK,
    categories: Optional[Iterable[AngleCategory | str]] = None,
) -> ReverseLookupResult:
    """Scan every applicable template and rank the findings by interest score."""

    sports = [Sport(sport)] if sport is not None else list(ALL_SPORTS)
    wanted = {AngleCategory(category) for category in categories} if categories is not None else None
    floor = Strength(min_strength)

    discovered: list[DiscoveredAngle] = []
    scanned = 0
    for scan_sport in sports:
        for template in get_angle_templates(scan_sport):
            if wanted is not None and template.category not in wanted:
                continue
            scanned += 1
            angle = evaluate_template(template, records, scan_sport, season_range, team)
            if angle is None or not strength_at_least(angle.best_strength, floor):
                continue
            discovered.append(angle)

    discovered.sort(key=lambda angle: angle.interest_score, reverse=True)
    LOGGER.info("Scanned %d templates, %d angles cleared %s", scanned, len(discovered), floor.value)
    return ReverseLookupResult(
        angles=discovered[:max_results],
        templates_scanned=scanned,
        significant_count=sum(1 for angle in discovered if angle.is_significant),
    )


def _other(side: str) -> str:
    return "away" if side == "home" else "home"


def _directional_favors(significance: SignificanceResult, yes: str, no: str) -> Favors:
    rate = significance.observed_rate
    if rate is None or rate == significance.baseline_rate:
        return Favors.NEUTRAL
    return Favors(yes if rate > significance.baseline_rate else no)


def _angle(
    angle_id: str,
    description: str,
    favors: Favors,
    market: Market,
    record: str,
    rate: Optional[float],
    significance: SignificanceResult,
    total_games: int,
) -> SituationalAngle:
    return SituationalAngle(
        angle_id=angle_id,
        description=description,
        favors=favors,
        market=market,
        record=record,
        rate=rate,
        sample_size=round(significance.sample_size),
        significance=significance,
        interest_score=compute_interest_score(significance, total_games),
    )


def _template_angles(game: GameRecord, history: Sequence[GameRecord], season_range) -> list[SituationalAngle]:
    angles: list[SituationalAngle] = []
    for template in get_angle_templates(game.sport):
        side = perspective_side(game, template.perspective)
        if side is None or not matches_all(game, template.filters, side):
            continue
        found = evaluate_template(template, history, game.sport, season_range)
        if found is None:
            continue
        summary = found.summary
        if found.ats_significance.strength is not Strength.NOISE:
            angles.append(
                _angle(
                    f"{template.id}:ats",
                    f"{template.label} ATS",
                    _directional_favors(found.ats_significance, side, _other(side)),
                    Market.ATS,
                    summary.ats.record,
                    summary.ats.win_pct,
                    found.ats_significance,
                    summary.total_games,
                )
            )
        if found.ou_significance is not None and found.ou_significance.strength is not Strength.NOISE:
            angles.append(
                _angle(
                    f"{template.id}:ou",
                    f"{template.label} O/U",
                    _directional_favors(found.ou_significance, "over", "under"),
                    Market.OU,
                    summary.over_under.record,
                    summary.over_under.win_pct,
                    found.ou_significance,
                    summary.total_games,
                )
            )
    return angles


def _team_angles(game: GameRecord, history: Sequence[GameRecord], season: int) -> list[SituationalAngle]:
    span = get_settings().DEFAULT_SEASON_SPAN
    seasons = (season - span + 1, season)
    label = f"last {span} seasons"
    angles: list[SituationalAngle] = []

    def _team_summary(team: str, filters: list[Filter]) -> TrendSummary:
        query = TrendQuery(
            sport=game.sport.value,
            team=team,
            perspective=Perspective.TEAM,
            filters=filters,
            season_range=seasons,
        )
        return evaluate_query(query, history).summary

    for team, at_home, side in ((game.home_team, True, "home"), (game.away_team, False, "away")):
        summary = _team_summary(team, [_f(F.IS_HOME, _EQ, at_home)])
        if summary.total_games < 10 or summary.ats.decided < 5:
            continue
        sig = compute_significance(summary.ats.wins, summary.ats.losses, 0.5)
        if sig.strength is Strength.NOISE:
            continue
        where = "at home" if at_home else "on the road"
        angles.append(
            _angle(
                f"team-{side}-ats",
                f"{team} {where} ATS ({label})",
                _directional_favors(sig, side, _other(side)),
                Market.ATS,
                summary.ats.record,
                summary.ats.win_pct,
                sig,
                summary.total_games,
            )
        )

    if game.over_under is not None:
        summary = _team_summary(game.home_team, [])
        if summary.over_under.decided >= 10:
            sig = compute_significance(summary.over_under.wins, summary.over_under.losses, 0.5)
            if sig.strength is not Strength.NOISE:
                angles.append(
                    _angle(
                        "team-home-ou",
                        f"{game.home_team} games O/U trend ({label})",
                        _directional_favors(sig, "over", "under"),
                        Market.OU,
                        summary.over_under.record,
                        summary.over_under.win_pct,
                        sig,
                        summary.total_games,
                    )
                )
    return angles


def _prior_games(game: GameRecord, history: Sequence[GameRecord]) -> list[GameRecord]:
    """Settled games of the same sport played before ``game``, newest first."""

    prior = [
        record
        for record in history
        if record.sport is game.sport and record.is_final and record.game_date < game.game_date
    ]
    return sorted(prior, key=lambda record: record.game_date, reverse=True)


def head_to_head_games(game: GameRecord, history: Sequence[GameRecord]) -> list[GameRecord]:
    """Earlier meetings of the two teams at either venue, newest first."""

    teams = {game.home_team.lower(), game.away_team.lower()}
    return [
        record
        for record in _prior_games(game, history)
        if {record.home_team.lower(), record.away_team.lower()} == teams
    ]


def _h2h_angles(game: GameRecord, history: Sequence[GameRecord]) -> list[SituationalAngle]:
    meetings = head_to_head_games(game, history)
    if len(meetings) < H2H_MIN_MEETINGS:
        return []
    # Oriented to the team hosting this game, whichever venue each meeting was at.
    summary = summarize(meetings, Perspective.TEAM, game.home_team)
    matchup = f"{game.away_team} @ {game.home_team}"
    angles: list[SituationalAngle] = []
    if summary.ats.decided >= H2H_MIN_MEETINGS:
        sig = compute_significance(summary.ats.wins, summary.ats.losses, 0.5)
        angles.append(
            _angle(
                "h2h-ats",
                f"{matchup} head-to-head ATS ({game.home_team} {summary.ats.record})",
                _directional_favors(sig, "home", "away"),
                Market.ATS,
                summary.ats.record,
                summary.ats.win_pct,
                sig,
                summary.total_games,
            )
        )
    if summary.over_under.decided >= H2H_MIN_MEETINGS:
        sig = compute_significance(summary.over_under.wins, summary.over_under.losses, 0.5)
        angles.append(
            _angle(
                "h2h-ou",
                f"{matchup} head-to-head O/U",
                _directional_favors(sig, "over", "under"),
                Market.OU,
                summary.over_under.record,
                summary.over_under.win_pct,
                sig,
                summary.total_games,
            )
        )
    return angles


def recent_ats_results(team: str, game: GameRecord, history: Sequence[GameRecord]) -> list[SpreadResult]:
    """The team's last few settled ATS results before ``game``, newest first."""

    limit = get_settings().RECENT_FORM_GAMES
    results: list[SpreadResult] = []
    for record in _prior_games(game, history):
        side = team_side(record, team)
        if side is None or record.spread_result is None:
            continue
        result = record.spread_result
        if side == "away" and result is not SpreadResult.PUSH:
            result = SpreadResult.LOST if result is SpreadResult.COVERED else SpreadResult.COVERED
        results.append(result)
        if len(results) == limit:
            break
    return results


def ats_streak(results: Sequence[SpreadResult]) -> int:
    """Length of the current cover (positive) or non-cover (negative) run; pushes are skipped."""

    streak = 0
    for result in results:
        if result is SpreadResult.PUSH:
            continue
        step = 1 if result is SpreadResult.COVERED else -1
        if streak and (streak > 0) != (step > 0):
            break
        streak += step
    return streak


def _recent_form_angles(game: GameRecord, history: Sequence[GameRecord]) -> list[SituationalAngle]:
    angles: list[SituationalAngle] = []
    for team, side in ((game.home_team, "home"), (game.away_team, "away")):
        results = recent_ats_results(team, game, history)
        covered = sum(1 for result in results if result is SpreadResult.COVERED)
        lost = sum(1 for result in results if result is SpreadResult.LOST)
        if covered + lost < RECENT_FORM_MIN_DECIDED:
            continue
        sig = compute_significance(covered, lost, 0.5)
        streak = ats_streak(results)
        description = f"{team} last {len(results)} ATS"
        if abs(streak) >= 3:
            description += f" ({'covered' if streak > 0 else 'failed to cover'} {abs(streak)} straight)"
        angles.append(
            _angle(
                f"recent-{side}-ats",
                description,
                _directional_favors(sig, side, _other(side)),
                Market.ATS,
                format_record(covered, lost, len(results) - covered - lost),
                round(covered / (covered + lost) * 100, 1),
                sig,
                len(results),
            )
        )
    return angles


def matchup_angles(
    game: GameRecord,
    history: Sequence[GameRecord],
    season: Optional[int] = None,
    season_range: Optional[tuple[int, int]] = None,
    max_angles: Optional[int] = None,
) -> list[SituationalAngle]:
    """Angles applicable to one upcoming game, oriented to its home/away and over/under sides.

    League templates are included when the game itself satisfies their
    filters; team angles cover the last few seasons up to ``season``, plus
    earlier head-to-head meetings and each team's recent ATS form.
    Noise is dropped and the strongest angles come first.
    """

    season = game.season if season is None else season
    angles = (
        _template_angles(game, history, season_range)
        + _team_angles(game, history, season)
        + _h2h_angles(game, history)
        + _recent_form_angles(game, history)
    )
    angles = [angle for angle in angles if angle.significance.strength is not Strength.NOISE]
    angles.sort(key=lambda angle: (angle.significance.strength.rank, angle.interest_score), reverse=True)
    LOGGER.debug("%s @ %s: %d applicable angles", game.away_team, game.home_team, len(angles))
    return angles[:max_angles] if max_angles is not None else angles


def prop_hit_angle(
    description: str,
    values: Iterable[float],
    line: float,
    angle_id: str = "prop-hit-rate",
) -> SituationalAngle:
    """Hit-rate angle for a player stat against a prop line; values equal to the line push."""

    hits = misses = pushes = 0
    for value in values:
        if value > line:
            hits += 1
        elif value < line:
            misses += 1
        else:
            pushes += 1
    sig = compute_significance(hits, misses, 0.5)
    decided = hits + misses
    rate = round(hits / decided * 100, 1) if decided else None
    return _angle(
        angle_id,
        description,
        _directional_favors(sig, "over", "under"),
        Market.PROP,
        format_record(hits, misses, pushes),
        rate,
        sig,
        hits + misses + pushes,
    )
