"""Per-sport configuration shared by the rest-day, baseline and angle logic."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Optional

from .data_models import Sport


@dataclass(frozen=True)
class RestFlags:
    home_is_bye_week: bool = False
    away_is_bye_week: bool = False
    is_short_week: bool = False
    home_is_back_to_back: bool = False
    away_is_back_to_back: bool = False


@dataclass(frozen=True)
class SportConfig:
    """Thresholds and baselines for one sport.

    A threshold of ``None`` means the concept does not apply to the sport
    (college basketball has no bye weeks, football has no back-to-backs).
    """

    sport: Sport
    bye_week_min_rest: Optional[int]
    short_week_max_rest: Optional[int]
    back_to_back_rest: Optional[int]
    season_start_month: int
    weather_relevant: bool
    season_named_by_end_year: bool = False
    home_win_baseline: float = 0.55
    away_win_baseline: float = 0.45
    neutral_baseline: float = 0.50

    def win_baseline(self, perspective: str) -> float:
        """Straight-up baseline for a perspective; non home/away views use a coin flip."""

        if perspective == "home":
            return self.home_win_baseline
        if perspective == "away":
            return self.away_win_baseline
        return self.neutral_baseline

    def derive_rest_flags(self, home_rest: Optional[int], away_rest: Optional[int]) -> RestFlags:
        """Derive bye/short-week/back-to-back flags from each side's rest days."""

        def _bye(rest: Optional[int]) -> bool:
            return self.bye_week_min_rest is not None and rest is not None and rest >= self.bye_week_min_rest

        def _b2b(rest: Optional[int]) -> bool:
            return self.back_to_back_rest is not None and rest is not None and rest == self.back_to_back_rest

        short = False
        if self.short_week_max_rest is not None:
            short = any(rest is not None and rest < self.short_week_max_rest for rest in (home_rest, away_rest))

        return RestFlags(
            home_is_bye_week=_bye(home_rest),
            away_is_bye_week=_bye(away_rest),
            is_short_week=short,
            home_is_back_to_back=_b2b(home_rest),
            away_is_back_to_back=_b2b(away_rest),
        )

    def season_for_date(self, game_date: dt.date) -> int:
        """Season label for a date, given when the season starts and which year names it."""

        started_this_year = game_date.month >= self.season_start_month
        if self.season_named_by_end_year:
            return game_date.year + 1 if started_this_year else game_date.year
        return game_date.year if started_this_year else game_date.year - 1


SPORT_CONFIGS: dict[Sport, SportConfig] = {
    Sport.NFL: SportConfig(
        sport=Sport.NFL,
        bye_week_min_rest=12,
        short_week_max_rest=6,
        back_to_back_rest=None,
        season_start_month=8,
        weather_relevant=True,
    ),
    Sport.NCAAF: SportConfig(
        sport=Sport.NCAAF,
        bye_week_min_rest=12,
        short_week_max_rest=6,
        back_to_back_rest=None,
        season_start_month=8,
        weather_relevant=True,
    ),
    # College basketball seasons are named by the year they end in.
    Sport.NCAAMB: SportConfig(
        sport=Sport.NCAAMB,
        bye_week_min_rest=None,
        short_week_max_rest=None,
        back_to_back_rest=1,
        season_start_month=11,
        weather_relevant=False,
        season_named_by_end_year=True,
    ),
}


def get_sport_config(sport: Sport | str) -> SportConfig:
    return SPORT_CONFIGS[Sport(sport)]


def derive_rest_flags(sport: Sport | str, home_rest: Optional[int], away_rest: Optional[int]) -> RestFlags:
    return get_sport_config(sport).derive_rest_flags(home_rest, away_rest)


def season_for_date(sport: Sport | str, game_date: dt.date) -> int:
    return get_sport_config(sport).season_for_date(game_date)
