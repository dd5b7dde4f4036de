"""Shared fixtures for the trendline test suite."""

from __future__ import annotations

import datetime as dt
from typing import Any, Callable

import pytest

from trendline.data_models import GameRecord, Market, SituationalAngle
from trendline.significance import compute_significance


def _game(**overrides: Any) -> GameRecord:
    data: dict[str, Any] = {
        "sport": "NFL",
        "season": 2023,
        "game_date": dt.date(2023, 10, 1),
        "home_team": "Kansas City Chiefs",
        "away_team": "Denver Broncos",
        "home_score": 27,
        "away_score": 17,
        "spread": -7.0,
        "over_under": 45.5,
        "spread_result": "COVERED",
        "ou_result": "UNDER",
    }
    data.update(overrides)
    return GameRecord.model_validate(data)


def _angle(
    favors: str,
    market: Market = Market.ATS,
    wins: int = 70,
    losses: int = 30,
    interest: int = 75,
    angle_id: str = "angle",
) -> SituationalAngle:
    significance = compute_significance(wins, losses)
    return SituationalAngle(
        angle_id=angle_id,
        description=f"{angle_id} favors {favors}",
        favors=favors,
        market=market,
        record=f"{wins}-{losses}",
        rate=round(wins / (wins + losses) * 100, 1),
        sample_size=wins + losses,
        significance=significance,
        interest_score=interest,
    )


@pytest.fixture()
def make_game() -> Callable[..., GameRecord]:
    return _game


@pytest.fixture()
def make_angle() -> Callable[..., SituationalAngle]:
    return _angle


@pytest.fixture()
def home_games() -> list[GameRecord]:
    """Thirty Chiefs home games: 20 covers and 10 non-covers, all won straight up when covering."""

    games = []
    for index in range(30):
        covered = index < 20
        games.append(
            _game(
                game_id=f"g{index}",
                season=2021 + index % 3,
                game_date=dt.date(2021 + index % 3, 9, 1) + dt.timedelta(days=7 * (index // 3)),
                home_score=30 if covered else 17,
                away_score=20 if covered else 21,
                spread_result="COVERED" if covered else "LOST",
                ou_result=None,
            )
        )
    return games
