"""Tests for the command-line interface."""

from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest

from trendline.cli import parse_args, run_cli

_ROWS = [
    "sport,season,gameDate,homeTeam,awayTeam,homeScore,awayScore,spread,overUnder,spreadResult,ouResult",
    "NFL,2023,2023-09-10,Kansas City Chiefs,Detroit Lions,20,21,-6.5,53.5,LOST,UNDER",
    "NFL,2023,2023-09-17,Jacksonville Jaguars,Kansas City Chiefs,9,17,3.0,51.0,LOST,UNDER",
    "NFL,2023,2023-09-24,Kansas City Chiefs,Chicago Bears,41,10,-12.5,47.5,COVERED,OVER",
    "NFL,2023,2023-10-01,New York Jets,Kansas City Chiefs,20,23,9.5,42.0,COVERED,OVER",
]


@pytest.fixture()
def games_csv(tmp_path: Path) -> Path:
    path = tmp_path / "games.csv"
    path.write_text("\n".join(_ROWS) + "\n", encoding="utf-8")
    return path


def test_parse_args_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        parse_args([])


def test_query_command_prints_summary(games_csv: Path, capsys: pytest.CaptureFixture[str]) -> None:
    games = run_cli(
        ["query", "--data", str(games_csv), "--sport", "NFL", "--filter", "spread", "between", "[-3, 3]"]
    )

    assert list(games["game_id"].isna()) == [True]
    assert games.iloc[0]["home_team"] == "Jacksonville Jaguars"
    assert capsys.readouterr().out.startswith("1 games")


def test_query_command_writes_csv(games_csv: Path, tmp_path: Path) -> None:
    output = tmp_path / "out" / "chiefs.csv"

    run_cli(["query", "--data", str(games_csv), "--team", "Chiefs", "--perspective", "team", "--output", str(output)])

    written = pd.read_csv(output)
    assert len(written) == 4
    assert list(written["game_date"]) == ["2023-10-01", "2023-09-24", "2023-09-17", "2023-09-10"]


def test_significance_command(capsys: pytest.CaptureFixture[str]) -> None:
    frame = run_cli(["significance", "--wins", "112", "--losses", "88"])

    assert frame.iloc[0]["strength"] == "weak"
    assert "Weak trend" in capsys.readouterr().out


def test_parlay_command(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    legs = tmp_path / "legs.json"
    legs.write_text(
        json.dumps([{"type": "MONEYLINE", "odds": -110, "model_prob": 0.5}] * 2),
        encoding="utf-8",
    )

    frame = run_cli(["parlay", "--legs", str(legs), "--bankroll", "500"])

    assert len(frame) == 2
    assert "Parlay odds: +264" in capsys.readouterr().out


def test_templates_command(capsys: pytest.CaptureFixture[str]) -> None:
    frame = run_cli(["templates"])

    assert "home-big-fav" in set(frame["id"])
    assert "home-big-fav" in capsys.readouterr().out
