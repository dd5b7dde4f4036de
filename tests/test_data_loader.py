"""Tests for loading game records from files and DataFrames."""

from __future__ import annotations

import datetime as dt
import json
from pathlib import Path

import pandas as pd
import pytest

from trendline.data_loader import load_records, load_records_from_dataframe, records_from_dicts
from trendline.data_models import SpreadResult
from trendline.exceptions import DataSourceError

_HEADER = "sport,season,gameDate,homeTeam,awayTeam,homeScore,awayScore,spread,spreadResult"


def _write_csv(path: Path, *rows: str) -> Path:
    path.write_text("\n".join([_HEADER, *rows]) + "\n", encoding="utf-8")
    return path


def test_load_csv_skips_invalid_rows(tmp_path: Path) -> None:
    path = _write_csv(
        tmp_path / "games.csv",
        "NFL,2023,2023-09-10,Kansas City Chiefs,Detroit Lions,20,21,-6.5,LOST",
        "NFL,2023,2023-09-17,,Jacksonville Jaguars,17,9,3.5,covered",
        "NFL,2023,2023-09-24,Kansas City Chiefs,Chicago Bears,,,-12.5,",
    )

    records = load_records(path)

    assert len(records) == 2
    first, upcoming = records
    assert first.game_date == dt.date(2023, 9, 10)
    assert first.home_score == 20
    assert first.spread_result is SpreadResult.LOST
    assert upcoming.is_final is False
    assert upcoming.spread_result is None


def test_strict_load_raises_on_first_invalid_row(tmp_path: Path) -> None:
    path = _write_csv(tmp_path / "games.csv", "NFL,2023,2023-09-17,,Jacksonville Jaguars,17,9,3.5,COVERED")

    with pytest.raises(DataSourceError) as excinfo:
        load_records(path, strict=True)

    assert excinfo.value.retryable is False


def test_load_json_lines(tmp_path: Path) -> None:
    path = tmp_path / "games.jsonl"
    rows = [
        {"sport": "NCAAMB", "season": 2024, "gameDate": "2024-03-21", "homeTeam": "Houston",
         "awayTeam": "Longwood", "isNCAAT": True, "homeSeed": 1, "awaySeed": 16},
    ]
    path.write_text("\n".join(json.dumps(row) for row in rows) + "\n", encoding="utf-8")

    (record,) = load_records(path)

    assert record.is_ncaat is True
    assert record.home_seed == 1


def test_missing_columns_and_files_raise(tmp_path: Path) -> None:
    with pytest.raises(DataSourceError, match="homeTeam|home_team"):
        load_records_from_dataframe(pd.DataFrame({"sport": ["NFL"], "season": [2023]}))
    with pytest.raises(DataSourceError):
        load_records(tmp_path / "absent.csv")

    unsupported = tmp_path / "games.txt"
    unsupported.write_text("sport\n", encoding="utf-8")
    with pytest.raises(DataSourceError):
        load_records(unsupported)


def test_snake_case_frames_are_accepted() -> None:
    frame = pd.DataFrame(
        {
            "sport": ["NFL"],
            "season": [2023],
            "game_date": ["2023-12-25"],
            "home_team": ["Kansas City Chiefs"],
            "away_team": ["Las Vegas Raiders"],
            "over_under": [41.0],
        }
    )

    (record,) = load_records_from_dataframe(frame)

    assert record.away_team == "Las Vegas Raiders"
    assert record.over_under == pytest.approx(41.0)


def test_records_from_dicts_cleans_nan_values() -> None:
    records = records_from_dicts(
        [{"sport": "NFL", "season": 2023, "gameDate": "2023-10-01", "homeTeam": "A", "awayTeam": "B",
          "spread": float("nan")}]
    )

    assert records[0].spread is None


def test_mixed_sport_csv_with_blank_flags_loads_every_row(tmp_path: Path) -> None:
    path = tmp_path / "mixed.csv"
    path.write_text(
        "sport,season,gameDate,homeTeam,awayTeam,homeScore,awayScore,isPrimetime,isNCAAT,overtimes\n"
        "NFL,2023,2023-09-10,Kansas City Chiefs,Detroit Lions,20,21,True,,\n"
        "NCAAMB,2024,2024-03-21,Houston,Longwood,86,46,,True,0\n",
        encoding="utf-8",
    )

    nfl, ncaamb = load_records(path)

    assert nfl.is_primetime is True
    assert nfl.is_ncaat is False
    assert nfl.overtimes == 0
    assert ncaamb.is_primetime is False
    assert ncaamb.is_ncaat is True


def test_blank_flags_fall_back_to_defaults() -> None:
    (record,) = records_from_dicts(
        [{"sport": "NFL", "season": 2023, "gameDate": "2023-10-01", "homeTeam": "A", "awayTeam": "B",
          "isPlayoff": None, "isKenpomUpset": "", "overtimes": None}]
    )

    assert record.is_playoff is False
    assert record.is_kenpom_upset is False
    assert record.overtimes == 0
