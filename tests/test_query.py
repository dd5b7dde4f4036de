"""Tests for trend query validation, filter evaluation and query execution."""

from __future__ import annotations

import datetime as dt

import pytest

from trendline.exceptions import QueryValidationError
from trendline.filters import evaluate_filter, evaluate_operator
from trendline.query import (
    FilterOperator,
    build_filter,
    build_query,
    day_of_week_filter,
    month_filter,
    spread_filter,
)
from trendline.trends import evaluate_query, perspective_side, summarize, team_side


@pytest.fixture()
def spread_games(make_game) -> list:
    return [
        make_game(game_id="minus3", spread=-3.0, game_date=dt.date(2023, 9, 10)),
        make_game(game_id="plus3", spread=3.0, game_date=dt.date(2023, 9, 17)),
        make_game(game_id="plus3.5", spread=3.5, game_date=dt.date(2023, 9, 24)),
        make_game(game_id="minus3.5", spread=-3.5, game_date=dt.date(2023, 10, 1)),
        make_game(game_id="college", sport="NCAAF", spread=0.0, game_date=dt.date(2023, 10, 7)),
    ]


def test_between_bounds_are_inclusive(spread_games) -> None:
    query = build_query(sport="NFL", filters=[spread_filter("between", [-3, 3])])

    result = evaluate_query(query, spread_games)

    assert sorted(game.game_id for game in result.games) == ["minus3", "plus3"]


def test_query_evaluation_is_idempotent(spread_games) -> None:
    query = build_query({"sport": "ALL", "filters": [{"field": "spread", "operator": "lte", "value": 3}]})

    first = evaluate_query(query, spread_games)
    second = evaluate_query(query, spread_games)

    assert first.model_dump() == second.model_dump()


def test_default_order_is_newest_first_and_limit_applies_after(spread_games) -> None:
    result = evaluate_query(build_query(sport="ALL", limit=2), spread_games)

    assert [game.game_id for game in result.games] == ["college", "minus3.5"]
    assert result.summary.total_games == 2


def test_order_by_puts_missing_values_last(make_game) -> None:
    games = [
        make_game(game_id="none", spread=None, spread_result=None),
        make_game(game_id="big", spread=-10.0),
        make_game(game_id="small", spread=-1.0),
    ]
    query = build_query(sport="NFL", orderBy={"field": "spread", "direction": "asc"})

    assert [game.game_id for game in evaluate_query(query, games).games] == ["big", "small", "none"]


def test_sport_and_season_range_narrow_the_pool(spread_games, make_game) -> None:
    games = spread_games + [make_game(game_id="old", season=2019)]
    query = build_query(sport="NFL", seasonRange=[2023, 2023])

    ids = {game.game_id for game in evaluate_query(query, games).games}

    assert "old" not in ids
    assert "college" not in ids
    assert len(ids) == 4


def test_away_perspective_orients_spread_and_ats(make_game) -> None:
    game = make_game(spread=-7.0, spread_result="COVERED")
    query = build_query(sport="NFL", perspective="away", filters=[spread_filter("gte", 7)])

    result = evaluate_query(query, [game])

    assert len(result.games) == 1
    assert result.summary.ats.losses == 1
    assert result.summary.straight_up.losses == 1
    assert result.summary.avg_spread == pytest.approx(7.0)


def test_favorite_perspective_skips_games_without_a_spread(make_game) -> None:
    games = [make_game(game_id="lined"), make_game(game_id="unlined", spread=None)]

    result = evaluate_query(build_query(sport="NFL", perspective="favorite"), games)

    assert [game.game_id for game in result.games] == ["lined"]


def test_team_perspective_uses_substring_match(make_game) -> None:
    games = [
        make_game(game_id="home"),
        make_game(game_id="away", home_team="Denver Broncos", away_team="Kansas City Chiefs",
                  home_score=24, away_score=10, spread=3.0, spread_result="COVERED"),
        make_game(game_id="other", home_team="Buffalo Bills", away_team="Miami Dolphins"),
    ]
    query = build_query(sport="NFL", team="chiefs", perspective="team")

    result = evaluate_query(query, games)

    assert {game.game_id for game in result.games} == {"home", "away"}
    assert result.summary.straight_up.wins == 1
    assert result.summary.straight_up.losses == 1
    assert result.summary.ats.wins == 1
    assert result.summary.ats.losses == 1
    assert team_side(games[1], "Kansas City Chiefs") == "away"
    assert perspective_side(games[1], "opponent", "Chiefs") == "home"


def test_summary_counts_are_independent_per_bucket(make_game) -> None:
    games = [
        make_game(home_score=27, away_score=17, spread_result="COVERED", ou_result="UNDER"),
        make_game(home_score=20, away_score=24, spread_result="LOST", ou_result="OVER", over_under=41.5),
        make_game(home_score=21, away_score=21, spread_result="PUSH", ou_result="PUSH", over_under=42.0),
    ]

    summary = summarize(games)

    assert summary.total_games == 3
    assert (summary.straight_up.wins, summary.straight_up.losses, summary.straight_up.total) == (1, 1, 2)
    assert summary.ats.record == "1-1-1"
    assert summary.ats.win_pct == pytest.approx(50.0)
    assert summary.over_under.record == "1-1-1"
    assert summary.avg_points_for == pytest.approx(22.7)
    assert summary.avg_margin == pytest.approx(2.0)
    assert len(summary.by_season) == 1
    assert summary.by_season[0].games == 3


def test_unknown_field_is_rejected() -> None:
    with pytest.raises(QueryValidationError) as excinfo:
        build_query(sport="NFL", filters=[{"field": "favoriteColor", "operator": "eq", "value": "red"}])

    assert excinfo.value.reasons


def test_in_operator_caps_list_length() -> None:
    build_filter("season", "in", list(range(1975, 2025)))

    with pytest.raises(QueryValidationError):
        build_filter("season", "in", list(range(1974, 2025)))


def test_in_operator_accepts_booleans_on_flag_fields(make_game) -> None:
    primetime = build_filter("isPrimetime", "in", [True])
    not_primetime = build_filter("isPrimetime", "notIn", [True])

    assert primetime.value == (True,)
    assert evaluate_filter(make_game(is_primetime=True), primetime)
    assert not evaluate_filter(make_game(is_primetime=False), primetime)
    assert evaluate_filter(make_game(is_primetime=False), not_primetime)
    with pytest.raises(QueryValidationError):
        build_filter("season", "in", [True])


@pytest.mark.parametrize(
    ("field", "operator", "value"),
    [
        ("spread", "contains", "3"),
        ("dayOfWeek", "contains", 3),
        ("spread", "between", [3, -3]),
        ("spread", "between", [1]),
        ("spread", "gt", "three"),
        ("gameDate", "gte", "not-a-date"),
        ("season", "eq", [2023]),
        ("season", "in", [{"year": 2023}]),
        ("spread", "approx", 3),
    ],
)
def test_malformed_filters_are_rejected(field: str, operator: str, value: object) -> None:
    with pytest.raises(QueryValidationError):
        build_filter(field, operator, value)


@pytest.mark.parametrize(
    "payload",
    [
        {"sport": "NBA"},
        {"sport": "NFL", "perspective": "team"},
        {"sport": "NFL", "limit": 0},
        {"sport": "NFL", "limit": 1001},
        {"sport": "NFL", "team": "x" * 101},
        {"sport": "NFL", "filters": [{"field": "season", "operator": "eq", "value": 2023}] * 11},
    ],
)
def test_invalid_queries_are_rejected(payload: dict) -> None:
    with pytest.raises(QueryValidationError):
        build_query(payload)


def test_date_filters_accept_iso_strings(make_game) -> None:
    filter_ = build_filter("gameDate", "gte", "2023-10-01")

    assert filter_.value == dt.date(2023, 10, 1)
    assert evaluate_filter(make_game(game_date=dt.date(2023, 10, 8)), filter_)
    assert not evaluate_filter(make_game(game_date=dt.date(2023, 9, 8)), filter_)


def test_null_field_values_only_match_eq_none_and_neq() -> None:
    assert evaluate_operator(None, FilterOperator.EQ, None)
    assert evaluate_operator(None, FilterOperator.NEQ, 3)
    assert not evaluate_operator(None, FilterOperator.NEQ, None)
    assert not evaluate_operator(None, FilterOperator.GT, 3)
    assert not evaluate_operator(None, FilterOperator.IN, (1, 2))
    assert not evaluate_operator(None, FilterOperator.NOT_IN, (1, 2))
    assert not evaluate_operator(None, FilterOperator.BETWEEN, (1, 2))


def test_equality_is_case_insensitive_and_type_strict() -> None:
    assert evaluate_operator("Sunday", FilterOperator.EQ, "sunday")
    assert evaluate_operator("Big 12", FilterOperator.CONTAINS, "big")
    assert not evaluate_operator(True, FilterOperator.EQ, 1)
    assert not evaluate_operator("3", FilterOperator.EQ, 3)
    assert evaluate_operator("Mon", FilterOperator.IN, ("mon", "thu"))


def test_contains_on_non_text_value_raises() -> None:
    with pytest.raises(QueryValidationError):
        evaluate_operator(5, FilterOperator.CONTAINS, "5")


def test_convenience_filters(make_game) -> None:
    game = make_game(day_of_week="Sun", game_date=dt.date(2023, 11, 12))

    assert evaluate_filter(game, month_filter(11))
    assert evaluate_filter(game, day_of_week_filter(["Sat", "Sun"]))
    assert not evaluate_filter(game, day_of_week_filter("Mon"))
