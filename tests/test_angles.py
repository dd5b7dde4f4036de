"""Tests for the angle catalog, reverse lookup and matchup angles."""

from __future__ import annotations

import datetime as dt

import pytest

from trendline.angles import (
    ANGLE_TEMPLATES,
    AngleCategory,
    AngleTemplate,
    discover_angles,
    evaluate_template,
    get_angle_templates,
    ats_streak,
    head_to_head_games,
    matchup_angles,
    prop_hit_angle,
    recent_ats_results,
)
from trendline.data_models import Favors, Market, Perspective, SpreadResult, Sport, Strength


@pytest.fixture()
def home_template() -> AngleTemplate:
    return AngleTemplate(
        id="all-home",
        label="All home teams",
        category=AngleCategory.SPREAD,
        sports=(Sport.NFL,),
        perspective=Perspective.HOME,
        filters=(),
    )


def test_catalog_ids_are_unique_and_sport_scoped() -> None:
    ids = [template.id for template in ANGLE_TEMPLATES]

    assert len(ids) == len(set(ids))
    assert all(template.applies_to("NCAAMB") for template in get_angle_templates("NCAAMB"))
    assert "back-to-back-home" not in {template.id for template in get_angle_templates(Sport.NFL)}
    assert len(get_angle_templates()) == len(ANGLE_TEMPLATES)


def test_template_below_sample_floor_is_skipped(home_template, home_games) -> None:
    assert evaluate_template(home_template, home_games[:5], "NFL") is None


def test_template_evaluation_reports_each_market(home_template, home_games) -> None:
    angle = evaluate_template(home_template, home_games, "NFL")

    assert angle is not None
    assert angle.summary.total_games == 30
    assert angle.summary.ats.record == "20-10"
    assert angle.ats_significance.strength is Strength.WEAK
    assert angle.ou_significance is None
    assert angle.win_significance.baseline_rate == pytest.approx(0.55)
    assert angle.best_strength is Strength.WEAK
    assert angle.interest_score == 53
    assert angle.headline.startswith("NFL All home teams: 20-10 ATS")


def test_discover_angles_ranks_and_filters(home_games) -> None:
    lookup = discover_angles(home_games, sport="NFL")

    assert lookup.templates_scanned == len(get_angle_templates("NFL"))
    assert "away-underdog-3-7" in {angle.template.id for angle in lookup.angles}
    scores = [angle.interest_score for angle in lookup.angles]
    assert scores == sorted(scores, reverse=True)
    assert all(angle.best_strength.at_least(Strength.WEAK) for angle in lookup.angles)


def test_discover_angles_respects_strength_floor_and_categories(home_games) -> None:
    assert discover_angles(home_games, sport="NFL", min_strength="moderate").angles == []

    spread_only = discover_angles(home_games, sport="NFL", categories=["spread"])
    spread_count = sum(1 for t in get_angle_templates("NFL") if t.category is AngleCategory.SPREAD)
    assert spread_only.templates_scanned == spread_count


def test_matchup_angles_for_upcoming_game(home_games, make_game) -> None:
    upcoming = make_game(
        game_id="next",
        game_date=dt.date(2023, 12, 10),
        home_score=None,
        away_score=None,
        spread_result=None,
        ou_result=None,
    )

    angles = matchup_angles(upcoming, home_games)

    assert {angle.angle_id for angle in angles} == {
        "away-underdog-3-7:ats",
        "team-home-ats",
        "team-away-ats",
        "h2h-ats",
    }
    assert all(angle.market is Market.ATS for angle in angles)
    assert all(angle.favors is Favors.HOME for angle in angles)
    assert all(angle.significance.strength is not Strength.NOISE for angle in angles)
    assert len(matchup_angles(upcoming, home_games, max_angles=1)) == 1


def test_prop_hit_angle_counts_line_values_as_pushes() -> None:
    angle = prop_hit_angle("Mahomes passing yards over 280.5", [300, 250, 280.5, 290, 310], 280.5)

    assert angle.record == "3-1-1"
    assert angle.rate == pytest.approx(75.0)
    assert angle.sample_size == 4
    assert angle.market is Market.PROP
    assert angle.favors is Favors.OVER


def test_prop_hit_angle_without_history_is_neutral() -> None:
    angle = prop_hit_angle("No games yet", [], 20.5)

    assert angle.favors is Favors.NEUTRAL
    assert angle.rate is None
    assert angle.significance.label == "No data"


@pytest.fixture()
def rivalry_games(make_game) -> list:
    """Twelve Chiefs-Broncos meetings alternating venue; the Chiefs cover and the total goes over every time."""

    games = []
    for index in range(12):
        chiefs_home = index % 2 == 0
        games.append(
            make_game(
                game_id=f"r{index}",
                game_date=dt.date(2023, 9, 3) + dt.timedelta(days=7 * index),
                home_team="Kansas City Chiefs" if chiefs_home else "Denver Broncos",
                away_team="Denver Broncos" if chiefs_home else "Kansas City Chiefs",
                home_score=31 if chiefs_home else 10,
                away_score=20 if chiefs_home else 28,
                spread_result="COVERED" if chiefs_home else "LOST",
                ou_result="OVER",
            )
        )
    # Played after the upcoming game, so never counted.
    games.append(
        make_game(
            game_id="later",
            game_date=dt.date(2023, 12, 31),
            home_team="Denver Broncos",
            away_team="Kansas City Chiefs",
            home_score=30,
            away_score=10,
            spread_result="COVERED",
            ou_result="UNDER",
        )
    )
    return games


@pytest.fixture()
def rivalry_upcoming(make_game):
    return make_game(
        game_id="next",
        game_date=dt.date(2023, 12, 10),
        home_score=None,
        away_score=None,
        spread_result=None,
        ou_result=None,
    )


def test_head_to_head_counts_meetings_at_either_venue(rivalry_games, rivalry_upcoming) -> None:
    meetings = head_to_head_games(rivalry_upcoming, rivalry_games)

    assert len(meetings) == 12
    assert meetings[0].game_id == "r11"
    assert "later" not in {game.game_id for game in meetings}


def test_head_to_head_angles_orient_to_current_home_team(rivalry_games, rivalry_upcoming) -> None:
    angles = {angle.angle_id: angle for angle in matchup_angles(rivalry_upcoming, rivalry_games)}

    ats = angles["h2h-ats"]
    assert ats.record == "12-0"
    assert ats.favors is Favors.HOME
    assert ats.market is Market.ATS
    assert ats.significance.strength is Strength.WEAK

    ou = angles["h2h-ou"]
    assert ou.record == "12-0"
    assert ou.favors is Favors.OVER


def test_recent_form_angles_track_each_team(rivalry_games, rivalry_upcoming) -> None:
    angles = {angle.angle_id: angle for angle in matchup_angles(rivalry_upcoming, rivalry_games)}

    home = angles["recent-home-ats"]
    assert home.record == "10-0"
    assert home.favors is Favors.HOME
    assert "covered 10 straight" in home.description

    away = angles["recent-away-ats"]
    assert away.record == "0-10"
    assert away.favors is Favors.HOME
    assert "failed to cover 10 straight" in away.description


def test_recent_ats_results_are_newest_first_and_capped(rivalry_games, rivalry_upcoming) -> None:
    results = recent_ats_results("Denver Broncos", rivalry_upcoming, rivalry_games)

    assert len(results) == 10
    assert set(results) == {SpreadResult.LOST}


def test_recent_form_needs_enough_settled_games(rivalry_games, rivalry_upcoming) -> None:
    angles = matchup_angles(rivalry_upcoming, rivalry_games[:4])

    assert not any(angle.angle_id.startswith(("recent-", "h2h-")) for angle in angles)


def test_ats_streak_skips_pushes_and_stops_at_a_change() -> None:
    covered, lost, push = SpreadResult.COVERED, SpreadResult.LOST, SpreadResult.PUSH

    assert ats_streak([covered, push, covered, lost, covered]) == 2
    assert ats_streak([lost, lost, covered]) == -2
    assert ats_streak([push]) == 0
    assert ats_streak([]) == 0
