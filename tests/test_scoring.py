"""Tests for pick scoring, tier assignment and grading."""

from __future__ import annotations

import pytest

from trendline.data_models import Market, NoPick, Pick, PickResult, PickType
from trendline.exceptions import PickStateError
from trendline.rules import DEFAULT_RULE_TABLE
from trendline.scoring import PickContext, angle_edge, angle_sign, grade_pick, grade_prop_pick, score_pick


@pytest.fixture()
def spread_context() -> PickContext:
    return PickContext(
        pick_type=PickType.SPREAD,
        game_id="g1",
        home_team="Kansas City Chiefs",
        away_team="Denver Broncos",
        spread=-3.5,
        total=45.5,
    )


def test_converging_strong_angles_earn_five_stars(make_angle, spread_context) -> None:
    angles = [make_angle("home", angle_id=f"a{index}") for index in range(3)]

    pick = score_pick(angles, spread_context, DEFAULT_RULE_TABLE)

    assert isinstance(pick, Pick)
    assert pick.confidence == 5
    assert pick.pick_side == "home"
    assert pick.line == pytest.approx(-3.5)
    assert pick.trend_score == pytest.approx(30.0)
    assert pick.rule_table_version == "v1"
    assert pick.result is PickResult.PENDING
    assert "Kansas City Chiefs" in pick.headline


def test_no_angles_yield_no_pick(spread_context) -> None:
    result = score_pick([], spread_context, DEFAULT_RULE_TABLE)

    assert isinstance(result, NoPick)
    assert result.confidence == 0
    assert result.reason == "No directional angles"


def test_angles_for_another_market_are_ignored(make_angle, spread_context) -> None:
    result = score_pick([make_angle("over", market=Market.OU)], spread_context, DEFAULT_RULE_TABLE)

    assert isinstance(result, NoPick)


def test_opposing_angles_reduce_score_and_tier(make_angle, spread_context) -> None:
    angles = [
        make_angle("away", angle_id="road1"),
        make_angle("away", angle_id="road2"),
        make_angle("home", angle_id="home1"),
    ]

    pick = score_pick(angles, spread_context, DEFAULT_RULE_TABLE)

    assert isinstance(pick, Pick)
    assert pick.pick_side == "away"
    assert pick.line == pytest.approx(3.5)
    assert pick.trend_score == pytest.approx(10.0)
    assert pick.confidence == 3
    assert pick.trend_score == pytest.approx(sum(entry.contribution for entry in pick.reasoning))
    assert [entry.sign for entry in pick.reasoning] == [1, 1, -1]
    assert pick.reasoning[-1].angle.startswith("[OPPOSING]")


def test_weak_low_interest_angle_clears_no_tier(make_angle, spread_context) -> None:
    result = score_pick([make_angle("home", wins=112, losses=88, interest=42)], spread_context, DEFAULT_RULE_TABLE)

    assert isinstance(result, NoPick)
    assert result.trend_score == pytest.approx(2.0)
    assert "clears no tier" in result.reason


def test_total_pick_uses_total_line(make_angle) -> None:
    context = PickContext(pick_type=PickType.OVER_UNDER, game_id="g2", total=44.5)
    angles = [make_angle("under", market=Market.OU, angle_id=f"u{index}") for index in range(3)]

    pick = score_pick(angles, context, DEFAULT_RULE_TABLE)

    assert isinstance(pick, Pick)
    assert pick.pick_side == "under"
    assert pick.line == pytest.approx(44.5)


def test_angle_sign_and_edge(make_angle) -> None:
    home = make_angle("home")

    assert angle_sign(home, PickType.SPREAD, "home") == 1
    assert angle_sign(home, PickType.SPREAD, "away") == -1
    assert angle_sign(home, PickType.OVER_UNDER, "over") == 0
    assert angle_edge(home) == pytest.approx(0.104, abs=1e-3)
    assert angle_edge(make_angle("home", wins=50, losses=50)) == 0.0


def test_context_from_game(make_game) -> None:
    context = PickContext.for_game(make_game(game_id="g9"), "OVER_UNDER")

    assert context.pick_type is PickType.OVER_UNDER
    assert context.line_for("over") == pytest.approx(45.5)
    assert context.label_for("under") == "Under"


def _spread_pick(side: str) -> Pick:
    return Pick(
        game_id="g1",
        pick_type=PickType.SPREAD,
        pick_side=side,
        line=-3.5,
        trend_score=10.0,
        confidence=3,
        headline="Slight lean",
        rule_table_version="v1",
    )


@pytest.mark.parametrize(
    ("side", "spread_result", "expected"),
    [
        ("home", "COVERED", PickResult.WIN),
        ("away", "COVERED", PickResult.LOSS),
        ("away", "LOST", PickResult.WIN),
        ("home", "PUSH", PickResult.PUSH),
    ],
)
def test_grade_spread_pick(make_game, side: str, spread_result: str, expected: PickResult) -> None:
    graded = grade_pick(_spread_pick(side), make_game(spread_result=spread_result))

    assert graded.result is expected


def test_grade_total_pick(make_game) -> None:
    pick = _spread_pick("under").model_copy(update={"pick_type": PickType.OVER_UNDER})

    assert grade_pick(pick, make_game(ou_result="UNDER")).result is PickResult.WIN
    assert grade_pick(pick, make_game(ou_result="OVER")).result is PickResult.LOSS
    assert grade_pick(pick, make_game(ou_result="PUSH")).result is PickResult.PUSH


def test_unsettled_game_leaves_pick_pending(make_game) -> None:
    pick = _spread_pick("home")

    assert grade_pick(pick, make_game(spread_result=None)) is pick


def test_graded_pick_cannot_be_regraded(make_game) -> None:
    graded = grade_pick(_spread_pick("home"), make_game())

    with pytest.raises(PickStateError):
        grade_pick(graded, make_game(spread_result="LOST"))


def test_grade_prop_pick(make_game) -> None:
    over = Pick(
        pick_type=PickType.PLAYER_PROP,
        pick_side="over",
        line=280.5,
        trend_score=5.0,
        confidence=3,
        headline="Lean: Over 280.5",
        rule_table_version="v1",
        player_name="Patrick Mahomes",
        prop_stat="passing yards",
    )
    under = over.model_copy(update={"pick_side": "under"})

    assert grade_prop_pick(over, 280.5).result is PickResult.PUSH
    assert grade_prop_pick(over, 301).result is PickResult.WIN
    assert grade_prop_pick(under, 301).result is PickResult.LOSS
    with pytest.raises(ValueError):
        grade_pick(over, make_game())
    with pytest.raises(ValueError):
        grade_prop_pick(_spread_pick("home"), 10)
