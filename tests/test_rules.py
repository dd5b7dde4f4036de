"""Tests for tier rule tables and their loading."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from trendline.data_models import Strength
from trendline.exceptions import RuleTableError
from trendline.rules import DEFAULT_RULE_TABLE, RuleTable, TierRule, load_rule_table


def test_default_table_weights_and_multipliers() -> None:
    table = DEFAULT_RULE_TABLE

    assert table.weight_for(75) == 10
    assert table.weight_for(50) == 7
    assert table.weight_for(20) == 3
    assert table.weight_for(19) == table.default_weight
    assert table.multiplier(Strength.MODERATE) == pytest.approx(0.7)
    assert table.multiplier(Strength.NOISE) == 0.0


def test_first_matching_tier_wins() -> None:
    table = DEFAULT_RULE_TABLE

    assert table.assign(30.0, 1.0, 0.1, 3).tier == 5
    assert table.assign(30.0, 0.75, 0.1, 3).tier == 4
    assert table.assign(5.0, 1.0, 0.04, 0).tier == 3
    assert table.assign(3.0, 1.0, 0.1, 3) is None
    assert table.assign(30.0, 0.5, 0.1, 3) is None


def test_rule_table_round_trips_through_json(tmp_path: Path) -> None:
    payload = DEFAULT_RULE_TABLE.model_dump(mode="json")
    payload["version"] = "v2"
    payload["rules"][-1]["min_score"] = 5.0
    path = tmp_path / "rules.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    table = load_rule_table(path)

    assert table.version == "v2"
    assert table.rules[-1].min_score == pytest.approx(5.0)
    assert table.multiplier(Strength.STRONG) == pytest.approx(1.0)


def test_rules_out_of_order_are_rejected(tmp_path: Path) -> None:
    payload = DEFAULT_RULE_TABLE.model_dump(mode="json")
    payload["rules"] = list(reversed(payload["rules"]))
    path = tmp_path / "rules.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(RuleTableError):
        load_rule_table(path)


def test_missing_or_unreadable_tables_raise(tmp_path: Path) -> None:
    with pytest.raises(RuleTableError):
        load_rule_table(tmp_path / "absent.json")

    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(RuleTableError):
        load_rule_table(bad)


def test_multipliers_must_cover_every_strength_and_be_monotone() -> None:
    base = DEFAULT_RULE_TABLE.model_dump()

    with pytest.raises(ValidationError):
        RuleTable.model_validate({**base, "strength_multipliers": {Strength.STRONG: 1.0}})
    with pytest.raises(ValidationError):
        RuleTable.model_validate(
            {
                **base,
                "strength_multipliers": {
                    Strength.STRONG: 0.5,
                    Strength.MODERATE: 0.7,
                    Strength.WEAK: 0.4,
                    Strength.NOISE: 0.0,
                },
            }
        )


def test_tier_rule_matching() -> None:
    rule = TierRule(tier=4, min_score=9.0, min_agreement=0.7, min_edge=0.05, min_significant=1)

    assert rule.matches(9.0, 0.7, 0.05, 1)
    assert not rule.matches(9.0, 0.7, 0.05, 0)
