"""Replay graded history through a rule table and validate tier monotonicity."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from .data_models import GameRecord, Pick, PickResult, PickType, SituationalAngle
from .exceptions import RuleTableError
from .logging_utils import configure_logging
from .rules import RuleTable, active_rule_table
from .scoring import PickContext, grade_pick, grade_prop_pick, score_pick

LOGGER = configure_logging(__name__)

TIER_COLUMNS = ["tier", "picks", "wins", "losses", "pushes", "win_rate", "units"]


@dataclass(frozen=True)
class BacktestSample:
    """Angles as they stood before a game, plus what actually happened."""

    angles: Sequence[SituationalAngle]
    context: PickContext
    record: Optional[GameRecord] = None
    actual: Optional[float] = None


def bet_profit(stake: float, odds: int, result: PickResult) -> Optional[float]:
    """Profit of a settled bet in stake units; ``None`` while pending."""

    if result is PickResult.PENDING:
        return None
    if result is PickResult.PUSH:
        return 0.0
    if result is PickResult.WIN:
        multiple = odds / 100 if odds >= 100 else 100 / abs(odds)
        return round(stake * multiple, 2)
    return -stake


def replay(samples: Iterable[BacktestSample], rule_table: Optional[RuleTable] = None) -> List[Pick]:
    """Score and grade every sample, dropping no-picks and picks that could not be settled."""

    table = rule_table or active_rule_table()
    graded: List[Pick] = []
    no_picks = 0
    for sample in samples:
        pick = score_pick(sample.angles, sample.context, table)
        if not isinstance(pick, Pick):
            no_picks += 1
            continue
        if pick.pick_type is PickType.PLAYER_PROP:
            if sample.actual is None:
                continue
            pick = grade_prop_pick(pick, sample.actual)
        elif sample.record is not None:
            pick = grade_pick(pick, sample.record)
        if pick.is_graded:
            graded.append(pick)
    LOGGER.info("Replayed rule table %s: %d graded picks, %d no-picks", table.version, len(graded), no_picks)
    return graded


def tier_win_rates(picks: Iterable[Pick], odds: int = -110) -> pd.DataFrame:
    """Per-tier record, realized win rate (pushes excluded) and flat-stake units."""

    rows = [
        {
            "tier": pick.confidence,
            "wins": int(pick.result is PickResult.WIN),
            "losses": int(pick.result is PickResult.LOSS),
            "pushes": int(pick.result is PickResult.PUSH),
            "units": bet_profit(1.0, odds, pick.result),
        }
        for pick in picks
        if pick.is_graded
    ]
    if not rows:
        return pd.DataFrame(columns=TIER_COLUMNS)

    df = pd.DataFrame(rows)
    grouped = df.groupby("tier").agg(
        picks=("wins", "size"),
        wins=("wins", "sum"),
        losses=("losses", "sum"),
        pushes=("pushes", "sum"),
        units=("units", "sum"),
    )
    decided = grouped["wins"] + grouped["losses"]
    grouped["win_rate"] = (grouped["wins"] / decided.where(decided > 0)).round(4)
    grouped["units"] = grouped["units"].round(2)
    grouped = grouped.reset_index().sort_values("tier").reset_index(drop=True)
    return grouped[TIER_COLUMNS]


def check_tier_monotonicity(picks: Iterable[Pick], min_decided: int = 1) -> pd.DataFrame:
    """Raise :class:`RuleTableError` if a higher tier realized a lower win rate than a lower tier.

    Tiers with fewer than ``min_decided`` decided picks are ignored. Returns
    the per-tier table on success.
    """

    table = tier_win_rates(picks)
    usable = table[(table["wins"] + table["losses"]) >= min_decided]
    rates = list(zip(usable["tier"], usable["win_rate"]))
    for (low_tier, low_rate), (high_tier, high_rate) in zip(rates, rates[1:]):
        if high_rate < low_rate:
            raise RuleTableError(
                f"Tier {high_tier} win rate {high_rate:.3f} is below tier {low_tier} ({low_rate:.3f})"
            )
    return table
