"""Combine situational angles into a scored, tiered pick and grade picks."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from .data_models import (
    Favors,
    GameRecord,
    Market,
    NoPick,
    Pick,
    PickResult,
    PickType,
    ReasoningEntry,
    SituationalAngle,
    SpreadResult,
    TotalResult,
)
from .logging_utils import configure_logging
from .rules import RuleTable, active_rule_table

LOGGER = configure_logging(__name__)

_SIDES: dict[PickType, tuple[str, str]] = {
    PickType.SPREAD: ("home", "away"),
    PickType.OVER_UNDER: ("over", "under"),
    PickType.PLAYER_PROP: ("over", "under"),
}

_MARKETS: dict[PickType, Market] = {
    PickType.SPREAD: Market.ATS,
    PickType.OVER_UNDER: Market.OU,
    PickType.PLAYER_PROP: Market.PROP,
}

# Net scores this close to zero are treated as no direction.
SCORE_EPSILON = 1e-9


class PickContext(BaseModel):
    """What is being evaluated: the game (or prop) and the posted line."""

    model_config = ConfigDict(frozen=True)

    pick_type: PickType
    game_id: Optional[str] = None
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    spread: Optional[float] = None
    total: Optional[float] = None
    player_name: Optional[str] = None
    prop_stat: Optional[str] = None
    prop_line: Optional[float] = None

    @classmethod
    def for_game(cls, game: GameRecord, pick_type: PickType | str = PickType.SPREAD) -> "PickContext":
        return cls(
            pick_type=PickType(pick_type),
            game_id=game.game_id,
            home_team=game.home_team,
            away_team=game.away_team,
            spread=game.spread,
            total=game.over_under,
        )

    def line_for(self, side: str) -> Optional[float]:
        if self.pick_type is PickType.SPREAD:
            if self.spread is None:
                return None
            return self.spread if side == "home" else -self.spread
        if self.pick_type is PickType.OVER_UNDER:
            return self.total
        return self.prop_line

    def label_for(self, side: str) -> str:
        if self.pick_type is PickType.SPREAD:
            team = self.home_team if side == "home" else self.away_team
            return team or side.capitalize()
        if self.pick_type is PickType.PLAYER_PROP and self.player_name:
            return f"{self.player_name} {side.capitalize()}"
        return side.capitalize()


def angle_sign(angle: SituationalAngle, pick_type: PickType, side: str) -> int:
    """+1 when the angle favors ``side``, -1 for the other side, 0 when neutral or unrelated."""

    if angle.market is not _MARKETS[pick_type] or angle.favors is Favors.NEUTRAL:
        return 0
    first, second = _SIDES[pick_type]
    if angle.favors.value == side:
        return 1
    if angle.favors.value in (first, second):
        return -1
    return 0


def angle_edge(angle: SituationalAngle) -> float:
    """Conservative edge toward the favored side: how far the Wilson bound clears the baseline."""

    sig = angle.significance
    if sig.observed_rate is None or sig.confidence_interval is None:
        return 0.0
    low, high = sig.confidence_interval
    if sig.observed_rate >= sig.baseline_rate:
        return max(0.0, low - sig.baseline_rate)
    return max(0.0, sig.baseline_rate - high)


def _reasoning(
    angles: Iterable[SituationalAngle], pick_type: PickType, side: str, table: RuleTable
) -> list[ReasoningEntry]:
    entries: list[ReasoningEntry] = []
    for angle in angles:
        sign = angle_sign(angle, pick_type, side)
        if sign == 0:
            continue
        weight = table.weight_for(angle.interest_score)
        multiplier = table.multiplier(angle.significance.strength)
        label = angle.description if sign > 0 else f"[OPPOSING] {angle.description}"
        entries.append(
            ReasoningEntry(
                angle=label,
                weight=weight,
                strength=angle.significance.strength,
                multiplier=multiplier,
                sign=sign,
                contribution=round(weight * sign * multiplier, 6),
                record=angle.record,
            )
        )
    # Agreeing angles first, then by size of contribution.
    entries.sort(key=lambda entry: (entry.contribution <= 0, -abs(entry.contribution)))
    return entries


def trend_score(reasoning: Sequence[ReasoningEntry]) -> float:
    """Sum of the reasoning contributions in order."""

    total = 0.0
    for entry in reasoning:
        total += entry.contribution
    return total


def _headline(context: PickContext, side: str, line: Optional[float], tier: int, agreeing: int) -> str:
    label = context.label_for(side)
    if context.pick_type is PickType.SPREAD:
        line_label = f" {line:+g}" if line is not None else ""
        if tier >= 5:
            return f"Strong convergence: {agreeing} independent angles favor {label}{line_label}"
        if tier >= 4:
            if agreeing >= 3:
                return f"{agreeing} trend angles favor {label}{line_label}"
            return f"ATS advantage backs {label}{line_label}"
        if agreeing >= 2:
            return f"{agreeing} factors lean {label}{line_label}"
        return f"Slight lean: {label}{line_label}"

    line_label = f" {line:g}" if line is not None else ""
    stat = f" {context.prop_stat}" if context.pick_type is PickType.PLAYER_PROP and context.prop_stat else ""
    if tier >= 4:
        return f"{agreeing} signals favor {label}{line_label}{stat}"
    return f"Lean: {label}{line_label}{stat}"


def score_pick(
    angles: Sequence[SituationalAngle],
    context: PickContext,
    rule_table: Optional[RuleTable] = None,
) -> Pick | NoPick:
    """Weigh the angles for one game or prop into a tiered :class:`Pick`.

    Every angle contributes ``weight * sign * strength multiplier`` toward the
    first side of the market (home or over). The side with the positive total
    is picked and ``trend_score`` is the size of that total. A zero score, or
    one that clears no rule in the table, yields :class:`NoPick`.
    """

    table = rule_table or active_rule_table()
    pick_type = context.pick_type
    first, second = _SIDES[pick_type]

    raw = trend_score(_reasoning(angles, pick_type, first, table))
    if abs(raw) < SCORE_EPSILON:
        return NoPick(
            game_id=context.game_id,
            pick_type=pick_type,
            reason="No directional angles",
            rule_table_version=table.version,
        )

    side = first if raw > 0 else second
    reasoning = _reasoning(angles, pick_type, side, table)
    score = trend_score(reasoning)

    active = [entry for entry in reasoning if entry.contribution != 0]
    agreeing = [entry for entry in active if entry.contribution > 0]
    agreement = len(agreeing) / len(active) if active else 0.0
    favoring = [angle for angle in angles if angle_sign(angle, pick_type, side) > 0]
    edge = max((angle_edge(angle) for angle in favoring), default=0.0)
    significant = sum(1 for angle in favoring if angle.significance.is_significant)

    rule = table.assign(score, agreement, edge, significant)
    LOGGER.debug(
        "Scored %s %s: side=%s score=%.2f agreement=%.2f edge=%.3f significant=%d tier=%s",
        pick_type.value,
        context.game_id or "-",
        side,
        score,
        agreement,
        edge,
        significant,
        rule.tier if rule else 0,
    )
    if rule is None:
        return NoPick(
            game_id=context.game_id,
            pick_type=pick_type,
            trend_score=score,
            reason=f"Score {score:.2f} clears no tier in rule table {table.version}",
            reasoning=reasoning,
            rule_table_version=table.version,
        )

    line = context.line_for(side)
    return Pick(
        game_id=context.game_id,
        pick_type=pick_type,
        pick_side=side,
        line=line,
        trend_score=score,
        confidence=rule.tier,
        headline=_headline(context, side, line, rule.tier, len(agreeing)),
        reasoning=reasoning,
        rule_table_version=table.version,
        player_name=context.player_name,
        prop_stat=context.prop_stat,
    )


_ATS_GRADES = {
    SpreadResult.COVERED: PickResult.WIN,
    SpreadResult.LOST: PickResult.LOSS,
    SpreadResult.PUSH: PickResult.PUSH,
}
_FLIP = {PickResult.WIN: PickResult.LOSS, PickResult.LOSS: PickResult.WIN, PickResult.PUSH: PickResult.PUSH}


def _game_outcome(pick: Pick, record: GameRecord) -> Optional[PickResult]:
    if pick.pick_type is PickType.SPREAD:
        if record.spread_result is None:
            return None
        outcome = _ATS_GRADES[record.spread_result]
        return outcome if pick.pick_side == "home" else _FLIP[outcome]
    if pick.pick_type is PickType.OVER_UNDER:
        if record.ou_result is None:
            return None
        if record.ou_result is TotalResult.PUSH:
            return PickResult.PUSH
        went_over = record.ou_result is TotalResult.OVER
        return PickResult.WIN if went_over == (pick.pick_side == "over") else PickResult.LOSS
    raise ValueError("Player prop picks are graded with grade_prop_pick")


def grade_pick(pick: Pick, record: GameRecord) -> Pick:
    """Settle a spread or total pick from the game's stored results.

    The pick is returned unchanged while the game has no settlement yet; a
    pick that is already graded raises :class:`PickStateError`.
    """

    outcome = _game_outcome(pick, record)
    if outcome is None:
        LOGGER.debug("Game %s not settled yet; pick stays pending", record.game_id or record.game_date)
        return pick
    return pick.settle(outcome)


def grade_prop_pick(pick: Pick, actual: float) -> Pick:
    """Settle a player prop: beating the line wins, matching it pushes."""

    if pick.pick_type is not PickType.PLAYER_PROP:
        raise ValueError("grade_prop_pick only grades player prop picks")
    if pick.line is None:
        raise ValueError("Prop pick has no line to grade against")
    if actual == pick.line:
        return pick.settle(PickResult.PUSH)
    went_over = actual > pick.line
    return pick.settle(PickResult.WIN if went_over == (pick.pick_side == "over") else PickResult.LOSS)
