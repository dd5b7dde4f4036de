"""Parlay and teaser expected value, Kelly sizing and same-game detection."""

from __future__ import annotations

import math
from itertools import combinations
from typing import Any, Iterable, Mapping, Optional, Sequence

from pydantic import ValidationError

from .config import get_settings
from .data_models import LegType, ParlayAnalysis, ParlayLeg, TeaserAnalysis, TeaserLegAdjustment
from .exceptions import ParlayValidationError
from .logging_utils import configure_logging
from .odds import american_to_decimal, decimal_to_american, parlay_decimal_odds

LOGGER = configure_logging(__name__)


def _coerce_legs(legs: Iterable[ParlayLeg | Mapping[str, Any]]) -> list[ParlayLeg]:
    coerced: list[ParlayLeg] = []
    for index, leg in enumerate(legs):
        if isinstance(leg, ParlayLeg):
            coerced.append(leg)
            continue
        try:
            coerced.append(ParlayLeg.model_validate(leg))
        except ValidationError as exc:
            raise ParlayValidationError(f"Leg {index + 1} is invalid: {exc}") from exc
    return coerced


def expected_value(probability: float, decimal_odds: float) -> float:
    """EV per unit staked: ``p * (d - 1) - (1 - p)``."""

    return probability * (decimal_odds - 1.0) - (1.0 - probability)


def kelly_fraction(probability: float, decimal_odds: float) -> float:
    """Full-Kelly bankroll fraction, floored at zero for negative-edge bets."""

    b = decimal_odds - 1.0
    if b <= 0:
        raise ParlayValidationError(f"Decimal odds must exceed 1.0, got {decimal_odds!r}")
    return max(0.0, (b * probability - (1.0 - probability)) / b)


def is_same_game(legs: Sequence[ParlayLeg]) -> bool:
    """At least two legs carry a game id and they all share one game."""

    game_ids = [leg.game_id for leg in legs if leg.game_id]
    return len(game_ids) >= 2 and len(set(game_ids)) == 1


def joint_probability(legs: Sequence[ParlayLeg], same_game_correlation: float = 0.0) -> float:
    """Product of leg probabilities, optionally adjusted for correlated same-game pairs.

    With a non-zero correlation each pair of legs sharing a game id scales the
    joint by ``1 + rho * sqrt((1 - p_i)(1 - p_j) / (p_i p_j))``, the two-event
    form of a Pearson-correlated Bernoulli pair. The result is clamped to
    ``[0, min(p)]``.
    """

    joint = math.prod(leg.model_prob for leg in legs)
    if same_game_correlation == 0.0 or joint == 0.0:
        return joint

    factor = 1.0
    for left, right in combinations(legs, 2):
        if not left.game_id or left.game_id != right.game_id:
            continue
        p_i, p_j = left.model_prob, right.model_prob
        if p_i in (0.0, 1.0) or p_j in (0.0, 1.0):
            continue
        factor *= 1.0 + same_game_correlation * math.sqrt((1.0 - p_i) * (1.0 - p_j) / (p_i * p_j))
    return min(max(joint * factor, 0.0), min(leg.model_prob for leg in legs))


def analyze_teaser(legs: Sequence[ParlayLeg | Mapping[str, Any]]) -> TeaserAnalysis:
    """Two-leg spread teaser: move each line, boost each leg, price at the fixed teaser payout."""

    spread_legs = _coerce_legs(legs)
    if len(spread_legs) != 2 or any(leg.type is not LegType.SPREAD for leg in spread_legs):
        raise ParlayValidationError("A teaser needs exactly two spread legs")
    if any(leg.line is None for leg in spread_legs):
        raise ParlayValidationError("Every teaser leg needs a spread line to move")

    settings = get_settings()
    adjusted = [
        TeaserLegAdjustment(
            original_line=leg.line,
            teased_line=leg.line + settings.TEASER_POINTS,
            original_prob=leg.model_prob,
            teased_prob=min(settings.TEASER_PROB_CAP, leg.model_prob + settings.TEASER_PROB_BOOST),
        )
        for leg in spread_legs
    ]
    teased_joint = math.prod(leg.teased_prob for leg in adjusted)
    teaser_ev = expected_value(teased_joint, american_to_decimal(settings.TEASER_ODDS))

    if teaser_ev > 0.10:
        recommendation = "strong"
    elif teaser_ev > 0:
        recommendation = "moderate"
    else:
        recommendation = "avoid"

    return TeaserAnalysis(
        teaser_points=settings.TEASER_POINTS,
        adjusted_legs=adjusted,
        teased_joint_prob=teased_joint,
        teaser_odds=settings.TEASER_ODDS,
        teaser_ev=teaser_ev,
        recommendation=recommendation,
    )


def analyze_parlay(
    legs: Sequence[ParlayLeg | Mapping[str, Any]],
    bankroll: Optional[float] = None,
    same_game_correlation: Optional[float] = None,
) -> ParlayAnalysis:
    """Price a parlay of two or more legs and size it with fractional Kelly.

    Legs are independent unless ``same_game_correlation`` (default from
    ``TRENDLINE_SGP_CORRELATION``) says otherwise. Two spread legs also get a
    teaser analysis.
    """

    parsed = _coerce_legs(legs)
    if len(parsed) < 2:
        raise ParlayValidationError(f"A parlay needs at least 2 legs, got {len(parsed)}")

    settings = get_settings()
    bankroll = settings.DEFAULT_BANKROLL if bankroll is None else bankroll
    if bankroll < 0 or not math.isfinite(bankroll):
        raise ParlayValidationError(f"Bankroll must be a finite non-negative amount, got {bankroll!r}")
    rho = settings.SGP_CORRELATION if same_game_correlation is None else same_game_correlation
    if not -1.0 <= rho <= 1.0:
        raise ParlayValidationError(f"Correlation must lie in [-1, 1], got {rho!r}")

    true_joint = joint_probability(parsed, rho)
    book_joint = math.prod(leg.implied_prob for leg in parsed)
    decimal_odds = parlay_decimal_odds(american_to_decimal(leg.odds) for leg in parsed)
    try:
        american = decimal_to_american(decimal_odds)
    except ValueError as exc:
        raise ParlayValidationError(str(exc)) from exc

    ev = expected_value(true_joint, decimal_odds)
    kelly = kelly_fraction(true_joint, decimal_odds)
    stake = round(bankroll * kelly * settings.KELLY_MULTIPLIER, 2)

    teaser = None
    if len(parsed) == 2 and all(leg.type is LegType.SPREAD for leg in parsed):
        if any(leg.line is None for leg in parsed):
            LOGGER.warning("Skipping teaser analysis: a spread leg has no line")
        else:
            teaser = analyze_teaser(parsed)

    LOGGER.debug(
        "Parlay of %d legs: joint=%.4f book=%.4f odds=%+d ev=%.4f kelly=%.4f",
        len(parsed),
        true_joint,
        book_joint,
        american,
        ev,
        kelly,
    )
    return ParlayAnalysis(
        legs=parsed,
        leg_count=len(parsed),
        is_same_game=is_same_game(parsed),
        true_joint_prob=true_joint,
        book_implied_prob=book_joint,
        decimal_odds=decimal_odds,
        parlay_odds=american,
        expected_value=ev,
        kelly_fraction=kelly,
        suggested_stake=stake,
        correlation_assumption=rho,
        teaser_analysis=teaser,
    )


def should_suggest_sgp(spread_model_prob: float, total_model_prob: float) -> bool:
    """Suggest a same-game parlay when both the side and the total lean clearly."""

    return spread_model_prob > 0.55 and total_model_prob > 0.55


def should_suggest_teaser(model_edge: float) -> bool:
    """Suggest a teaser when the model line differs from the market by more than 7 points."""

    return abs(model_edge) > 7
