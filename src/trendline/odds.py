"""American/decimal odds conversions shared by the models and the parlay engine."""

from __future__ import annotations

import math
from typing import Iterable


def _require_american(odds: int | float) -> float:
    if odds is None:
        raise ValueError("American odds value is required for conversion")
    value = float(odds)
    if math.isnan(value) or -100.0 < value < 100.0:
        raise ValueError(f"American odds must be <= -100 or >= +100, got {odds!r}")
    return value


def american_to_implied_prob(odds: int | float) -> float:
    """Convert American odds to the bookmaker's implied probability."""

    value = _require_american(odds)
    if value > 0:
        return 100.0 / (value + 100.0)
    return -value / (-value + 100.0)


def american_to_decimal(odds: int | float) -> float:
    """Convert American odds to a decimal multiplier (stake included)."""

    value = _require_american(odds)
    if value > 0:
        return 1.0 + value / 100.0
    return 1.0 + 100.0 / -value


def decimal_to_american(decimal: float) -> int:
    """Convert decimal odds back to American, rounding half to even.

    Decimal odds of 1.0 or less have no American equivalent and are rejected.
    """

    if decimal is None or math.isnan(decimal) or decimal <= 1.0:
        raise ValueError(f"Decimal odds must be greater than 1.0, got {decimal!r}")
    if decimal >= 2.0:
        return int(round((decimal - 1.0) * 100.0))
    return int(round(-100.0 / (decimal - 1.0)))


def parlay_decimal_odds(decimals: Iterable[float]) -> float:
    """Multiply leg decimal odds into the combined parlay price."""

    combined = 1.0
    for value in decimals:
        combined *= value
    return combined


def profit_multiple(odds: int | float) -> float:
    """Profit per unit staked on a winning bet at ``odds``."""

    return american_to_decimal(odds) - 1.0
