"""Statistical significance of observed hit rates against a baseline."""

from __future__ import annotations

import math
from typing import Iterable

from .data_models import SignificanceResult, Strength

Z_95 = 1.959963984540054

# (strength, minimum decided sample, p-value must be below), strongest first.
STRENGTH_THRESHOLDS: tuple[tuple[Strength, int, float], ...] = (
    (Strength.STRONG, 30, 0.01),
    (Strength.MODERATE, 20, 0.05),
    (Strength.WEAK, 10, 0.10),
)

_LABELS = {
    Strength.STRONG: "Strong trend",
    Strength.MODERATE: "Moderate trend",
    Strength.WEAK: "Weak trend",
    Strength.NOISE: "Not significant",
}


def normal_cdf(value: float) -> float:
    """Standard normal CDF using math.erf."""

    return 0.5 * (1.0 + math.erf(value / math.sqrt(2.0)))


def two_tailed_p(z: float) -> float:
    # erfc keeps precision in the far tail where 1 - cdf would round to zero.
    return min(1.0, math.erfc(abs(z) / math.sqrt(2.0)))


def wilson_interval(wins: int, n: int, z: float = Z_95) -> tuple[float, float]:
    """Wilson score interval for ``wins`` successes out of ``n``; ``(0, 1)`` when empty."""

    if n <= 0:
        return (0.0, 1.0)
    p = wins / n
    z2 = z * z
    denominator = 1.0 + z2 / n
    center = (p + z2 / (2.0 * n)) / denominator
    margin = (z * math.sqrt((p * (1.0 - p) + z2 / (4.0 * n)) / n)) / denominator
    return (max(0.0, center - margin), min(1.0, center + margin))


def classify_strength(n: int, p_value: float) -> Strength:
    for strength, min_n, max_p in STRENGTH_THRESHOLDS:
        if n >= min_n and p_value < max_p:
            return strength
    return Strength.NOISE


def strength_at_least(strength: Strength | str, floor: Strength | str) -> bool:
    return Strength(strength).at_least(Strength(floor))


def strongest(strengths: Iterable[Strength]) -> Strength:
    return max(strengths, key=lambda s: s.rank, default=Strength.NOISE)


def _check_count(name: str, value: int | float) -> int | float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value) or value < 0:
        raise ValueError(f"{name} must be a finite non-negative count, got {value!r}")
    return value


def compute_significance(wins: float, losses: float, baseline_rate: float = 0.5) -> SignificanceResult:
    """One-proportion z-test of ``wins / (wins + losses)`` against ``baseline_rate``.

    Pushes never enter the sample and fractional (weighted) counts are
    accepted. The p-value is two-tailed from the normal approximation and the
    interval is the 95% Wilson score interval.
    """

    wins = _check_count("wins", wins)
    losses = _check_count("losses", losses)
    if not isinstance(baseline_rate, (int, float)) or not 0.0 < baseline_rate < 1.0:
        raise ValueError(f"baseline_rate must lie strictly between 0 and 1, got {baseline_rate!r}")

    n = wins + losses
    if n == 0:
        return SignificanceResult(
            strength=Strength.NOISE,
            label="No data",
            p_value=1.0,
            observed_rate=None,
            baseline_rate=baseline_rate,
            confidence_interval=(0.0, 1.0),
            z_score=0.0,
            sample_size=0,
            is_significant=False,
        )

    observed = wins / n
    se = math.sqrt(baseline_rate * (1.0 - baseline_rate) / n)
    z = (observed - baseline_rate) / se
    if observed == baseline_rate:
        z = 0.0
    p_value = two_tailed_p(z)
    strength = classify_strength(n, p_value)

    return SignificanceResult(
        strength=strength,
        label=_LABELS[strength],
        p_value=p_value,
        observed_rate=observed,
        baseline_rate=baseline_rate,
        confidence_interval=wilson_interval(wins, n),
        z_score=z,
        sample_size=n,
        is_significant=strength in (Strength.STRONG, Strength.MODERATE),
    )
