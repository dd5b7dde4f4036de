"""Reporting utilities for trend summaries, discovered angles, picks and parlays."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Iterable, Sequence

import pandas as pd

from .angles import DiscoveredAngle
from .data_models import NoPick, ParlayAnalysis, Pick, TrendSummary
from .logging_utils import configure_logging

LOGGER = configure_logging(__name__)

SUMMARY_COLUMNS = ["market", "wins", "losses", "pushes", "total", "win_pct", "record"]
ANGLE_COLUMNS = [
    "angle_id",
    "category",
    "games",
    "ats_record",
    "ats_pct",
    "ats_p_value",
    "ou_record",
    "strength",
    "interest",
    "headline",
]
PICK_COLUMNS = ["game_id", "pick_type", "pick_side", "line", "confidence", "trend_score", "result", "headline"]

__all__ = [
    "summary_frame",
    "angles_frame",
    "picks_frame",
    "parlay_frame",
    "format_summary",
    "format_angles",
    "format_picks",
    "format_parlay",
    "export_csv",
]


def _normalize_string(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value)


def _is_missing(value: object) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def _format_numeric(value: object) -> str:
    if _is_missing(value):
        return "-"
    try:
        numeric = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return _normalize_string(value) or "-"
    if math.isfinite(numeric) and math.isclose(numeric, round(numeric)):
        return f"{int(round(numeric))}"
    text = f"{numeric:.3f}".rstrip("0").rstrip(".")
    return text or "0"


def _format_odds(value: object) -> str:
    if _is_missing(value):
        return "-"
    try:
        integer = int(float(value))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return _normalize_string(value) or "-"
    return f"{integer:+d}" if integer > 0 else f"{integer:d}"


def _format_percent(value: object) -> str:
    """Format a probability in ``[0, 1]`` as a percentage with one decimal."""

    if _is_missing(value):
        return "-"
    try:
        numeric = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return _normalize_string(value) or "-"
    return f"{numeric * 100:.1f}"


def _format_stars(tier: object) -> str:
    if _is_missing(tier):
        return "-"
    return "*" * int(tier)  # type: ignore[call-overload]


def _compute_widths(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> list[int]:
    widths = [len(header) for header in headers]
    for row in rows:
        for index, value in enumerate(row):
            widths[index] = max(widths[index], len(value))
    return widths


def _render_table(headers: Sequence[str], rows: Sequence[Sequence[str]], empty: str) -> str:
    if not rows:
        return empty

    widths = _compute_widths(headers, rows)
    header_line = " ".join(header.ljust(width) for header, width in zip(headers, widths))
    separator_line = " ".join("-" * width for width in widths)
    body_lines = [" ".join(value.ljust(width) for value, width in zip(row, widths)) for row in rows]
    return "\n".join([header_line, separator_line, *body_lines])


def summary_frame(summary: TrendSummary) -> pd.DataFrame:
    """One row per market bucket (straight up, ATS, over/under)."""

    rows = []
    for market, bucket in (("SU", summary.straight_up), ("ATS", summary.ats), ("O/U", summary.over_under)):
        rows.append(
            {
                "market": market,
                "wins": bucket.wins,
                "losses": bucket.losses,
                "pushes": bucket.pushes,
                "total": bucket.total,
                "win_pct": bucket.win_pct,
                "record": bucket.record,
            }
        )
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)


def angles_frame(angles: Iterable[DiscoveredAngle]) -> pd.DataFrame:
    rows = []
    for angle in angles:
        ou = angle.summary.over_under
        rows.append(
            {
                "angle_id": angle.template.id,
                "category": angle.template.category.value,
                "games": angle.summary.total_games,
                "ats_record": angle.summary.ats.record,
                "ats_pct": angle.summary.ats.win_pct,
                "ats_p_value": round(angle.ats_significance.p_value, 4),
                "ou_record": ou.record if ou.total else None,
                "strength": angle.best_strength.value,
                "interest": angle.interest_score,
                "headline": angle.headline,
            }
        )
    return pd.DataFrame(rows, columns=ANGLE_COLUMNS)


def picks_frame(picks: Iterable[Pick | NoPick]) -> pd.DataFrame:
    """Tabulate picks; no-picks are kept with a zero tier and their reason as the headline."""

    rows = []
    for pick in picks:
        if isinstance(pick, NoPick):
            rows.append(
                {
                    "game_id": pick.game_id,
                    "pick_type": pick.pick_type.value,
                    "pick_side": None,
                    "line": None,
                    "confidence": 0,
                    "trend_score": pick.trend_score,
                    "result": None,
                    "headline": pick.reason,
                }
            )
            continue
        rows.append(
            {
                "game_id": pick.game_id,
                "pick_type": pick.pick_type.value,
                "pick_side": pick.pick_side,
                "line": pick.line,
                "confidence": pick.confidence,
                "trend_score": pick.trend_score,
                "result": pick.result.value,
                "headline": pick.headline,
            }
        )
    return pd.DataFrame(rows, columns=PICK_COLUMNS)


def parlay_frame(analysis: ParlayAnalysis) -> pd.DataFrame:
    rows = [
        {
            "leg": index,
            "type": leg.type.value,
            "pick_side": leg.pick_side,
            "line": leg.line,
            "odds": leg.odds,
            "implied_prob": leg.implied_prob,
            "model_prob": leg.model_prob,
            "game_id": leg.game_id,
        }
        for index, leg in enumerate(analysis.legs, start=1)
    ]
    return pd.DataFrame(rows)


def format_summary(summary: TrendSummary) -> str:
    df = summary_frame(summary)
    headers = ["Market", "Record", "Win%", "Games"]
    rows = [
        [row["market"], row["record"], _format_numeric(row["win_pct"]), _format_numeric(row["total"])]
        for _, row in df.iterrows()
    ]
    table = _render_table(headers, rows, "No games matched.")
    if not summary.total_games:
        return "No games matched."

    extras = [
        ("Avg points for", summary.avg_points_for),
        ("Avg points against", summary.avg_points_against),
        ("Avg margin", summary.avg_margin),
        ("Avg total", summary.avg_total_points),
        ("Avg spread", summary.avg_spread),
    ]
    lines = [f"{summary.total_games} games", table]
    lines.extend(f"{label}: {_format_numeric(value)}" for label, value in extras if value is not None)
    return "\n".join(lines)


def format_angles(angles: Sequence[DiscoveredAngle], n: int = 25) -> str:
    """Return a fixed-width table of the ``n`` most interesting angles."""

    df = angles_frame(angles).head(n)
    headers = ["Angle", "Games", "ATS", "ATS%", "p", "O/U", "Strength", "Interest"]
    rows = [
        [
            _normalize_string(row["angle_id"]),
            _format_numeric(row["games"]),
            _normalize_string(row["ats_record"]),
            _format_numeric(row["ats_pct"]),
            _format_numeric(row["ats_p_value"]),
            _normalize_string(row["ou_record"]) or "-",
            _normalize_string(row["strength"]),
            _format_numeric(row["interest"]),
        ]
        for _, row in df.iterrows()
    ]
    return _render_table(headers, rows, "No angles found.")


def format_picks(picks: Sequence[Pick | NoPick]) -> str:
    df = picks_frame(picks)
    headers = ["Game", "Type", "Side", "Line", "Tier", "Score", "Result"]
    rows = [
        [
            _normalize_string(row["game_id"]) or "-",
            _normalize_string(row["pick_type"]),
            _normalize_string(row["pick_side"]) or "-",
            _format_numeric(row["line"]),
            _format_stars(row["confidence"]) or "-",
            _format_numeric(row["trend_score"]),
            _normalize_string(row["result"]) or "-",
        ]
        for _, row in df.iterrows()
    ]
    return _render_table(headers, rows, "No picks available.")


def format_parlay(analysis: ParlayAnalysis) -> str:
    df = parlay_frame(analysis)
    headers = ["Leg", "Type", "Side", "Line", "Odds", "Book%", "Model%"]
    rows = [
        [
            _format_numeric(row["leg"]),
            _normalize_string(row["type"]),
            _normalize_string(row["pick_side"]) or "-",
            _format_numeric(row["line"]),
            _format_odds(row["odds"]),
            _format_percent(row["implied_prob"]),
            _format_percent(row["model_prob"]),
        ]
        for _, row in df.iterrows()
    ]
    lines = [
        _render_table(headers, rows, "No legs."),
        f"Parlay odds: {_format_odds(analysis.parlay_odds)} (decimal {analysis.decimal_odds:.3f})",
        f"True joint: {_format_percent(analysis.true_joint_prob)}%  Book joint: "
        f"{_format_percent(analysis.book_implied_prob)}%",
        f"EV per unit: {analysis.expected_value:+.4f}  Kelly: {_format_percent(analysis.kelly_fraction)}%  "
        f"Stake: {analysis.suggested_stake:.2f}",
    ]
    if analysis.is_same_game:
        lines.append(f"Same-game parlay (correlation {analysis.correlation_assumption:g})")
    teaser = analysis.teaser_analysis
    if teaser is not None:
        lines.append(
            f"{teaser.teaser_points:g}-point teaser at {_format_odds(teaser.teaser_odds)}: joint "
            f"{_format_percent(teaser.teased_joint_prob)}%, EV {teaser.teaser_ev:+.4f} ({teaser.recommendation})"
        )
    return "\n".join(lines)


def export_csv(df: pd.DataFrame, path: Path | str) -> None:
    """Export ``df`` to ``path`` as CSV."""

    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)
    LOGGER.debug("Writing %s rows to %s", len(df), destination)
    df.to_csv(destination, index=False)
