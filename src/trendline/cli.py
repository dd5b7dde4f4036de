"""Command-line interface for trend queries, angle discovery, pick scoring and parlays."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Sequence

import pandas as pd

from .angles import discover_angles, get_angle_templates, matchup_angles
from .data_loader import fetch_remote_records, load_records
from .data_models import GameRecord, PickType, Strength
from .exceptions import DataSourceError, ParlayValidationError, QueryValidationError
from .logging_utils import configure_logging, set_log_level
from .parlay import analyze_parlay
from .query import build_filter, build_query
from .report import (
    angles_frame,
    export_csv,
    format_angles,
    format_parlay,
    format_picks,
    format_summary,
    parlay_frame,
    picks_frame,
)
from .scoring import PickContext, score_pick
from .significance import compute_significance
from .trends import evaluate_query

LOGGER = configure_logging(__name__)


def _parse_value(text: str) -> Any:
    """Interpret a filter value as JSON where possible, otherwise as a bare string."""

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def _load(source: str) -> list[GameRecord]:
    if source.startswith(("http://", "https://")):
        return fetch_remote_records(source)
    return load_records(source)


def _add_data_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--data", required=True, help="CSV/JSON path or URL of historical game records.")


def _add_output_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Optional path to write the results as CSV. Printed to stdout when omitted.",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Situational trend analytics and pick scoring.")
    parser.add_argument("--log-level", default=None, choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    subparsers = parser.add_subparsers(dest="command", required=True)

    query = subparsers.add_parser("query", help="Run a filtered trend query and summarise the matches.")
    _add_data_argument(query)
    query.add_argument("--sport", default="ALL", choices=["NFL", "NCAAF", "NCAAMB", "ALL"])
    query.add_argument("--team", default=None)
    query.add_argument("--perspective", default="home")
    query.add_argument(
        "--filter",
        dest="filters",
        nargs=3,
        action="append",
        default=[],
        metavar=("FIELD", "OPERATOR", "VALUE"),
        help="Filter clause; VALUE is parsed as JSON when possible (e.g. '[-3, 3]').",
    )
    query.add_argument("--seasons", nargs=2, type=int, default=None, metavar=("START", "END"))
    query.add_argument("--limit", type=int, default=None)
    _add_output_argument(query)

    significance = subparsers.add_parser("significance", help="Test a win/loss record against a baseline.")
    significance.add_argument("--wins", type=int, required=True)
    significance.add_argument("--losses", type=int, required=True)
    significance.add_argument("--baseline", type=float, default=0.5)

    angles = subparsers.add_parser("angles", help="Scan the angle catalog for significant trends.")
    _add_data_argument(angles)
    angles.add_argument("--sport", default=None, choices=["NFL", "NCAAF", "NCAAMB"])
    angles.add_argument("--team", default=None)
    angles.add_argument("--seasons", nargs=2, type=int, default=None, metavar=("START", "END"))
    angles.add_argument("--min-strength", default=Strength.WEAK.value, choices=[s.value for s in Strength])
    angles.add_argument("--max-results", type=int, default=25)
    angles.add_argument("--category", dest="categories", action="append", default=None)
    _add_output_argument(angles)

    picks = subparsers.add_parser("picks", help="Score spread and total picks for unplayed games.")
    _add_data_argument(picks)
    picks.add_argument("--sport", default=None, choices=["NFL", "NCAAF", "NCAAMB"])
    picks.add_argument("--include-no-picks", action="store_true")
    _add_output_argument(picks)

    parlay = subparsers.add_parser("parlay", help="Price a parlay from a JSON file of legs.")
    parlay.add_argument("--legs", type=Path, required=True, help="JSON file holding a list of legs.")
    parlay.add_argument("--bankroll", type=float, default=None)
    parlay.add_argument("--correlation", type=float, default=None, help="Same-game leg correlation.")
    _add_output_argument(parlay)

    subparsers.add_parser("templates", help="List the situational angle catalog.")

    return parser.parse_args(argv)


def _write_or_print(df: pd.DataFrame, text: str, output: Path | None) -> None:
    if output:
        export_csv(df, output)
        LOGGER.info("Wrote %d rows to %s", len(df), output)
    else:
        print(text)


def _run_query(args: argparse.Namespace) -> pd.DataFrame:
    filters = [build_filter(field, operator, _parse_value(value)) for field, operator, value in args.filters]
    query = build_query(
        sport=args.sport,
        team=args.team,
        perspective=args.perspective,
        filters=filters,
        season_range=tuple(args.seasons) if args.seasons else None,
        limit=args.limit,
    )
    result = evaluate_query(query, _load(args.data))
    games = pd.DataFrame([game.model_dump(mode="json") for game in result.games])
    _write_or_print(games, format_summary(result.summary), args.output)
    return games


def _run_significance(args: argparse.Namespace) -> pd.DataFrame:
    result = compute_significance(args.wins, args.losses, args.baseline)
    frame = pd.DataFrame([result.model_dump(mode="json")])
    print(frame.to_string(index=False))
    return frame


def _run_angles(args: argparse.Namespace) -> pd.DataFrame:
    lookup = discover_angles(
        _load(args.data),
        sport=args.sport,
        team=args.team,
        season_range=tuple(args.seasons) if args.seasons else None,
        max_results=args.max_results,
        min_strength=args.min_strength,
        categories=args.categories,
    )
    frame = angles_frame(lookup.angles)
    _write_or_print(frame, format_angles(lookup.angles, args.max_results), args.output)
    return frame


def _run_picks(args: argparse.Namespace) -> pd.DataFrame:
    records = _load(args.data)
    if args.sport:
        records = [record for record in records if record.sport.value == args.sport]
    history = [record for record in records if record.is_final]
    upcoming = [record for record in records if not record.is_final]
    LOGGER.info("Scoring %d upcoming games against %d graded games", len(upcoming), len(history))

    results = []
    for game in upcoming:
        angles = matchup_angles(game, history)
        for pick_type in (PickType.SPREAD, PickType.OVER_UNDER):
            pick = score_pick(angles, PickContext.for_game(game, pick_type))
            if pick.confidence or args.include_no_picks:
                results.append(pick)
    frame = picks_frame(results)
    _write_or_print(frame, format_picks(results), args.output)
    return frame


def _run_parlay(args: argparse.Namespace) -> pd.DataFrame:
    try:
        legs = json.loads(args.legs.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ParlayValidationError(f"Could not read legs from {args.legs}: {exc}") from exc
    analysis = analyze_parlay(legs, bankroll=args.bankroll, same_game_correlation=args.correlation)
    frame = parlay_frame(analysis)
    _write_or_print(frame, format_parlay(analysis), args.output)
    return frame


def _run_templates(args: argparse.Namespace) -> pd.DataFrame:
    frame = pd.DataFrame(
        [
            {
                "id": template.id,
                "category": template.category.value,
                "perspective": template.perspective.value,
                "sports": ",".join(sport.value for sport in template.sports),
                "label": template.label,
            }
            for template in get_angle_templates()
        ]
    )
    print(frame.to_string(index=False))
    return frame


_COMMANDS = {
    "query": _run_query,
    "significance": _run_significance,
    "angles": _run_angles,
    "picks": _run_picks,
    "parlay": _run_parlay,
    "templates": _run_templates,
}


def run_cli(argv: Sequence[str] | None = None) -> pd.DataFrame:
    args = parse_args(argv)
    if args.log_level:
        set_log_level(args.log_level)
    return _COMMANDS[args.command](args)


def main() -> None:
    try:
        run_cli()
    except (QueryValidationError, ParlayValidationError, DataSourceError, ValueError) as exc:
        LOGGER.error("%s", exc)
        raise SystemExit(2) from exc


if __name__ == "__main__":
    main()
