"""Utilities for loading game records from files, DataFrames and remote feeds."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any, Iterable, List, Mapping

import pandas as pd
import requests
from pydantic import ValidationError

from .config import get_settings
from .data_models import GameRecord
from .exceptions import DataSourceError
from .logging_utils import configure_logging

LOGGER = configure_logging(__name__)

# Either spelling is accepted for each required column.
REQUIRED_COLUMNS = {
    "sport": ("sport",),
    "season": ("season",),
    "game_date": ("gameDate", "game_date"),
    "home_team": ("homeTeam", "home_team"),
    "away_team": ("awayTeam", "away_team"),
}


def _clean_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return value.date()
    if isinstance(value, float) and pd.isna(value):
        return None
    return value


def records_from_dicts(rows: Iterable[Mapping[str, Any]], strict: bool = False) -> List[GameRecord]:
    """Validate raw rows into :class:`GameRecord` models.

    Invalid rows are logged and skipped unless ``strict`` is set, in which case
    the first one raises :class:`DataSourceError`.
    """

    records: List[GameRecord] = []
    skipped = 0
    for index, row in enumerate(rows):
        cleaned = {key: _clean_value(value) for key, value in row.items()}
        try:
            records.append(GameRecord.model_validate(cleaned))
        except ValidationError as exc:
            if strict:
                raise DataSourceError(f"Row {index} is not a valid game record: {exc}", retryable=False) from exc
            skipped += 1
            LOGGER.warning("Skipping row %d: %s", index, exc.errors(include_url=False)[0]["msg"])
    if skipped:
        LOGGER.warning("Skipped %d invalid rows out of %d", skipped, skipped + len(records))
    return records


def load_records_from_dataframe(df: pd.DataFrame, strict: bool = False) -> List[GameRecord]:
    """Convert a DataFrame into a list of :class:`GameRecord` models."""

    missing = [
        name for name, spellings in REQUIRED_COLUMNS.items() if not any(col in df.columns for col in spellings)
    ]
    if missing:
        raise DataSourceError(f"Game DataFrame is missing columns: {', '.join(sorted(missing))}", retryable=False)
    frame = df.astype(object).where(pd.notna(df), None)
    return records_from_dicts(frame.to_dict(orient="records"), strict=strict)


def _resolve_path(path: Path | str) -> Path:
    candidate = Path(path)
    if candidate.exists():
        return candidate
    in_data_dir = get_settings().DATA_DIR / candidate
    if in_data_dir.exists():
        return in_data_dir
    raise DataSourceError(f"Expected data file {candidate} was not found.", retryable=False)


def _read_frame(buffer: Any, suffix: str) -> pd.DataFrame:
    if suffix == ".csv":
        return pd.read_csv(buffer)
    if suffix in (".json", ".jsonl"):
        return pd.read_json(buffer, orient="records", lines=suffix == ".jsonl", convert_dates=False)
    raise DataSourceError(f"Unsupported game file format {suffix!r}", retryable=False)


def load_records(path: Path | str, strict: bool = False) -> List[GameRecord]:
    """Load game records from a CSV, JSON or JSON-lines file (relative paths also try ``DATA_DIR``)."""

    resolved = _resolve_path(path)
    LOGGER.debug("Loading game records from %s", resolved)
    try:
        df = _read_frame(resolved, resolved.suffix.lower())
    except (OSError, ValueError) as exc:
        raise DataSourceError(f"Could not parse game file {resolved}: {exc}", retryable=False) from exc
    records = load_records_from_dataframe(df, strict=strict)
    LOGGER.info("Loaded %d game records from %s", len(records), resolved.name)
    return records


def fetch_remote_records(url: str, strict: bool = False) -> List[GameRecord]:
    """Fetch game records from a remote CSV or JSON feed, raising :class:`DataSourceError` on failure."""

    settings = get_settings()
    LOGGER.info("Fetching remote game records from %s", url)
    try:
        response = requests.get(url, timeout=settings.HTTP_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as exc:  # pragma: no cover - network errors are logged
        LOGGER.error("Failed to download game records from %s: %s", url, exc)
        raise DataSourceError(f"Failed to download game records from {url}") from exc

    content_type = response.headers.get("Content-Type", "")
    suffix = ".json" if "json" in content_type or url.lower().endswith(".json") else ".csv"
    try:
        df = _read_frame(io.StringIO(response.text), suffix)
    except ValueError as exc:
        raise DataSourceError(f"Could not parse game records from {url}: {exc}", retryable=False) from exc
    return load_records_from_dataframe(df, strict=strict)
