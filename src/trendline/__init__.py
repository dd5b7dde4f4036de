"""Trend analytics, significance testing and pick scoring for sports betting records."""

from .angles import discover_angles, matchup_angles
from .config import get_settings
from .parlay import analyze_parlay
from .query import build_query
from .scoring import score_pick
from .significance import compute_significance
from .trends import evaluate_query

__all__ = [
    "analyze_parlay",
    "build_query",
    "compute_significance",
    "discover_angles",
    "evaluate_query",
    "get_settings",
    "matchup_angles",
    "score_pick",
]
