"""Efficiency-rating tables, their time-boxed cache and merging onto game records."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Hashable, Iterable, Optional, TypeVar

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from rapidfuzz import fuzz, process

from .config import get_settings
from .data_models import GameRecord
from .exceptions import DataSourceError, RatingNotFoundError
from .logging_utils import configure_logging

LOGGER = configure_logging(__name__)

T = TypeVar("T")


@dataclass
class _CacheEntry(Generic[T]):
    value: T
    fetched_at: float


class TTLCache(Generic[T]):
    """Keyed cache whose entries expire ``ttl`` seconds after they were fetched.

    The clock is injected so expiry can be tested without sleeping. Concurrent
    misses may fetch more than once; fetchers are expected to be idempotent.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic) -> None:
        if ttl <= 0:
            raise ValueError("Cache TTL must be positive.")
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[Hashable, _CacheEntry[T]] = {}

    @property
    def ttl(self) -> float:
        return self._ttl

    def peek(self, key: Hashable) -> Optional[T]:
        """Return the cached value when it is still fresh, without fetching."""

        entry = self._entries.get(key)
        if entry is None or self._clock() - entry.fetched_at >= self._ttl:
            return None
        return entry.value

    def get(self, key: Hashable, fetch: Callable[[], T]) -> T:
        entry = self._entries.get(key)
        now = self._clock()
        if entry is not None and now - entry.fetched_at < self._ttl:
            return entry.value
        LOGGER.debug("Cache miss for %s; fetching", key)
        value = fetch()
        self._entries[key] = _CacheEntry(value=value, fetched_at=self._clock())
        return value

    def invalidate(self, key: Optional[Hashable] = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


class TeamRating(BaseModel):
    """One team's season efficiency ratings (points per 100 possessions)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    team: str = Field(..., alias="TeamName")
    season: int = Field(..., alias="Season")
    adj_em: float = Field(..., alias="AdjEM")
    rank: Optional[int] = Field(None, alias="RankAdjEM")
    adj_oe: Optional[float] = Field(None, alias="AdjOE")
    adj_de: Optional[float] = Field(None, alias="AdjDE")
    adj_tempo: Optional[float] = Field(None, alias="AdjTempo")
    conference: Optional[str] = Field(None, alias="ConfShort")


class RatingTable:
    """Ratings for one source and season, looked up by exact then fuzzy team name."""

    def __init__(self, ratings: Iterable[TeamRating], min_match_score: Optional[int] = None) -> None:
        self._ratings = list(ratings)
        self._by_name = {rating.team.lower(): rating for rating in self._ratings}
        self._names = [rating.team for rating in self._ratings]
        self._min_match_score = (
            min_match_score if min_match_score is not None else get_settings().RATING_MATCH_SCORE
        )

    def __len__(self) -> int:
        return len(self._ratings)

    def lookup(self, team: str) -> TeamRating:
        exact = self._by_name.get(team.strip().lower())
        if exact is not None:
            return exact
        if not self._names:
            raise RatingNotFoundError(f"No ratings loaded to match {team}")
        best = process.extractOne(team, self._names, scorer=fuzz.WRatio)
        if best is None:
            raise RatingNotFoundError(f"No rating matched for {team}")
        name, score, index = best
        if score < self._min_match_score:
            raise RatingNotFoundError(
                f"Best rating match {name!r} for {team!r} scored {score:.1f}, below {self._min_match_score}"
            )
        LOGGER.debug("Matched team '%s' to rating '%s' (score %.1f)", team, name, score)
        return self._ratings[index]

    def get(self, team: str) -> Optional[TeamRating]:
        try:
            return self.lookup(team)
        except RatingNotFoundError:
            return None


class RatingsClient:
    """Fetch rating tables over HTTP, cached per ``(source, season)``."""

    def __init__(
        self,
        base_url: str,
        source: str = "efficiency",
        api_key: Optional[str] = None,
        cache: Optional[TTLCache[RatingTable]] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        settings = get_settings()
        self.base_url = base_url
        self.source = source
        self._api_key = api_key
        self._cache = cache if cache is not None else TTLCache(settings.RATINGS_TTL_SECONDS)
        self._session = session or requests.Session()
        self._timeout = settings.HTTP_TIMEOUT

    def _fetch(self, season: int) -> RatingTable:
        headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}
        params = {"endpoint": "ratings", "y": str(season)}
        LOGGER.info("Fetching %s ratings for %d", self.source, season)
        try:
            response = self._session.get(self.base_url, params=params, headers=headers, timeout=self._timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            LOGGER.error("Failed to fetch %s ratings for %d: %s", self.source, season, exc)
            raise DataSourceError(f"Failed to fetch {self.source} ratings for {season}") from exc
        try:
            payload: Any = response.json()
        except ValueError as exc:
            raise DataSourceError(f"{self.source} ratings for {season} were not valid JSON", retryable=False) from exc

        if not isinstance(payload, list):
            raise DataSourceError(f"Unexpected {self.source} ratings payload for {season}", retryable=False)
        try:
            ratings = [TeamRating.model_validate({"Season": season, **row}) for row in payload]
        except (ValidationError, TypeError) as exc:
            raise DataSourceError(f"Malformed {self.source} rating row for {season}: {exc}", retryable=False) from exc
        LOGGER.info("Fetched %d %s team ratings for %d", len(ratings), self.source, season)
        return RatingTable(ratings)

    def ratings(self, season: int) -> RatingTable:
        return self._cache.get((self.source, season), lambda: self._fetch(season))


def merge_ratings(records: Iterable[GameRecord], table: RatingTable) -> list[GameRecord]:
    """Copy ratings onto records that lack them; unmatched teams are left as they are."""

    merged: list[GameRecord] = []
    for record in records:
        updates: dict[str, Any] = {}
        for side, team in (("home", record.home_team), ("away", record.away_team)):
            rating = table.get(team)
            if rating is None:
                LOGGER.warning("No rating found for %s", team)
                continue
            for attr, value in (
                (f"{side}_adj_em", rating.adj_em),
                (f"{side}_adj_oe", rating.adj_oe),
                (f"{side}_adj_de", rating.adj_de),
                (f"{side}_adj_tempo", rating.adj_tempo),
                (f"{side}_kenpom_rank", rating.rank),
            ):
                if getattr(record, attr) is None and value is not None:
                    updates[attr] = value
        if "home_adj_em" in updates or "away_adj_em" in updates:
            home_em = updates.get("home_adj_em", record.home_adj_em)
            away_em = updates.get("away_adj_em", record.away_adj_em)
            if record.efficiency_gap is None and home_em is not None and away_em is not None:
                updates["efficiency_gap"] = round(home_em - away_em, 2)
        merged.append(record.model_copy(update=updates) if updates else record)
    return merged
