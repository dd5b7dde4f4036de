"""Trend query and filter models, validated against the field whitelist."""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .data_models import Perspective
from .exceptions import QueryValidationError
from .fields import FieldKind, FilterField, field_spec

MAX_FILTERS = 10
MAX_IN_VALUES = 50
MAX_LIMIT = 1000
MAX_TEAM_LENGTH = 100

SportOrAll = Literal["NFL", "NCAAF", "NCAAMB", "ALL"]


class FilterOperator(str, Enum):
    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    NOT_IN = "notIn"
    CONTAINS = "contains"
    BETWEEN = "between"


ORDERING_OPERATORS = frozenset(
    {FilterOperator.GT, FilterOperator.GTE, FilterOperator.LT, FilterOperator.LTE}
)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _coerce_date(value: Any) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        try:
            return dt.date.fromisoformat(value.strip())
        except ValueError as exc:
            raise ValueError(f"expected an ISO date, got {value!r}") from exc
    raise ValueError(f"expected an ISO date, got {value!r}")


def _coerce_ordered(value: Any, kind: FieldKind) -> Any:
    if kind is FieldKind.DATE:
        return _coerce_date(value)
    if not _is_number(value):
        raise ValueError(f"expected a number, got {value!r}")
    return value


class Filter(BaseModel):
    """A single ``(field, operator, value)`` predicate."""

    model_config = ConfigDict(frozen=True)

    field: FilterField
    operator: FilterOperator
    value: Any = None

    @model_validator(mode="after")
    def _check_value(self) -> "Filter":
        kind = field_spec(self.field).kind
        op = self.operator
        value = self.value

        if op is FilterOperator.BETWEEN:
            if not isinstance(value, (list, tuple)) or len(value) != 2:
                raise ValueError("between requires a two-element [low, high] pair")
            low, high = (_coerce_ordered(item, kind) for item in value)
            if low > high:
                raise ValueError("between bounds must be ordered low <= high")
            value = (low, high)
        elif op in (FilterOperator.IN, FilterOperator.NOT_IN):
            if not isinstance(value, (list, tuple)):
                raise ValueError(f"{op.value} requires a list of values")
            if len(value) > MAX_IN_VALUES:
                raise ValueError(f"{op.value} accepts at most {MAX_IN_VALUES} values, got {len(value)}")
            allow_bool = kind is FieldKind.BOOLEAN
            if not all(
                isinstance(item, str) or _is_number(item) or (allow_bool and isinstance(item, bool)) for item in value
            ):
                raise ValueError(f"{op.value} values must be strings or numbers (or booleans on flag fields)")
            if kind is FieldKind.DATE:
                value = tuple(_coerce_date(item) for item in value)
            else:
                value = tuple(value)
        elif op is FilterOperator.CONTAINS:
            if kind is not FieldKind.STRING:
                raise ValueError(f"contains is only valid on text fields, not {self.field.value}")
            if not isinstance(value, str):
                raise ValueError("contains requires a string value")
        elif op in ORDERING_OPERATORS:
            value = _coerce_ordered(value, kind)
        else:
            if value is not None and not isinstance(value, (str, int, float, bool)):
                raise ValueError(f"{op.value} requires a scalar value")
            if kind is FieldKind.DATE and isinstance(value, str):
                value = _coerce_date(value)

        object.__setattr__(self, "value", value)
        return self


class OrderBy(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: FilterField
    direction: Literal["asc", "desc"] = "desc"


class TrendQuery(BaseModel):
    """A validated trend query; camelCase keys from the query parser are accepted."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    sport: SportOrAll
    team: Optional[str] = Field(default=None, max_length=MAX_TEAM_LENGTH)
    perspective: Perspective = Perspective.HOME
    filters: list[Filter] = Field(default_factory=list, max_length=MAX_FILTERS)
    season_range: Optional[tuple[int, int]] = None
    limit: Optional[int] = Field(default=None, ge=1, le=MAX_LIMIT)
    order_by: Optional[OrderBy] = None

    @field_validator("team")
    @classmethod
    def _blank_team(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @field_validator("season_range")
    @classmethod
    def _ordered_range(cls, value: Optional[tuple[int, int]]) -> Optional[tuple[int, int]]:
        if value is not None and value[0] > value[1]:
            raise ValueError("season range must be ordered (start <= end)")
        return value

    @model_validator(mode="after")
    def _team_perspective(self) -> "TrendQuery":
        if self.perspective in (Perspective.TEAM, Perspective.OPPONENT) and not self.team:
            raise ValueError(f"perspective '{self.perspective.value}' requires a team")
        return self


def build_query(data: Mapping[str, Any] | None = None, **overrides: Any) -> TrendQuery:
    """Validate raw query input, raising :class:`QueryValidationError` with structured reasons."""

    payload = dict(data or {})
    payload.update(overrides)
    try:
        return TrendQuery.model_validate(payload)
    except ValidationError as exc:
        reasons = exc.errors(include_url=False, include_context=False)
        raise QueryValidationError(f"Invalid trend query: {exc.error_count()} problem(s)", reasons) from exc


def build_filter(field: FilterField | str, operator: FilterOperator | str, value: Any = None) -> Filter:
    try:
        return Filter(field=field, operator=operator, value=value)
    except ValidationError as exc:
        reasons = exc.errors(include_url=False, include_context=False)
        raise QueryValidationError(f"Invalid filter on {field!s}", reasons) from exc


def month_filter(month: int) -> Filter:
    return build_filter(FilterField.MONTH, FilterOperator.EQ, month)


def spread_filter(operator: FilterOperator | str, value: Any) -> Filter:
    """Filter on the perspective spread, e.g. ``spread_filter("between", [-3, 3])``."""
    return build_filter(FilterField.SPREAD, operator, value)


def season_filter(start: int, end: int) -> Filter:
    return build_filter(FilterField.SEASON, FilterOperator.BETWEEN, [start, end])


def day_of_week_filter(days: str | list[str]) -> Filter:
    if isinstance(days, (list, tuple)):
        return build_filter(FilterField.DAY_OF_WEEK, FilterOperator.IN, list(days))
    return build_filter(FilterField.DAY_OF_WEEK, FilterOperator.EQ, days)


def conference_filter(conference: str) -> Filter:
    return build_filter(FilterField.HOME_CONFERENCE, FilterOperator.EQ, conference)
