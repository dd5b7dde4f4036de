"""Evaluate filter predicates against game records."""

from __future__ import annotations

import datetime as dt
from typing import Any, Iterable, Optional

from .data_models import GameRecord
from .exceptions import QueryValidationError
from .fields import Side, resolve_field
from .query import Filter, FilterOperator


def _same(left: Any, right: Any) -> bool:
    """Equality with case-insensitive strings; booleans never equal numbers."""

    if isinstance(left, str) and isinstance(right, str):
        return left.lower() == right.lower()
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    if isinstance(left, str) or isinstance(right, str):
        return False
    return left == right


def _ordered(left: Any, right: Any) -> bool:
    """Whether ``left`` and ``right`` can be compared with ``<``."""

    if isinstance(left, bool) or isinstance(right, bool):
        return False
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return True
    if isinstance(left, dt.date) and isinstance(right, dt.date):
        return True
    return isinstance(left, str) and isinstance(right, str)


def evaluate_operator(field_value: Any, operator: FilterOperator, filter_value: Any) -> bool:
    """Apply ``operator`` to an already-resolved field value.

    An absent field value only satisfies ``eq None`` and ``neq <value>``;
    every other operator treats it as a non-match.
    """

    if field_value is None:
        if operator is FilterOperator.EQ:
            return filter_value is None
        if operator is FilterOperator.NEQ:
            return filter_value is not None
        return False

    if operator is FilterOperator.EQ:
        return _same(field_value, filter_value)
    if operator is FilterOperator.NEQ:
        return not _same(field_value, filter_value)
    if operator is FilterOperator.IN:
        return any(_same(field_value, item) for item in filter_value)
    if operator is FilterOperator.NOT_IN:
        return not any(_same(field_value, item) for item in filter_value)
    if operator is FilterOperator.CONTAINS:
        if not isinstance(field_value, str):
            raise QueryValidationError(
                f"contains cannot be applied to non-text value {field_value!r}",
                [{"type": "contains_non_string", "input": field_value}],
            )
        return filter_value.lower() in field_value.lower()
    if operator is FilterOperator.BETWEEN:
        low, high = filter_value
        if not (_ordered(field_value, low) and _ordered(field_value, high)):
            return False
        return low <= field_value <= high

    if not _ordered(field_value, filter_value):
        return False
    if operator is FilterOperator.GT:
        return field_value > filter_value
    if operator is FilterOperator.GTE:
        return field_value >= filter_value
    if operator is FilterOperator.LT:
        return field_value < filter_value
    if operator is FilterOperator.LTE:
        return field_value <= filter_value
    raise QueryValidationError(f"Unsupported operator {operator!r}")


def evaluate_filter(record: GameRecord, filter_: Filter, side: Optional[Side] = "home") -> bool:
    value = resolve_field(record, filter_.field, side)
    return evaluate_operator(value, filter_.operator, filter_.value)


def matches_all(record: GameRecord, filters: Iterable[Filter], side: Optional[Side] = "home") -> bool:
    """All filters AND-combined; an empty filter list matches everything."""

    return all(evaluate_filter(record, filter_, side) for filter_ in filters)
