"""Exceptions raised while planning queries.

Every planning error is a caller/input error: nothing is retried and no
partial plan is returned. All of them derive from :class:`ValueError` so
callers that only catch ``ValueError`` keep working.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class QueryPlanningError(ValueError):
    """Base exception for queries the planner refuses to plan."""


class UnsupportedFilterError(QueryPlanningError):
    """Raised when a filter combination cannot be rewritten into native filters."""


class SortMismatchError(QueryPlanningError):
    """Raised when the sort orders are incompatible with the inequality filters."""


class FanOutError(QueryPlanningError):
    """Raised when splitting would produce too many sub-queries."""

    def __init__(self, total: int, limit: int):
        super().__init__(
            "Splitting the provided query requires that too many subqueries are merged "
            f"in memory ({total} > {limit})."
        )
        self.total = total
        self.limit = limit


class QueryTooComplexError(QueryPlanningError):
    """Raised when a filter tree is nested deeper than the configured bound."""


class KeysOnlySortError(QueryPlanningError):
    """Raised when a keys-only multi-query would need to sort by a non-key property."""


class IllegalQueryType(str, Enum):
    KIND_REQUIRED = "kind_required"
    UNSUPPORTED_FILTER = "unsupported_filter"
    MULTIPLE_INEQ_FILTERS = "multiple_ineq_filters"
    FIRST_SORT_NEQ_INEQ_PROP = "first_sort_neq_ineq_prop"
    ILLEGAL_VALUE = "illegal_value"
    ILLEGAL_PROJECTION = "illegal_projection"
    ILLEGAL_GROUPBY = "illegal_groupby"


class IllegalQueryError(QueryPlanningError):
    """Raised when a concrete query cannot be executed by the backend."""

    def __init__(self, message: str, illegal_query_type: IllegalQueryType):
        super().__init__(message)
        self.illegal_query_type = illegal_query_type


class IndexCatalogError(QueryPlanningError):
    """Raised when an index definition file cannot be parsed."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


class InternalPlannerError(RuntimeError):
    """Raised on conditions that validated input should never produce."""


__all__ = [
    "QueryPlanningError",
    "UnsupportedFilterError",
    "SortMismatchError",
    "FanOutError",
    "QueryTooComplexError",
    "KeysOnlySortError",
    "IllegalQueryType",
    "IllegalQueryError",
    "IndexCatalogError",
    "InternalPlannerError",
]
