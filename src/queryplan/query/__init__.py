"""Query model: filter/sort AST, property values and structured selectors."""

from .ast import (
    INEQUALITY_OPERATORS,
    KEY_PROPERTY,
    CompositeFilter,
    CompositeFilterOperator,
    Filter,
    FilterOperator,
    FilterPredicate,
    Query,
    SortDirection,
    SortPredicate,
    and_,
    or_,
)
from .models import QuerySpec, query_from_selectors
from .validate import validate_query
from .values import (
    Circle,
    Comparator,
    GeoPoint,
    Key,
    Rectangle,
    compare_values,
    type_rank,
    value_sort_key,
)

__all__ = [
    "INEQUALITY_OPERATORS",
    "KEY_PROPERTY",
    "CompositeFilter",
    "CompositeFilterOperator",
    "Filter",
    "FilterOperator",
    "FilterPredicate",
    "Query",
    "SortDirection",
    "SortPredicate",
    "and_",
    "or_",
    "QuerySpec",
    "query_from_selectors",
    "validate_query",
    "Circle",
    "Comparator",
    "GeoPoint",
    "Key",
    "Rectangle",
    "compare_values",
    "type_rank",
    "value_sort_key",
]
