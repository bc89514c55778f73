from pydantic import __version__ as _pydantic_version

# Index definitions and settings rely on the Pydantic v2 API
# (model_validate, ConfigDict, pydantic-settings).
if not _pydantic_version.startswith("2"):
    raise ImportError(
        "queryplan requires pydantic>=2.0; detected version %s" % _pydantic_version
    )

from .errors import (
    FanOutError,
    IllegalQueryError,
    IllegalQueryType,
    IndexCatalogError,
    InternalPlannerError,
    KeysOnlySortError,
    QueryPlanningError,
    QueryTooComplexError,
    SortMismatchError,
    UnsupportedFilterError,
)
from .index import (
    CompositeIndexManager,
    Index,
    IndexCatalog,
    IndexProperty,
    Mode,
    NormalizedQuery,
    OrderedIndexComponent,
    UnorderedIndexComponent,
    normalize_query,
)
from .planner import QueryPlan, QueryPlanner
from .query import (
    KEY_PROPERTY,
    CompositeFilter,
    CompositeFilterOperator,
    FilterOperator,
    FilterPredicate,
    GeoPoint,
    Key,
    Query,
    QuerySpec,
    SortDirection,
    SortPredicate,
    and_,
    compare_values,
    or_,
    query_from_selectors,
    validate_query,
)
from .settings import PlannerSettings, load_settings
from .split import (
    DEFAULT_SPLITTERS,
    InSplitter,
    MultiQueryPlan,
    NotEqualSplitter,
    SplitComponent,
    SplitResult,
    disjunctive_normal_form,
    run_plans,
    split_query,
)

__all__ = [
    "FanOutError",
    "IllegalQueryError",
    "IllegalQueryType",
    "IndexCatalogError",
    "InternalPlannerError",
    "KeysOnlySortError",
    "QueryPlanningError",
    "QueryTooComplexError",
    "SortMismatchError",
    "UnsupportedFilterError",
    "CompositeIndexManager",
    "Index",
    "IndexCatalog",
    "IndexProperty",
    "Mode",
    "NormalizedQuery",
    "OrderedIndexComponent",
    "UnorderedIndexComponent",
    "normalize_query",
    "QueryPlan",
    "QueryPlanner",
    "KEY_PROPERTY",
    "CompositeFilter",
    "CompositeFilterOperator",
    "FilterOperator",
    "FilterPredicate",
    "GeoPoint",
    "Key",
    "Query",
    "QuerySpec",
    "SortDirection",
    "SortPredicate",
    "and_",
    "compare_values",
    "or_",
    "query_from_selectors",
    "validate_query",
    "PlannerSettings",
    "load_settings",
    "DEFAULT_SPLITTERS",
    "InSplitter",
    "MultiQueryPlan",
    "NotEqualSplitter",
    "SplitComponent",
    "SplitResult",
    "disjunctive_normal_form",
    "run_plans",
    "split_query",
]
