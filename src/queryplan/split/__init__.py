"""Query splitting: DNF expansion, operator splitters and multi-query plans."""

from .builder import MultiQueryPlan, split_query
from .components import UNSORTED, SplitComponent
from .dnf import disjunctive_normal_form
from .execute import entity_sort_key, run_plans
from .splitters import DEFAULT_SPLITTERS, InSplitter, NotEqualSplitter, QuerySplitter, SplitResult

__all__ = [
    "MultiQueryPlan",
    "split_query",
    "UNSORTED",
    "SplitComponent",
    "disjunctive_normal_form",
    "entity_sort_key",
    "run_plans",
    "DEFAULT_SPLITTERS",
    "InSplitter",
    "NotEqualSplitter",
    "QuerySplitter",
    "SplitResult",
]
