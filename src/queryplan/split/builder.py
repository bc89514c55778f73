"""Turn a query with unsupported operators into plans of native sub-queries.

Each DNF clause of the query filter becomes one :class:`MultiQueryPlan`: the
filters left untouched by the splitters plus the split components. A plan is
expanded into concrete filter lists by taking the cross product of its
components.

Components are divided into *serial* and *parallel* ones. Serial components
follow the query's sort order, so the groups they produce can be concatenated.
The concrete queries within one group come from the parallel components and
their results have to be merged in memory.
"""

from __future__ import annotations

import itertools
import logging
import math
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from ..errors import FanOutError
from ..query.ast import FilterPredicate, Query
from ..query.values import Comparator, compare_values
from ..settings import PlannerSettings
from .components import SplitComponent
from .dnf import Clause, disjunctive_normal_form
from .splitters import DEFAULT_SPLITTERS, QuerySplitter

logger = logging.getLogger(__name__)

FilterList = Tuple[FilterPredicate, ...]


def _component_order(component: SplitComponent) -> Tuple[bool, int]:
    return (not component.is_sorted, component.sort_index)


@dataclass(frozen=True)
class MultiQueryPlan:
    query: Query
    filters: FilterList = ()
    components: Tuple[SplitComponent, ...] = ()
    has_sort: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "filters", tuple(self.filters))
        object.__setattr__(
            self, "components", tuple(sorted(self.components, key=_component_order))
        )

    @property
    def serial_count(self) -> int:
        if not self.has_sort:
            return len(self.components)
        count = 0
        next_index = 0
        for component in self.components:
            if component.sort_index == next_index:
                next_index += 1
            elif not (count and component.sort_index == next_index - 1):
                break
            count += 1
        return count

    @property
    def serial_components(self) -> Tuple[SplitComponent, ...]:
        return self.components[: self.serial_count]

    @property
    def parallel_components(self) -> Tuple[SplitComponent, ...]:
        return self.components[self.serial_count :]

    @property
    def query_count(self) -> int:
        return math.prod(len(c) for c in self.components)

    @property
    def parallel_query_size(self) -> int:
        return math.prod(len(c) for c in self.parallel_components)

    @property
    def is_split(self) -> bool:
        return bool(self.components)

    def _concrete(self, pieces: Sequence[FilterList]) -> FilterList:
        out: List[FilterPredicate] = list(self.filters)
        for piece in pieces:
            out.extend(piece)
        return tuple(out)

    def __iter__(self) -> Iterator[List[FilterList]]:
        serial = [c.filters for c in self.serial_components]
        parallel = [c.filters for c in self.parallel_components]
        for serial_choice in itertools.product(*serial):
            yield [
                self._concrete(serial_choice + parallel_choice)
                for parallel_choice in itertools.product(*parallel)
            ]

    def query_groups(self) -> Iterator[List[Query]]:
        for group in self:
            yield [self.query.with_filters(filters) for filters in group]

    def queries(self) -> Iterator[Query]:
        for group in self.query_groups():
            yield from group


def _clauses(query: Query, max_depth: int) -> Tuple[Clause, ...]:
    if query.filter is None:
        return ((),)
    if isinstance(query.filter, FilterPredicate):
        return ((query.filter,),)
    return disjunctive_normal_form(query.filter, max_depth)


def split_query(
    query: Query,
    splitters: Sequence[QuerySplitter] = DEFAULT_SPLITTERS,
    settings: Optional[PlannerSettings] = None,
    comparator: Comparator = compare_values,
) -> List[MultiQueryPlan]:
    """Split ``query`` into plans whose concrete queries only use native operators.

    Raises :class:`~queryplan.errors.FanOutError` when the plans together need
    more than ``settings.max_parallel_queries`` queries merged in memory. Only
    the parallel components count: serial groups are concatenated, and each
    plan adds at least one stream to the final merge.
    """
    settings = settings or PlannerSettings()
    clauses = _clauses(query, settings.max_filter_depth)
    logger.debug("Filter expanded into %d DNF clause(s)", len(clauses))

    plans: List[MultiQueryPlan] = []
    for clause in clauses:
        remaining: List[FilterPredicate] = list(clause)
        components: List[SplitComponent] = []
        for splitter in splitters:
            result = splitter.split(remaining, query.sorts, comparator)
            if result.consumed:
                remaining = [f for f in remaining if f not in result.consumed]
            components.extend(result.components)
        plans.append(MultiQueryPlan(query, tuple(remaining), tuple(components), query.has_sort))

    total = sum(plan.parallel_query_size for plan in plans)
    logger.debug(
        "Planned %d concrete queries across %d plan(s), %d merged in memory",
        sum(plan.query_count for plan in plans),
        len(plans),
        total,
    )
    if total > settings.max_parallel_queries:
        raise FanOutError(total, settings.max_parallel_queries)
    return plans


__all__ = ["MultiQueryPlan", "split_query"]
