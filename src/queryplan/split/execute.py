"""Run split plans through a caller-supplied executor and combine the results."""

from __future__ import annotations

import functools
import heapq
import logging
from collections.abc import Mapping
from typing import Any, Callable, Iterable, Iterator, List, Optional, Sequence, Tuple

from ..errors import KeysOnlySortError
from ..query.ast import KEY_PROPERTY, Query, SortDirection, SortPredicate
from ..query.values import Comparator, compare_values, value_identity
from .builder import MultiQueryPlan

logger = logging.getLogger(__name__)

Entity = Any
Executor = Callable[[Query], Iterable[Entity]]
KeyOf = Callable[[Entity], Any]
ValueOf = Callable[[Entity, str], Any]


def default_key_of(entity: Entity, key_property: str = KEY_PROPERTY) -> Any:
    if isinstance(entity, Mapping):
        return entity[key_property]
    return getattr(entity, "key")


def default_value_of(entity: Entity, property_name: str, key_property: str = KEY_PROPERTY) -> Any:
    if property_name == key_property:
        return default_key_of(entity, key_property)
    if isinstance(entity, Mapping):
        return entity.get(property_name)
    return getattr(entity, property_name, None)


def _accessors(
    key_of: Optional[KeyOf], value_of: Optional[ValueOf], key_property: str
) -> Tuple[KeyOf, ValueOf]:
    if key_of is None:
        key_of = functools.partial(default_key_of, key_property=key_property)
    if value_of is None:
        value_of = functools.partial(default_value_of, key_property=key_property)
    return key_of, value_of


def entity_sort_key(
    sorts: Sequence[SortPredicate],
    *,
    comparator: Comparator = compare_values,
    key_of: Optional[KeyOf] = None,
    value_of: Optional[ValueOf] = None,
    key_property: str = KEY_PROPERTY,
):
    """Sort key ordering entities by ``sorts`` and then by key ascending."""
    key_of, value_of = _accessors(key_of, value_of, key_property)

    def compare(left: Entity, right: Entity) -> int:
        for sort in sorts:
            result = comparator(value_of(left, sort.property_name), value_of(right, sort.property_name))
            if result:
                return -result if sort.direction is SortDirection.DESCENDING else result
        return comparator(key_of(left), key_of(right))

    return functools.cmp_to_key(compare)


def _needs_merge(plans: Sequence[MultiQueryPlan]) -> bool:
    return len(plans) > 1 or plans[0].parallel_query_size > 1


def _check_keys_only(query: Query, key_property: str) -> None:
    for sort in query.sorts:
        if sort.property_name != key_property:
            raise KeysOnlySortError(
                "The provided keys-only multi-query needs to perform some sorting in "
                f"memory. As a result, this query can only be sorted by {key_property}, "
                f"but it is sorted by {sort.property_name}."
            )


def _dedupe_value(query: Query, key_of: KeyOf, value_of: ValueOf) -> Callable[[Entity], Any]:
    if not query.projection:
        return lambda entity: value_identity(key_of(entity))

    # A projection returns one row per index entry, so rows of the same entity
    # differ by their projected and sorted values.
    names = list(query.projection)
    names += [s.property_name for s in query.sorts if s.property_name not in names]

    def dedupe_value(entity: Entity) -> Any:
        values = tuple(value_identity(value_of(entity, name)) for name in names)
        return value_identity(key_of(entity)), values

    return dedupe_value


def _plan_results(plan: MultiQueryPlan, execute: Executor, sort_key) -> Iterator[Entity]:
    for group in plan.query_groups():
        streams: List[Iterable[Entity]] = [execute(query) for query in group]
        if len(streams) == 1:
            yield from streams[0]
        else:
            yield from heapq.merge(*streams, key=sort_key)


def _distinct(entities: Iterable[Entity], dedupe_value: Callable[[Entity], Any]) -> Iterator[Entity]:
    seen: set = set()
    for entity in entities:
        ident = dedupe_value(entity)
        if ident in seen:
            continue
        seen.add(ident)
        yield entity
    logger.debug("Multi-query run returned %d distinct results", len(seen))


def run_plans(
    plans: Sequence[MultiQueryPlan],
    execute: Executor,
    *,
    comparator: Comparator = compare_values,
    key_of: Optional[KeyOf] = None,
    value_of: Optional[ValueOf] = None,
    key_property: str = KEY_PROPERTY,
) -> Iterator[Entity]:
    """Return an iterator over the combined results of ``plans``.

    Within a plan, the results of one group are merged in query sort order and
    the groups are concatenated. The streams of several plans are merged again,
    so the combined result keeps the sort order. A result is yielded once even
    when several concrete queries return it: results are told apart by key, or
    by key plus projected values for projection queries.

    Sub-queries run lazily, as the iterator is consumed. A keys-only query that
    has to be merged in memory may only sort by ``key_property``; otherwise
    :class:`~queryplan.errors.KeysOnlySortError` is raised right away.
    """
    if not plans:
        return iter(())
    query = plans[0].query
    if query.keys_only and _needs_merge(plans):
        _check_keys_only(query, key_property)

    key_of, value_of = _accessors(key_of, value_of, key_property)
    sort_key = entity_sort_key(
        query.sorts, comparator=comparator, key_of=key_of, value_of=value_of
    )
    streams = [_plan_results(plan, execute, sort_key) for plan in plans]
    merged = streams[0] if len(streams) == 1 else heapq.merge(*streams, key=sort_key)
    return _distinct(merged, _dedupe_value(query, key_of, value_of))


__all__ = [
    "Entity",
    "Executor",
    "default_key_of",
    "default_value_of",
    "entity_sort_key",
    "run_plans",
]
