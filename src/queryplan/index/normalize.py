"""Reduce a conjunctive query to the constraints a composite index must cover.

Constraints the backend answers from its built-in indexes are dropped first:
a trailing ascending sort on the key and (when nothing forces them to stay)
filters on the key. What remains is classified into the equality *prefix*
and the *postfix* components (sorts, existence and group-by).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Tuple

from ..errors import InternalPlannerError, SortMismatchError
from ..query.ast import (
    KEY_PROPERTY,
    FilterOperator,
    FilterPredicate,
    Query,
    SortDirection,
    SortPredicate,
)
from ..query.values import value_identity
from .components import IndexComponent, OrderedIndexComponent, UnorderedIndexComponent
from .models import IndexProperty

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalizedQuery:
    kind: Optional[str]
    has_ancestor: bool
    filters: Tuple[FilterPredicate, ...]
    sorts: Tuple[SortPredicate, ...]
    prefix: Tuple[str, ...]
    ordered_postfix: OrderedIndexComponent
    unordered_postfix: UnorderedIndexComponent
    geo_properties: Tuple[str, ...] = ()
    has_key_property: bool = False
    equality_filter_count: int = 0
    key_property: str = field(default=KEY_PROPERTY, compare=False)

    @property
    def postfix(self) -> Tuple[IndexComponent, ...]:
        return (self.ordered_postfix, self.unordered_postfix)

    @property
    def is_geo(self) -> bool:
        return bool(self.geo_properties)

    @property
    def has_kind(self) -> bool:
        return self.kind is not None


def _distinct(items) -> list:
    return list(dict.fromkeys(items))


def _prenormalize(
    query: Query, key_property: str
) -> Tuple[List[FilterPredicate], List[SortPredicate], List[str]]:
    filters: List[FilterPredicate] = []
    for predicate in query.filter_predicates():
        if (
            predicate.operator is FilterOperator.IN
            and len({value_identity(v) for v in predicate.value}) == 1
        ):
            predicate = FilterOperator.EQUAL.of(predicate.property_name, predicate.value[0])
        filters.append(predicate)
    filters = _distinct(filters)

    equality = {f.property_name for f in filters if f.operator is FilterOperator.EQUAL}
    inequality = {f.property_name for f in filters if f.operator.is_inequality}

    sorts: List[SortPredicate] = []
    if key_property not in equality:
        seen: set = set()
        for sort in query.sorts:
            name = sort.property_name
            if name in seen or (name in equality and name not in inequality):
                continue
            seen.add(name)
            sorts.append(sort)
            if name == key_property:
                break

    group_by = [name for name in _distinct(query.group_by) if name not in equality]
    return filters, sorts, group_by


def normalize_query(query: Query, *, key_property: str = KEY_PROPERTY) -> NormalizedQuery:
    """Normalize a conjunctive ``query`` for index planning.

    Raises ``ValueError`` when the filter still contains an OR and
    :class:`SortMismatchError` when the sorts conflict with the inequality.
    """
    filters, sorts, group_by = _prenormalize(query, key_property)

    has_exists = any(f.operator is FilterOperator.EXISTS for f in filters)
    if not has_exists:
        if sorts and sorts[-1].property_name == key_property:
            if sorts[-1].direction is SortDirection.ASCENDING:
                sorts = sorts[:-1]
        keep_key_filters = any(
            f.operator.is_inequality and f.property_name != key_property for f in filters
        ) or (
            bool(sorts)
            and sorts[-1].property_name == key_property
            and sorts[-1].direction is SortDirection.DESCENDING
        )
        if not keep_key_filters:
            filters = [f for f in filters if f.property_name != key_property]

    equality: List[str] = []
    exists: List[str] = []
    inequality: List[str] = []
    geo: List[str] = []
    equality_count = 0
    for predicate in filters:
        op = predicate.operator
        if op in (FilterOperator.EQUAL, FilterOperator.IN):
            equality.append(predicate.property_name)
            equality_count += 1
        elif op is FilterOperator.EXISTS:
            exists.append(predicate.property_name)
        elif op.is_inequality:
            inequality.append(predicate.property_name)
        elif op is FilterOperator.CONTAINED_IN_REGION:
            geo.append(predicate.property_name)
        else:
            raise InternalPlannerError(f"Unable to categorize query filter operator: {op.value}")

    has_key_property = any(f.property_name == key_property for f in filters) or any(
        s.property_name == key_property for s in sorts
    )

    inequality = _distinct(inequality)
    if len(inequality) > 1:
        raise SortMismatchError(
            "Only one inequality filter per query is supported. "
            f"Encountered both {inequality[0]} and {inequality[1]}"
        )
    if inequality:
        if not sorts:
            sorts = [SortPredicate(inequality[0], SortDirection.ASCENDING)]
        elif sorts[0].property_name != inequality[0]:
            raise SortMismatchError(
                f"The first sort property must be the same as the property to which the "
                f"inequality filter is applied. The first sort property is "
                f"{sorts[0].property_name} but the inequality filter is on {inequality[0]}"
            )

    ordered = OrderedIndexComponent(
        tuple(IndexProperty(name=s.property_name, direction=s.direction) for s in sorts)
    )
    ordered_names = {s.property_name for s in sorts}
    unordered: FrozenSet[str] = frozenset(exists).union(group_by) - ordered_names

    normalized = NormalizedQuery(
        kind=query.kind,
        has_ancestor=query.has_ancestor,
        filters=tuple(filters),
        sorts=tuple(sorts),
        prefix=tuple(_distinct(equality)),
        ordered_postfix=ordered,
        unordered_postfix=UnorderedIndexComponent(unordered),
        geo_properties=tuple(_distinct(geo)),
        has_key_property=has_key_property,
        equality_filter_count=equality_count,
        key_property=key_property,
    )
    logger.debug(
        "Normalized query on %s: prefix=%s postfix=%s",
        query.kind,
        list(normalized.prefix),
        [p.name for c in normalized.postfix for p in c.preferred_index_properties()],
    )
    return normalized


__all__ = ["NormalizedQuery", "normalize_query"]
