"""Rewrite rules for operators the backend cannot run natively.

A splitter looks at the filters of one conjunctive clause and returns the
:class:`SplitComponent` objects that replace some of them, together with the
set of filters it consumed. The input sequence is never modified; callers
compute the remainder as ``[f for f in filters if f not in result.consumed]``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, FrozenSet, List, Protocol, Sequence, Tuple

from ..errors import SortMismatchError, UnsupportedFilterError
from ..query.ast import FilterOperator, FilterPredicate, SortDirection, SortPredicate
from ..query.values import Comparator, compare_values, value_identity, value_sort_key
from .components import SplitComponent, sort_position

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SplitResult:
    components: Tuple[SplitComponent, ...] = ()
    consumed: FrozenSet[FilterPredicate] = field(default_factory=frozenset)


class QuerySplitter(Protocol):
    def split(
        self,
        filters: Sequence[FilterPredicate],
        sorts: Sequence[SortPredicate],
        comparator: Comparator = compare_values,
    ) -> SplitResult: ...


def _distinct(values: Sequence[Any]) -> List[Any]:
    seen: set = set()
    out: List[Any] = []
    for value in values:
        ident = value_identity(value)
        if ident in seen:
            continue
        seen.add(ident)
        out.append(value)
    return out


class NotEqualSplitter:
    """Replace ``prop != v1 AND ... AND prop != vn`` with ``n + 1`` ranges.

    Ranges are emitted in the order the query reads the property: ascending
    unless the property is the first sort and that sort is descending.
    """

    def split(
        self,
        filters: Sequence[FilterPredicate],
        sorts: Sequence[SortPredicate],
        comparator: Comparator = compare_values,
    ) -> SplitResult:
        not_equal = [f for f in filters if f.operator is FilterOperator.NOT_EQUAL]
        if not not_equal:
            return SplitResult()

        names = {f.property_name for f in not_equal}
        if len(names) > 1:
            raise UnsupportedFilterError(
                "Queries with NOT_EQUAL filters on different properties are not supported: "
                + ", ".join(sorted(names))
            )
        property_name = not_equal[0].property_name

        if sorts and sorts[0].property_name != property_name:
            raise SortMismatchError(
                f"The first sort order must be on the same property as the NOT_EQUAL filter. "
                f"The first sort is on {sorts[0].property_name} but the NOT_EQUAL filter "
                f"is on {property_name}"
            )

        values = sorted(_distinct([f.value for f in not_equal]), key=value_sort_key(comparator))
        ranges = _ranges_around(property_name, values)
        if sorts and sorts[0].direction is SortDirection.DESCENDING:
            ranges.reverse()

        component = SplitComponent.for_property(property_name, sorts, ranges)
        logger.debug(
            "Split %d NOT_EQUAL filter(s) on %s into %d ranges",
            len(not_equal),
            property_name,
            len(ranges),
        )
        return SplitResult((component,), frozenset(not_equal))


def _ranges_around(property_name: str, values: Sequence[Any]) -> List[Tuple[FilterPredicate, ...]]:
    lt = FilterOperator.LESS_THAN
    gt = FilterOperator.GREATER_THAN
    ranges: List[Tuple[FilterPredicate, ...]] = [(lt.of(property_name, values[0]),)]
    for lower, upper in zip(values, values[1:]):
        ranges.append((gt.of(property_name, lower), lt.of(property_name, upper)))
    ranges.append((gt.of(property_name, values[-1]),))
    return ranges


class InSplitter:
    """Replace each multi-valued ``prop IN (...)`` with one EQUAL per value."""

    def split(
        self,
        filters: Sequence[FilterPredicate],
        sorts: Sequence[SortPredicate],
        comparator: Comparator = compare_values,
    ) -> SplitResult:
        components: List[SplitComponent] = []
        consumed: List[FilterPredicate] = []
        for predicate in filters:
            if predicate.operator is not FilterOperator.IN:
                continue
            values = _distinct(predicate.value)
            if len(values) < 2:
                continue
            _, direction = sort_position(predicate.property_name, sorts)
            if direction is not None:
                values.sort(
                    key=value_sort_key(comparator),
                    reverse=direction is SortDirection.DESCENDING,
                )
            pieces = [(FilterOperator.EQUAL.of(predicate.property_name, v),) for v in values]
            components.append(SplitComponent.for_property(predicate.property_name, sorts, pieces))
            consumed.append(predicate)
            logger.debug("Split IN filter on %s into %d values", predicate.property_name, len(values))
        return SplitResult(tuple(components), frozenset(consumed))


DEFAULT_SPLITTERS: Tuple[QuerySplitter, ...] = (NotEqualSplitter(), InSplitter())


__all__ = [
    "SplitResult",
    "QuerySplitter",
    "NotEqualSplitter",
    "InSplitter",
    "DEFAULT_SPLITTERS",
]
