from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Optional, Tuple, Union

from .values import Key, value_identity

KEY_PROPERTY = "__key__"


class FilterOperator(str, Enum):
    EQUAL = "="
    NOT_EQUAL = "!="
    LESS_THAN = "<"
    LESS_THAN_OR_EQUAL = "<="
    GREATER_THAN = ">"
    GREATER_THAN_OR_EQUAL = ">="
    IN = "in"
    EXISTS = "exists"
    CONTAINED_IN_REGION = "contained_in_region"

    def of(self, property_name: str, value: Any = None) -> "FilterPredicate":
        return FilterPredicate(property_name, self, value)

    @property
    def is_inequality(self) -> bool:
        return self in INEQUALITY_OPERATORS


INEQUALITY_OPERATORS = frozenset(
    {
        FilterOperator.LESS_THAN,
        FilterOperator.LESS_THAN_OR_EQUAL,
        FilterOperator.GREATER_THAN,
        FilterOperator.GREATER_THAN_OR_EQUAL,
    }
)


class SortDirection(str, Enum):
    ASCENDING = "asc"
    DESCENDING = "desc"

    def reverse(self) -> "SortDirection":
        if self is SortDirection.ASCENDING:
            return SortDirection.DESCENDING
        return SortDirection.ASCENDING


class CompositeFilterOperator(str, Enum):
    AND = "and"
    OR = "or"

    def of(self, *sub_filters: "Filter") -> "CompositeFilter":
        return CompositeFilter(self, tuple(sub_filters))


@dataclass(frozen=True, eq=False)
class FilterPredicate:
    """A single ``property <operator> value`` constraint.

    IN values are kept as a tuple so predicates stay hashable. Equality and
    hashing keep values of different datastore types apart (``1`` is not
    ``True``).
    """

    property_name: str
    operator: FilterOperator
    value: Any = None

    def __post_init__(self) -> None:
        if not isinstance(self.operator, FilterOperator):
            object.__setattr__(self, "operator", FilterOperator(self.operator))
        if self.operator is FilterOperator.IN:
            if not isinstance(self.value, (list, tuple, set, frozenset)):
                raise TypeError("Values for 'in' operator must be a list or tuple")
            object.__setattr__(self, "value", tuple(self.value))

    def _identity(self) -> tuple:
        return (self.property_name, self.operator, value_identity(self.value))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FilterPredicate):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(self._identity())

    def __repr__(self) -> str:
        return f"{self.property_name} {self.operator.value} {self.value!r}"


@dataclass(frozen=True)
class SortPredicate:
    property_name: str
    direction: SortDirection = SortDirection.ASCENDING

    def __post_init__(self) -> None:
        if not isinstance(self.direction, SortDirection):
            object.__setattr__(self, "direction", SortDirection(self.direction))


@dataclass(frozen=True)
class CompositeFilter:
    operator: CompositeFilterOperator
    sub_filters: Tuple["Filter", ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.operator, CompositeFilterOperator):
            object.__setattr__(self, "operator", CompositeFilterOperator(self.operator))
        object.__setattr__(self, "sub_filters", tuple(self.sub_filters))
        if not self.sub_filters:
            raise ValueError("A composite filter must have at least one sub filter")


Filter = Union[FilterPredicate, CompositeFilter]


def and_(*sub_filters: Filter) -> CompositeFilter:
    return CompositeFilterOperator.AND.of(*sub_filters)


def or_(*sub_filters: Filter) -> CompositeFilter:
    return CompositeFilterOperator.OR.of(*sub_filters)


@dataclass(frozen=True)
class Query:
    """A datastore query: kind, boolean filter tree, sorts and modifiers."""

    kind: Optional[str] = None
    filter: Optional[Filter] = None
    sorts: Tuple[SortPredicate, ...] = ()
    ancestor: Optional[Key] = None
    group_by: Tuple[str, ...] = ()
    projection: Tuple[str, ...] = ()
    keys_only: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "sorts", tuple(self.sorts))
        object.__setattr__(self, "group_by", tuple(self.group_by))
        object.__setattr__(self, "projection", tuple(self.projection))

    @property
    def has_ancestor(self) -> bool:
        return self.ancestor is not None

    @property
    def has_sort(self) -> bool:
        return bool(self.sorts)

    def filter_predicates(self) -> Tuple[FilterPredicate, ...]:
        """Flatten a conjunction-only filter tree into its predicates.

        Raises ``ValueError`` when the tree contains an OR; use the DNF
        expansion for those.
        """
        return tuple(_flatten_and(self.filter)) if self.filter is not None else ()

    def with_filters(self, predicates: Iterable[FilterPredicate]) -> "Query":
        items = tuple(predicates)
        if not items:
            new_filter: Optional[Filter] = None
        elif len(items) == 1:
            new_filter = items[0]
        else:
            new_filter = CompositeFilter(CompositeFilterOperator.AND, items)
        return replace(self, filter=new_filter)

    def with_sorts(self, sorts: Iterable[SortPredicate]) -> "Query":
        return replace(self, sorts=tuple(sorts))


def _flatten_and(node: Filter) -> Iterable[FilterPredicate]:
    if isinstance(node, FilterPredicate):
        yield node
        return
    if isinstance(node, CompositeFilter):
        if node.operator is not CompositeFilterOperator.AND:
            raise ValueError("Filter contains an OR; expand it into disjunctive normal form")
        for sub in node.sub_filters:
            yield from _flatten_and(sub)
        return
    raise ValueError(f"Unknown expression type: {type(node).__name__}")


__all__ = [
    "KEY_PROPERTY",
    "FilterOperator",
    "INEQUALITY_OPERATORS",
    "SortDirection",
    "CompositeFilterOperator",
    "FilterPredicate",
    "SortPredicate",
    "CompositeFilter",
    "Filter",
    "and_",
    "or_",
    "Query",
]
