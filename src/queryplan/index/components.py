"""Constraint shapes an index property list has to satisfy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Sequence, Tuple, Union

from ..query.ast import SortDirection
from .models import IndexProperty


@dataclass(frozen=True)
class OrderedIndexComponent:
    """Properties that must appear in exactly this order and direction (sorts)."""

    properties: Tuple[IndexProperty, ...] = ()

    def size(self) -> int:
        return len(self.properties)

    def matches(self, candidates: Sequence[IndexProperty]) -> bool:
        if len(candidates) != len(self.properties):
            return False
        for wanted, candidate in zip(self.properties, candidates):
            if candidate.is_geospatial or candidate.name != wanted.name:
                return False
            if wanted.direction is not None and candidate.direction is not wanted.direction:
                return False
        return True

    def preferred_index_properties(self) -> Tuple[IndexProperty, ...]:
        return tuple(
            IndexProperty(name=p.name, direction=p.direction or SortDirection.ASCENDING)
            for p in self.properties
        )


@dataclass(frozen=True)
class UnorderedIndexComponent:
    """Properties that must all appear, in any order and direction (exists, group by)."""

    names: FrozenSet[str] = frozenset()

    def size(self) -> int:
        return len(self.names)

    def matches(self, candidates: Sequence[IndexProperty]) -> bool:
        if len(candidates) != len(self.names):
            return False
        if any(c.is_geospatial for c in candidates):
            return False
        return {c.name for c in candidates} == self.names

    def preferred_index_properties(self) -> Tuple[IndexProperty, ...]:
        return tuple(IndexProperty.asc(name) for name in sorted(self.names))


IndexComponent = Union[OrderedIndexComponent, UnorderedIndexComponent]


__all__ = ["OrderedIndexComponent", "UnorderedIndexComponent", "IndexComponent"]
