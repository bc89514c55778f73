from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from ..query.ast import FilterPredicate, SortDirection, SortPredicate

UNSORTED = -1


@dataclass(frozen=True)
class SplitComponent:
    """One property's value space cut into disjoint pieces.

    Each entry of ``filters`` is a conjunction of predicates selecting one
    piece. Entries never overlap and their union is the meaning of the
    operator that was split. ``sort_index`` is the position of the property in
    the query's sort list, or ``UNSORTED``.
    """

    property_name: str
    sort_index: int = UNSORTED
    direction: Optional[SortDirection] = None
    filters: Tuple[Tuple[FilterPredicate, ...], ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "filters", tuple(tuple(piece) for piece in self.filters))

    @property
    def is_sorted(self) -> bool:
        return self.sort_index != UNSORTED

    def __len__(self) -> int:
        return len(self.filters)

    @classmethod
    def for_property(
        cls,
        property_name: str,
        sorts: Sequence[SortPredicate],
        filters: Sequence[Sequence[FilterPredicate]],
    ) -> "SplitComponent":
        index, direction = sort_position(property_name, sorts)
        return cls(property_name, index, direction, tuple(tuple(f) for f in filters))


def sort_position(
    property_name: str, sorts: Sequence[SortPredicate]
) -> Tuple[int, Optional[SortDirection]]:
    for index, sort in enumerate(sorts):
        if sort.property_name == property_name:
            return index, sort.direction
    return UNSORTED, None


__all__ = ["UNSORTED", "SplitComponent", "sort_position"]
