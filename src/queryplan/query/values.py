"""Property value types and the multi-type value ordering.

Values of different types never compare as equal; they sort by a fixed type
rank first and by their natural order within a rank. ``None`` sorts lowest.

    None < int, datetime < bool < str, bytes < float < GeoPoint < Key
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Tuple, Union

Comparator = Callable[[Any, Any], int]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Ranks follow the tag numbers of the backend's property value union.
RANK_NULL = 0
RANK_INTEGER = 1
RANK_BOOLEAN = 2
RANK_STRING = 3
RANK_DOUBLE = 4
RANK_POINT = 5
RANK_KEY = 12


@dataclass(frozen=True, order=True)
class GeoPoint:
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Latitude must be between -90 and 90: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"Longitude must be between -180 and 180: {self.longitude}")


@dataclass(frozen=True)
class Circle:
    center: GeoPoint
    radius_meters: float


@dataclass(frozen=True)
class Rectangle:
    southwest: GeoPoint
    northeast: GeoPoint


@functools.total_ordering
@dataclass(frozen=True, eq=True)
class Key:
    """Primary key of an entity: a kind plus a numeric id or a string name.

    Keys order by their ancestor path, element by element. Within one path
    element numeric ids sort before names.
    """

    kind: str
    id_or_name: Union[int, str]
    parent: Optional["Key"] = None
    namespace: str = ""

    @property
    def path(self) -> Tuple[Tuple[str, Union[int, str]], ...]:
        own = ((self.kind, self.id_or_name),)
        return self.parent.path + own if self.parent is not None else own

    def _sort_key(self) -> tuple:
        return (
            self.namespace,
            tuple(
                (kind, 0 if isinstance(ident, int) else 1, ident)
                for kind, ident in self.path
            ),
        )

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Key):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def is_ancestor_of(self, other: "Key") -> bool:
        return self.namespace == other.namespace and other.path[: len(self.path)] == self.path


def type_rank(value: Any) -> int:
    if value is None:
        return RANK_NULL
    # bool is an int subclass, so it has to be checked first.
    if isinstance(value, bool):
        return RANK_BOOLEAN
    if isinstance(value, (int, datetime)):
        return RANK_INTEGER
    if isinstance(value, (str, bytes)):
        return RANK_STRING
    if isinstance(value, float):
        return RANK_DOUBLE
    if isinstance(value, GeoPoint):
        return RANK_POINT
    if isinstance(value, Key):
        return RANK_KEY
    raise TypeError(f"Unsupported property value type: {type(value).__name__}")


def _comparable(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        delta = value - _EPOCH
        return (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds
    if isinstance(value, str):
        return value.encode("utf-8")
    return value


def compare_values(a: Any, b: Any) -> int:
    """Total order over heterogeneous property values (-1, 0 or 1)."""
    rank_a = type_rank(a)
    rank_b = type_rank(b)
    if rank_a != rank_b:
        return -1 if rank_a < rank_b else 1
    if rank_a == RANK_NULL:
        return 0
    left = _comparable(a)
    right = _comparable(b)
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def value_sort_key(comparator: Comparator = compare_values):
    """Return a ``sorted`` key function for ``comparator``."""
    return functools.cmp_to_key(comparator)


def value_identity(value: Any) -> Any:
    """Hashable identity of a value that keeps differently typed values apart.

    ``1``, ``1.0`` and ``True`` are equal in Python but are three different
    datastore values.
    """
    if isinstance(value, (tuple, list)):
        return ("seq", tuple(value_identity(item) for item in value))
    try:
        rank: Any = type_rank(value)
    except TypeError:
        rank = type(value).__qualname__
    return (rank, value)


__all__ = [
    "Comparator",
    "GeoPoint",
    "Circle",
    "Rectangle",
    "Key",
    "type_rank",
    "compare_values",
    "value_sort_key",
    "value_identity",
]
