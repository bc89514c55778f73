"""Composite index planning: normalization, components, manager and catalog."""

from .catalog import AUTOGENERATED_MARKER, IndexCatalog
from .components import IndexComponent, OrderedIndexComponent, UnorderedIndexComponent
from .manager import CompositeIndexManager
from .models import Index, IndexProperty, Mode
from .normalize import NormalizedQuery, normalize_query

__all__ = [
    "AUTOGENERATED_MARKER",
    "IndexCatalog",
    "IndexComponent",
    "OrderedIndexComponent",
    "UnorderedIndexComponent",
    "CompositeIndexManager",
    "Index",
    "IndexProperty",
    "Mode",
    "NormalizedQuery",
    "normalize_query",
]
