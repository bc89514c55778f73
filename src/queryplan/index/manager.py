from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

import yaml

from ..query.ast import SortDirection
from ..settings import PlannerSettings
from .components import UnorderedIndexComponent
from .models import Index, IndexProperty, Mode
from .normalize import NormalizedQuery

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Remaining:
    equality: FrozenSet[str]
    ancestor: bool


class CompositeIndexManager:
    """Recommend composite indexes for normalized queries.

    ``index_for_query`` gives the index a query needs on its own.
    ``minimal_index_for_query`` looks at the declared indexes first and only
    asks for what they do not cover yet.
    """

    def __init__(self, settings: Optional[PlannerSettings] = None):
        self.settings = settings or PlannerSettings()

    def index_for_query(self, nq: NormalizedQuery) -> Optional[Index]:
        if not nq.filters and not nq.sorts:
            return None

        properties = self._needed_properties(nq)

        if (
            nq.has_kind
            and nq.prefix
            and nq.equality_filter_count == len(nq.filters)
            and not nq.has_key_property
            and not nq.sorts
        ):
            # Equality-only queries are answered by merge-joining the
            # single-property indexes.
            return None

        if (
            nq.has_kind
            and not nq.has_ancestor
            and len(properties) <= 1
            and not nq.is_geo
            and (
                not nq.has_key_property
                or not properties
                or properties[0].direction is SortDirection.ASCENDING
            )
        ):
            return None

        return Index(kind=nq.kind, ancestor=nq.has_ancestor, properties=properties)

    def _needed_properties(self, nq: NormalizedQuery) -> Tuple[IndexProperty, ...]:
        if nq.is_geo:
            modeless = [IndexProperty(name=name) for name in sorted(nq.prefix)]
            geo = [
                IndexProperty(name=name, mode=Mode.GEOSPATIAL)
                for name in sorted(nq.geo_properties)
            ]
            return tuple(modeless + geo)
        properties: List[IndexProperty] = list(
            UnorderedIndexComponent(frozenset(nq.prefix)).preferred_index_properties()
        )
        for component in nq.postfix:
            properties.extend(component.preferred_index_properties())
        return tuple(properties)

    def minimal_index_for_query(
        self, nq: NormalizedQuery, indexes: Iterable[Index]
    ) -> Optional[Index]:
        """Return the smallest index to add next to ``indexes``, or ``None``.

        Declared indexes whose postfix matches the query can each cover part
        of the equality prefix and the ancestor constraint. Indexes sharing a
        postfix pool their coverage. The postfix that leaves the cheapest
        remainder wins; an uncovered ancestor costs ``settings.ancestor_cost``.
        """
        suggested = self.index_for_query(nq)
        if suggested is None or nq.is_geo:
            return suggested

        prefix = frozenset(nq.prefix)
        remaining_by_postfix: Dict[Tuple[IndexProperty, ...], _Remaining] = {}

        for index in indexes:
            if index.kind != nq.kind or (index.ancestor and not nq.has_ancestor):
                continue

            split = self._match_postfix(nq, index)
            if split is None:
                continue
            index_prefix = index.properties[:split]
            if any(p.name not in prefix for p in index_prefix):
                continue

            postfix = tuple(index.properties[split:])
            current = remaining_by_postfix.get(postfix, _Remaining(prefix, nq.has_ancestor))
            equality = current.equality - {p.name for p in index_prefix}
            ancestor = current.ancestor and not index.ancestor
            if not equality and not ancestor:
                logger.info("Existing index on %s %s covers the query", index.kind, index.property_names)
                return None
            if equality == current.equality and ancestor == current.ancestor:
                continue
            remaining_by_postfix[postfix] = _Remaining(equality, ancestor)

        if not remaining_by_postfix:
            logger.debug("No declared index matches; recommending %s", suggested.property_names)
            return suggested

        best_postfix, best = min(
            remaining_by_postfix.items(), key=lambda item: self._cost(item[1])
        )
        properties = tuple(IndexProperty.asc(name) for name in sorted(best.equality)) + best_postfix
        minimal = Index(kind=nq.kind, ancestor=best.ancestor, properties=properties)
        logger.debug(
            "Minimal index for query: %s (cost %d)", minimal.property_names, self._cost(best)
        )
        return minimal

    def _cost(self, remaining: _Remaining) -> int:
        cost = len(remaining.equality)
        if remaining.ancestor:
            cost += self.settings.ancestor_cost
        return cost

    @staticmethod
    def _match_postfix(nq: NormalizedQuery, index: Index) -> Optional[int]:
        split = len(index.properties)
        for component in reversed(nq.postfix):
            start = max(split - component.size(), 0)
            if not component.matches(index.properties[start:split]):
                return None
            split -= component.size()
        return split

    def missing_index_message(
        self, nq: NormalizedQuery, minimal: Optional[Index]
    ) -> Optional[str]:
        if minimal is None:
            return None
        lines = [
            "no matching index found. recommended index is:",
            _render(minimal),
        ]
        suggested = self.index_for_query(nq)
        if suggested is not None and suggested != minimal:
            lines += ["The suggested index for this query is:", _render(suggested)]
        return "\n".join(lines)


def _render(index: Index) -> str:
    return yaml.safe_dump(
        {"indexes": [index.to_yaml_dict()]}, sort_keys=False, default_flow_style=False
    ).rstrip()


__all__ = ["CompositeIndexManager"]
