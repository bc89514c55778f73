from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from .index.manager import CompositeIndexManager
from .index.models import Index
from .index.normalize import normalize_query
from .query.ast import Query
from .query.validate import validate_query
from .query.values import Comparator, compare_values
from .settings import PlannerSettings
from .split.builder import MultiQueryPlan, split_query
from .split.splitters import DEFAULT_SPLITTERS, QuerySplitter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryPlan:
    query: Query
    plans: Tuple[MultiQueryPlan, ...] = ()
    subqueries: Tuple[Query, ...] = ()
    required_indexes: Tuple[Index, ...] = ()
    messages: Tuple[str, ...] = field(default=(), compare=False)

    @property
    def needs_split(self) -> bool:
        return len(self.plans) > 1 or any(plan.is_split for plan in self.plans)

    @property
    def needs_index(self) -> bool:
        return bool(self.required_indexes)


class QueryPlanner:
    """Split a query into native sub-queries and work out the indexes they need."""

    def __init__(
        self,
        settings: Optional[PlannerSettings] = None,
        comparator: Comparator = compare_values,
        splitters: Sequence[QuerySplitter] = DEFAULT_SPLITTERS,
    ):
        self.settings = settings or PlannerSettings()
        self.comparator = comparator
        self.splitters = tuple(splitters)
        self.index_manager = CompositeIndexManager(self.settings)

    def plan(
        self,
        query: Query,
        indexes: Optional[Iterable[Index]] = None,
        *,
        validate: bool = True,
    ) -> QueryPlan:
        """Plan ``query``.

        With ``indexes`` given, ``required_indexes`` lists only what the
        declared indexes do not cover; otherwise it lists the full index each
        sub-query needs.
        """
        plans = split_query(query, self.splitters, self.settings, self.comparator)
        subqueries = tuple(q for plan in plans for q in plan.queries())
        declared = list(indexes) if indexes is not None else None

        required: List[Index] = []
        messages: List[str] = []
        for subquery in subqueries:
            if validate:
                validate_query(subquery, key_property=self.settings.key_property)
            nq = normalize_query(subquery, key_property=self.settings.key_property)
            if declared is None:
                index = self.index_manager.index_for_query(nq)
            else:
                index = self.index_manager.minimal_index_for_query(nq, declared)
                message = self.index_manager.missing_index_message(nq, index)
                if message and message not in messages:
                    messages.append(message)
            if index is not None and index not in required:
                required.append(index)

        result = QueryPlan(query, tuple(plans), subqueries, tuple(required), tuple(messages))
        logger.debug(
            "Planned query on %s: %d sub-quer%s, %d required index(es)",
            query.kind,
            len(subqueries),
            "y" if len(subqueries) == 1 else "ies",
            len(required),
        )
        return result


__all__ = ["QueryPlan", "QueryPlanner"]
