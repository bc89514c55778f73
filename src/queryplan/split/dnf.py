from __future__ import annotations

from typing import Dict, FrozenSet, List, Tuple

from ..errors import QueryTooComplexError
from ..query.ast import CompositeFilter, CompositeFilterOperator, Filter, FilterPredicate

Clause = Tuple[FilterPredicate, ...]


class _ClauseSet:
    """Insertion-ordered set of clauses; clauses compare as sets of predicates."""

    def __init__(self) -> None:
        self._items: Dict[FrozenSet[FilterPredicate], Clause] = {}

    def add(self, clause: Clause) -> None:
        self._items.setdefault(frozenset(clause), clause)

    def __iter__(self):
        return iter(self._items.values())

    def as_tuple(self) -> Tuple[Clause, ...]:
        return tuple(self._items.values())


def _merge(*parts: Clause) -> Clause:
    out: Dict[FilterPredicate, None] = {}
    for part in parts:
        for predicate in part:
            out.setdefault(predicate, None)
    return tuple(out)


def disjunctive_normal_form(node: Filter, max_depth: int = 64) -> Tuple[Clause, ...]:
    """Expand a filter tree into an OR of AND-only clauses.

    Each clause is a tuple of distinct predicates in first-seen order. Clauses
    that hold the same predicates are returned once.
    """
    return _expand(node, 0, max_depth).as_tuple()


def _expand(node: Filter, depth: int, max_depth: int) -> _ClauseSet:
    if depth > max_depth:
        raise QueryTooComplexError(f"Filter tree is nested deeper than {max_depth} levels")

    result = _ClauseSet()
    if isinstance(node, FilterPredicate):
        result.add((node,))
        return result
    if not isinstance(node, CompositeFilter):
        raise TypeError(f"Unknown filter node: {type(node).__name__}")

    if node.operator is CompositeFilterOperator.OR:
        for sub in node.sub_filters:
            for clause in _expand(sub, depth + 1, max_depth):
                result.add(clause)
        return result

    leaves: Clause = tuple(sub for sub in node.sub_filters if isinstance(sub, FilterPredicate))
    product: List[Clause] = [()]
    for sub in node.sub_filters:
        if isinstance(sub, FilterPredicate):
            continue
        branch = list(_expand(sub, depth + 1, max_depth))
        product = [_merge(left, right) for left in product for right in branch]
    for clause in product:
        result.add(_merge(leaves, clause))
    return result


__all__ = ["Clause", "disjunctive_normal_form"]
