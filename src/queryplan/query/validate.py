from __future__ import annotations

from typing import Iterable, List, Optional, Set

from ..errors import IllegalQueryError, IllegalQueryType
from .ast import KEY_PROPERTY, FilterOperator, FilterPredicate, Query, SortDirection
from .values import Key, value_identity


def _is_reserved(name: str) -> bool:
    return len(name) > 4 and name.startswith("__") and name.endswith("__")


def _duplicates(names: Iterable[str]) -> List[str]:
    seen: Set[str] = set()
    dupes: List[str] = []
    for name in names:
        if name in seen and name not in dupes:
            dupes.append(name)
        seen.add(name)
    return dupes


def _check_projection(query: Query) -> None:
    dupes = _duplicates(query.projection)
    if dupes:
        raise IllegalQueryError(
            f"cannot project a property multiple times: {', '.join(dupes)}",
            IllegalQueryType.ILLEGAL_PROJECTION,
        )
    if query.projection and query.keys_only:
        raise IllegalQueryError(
            "projection and keys_only cannot both be set",
            IllegalQueryType.ILLEGAL_PROJECTION,
        )


def _check_group_by(query: Query) -> None:
    dupes = _duplicates(query.group_by)
    if dupes:
        raise IllegalQueryError(
            f"cannot group by a property multiple times: {', '.join(dupes)}",
            IllegalQueryType.ILLEGAL_GROUPBY,
        )
    for name in query.group_by:
        if _is_reserved(name):
            raise IllegalQueryError(
                f"group by is not supported for the property: {name}",
                IllegalQueryType.ILLEGAL_GROUPBY,
            )
    group_by = set(query.group_by)
    if not group_by:
        return
    seen_other = False
    for sort in query.sorts:
        if sort.property_name in group_by:
            if seen_other:
                raise IllegalQueryError(
                    "must specify all group by orderings before any non group by orderings",
                    IllegalQueryType.ILLEGAL_GROUPBY,
                )
        else:
            seen_other = True


def _check_kindless(query: Query, filters: List[FilterPredicate], key_property: str) -> None:
    if query.kind is not None:
        return
    for predicate in filters:
        if predicate.property_name != key_property:
            raise IllegalQueryError(
                "kind is required for non-__key__ filters", IllegalQueryType.KIND_REQUIRED
            )
    for sort in query.sorts:
        if sort.property_name != key_property or sort.direction is not SortDirection.ASCENDING:
            raise IllegalQueryError(
                "kind is required for all orders except __key__ ascending",
                IllegalQueryType.KIND_REQUIRED,
            )


def validate_query(query: Query, *, key_property: str = KEY_PROPERTY) -> None:
    """Raise :class:`IllegalQueryError` when ``query`` cannot run on the backend.

    The query is expected to be split already: its filter tree must be a pure
    conjunction with no NOT_EQUAL and no multi-valued IN left.
    """
    _check_projection(query)
    _check_group_by(query)

    try:
        filters = list(query.filter_predicates())
    except ValueError as exc:
        raise IllegalQueryError(str(exc), IllegalQueryType.UNSUPPORTED_FILTER) from exc

    _check_kindless(query, filters, key_property)

    projected = set(query.projection)
    grouped = set(query.group_by)
    inequality_prop: Optional[str] = None
    has_geo = False

    for predicate in filters:
        op = predicate.operator
        name = predicate.property_name

        if op is FilterOperator.NOT_EQUAL:
            raise IllegalQueryError(
                f"unsupported filter operator for the backend: {name} !=",
                IllegalQueryType.UNSUPPORTED_FILTER,
            )
        if op is FilterOperator.IN and len({value_identity(v) for v in predicate.value}) > 1:
            raise IllegalQueryError(
                f"multi-valued 'in' must be split before execution: {name}",
                IllegalQueryType.UNSUPPORTED_FILTER,
            )
        if op is FilterOperator.CONTAINED_IN_REGION:
            has_geo = True

        if op.is_inequality:
            if inequality_prop is None:
                inequality_prop = name
            elif inequality_prop != name:
                raise IllegalQueryError(
                    "Only one inequality filter per query is supported. "
                    f"Encountered both {inequality_prop} and {name}",
                    IllegalQueryType.MULTIPLE_INEQ_FILTERS,
                )
        elif op in (FilterOperator.EQUAL, FilterOperator.IN):
            if name in projected:
                raise IllegalQueryError(
                    f"cannot use projection on a property with an equality filter: {name}",
                    IllegalQueryType.ILLEGAL_PROJECTION,
                )
            if name in grouped:
                raise IllegalQueryError(
                    f"cannot use group by on a property with an equality filter: {name}",
                    IllegalQueryType.ILLEGAL_GROUPBY,
                )

        if name == key_property and op is not FilterOperator.EXISTS:
            values = predicate.value if op is FilterOperator.IN else (predicate.value,)
            for value in values:
                if not isinstance(value, Key):
                    raise IllegalQueryError(
                        f"{key_property} filter value must be a Key",
                        IllegalQueryType.ILLEGAL_VALUE,
                    )

    if has_geo and (inequality_prop is not None or query.has_ancestor):
        raise IllegalQueryError(
            "geo-spatial filters cannot be combined with inequality or ancestor filters",
            IllegalQueryType.UNSUPPORTED_FILTER,
        )

    if inequality_prop is not None:
        if grouped and inequality_prop not in grouped:
            raise IllegalQueryError(
                f"inequality filter on {inequality_prop} must also be a group by property "
                "when group by properties are set",
                IllegalQueryType.ILLEGAL_GROUPBY,
            )
        if query.sorts and query.sorts[0].property_name != inequality_prop:
            raise IllegalQueryError(
                f"The first sort property must be the same as the property to which "
                f"the inequality filter is applied. In your query the first sort "
                f"property is {query.sorts[0].property_name} but the inequality filter "
                f"is on {inequality_prop}",
                IllegalQueryType.FIRST_SORT_NEQ_INEQ_PROP,
            )


__all__ = ["validate_query"]
