import pytest

from queryplan.errors import InternalPlannerError, SortMismatchError
from queryplan.index.models import IndexProperty
from queryplan.index.normalize import normalize_query
from queryplan.query.ast import (
    KEY_PROPERTY,
    FilterOperator,
    Query,
    SortDirection,
    SortPredicate,
    and_,
    or_,
)
from queryplan.query.values import Key

EQ = FilterOperator.EQUAL
GT = FilterOperator.GREATER_THAN
EXISTS = FilterOperator.EXISTS
ASC = SortDirection.ASCENDING
DESC = SortDirection.DESCENDING


def test_trailing_ascending_key_sort_is_stripped():
    nq = normalize_query(
        Query(kind="P", sorts=(SortPredicate("age"), SortPredicate(KEY_PROPERTY, ASC)))
    )
    assert nq.sorts == (SortPredicate("age"),)
    assert not nq.has_key_property


def test_descending_key_sort_is_kept():
    nq = normalize_query(Query(kind="P", sorts=(SortPredicate(KEY_PROPERTY, DESC),)))
    assert nq.sorts == (SortPredicate(KEY_PROPERTY, DESC),)
    assert nq.has_key_property
    assert nq.ordered_postfix.properties == (IndexProperty.desc(KEY_PROPERTY),)


def test_exists_filter_keeps_key_constraints():
    query = Query(
        kind="P",
        filter=EXISTS.of("x"),
        sorts=(SortPredicate("age"), SortPredicate(KEY_PROPERTY)),
    )
    nq = normalize_query(query)
    assert len(nq.sorts) == 2
    assert nq.has_key_property
    assert nq.unordered_postfix.names == frozenset({"x"})


def test_key_filters_are_stripped():
    nq = normalize_query(Query(kind="P", filter=GT.of(KEY_PROPERTY, Key("P", 5))))
    assert nq.filters == ()
    assert nq.sorts == ()
    assert not nq.has_key_property


def test_key_filters_stay_with_a_non_key_inequality():
    key_eq = EQ.of(KEY_PROPERTY, Key("P", 5))
    nq = normalize_query(Query(kind="P", filter=and_(GT.of("age", 3), key_eq)))
    assert key_eq in nq.filters
    assert nq.prefix == (KEY_PROPERTY,)
    assert nq.has_key_property


def test_inequality_is_promoted_to_sort():
    nq = normalize_query(Query(kind="P", filter=and_(EQ.of("a", 1), GT.of("age", 3))))
    assert nq.prefix == ("a",)
    assert nq.sorts == (SortPredicate("age", ASC),)
    assert nq.ordered_postfix.properties == (IndexProperty.asc("age"),)


def test_multiple_inequalities_are_rejected():
    query = Query(kind="P", filter=and_(GT.of("a", 1), GT.of("b", 2)))
    with pytest.raises(SortMismatchError, match="Encountered both a and b"):
        normalize_query(query)


def test_first_sort_must_match_inequality():
    query = Query(kind="P", filter=GT.of("a", 1), sorts=(SortPredicate("b"),))
    with pytest.raises(SortMismatchError, match="inequality filter is on a"):
        normalize_query(query)


def test_single_valued_in_counts_as_equality():
    nq = normalize_query(Query(kind="P", filter=FilterOperator.IN.of("a", [4, 4])))
    assert nq.prefix == ("a",)
    assert nq.filters == (EQ.of("a", 4),)


def test_redundant_sorts_and_filters_are_dropped():
    query = Query(
        kind="P",
        filter=and_(EQ.of("a", 1), EQ.of("a", 1)),
        sorts=(SortPredicate("a"), SortPredicate("b"), SortPredicate("b", DESC)),
        group_by=("a", "c"),
    )
    nq = normalize_query(query)
    assert nq.filters == (EQ.of("a", 1),)
    assert nq.sorts == (SortPredicate("b"),)
    assert nq.unordered_postfix.names == frozenset({"c"})


def test_key_equality_drops_sorts():
    query = Query(
        kind="P",
        filter=EQ.of(KEY_PROPERTY, Key("P", 1)),
        sorts=(SortPredicate("b", DESC),),
    )
    nq = normalize_query(query)
    assert nq.sorts == ()


def test_exists_and_group_by_form_unordered_postfix():
    query = Query(
        kind="P",
        filter=and_(EXISTS.of("b"), EXISTS.of("s")),
        sorts=(SortPredicate("s"),),
        group_by=("c",),
    )
    nq = normalize_query(query)
    assert nq.unordered_postfix.names == frozenset({"b", "c"})
    assert [p.name for p in nq.ordered_postfix.properties] == ["s"]


def test_geo_properties():
    nq = normalize_query(
        Query(kind="P", filter=and_(EQ.of("a", 1), FilterOperator.CONTAINED_IN_REGION.of("loc", None)))
    )
    assert nq.is_geo
    assert nq.geo_properties == ("loc",)


def test_not_equal_cannot_be_classified():
    with pytest.raises(InternalPlannerError, match="categorize"):
        normalize_query(Query(kind="P", filter=FilterOperator.NOT_EQUAL.of("a", 1)))


def test_or_must_be_split_first():
    with pytest.raises(ValueError, match="disjunctive normal form"):
        normalize_query(Query(kind="P", filter=or_(EQ.of("a", 1), EQ.of("b", 2))))
