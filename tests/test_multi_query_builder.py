import pytest

from queryplan.errors import FanOutError, UnsupportedFilterError
from queryplan.query.ast import FilterOperator, Query, SortDirection, SortPredicate, and_, or_
from queryplan.settings import PlannerSettings
from queryplan.split.builder import split_query
from tests.helpers.matching import matches

EQ = FilterOperator.EQUAL
NE = FilterOperator.NOT_EQUAL
IN = FilterOperator.IN


def test_query_without_filter_is_one_plan():
    query = Query(kind="Person")
    plans = split_query(query)
    assert len(plans) == 1
    plan = plans[0]
    assert plan.query_count == 1
    assert not plan.is_split
    assert list(plan) == [[()]]
    assert list(plan.queries()) == [query]


def test_single_predicate_is_kept_as_is():
    query = Query(kind="Person", filter=EQ.of("a", 1))
    (plan,) = split_query(query)
    assert plan.filters == (EQ.of("a", 1),)
    assert list(plan.queries()) == [query]


def test_untouched_filters_keep_clause_order():
    query = Query(kind="P", filter=and_(EQ.of("b", 1), NE.of("x", 3), EQ.of("a", 2)))
    (plan,) = split_query(query)
    assert plan.filters == (EQ.of("b", 1), EQ.of("a", 2))
    assert plan.query_count == 2


def test_or_of_not_equal_branches_gives_one_plan_per_branch():
    query = Query(
        kind="P",
        filter=or_(
            and_(NE.of("a", 1), NE.of("a", 2)),
            and_(NE.of("b", 1), NE.of("b", 2)),
        ),
    )
    plans = split_query(query)
    assert len(plans) == 2
    assert [plan.query_count for plan in plans] == [3, 3]


def test_fan_out_ceiling_counts_every_dnf_clause():
    query = Query(
        kind="Foo",
        filter=and_(
            *(or_(EQ.of("aFloat", i + 0.125), EQ.of("anInteger", i)) for i in range(1, 6))
        ),
    )
    with pytest.raises(FanOutError, match=r"\(32 > 30\)"):
        split_query(query)
    plans = split_query(query, settings=PlannerSettings(max_parallel_queries=32))
    assert len(plans) == 32
    assert all(plan.parallel_query_size == 1 for plan in plans)


@pytest.mark.parametrize(
    "sorts",
    [(), (SortPredicate("a"),), (SortPredicate("a", SortDirection.DESCENDING),)],
)
def test_serial_split_is_not_bounded_by_ceiling(sorts):
    query = Query(kind="Foo", filter=IN.of("a", list(range(31))), sorts=sorts)
    (plan,) = split_query(query)
    assert plan.query_count == 31
    assert plan.parallel_query_size == 1
    assert len(list(plan)) == 31


def test_parallel_split_is_bounded_by_ceiling():
    lower, upper = list(range(15)), list(range(15, 31))
    sorts = (SortPredicate("hi"),)

    split_query(Query(kind="Foo", filter=IN.of("anInteger", lower), sorts=sorts))
    split_query(Query(kind="Foo", filter=IN.of("anInteger", upper), sorts=sorts))

    with pytest.raises(FanOutError, match=r"\(31 > 30\)"):
        split_query(Query(kind="Foo", filter=IN.of("anInteger", lower + upper), sorts=sorts))
    with pytest.raises(FanOutError, match=r"\(31 > 30\)"):
        split_query(
            Query(
                kind="Foo",
                filter=or_(IN.of("anInteger", lower), IN.of("anInteger", upper)),
                sorts=sorts,
            )
        )


def test_fan_out_counts_product_of_parallel_components():
    query = Query(
        kind="P",
        filter=and_(IN.of("a", [1, 2, 3]), IN.of("b", [1, 2])),
        sorts=(SortPredicate("c"),),
    )
    (plan,) = split_query(query)
    assert plan.parallel_query_size == 6
    with pytest.raises(FanOutError):
        split_query(query, settings=PlannerSettings(max_parallel_queries=5))


def test_not_equal_errors_surface_from_split():
    query = Query(kind="P", filter=and_(NE.of("a", 1), NE.of("b", 2)))
    with pytest.raises(UnsupportedFilterError):
        split_query(query)


def test_sorted_component_is_serial_and_unsorted_is_parallel():
    query = Query(
        kind="P",
        filter=and_(IN.of("name", ["a", "b"]), IN.of("age", [2, 1])),
        sorts=(SortPredicate("age"),),
    )
    (plan,) = split_query(query)
    assert [c.property_name for c in plan.serial_components] == ["age"]
    assert [c.property_name for c in plan.parallel_components] == ["name"]
    assert plan.parallel_query_size == 2
    assert list(plan) == [
        [(EQ.of("age", 1), EQ.of("name", "a")), (EQ.of("age", 1), EQ.of("name", "b"))],
        [(EQ.of("age", 2), EQ.of("name", "a")), (EQ.of("age", 2), EQ.of("name", "b"))],
    ]


def test_without_sort_every_component_is_serial():
    query = Query(kind="P", filter=and_(IN.of("name", ["a", "b"]), IN.of("age", [1, 2])))
    (plan,) = split_query(query)
    assert not plan.has_sort
    assert plan.parallel_components == ()
    assert plan.parallel_query_size == 1
    groups = list(plan)
    assert len(groups) == 4
    assert all(len(group) == 1 for group in groups)


def test_serial_prefix_needs_consecutive_sort_indexes():
    query = Query(
        kind="P",
        filter=IN.of("name", ["a", "b"]),
        sorts=(SortPredicate("age"), SortPredicate("name")),
    )
    (plan,) = split_query(query)
    assert plan.serial_components == ()
    assert list(plan) == [[(EQ.of("name", "a"),), (EQ.of("name", "b"),)]]


def test_repeated_sort_index_stays_serial():
    query = Query(
        kind="P",
        filter=and_(IN.of("age", [1, 2]), IN.of("age", [2, 3]), IN.of("x", [1, 2])),
        sorts=(SortPredicate("age", SortDirection.DESCENDING),),
    )
    (plan,) = split_query(query)
    assert [c.property_name for c in plan.serial_components] == ["age", "age"]
    assert [c.property_name for c in plan.parallel_components] == ["x"]


def test_not_equal_split_covers_values_without_duplicates():
    entities = [{"age": age} for age in range(0, 60)]
    query = Query(
        kind="P",
        filter=or_(and_(NE.of("age", 33), NE.of("age", 40)), IN.of("age", [10, 20, 50])),
    )
    plans = split_query(query)

    union = set()
    for plan in plans:
        seen_in_plan = []
        for sub in plan.queries():
            preds = sub.filter_predicates()
            seen_in_plan += [e["age"] for e in entities if all(matches(e, p) for p in preds)]
        assert len(seen_in_plan) == len(set(seen_in_plan))
        union.update(seen_in_plan)

    assert union == {age for age in range(0, 60) if age not in (33, 40)}
