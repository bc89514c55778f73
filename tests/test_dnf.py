import pytest

from queryplan.errors import QueryTooComplexError
from queryplan.query.ast import FilterOperator, and_, or_
from queryplan.split.dnf import disjunctive_normal_form

A = FilterOperator.EQUAL.of("a", 1)
B = FilterOperator.EQUAL.of("b", 2)
C = FilterOperator.EQUAL.of("c", 3)
D = FilterOperator.EQUAL.of("d", 4)


def test_single_and_is_one_clause():
    assert disjunctive_normal_form(and_(A, B)) == ((A, B),)


def test_leaf_predicates_join_every_clause():
    assert disjunctive_normal_form(and_(A, or_(B, C))) == ((A, B), (A, C))


def test_and_of_ors_is_cross_product():
    clauses = disjunctive_normal_form(and_(or_(A, B), or_(C, D)))
    assert clauses == ((A, C), (A, D), (B, C), (B, D))


def test_nested_or_flattens():
    assert disjunctive_normal_form(or_(A, or_(B, C))) == ((A,), (B,), (C,))


def test_duplicate_clauses_are_dropped():
    assert disjunctive_normal_form(or_(A, A)) == ((A,),)
    assert disjunctive_normal_form(or_(and_(A, B), and_(B, A))) == ((A, B),)


def test_predicates_are_deduplicated_within_a_clause():
    assert disjunctive_normal_form(and_(A, or_(A, B))) == ((A,), (A, B))


def test_depth_bound():
    node = and_(A, B)
    for _ in range(4):
        node = and_(node, C)
    with pytest.raises(QueryTooComplexError, match="deeper than 3"):
        disjunctive_normal_form(node, max_depth=3)
    assert disjunctive_normal_form(node) == ((C, A, B),)
