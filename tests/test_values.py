from datetime import datetime, timezone

import pytest

from queryplan.query.ast import FilterOperator, FilterPredicate
from queryplan.query.values import GeoPoint, Key, compare_values, type_rank, value_sort_key


def test_type_rank_orders_mixed_values():
    values = [Key("P", 1), 1.5, "a", True, 7, None, GeoPoint(1.0, 2.0)]
    ordered = sorted(values, key=value_sort_key())
    assert ordered == [None, 7, True, "a", 1.5, GeoPoint(1.0, 2.0), Key("P", 1)]


def test_bool_is_not_an_integer():
    assert type_rank(True) != type_rank(1)
    assert compare_values(1, True) == -1


def test_datetime_and_int_share_a_rank():
    epoch_plus_one = datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)
    assert compare_values(epoch_plus_one, 1_000_000) == 0
    assert compare_values(epoch_plus_one, 999_999) == 1


def test_unsupported_value_type():
    with pytest.raises(TypeError, match="Unsupported property value type"):
        compare_values(object(), 1)


def test_key_ordering_ids_before_names():
    parent = Key("Family", "smith")
    assert Key("P", 5) < Key("P", "alice")
    assert Key("P", 1, parent=parent) > parent
    assert parent.is_ancestor_of(Key("P", 1, parent=parent))
    assert not Key("P", 1).is_ancestor_of(parent)


def test_geo_point_validates_ranges():
    with pytest.raises(ValueError, match="Latitude"):
        GeoPoint(91.0, 0.0)


def test_predicates_keep_typed_values_apart():
    assert FilterPredicate("a", "=", 1) != FilterPredicate("a", "=", True)
    assert FilterPredicate("a", "=", 1) == FilterOperator.EQUAL.of("a", 1)
    assert len({FilterPredicate("a", "=", 1), FilterPredicate("a", "=", 1.0)}) == 2


def test_in_requires_a_collection():
    with pytest.raises(TypeError, match="must be a list or tuple"):
        FilterPredicate("a", FilterOperator.IN, 3)
    assert FilterPredicate("a", FilterOperator.IN, [1, 2]).value == (1, 2)
