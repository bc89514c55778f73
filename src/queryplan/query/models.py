"""Structured (JSON-style) query selectors.

``QuerySpec.model_validate`` accepts plain dictionaries such as::

    {
        "kind": "Person",
        "filters": {
            "type": "logical",
            "op": "or",
            "clauses": [
                {"type": "comparison", "field": "age", "op": "!=", "value": 33},
                {"type": "comparison", "field": "city", "op": "in", "value": ["Oslo", "Rome"]},
            ],
        },
        "order_by": [{"field": "age", "direction": "desc"}],
    }

and ``to_query()`` turns them into the immutable :class:`~queryplan.query.ast.Query`.
"""

from __future__ import annotations

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .ast import (
    CompositeFilter,
    CompositeFilterOperator,
    Filter,
    FilterOperator,
    FilterPredicate,
    Query,
    SortDirection,
    SortPredicate,
)
from .values import Circle, GeoPoint, Key, Rectangle

_OPERATOR_ALIASES = {
    "==": "=",
    "eq": "=",
    "ne": "!=",
    "neq": "!=",
    "<>": "!=",
    "lt": "<",
    "lte": "<=",
    "gt": ">",
    "gte": ">=",
    "within": "contained_in_region",
}


class KeySpec(BaseModel):
    kind: str
    id: Union[int, str]
    parent: Optional["KeySpec"] = None
    namespace: str = ""

    model_config = ConfigDict(extra="forbid")

    def to_key(self) -> Key:
        parent = self.parent.to_key() if self.parent is not None else None
        return Key(self.kind, self.id, parent=parent, namespace=self.namespace)


class RegionSpec(BaseModel):
    center: Optional[List[float]] = None
    radius_meters: Optional[float] = None
    southwest: Optional[List[float]] = None
    northeast: Optional[List[float]] = None

    model_config = ConfigDict(extra="forbid")

    def to_region(self) -> Circle | Rectangle:
        if self.center is not None and self.radius_meters is not None:
            return Circle(GeoPoint(*self.center), self.radius_meters)
        if self.southwest is not None and self.northeast is not None:
            return Rectangle(GeoPoint(*self.southwest), GeoPoint(*self.northeast))
        raise ValueError("A region needs either center/radius_meters or southwest/northeast")


class ComparisonFilter(BaseModel):
    type: Literal["comparison"] = "comparison"
    field: str
    op: FilterOperator
    value: Any = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("op", mode="before")
    @classmethod
    def _canonical_op(cls, value: Any) -> Any:
        if isinstance(value, str):
            cleaned = value.strip().lower()
            return _OPERATOR_ALIASES.get(cleaned, cleaned)
        return value

    def to_filter(self) -> FilterPredicate:
        value = self.value
        if self.op is FilterOperator.CONTAINED_IN_REGION and isinstance(value, dict):
            value = RegionSpec.model_validate(value).to_region()
        elif isinstance(value, dict) and set(value) >= {"kind", "id"}:
            value = KeySpec.model_validate(value).to_key()
        return FilterPredicate(self.field, self.op, value)


class LogicalFilter(BaseModel):
    type: Literal["logical"] = "logical"
    op: CompositeFilterOperator = CompositeFilterOperator.AND
    clauses: List["FilterClause"] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @field_validator("op", mode="before")
    @classmethod
    def _lower_op(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    def to_filter(self) -> CompositeFilter:
        return CompositeFilter(self.op, tuple(clause.to_filter() for clause in self.clauses))


FilterClause = Annotated[Union[ComparisonFilter, LogicalFilter], Field(discriminator="type")]
LogicalFilter.model_rebuild()


class OrderBySpec(BaseModel):
    field: str
    direction: SortDirection = SortDirection.ASCENDING

    model_config = ConfigDict(extra="forbid")

    @field_validator("direction", mode="before")
    @classmethod
    def _lower_direction(cls, value: Any) -> Any:
        if isinstance(value, str):
            cleaned = value.strip().lower()
            return {"ascending": "asc", "descending": "desc"}.get(cleaned, cleaned)
        return value


class QuerySpec(BaseModel):
    kind: Optional[str] = None
    filters: Optional[FilterClause] = None
    order_by: List[OrderBySpec] = Field(default_factory=list)
    ancestor: Optional[KeySpec] = None
    group_by: List[str] = Field(default_factory=list)
    projection: List[str] = Field(default_factory=list)
    keys_only: bool = False

    model_config = ConfigDict(extra="forbid")

    def to_query(self) -> Query:
        query_filter: Optional[Filter] = self.filters.to_filter() if self.filters else None
        return Query(
            kind=self.kind,
            filter=query_filter,
            sorts=tuple(SortPredicate(o.field, o.direction) for o in self.order_by),
            ancestor=self.ancestor.to_key() if self.ancestor else None,
            group_by=tuple(self.group_by),
            projection=tuple(self.projection),
            keys_only=self.keys_only,
        )


def query_from_selectors(selectors: dict[str, Any]) -> Query:
    return QuerySpec.model_validate(selectors).to_query()


__all__ = [
    "KeySpec",
    "RegionSpec",
    "ComparisonFilter",
    "LogicalFilter",
    "FilterClause",
    "OrderBySpec",
    "QuerySpec",
    "query_from_selectors",
]
