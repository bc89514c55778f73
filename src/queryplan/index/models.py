from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..query.ast import SortDirection


class Mode(str, Enum):
    GEOSPATIAL = "geospatial"


class IndexProperty(BaseModel):
    """One entry of a composite index.

    ``direction`` is ``None`` when the index does not care about the order,
    which is the case for geospatial properties.
    """

    name: str
    direction: Optional[SortDirection] = None
    mode: Optional[Mode] = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("direction", mode="before")
    @classmethod
    def _parse_direction(cls, value: Any) -> Any:
        if isinstance(value, str):
            cleaned = value.strip().lower()
            return {"ascending": "asc", "descending": "desc"}.get(cleaned, cleaned)
        return value

    @field_validator("mode", mode="before")
    @classmethod
    def _parse_mode(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @classmethod
    def asc(cls, name: str) -> "IndexProperty":
        return cls(name=name, direction=SortDirection.ASCENDING)

    @classmethod
    def desc(cls, name: str) -> "IndexProperty":
        return cls(name=name, direction=SortDirection.DESCENDING)

    @property
    def is_geospatial(self) -> bool:
        return self.mode is Mode.GEOSPATIAL

    def to_yaml_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name}
        if self.direction is SortDirection.DESCENDING:
            data["direction"] = "desc"
        if self.mode is not None:
            data["mode"] = self.mode.value
        return data


class Index(BaseModel):
    kind: Optional[str] = None
    ancestor: bool = False
    properties: Tuple[IndexProperty, ...] = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("ancestor", mode="before")
    @classmethod
    def _parse_ancestor(cls, value: Any) -> Any:
        if isinstance(value, str):
            cleaned = value.strip().lower()
            if cleaned in ("yes", "true"):
                return True
            if cleaned in ("no", "false"):
                return False
        return value

    @property
    def property_names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.properties)

    def to_yaml_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"kind": self.kind}
        if self.ancestor:
            data["ancestor"] = "yes"
        if self.properties:
            data["properties"] = [p.to_yaml_dict() for p in self.properties]
        return data


__all__ = ["Mode", "IndexProperty", "Index"]
