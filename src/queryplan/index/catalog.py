"""Read and render ``index.yaml`` catalogs of declared composite indexes.

A catalog file looks like::

    indexes:
    - kind: Person
      properties:
      - name: city
      - name: age
        direction: desc

    # AUTOGENERATED
    - kind: Person
      ancestor: yes
      properties:
      - name: age

Entries above the ``# AUTOGENERATED`` line are maintained by hand; entries
below it were recommended by the planner and may be rewritten.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple

import yaml
from pydantic import ValidationError

from ..errors import IndexCatalogError
from ..query.ast import SortDirection
from .models import Index

logger = logging.getLogger(__name__)

AUTOGENERATED_MARKER = "# AUTOGENERATED"


def _entries(text: str, path: Optional[str]) -> List[Any]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise IndexCatalogError(f"invalid YAML: {exc}", path) from exc
    if data is None:
        return []
    if not isinstance(data, dict):
        raise IndexCatalogError("expected a mapping with an 'indexes' key", path)
    entries = data.get("indexes") or []
    if not isinstance(entries, list):
        raise IndexCatalogError("'indexes' must be a list", path)
    return entries


def _parse_index(entry: Any, position: int, path: Optional[str]) -> Index:
    if not isinstance(entry, dict):
        raise IndexCatalogError(f"index #{position} must be a mapping", path)
    properties = []
    for prop in entry.get("properties") or []:
        if isinstance(prop, dict) and prop.get("direction") is None and prop.get("mode") is None:
            prop = {**prop, "direction": SortDirection.ASCENDING}
        properties.append(prop)
    try:
        return Index.model_validate({**entry, "properties": properties})
    except ValidationError as exc:
        raise IndexCatalogError(f"index #{position} is invalid: {exc}", path) from exc


@dataclass(frozen=True)
class IndexCatalog:
    manual: Tuple[Index, ...] = ()
    generated: Tuple[Index, ...] = ()

    @property
    def indexes(self) -> Tuple[Index, ...]:
        return self.manual + self.generated

    def __iter__(self):
        return iter(self.indexes)

    def __len__(self) -> int:
        return len(self.indexes)

    @classmethod
    def from_yaml(cls, text: str, *, path: Optional[str] = None) -> "IndexCatalog":
        entries = _entries(text, path)
        lines = text.splitlines()
        marker_at = next(
            (i for i, line in enumerate(lines) if line.strip() == AUTOGENERATED_MARKER), None
        )
        if marker_at is None:
            manual_count = len(entries)
        else:
            manual_count = len(_entries("\n".join(lines[:marker_at]), path))

        parsed = [_parse_index(entry, i, path) for i, entry in enumerate(entries)]
        catalog = cls(tuple(parsed[:manual_count]), tuple(parsed[manual_count:]))
        logger.debug(
            "Loaded %d manual and %d generated index(es)%s",
            len(catalog.manual),
            len(catalog.generated),
            f" from {path}" if path else "",
        )
        return catalog

    @classmethod
    def from_path(cls, path: Path | str) -> "IndexCatalog":
        path = Path(path)
        if not path.exists():
            return cls()
        return cls.from_yaml(path.read_text(encoding="utf-8"), path=str(path))

    def with_generated(self, indexes: Iterable[Index]) -> "IndexCatalog":
        """Return a catalog with ``indexes`` appended to the generated section.

        Indexes already declared (manually or generated) are skipped.
        """
        known = list(self.indexes)
        added: List[Index] = []
        for index in indexes:
            if index in known:
                continue
            known.append(index)
            added.append(index)
        return IndexCatalog(self.manual, self.generated + tuple(added))

    def to_yaml(self) -> str:
        def dump(indexes: Tuple[Index, ...]) -> str:
            if not indexes:
                return ""
            return yaml.safe_dump(
                [index.to_yaml_dict() for index in indexes],
                sort_keys=False,
                default_flow_style=False,
            )

        parts = ["indexes:\n", dump(self.manual)]
        if self.generated:
            parts += ["\n", AUTOGENERATED_MARKER, "\n", dump(self.generated)]
        return "".join(parts)

    def write(self, path: Path | str) -> None:
        Path(path).write_text(self.to_yaml(), encoding="utf-8")


__all__ = ["AUTOGENERATED_MARKER", "IndexCatalog"]
