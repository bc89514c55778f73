from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Dict

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "QUERYPLAN_"


class PlannerSettings(BaseSettings):
    """Tunables of the query planner.

    ``ancestor_cost`` is the weight of an uncovered ancestor constraint relative
    to one uncovered equality property when picking the minimal index. The
    default of 2 is a heuristic kept for compatibility with existing index
    recommendations.
    """

    max_parallel_queries: int = Field(default=30, ge=1)
    ancestor_cost: int = Field(default=2, ge=0)
    max_filter_depth: int = Field(default=64, ge=1)
    key_property: str = "__key__"

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, extra="ignore")

    @field_validator("key_property")
    @classmethod
    def validate_key_property(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("key_property must be a non-empty property name")
        return value


def _load_toml(path: Path | None) -> Dict[str, Any]:
    if path is None:
        return {}
    if not path.exists():
        raise FileNotFoundError(f"Config file not found at {path}")
    with path.open("rb") as f:
        data = tomllib.load(f)
    # Accept either a bare table or a [queryplan] section inside a shared file.
    section = data.get("queryplan")
    return dict(section) if isinstance(section, dict) else data


def _extract_prefixed(source: Dict[str, str], *, prefix: str = ENV_PREFIX) -> Dict[str, Any]:
    return {
        key.removeprefix(prefix).lower(): value
        for key, value in source.items()
        if key.startswith(prefix)
    }


def load_settings(
    *,
    config_path: Path | str | None = None,
    overrides: Dict[str, Any] | None = None,
) -> PlannerSettings:
    """Build settings from a TOML file, then ``QUERYPLAN_*`` env vars, then ``overrides``."""
    path = Path(config_path) if config_path is not None else None

    merged: Dict[str, Any] = _load_toml(path)
    merged.update(_extract_prefixed(dict(os.environ)))
    if overrides:
        merged.update(overrides)

    return PlannerSettings(**merged)


__all__ = ["ENV_PREFIX", "PlannerSettings", "load_settings"]
