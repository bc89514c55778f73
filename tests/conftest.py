from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture(autouse=True)
def _clear_planner_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # settings pick up QUERYPLAN_* variables from the developer's shell
    for key in list(os.environ):
        if key.startswith("QUERYPLAN_"):
            monkeypatch.delenv(key, raising=False)
