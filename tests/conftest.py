from __future__ import annotations

import sys
from pathlib import Path

import pytest

_REPO_ROOT = Path(__file__).resolve().parents[1]
_SRC = _REPO_ROOT / "src"
if _SRC.exists():
    sys.path.insert(0, str(_SRC))


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    # Settings are cached per process; keep env overrides from leaking between tests.
    for name in (
        "FLOWLOGIC_UNKNOWN_OPERATOR_RESULT",
        "FLOWLOGIC_LOOP_MIN_DEFAULT",
        "FLOWLOGIC_LOOP_MAX_DEFAULT",
        "FLOWLOGIC_LOG_LEVEL",
        "FLOWLOGIC_LOG_JSON",
    ):
        monkeypatch.delenv(name, raising=False)
    from flowlogic.config import reset_settings

    reset_settings()
    yield
    reset_settings()
