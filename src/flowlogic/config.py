"""
Environment-driven settings for the flow logic engine.

`.env` and `.env.local` (current working directory) are loaded on first use and never
override variables that are already set in the process environment.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

_TRUE_VALUES = {"1", "true", "yes", "y", "on"}


def _env_bool(name: str, default: bool = False) -> bool:
    v = (os.getenv(name) or "").strip().lower()
    if not v:
        return default
    return v in _TRUE_VALUES


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_str(name: str, default: str) -> str:
    v = (os.getenv(name) or "").strip()
    return v or default


def load_env_files(base_dir: Optional[Path] = None) -> None:
    root = base_dir or Path.cwd()
    load_dotenv(root / ".env", override=False)
    load_dotenv(root / ".env.local", override=False)


class EngineSettings(BaseModel):
    """Knobs that change evaluation defaults. Pass explicitly to engine calls, or rely on `get_settings()`."""

    model_config = ConfigDict(frozen=True)

    unknown_operator_result: bool = Field(
        default=False,
        description="Result of a condition whose operator is not recognised",
    )
    loop_min_default: int = Field(default=0, ge=0, description="minCount used when a loop config omits it")
    loop_max_default: int = Field(default=10, ge=0, description="maxCount used when a loop config omits it")
    log_level: str = Field(default="WARNING")
    log_json: bool = Field(default=False, description="Emit one-line JSON log records")

    @classmethod
    def from_env(cls) -> "EngineSettings":
        loop_min = max(0, _env_int("FLOWLOGIC_LOOP_MIN_DEFAULT", 0))
        loop_max = max(loop_min, _env_int("FLOWLOGIC_LOOP_MAX_DEFAULT", 10))
        return cls(
            unknown_operator_result=_env_bool("FLOWLOGIC_UNKNOWN_OPERATOR_RESULT", default=False),
            loop_min_default=loop_min,
            loop_max_default=loop_max,
            log_level=_env_str("FLOWLOGIC_LOG_LEVEL", "WARNING").upper(),
            log_json=_env_bool("FLOWLOGIC_LOG_JSON", default=False),
        )


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    load_env_files()
    return EngineSettings.from_env()


def reset_settings() -> None:
    get_settings.cache_clear()


def resolve_settings(settings: Optional[EngineSettings]) -> EngineSettings:
    return settings if settings is not None else get_settings()


__all__ = ["EngineSettings", "get_settings", "reset_settings", "resolve_settings", "load_env_files"]
