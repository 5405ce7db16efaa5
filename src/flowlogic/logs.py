from __future__ import annotations

import json
import logging
from typing import Any, Optional

from flowlogic.config import EngineSettings, resolve_settings

_HANDLER_NAME = "flowlogic"
_ROOT_LOGGER = "flowlogic"


def get_logger(name: str) -> logging.Logger:
    if not name.startswith(_ROOT_LOGGER):
        name = f"{_ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def configure_logging(settings: Optional[EngineSettings] = None) -> logging.Logger:
    """
    Attach a single stream handler to the `flowlogic` logger tree.

    Safe to call repeatedly; the level is refreshed from settings each time.
    """
    cfg = resolve_settings(settings)
    root = logging.getLogger(_ROOT_LOGGER)
    level = logging.getLevelName(cfg.log_level)
    root.setLevel(level if isinstance(level, int) else logging.WARNING)
    if not any(getattr(h, "name", "") == _HANDLER_NAME for h in root.handlers):
        handler = logging.StreamHandler()
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        root.addHandler(handler)
    return root


def _format_kv(event: str, fields: dict) -> str:
    parts = [event]
    for k, v in fields.items():
        parts.append(f"{k}={v}")
    return " ".join(parts)


def log_event(
    logger: logging.Logger,
    event: str,
    *,
    level: int = logging.DEBUG,
    settings: Optional[EngineSettings] = None,
    **fields: Any,
) -> None:
    if not logger.isEnabledFor(level):
        return
    if resolve_settings(settings).log_json:
        record = {"event": event, **fields}
        # One-line JSON for easy grepping.
        try:
            logger.log(level, json.dumps(record, ensure_ascii=False, separators=(",", ":"), default=str))
            return
        except (TypeError, ValueError):
            pass
    logger.log(level, _format_kv(event, fields))


__all__ = ["configure_logging", "get_logger", "log_event"]
