"""Tagged logging helper shared by the analysis modules.

Messages come out as ``[LEVEL][Tag] message | key=value ...`` on the
"beatscope" logger. Tags in use: Beat (detections, option changes and
resets), Config (load/save/migration and range warnings) and Engine
(startup, session summaries and report failures). Untagged calls get
"Analysis".
`AnalysisEngine` applies `Config.log_level` through `set_log_level`.
"""
from __future__ import annotations

import logging
from typing import Any

_logger = logging.getLogger("beatscope")
if not _logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter("[%(levelname)s][%(tag)s] %(message)s")
    handler.setFormatter(formatter)
    _logger.addHandler(handler)
    _logger.setLevel(logging.INFO)

# WARN is accepted as an alias so call sites can keep short level names
_LEVEL_ALIASES = {"WARN": "WARNING"}


class _TagAdapter(logging.LoggerAdapter):
    def process(self, msg: Any, kwargs: dict[str, Any]):
        tag = kwargs.pop("tag", "Analysis")
        kwargs.setdefault("extra", {})["tag"] = tag
        return msg, kwargs


_logger_adapter = _TagAdapter(_logger, {})


def _level_value(level: str | None) -> int:
    name = (level or "INFO").upper()
    name = _LEVEL_ALIASES.get(name, name)
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.INFO


def log_event(level: str, tag: str, message: str, **fields: Any) -> None:
    """Log a message with level+tag, appending key=value fields when provided."""
    if fields:
        extras = " ".join(f"{k}={v}" for k, v in fields.items())
        message = f"{message} | {extras}"
    _logger_adapter.log(_level_value(level), message, tag=tag)


def set_log_level(level: str) -> None:
    """Set global log level (DEBUG/INFO/WARNING/ERROR)."""
    _logger.setLevel(_level_value(level))


def get_log_level() -> str:
    """Return current global log level name."""
    return logging.getLevelName(_logger.level)
