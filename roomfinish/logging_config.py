"""Logging setup for roomfinish.

Geometry and quantity modules log through stdlib ``logging``; the session,
worker and CLI log through loguru. :func:`setup_logging` configures the
loguru sinks and forwards the stdlib ``roomfinish`` logger into them, so one
level and one format govern both.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

from loguru import logger


ENGINE_LOGGER = "roomfinish"

_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


class JSONFormatter:
    """One JSON object per line; values bound with ``logger.bind`` become top-level keys."""

    def __call__(self, record: dict[str, Any]) -> str:
        extra = dict(record["extra"])
        payload: dict[str, Any] = {
            "timestamp": record["time"].isoformat(),
            "level": record["level"].name,
            "logger": extra.pop("name", record["name"]),
            "message": record["message"],
            "location": f"{record['module']}:{record['function']}:{record['line']}",
        }
        payload.update(extra)

        exception = record["exception"]
        if exception is not None:
            payload["exception"] = {
                "type": exception.type.__name__ if exception.type else None,
                "value": str(exception.value) if exception.value else None,
            }

        # loguru formats the returned string once more
        return json.dumps(payload, ensure_ascii=False, default=str).replace("{", "{{").replace("}", "}}") + "\n"


class LoguruBridge(logging.Handler):
    """Re-emit stdlib records through loguru, keeping the caller's location."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        def origin(patched: dict[str, Any]) -> None:
            patched.update(module=record.module, function=record.funcName, line=record.lineno)

        logger.patch(origin).bind(name=record.name).opt(exception=record.exc_info).log(level, record.getMessage())


def _stdlib_level(level: str) -> int:
    value = logging.getLevelName(level)
    # TRACE and SUCCESS only exist in loguru
    return value if isinstance(value, int) else logging.DEBUG


def setup_logging(
    *,
    level: str = "INFO",
    json_format: bool = False,
    log_file: Path | None = None,
) -> None:
    """Configure loguru sinks and route the engine's stdlib loggers into them.

    Args:
        level: Log level (TRACE, DEBUG, INFO, SUCCESS, WARNING, ERROR, CRITICAL).
        json_format: Emit one JSON object per line (useful when piping CLI output).
        log_file: Optional rotating log file in addition to stderr.
    """
    level = level.upper()
    logger.remove()
    logger.configure(extra={"name": ENGINE_LOGGER})

    formatter: Any = JSONFormatter() if json_format else _CONSOLE_FORMAT
    logger.add(sys.stderr, format=formatter, level=level, colorize=not json_format)
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=formatter,
            level=level,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
        )

    engine = logging.getLogger(ENGINE_LOGGER)
    for handler in list(engine.handlers):
        if isinstance(handler, LoguruBridge):
            engine.removeHandler(handler)
    engine.addHandler(LoguruBridge())
    engine.setLevel(_stdlib_level(level))
    engine.propagate = False


def get_logger(name: str | None = None) -> Any:
    """Loguru logger bound to ``name`` (shown as the logger in both formats)."""
    if name:
        return logger.bind(name=name)
    return logger


__all__ = ["ENGINE_LOGGER", "JSONFormatter", "LoguruBridge", "get_logger", "setup_logging"]
