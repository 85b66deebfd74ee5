"""Structured logging with structlog on top of stdlib logging.

Environment variables:
- LOG_FORMAT: "json" for machine-readable lines, "console" or unset for
  human-readable output.
- LOG_LEVEL: "DEBUG", "INFO" (default), "WARNING", "ERROR", or "CRITICAL".
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import MutableMapping
    from typing import Any

LOG_FILE_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"

_LOG_FORMATS = {"json", "console", ""}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _enum_value(value: object) -> object:
    return value.value if isinstance(value, Enum) else value


def serialize_enums(
    _logger: object,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Log enums (phases, claim types, error codes) by value, one level into dicts and lists."""
    for key, value in event_dict.items():
        if isinstance(value, dict):
            event_dict[key] = {k: _enum_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            event_dict[key] = [_enum_value(v) for v in value]
        else:
            event_dict[key] = _enum_value(value)
    return event_dict


def shared_processors() -> list[Any]:
    """Processor chain ending in the stdlib handoff; handlers do the rendering."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        serialize_enums,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]


def configure_structlog() -> None:
    structlog.configure(
        processors=shared_processors(),
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def resolve_json_mode() -> bool:
    value = os.environ.get("LOG_FORMAT", "").lower()
    if value not in _LOG_FORMATS:
        raise ValueError(f"Invalid LOG_FORMAT={value!r}. Must be 'json', 'console', or unset.")
    return value == "json"


def resolve_log_level() -> int:
    value = os.environ.get("LOG_LEVEL", "INFO").upper()
    if value not in _LOG_LEVELS:
        raise ValueError(f"Invalid LOG_LEVEL={value!r}. Must be one of {', '.join(sorted(_LOG_LEVELS))}.")
    return getattr(logging, value)


def build_formatter(*, json_mode: bool, colors: bool = False) -> logging.Formatter:
    renderer = structlog.processors.JSONRenderer() if json_mode else structlog.dev.ConsoleRenderer(colors=colors)
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )


def setup_logging(log_dir: Path | str | None = None, level: int | None = None) -> Path | None:
    """Configure structlog and the root logger for the server process.

    Logs go to stdout, and also to a timestamped file inside `log_dir` when
    one is given (outside tests). Returns the log file path, if any.
    """
    json_mode = resolve_json_mode()
    if level is None:
        level = resolve_log_level()

    configure_structlog()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(build_formatter(json_mode=json_mode, colors=sys.stdout.isatty()))
    root_logger.addHandler(stdout_handler)

    if log_dir is None or "pytest" in sys.modules:
        return None

    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    file_path = directory / f"{datetime.now(tz=UTC).strftime(LOG_FILE_TIMESTAMP_FORMAT)}.log"
    file_handler = logging.FileHandler(file_path)
    file_handler.setFormatter(build_formatter(json_mode=json_mode))
    root_logger.addHandler(file_handler)
    return file_path
