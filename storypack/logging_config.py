from __future__ import annotations

import json
import logging
import os
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict

from storypack.config.runtime_paths import logs_dir

DEFAULT_LOG_FILE = "storypack.log"
TEXT_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
_RUN_ID_VAR: ContextVar[str | None] = ContextVar("storypack_run_id", default=None)

_RESERVED_ATTRS: frozenset[str] = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
        "run_id",
    }
)


class StructuredJsonFormatter(logging.Formatter):
    """Render log records as structured JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        run_id = getattr(record, "run_id", None)
        if run_id:
            payload["run_id"] = run_id

        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info

        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS
        }
        if extras:
            payload["extra"] = _serialise_extra(extras)

        return json.dumps(payload, ensure_ascii=True)


class RunContextFilter(logging.Filter):
    """Inject the current export run id into each log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        rid = get_run_id()
        if rid:
            record.run_id = rid
        elif not hasattr(record, "run_id"):
            record.run_id = None
        return True


def _serialise_extra(data: Dict[str, Any]) -> Dict[str, Any]:
    serialised: Dict[str, Any] = {}
    for key, value in data.items():
        try:
            json.dumps(value)
            serialised[key] = value
        except (TypeError, ValueError):
            serialised[key] = repr(value)
    return serialised


def set_run_id(value: str | None) -> Token:
    """Set the current run id for log records."""
    return _RUN_ID_VAR.set(value)


def get_run_id() -> str | None:
    return _RUN_ID_VAR.get()


def reset_run_id(token: Token) -> None:
    try:
        _RUN_ID_VAR.reset(token)
    except (RuntimeError, ValueError):
        pass


def _coerce_level(level: str) -> int:
    value = getattr(logging, str(level).upper(), None)
    return value if isinstance(value, int) else logging.INFO


def init_logging(
    log_dir: str | os.PathLike[str] | None = None,
    *,
    level: str = "INFO",
    json_format: bool = False,
    filename: str = DEFAULT_LOG_FILE,
) -> Path:
    """Attach rotating file + console handlers to the root logger.

    Returns the path of the log file. Calling it again replaces the handlers
    installed by the previous call.
    """

    base = Path(log_dir).expanduser().resolve() if log_dir else logs_dir()
    base.mkdir(parents=True, exist_ok=True)
    log_path = base / filename

    root_logger = logging.getLogger()
    root_logger.setLevel(_coerce_level(level))

    for handler in list(root_logger.handlers):
        if getattr(handler, "_storypack", False):
            root_logger.removeHandler(handler)
            handler.close()

    formatter: logging.Formatter = (
        StructuredJsonFormatter() if json_format else logging.Formatter(TEXT_FORMAT)
    )
    context_filter = RunContextFilter()

    file_handler = RotatingFileHandler(
        str(log_path),
        maxBytes=5 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    stream_handler = logging.StreamHandler()
    for handler in (file_handler, stream_handler):
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        handler._storypack = True  # type: ignore[attr-defined]
        root_logger.addHandler(handler)

    logging.getLogger(__name__).debug("Logging initialised at %s", log_path)
    return log_path


__all__ = [
    "RunContextFilter",
    "StructuredJsonFormatter",
    "get_run_id",
    "init_logging",
    "reset_run_id",
    "set_run_id",
]
