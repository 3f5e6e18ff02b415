"""Structured JSON logger for mdpdf.

Every record is a single JSON line:
{"time":"2026-10-19T09:12:03.118201+00:00","level":"INFO","source":{"function":"convert_file","file":"converter.py","line":88},"msg":"pdf written","pages":2}
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

# Fields attached to every record emitted in the current context
_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})

LOG_LEVEL = os.getenv("MDPDF_LOG_LEVEL", "INFO").upper()


class StructuredFormatter(logging.Formatter):
    """Render a LogRecord as one JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        now = datetime.now(timezone.utc).astimezone()

        log_entry: dict[str, Any] = {
            "time": now.isoformat(),
            "level": record.levelname,
            "source": {
                "function": record.funcName,
                "file": os.path.basename(record.pathname),
                "line": record.lineno,
            },
            "msg": record.getMessage(),
        }

        ctx_fields = _log_context.get()
        if ctx_fields:
            log_entry.update(ctx_fields)

        if hasattr(record, "extra_fields"):
            log_entry.update(record.extra_fields)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class StructuredLogger:
    """Logger that takes keyword fields instead of format arguments."""

    def __init__(self, name: str = "mdpdf", level: str = LOG_LEVEL):
        self._logger = logging.getLogger(name)
        self._logger.setLevel(getattr(logging, level, logging.INFO))

        self._logger.handlers.clear()

        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(StructuredFormatter())
        self._logger.addHandler(handler)

        self._logger.propagate = False

    def _log(
        self,
        level: int,
        msg: str,
        stacklevel: int = 3,
        **fields: Any,
    ) -> None:
        extra = {"extra_fields": fields} if fields else {}
        self._logger.log(level, msg, stacklevel=stacklevel, extra=extra)

    def debug(self, msg: str, **fields: Any) -> None:
        """Log a debug message with optional fields."""
        self._log(logging.DEBUG, msg, **fields)

    def info(self, msg: str, **fields: Any) -> None:
        """Log an info message with optional fields."""
        self._log(logging.INFO, msg, **fields)

    def warn(self, msg: str, **fields: Any) -> None:
        """Log a warning message with optional fields."""
        self._log(logging.WARNING, msg, **fields)

    def error(self, msg: str, **fields: Any) -> None:
        """Log an error message with optional fields."""
        self._log(logging.ERROR, msg, **fields)


def set_context(**fields: Any) -> None:
    """Attach fields to every subsequent record in this context.

    Example:
        set_context(input_path="notes.md")
        logger.info("rendering")  # includes input_path
    """
    current = _log_context.get()
    _log_context.set({**current, **fields})


def clear_context() -> None:
    """Clear all context fields."""
    _log_context.set({})


def get_context() -> dict[str, Any]:
    """Get current context fields."""
    return _log_context.get().copy()


logger = StructuredLogger("mdpdf")
