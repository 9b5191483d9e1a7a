"""Logging setup for fuzzing sessions and CI runs.

Library modules only create ``logging.getLogger(__name__)`` loggers; the
process embedding fuzzscope calls :func:`setup_logging` once. Report and
contract context travels on records through ``extra=`` and is rendered by
both formatters.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from fuzzscope.core.config import Settings, get_settings

# ``extra=`` keys understood by the formatters
CONTEXT_FIELDS = ("contract", "report_path", "duration_ms")


def _context(record: logging.LogRecord) -> dict[str, Any]:
    return {key: getattr(record, key) for key in CONTEXT_FIELDS if hasattr(record, key)}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log collectors."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "line": record.lineno,
        }
        entry.update(_context(record))

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = {
                "type": type(record.exc_info[1]).__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }
            code = getattr(record.exc_info[1], "code", None)
            if code is not None:
                entry["exception"]["code"] = getattr(code, "value", code)

        return json.dumps(entry, default=str)


class DevFormatter(logging.Formatter):
    """Colored single-line output for interactive sessions."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        ts = datetime.now(timezone.utc).strftime("%H:%M:%S")
        line = f"{color}{ts} [{record.levelname:>8s}]{self.RESET} {record.name}: {record.getMessage()}"

        context = _context(record)
        if context:
            line += " (" + ", ".join(f"{k}={v}" for k, v in context.items()) + ")"
        if record.exc_info and record.exc_info[1]:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(settings: Settings | None = None) -> None:
    """Install a single stdout handler on the root logger.

    Staging and production get :class:`JSONFormatter`; development gets
    :class:`DevFormatter`. Level and environment come from *settings*.
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if settings.app_env in ("staging", "production"):
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(DevFormatter())
    root.addHandler(handler)
