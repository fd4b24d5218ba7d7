"""Structured logging for the Magic Math service.

Records carry the id, method and path of the request that produced them (when
there is one) plus an optional ``data`` mapping passed as ``logger.info(msg,
data={...})``. Output is one JSON object per line, or a coloured single line
for local development.
"""

import json
import logging
import sys
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any, Dict, Optional

request_context: ContextVar[Dict[str, Any]] = ContextVar("request_context", default={})

# Third-party loggers that would otherwise log every request or socket event.
NOISY_LOGGERS = ("uvicorn.access", "redis", "asyncio")


def bind_request(request_id: str, method: str, path: str) -> Token:
    """Attach request fields to every record logged in this context."""
    return request_context.set({"request_id": request_id, "method": method, "path": path})


def current_request_id() -> Optional[str]:
    """Return the request id bound to the current context, if any."""
    return request_context.get().get("request_id")


def _record_fields(record: logging.LogRecord) -> Dict[str, Any]:
    fields: Dict[str, Any] = {
        "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat().replace("+00:00", "Z"),
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    fields.update(request_context.get())
    data = getattr(record, "data", None)
    if data:
        fields["data"] = data
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record. Big integers and other odd values go through ``str``."""

    def format(self, record: logging.LogRecord) -> str:
        fields = _record_fields(record)
        if record.exc_info:
            fields["exception"] = self.formatException(record.exc_info)
        return json.dumps(fields, default=str)


class ConsoleFormatter(logging.Formatter):
    """Readable single-line output for a terminal."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        fields = _record_fields(record)
        color = self.LEVEL_COLORS.get(record.levelname, "")
        when = datetime.fromtimestamp(record.created, UTC).strftime("%H:%M:%S")
        request_id = (fields.get("request_id") or "-")[:8]

        line = f"{when} {color}{record.levelname:<8}{self.RESET} [{request_id}] {record.name}: {fields['message']}"
        if "data" in fields:
            line += " " + " ".join(f"{key}={value}" for key, value in fields["data"].items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter that moves a ``data`` keyword into the record."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        data = kwargs.pop("data", None)
        if data:
            kwargs.setdefault("extra", {})["data"] = dict(data)
        return msg, kwargs


@lru_cache(maxsize=None)
def get_logger(name: str) -> ContextLogger:
    """Return the shared context-aware logger for ``name``."""
    return ContextLogger(logging.getLogger(name), {})


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Route all logging to stdout (and optionally a JSON file) at ``level``."""
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(StructuredFormatter() if json_output else ConsoleFormatter())
    handlers: list[logging.Handler] = [console]

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredFormatter())
        handlers.append(file_handler)

    root = logging.getLogger()
    root.handlers[:] = handlers
    root.setLevel(level.upper())

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
