"""
Application logging: JSON lines in production, colored one-liners in development

Both formatters include the request context (correlation ID, client IP)
and any fields passed through `extra`, so sync summaries and purge counts
stay machine-readable.
"""
import logging
import sys
import json
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pathlib import Path

from app.core.config import settings

# Attributes every LogRecord carries; anything else came in through `extra`
_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime", "taskName"}

_request_context: ContextVar[Dict[str, Any]] = ContextVar("request_context", default={})

# Libraries that are too chatty at DEBUG
QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "celery": logging.INFO,
}


def record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record; `default_fields` are added to every line
    """

    def __init__(self, **default_fields):
        super().__init__()
        self.default_fields = default_fields

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            **self.default_fields,
            **record_extras(record),
        }

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        extras = record_extras(record)
        request_id = extras.pop("request_id", None)
        extras.pop("client_ip", None)

        color = self.COLORS.get(record.levelname, self.RESET)
        line = (
            f"{datetime.fromtimestamp(record.created):%H:%M:%S} "
            f"{color}{record.levelname:8}{self.RESET} "
            f"{'[' + request_id[:8] + '] ' if request_id else ''}"
            f"{record.name}: {record.getMessage()}"
        )
        if extras:
            line += " " + " ".join(f"{key}={value}" for key, value in extras.items())
        if record.exc_info:
            line += f"\n{self.formatException(record.exc_info)}"
        return line


class RequestContextFilter(logging.Filter):
    """
    Copies the current request context onto log records

    The context lives in a ContextVar, so concurrent requests served by
    the same event loop never see each other's values.
    """

    def set_context(self, **kwargs):
        _request_context.set({**_request_context.get(), **kwargs})

    def clear_context(self):
        _request_context.set({})

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _request_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


context_filter = RequestContextFilter()


def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    json_logs: Optional[bool] = None
):
    """
    Configure the root logger

    Args:
        log_level: Level name; defaults to settings.LOG_LEVEL
        log_file: Optional path for an additional JSON log file; defaults to settings.LOG_FILE
        json_logs: Force JSON output on the console (None = JSON unless DEBUG)
    """
    level = (log_level or settings.LOG_LEVEL).upper()
    log_file = log_file or settings.LOG_FILE
    use_json = json_logs if json_logs is not None else not settings.DEBUG

    def json_formatter() -> JSONFormatter:
        return JSONFormatter(service=settings.PROJECT_NAME, environment=settings.SENTRY_ENVIRONMENT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(json_formatter() if use_json else ConsoleFormatter())
    handlers = [console_handler]

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(json_formatter())
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        handler.addFilter(context_filter)
        root_logger.addHandler(handler)

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
