"""
Structured logging for cadence.

Governors log through ``StructuredLogger``, which attaches keyword fields to
each record. The formatters below render those fields as JSON (one object
per line) or as compact text, with the governor name pulled out as a header.

Usage:
    from cadence.logging_config import configure_logging, get_logger

    # Once, at application start (libraries embedding cadence usually skip this)
    configure_logging(level="DEBUG", json_output=False)

    logger = get_logger(__name__)
    logger.debug("Trailing edge fired", governor="search", now=12.5)

    # Fields set here are added to every record formatted inside the block
    with LogContext(governor="autosave"):
        logger.debug("Flushing")

Environment:
    CADENCE_LOG_LEVEL         default level (INFO)
    CADENCE_LOG_FORMAT        "json" or "text" (json)
    CADENCE_LOG_FILE          optional rotating log file
    CADENCE_LOG_MAX_BYTES     rotation size (10 MiB)
    CADENCE_LOG_BACKUP_COUNT  rotated files kept (5)
"""

import json
import logging
import logging.handlers
import os
import sys
import time
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache, partialmethod, wraps
from typing import Any, Callable, Dict, Optional, Tuple

LOG_LEVEL = os.environ.get("CADENCE_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.environ.get("CADENCE_LOG_FORMAT", "json")
LOG_FILE = os.environ.get("CADENCE_LOG_FILE", "")


def _get_env_int(name: str, default: int) -> int:
    """Get an int from environment variable, or the default if not set/invalid."""
    try:
        return int(os.environ.get(name, default))
    except ValueError:
        return default


LOG_MAX_BYTES = _get_env_int("CADENCE_LOG_MAX_BYTES", 10 * 1024 * 1024)
LOG_BACKUP_COUNT = _get_env_int("CADENCE_LOG_BACKUP_COUNT", 5)

FIELDS_ATTR = "structured_fields"

_context: ContextVar[Dict[str, Any]] = ContextVar("cadence_log_context", default={})


@dataclass
class LogEntry:
    """One formatted log line before rendering."""

    timestamp: str
    level: str
    logger: str
    message: str
    fields: Dict[str, Any] = field(default_factory=dict)
    governor: Optional[str] = None
    exception: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "ts": self.timestamp,
            "level": self.level,
            "logger": self.logger,
            "msg": self.message,
        }
        if self.governor:
            data["governor"] = self.governor
        data.update(self.fields)
        if self.exception:
            data["exception"] = self.exception
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    def to_text(self) -> str:
        header = [self.timestamp, f"[{self.level}]", f"[{self.logger}]"]
        if self.governor:
            header.append(f"[{self.governor}]")
        line = " ".join([*header, self.message])
        if self.fields:
            line += " " + " ".join(f"{key}={value}" for key, value in self.fields.items())
        if self.exception:
            line += "\n" + self.exception.get("traceback", "")
        return line


def _collect(record: logging.LogRecord) -> Tuple[Dict[str, Any], Optional[str]]:
    """Merge context and record fields; split off the governor name."""
    merged = {**_context.get(), **getattr(record, FIELDS_ATTR, {})}
    governor = merged.pop("governor", None)
    return merged, governor


class JSONFormatter(logging.Formatter):
    """Renders each record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        fields, governor = _collect(record)
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            level=record.levelname,
            logger=record.name,
            message=record.getMessage(),
            fields=fields,
            governor=governor,
        )
        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry.exception = {
                "type": exc_type.__name__ if exc_type else "Unknown",
                "message": str(exc_value) if exc_value else "",
                "traceback": self.formatException(record.exc_info),
            }
        return entry.to_json()


class TextFormatter(logging.Formatter):
    """Renders records as ``ts [LEVEL] [module] [governor] message k=v``."""

    def format(self, record: logging.LogRecord) -> str:
        fields, governor = _collect(record)
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
            level=record.levelname,
            logger=record.name.rpartition(".")[2],
            message=record.getMessage(),
            fields=fields,
            governor=governor,
        )
        if record.exc_info:
            entry.exception = {"traceback": self.formatException(record.exc_info)}
        return entry.to_text()


class StructuredLogger:
    """
    Thin wrapper over ``logging.Logger`` that takes keyword fields.

    Fields ride on the record as ``structured_fields`` so any handler can
    read them; the formatters in this module render them.
    """

    def __init__(self, name: str):
        self.name = name
        self._logger = logging.getLogger(name)

    def _emit(self, level: int, message: str, *, exc_info: bool = False, **fields: Any) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, message, exc_info=exc_info, extra={FIELDS_ATTR: fields})

    log = _emit
    debug = partialmethod(_emit, logging.DEBUG)
    info = partialmethod(_emit, logging.INFO)
    warning = partialmethod(_emit, logging.WARNING)
    error = partialmethod(_emit, logging.ERROR)
    exception = partialmethod(_emit, logging.ERROR, exc_info=True)

    @property
    def level(self) -> int:
        return self._logger.level

    def isEnabledFor(self, level: int) -> bool:
        return self._logger.isEnabledFor(level)


class LogContext:
    """Adds fields to every record formatted inside the ``with`` block."""

    def __init__(self, **fields: Any):
        self._fields = fields
        self._token: Optional[Token] = None

    def __enter__(self) -> "LogContext":
        self._token = _context.set({**_context.get(), **self._fields})
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self._token is not None:
            _context.reset(self._token)
            self._token = None


def set_context(**fields: Any) -> None:
    """Add fields to the log context of the current task or thread."""
    _context.set({**_context.get(), **fields})


def get_context() -> Dict[str, Any]:
    return dict(_context.get())


def clear_context() -> None:
    _context.set({})


@lru_cache(maxsize=None)
def get_logger(name: str) -> StructuredLogger:
    """Return the shared StructuredLogger for ``name``."""
    return StructuredLogger(name)


def _build_handlers(formatter: logging.Formatter, level: int, log_file: str) -> list:
    handlers: list = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(
            logging.handlers.RotatingFileHandler(
                log_file, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
    return handlers


def configure_logging(
    level: str | None = None,
    json_output: bool | None = None,
    log_file: str | None = None,
    propagate: bool = True,
) -> None:
    """
    Install cadence formatters on the root logger.

    Replaces any existing root handlers. Arguments left as None fall back to
    the CADENCE_LOG_* environment variables.

    Args:
        level: Level name for the root and ``cadence`` loggers
        json_output: JSON lines when True, text when False
        log_file: Also write to this rotating file
        propagate: Whether ``cadence`` records reach the root logger
    """
    log_level = getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO)
    if json_output is None:
        json_output = LOG_FORMAT == "json"
    formatter = JSONFormatter() if json_output else TextFormatter()

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in _build_handlers(formatter, log_level, log_file or LOG_FILE):
        root.addHandler(handler)
    root.setLevel(log_level)

    package_logger = logging.getLogger("cadence")
    package_logger.setLevel(log_level)
    package_logger.propagate = propagate


def log_function(
    level: str = "DEBUG",
    log_args: bool = False,
    log_duration: bool = True,
) -> Callable[[Callable], Callable]:
    """Log each call of the decorated function; failures log at ERROR and re-raise."""
    log_level = getattr(logging, level.upper(), logging.DEBUG)

    def decorator(func: Callable) -> Callable:
        logger = get_logger(func.__module__)

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fields: Dict[str, Any] = {"function": func.__name__}
            if log_args:
                fields.update(args_count=len(args), kwargs_keys=sorted(kwargs))
            started = time.monotonic()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                logger.error(
                    f"Function failed: {func.__name__}",
                    exc_info=True,
                    error=str(exc),
                    duration_ms=(time.monotonic() - started) * 1000,
                    **fields,
                )
                raise
            if log_duration:
                fields["duration_ms"] = (time.monotonic() - started) * 1000
            logger.log(log_level, f"Function completed: {func.__name__}", **fields)
            return result

        return wrapper

    return decorator


__all__ = [
    "LogEntry",
    "JSONFormatter",
    "TextFormatter",
    "StructuredLogger",
    "LogContext",
    "set_context",
    "get_context",
    "clear_context",
    "get_logger",
    "configure_logging",
    "log_function",
]
