"""
Structured Logging

JSON-structured diagnostics for the agent itself.

Design decisions:
- Structured JSON output
- Log level filtering
- Context enrichment (run id, transaction name)
- Handler failures never reach instrumented code
"""

import contextvars
import json
import sys
import traceback
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, TextIO


class LogLevel(IntEnum):
    """Log levels matching Python's logging module."""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40


@dataclass
class AgentLogRecord:
    """A structured agent diagnostic record."""

    level: LogLevel
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    logger_name: str = "apmcore"

    # Structured data
    data: dict[str, Any] = field(default_factory=dict)

    # Error info
    error: str | None = None
    error_type: str | None = None
    stack_trace: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        result = {
            "timestamp": self.timestamp.isoformat(),
            "level": LogLevel(self.level).name,
            "logger": self.logger_name,
            "message": self.message,
        }

        if self.data:
            result["data"] = self.data

        if self.error:
            result["error"] = {
                "message": self.error,
                "type": self.error_type,
                "stack_trace": self.stack_trace,
            }

        return result

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), default=str)


class LogHandler:
    """Base class for log handlers."""

    def __init__(self, level: LogLevel = LogLevel.DEBUG):
        self.level = level

    def should_handle(self, level: LogLevel) -> bool:
        return level >= self.level

    def handle(self, record: AgentLogRecord) -> None:
        pass


class ConsoleHandler(LogHandler):
    """Writes JSON lines to a stream (stderr by default)."""

    def __init__(self, level: LogLevel = LogLevel.DEBUG, stream: TextIO | None = None):
        super().__init__(level)
        self.stream = stream or sys.stderr

    def handle(self, record: AgentLogRecord) -> None:
        if not self.should_handle(record.level):
            return
        print(record.to_json(), file=self.stream)


class BufferHandler(LogHandler):
    """Buffers records in memory for testing."""

    def __init__(self, level: LogLevel = LogLevel.DEBUG, max_records: int = 1000):
        super().__init__(level)
        self.records: list[AgentLogRecord] = []
        self._max_records = max_records

    def handle(self, record: AgentLogRecord) -> None:
        if not self.should_handle(record.level):
            return

        self.records.append(record)

        if len(self.records) > self._max_records:
            self.records = self.records[-self._max_records :]

    def messages(self) -> list[str]:
        return [r.message for r in self.records]

    def clear(self) -> None:
        self.records.clear()


# Context variables for log enrichment
_log_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "apmcore_log_context", default={}
)

# Process-wide defaults applied by configure_logging()
_default_level: LogLevel = LogLevel.INFO
_default_handlers: list[LogHandler] = []


class StructuredLogger:
    """
    Agent diagnostics logger.

    Handlers and level are resolved at emit time so that
    configure_logging() also reaches module-level loggers created at import.
    """

    def __init__(
        self,
        name: str = "apmcore",
        level: LogLevel | None = None,
        handlers: list[LogHandler] | None = None,
    ):
        self.name = name
        self._level = level
        self._handlers = handlers

    @property
    def level(self) -> LogLevel:
        return self._level if self._level is not None else _default_level

    @property
    def handlers(self) -> list[LogHandler]:
        if self._handlers is not None:
            return self._handlers
        return _default_handlers or [ConsoleHandler()]

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level >= self.level

    def _log(
        self,
        level: LogLevel,
        message: str,
        data: dict[str, Any] | None = None,
        error: BaseException | None = None,
        **extra: Any,
    ) -> None:
        if not self.is_enabled_for(level):
            return

        record = AgentLogRecord(
            level=level,
            message=message,
            logger_name=self.name,
            data={**_log_context.get(), **(data or {}), **extra},
        )

        if error is not None:
            record.error = str(error)
            record.error_type = type(error).__name__
            record.stack_trace = "".join(traceback.format_exception(error))

        for handler in self.handlers:
            try:
                handler.handle(record)
            except Exception:
                pass  # Don't let handler errors affect instrumented code

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, error: BaseException | None = None, **kwargs: Any) -> None:
        self._log(LogLevel.ERROR, message, error=error, **kwargs)

    @staticmethod
    @contextmanager
    def context(**kwargs: Any):
        """
        Context manager for adding context to logs.

        Usage:
            with logger.context(run_id="abc"):
                logger.info("harvest started")
        """
        current = _log_context.get()
        token = _log_context.set({**current, **kwargs})

        try:
            yield
        finally:
            _log_context.reset(token)


def get_logger(name: str = "apmcore") -> StructuredLogger:
    """Get a logger that follows the process-wide configuration."""
    return StructuredLogger(name=name)


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    handlers: list[LogHandler] | None = None,
) -> None:
    """
    Set the process-wide level and handlers for agent diagnostics.

    With handlers omitted, the installed handlers are kept and only the
    level changes.
    """
    global _default_level, _default_handlers

    if isinstance(level, str):
        level = LogLevel[level.upper()]

    _default_level = level
    if handlers is not None:
        _default_handlers = list(handlers)
