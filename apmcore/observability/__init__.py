"""
Observability Module

Structured diagnostics for the agent itself.
"""

from apmcore.observability.logging import (
    AgentLogRecord,
    BufferHandler,
    ConsoleHandler,
    LogHandler,
    LogLevel,
    StructuredLogger,
    configure_logging,
    get_logger,
)

__all__ = [
    "AgentLogRecord",
    "BufferHandler",
    "ConsoleHandler",
    "LogHandler",
    "LogLevel",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
]
