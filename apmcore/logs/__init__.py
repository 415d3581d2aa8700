"""
Logs Module

Application log events and log-line linking metadata.
"""

from apmcore.logs.enricher import (
    LINKING_PREFIX,
    FromApplication,
    FromTransaction,
    LinkingMetadata,
    LogSource,
    enrich_log,
)
from apmcore.logs.events import (
    LOG_SEVERITY_UNKNOWN,
    MAX_LOG_LENGTH,
    LogData,
    LogEvent,
    build_log_event,
)

__all__ = [
    "LINKING_PREFIX",
    "LOG_SEVERITY_UNKNOWN",
    "MAX_LOG_LENGTH",
    "FromApplication",
    "FromTransaction",
    "LinkingMetadata",
    "LogData",
    "LogEvent",
    "LogSource",
    "build_log_event",
    "enrich_log",
]
