"""
Log Events

Validates raw application log input and produces sampling-ready log events
with a fixed wire encoding.

Design decisions:
- Input is never mutated; defaults are applied to the event
- Size is checked on the raw UTF-8 message, before trimming
- Wire field order is fixed: level, message, span.id, trace.id, timestamp
"""

import json
import time
from dataclasses import dataclass

from apmcore.core.exceptions import AgentError, NilInputError, OversizedPayloadError
from apmcore.harvest.events import new_priority

# Maximum number of bytes a log message may contain
MAX_LOG_LENGTH = 32768

LOG_SEVERITY_UNKNOWN = "UNKNOWN"

# Wire field names
SEVERITY_FIELD = "level"
MESSAGE_FIELD = "message"
SPAN_ID_FIELD = "span.id"
TRACE_ID_FIELD = "trace.id"
TIMESTAMP_FIELD = "timestamp"


def epoch_millis() -> int:
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class LogData:
    """
    Raw log input.

    timestamp is Unix epoch milliseconds; 0 means "now". severity is
    optional. message is limited to MAX_LOG_LENGTH bytes.
    """

    message: str
    severity: str = ""
    timestamp: int = 0


@dataclass(frozen=True)
class LogEvent:
    """A validated log record ready for the harvest."""

    priority: float
    timestamp: int
    severity: str
    message: str
    span_id: str = ""
    trace_id: str = ""

    def to_dict(self) -> dict[str, str | int]:
        """Wire object; insertion order is the contract."""
        payload: dict[str, str | int] = {
            SEVERITY_FIELD: self.severity,
            MESSAGE_FIELD: self.message,
        }
        if self.span_id:
            payload[SPAN_ID_FIELD] = self.span_id
        if self.trace_id:
            payload[TRACE_ID_FIELD] = self.trace_id
        payload[TIMESTAMP_FIELD] = self.timestamp
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)


def build_log_event(data: LogData | None) -> tuple[LogEvent | None, AgentError | None]:
    """Validate log input and build an event, or return the failure."""
    if data is None:
        return None, NilInputError("log data must not be None")

    severity = data.severity.strip() or LOG_SEVERITY_UNKNOWN

    if len(data.message.encode("utf-8")) > MAX_LOG_LENGTH:
        return None, OversizedPayloadError(
            f"log message can not exceed {MAX_LOG_LENGTH} bytes",
            context={"max_bytes": MAX_LOG_LENGTH},
        )

    timestamp = data.timestamp or epoch_millis()

    event = LogEvent(
        priority=new_priority(),
        timestamp=timestamp,
        severity=severity,
        message=data.message.strip(),
    )
    return event, None
