"""
Core Types and Data Structures

Defines the fundamental value types shared by transactions, the harvest and
log decoration. These are intentionally simple and immutable where possible.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

# Closed set of user attribute value kinds; validated on entry.
AttributeValue = str | int | float | bool


class ApdexZone(str, Enum):
    """Completion-time satisfaction zone of a transaction."""

    NONE = ""
    SATISFYING = "S"
    TOLERATING = "T"
    FAILING = "F"


@dataclass(frozen=True)
class TraceMetadata:
    """Trace identifiers of a live transaction; empty when tracing is off."""

    trace_id: str = ""
    span_id: str = ""


@dataclass(frozen=True)
class RequestInfo:
    """
    Inbound request as seen by the instrumentation.

    Header names are case-insensitive; they are normalized to lower case.
    """

    method: str = "GET"
    url: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        normalized = {k.lower(): v for k, v in self.headers.items()}
        object.__setattr__(self, "headers", normalized)

    def header(self, name: str) -> str:
        """Get a header value, or the empty string when absent."""
        return self.headers.get(name.lower(), "")
