"""
Response Interception

Helpers used by a transaction to observe the response it wraps: status code
classification, header parsing and a sink for transactions without one.

The transaction delegates the actual write to the wrapped sink before taking
its lock; only the bookkeeping about the write is serialized. Concurrent
writers may race on the sink itself.
"""

from collections.abc import Mapping
from http import HTTPStatus

from apmcore.config.settings import AgentSettings

# Precomputed status strings; unknown codes fall back to str().
_STATUS_CODE_STRINGS: dict[int, str] = {status.value: str(status.value) for status in HTTPStatus}


def status_code_string(code: int) -> str:
    return _STATUS_CODE_STRINGS.get(code) or str(code)


def response_code_is_error(settings: AgentSettings, code: int) -> bool:
    """A status of 400 or above that is not in the ignore list."""
    if code < HTTPStatus.BAD_REQUEST:
        return False
    return code not in settings.error_collector.ignore_status_codes


def parse_content_length(value: str) -> int:
    """Parse a Content-Length header; malformed values count as 0."""
    if not value:
        return 0
    try:
        return int(value)
    except ValueError:
        return 0


def header_value(headers: Mapping[str, str], name: str) -> str:
    """Case-insensitive header lookup over any mapping."""
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, val in headers.items():
        if key.lower() == lowered:
            return val
    return ""


class DiscardSink:
    """Sink for background transactions that never write a response."""

    def __init__(self) -> None:
        self._headers: dict[str, str] = {}

    @property
    def headers(self) -> Mapping[str, str]:
        return self._headers

    def write(self, data: bytes) -> int:
        return len(data)

    def write_header(self, code: int) -> None:
        return None
