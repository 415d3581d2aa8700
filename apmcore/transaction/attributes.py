"""
Transaction Attributes

Holder for agent-populated request/response metadata and user-supplied
key/value pairs.

Design decisions:
- User values are a closed union (str, int, float, bool) validated on entry
- Oversized strings are truncated rather than rejected
- The holder is read-only once its transaction is finalized
"""

import math
from dataclasses import asdict, dataclass
from typing import Any
from urllib.parse import urlsplit, urlunsplit

from apmcore.config.settings import AttributeSettings
from apmcore.core.exceptions import AgentError, AttributeLimitError, InvalidAttributeError
from apmcore.core.types import AttributeValue

MAX_KEY_BYTES = 255
MAX_VALUE_BYTES = 255


def safe_url(url: str) -> str:
    """Strip credentials, query string and fragment from a URL."""
    if not url:
        return ""
    try:
        parts = urlsplit(url)
        # Raises ValueError on a malformed port
        parts.port
    except ValueError:
        return ""
    # Host and port as written, so IPv6 literals keep their brackets
    netloc = parts.netloc.rpartition("@")[2]
    return urlunsplit((parts.scheme, netloc, parts.path, "", ""))


def truncate_utf8(value: str, max_bytes: int) -> str:
    """Truncate a string to at most max_bytes without splitting a code point."""
    encoded = value.encode("utf-8")
    if len(encoded) <= max_bytes:
        return value
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


def validate_attribute_value(value: Any) -> AttributeValue:
    """Validate a user attribute value, returning the value to store."""
    if isinstance(value, bool | int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidAttributeError(
                "attribute value must be a finite number", context={"value": repr(value)}
            )
        return value
    if isinstance(value, str):
        return truncate_utf8(value, MAX_VALUE_BYTES)
    raise InvalidAttributeError(
        "attribute value must be str, int, float or bool",
        context={"type": type(value).__name__},
    )


@dataclass
class AgentAttributes:
    """Request and response metadata recorded by the agent."""

    request_method: str = ""
    request_accept_header: str = ""
    request_content_type: str = ""
    request_content_length: int = 0
    request_headers_host: str = ""
    request_headers_user_agent: str = ""
    request_headers_referer: str = ""
    response_headers_content_type: str = ""
    response_headers_content_length: int = 0
    response_code: str = ""
    host_display_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Non-empty fields only."""
        return {k: v for k, v in asdict(self).items() if v not in ("", 0)}


class Attributes:
    """Attribute holder owned by a single transaction."""

    def __init__(self, settings: AttributeSettings | None = None):
        self._settings = settings or AttributeSettings()
        self.agent = AgentAttributes()
        self.user: dict[str, AttributeValue] = {}

    def add_user_attribute(self, key: str, value: Any) -> AgentError | None:
        """Validate and store a user attribute."""
        if not self._settings.enabled:
            return None

        if not isinstance(key, str) or not key:
            return InvalidAttributeError("attribute key must be a non-empty string")
        if len(key.encode("utf-8")) > MAX_KEY_BYTES:
            return InvalidAttributeError(
                f"attribute key exceeds {MAX_KEY_BYTES} bytes", context={"key": key[:32]}
            )

        try:
            checked = validate_attribute_value(value)
        except InvalidAttributeError as exc:
            exc.context["key"] = key
            return exc

        if key not in self.user and len(self.user) >= self._settings.max_user_attributes:
            return AttributeLimitError(context={"limit": self._settings.max_user_attributes})

        self.user[key] = checked
        return None

    def to_dict(self) -> dict[str, Any]:
        return {"agent": self.agent.to_dict(), "user": dict(self.user)}
