"""
Exception Hierarchy

Defines all failures reported by the apmcore public surface.

Design decisions:
- All failures inherit from AgentError for easy checking
- Failures are returned to the immediate caller as values, never raised
  across the instrumentation boundary
- Error codes enable programmatic handling
"""

from typing import Any


class AgentError(Exception):
    """
    Base class for all apmcore failures.

    Provides structured error information including:
    - Human-readable message
    - Machine-readable error code
    - Additional context for debugging
    """

    error_code: str = "AGENT_ERROR"
    default_message: str = "agent error"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        self.message = message or self.default_message
        super().__init__(self.message)
        self.code = code or self.error_code
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize the failure for diagnostics."""
        return {
            "error": self.code,
            "message": self.message,
            "context": self.context,
        }


# ============================================================
# Transaction Errors
# ============================================================

class AlreadyFinalizedError(AgentError):
    """The transaction has already ended."""

    error_code = "ALREADY_FINALIZED"
    default_message = "transaction has already ended"


class NilInputError(AgentError):
    """A required input was None."""

    error_code = "NIL_INPUT"
    default_message = "input must not be None"


class LocallyDisabledError(AgentError):
    """Error capture is disabled by local configuration."""

    error_code = "LOCALLY_DISABLED"
    default_message = "errors locally disabled"


class RemotelyDisabledError(AgentError):
    """Error capture is disabled by remote configuration."""

    error_code = "REMOTELY_DISABLED"
    default_message = "errors remotely disabled"


class InvalidAttributeError(AgentError):
    """A user attribute key or value was rejected."""

    error_code = "INVALID_ATTRIBUTE"
    default_message = "invalid attribute"


class AttributeLimitError(AgentError):
    """The transaction already holds the maximum number of user attributes."""

    error_code = "ATTRIBUTE_LIMIT"
    default_message = "user attribute limit exceeded"


# ============================================================
# Log Errors
# ============================================================

class OversizedPayloadError(AgentError):
    """A log message exceeded the maximum length."""

    error_code = "OVERSIZED_PAYLOAD"
    default_message = "log message too large"


LOG_DECORATION_ERROR_HEADER = "failed to decorate a log"


class MissingLinkingSourceError(AgentError):
    """Neither a connected application nor a transaction was supplied."""

    error_code = "MISSING_LINKING_SOURCE"
    default_message = (
        f"{LOG_DECORATION_ERROR_HEADER}: either a connected application or a "
        "transaction must be provided to enrich a log"
    )


class EmptyBufferError(AgentError):
    """The log buffer to enrich was None."""

    error_code = "EMPTY_BUFFER"
    default_message = f"{LOG_DECORATION_ERROR_HEADER}: the log buffer must not be None"
