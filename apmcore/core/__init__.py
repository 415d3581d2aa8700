"""
Core Module

Contains fundamental types, exceptions and interfaces used across all other
modules in apmcore.

The interfaces module defines protocols for the external collaborators,
preventing circular dependencies.
"""

from apmcore.core.exceptions import (
    AgentError,
    AlreadyFinalizedError,
    AttributeLimitError,
    EmptyBufferError,
    InvalidAttributeError,
    LocallyDisabledError,
    MissingLinkingSourceError,
    NilInputError,
    OversizedPayloadError,
    RemotelyDisabledError,
)
from apmcore.core.interfaces import HarvestConsumer, ResponseSink
from apmcore.core.types import ApdexZone, AttributeValue, RequestInfo, TraceMetadata

__all__ = [
    # Types
    "ApdexZone",
    "AttributeValue",
    "RequestInfo",
    "TraceMetadata",
    # Exceptions
    "AgentError",
    "AlreadyFinalizedError",
    "AttributeLimitError",
    "EmptyBufferError",
    "InvalidAttributeError",
    "LocallyDisabledError",
    "MissingLinkingSourceError",
    "NilInputError",
    "OversizedPayloadError",
    "RemotelyDisabledError",
    # Interfaces/Protocols
    "HarvestConsumer",
    "ResponseSink",
]
