"""
Log Enrichment

Appends trace and entity linking metadata to a caller-owned log buffer.

The linking source is chosen once at the call site:

    enrich_log(buffer, FromApplication(app))
    enrich_log(buffer, FromTransaction(txn))

A transaction source also contributes its live trace and span ids.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from apmcore.core.exceptions import AgentError, EmptyBufferError, MissingLinkingSourceError

if TYPE_CHECKING:
    from apmcore.runtime.application import Application
    from apmcore.transaction.transaction import Transaction

LINKING_PREFIX = " NR-LINKING|"


@dataclass(frozen=True)
class FromApplication:
    application: "Application | None"


@dataclass(frozen=True)
class FromTransaction:
    transaction: "Transaction | None"


LogSource = FromApplication | FromTransaction


@dataclass
class LinkingMetadata:
    """Identifiers tying a log line to its trace and reporting entity."""

    trace_id: str = ""
    span_id: str = ""
    entity_guid: str = ""
    hostname: str = ""
    entity_name: str = ""

    def fields(self) -> list[str]:
        """Pipe-joined field order; empty when the entity is not fully known."""
        if not (self.entity_guid and self.hostname and self.entity_name):
            return []
        if self.trace_id and self.span_id:
            return [self.entity_guid, self.hostname, self.trace_id, self.span_id, self.entity_name]
        return [self.entity_guid, self.hostname, self.entity_name]

    def append_to(self, buffer: bytearray) -> None:
        fields = self.fields()
        if not fields:
            return
        buffer.extend(LINKING_PREFIX.encode("utf-8"))
        for value in fields:
            buffer.extend(value.encode("utf-8"))
            buffer.extend(b"|")


def enrich_log(buffer: bytearray | None, source: LogSource | None) -> AgentError | None:
    """
    Append linking metadata to `buffer` in place.

    Nothing is appended unless the connected application has logging enabled
    remotely and local decorating enabled.
    """
    if buffer is None:
        return EmptyBufferError()

    metadata = LinkingMetadata()

    if isinstance(source, FromApplication) and source.application is not None:
        app = source.application
    elif isinstance(source, FromTransaction) and source.transaction is not None:
        txn = source.transaction
        app = txn.application
        trace = txn.trace_metadata()
        metadata.trace_id = trace.trace_id
        metadata.span_id = trace.span_id
    else:
        return MissingLinkingSourceError()

    if app is None:
        return MissingLinkingSourceError()

    run = app.get_state()
    if run is None:
        return MissingLinkingSourceError()

    metadata.entity_guid = run.reply.entity_guid
    metadata.entity_name = run.settings.app_name
    metadata.hostname = run.settings.hostname

    if (
        run.reply.application_logging_enabled
        and run.settings.application_logging.enabled
        and run.settings.application_logging.local_decorating_enabled
    ):
        metadata.append_to(buffer)

    return None
