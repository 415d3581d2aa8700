"""
Transaction State

The guarded mutable record for one unit of work.

Design decisions:
- One private lock serializes every mutation; it is never exposed
- end() is the finalize barrier: exactly one caller finalizes and merges
- Failures are returned as values; after end() every mutator returns
  AlreadyFinalizedError and changes nothing
- Response writes are delegated before the lock is taken; the lock covers
  only the bookkeeping about the write, not the write itself
"""

import copy
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from http import HTTPStatus
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from apmcore.config.reply import ConnectReply
from apmcore.config.settings import AgentSettings, AttributeSettings
from apmcore.core.exceptions import (
    AgentError,
    AlreadyFinalizedError,
    LocallyDisabledError,
    NilInputError,
    RemotelyDisabledError,
)
from apmcore.core.interfaces import HarvestConsumer, ResponseSink
from apmcore.core.types import ApdexZone, RequestInfo, TraceMetadata
from apmcore.harvest.events import ErrorEvent, TransactionEvent, new_priority
from apmcore.harvest.harvest import Harvest, TxnMetricsArgs
from apmcore.observability.logging import get_logger
from apmcore.transaction import apdex
from apmcore.transaction.attributes import Attributes, safe_url
from apmcore.transaction.errors import (
    HIGH_SECURITY_ERROR_MSG,
    ErrorCollection,
    ErrorRecord,
    error_from_exception,
    error_from_panic,
    error_from_response_code,
)
from apmcore.transaction.naming import create_full_txn_name
from apmcore.transaction.queueing import queue_duration
from apmcore.transaction.response import (
    DiscardSink,
    header_value,
    parse_content_length,
    response_code_is_error,
    status_code_string,
)

if TYPE_CHECKING:
    from apmcore.runtime.application import Application

logger = get_logger("apmcore.transaction")


@dataclass
class TransactionInput:
    """Everything a transaction needs from its creator."""

    sink: ResponseSink | None = None
    request: RequestInfo | None = None
    settings: AgentSettings = field(default_factory=AgentSettings)
    reply: ConnectReply = field(default_factory=ConnectReply)
    consumer: HarvestConsumer | None = None
    attribute_settings: AttributeSettings | None = None
    application: "Application | None" = None


@dataclass(frozen=True)
class TransactionSnapshot:
    """Point-in-time copy of a transaction's recorded state."""

    name: str
    final_name: str
    is_web: bool
    ignore: bool
    finished: bool
    wrote_header: bool
    errors_seen: int
    errors: tuple[ErrorRecord, ...]
    attributes: dict[str, Any]
    queuing: float
    start: datetime
    stop: datetime | None
    duration: float
    zone: ApdexZone
    apdex_threshold: float


class Transaction:
    """
    One tracked unit of work, from request entry to finalize.

    Safe to share between threads. Usable as a context manager: an exception
    leaving the block is captured as a panic error, the transaction is
    finalized, and the exception continues unchanged.

    Usage:
        with app.start_transaction("checkout", request=info, sink=sink) as txn:
            txn.add_attribute("cart_size", 3)
            ...
    """

    def __init__(self, txn_input: TransactionInput, name: str):
        self._settings = txn_input.settings
        self._reply = txn_input.reply
        self._sink: ResponseSink = txn_input.sink or DiscardSink()
        self._request = txn_input.request
        self._consumer = txn_input.consumer
        self._application = txn_input.application

        self._lock = threading.Lock()

        # finished flips once in end(); after that nothing is recorded
        self._finished = False
        self._start = datetime.now(timezone.utc)
        self._start_monotonic = time.monotonic()
        self._name = name  # Work in progress name
        self._is_web = self._request is not None
        self._ignore = False
        self._errors = ErrorCollection()
        self._errors_seen = 0
        self._attrs = Attributes(txn_input.attribute_settings or self._settings.attributes)
        self._queuing = 0.0
        self._unrecovered: BaseException | None = None

        # Prevents capturing multiple response code errors
        self._wrote_header = False

        # Assigned at completion
        self._stop: datetime | None = None
        self._duration = 0.0
        self._final_name = ""
        self._zone = ApdexZone.NONE
        self._apdex_threshold = 0.0

        if self._settings.distributed_tracing.enabled:
            self._trace = TraceMetadata(trace_id=uuid4().hex, span_id=uuid4().hex[:16])
        else:
            self._trace = TraceMetadata()

        if self._request is not None:
            self._capture_request(self._request)

        self._attrs.agent.host_display_name = self._settings.host_display_name

    def _capture_request(self, request: RequestInfo) -> None:
        agent = self._attrs.agent
        agent.request_method = request.method
        agent.request_accept_header = request.header("Accept")
        agent.request_content_type = request.header("Content-Type")
        agent.request_headers_host = request.header("Host")
        agent.request_headers_user_agent = request.header("User-Agent")
        agent.request_headers_referer = safe_url(request.header("Referer"))
        agent.request_content_length = parse_content_length(request.header("Content-Length"))

        self._queuing = queue_duration(request, self._start.timestamp())

    # --- Enablement ---

    def _txn_events_enabled(self) -> bool:
        return self._settings.transaction_events.enabled and self._reply.collect_analytics_events

    def _error_events_enabled(self) -> bool:
        return self._settings.error_collector.capture_events and self._reply.collect_error_events

    # --- Public surface ---

    def set_name(self, name: str) -> AgentError | None:
        """Replace the working name."""
        with self._lock:
            if self._finished:
                return AlreadyFinalizedError()
            self._name = name
            return None

    def add_attribute(self, key: str, value: Any) -> AgentError | None:
        """Validate and store a user attribute."""
        with self._lock:
            if self._finished:
                return AlreadyFinalizedError()
            return self._attrs.add_user_attribute(key, value)

    def notice_error(self, exc: BaseException | None) -> AgentError | None:
        """Capture an error the application handled itself."""
        with self._lock:
            if self._finished:
                return AlreadyFinalizedError()
            if exc is None:
                return NilInputError("error must not be None")
            return self._notice_error_internal(error_from_exception(exc))

    def record_failure(self, exc: BaseException | None) -> AgentError | None:
        """
        Report a failure that is unwinding through the transaction's scope.

        end() records it as a panic error. The caller remains responsible for
        re-raising it after end() returns; the context manager does this.
        """
        with self._lock:
            if self._finished:
                return AlreadyFinalizedError()
            if exc is None:
                return NilInputError("failure must not be None")
            self._unrecovered = exc
            return None

    def write(self, data: bytes) -> int:
        """
        Write body bytes through the wrapped sink.

        An implicit 200 status is recorded on the first write. After end() the
        bytes are still written but nothing is recorded.
        """
        written = self._sink.write(data)

        with self._lock:
            self._headers_just_written(HTTPStatus.OK)

        return written

    def write_header(self, code: int) -> AgentError | None:
        """Write the status through the wrapped sink and record it once."""
        self._sink.write_header(code)

        with self._lock:
            if self._finished:
                return AlreadyFinalizedError()
            self._headers_just_written(code)
            return None

    def end(self) -> AgentError | None:
        """
        Finalize the transaction.

        The first caller freezes the name, computes duration and apdex, and
        hands the transaction to the harvest consumer. Every later caller gets
        AlreadyFinalizedError and causes no further effect.
        """
        with self._lock:
            if self._finished:
                return AlreadyFinalizedError()

            self._finished = True

            if self._unrecovered is not None:
                self._notice_error_internal(error_from_panic(self._unrecovered))

            self._stop = datetime.now(timezone.utc)
            self._duration = time.monotonic() - self._start_monotonic

            self._freeze_name()
            self._zone, self._apdex_threshold = apdex.classify(
                is_web=self._is_web,
                reply=self._reply,
                final_name=self._final_name,
                duration=self._duration,
                errors_seen=self._errors_seen,
            )

        # finished is set, so every field is frozen; merge without the lock
        logger.debug(
            "transaction ended",
            name=self._final_name,
            duration_ms=self._duration * 1000.0,
        )

        if self._ignore:
            logger.debug("transaction ignored", name=self._name)
        elif self._consumer is not None:
            self._consumer.consume(self._reply.run_id, self)

        return None

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc is not None:
            self.record_failure(exc)
        self.end()
        return False

    # --- Internals (lock held) ---

    def _notice_error_internal(self, record: ErrorRecord) -> AgentError | None:
        # Error metrics count every failure, stored or not
        self._errors_seen += 1

        if not self._settings.error_collector.enabled:
            return LocallyDisabledError()

        if not self._reply.collect_errors:
            return RemotelyDisabledError()

        if self._settings.high_security:
            record.msg = HIGH_SECURITY_ERROR_MSG

        record.when = datetime.now(timezone.utc)

        self._errors.add(record)
        return None

    def _headers_just_written(self, code: int) -> None:
        if self._finished or self._wrote_header:
            return
        self._wrote_header = True

        headers = self._sink.headers
        agent = self._attrs.agent
        agent.response_headers_content_type = header_value(headers, "Content-Type")
        agent.response_headers_content_length = parse_content_length(
            header_value(headers, "Content-Length")
        )
        agent.response_code = status_code_string(code)

        if response_code_is_error(self._settings, code):
            self._notice_error_internal(error_from_response_code(code))

    def _freeze_name(self) -> None:
        if self._ignore or self._final_name:
            return

        self._final_name = create_full_txn_name(self._name, self._reply, self._is_web)
        if not self._final_name:
            self._ignore = True

    # --- Harvest ---

    def merge_into_harvest(self, harvest: Harvest) -> None:
        """Emit metrics, events and error traces for a finalized transaction."""
        harvest.create_txn_metrics(
            TxnMetricsArgs(
                name=self._final_name,
                is_web=self._is_web,
                duration=self._duration,
                zone=self._zone,
                apdex_threshold=self._apdex_threshold,
                errors_seen=self._errors_seen,
            )
        )

        if self._queuing > 0:
            harvest.add_queue_duration(self._queuing)

        if self._txn_events_enabled():
            harvest.txn_events.add(
                TransactionEvent(
                    name=self._final_name,
                    timestamp=self._start,
                    duration=self._duration,
                    queuing=self._queuing,
                    zone=self._zone,
                    attrs=self._attrs,
                    priority=new_priority(),
                )
            )

        request_uri = safe_url(self._request.url) if self._request is not None else ""
        harvest.error_traces.merge_txn_errors(
            self._errors, self._final_name, request_uri, self._attrs
        )

        if self._error_events_enabled():
            for record in self._errors:
                harvest.error_events.add(
                    ErrorEvent(
                        klass=record.klass,
                        msg=record.msg,
                        when=record.when or self._start,
                        txn_name=self._final_name,
                        duration=self._duration,
                        queuing=self._queuing,
                        attrs=self._attrs,
                        priority=new_priority(),
                    )
                )

    # --- Read accessors ---

    @property
    def application(self) -> "Application | None":
        return self._application

    def trace_metadata(self) -> TraceMetadata:
        return self._trace

    @property
    def name(self) -> str:
        with self._lock:
            return self._name

    @property
    def final_name(self) -> str:
        with self._lock:
            return self._final_name

    @property
    def is_web(self) -> bool:
        return self._is_web

    @property
    def finished(self) -> bool:
        with self._lock:
            return self._finished

    @property
    def ignored(self) -> bool:
        with self._lock:
            return self._ignore

    @property
    def errors_seen(self) -> int:
        with self._lock:
            return self._errors_seen

    @property
    def errors(self) -> tuple[ErrorRecord, ...]:
        with self._lock:
            return tuple(self._errors)

    @property
    def zone(self) -> ApdexZone:
        with self._lock:
            return self._zone

    @property
    def apdex_threshold(self) -> float:
        with self._lock:
            return self._apdex_threshold

    @property
    def duration(self) -> float:
        with self._lock:
            return self._duration

    @property
    def queuing(self) -> float:
        return self._queuing

    @property
    def attributes(self) -> dict[str, Any]:
        with self._lock:
            return self._attrs.to_dict()

    def snapshot(self) -> TransactionSnapshot:
        """Deep copy of everything the transaction has recorded."""
        with self._lock:
            return TransactionSnapshot(
                name=self._name,
                final_name=self._final_name,
                is_web=self._is_web,
                ignore=self._ignore,
                finished=self._finished,
                wrote_header=self._wrote_header,
                errors_seen=self._errors_seen,
                errors=tuple(copy.deepcopy(self._errors.records)),
                attributes=self._attrs.to_dict(),
                queuing=self._queuing,
                start=self._start,
                stop=self._stop,
                duration=self._duration,
                zone=self._zone,
                apdex_threshold=self._apdex_threshold,
            )
