"""
Application Runtime

In-process handle for one monitored application: its connection state,
the harvest it aggregates into, and the factory for its transactions.

Design decisions:
- Connection state is an immutable (reply, settings) pair swapped on connect
- The application is the harvest consumer for its own transactions
- Data from a previous run is dropped rather than merged
- Creating an application applies its log_level to agent diagnostics
"""

import threading
from dataclasses import dataclass

from apmcore.config.reply import ConnectReply
from apmcore.config.settings import AgentSettings, get_settings
from apmcore.core.exceptions import AgentError
from apmcore.core.interfaces import ResponseSink
from apmcore.core.types import RequestInfo
from apmcore.harvest.harvest import Harvest
from apmcore.logs.events import LogData, LogEvent, build_log_event
from apmcore.observability.logging import configure_logging, get_logger
from apmcore.transaction.transaction import Transaction, TransactionInput

logger = get_logger("apmcore.runtime")


@dataclass(frozen=True)
class AppRun:
    """Connection state of a connected application."""

    reply: ConnectReply
    settings: AgentSettings


class Application:
    """
    A monitored application.

    Usage:
        app = Application(AgentSettings(app_name="checkout"))
        app.connect(reply)

        with app.start_transaction("/cart", request=info, sink=sink) as txn:
            ...

        harvest = app.take_harvest()
    """

    def __init__(self, settings: AgentSettings | None = None):
        self._settings = settings or get_settings()
        configure_logging(self._settings.log_level)
        self._lock = threading.Lock()
        self._run: AppRun | None = None
        self._harvest = Harvest(self._settings)

    @property
    def settings(self) -> AgentSettings:
        return self._settings

    @property
    def name(self) -> str:
        return self._settings.app_name

    def connect(self, reply: ConnectReply) -> None:
        """Install the collector's connect reply as the current run."""
        with self._lock:
            self._run = AppRun(reply=reply, settings=self._settings)

        logger.info(
            "application connected",
            run_id=reply.run_id,
            entity_guid=reply.entity_guid,
        )

    def get_state(self) -> AppRun | None:
        """Current run, or None before the first connect."""
        with self._lock:
            return self._run

    def start_transaction(
        self,
        name: str,
        *,
        request: RequestInfo | None = None,
        sink: ResponseSink | None = None,
    ) -> Transaction:
        """
        Begin a transaction.

        Transactions started before connecting carry a placeholder reply;
        they finalize normally but are dropped at consume time.
        """
        run = self.get_state()
        reply = run.reply if run is not None else ConnectReply()

        return Transaction(
            TransactionInput(
                sink=sink,
                request=request,
                settings=self._settings,
                reply=reply,
                consumer=self,
                application=self,
            ),
            name,
        )

    def consume(self, run_id: str, txn: Transaction) -> None:
        """Merge a finalized transaction into the current harvest."""
        with self._lock:
            if self._run is None or self._run.reply.run_id != run_id:
                stale = True
            else:
                stale = False
                txn.merge_into_harvest(self._harvest)

        if stale:
            logger.debug("dropping transaction from stale run", run_id=run_id)

    def record_log(
        self,
        data: LogData | None,
        transaction: Transaction | None = None,
    ) -> AgentError | None:
        """
        Build a log event and hand it to the harvest.

        When a transaction is given, the event carries its trace and span ids.
        """
        event, err = build_log_event(data)
        if err is not None:
            logger.debug("log event rejected", error=err.code)
            return err

        if transaction is not None:
            trace = transaction.trace_metadata()
            event = LogEvent(
                priority=event.priority,
                timestamp=event.timestamp,
                severity=event.severity,
                message=event.message,
                span_id=trace.span_id,
                trace_id=trace.trace_id,
            )

        logging_settings = self._settings.application_logging
        if not (logging_settings.enabled and logging_settings.forwarding_enabled):
            return None

        with self._lock:
            self._harvest.log_events.add(event)
        return None

    def take_harvest(self) -> Harvest:
        """Return the current harvest and start a fresh one."""
        with self._lock:
            harvest, self._harvest = self._harvest, Harvest(self._settings)
        return harvest
