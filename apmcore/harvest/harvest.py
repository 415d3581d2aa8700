"""
Harvest

Everything collected between two exports: metrics, events and error traces.
Finalized transactions merge into a harvest exactly once; the export cadence
and wire encoding live elsewhere.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from apmcore.config.settings import AgentSettings
from apmcore.core.types import ApdexZone
from apmcore.harvest.events import EventPool
from apmcore.harvest.metrics import FORCED, UNFORCED, MetricTable

if TYPE_CHECKING:
    from apmcore.transaction.attributes import Attributes
    from apmcore.transaction.errors import ErrorCollection, ErrorRecord

# Metric names
DISPATCHER_METRIC = "HttpDispatcher"
WEB_ROLLUP = "WebTransaction"
BACKGROUND_ROLLUP = "OtherTransaction/all"
APDEX_ROLLUP = "Apdex"
APDEX_PREFIX = "Apdex/"
ERRORS_ALL = "Errors/all"
ERRORS_WEB = "Errors/allWeb"
ERRORS_BACKGROUND = "Errors/allOther"
ERRORS_PREFIX = "Errors/"
QUEUE_METRIC = "WebFrontend/QueueTime"

MAX_HARVEST_ERRORS = 20
MAX_ERROR_EVENTS = 100


def remove_first_segment(name: str) -> str:
    """`WebTransaction/Python/foo` -> `Python/foo`."""
    _, sep, rest = name.partition("/")
    return rest if sep else name


@dataclass(frozen=True)
class TxnMetricsArgs:
    """Summary of a finished transaction for metric creation."""

    name: str
    is_web: bool
    duration: float
    zone: ApdexZone
    apdex_threshold: float
    errors_seen: int


@dataclass
class HarvestError:
    """An error trace: a stored error plus its transaction context."""

    error: "ErrorRecord"
    txn_name: str
    request_uri: str
    attrs: "Attributes"


@dataclass
class HarvestErrors:
    """Error traces capped per harvest; later ones are dropped."""

    capacity: int = MAX_HARVEST_ERRORS
    errors: list[HarvestError] = field(default_factory=list)

    def merge_txn_errors(
        self,
        errors: "ErrorCollection",
        txn_name: str,
        request_uri: str,
        attrs: "Attributes",
    ) -> None:
        for record in errors:
            if len(self.errors) >= self.capacity:
                return
            self.errors.append(HarvestError(record, txn_name, request_uri, attrs))

    def __len__(self) -> int:
        return len(self.errors)


class Harvest:
    """
    Aggregated data awaiting export.

    Not thread-safe on its own; the owning application serializes merges.
    """

    def __init__(self, settings: AgentSettings | None = None):
        settings = settings or AgentSettings()
        self.metrics = MetricTable()
        self.txn_events = EventPool(settings.transaction_events.max_samples_stored)
        self.error_events = EventPool(MAX_ERROR_EVENTS)
        self.log_events = EventPool(settings.application_logging.max_samples_stored)
        self.error_traces = HarvestErrors()

    def create_txn_metrics(self, args: TxnMetricsArgs) -> None:
        """Summary metrics for one finished transaction."""
        # Duration metrics
        if args.is_web:
            rollup = WEB_ROLLUP
            self.metrics.add_duration(DISPATCHER_METRIC, "", args.duration, 0.0, FORCED)
        else:
            rollup = BACKGROUND_ROLLUP
        self.metrics.add_duration(args.name, "", args.duration, 0.0, FORCED)
        self.metrics.add_duration(rollup, "", args.duration, 0.0, FORCED)

        # Apdex metrics
        if args.zone != ApdexZone.NONE:
            self.metrics.add_apdex(APDEX_ROLLUP, "", args.apdex_threshold, args.zone, FORCED)
            name = APDEX_PREFIX + remove_first_segment(args.name)
            self.metrics.add_apdex(name, "", args.apdex_threshold, args.zone, UNFORCED)

        # Error metrics
        if args.errors_seen > 0:
            self.metrics.add_single_count(ERRORS_ALL, FORCED)
            self.metrics.add_single_count(ERRORS_WEB if args.is_web else ERRORS_BACKGROUND, FORCED)
            self.metrics.add_single_count(ERRORS_PREFIX + args.name, FORCED)

    def add_queue_duration(self, queuing: float) -> None:
        self.metrics.add_duration(QUEUE_METRIC, "", queuing, queuing, FORCED)
