"""
Harvest Module

Aggregation targets for finalized transactions and log events.
"""

from apmcore.harvest.events import ErrorEvent, EventPool, TransactionEvent, new_priority
from apmcore.harvest.harvest import Harvest, HarvestError, HarvestErrors, TxnMetricsArgs
from apmcore.harvest.metrics import ApdexData, MetricData, MetricTable

__all__ = [
    "ApdexData",
    "ErrorEvent",
    "EventPool",
    "Harvest",
    "HarvestError",
    "HarvestErrors",
    "MetricData",
    "MetricTable",
    "TransactionEvent",
    "TxnMetricsArgs",
    "new_priority",
]
