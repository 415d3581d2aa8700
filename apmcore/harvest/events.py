"""
Harvest Events

Event shapes produced by finalized transactions and the bounded pools that
retain them between harvests.
"""

import heapq
import itertools
import random
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

from apmcore.core.types import ApdexZone

if TYPE_CHECKING:
    from apmcore.transaction.attributes import Attributes


def new_priority() -> float:
    """Random sampling priority in [0, 1), truncated to six decimal places."""
    return int(random.random() * 1_000_000) / 1_000_000


class PrioritizedEvent(Protocol):
    priority: float


@dataclass
class TransactionEvent:
    """Analytics event for one finished transaction."""

    name: str
    timestamp: datetime
    duration: float
    queuing: float
    zone: ApdexZone
    attrs: "Attributes"
    priority: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        event: dict[str, Any] = {
            "type": "Transaction",
            "name": self.name,
            "timestamp": int(self.timestamp.timestamp() * 1000),
            "duration": self.duration,
        }
        if self.queuing > 0:
            event["queueDuration"] = self.queuing
        if self.zone != ApdexZone.NONE:
            event["nr.apdexPerfZone"] = self.zone.value
        return {**event, **self.attrs.to_dict()}


@dataclass
class ErrorEvent:
    """Analytics event for one stored error."""

    klass: str
    msg: str
    when: datetime
    txn_name: str
    duration: float
    queuing: float
    attrs: "Attributes"
    priority: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        event: dict[str, Any] = {
            "type": "TransactionError",
            "error.class": self.klass,
            "error.message": self.msg,
            "timestamp": int(self.when.timestamp() * 1000),
            "transactionName": self.txn_name,
            "duration": self.duration,
        }
        if self.queuing > 0:
            event["queueDuration"] = self.queuing
        return {**event, **self.attrs.to_dict()}


class EventPool:
    """
    Bounded, priority-retaining event store.

    Once full, a new event displaces the lowest-priority event only when its
    own priority is higher. Every offered event counts as seen.
    """

    def __init__(self, capacity: int):
        self.capacity = capacity
        self.seen = 0
        self._heap: list[tuple[float, int, PrioritizedEvent]] = []
        self._sequence = itertools.count()

    def add(self, event: PrioritizedEvent) -> bool:
        self.seen += 1
        if self.capacity <= 0:
            return False
        item = (event.priority, next(self._sequence), event)
        if len(self._heap) < self.capacity:
            heapq.heappush(self._heap, item)
            return True
        if event.priority > self._heap[0][0]:
            heapq.heapreplace(self._heap, item)
            return True
        return False

    def events(self) -> list[Any]:
        """Stored events in insertion order."""
        return [event for _, _, event in sorted(self._heap, key=lambda item: item[1])]

    def __len__(self) -> int:
        return len(self._heap)
