"""
Metric Table

Aggregates timeslice, count and apdex metrics between harvests.

Design decisions:
- Metrics keyed by (name, scope)
- Forced metrics always recorded; unforced ones dropped once the table is full
- Thread-safe updates
"""

import threading
from dataclasses import dataclass

from apmcore.core.types import ApdexZone

MAX_METRIC_TABLE_SIZE = 2000

FORCED = True
UNFORCED = False


@dataclass
class MetricData:
    """Timeslice data: count and duration statistics in seconds."""

    count: float = 0.0
    total: float = 0.0
    exclusive: float = 0.0
    min: float = 0.0
    max: float = 0.0
    sum_squares: float = 0.0

    def aggregate(self, other: "MetricData") -> None:
        if self.count == 0:
            self.min = other.min
            self.max = other.max
        else:
            self.min = min(self.min, other.min)
            self.max = max(self.max, other.max)
        self.count += other.count
        self.total += other.total
        self.exclusive += other.exclusive
        self.sum_squares += other.sum_squares


@dataclass
class ApdexData:
    """Apdex counters; the threshold is carried for export."""

    satisfying: int = 0
    tolerating: int = 0
    failing: int = 0
    threshold: float = 0.0

    def record(self, zone: ApdexZone, threshold: float) -> None:
        self.threshold = threshold
        if zone == ApdexZone.SATISFYING:
            self.satisfying += 1
        elif zone == ApdexZone.TOLERATING:
            self.tolerating += 1
        elif zone == ApdexZone.FAILING:
            self.failing += 1


MetricId = tuple[str, str]


class MetricTable:
    """
    Central metric store for one harvest cycle.
    """

    def __init__(self, max_table_size: int = MAX_METRIC_TABLE_SIZE):
        self._max_table_size = max_table_size
        self._metrics: dict[MetricId, MetricData | ApdexData] = {}
        self._forced: set[MetricId] = set()
        self._lock = threading.Lock()
        self.dropped = 0

    def _slot(self, key: MetricId, factory, forced: bool):
        existing = self._metrics.get(key)
        if existing is not None:
            return existing
        if not forced and len(self._metrics) >= self._max_table_size:
            self.dropped += 1
            return None
        created = factory()
        self._metrics[key] = created
        if forced:
            self._forced.add(key)
        return created

    def add_duration(
        self,
        name: str,
        scope: str,
        duration: float,
        exclusive: float,
        forced: bool,
    ) -> None:
        """Record one timed call."""
        data = MetricData(
            count=1,
            total=duration,
            exclusive=exclusive,
            min=duration,
            max=duration,
            sum_squares=duration * duration,
        )
        with self._lock:
            slot = self._slot((name, scope), MetricData, forced)
            if slot is not None:
                slot.aggregate(data)

    def add_count(self, name: str, count: float, forced: bool) -> None:
        with self._lock:
            slot = self._slot((name, ""), MetricData, forced)
            if slot is not None:
                slot.aggregate(MetricData(count=count))

    def add_single_count(self, name: str, forced: bool) -> None:
        self.add_count(name, 1, forced)

    def add_apdex(
        self,
        name: str,
        scope: str,
        threshold: float,
        zone: ApdexZone,
        forced: bool,
    ) -> None:
        with self._lock:
            slot = self._slot((name, scope), ApdexData, forced)
            if slot is not None:
                slot.record(zone, threshold)

    def get(self, name: str, scope: str = "") -> MetricData | ApdexData | None:
        with self._lock:
            return self._metrics.get((name, scope))

    def names(self) -> list[str]:
        with self._lock:
            return [name for name, _ in self._metrics]

    def __len__(self) -> int:
        with self._lock:
            return len(self._metrics)

    def collect(self) -> dict[MetricId, MetricData | ApdexData]:
        """Snapshot of every metric."""
        with self._lock:
            return dict(self._metrics)
