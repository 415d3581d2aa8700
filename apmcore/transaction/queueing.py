"""
Request Queue Time

Derives time spent queued upstream (load balancer, proxy) from the
X-Queue-Start / X-Request-Start headers.
"""

from apmcore.core.types import RequestInfo

QUEUE_HEADERS = ("X-Queue-Start", "X-Request-Start")

# 2000-01-01T00:00:00Z; anything earlier is taken to be in a smaller unit.
EARLIEST_ACCEPTABLE_SECONDS = 946684800.0

_UNIT_DIVISORS = (1e6, 1e3, 1.0)


def parse_queue_start(value: str) -> float | None:
    """Parse a header value into epoch seconds, or None if unusable."""
    value = value.strip()
    if value.startswith("t="):
        value = value[2:]
    try:
        raw = float(value)
    except ValueError:
        return None

    # Microseconds, then milliseconds, then seconds
    for divisor in _UNIT_DIVISORS:
        if raw > EARLIEST_ACCEPTABLE_SECONDS * divisor:
            return raw / divisor
    return None


def queue_duration(request: RequestInfo, start: float) -> float:
    """Seconds between the upstream queue start and transaction start, never negative."""
    for header in QUEUE_HEADERS:
        value = request.header(header)
        if not value:
            continue
        queue_start = parse_queue_start(value)
        if queue_start is None:
            continue
        return max(start - queue_start, 0.0)
    return 0.0
