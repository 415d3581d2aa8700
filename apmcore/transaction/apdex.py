"""
Apdex Classification

Satisfaction zone of a finished web transaction.

A recorded error always forces the failing zone; otherwise the duration is
banded against the threshold: satisfying up to T, tolerating up to 4T,
failing beyond.
"""

from apmcore.config.reply import ConnectReply
from apmcore.core.types import ApdexZone

TOLERATING_FACTOR = 4


def calculate_apdex_threshold(reply: ConnectReply, final_name: str) -> float:
    """Threshold in seconds; key transactions override the application default."""
    return reply.key_txn_apdex.get(final_name, reply.apdex_t)


def calculate_apdex_zone(threshold: float, duration: float) -> ApdexZone:
    if duration <= threshold:
        return ApdexZone.SATISFYING
    if duration <= TOLERATING_FACTOR * threshold:
        return ApdexZone.TOLERATING
    return ApdexZone.FAILING


def classify(
    *,
    is_web: bool,
    reply: ConnectReply,
    final_name: str,
    duration: float,
    errors_seen: int,
) -> tuple[ApdexZone, float]:
    """
    Compute the zone and threshold for a finished transaction.

    Non-web transactions get ApdexZone.NONE and a zero threshold.
    """
    if not is_web:
        return ApdexZone.NONE, 0.0

    threshold = calculate_apdex_threshold(reply, final_name)
    if errors_seen > 0:
        return ApdexZone.FAILING, threshold
    return calculate_apdex_zone(threshold, duration), threshold
