"""Delivery counters and response time aggregation."""

import logging
from dataclasses import dataclass

from pingmon.models import PingData

logger = logging.getLogger(__name__)


@dataclass
class ClientStatistics:
    """Delivery counters of the ping client.

    Mutated only by PingDispatcher on the Qt main thread, so no locking is
    needed. ``errors_other`` counts failures that are neither HTTP 500 nor
    timeouts.
    """

    requests: int = 0
    success: int = 0
    errors_500: int = 0
    errors_timeout: int = 0
    errors_other: int = 0

    @property
    def failures(self) -> int:
        return self.errors_500 + self.errors_timeout + self.errors_other

    @property
    def completed(self) -> int:
        """Number of delivery attempts that reached a terminal outcome."""
        return self.success + self.failures

    def as_dict(self) -> dict:
        """Return the counters printed at shutdown.

        ``errors_other`` is left out so the printed line keeps its four keys.
        """
        return {
            "requests": self.requests,
            "success": self.success,
            "errors500": self.errors_500,
            "errorsTimeout": self.errors_timeout,
        }


def summarize_response_times(values) -> dict | None:
    """Compute count, average and median of response times.

    The median is the element at index ``len // 2`` of the sorted values, so
    even-length inputs report the upper middle element: [1, 2, 3, 4] -> 3.

    Args:
        values: Iterable of non-negative numbers

    Returns:
        Dict with length, average and median, or None if there are no values
    """
    ordered = sorted(values)
    if not ordered:
        return None

    return {
        "length": len(ordered),
        "average": sum(ordered) / len(ordered),
        "median": ordered[len(ordered) // 2],
    }


class CollectedStore:
    """Append-only record of pings accepted by the collector.

    Growth is unbounded and records are not deduplicated by ping id: a ping
    whose response was lost after it was stored shows up again when the
    client redelivers it.
    """

    def __init__(self):
        self._pings: list[PingData] = []

    def append(self, ping: PingData):
        self._pings.append(ping)
        logger.debug("Stored ping: pingId=%s (total: %d)", ping.ping_id, len(self._pings))

    def __len__(self):
        return len(self._pings)

    def __iter__(self):
        return iter(list(self._pings))

    def response_times(self) -> list[float]:
        return [ping.response_time for ping in self._pings]

    def summary(self) -> dict | None:
        """Aggregate statistics over collected response times."""
        return summarize_response_times(self.response_times())
