"""Delivery of pings to the collector with failure classification."""

import json
import logging
from enum import Enum

import requests
from PySide6.QtCore import QObject, QThreadPool, Signal

from pingmon.config import DEFAULT_COLLECTOR_URL
from pingmon.models import PingData
from pingmon.retry import RetryScheduler
from pingmon.statistics import ClientStatistics
from pingmon.workers import DeliveryWorker

logger = logging.getLogger(__name__)


class FailureKind(Enum):
    """Classification of a failed delivery attempt."""

    HTTP_500 = "http_500"
    TIMEOUT = "timeout"
    OTHER = "other"


def post_ping(url: str, payload: dict, timeout_s: float) -> str:
    """POST a ping payload as JSON and return the response body.

    ``timeout_s`` applies to every socket operation, so it bounds how long the
    connection may stay idle rather than the whole exchange.

    Raises:
        requests.HTTPError: If the status is anything but 200
        requests.RequestException: On transport failures and timeouts
    """
    response = requests.post(
        url,
        data=json.dumps(payload),
        headers={"Content-Type": "application/json"},
        timeout=timeout_s,
    )
    if response.status_code != 200:
        raise requests.HTTPError(
            f"{response.status_code}: {response.text}", response=response
        )
    return response.text


def classify_failure(exc: BaseException) -> FailureKind:
    """Classify a delivery exception (pure function).

    Examples:
        >>> classify_failure(requests.ReadTimeout("idle"))
        <FailureKind.TIMEOUT: 'timeout'>
        >>> classify_failure(requests.ConnectionError("refused"))
        <FailureKind.OTHER: 'other'>
    """
    if isinstance(exc, requests.Timeout):
        return FailureKind.TIMEOUT

    if isinstance(exc, requests.HTTPError):
        response = exc.response
        if response is not None and response.status_code == 500:
            return FailureKind.HTTP_500

    return FailureKind.OTHER


class PingDispatcher(QObject):
    """Sends pings to the collector and retries failed deliveries.

    Each attempt runs in a DeliveryWorker; results come back through queued
    signals, so statistics and retry state are only touched on the Qt main
    thread. Deliveries are never capped or throttled: the pool is sized for
    many concurrently hanging requests and queues anything beyond that.
    """

    # Signals
    delivered = Signal(object)  # PingData accepted by the collector
    failed = Signal(object, object)  # (PingData, FailureKind)

    def __init__(
        self,
        statistics: ClientStatistics,
        collector_url: str = DEFAULT_COLLECTOR_URL,
        timeout_s: float = 10.0,
        retry_scheduler: RetryScheduler | None = None,
        sender=post_ping,
        max_workers: int = 64,
        parent=None,
    ):
        """Initialize dispatcher.

        Args:
            statistics: Counters updated for every attempt
            collector_url: Full URL of the collector data endpoint
            timeout_s: Socket idle timeout per attempt
            retry_scheduler: Scheduler for failed attempts; a default one is created if None
            sender: Callable (url, payload, timeout_s) -> body performing the POST
            max_workers: Thread pool size for concurrent attempts
            parent: Qt parent object
        """
        super().__init__(parent)

        self.statistics = statistics
        self.collector_url = collector_url
        self.timeout_s = timeout_s
        self.sender = sender

        if retry_scheduler is None:
            retry_scheduler = RetryScheduler(parent=self)
        self.retry_scheduler = retry_scheduler
        self.retry_scheduler.retry_due.connect(self.deliver)

        self.thread_pool = QThreadPool(self)
        self.thread_pool.setMaxThreadCount(max_workers)

        self._in_flight = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def deliver(self, ping: PingData):
        """Start one delivery attempt for a ping."""
        logger.info("Sending ping: %s", json.dumps(ping.to_payload()))
        self.statistics.requests += 1
        self._in_flight += 1

        worker = DeliveryWorker(self.sender, self.collector_url, ping, self.timeout_s)
        worker.signals.delivered.connect(self._on_delivered)
        worker.signals.failed.connect(self._on_failed)
        self.thread_pool.start(worker)

    def shutdown(self):
        """Drop pending retries and queued attempts without waiting."""
        self.retry_scheduler.cancel_all()
        self.thread_pool.clear()

    def _on_delivered(self, ping: PingData, body: str):
        self._in_flight = max(0, self._in_flight - 1)
        self.statistics.success += 1
        logger.info("Response for pingId %s: %s", ping.ping_id, body)
        self.delivered.emit(ping)

    def _on_failed(self, ping: PingData, exc: BaseException):
        self._in_flight = max(0, self._in_flight - 1)
        kind = classify_failure(exc)

        if kind is FailureKind.HTTP_500:
            self.statistics.errors_500 += 1
        elif kind is FailureKind.TIMEOUT:
            self.statistics.errors_timeout += 1
        else:
            self.statistics.errors_other += 1

        logger.error("Error sending pingId %s: %s", ping.ping_id, exc)
        self.failed.emit(ping, kind)
        self.retry_scheduler.schedule(ping)
