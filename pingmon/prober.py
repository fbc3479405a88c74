"""Periodic HTTP latency probing."""

import logging
import time

import requests
from PySide6.QtCore import QObject, QThreadPool, QTimer, Signal

from pingmon.config import DEFAULT_PROBE_URL
from pingmon.models import PingData
from pingmon.workers import ProbeWorker

logger = logging.getLogger(__name__)


def measure_response_time(url: str, timeout_s: float) -> float:
    """Time one GET request to url.

    Returns:
        Elapsed wall-clock time in milliseconds

    Raises:
        requests.HTTPError: If the status is anything but 200
        requests.RequestException: On transport failures and timeouts
    """
    start = time.perf_counter()
    response = requests.get(url, timeout=timeout_s)
    elapsed_ms = (time.perf_counter() - start) * 1000.0

    if response.status_code != 200:
        raise requests.HTTPError(f"{response.status_code} from {url}", response=response)
    return round(elapsed_ms, 2)


class LatencyProber(QObject):
    """Measures response time of one URL on a fixed interval.

    Each tick starts a ProbeWorker regardless of earlier probes or pending
    deliveries. A successful measurement becomes a PingData with the next
    ping id; a failed probe is logged and its tick is skipped without
    consuming an id.
    """

    # Signals
    ping_ready = Signal(object)  # PingData for a new measurement
    probe_failed = Signal(str)  # Error message of a skipped tick

    def __init__(
        self,
        url: str = DEFAULT_PROBE_URL,
        interval_ms: int = 1000,
        timeout_s: float = 10.0,
        probe=measure_response_time,
        max_workers: int = 16,
        parent=None,
    ):
        """Initialize latency prober.

        Args:
            url: Probe target
            interval_ms: Probing interval in milliseconds
            timeout_s: Socket idle timeout of each probe request
            probe: Callable (url, timeout_s) -> response time in ms
            max_workers: Thread pool size for overlapping probes
            parent: Qt parent object
        """
        super().__init__(parent)

        self.url = url
        self.interval_ms = interval_ms
        self.timeout_s = timeout_s
        self.probe = probe

        self._last_ping_id = 0

        self.thread_pool = QThreadPool(self)
        self.thread_pool.setMaxThreadCount(max_workers)

        self.timer = QTimer(self)
        self.timer.timeout.connect(self._on_tick)

        self.is_running = False

    @property
    def last_ping_id(self) -> int:
        return self._last_ping_id

    def start(self):
        if self.is_running:
            return

        self.is_running = True
        self.timer.start(self.interval_ms)
        logger.info("Probing started: url=%s, interval=%dms", self.url, self.interval_ms)

    def stop(self):
        if not self.is_running:
            return

        self.is_running = False
        self.timer.stop()
        logger.info("Probing stopped (last pingId=%d)", self._last_ping_id)

    def _on_tick(self):
        worker = ProbeWorker(self.probe, self.url, self.timeout_s)
        worker.signals.measured.connect(self._on_measured)
        worker.signals.error.connect(self._on_probe_error)
        self.thread_pool.start(worker)

    def _on_measured(self, response_time: float, date: int):
        if not self.is_running:
            return

        self._last_ping_id += 1
        ping = PingData(
            ping_id=self._last_ping_id,
            delivery_attempt=1,
            date=date,
            response_time=response_time,
        )
        logger.debug("Measured: pingId=%d, responseTime=%.2fms", ping.ping_id, response_time)
        self.ping_ready.emit(ping)

    def _on_probe_error(self, error_msg: str):
        logger.error("Probe of %s failed, tick skipped: %s", self.url, error_msg)
        self.probe_failed.emit(error_msg)
