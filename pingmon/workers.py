"""Worker classes for blocking HTTP calls run off the Qt main thread."""

import logging
import time

from PySide6.QtCore import QObject, QRunnable, Signal

logger = logging.getLogger(__name__)


class ProbeSignals(QObject):
    """Signals for returning probe results to the main thread."""

    measured = Signal(object, object)  # Emits (response_time_ms, date_ms)
    error = Signal(str)  # Emits error message


class ProbeWorker(QRunnable):
    """Worker that times one request to the probe target."""

    def __init__(self, probe, url: str, timeout_s: float):
        super().__init__()
        self.probe = probe
        self.url = url
        self.timeout_s = timeout_s
        self.signals = ProbeSignals()

    def run(self):
        try:
            response_time = self.probe(self.url, self.timeout_s)
            date = int(time.time() * 1000)
            self.signals.measured.emit(response_time, date)
        except Exception as e:
            logger.debug("Probe worker exception: url=%s, error=%s", self.url, e)
            self.signals.error.emit(str(e))


class DeliverySignals(QObject):
    """Signals for returning delivery outcomes to the main thread."""

    delivered = Signal(object, str)  # Emits (PingData, response body)
    failed = Signal(object, object)  # Emits (PingData, exception)


class DeliveryWorker(QRunnable):
    """Worker that POSTs one ping to the collector."""

    def __init__(self, sender, url: str, ping, timeout_s: float):
        super().__init__()
        self.sender = sender
        self.url = url
        self.ping = ping
        self.timeout_s = timeout_s
        self.signals = DeliverySignals()

    def run(self):
        """Execute the delivery in a background thread.

        Exceptions are handed back to the main thread unclassified; the
        dispatcher owns classification and retry.
        """
        try:
            body = self.sender(self.url, self.ping.to_payload(), self.timeout_s)
        except Exception as e:
            self.signals.failed.emit(self.ping, e)
        else:
            self.signals.delivered.emit(self.ping, body)
