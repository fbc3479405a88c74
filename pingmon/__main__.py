"""Entry point for the pingmon client."""

import logging
import os
import signal
import sys

from PySide6.QtCore import QCoreApplication, QTimer

from pingmon.config import ClientSettings
from pingmon.dispatcher import PingDispatcher, post_ping
from pingmon.logging_config import configure_logging
from pingmon.prober import LatencyProber, measure_response_time
from pingmon.retry import RetryScheduler
from pingmon.statistics import ClientStatistics

logger = logging.getLogger(__name__)


def build_client(settings: ClientSettings, probe=measure_response_time, sender=post_ping):
    """Wire the prober to the dispatcher and its retry scheduler.

    Every measurement the prober emits is handed to the dispatcher for its
    first delivery attempt.

    Args:
        settings: Client configuration
        probe: Callable (url, timeout_s) -> response time in ms
        sender: Callable (url, payload, timeout_s) posting one ping

    Returns:
        Tuple of (statistics, prober, dispatcher)
    """
    statistics = ClientStatistics()
    retry_scheduler = RetryScheduler(
        policy=settings.backoff,
        max_attempts=settings.max_attempts,
    )
    dispatcher = PingDispatcher(
        statistics,
        collector_url=settings.collector_url,
        timeout_s=settings.timeout_seconds,
        retry_scheduler=retry_scheduler,
        sender=sender,
    )
    prober = LatencyProber(
        url=settings.probe_url,
        interval_ms=settings.interval_ms,
        timeout_s=settings.timeout_seconds,
        probe=probe,
    )
    prober.ping_ready.connect(dispatcher.deliver)
    return statistics, prober, dispatcher


def main():
    """Probe latency and report each measurement until interrupted."""
    configure_logging()
    app = QCoreApplication(sys.argv)

    try:
        settings = ClientSettings.from_env()
    except ValueError as e:
        logger.error("Client configuration invalid: %s", e)
        sys.exit(2)

    statistics, prober, dispatcher = build_client(settings)

    signal.signal(signal.SIGINT, lambda *_: app.quit())

    # Python signal handlers only run when control returns to the interpreter
    wakeup = QTimer()
    wakeup.timeout.connect(lambda: None)
    wakeup.start(200)

    prober.start()
    exit_code = app.exec()

    prober.stop()
    logger.info(
        "Shutting down: %d deliveries in flight, %d retries pending, %d unclassified failures",
        dispatcher.in_flight,
        dispatcher.retry_scheduler.pending_count,
        statistics.errors_other,
    )
    dispatcher.shutdown()

    print("Client ping statistics:", statistics.as_dict(), flush=True)
    # In-flight requests are abandoned rather than drained
    os._exit(exit_code)


if __name__ == "__main__":
    main()
