"""Timer-based redelivery of failed pings."""

import logging
from functools import partial

from PySide6.QtCore import QObject, QTimer, Signal

from pingmon.backoff import BackoffPolicy, backoff_delay_ms
from pingmon.models import PingData

logger = logging.getLogger(__name__)


class RetryScheduler(QObject):
    """Schedules the next delivery attempt of failed pings.

    Key features:
    - One pending single-shot timer per ping id
    - Delay from the configured backoff policy, keyed on the failed attempt
    - Unbounded attempts unless max_attempts is given
    - cancel_all() drops every pending retry on shutdown

    Thread-safe: All state access on Qt main thread via signals/slots.
    """

    # Signals
    retry_due = Signal(object)  # PingData with the incremented attempt
    abandoned = Signal(object)  # PingData whose chain hit max_attempts

    def __init__(
        self,
        policy: BackoffPolicy = BackoffPolicy.EXPONENTIAL,
        base_delay_ms: int = 1000,
        max_attempts: int | None = None,
        parent=None,
    ):
        """Initialize retry scheduler.

        Args:
            policy: Backoff policy used to compute delays
            base_delay_ms: Delay unit passed to the backoff policy
            max_attempts: Give up after this many failed attempts; None retries forever
            parent: Qt parent object
        """
        super().__init__(parent)

        if max_attempts is not None and max_attempts < 1:
            raise ValueError("max_attempts must be positive")

        self.policy = policy
        self.base_delay_ms = base_delay_ms
        self.max_attempts = max_attempts

        self._pending = {}  # {ping_id: (QTimer, PingData)}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_pending(self, ping_id: int) -> bool:
        return ping_id in self._pending

    def delay_for(self, ping: PingData) -> int:
        return backoff_delay_ms(ping.delivery_attempt, self.policy, self.base_delay_ms)

    def schedule(self, ping: PingData) -> bool:
        """Schedule redelivery of a ping whose attempt just failed.

        Args:
            ping: The ping as sent in the failed attempt

        Returns:
            True if a retry was scheduled, False if the chain was abandoned
        """
        if self.max_attempts is not None and ping.delivery_attempt >= self.max_attempts:
            logger.warning(
                "Giving up on pingId=%s after %d attempts",
                ping.ping_id,
                ping.delivery_attempt,
            )
            self.abandoned.emit(ping)
            return False

        if ping.ping_id in self._pending:
            # Only one attempt per ping is ever in flight
            logger.warning("Retry already pending: pingId=%s", ping.ping_id)
            return False

        delay = self.delay_for(ping)
        timer = QTimer(self)
        timer.setSingleShot(True)
        timer.timeout.connect(partial(self._fire, ping.ping_id))
        self._pending[ping.ping_id] = (timer, ping)
        timer.start(delay)

        logger.debug(
            "Retry scheduled: pingId=%s, attempt=%d, delay=%dms (pending: %d)",
            ping.ping_id,
            ping.delivery_attempt + 1,
            delay,
            len(self._pending),
        )
        return True

    def cancel_all(self):
        """Stop every pending retry timer."""
        for timer, _ in self._pending.values():
            timer.stop()
            timer.deleteLater()
        if self._pending:
            logger.info("Cancelled %d pending retries", len(self._pending))
        self._pending.clear()

    def _fire(self, ping_id: int):
        entry = self._pending.pop(ping_id, None)
        if entry is None:
            return

        timer, ping = entry
        timer.deleteLater()
        self.retry_due.emit(ping.next_attempt())
