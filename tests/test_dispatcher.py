"""Tests for PingDispatcher delivery, classification and retry."""

import threading

import pytest
import requests
from pingmon.dispatcher import FailureKind, PingDispatcher, classify_failure
from pingmon.models import PingData
from pingmon.retry import RetryScheduler
from pingmon.statistics import ClientStatistics


def http_error(status):
    response = requests.Response()
    response.status_code = status
    return requests.HTTPError(f"{status}: error", response=response)


def make_ping(ping_id=1):
    return PingData(ping_id=ping_id, delivery_attempt=1, date=1700000000000, response_time=42)


class ScriptedSender:
    """Sender that plays back a fixed list of outcomes, then succeeds."""

    def __init__(self, outcomes=()):
        self._outcomes = list(outcomes)
        self._lock = threading.Lock()
        self.calls = []

    def __call__(self, url, payload, timeout_s):
        with self._lock:
            self.calls.append((url, payload, timeout_s))
            outcome = self._outcomes.pop(0) if self._outcomes else "OK"
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def make_dispatcher(qapp):
    dispatchers = []

    def factory(sender, max_attempts=None):
        statistics = ClientStatistics()
        retry = RetryScheduler(base_delay_ms=1, max_attempts=max_attempts)
        dispatcher = PingDispatcher(
            statistics,
            collector_url="http://collector.test/data",
            timeout_s=0.5,
            retry_scheduler=retry,
            sender=sender,
        )
        dispatchers.append(dispatcher)
        return dispatcher, statistics

    yield factory

    for dispatcher in dispatchers:
        dispatcher.shutdown()
        dispatcher.thread_pool.waitForDone(1000)


class TestClassifyFailure:
    """Test failure classification (pure function)."""

    def test_http_500(self):
        """Test HTTP 500 is counted separately."""
        assert classify_failure(http_error(500)) is FailureKind.HTTP_500

    @pytest.mark.parametrize("status", [400, 404, 502, 503, 204])
    def test_other_statuses(self, status):
        """Test any other non-200 status takes the generic path."""
        assert classify_failure(http_error(status)) is FailureKind.OTHER

    @pytest.mark.parametrize("exc", [requests.ReadTimeout("idle"), requests.ConnectTimeout("connect")])
    def test_timeouts(self, exc):
        """Test idle and connect timeouts are timeouts."""
        assert classify_failure(exc) is FailureKind.TIMEOUT

    @pytest.mark.parametrize(
        "exc",
        [requests.ConnectionError("refused"), requests.HTTPError("no response"), OSError("boom")],
    )
    def test_unclassified(self, exc):
        """Test transport errors and unknown failures are unclassified."""
        assert classify_failure(exc) is FailureKind.OTHER


class TestPingDispatcher:
    """Test delivery attempts through the worker pool."""

    def test_success_counts_request_and_success(self, make_dispatcher, wait_until):
        """Test a 200 response is counted once and nothing is retried."""
        sender = ScriptedSender()
        dispatcher, statistics = make_dispatcher(sender)

        dispatcher.deliver(make_ping())

        assert statistics.requests == 1, "requests is counted before sending"
        assert wait_until(lambda: statistics.success == 1)
        assert statistics.failures == 0
        assert dispatcher.in_flight == 0
        assert dispatcher.retry_scheduler.pending_count == 0

    def test_sender_receives_payload_and_timeout(self, make_dispatcher, wait_until):
        """Test the ping is sent as its wire payload to the collector URL."""
        sender = ScriptedSender()
        dispatcher, statistics = make_dispatcher(sender)

        dispatcher.deliver(make_ping(ping_id=4))

        assert wait_until(lambda: statistics.success == 1)
        url, payload, timeout_s = sender.calls[0]
        assert url == "http://collector.test/data"
        assert payload == make_ping(ping_id=4).to_payload()
        assert timeout_s == 0.5

    def test_500_is_retried_with_next_attempt(self, make_dispatcher, wait_until):
        """Test a 500 is counted and the same ping is resent with attempt 2."""
        sender = ScriptedSender([http_error(500)])
        dispatcher, statistics = make_dispatcher(sender)

        dispatcher.deliver(make_ping(ping_id=7))

        assert wait_until(lambda: statistics.success == 1)
        assert statistics.errors_500 == 1
        assert statistics.requests == 2
        attempts = [payload["deliveryAttempt"] for _, payload, _ in sender.calls]
        assert attempts == [1, 2]

    def test_timeout_is_counted_and_retried(self, make_dispatcher, wait_until):
        """Test idle timeouts increment errorsTimeout and retry."""
        sender = ScriptedSender([requests.ReadTimeout("idle")])
        dispatcher, statistics = make_dispatcher(sender)

        dispatcher.deliver(make_ping())

        assert wait_until(lambda: statistics.success == 1)
        assert statistics.errors_timeout == 1
        assert statistics.errors_500 == 0

    def test_unclassified_failure_still_retried(self, make_dispatcher, wait_until):
        """Test connection errors and other statuses are retried too."""
        sender = ScriptedSender([requests.ConnectionError("refused"), http_error(404)])
        dispatcher, statistics = make_dispatcher(sender)

        dispatcher.deliver(make_ping())

        assert wait_until(lambda: statistics.success == 1)
        assert statistics.errors_other == 2
        assert statistics.errors_500 == 0
        assert statistics.errors_timeout == 0

    def test_retry_chain_keeps_measurement(self, make_dispatcher, wait_until):
        """Test every attempt of a chain carries the same measurement."""
        sender = ScriptedSender([http_error(500), requests.ReadTimeout("idle"), http_error(500)])
        dispatcher, statistics = make_dispatcher(sender)
        ping = make_ping(ping_id=11)

        dispatcher.deliver(ping)

        assert wait_until(lambda: statistics.success == 1)
        payloads = [payload for _, payload, _ in sender.calls]
        assert [p["deliveryAttempt"] for p in payloads] == [1, 2, 3, 4]
        for payload in payloads:
            assert (payload["pingId"], payload["date"], payload["responseTime"]) == (11, ping.date, 42)

    def test_statistics_consistency(self, make_dispatcher, wait_until):
        """Test requests equals successes plus every failure class once all attempts end."""
        sender = ScriptedSender(
            [
                http_error(500),
                requests.ReadTimeout("idle"),
                requests.ConnectionError("refused"),
                http_error(503),
            ]
        )
        dispatcher, statistics = make_dispatcher(sender)

        for ping_id in range(1, 4):
            dispatcher.deliver(make_ping(ping_id=ping_id))

        assert wait_until(lambda: statistics.success == 3)
        assert wait_until(lambda: dispatcher.in_flight == 0)
        assert statistics.requests == 7
        assert statistics.requests == (
            statistics.success
            + statistics.errors_500
            + statistics.errors_timeout
            + statistics.errors_other
        )

    def test_failed_signal_reports_kind(self, make_dispatcher, wait_until):
        """Test the failed signal carries the classification."""
        sender = ScriptedSender([http_error(500)])
        dispatcher, statistics = make_dispatcher(sender)
        kinds = []
        dispatcher.failed.connect(lambda ping, kind: kinds.append(kind))

        dispatcher.deliver(make_ping())

        assert wait_until(lambda: statistics.success == 1)
        assert kinds == [FailureKind.HTTP_500]

    def test_max_attempts_stops_chain(self, make_dispatcher, wait_until):
        """Test an optional cap ends a chain that never succeeds."""
        sender = ScriptedSender([http_error(500)] * 10)
        dispatcher, statistics = make_dispatcher(sender, max_attempts=3)
        abandoned = []
        dispatcher.retry_scheduler.abandoned.connect(lambda ping: abandoned.append(ping))

        dispatcher.deliver(make_ping())

        assert wait_until(lambda: abandoned)
        assert statistics.requests == 3
        assert statistics.errors_500 == 3
        assert statistics.success == 0

    def test_shutdown_cancels_pending_retries(self, make_dispatcher, qapp):
        """Test shutdown() drops scheduled retries."""
        dispatcher, _ = make_dispatcher(ScriptedSender())
        dispatcher.retry_scheduler.schedule(make_ping(ping_id=1))

        dispatcher.shutdown()

        assert dispatcher.retry_scheduler.pending_count == 0
