"""Shared pytest fixtures for pingmon tests."""

import time

import pytest
from PySide6.QtCore import QCoreApplication, QEventLoop


@pytest.fixture(scope="session")
def qapp():
    """Create QCoreApplication instance for tests driving Qt timers and signals."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


def process_until(predicate, timeout_ms: int = 2000) -> bool:
    """Pump the Qt event loop until predicate() holds or the timeout expires."""
    deadline = time.monotonic() + timeout_ms / 1000.0
    while not predicate():
        if time.monotonic() > deadline:
            return False
        QCoreApplication.processEvents(QEventLoop.ProcessEventsFlag.AllEvents, 10)
        time.sleep(0.005)
    return True


@pytest.fixture
def wait_until(qapp):
    """Return the event pumping helper bound to the test QCoreApplication."""
    return process_until
