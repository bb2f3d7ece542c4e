"""Pytest configuration and fixtures."""

import os
import tempfile
import threading
import time

import pytest

# Keep log files and queue state of the test run out of the working tree
os.environ.setdefault("LOGS_DIR", tempfile.mkdtemp(prefix="relay-logs-"))
os.environ.setdefault("STATE_DIR", tempfile.mkdtemp(prefix="relay-state-"))

from telemetry_relay.errors import DeliveryError  # noqa: E402
from telemetry_relay.queue.models import EventRecord, QueueItem  # noqa: E402
from telemetry_relay.queue.offline_queue import OfflineQueue  # noqa: E402
from telemetry_relay.queue.store import DurableQueueStore  # noqa: E402


class FakeCollector:
    """Collector stand-in with scripted outcomes.

    `outcomes` is consumed one entry per delivery attempt (True = accepted);
    once exhausted every attempt gets `default`.
    """

    def __init__(self, outcomes=None, default=True):
        self.outcomes = list(outcomes or [])
        self.default = default
        self.attempts = []
        self.delivered = []
        self.url = "http://collector.test/api/postNewInfo"
        self._lock = threading.Lock()
        self._active = 0
        self.max_concurrent = 0

    def deliver(self, record):
        with self._lock:
            self._active += 1
            self.max_concurrent = max(self.max_concurrent, self._active)
            self.attempts.append(record)
        try:
            self._before_outcome(record)
            ok = self.outcomes.pop(0) if self.outcomes else self.default
            if not ok:
                raise DeliveryError("HTTP 503", status_code=503)
            self.delivered.append(record)
        finally:
            with self._lock:
                self._active -= 1

    def _before_outcome(self, record):
        pass

    def close(self):
        pass


class BlockingCollector(FakeCollector):
    """Holds every delivery until `release` is set."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.entered = threading.Event()
        self.release = threading.Event()

    def _before_outcome(self, record):
        self.entered.set()
        self.release.wait(timeout=5)


def make_record(code: str, millis: int = 1700000000000) -> EventRecord:
    return EventRecord(
        event_code=code,
        timestamp="2024-01-01T00:00:00+00:00",
        correlation_tag=f"{code}_{millis}",
    )


def make_item(code: str, item_id: str = None) -> QueueItem:
    item = QueueItem.create(make_record(code))
    if item_id:
        item.id = item_id
    return item


def wait_for(condition, timeout: float = 3.0) -> bool:
    """Poll `condition` until it is true or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return condition()


@pytest.fixture
def state_dir(tmp_path):
    path = tmp_path / "state"
    path.mkdir()
    return path


@pytest.fixture
def store(state_dir):
    return DurableQueueStore(state_dir=state_dir, key="@offline_reports")


@pytest.fixture
def queue(store):
    return OfflineQueue(store)


@pytest.fixture
def collector():
    return FakeCollector()
