"""
Shared fixtures for the tracker test suite.

Logging goes to the console only while tests run so nothing is written to
./logs.
"""

import os
import sys
from datetime import datetime, timedelta, timezone

os.environ["DEKU_ENABLE_FILE_LOGGING"] = "false"
os.environ.setdefault("DEKU_LOG_LEVEL", "WARNING")

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from deku_tracker.core import EventBus, TaskStore


T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable clock; call it to read, advance() to move forward."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class SequentialIds:
    """Deterministic id factory: t1, t2, t3, ..."""

    def __init__(self, prefix: str = "t"):
        self.prefix = prefix
        self.counter = 0

    def __call__(self) -> str:
        self.counter += 1
        return f"{self.prefix}{self.counter}"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def store(clock, bus):
    return TaskStore(event_bus=bus, clock=clock, id_factory=SequentialIds())


@pytest.fixture
def db_file(tmp_path):
    return tmp_path / "tasks.json"
