from __future__ import annotations

import pytest

from tests.weather_gateway.support.fakes import (
    FakeClock,
    FakeLogger,
    RecordingCacheStore,
)


@pytest.fixture
def fake_logger() -> FakeLogger:
    """Provide a fresh structured logger test double per test."""
    return FakeLogger()


@pytest.fixture
def fake_clock() -> FakeClock:
    """Provide a settable UTC clock starting at 2025-07-24 12:00."""
    return FakeClock()


@pytest.fixture
def recording_store() -> RecordingCacheStore:
    """Provide an in-memory cache store that records reads and writes."""
    return RecordingCacheStore()
