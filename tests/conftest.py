"""
LogPulse AI - Shared Test Fixtures
"""

from datetime import datetime, timedelta, timezone

import pytest

from logpulse.core.backends import DiagnosisBackend
from logpulse.core.exceptions import ProviderError
from logpulse.core.history_store import InMemoryHistoryStore


class FakeClock:
    """Controllable clock for window arithmetic."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FailingBackend(DiagnosisBackend):
    """Backend whose every call fails, counting the attempts."""

    name = "failing"

    def __init__(self):
        self.calls = 0

    async def initialize(self) -> None:
        pass

    async def shutdown(self) -> None:
        pass

    def is_ready(self) -> bool:
        return True

    async def call(self, prompt: str) -> str:
        self.calls += 1
        raise ProviderError(self.name, "quota exhausted")


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc))


@pytest.fixture
def store():
    return InMemoryHistoryStore()


@pytest.fixture
def failing_backend():
    return FailingBackend()
