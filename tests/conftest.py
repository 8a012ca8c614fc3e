"""Shared fixtures for Turnos Core tests."""

from datetime import datetime, timedelta, timezone

import pytest

from turnos_core.repository import InMemoryRepository


class FakeClock:
    """Deterministic clock that advances one second per call."""

    def __init__(self, start: datetime = datetime(2025, 9, 1, 8, 0, tzinfo=timezone.utc)) -> None:
        self.current = start

    def __call__(self) -> datetime:
        now = self.current
        self.current = self.current + timedelta(seconds=1)
        return now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repo(clock: FakeClock) -> InMemoryRepository:
    return InMemoryRepository(clock=clock)
