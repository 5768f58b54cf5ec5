"""Pytest unit test fixtures."""

from datetime import datetime, timedelta

import pytest

from assistant.engine.conversation import ConversationEngine
from assistant.memory.store import InMemoryActionStore


class FakeClock:
    """Manually advanced clock; starts on Wednesday 2025-01-01 09:00."""

    def __init__(self, start: datetime = datetime(2025, 1, 1, 9, 0)) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def action_store(clock):
    return InMemoryActionStore(staleness=timedelta(minutes=30), clock=clock)


@pytest.fixture()
def engine(action_store, clock):
    return ConversationEngine(action_store, clock=clock)
