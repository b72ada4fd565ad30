from __future__ import annotations

import fakeredis
import pytest

from ratelimit.memory_store import MemorySortedSetStore


class FakeClock:
    """Controllable time source counting in whole milliseconds."""

    def __init__(self, start_ms: int = 0) -> None:
        self.now_ms = start_ms

    def tick(self, ms: int) -> None:
        self.now_ms += ms

    def __call__(self) -> float:
        return self.now_ms / 1000


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def memory_store(clock: FakeClock) -> MemorySortedSetStore:
    return MemorySortedSetStore(clock=clock)


@pytest.fixture()
def redis_client() -> fakeredis.FakeStrictRedis:
    client = fakeredis.FakeStrictRedis()
    client.flushall()
    return client
