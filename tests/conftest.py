import time
from typing import Any, Callable, Dict

import fakeredis
import pytest

from storefront_adapters import MemorySyncAdapter, SyncAdapter
from storefront_events import EventBus
from storefront_queue import ADAPTER_JOB_TYPES, JobType, QueueStore
from storefront_worker import JobProcessor

START_MS = 1_700_000_000_000


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FlakyAdapter(SyncAdapter):
    """Fails the first `failures` calls, then behaves like a MemorySyncAdapter."""

    def __init__(self, failures: int, name: str = "flaky"):
        self.failures = failures
        self.calls = 0
        self.inner = MemorySyncAdapter(name)

    def execute(self, payload: Any) -> None:
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError(f"downstream unavailable (call {self.calls})")
        self.inner.execute(payload)


def wait_for(predicate: Callable[[], bool], timeout: float = 3.0) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def store(redis_client) -> QueueStore:
    return QueueStore(redis_client)


@pytest.fixture
def bus(store) -> EventBus:
    return EventBus(store)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def adapters() -> Dict[JobType, SyncAdapter]:
    return {job_type: MemorySyncAdapter(job_type.value) for job_type in ADAPTER_JOB_TYPES}


@pytest.fixture
def processor(store, adapters, clock) -> JobProcessor:
    proc = JobProcessor(
        store,
        adapters,
        tick_interval=0.05,
        pop_timeout=0,
        clock=clock,
    )
    yield proc
    proc.stop(timeout=5)
