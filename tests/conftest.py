from datetime import datetime, timedelta, timezone

import pytest

from core.settings import QueueSettings
from services.connectivity import ConnectivityStatus, ManualConnectivity
from services.offline_queue_manager import OfflineQueueManager
from services.queue_store import QueueStore
from storage.db import MEMORY_URL


class RecordingExecutor:
    """Executor stub: records calls and fails a scripted number of times per key."""

    def __init__(self, failures=None, always_fail=()):
        # key -> remaining failures; the key is the payload "name" field
        self.failures = dict(failures or {})
        self.always_fail = set(always_fail)
        self.calls = []

    async def __call__(self, operation):
        name = operation.payload.get("name", operation.id)
        self.calls.append(name)
        if name in self.always_fail:
            raise RuntimeError(f"remote rejected {name}")
        if self.failures.get(name, 0) > 0:
            self.failures[name] -= 1
            raise RuntimeError(f"temporary failure for {name}")


class StepClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        value = self.now
        self.now = self.now + timedelta(seconds=1)
        return value


@pytest.fixture()
def store():
    queue_store = QueueStore(MEMORY_URL)
    queue_store.open()
    yield queue_store
    queue_store.close()


@pytest.fixture()
def offline():
    return ManualConnectivity(ConnectivityStatus.offline)


@pytest.fixture()
def executor_factory():
    return RecordingExecutor


@pytest.fixture()
def make_manager(store, offline):
    managers = []

    def factory(executor, *, connectivity=None, retry_limit=3, idle_reset_delay_sec=0.01, clock=None):
        manager = OfflineQueueManager(
            connectivity=connectivity or offline,
            executor=executor,
            store=store,
            settings=QueueSettings(retry_limit=retry_limit, idle_reset_delay_sec=idle_reset_delay_sec),
            clock=clock or StepClock(),
        )
        managers.append(manager)
        return manager

    yield factory
    for manager in managers:
        manager.dispose()
