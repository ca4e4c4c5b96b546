"""Pytest fixtures for the Task Tracker API tests."""

import os
from datetime import datetime, timedelta, timezone

# Must be set before app.database builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CACHE_BACKEND", "memory")

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from app.cache.layer import CacheLayer, MemoryBackend, get_cache
from app.core.config import Settings
from app.core.errors import StoreError
from app.main import app
from app.models import Task
from app.routers.tasks import get_task_service
from app.services.task_service import TaskService

EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


class FakeClock:
    """Monotonic timer that only moves when told to."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTaskStore:
    """
    In-memory TaskStore.

    Every insert gets a creation time one second after the previous one so
    ordering is deterministic.
    """

    def __init__(self) -> None:
        self.tasks: list[Task] = []
        self.queries = 0
        self.fail_query = False
        self.fail_insert = False

    async def query_all(self) -> list[Task]:
        self.queries += 1
        if self.fail_query:
            raise StoreError("connection refused")
        by_id = sorted(self.tasks, key=lambda t: t.id)
        return sorted(by_id, key=lambda t: t.created_at, reverse=True)

    async def insert(self, title: str, description: str | None) -> Task:
        if self.fail_insert:
            raise StoreError("insert failed")
        now = EPOCH + timedelta(seconds=len(self.tasks))
        task = Task(
            id=len(self.tasks) + 1,
            title=title,
            description=description,
            completed=False,
            created_at=now,
            updated_at=now,
        )
        self.tasks.append(task)
        return task


class FakeRedis:
    """
    Minimal async Redis stand-in for RedisBackend.

    Operations named in ``failing`` raise a redis ConnectionError.
    """

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.expiry: dict[str, int | None] = {}
        self.failing: set[str] = set()
        self.closed = False

    def _check(self, op: str) -> None:
        if op in self.failing:
            raise RedisConnectionError(f"{op} failed")

    async def get(self, key):
        self._check("get")
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self._check("set")
        self.data[key] = value
        self.expiry[key] = ex

    async def delete(self, *keys):
        self._check("delete")
        return sum(1 for k in keys if self.data.pop(k, None) is not None)

    async def ping(self):
        self._check("ping")
        return True

    async def aclose(self):
        self.closed = True


@pytest.fixture
def settings() -> Settings:
    return Settings(cache_backend="memory", cache_namespace="", cache_fail_open=True)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(settings: Settings, clock: FakeClock) -> CacheLayer:
    return CacheLayer(settings, backend=MemoryBackend(timer=clock))


@pytest.fixture
def store() -> FakeTaskStore:
    return FakeTaskStore()


@pytest.fixture
def service(store: FakeTaskStore, cache: CacheLayer, settings: Settings) -> TaskService:
    return TaskService(store, cache, settings)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def client(service: TaskService, cache: CacheLayer):
    """Test client with the service wired to the in-memory fakes."""
    app.dependency_overrides[get_task_service] = lambda: service
    app.dependency_overrides[get_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()
