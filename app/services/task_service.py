from typing import Any

from app.cache.decorators import invalidates, read_through
from app.cache.layer import CacheLayer
from app.core.config import Settings
from app.core.errors import TaskValidationError
from app.models import TITLE_MAX_LENGTH, Task
from app.repositories.task_store import TaskStore


def validate_task_input(title: Any, description: Any):
    if title is None:
        raise TaskValidationError("title is required")
    if not isinstance(title, str):
        raise TaskValidationError("title must be a string")
    if not title.strip():
        raise TaskValidationError("title must not be empty")
    if len(title) > TITLE_MAX_LENGTH:
        raise TaskValidationError(f"title must be at most {TITLE_MAX_LENGTH} characters")
    if description is not None and not isinstance(description, str):
        raise TaskValidationError("description must be a string")


def _list_key(service: "TaskService", *_, **__) -> str:
    return service.settings.tasks_cache_key


def _list_ttl(service: "TaskService", *_, **__) -> int:
    return service.settings.tasks_cache_ttl_seconds


class TaskService:
    """
    Reads and writes tasks through the read-through cache.

    ``list`` serves the ``tasks:all`` snapshot when present and rebuilds it
    from the store otherwise. ``create`` deletes the snapshot after every
    successful insert, so no list older than the write survives it.
    A list miss racing a create can still repopulate a stale snapshot; it
    lives at most one TTL.
    """

    def __init__(self, store: TaskStore, cache: CacheLayer, settings: Settings):
        self.store = store
        self.cache = cache
        self.settings = settings

    @read_through(_list_key, ttl=_list_ttl)
    async def list(self):
        return await self.store.query_all()

    async def create(self, title: str, description: str | None = None) -> Task:
        validate_task_input(title, description)
        return await self._insert(title, description)

    @invalidates(_list_key)
    async def _insert(self, title: str, description: str | None) -> Task:
        return await self.store.insert(title, description)
