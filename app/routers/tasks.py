from fastapi import APIRouter, Depends, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.cache.layer import CacheLayer, get_cache
from app.core.config import SettingsDep
from app.database import get_db
from app.models import ErrorResponse, TaskCreate, TaskListing, TaskResponse
from app.repositories.task_store import SQLTaskStore
from app.services.task_service import TaskService

router = APIRouter(prefix="/api", tags=["tasks"])


def get_task_service(
    settings: SettingsDep,
    db: AsyncSession = Depends(get_db),
    cache: CacheLayer = Depends(get_cache),
) -> TaskService:
    return TaskService(SQLTaskStore(db), cache, settings)


@router.get(
    "/tasks",
    response_model=TaskListing,
    responses={500: {"model": ErrorResponse}},
)
async def list_tasks(service: TaskService = Depends(get_task_service)):
    """List all tasks, newest first, with where they were served from"""
    source, data = await service.list()
    return {"source": source, "data": data}


@router.post(
    "/tasks",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def create_task(
    task_data: TaskCreate, service: TaskService = Depends(get_task_service)
):
    """Create a new task"""
    return await service.create(task_data.title, task_data.description)


@router.get("/cache/stats", tags=["cache"])
async def cache_stats(cache: CacheLayer = Depends(get_cache)):
    return cache.get_stats()
