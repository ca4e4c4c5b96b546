import logging
from typing import Protocol, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.errors import StoreError
from app.models import Task, get_utc_now

logger = logging.getLogger(__name__)


class TaskStore(Protocol):
    """Durable task storage consumed by TaskService."""

    async def query_all(self) -> Sequence[Task]:
        """Return every task, newest first."""
        ...

    async def insert(self, title: str, description: str | None) -> Task:
        """Persist a new task and return it with id and timestamps assigned."""
        ...


class SQLTaskStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def query_all(self) -> Sequence[Task]:
        # id breaks ties between rows created in the same instant
        query = select(Task).order_by(Task.created_at.desc(), Task.id.asc())
        try:
            result = await self.session.exec(query)
            return result.all()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Task query failed: {e}")
            raise StoreError(str(e)) from e

    async def insert(self, title: str, description: str | None) -> Task:
        now = get_utc_now()
        task = Task(
            title=title,
            description=description,
            created_at=now,
            updated_at=now,
        )
        try:
            self.session.add(task)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Task insert failed: {e}")
            raise StoreError(str(e)) from e

        # The row is committed and its id assigned; a failed reload keeps the
        # in-memory values instead of reporting the write as failed
        try:
            await self.session.refresh(task)
        except SQLAlchemyError as e:
            logger.warning(f"Reloading task {task.id} after insert failed: {e}")
        logger.info(f"Created task {task.id}")
        return task
