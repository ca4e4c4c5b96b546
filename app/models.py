from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel
from sqlalchemy import DateTime, Index
from sqlmodel import Column, Field, SQLModel

TITLE_MAX_LENGTH = 255


def get_utc_now():
    """Helper function to get current UTC time with timezone"""
    return datetime.now(timezone.utc)


class TaskBase(SQLModel):
    """Base model with shared fields"""

    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str | None = Field(default=None)


class Task(TaskBase, table=True):
    """Database model"""

    __tablename__ = "tasks"
    __table_args__ = (Index("idx_tasks_completed", "completed"),)

    id: int | None = Field(default=None, primary_key=True)
    completed: bool = Field(default=False)
    created_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    # Refreshed by the ORM on UPDATE; the Postgres migration adds a trigger too
    updated_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False, onupdate=get_utc_now),
    )


# Matches the DESC index created by the initial migration
Index("idx_tasks_created_at", Task.created_at.desc())


class TaskCreate(SQLModel):
    """Schema for creating a task

    Title rules are enforced by TaskService so API and service callers
    get the same error.
    """

    title: str | None = None
    description: str | None = None


class TaskResponse(TaskBase):
    """Schema for task responses"""

    id: int
    completed: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class Source(str, Enum):
    """Where a task listing was served from."""

    CACHE = "cache"
    DATABASE = "database"


class TaskListing(BaseModel):
    source: Source
    data: list[TaskResponse]


class HealthResponse(BaseModel):
    status: str = "healthy"
    timestamp: datetime
    cache: str = "ok"


class ErrorResponse(BaseModel):
    error: str
