"""
Task request / response schemas.

TaskNodeResponse is recursive: each node carries its direct children.
`dueDate` + optional `dueTime` are combined into a UTC `dueAt` timestamp.
A `dueTime` with a UTC offset (`18:30+09:00`) is converted to UTC.
"""
from __future__ import annotations

from datetime import date, datetime, time
from typing import Annotated, Optional

from pydantic import Field, field_validator

from app.models.task import TaskStatus
from app.schemas.common import ApiModel

SUBTASKS_MAX = 20

Title = Annotated[str, Field(min_length=1, max_length=256)]


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("must not be blank")
    return v


class SubtaskCreate(ApiModel):
    title: Title

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        return _strip_required(v)


class TaskCreateRequest(ApiModel):
    title: Title
    description: Optional[Annotated[str, Field(max_length=5_000)]] = None
    note: Optional[Annotated[str, Field(max_length=5_000)]] = None
    due_date: Optional[date] = None
    due_time: Optional[time] = None
    parent_id: Optional[int] = None
    source: Optional[Annotated[str, Field(max_length=32)]] = None
    subtasks: list[SubtaskCreate] = Field(default_factory=list, max_length=SUBTASKS_MAX)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        return _strip_required(v)


class TaskUpdateRequest(ApiModel):
    """
    Partial update. Only fields present in the body are applied; an
    explicit `dueDate: null` clears the due timestamp.
    """
    title: Optional[Title] = None
    description: Optional[Annotated[str, Field(max_length=5_000)]] = None
    note: Optional[Annotated[str, Field(max_length=5_000)]] = None
    due_date: Optional[date] = None
    due_time: Optional[time] = None
    parent_id: Optional[int] = None
    status: Optional[TaskStatus] = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _strip_required(v)


class StatusChangeRequest(ApiModel):
    status: TaskStatus


class TaskNodeResponse(ApiModel):
    id: int
    title: str
    description: Optional[str] = None
    note: Optional[str] = None
    due_at: Optional[datetime] = None
    status: TaskStatus
    parent_id: Optional[int] = None
    source: Optional[str] = None
    total_work_seconds: int
    last_started_at: Optional[datetime] = None
    effective_seconds: int
    created_at: Optional[datetime] = None
    children: list[TaskNodeResponse] = Field(default_factory=list)


class TaskListResponse(ApiModel):
    tasks: list[TaskNodeResponse]


class TaskResponse(ApiModel):
    task: TaskNodeResponse


class StatusChangeResponse(ApiModel):
    task: TaskNodeResponse
    parent: Optional[TaskNodeResponse] = None
