"""
Tasks router.

GET    /tasks
GET    /tasks/{task_id}
POST   /tasks
PATCH  /tasks/{task_id}
POST   /tasks/{task_id}/status
DELETE /tasks/{task_id}
"""
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.core.rate_limit import RateLimit
from app.db.base import get_db
from app.models.user import User
from app.schemas.task import (
    StatusChangeRequest,
    StatusChangeResponse,
    TaskCreateRequest,
    TaskListResponse,
    TaskResponse,
    TaskUpdateRequest,
)
from app.services import tasks as task_service

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


@router.get(
    "",
    response_model=TaskListResponse,
    summary="Task forest, optionally for one day",
)
def list_tasks(
    day: Optional[date] = Query(
        default=None,
        alias="date",
        description="ISO date (YYYY-MM-DD). Roots due that UTC day plus their subtasks.",
        examples=["2026-02-20"],
    ),
    user: User = Depends(RateLimit("tasks:get", 60)),
    db: Session = Depends(get_db),
):
    now = _now()
    forest = task_service.list_tasks(db, user.id, day)
    return TaskListResponse(tasks=[task_service.serialize_node(n, now) for n in forest])


@router.get(
    "/{task_id}",
    response_model=TaskResponse,
    summary="One task with its subtree",
    responses={404: {"description": "Task not found."}},
)
def get_task(
    task_id: int,
    user: User = Depends(RateLimit("tasks:get", 60)),
    db: Session = Depends(get_db),
):
    node = task_service.get_task_node(db, user.id, task_id)
    return TaskResponse(task=task_service.serialize_node(node, _now()))


@router.post(
    "",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a task, optionally with subtasks",
    responses={404: {"description": "Parent task not found."}},
)
def create_task(
    payload: TaskCreateRequest,
    user: User = Depends(RateLimit("tasks:post", 20)),
    db: Session = Depends(get_db),
):
    node = task_service.create_task(db, user.id, payload)
    return TaskResponse(task=task_service.serialize_node(node, _now()))


@router.patch(
    "/{task_id}",
    response_model=TaskResponse,
    summary="Edit, re-date or re-parent a task",
    responses={
        404: {"description": "Task or new parent not found."},
        409: {"description": "New parent is the task itself or one of its descendants."},
    },
)
def update_task(
    task_id: int,
    payload: TaskUpdateRequest,
    user: User = Depends(RateLimit("tasks:patch", 30)),
    db: Session = Depends(get_db),
):
    """
    Only fields present in the body change. `dueDate: null` clears the due
    timestamp. A `status` runs the same clock transition and parent cascade
    as `POST /tasks/{id}/status`.
    """
    now = _now()
    node = task_service.update_task(db, user.id, task_id, payload, now)
    return TaskResponse(task=task_service.serialize_node(node, now))


@router.post(
    "/{task_id}/status",
    response_model=StatusChangeResponse,
    summary="Change status (start, pause, complete) with parent cascade",
    responses={404: {"description": "Task not found."}},
)
def change_status(
    task_id: int,
    payload: StatusChangeRequest,
    user: User = Depends(RateLimit("tasks:status", 60)),
    db: Session = Depends(get_db),
):
    """
    Atomically:
    - moves the task's work clock (leaving in_progress folds the running
      segment into `totalWorkSeconds`)
    - recomputes the direct parent: all children done → done, otherwise a
      non-done change → in_progress

    `parent` is the parent after the cascade, or null for a root task.
    """
    now = _now()
    result = task_service.change_task_status(db, user.id, task_id, payload.status, now)
    return StatusChangeResponse(
        task=task_service.serialize_task(result.task, now),
        parent=task_service.serialize_task(result.parent, now) if result.parent else None,
    )


@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a task and its subtasks",
    responses={404: {"description": "Task not found."}},
)
def delete_task(
    task_id: int,
    user: User = Depends(RateLimit("tasks:delete", 30)),
    db: Session = Depends(get_db),
):
    task_service.delete_task(db, user.id, task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
