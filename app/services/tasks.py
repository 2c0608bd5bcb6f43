"""
Tasks service: study task CRUD, re-dating and status changes.

Public API
----------
list_tasks(db, user_id, day)                       → list[TaskNode]
get_task_node(db, user_id, task_id)                → TaskNode
create_task(db, user_id, payload)                  → TaskNode
update_task(db, user_id, task_id, payload, now)    → TaskNode
change_task_status(db, user_id, task_id, status, now)
                                                   → StatusChangeResult
delete_task(db, user_id, task_id)                  → None

Rules
-----
- Every query is scoped to the owner; someone else's task is a 404.
- A status change is one transaction: the child row and its parent row
  are locked (SELECT ... FOR UPDATE), the child's clock transition and the
  parent cascade are flushed together and committed once. Any failure
  rolls back both.
- Re-parenting is rejected when the new parent is the task itself or one
  of its descendants.
- Deleting a task deletes its whole subtree.

Internal helpers flush only; the public functions commit.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import TaskCycleError, TaskNotFoundError
from app.models.note import Note
from app.models.task import StudyTask, TaskStatus
from app.schemas.task import TaskCreateRequest, TaskNodeResponse, TaskUpdateRequest
from app.services.status_cascade import cascade_parent_status
from app.services.task_tree import TaskNode, build_task_tree, would_create_cycle
from app.services.time_accrual import as_utc, effective_seconds, transition

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class StatusChangeResult:
    task: StudyTask
    parent: Optional[StudyTask] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def combine_due(due_date: Optional[date], due_time: Optional[time] = None) -> Optional[datetime]:
    """
    Date + optional time of day (default 00:00) as a UTC timestamp. A naive
    time is read as UTC; a time with an offset is converted, which can move
    the timestamp onto the neighbouring UTC day.
    """
    if due_date is None:
        return None
    tod = due_time or time(0, 0)
    if tod.tzinfo is None:
        return datetime.combine(due_date, tod, tzinfo=timezone.utc)
    return datetime.combine(due_date, tod).astimezone(timezone.utc)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time(0, 0), tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def _user_tasks(db: Session, user_id: int) -> list[StudyTask]:
    return (
        db.query(StudyTask)
        .filter(StudyTask.user_id == user_id)
        .order_by(StudyTask.created_at, StudyTask.id)
        .all()
    )


def _get_owned(db: Session, user_id: int, task_id: int, lock: bool = False) -> StudyTask:
    query = db.query(StudyTask).filter(StudyTask.id == task_id, StudyTask.user_id == user_id)
    if lock:
        query = query.with_for_update()
    task = query.one_or_none()
    if task is None:
        raise TaskNotFoundError(task_id)
    return task


def _with_descendants(tasks: list[StudyTask], root_ids: set[int]) -> list[StudyTask]:
    """`tasks` filtered to the given roots and everything below them, order kept."""
    children_of: dict[int, list[int]] = {}
    for t in tasks:
        if t.parent_id is not None:
            children_of.setdefault(t.parent_id, []).append(t.id)

    keep: set[int] = set()
    stack = list(root_ids)
    while stack:
        current = stack.pop()
        if current in keep:
            continue
        keep.add(current)
        stack.extend(children_of.get(current, []))
    return [t for t in tasks if t.id in keep]


def serialize_node(node: TaskNode, now: datetime) -> TaskNodeResponse:
    task = node.task
    return TaskNodeResponse(
        id=task.id,
        title=task.title,
        description=task.description,
        note=task.note,
        due_at=as_utc(task.due_at) if task.due_at else None,
        status=task.status,
        parent_id=task.parent_id,
        source=task.source,
        total_work_seconds=task.total_work_seconds or 0,
        last_started_at=as_utc(task.last_started_at) if task.last_started_at else None,
        effective_seconds=effective_seconds(task, now),
        created_at=task.created_at,
        children=[serialize_node(child, now) for child in node.children],
    )


def serialize_task(task: StudyTask, now: datetime) -> TaskNodeResponse:
    """A single row without its subtree."""
    return serialize_node(TaskNode(task=task), now)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def list_tasks(db: Session, user_id: int, day: Optional[date] = None) -> list[TaskNode]:
    """
    All of the user's tasks as a forest. With `day`, only tasks due on that
    UTC day plus their descendants; a due child whose parent is not due
    that day shows up as a root.
    """
    tasks = _user_tasks(db, user_id)
    if day is not None:
        start, end = day_bounds(day)
        due_ids = {
            t.id for t in tasks
            if t.due_at is not None and start <= as_utc(t.due_at) < end
        }
        tasks = _with_descendants(tasks, due_ids)
    return build_task_tree(tasks)


def get_task_node(db: Session, user_id: int, task_id: int) -> TaskNode:
    _get_owned(db, user_id, task_id)
    subtree = _with_descendants(_user_tasks(db, user_id), {task_id})
    for node in build_task_tree(subtree):
        if node.task.id == task_id:
            return node
    raise TaskNotFoundError(task_id)


# ---------------------------------------------------------------------------
# Status change (flush only)
# ---------------------------------------------------------------------------

def _apply_status_change(
    db: Session,
    task: StudyTask,
    new_status: TaskStatus,
    now: datetime,
) -> Optional[StudyTask]:
    """
    Transition `task` (already locked) and cascade onto its direct parent.
    Returns the parent row, or None for a root task.
    """
    transition(task, new_status, now)
    db.flush()

    if task.parent_id is None:
        return None

    parent = (
        db.query(StudyTask)
        .filter(StudyTask.id == task.parent_id)
        .with_for_update()
        .one_or_none()
    )
    if parent is None:
        return None

    sibling_statuses = [
        status for (status,) in
        db.query(StudyTask.status).filter(StudyTask.parent_id == parent.id).all()
    ]
    target = cascade_parent_status(sibling_statuses, task.status)
    if target is not None and transition(parent, target, now, start_clock=False):
        logger.info(
            "Cascade: task %s → %s moved parent %s to %s",
            task.id, task.status.value, parent.id, target.value,
        )
    db.flush()
    return parent


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def change_task_status(
    db: Session,
    user_id: int,
    task_id: int,
    new_status: TaskStatus,
    now: Optional[datetime] = None,
) -> StatusChangeResult:
    now = now or _now()
    try:
        task = _get_owned(db, user_id, task_id, lock=True)
        parent = _apply_status_change(db, task, TaskStatus(new_status), now)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(task)
    if parent is not None:
        db.refresh(parent)
    return StatusChangeResult(task=task, parent=parent)


def create_task(
    db: Session,
    user_id: int,
    payload: TaskCreateRequest,
) -> TaskNode:
    if payload.parent_id is not None:
        _get_owned(db, user_id, payload.parent_id)

    due_at = combine_due(payload.due_date, payload.due_time)
    task = StudyTask(
        user_id=user_id,
        parent_id=payload.parent_id,
        title=payload.title,
        description=payload.description,
        note=payload.note,
        due_at=due_at,
        source=payload.source,
        status=TaskStatus.todo,
        total_work_seconds=0,
    )
    db.add(task)
    db.flush()  # get task.id for the subtasks

    for sub in payload.subtasks:
        db.add(StudyTask(
            user_id=user_id,
            parent_id=task.id,
            title=sub.title,
            due_at=due_at,
            source=payload.source,
            status=TaskStatus.todo,
            total_work_seconds=0,
        ))

    db.commit()
    return get_task_node(db, user_id, task.id)


def update_task(
    db: Session,
    user_id: int,
    task_id: int,
    payload: TaskUpdateRequest,
    now: Optional[datetime] = None,
) -> TaskNode:
    """
    Apply only the fields present in the body. `dueDate: null` clears the
    due timestamp; `dueTime` alone moves the time of day on the current
    due date. A `status` goes through the same path as /status.
    """
    now = now or _now()
    fields = payload.model_fields_set

    try:
        task = _get_owned(db, user_id, task_id, lock="status" in fields)

        if "title" in fields and payload.title is not None:
            task.title = payload.title
        if "description" in fields:
            task.description = payload.description
        if "note" in fields:
            task.note = payload.note

        if "due_date" in fields:
            if payload.due_date is None:
                task.due_at = None
            else:
                due_time = payload.due_time
                if "due_time" not in fields and task.due_at is not None:
                    due_time = as_utc(task.due_at).time()
                task.due_at = combine_due(payload.due_date, due_time)
        elif "due_time" in fields and task.due_at is not None:
            task.due_at = combine_due(as_utc(task.due_at).date(), payload.due_time)

        if "parent_id" in fields and payload.parent_id != task.parent_id:
            if payload.parent_id is not None:
                _get_owned(db, user_id, payload.parent_id)
                parent_of = {t.id: t.parent_id for t in _user_tasks(db, user_id)}
                if would_create_cycle(task.id, payload.parent_id, parent_of):
                    raise TaskCycleError([task.id, payload.parent_id])
            task.parent_id = payload.parent_id

        if "status" in fields and payload.status is not None:
            _apply_status_change(db, task, payload.status, now)

        db.commit()
    except Exception:
        db.rollback()
        raise

    return get_task_node(db, user_id, task_id)


def delete_task(db: Session, user_id: int, task_id: int) -> None:
    _get_owned(db, user_id, task_id)
    doomed = [t.id for t in _with_descendants(_user_tasks(db, user_id), {task_id})]
    db.query(Note).filter(Note.related_task_id.in_(doomed)).update(
        {Note.related_task_id: None}, synchronize_session=False
    )
    db.query(StudyTask).filter(StudyTask.id.in_(doomed)).delete(synchronize_session=False)
    db.commit()
