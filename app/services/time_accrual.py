"""
Time Accrual Calculator: effective seconds worked on a task.

Definition
----------
effective_seconds(task, now) =
    task.total_work_seconds
  + floor(now - task.last_started_at)      only while status == in_progress
                                           and last_started_at is set

The live segment is derived on every read and never stored. A resume
timestamp in the future (clock skew) contributes zero.

Clock state
-----------
The (status, last_started_at) pair is read through a tagged clock state
so callers never branch on a nullable timestamp directly:

  Idle            status == todo
  Running(since)  status == in_progress; since is None when the task was
                  moved to in_progress by a child cascade, not started
  Paused          status == paused
  Done            status == done

`transition()` is the only place the persisted counter changes: leaving
in_progress folds the live segment in and clears last_started_at.

Pure functions: `now` is always an explicit argument.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol, Union

from app.models.task import TaskStatus


class ClockedTask(Protocol):
    status: TaskStatus
    total_work_seconds: int
    last_started_at: Optional[datetime]


# ---------------------------------------------------------------------------
# Clock states
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Running:
    since: Optional[datetime]


@dataclass(frozen=True)
class Paused:
    pass


@dataclass(frozen=True)
class Done:
    pass


ClockState = Union[Idle, Running, Paused, Done]


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; they are stored as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _status(value) -> TaskStatus:
    return value if isinstance(value, TaskStatus) else TaskStatus(value)


def clock_state(status, last_started_at: Optional[datetime]) -> ClockState:
    status = _status(status)
    if status == TaskStatus.in_progress:
        return Running(since=as_utc(last_started_at) if last_started_at else None)
    if status == TaskStatus.paused:
        return Paused()
    if status == TaskStatus.done:
        return Done()
    return Idle()


# ---------------------------------------------------------------------------
# Derived quantities
# ---------------------------------------------------------------------------

def live_segment_seconds(state: ClockState, now: datetime) -> int:
    """Whole seconds of the currently running segment, clamped at zero."""
    if not isinstance(state, Running) or state.since is None:
        return 0
    elapsed = (as_utc(now) - state.since).total_seconds()
    if not math.isfinite(elapsed) or elapsed <= 0:
        return 0
    return math.floor(elapsed)


def effective_seconds(task: ClockedTask, now: datetime) -> int:
    base = max(task.total_work_seconds or 0, 0)
    state = clock_state(task.status, task.last_started_at)
    return base + live_segment_seconds(state, now)


def format_duration(seconds: int) -> str:
    """1h05m for an hour or more, otherwise 12m."""
    minutes = max(int(seconds), 0) // 60
    hours, remaining = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h{remaining:02d}m"
    return f"{remaining}m"


# ---------------------------------------------------------------------------
# Mutation
# ---------------------------------------------------------------------------

def transition(
    task: ClockedTask,
    new_status,
    now: datetime,
    start_clock: bool = True,
) -> bool:
    """
    Move `task` to `new_status`, keeping the clock invariant.
    Returns True if anything changed.
    """
    new_status = _status(new_status)
    state = clock_state(task.status, task.last_started_at)

    if new_status == TaskStatus.in_progress:
        if isinstance(state, Running):
            if state.since is None and start_clock:
                task.last_started_at = as_utc(now)
                return True
            return False
        task.status = TaskStatus.in_progress
        task.last_started_at = as_utc(now) if start_clock else None
        return True

    if _status(task.status) == new_status:
        return False

    task.total_work_seconds = max(task.total_work_seconds or 0, 0) + live_segment_seconds(state, now)
    task.last_started_at = None
    task.status = new_status
    return True
