"""
Status Cascade Rule: child status change → parent status.

  all children done              → parent done
  else, changed child not done   → parent in_progress
  else                           → parent untouched

Only fires as a side effect of one child's explicit status change and only
reaches the direct parent. The DB side (locking, clock folding, commit)
lives in app.services.tasks.change_task_status.
"""
from __future__ import annotations

from typing import Iterable, Optional

from app.models.task import TaskStatus


def cascade_parent_status(
    child_statuses: Iterable[TaskStatus | str],
    changed_status: TaskStatus | str,
) -> Optional[TaskStatus]:
    """
    `child_statuses` are all children of the parent *after* the change.
    Returns the status the parent must take, or None for no change.
    """
    statuses = [TaskStatus(s) for s in child_statuses]
    if not statuses:
        return None
    if all(s == TaskStatus.done for s in statuses):
        return TaskStatus.done
    if TaskStatus(changed_status) != TaskStatus.done:
        return TaskStatus.in_progress
    return None
