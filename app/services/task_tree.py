"""
Task Tree Builder: flat task rows → parent/child forest.

Rules
-----
- Same-parent siblings keep the relative order they had in the input.
- A task whose parent_id does not resolve to a task in the input is a root
  (orphans are tolerated, e.g. when a date filter left the parent out).
- A parent chain that cycles raises TaskCycleError. Tasks caught in a cycle
  can never be reached from a root, so after the walk any unvisited task
  means a cycle.

Pure: no DB access. Works on any object with `id` and `parent_id`.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from app.core.errors import TaskCycleError


@dataclass
class TaskNode:
    task: Any
    children: list["TaskNode"] = field(default_factory=list)


def build_task_tree(tasks: Iterable[Any]) -> list[TaskNode]:
    tasks = list(tasks)
    ids = {t.id for t in tasks}

    children_of: dict[int, list[Any]] = defaultdict(list)
    roots: list[Any] = []
    for t in tasks:
        if t.parent_id is not None and t.parent_id in ids:
            children_of[t.parent_id].append(t)
        else:
            roots.append(t)

    visited: set[int] = set()

    def _build(task: Any) -> TaskNode:
        if task.id in visited:
            raise TaskCycleError([task.id])
        visited.add(task.id)
        return TaskNode(task=task, children=[_build(c) for c in children_of.get(task.id, [])])

    forest = [_build(r) for r in roots]

    unreached = ids - visited
    if unreached:
        raise TaskCycleError(list(unreached))
    return forest


def flatten_tree(forest: Iterable[TaskNode]) -> list[Any]:
    """Pre-order walk: each task followed by its subtree."""
    out: list[Any] = []
    stack = list(reversed(list(forest)))
    while stack:
        node = stack.pop()
        out.append(node.task)
        stack.extend(reversed(node.children))
    return out


def would_create_cycle(
    task_id: int,
    new_parent_id: Optional[int],
    parent_of: Mapping[int, Optional[int]],
) -> bool:
    """
    True if giving `task_id` the parent `new_parent_id` would make the task
    its own ancestor. `parent_of` maps every known task id to its parent id.
    """
    seen: set[int] = set()
    current = new_parent_id
    while current is not None:
        if current == task_id or current in seen:
            return True
        seen.add(current)
        current = parent_of.get(current)
    return False
