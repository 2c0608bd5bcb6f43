"""
Weekly Aggregator: Monday to Sunday rollups of task time and credo practice.

Week window
-----------
The 7-day span starting on the most recent Monday at or before the
reference date, through the following Sunday, both inclusive. Plain UTC
calendar days; no timezone adjustment beyond midnight-anchored bounds.

Task summary  (tasks passed in = due OR created inside the window)
------------
  total_seconds  sum of effective seconds at `now`
  daily          7 rows, Monday first; a task lands on its due day if
                 that day is in the window, otherwise only in the total
  status_counts  total / todo / in_progress / paused / done
  top_tasks      3 highest effective seconds, ties by title ascending

Credo summary
-------------
  practiced_rate  distinct items with ≥1 done log / 11 × 100, half-up
  ranking         items with done logs, count desc then id asc
  missing         items with zero done logs, canonical order
  highlights      up to 3 non-empty notes, most recent day first

Pure functions over already-fetched rows; empty input → zeros, never raises.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Optional

from app.models.task import TaskStatus
from app.services.credo_catalog import CREDO_ITEMS, get_item, is_health_item
from app.services.time_accrual import as_utc, effective_seconds

TOP_TASK_LIMIT = 3
HIGHLIGHT_LIMIT = 3
NO_CREDO_LOGS_HIGHLIGHT = "No credo practice logged this week"


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WeekWindow:
    start: date   # Monday
    end: date     # Sunday

    @property
    def days(self) -> list[date]:
        return [self.start + timedelta(days=i) for i in range(7)]

    @property
    def start_at(self) -> datetime:
        """Inclusive lower bound as a UTC instant."""
        return datetime.combine(self.start, time.min, tzinfo=timezone.utc)

    @property
    def end_before(self) -> datetime:
        """Exclusive upper bound: Monday 00:00 UTC of the next week."""
        return self.start_at + timedelta(days=7)

    @property
    def label(self) -> str:
        return f"{self.start.isoformat()} to {self.end.isoformat()}"

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass
class DailyTime:
    date: str
    label: str
    seconds: int


@dataclass
class StatusCounts:
    total: int = 0
    todo: int = 0
    in_progress: int = 0
    paused: int = 0
    done: int = 0


@dataclass
class TopTask:
    title: str
    status: str
    seconds: int
    due_date: Optional[str]


@dataclass
class TaskSummary:
    total_seconds: int
    daily: list[DailyTime]
    status_counts: StatusCounts
    top_tasks: list[TopTask]


@dataclass
class CredoRank:
    id: str
    title: str
    count: int


@dataclass
class CredoMissing:
    id: str
    title: str


@dataclass
class CredoSummary:
    practiced_count: int = 0
    practiced_rate: int = 0
    ranking: list[CredoRank] = field(default_factory=list)
    missing: list[CredoMissing] = field(default_factory=list)
    highlights: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Window
# ---------------------------------------------------------------------------

def week_window(reference: date | datetime) -> WeekWindow:
    if isinstance(reference, datetime):
        reference = as_utc(reference).date()
    start = reference - timedelta(days=reference.weekday())
    return WeekWindow(start=start, end=start + timedelta(days=6))


def day_label(day: date) -> str:
    return f"{day.month:02d}/{day.day:02d}"


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

def _status_value(status: Any) -> str:
    return status.value if hasattr(status, "value") else str(status)


def summarize_tasks(tasks: Iterable[Any], window: WeekWindow, now: datetime) -> TaskSummary:
    per_day: Counter[date] = Counter()
    counts = StatusCounts()
    scored: list[tuple[int, Any]] = []
    total = 0

    for task in tasks:
        seconds = effective_seconds(task, now)
        total += seconds

        due_day = as_utc(task.due_at).date() if task.due_at else None
        if due_day is not None and window.contains(due_day):
            per_day[due_day] += seconds

        counts.total += 1
        status = _status_value(task.status)
        if status == TaskStatus.in_progress.value:
            counts.in_progress += 1
        elif status == TaskStatus.paused.value:
            counts.paused += 1
        elif status == TaskStatus.done.value:
            counts.done += 1
        else:
            counts.todo += 1

        scored.append((seconds, task))

    daily = [
        DailyTime(date=d.isoformat(), label=day_label(d), seconds=per_day.get(d, 0))
        for d in window.days
    ]

    scored.sort(key=lambda pair: (-pair[0], pair[1].title.casefold(), pair[1].title))
    top_tasks = [
        TopTask(
            title=task.title,
            status=_status_value(task.status),
            seconds=seconds,
            due_date=as_utc(task.due_at).date().isoformat() if task.due_at else None,
        )
        for seconds, task in scored[:TOP_TASK_LIMIT]
    ]

    return TaskSummary(
        total_seconds=total,
        daily=daily,
        status_counts=counts,
        top_tasks=top_tasks,
    )


# ---------------------------------------------------------------------------
# Credo
# ---------------------------------------------------------------------------

def _percent(part: int, whole: int) -> int:
    if whole == 0:
        return 0
    raw = Decimal(part) * Decimal(100) / Decimal(whole)
    return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def summarize_credo(logs: Iterable[Any]) -> CredoSummary:
    """`logs` need credo_id, day, done and note; any order."""
    # Stable sort keeps same-day logs in the order they were given.
    ordered = sorted(logs, key=lambda log: log.day, reverse=True)

    counts: Counter[str] = Counter()
    notes: list[str] = []
    for log in ordered:
        if get_item(log.credo_id) is None:
            continue
        if log.done:
            counts[log.credo_id] += 1
        note = (log.note or "").strip()
        if note:
            notes.append(note)

    ranking = sorted(
        (CredoRank(id=item.id, title=item.title, count=counts[item.id])
         for item in CREDO_ITEMS if counts[item.id] > 0),
        key=lambda r: (-r.count, r.id),
    )
    missing = [
        CredoMissing(id=item.id, title=item.title)
        for item in CREDO_ITEMS if counts[item.id] == 0
    ]

    return CredoSummary(
        practiced_count=sum(counts.values()),
        practiced_rate=_percent(len(ranking), len(CREDO_ITEMS)),
        ranking=ranking,
        missing=missing,
        highlights=notes[:HIGHLIGHT_LIMIT],
    )


def condition_highlights(summary: CredoSummary) -> list[str]:
    """Credo note highlights plus practiced health items, at most three."""
    practiced = {r.id for r in summary.ranking}
    health = [
        f"Health: {item.title}"
        for item in CREDO_ITEMS
        if is_health_item(item) and item.id in practiced
    ]
    highlights = (summary.highlights + health)[:HIGHLIGHT_LIMIT]
    return highlights or [NO_CREDO_LOGS_HIGHLIGHT]
