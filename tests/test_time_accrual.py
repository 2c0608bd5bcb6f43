"""
Unit tests for effective seconds and clock transitions.
"""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from app.models.task import TaskStatus
from app.services.time_accrual import (
    Done,
    Idle,
    Paused,
    Running,
    clock_state,
    effective_seconds,
    format_duration,
    transition,
)

NOW = datetime(2026, 3, 4, 10, 0, 0, tzinfo=timezone.utc)


def task(status=TaskStatus.todo, total=0, started=None):
    return SimpleNamespace(status=status, total_work_seconds=total, last_started_at=started)


class TestEffectiveSeconds:
    def test_running_task_adds_live_segment(self):
        running = task(TaskStatus.in_progress, 30, NOW - timedelta(seconds=90))
        assert effective_seconds(running, NOW) == 120

    def test_recomputed_on_every_read(self):
        running = task(TaskStatus.in_progress, 30, NOW - timedelta(seconds=90))
        assert effective_seconds(running, NOW + timedelta(seconds=10)) == 130

    def test_floors_fractional_seconds(self):
        running = task(TaskStatus.in_progress, 0, NOW - timedelta(seconds=59, milliseconds=999))
        assert effective_seconds(running, NOW) == 59

    def test_future_resume_is_clamped(self):
        skewed = task(TaskStatus.in_progress, 30, NOW + timedelta(seconds=5))
        assert effective_seconds(skewed, NOW) == 30

    def test_paused_task_ignores_stale_timestamp(self):
        paused = task(TaskStatus.paused, 45, NOW - timedelta(hours=1))
        assert effective_seconds(paused, NOW) == 45

    def test_running_without_timestamp(self):
        assert effective_seconds(task(TaskStatus.in_progress, 12, None), NOW) == 12

    def test_naive_timestamp_treated_as_utc(self):
        naive = (NOW - timedelta(seconds=10)).replace(tzinfo=None)
        assert effective_seconds(task(TaskStatus.in_progress, 0, naive), NOW) == 10

    def test_negative_counter_treated_as_zero(self):
        assert effective_seconds(task(TaskStatus.done, -5), NOW) == 0


class TestClockState:
    def test_states(self):
        assert clock_state(TaskStatus.todo, None) == Idle()
        assert clock_state(TaskStatus.paused, None) == Paused()
        assert clock_state(TaskStatus.done, None) == Done()
        assert clock_state("in_progress", NOW) == Running(since=NOW)
        assert clock_state(TaskStatus.in_progress, None) == Running(since=None)


class TestTransition:
    def test_start_sets_resume_timestamp(self):
        t = task()
        assert transition(t, TaskStatus.in_progress, NOW) is True
        assert t.status == TaskStatus.in_progress
        assert t.last_started_at == NOW

    def test_pause_folds_live_segment(self):
        t = task(TaskStatus.in_progress, 30, NOW - timedelta(seconds=90))
        transition(t, TaskStatus.paused, NOW)
        assert t.status == TaskStatus.paused
        assert t.total_work_seconds == 120
        assert t.last_started_at is None

    def test_resume_then_complete_accumulates(self):
        t = task(TaskStatus.paused, 120)
        transition(t, TaskStatus.in_progress, NOW)
        transition(t, TaskStatus.done, NOW + timedelta(seconds=60))
        assert t.total_work_seconds == 180
        assert t.status == TaskStatus.done

    def test_same_status_is_noop(self):
        t = task(TaskStatus.in_progress, 0, NOW - timedelta(seconds=30))
        assert transition(t, TaskStatus.in_progress, NOW) is False
        assert t.last_started_at == NOW - timedelta(seconds=30)

    def test_cascade_start_does_not_run_clock(self):
        t = task(TaskStatus.todo)
        transition(t, TaskStatus.in_progress, NOW, start_clock=False)
        assert t.status == TaskStatus.in_progress
        assert t.last_started_at is None
        assert effective_seconds(t, NOW + timedelta(hours=1)) == 0

    def test_explicit_start_after_cascade_starts_clock(self):
        t = task(TaskStatus.in_progress, 0, None)
        assert transition(t, TaskStatus.in_progress, NOW) is True
        assert t.last_started_at == NOW

    def test_fold_with_clock_skew_adds_nothing(self):
        t = task(TaskStatus.in_progress, 10, NOW + timedelta(seconds=30))
        transition(t, TaskStatus.done, NOW)
        assert t.total_work_seconds == 10


class TestFormatDuration:
    def test_minutes_only(self):
        assert format_duration(12 * 60 + 59) == "12m"

    def test_hours_and_padded_minutes(self):
        assert format_duration(3900) == "1h05m"

    def test_zero(self):
        assert format_duration(0) == "0m"
