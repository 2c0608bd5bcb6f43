"""
Unit tests for the parent status cascade rule.
"""
from app.models.task import TaskStatus
from app.services.status_cascade import cascade_parent_status

D = TaskStatus.done
P = TaskStatus.paused
I = TaskStatus.in_progress
T = TaskStatus.todo


class TestCascadeParentStatus:
    def test_last_child_done_completes_parent(self):
        assert cascade_parent_status([D, D], D) == D

    def test_child_paused_moves_parent_in_progress(self):
        assert cascade_parent_status([D, P], P) == I

    def test_child_reopened_moves_parent_in_progress(self):
        assert cascade_parent_status([T, D], T) == I

    def test_done_child_with_open_siblings_leaves_parent(self):
        assert cascade_parent_status([D, T], D) is None

    def test_no_children_never_transitions(self):
        assert cascade_parent_status([], D) is None

    def test_accepts_raw_strings(self):
        assert cascade_parent_status(["done", "done"], "done") == D
