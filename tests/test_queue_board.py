"""Tests for queue ordering and wait times."""

from datetime import datetime

from clinic_queue.queue_board import sort_queue, wait_minutes
from clinic_queue.records import Visit
from clinic_queue.state_machine import Priority, Stage


def make_visit(visit_id, queue_number, priority=Priority.NORMAL, stage=Stage.VITALS):
    return Visit(
        id=visit_id,
        patient_id="p-test",
        patient_name="Test Patient",
        stage=stage,
        stage_start_time="2026-01-05T09:00:00",
        start_time="2026-01-05T09:00:00",
        queue_number=queue_number,
        priority=priority,
    )


class TestSortQueue:
    """Tests for sort_queue."""

    def test_priority_then_queue_number(self):
        visits = [
            make_visit("V-1", 1),
            make_visit("V-2", 2, Priority.URGENT),
            make_visit("V-3", 3, Priority.EMERGENCY),
            make_visit("V-4", 4, Priority.URGENT),
        ]
        assert [v.id for v in sort_queue(visits)] == ["V-3", "V-2", "V-4", "V-1"]

    def test_completed_excluded(self):
        visits = [make_visit("V-1", 1, stage=Stage.COMPLETED), make_visit("V-2", 2)]
        assert [v.id for v in sort_queue(visits)] == ["V-2"]


class TestWaitMinutes:
    """Tests for wait_minutes."""

    def test_minutes_since_stage_start(self):
        visit = make_visit("V-1", 1)
        assert wait_minutes(visit, now=datetime(2026, 1, 5, 9, 42, 30)) == 42

    def test_clock_skew_is_zero(self):
        visit = make_visit("V-1", 1)
        assert wait_minutes(visit, now=datetime(2026, 1, 5, 8, 0)) == 0
