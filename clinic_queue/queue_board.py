"""Active queue views: ordering and wait times."""

from datetime import datetime

from clinic_queue.state_machine import Priority, Stage

PRIORITY_RANK = {
    Priority.EMERGENCY: 0,
    Priority.URGENT: 1,
    Priority.NORMAL: 2,
}


def sort_queue(visits: list) -> list:
    """Drop completed visits and order the rest by priority, then queue number."""
    active = [v for v in visits if v.stage != Stage.COMPLETED]
    return sorted(active, key=lambda v: (PRIORITY_RANK[v.priority], v.queue_number))


def wait_minutes(visit, now: datetime | None = None) -> int:
    """Whole minutes the visit has spent in its current stage."""
    now = now or datetime.now()
    started = datetime.fromisoformat(visit.stage_start_time)
    return max(0, int((now - started).total_seconds() // 60))
