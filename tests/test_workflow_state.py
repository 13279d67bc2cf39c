"""
Workflow timing rules on plain objects.
"""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from src.core.exceptions import BadRequestError
from src.modules.workflows.state import apply_status, ensure_not_cancelled, whole_minutes

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_step(**overrides):
    fields = {
        "status": "PENDING",
        "started_at": None,
        "completed_at": None,
        "wait_time_minutes": None,
        "duration_minutes": None,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


def make_task(**overrides):
    fields = {"status": "PENDING", "started_at": None, "completed_at": None, "actual_minutes": None}
    fields.update(overrides)
    return SimpleNamespace(**fields)


def test_whole_minutes_floors():
    assert whole_minutes(T0, T0 + timedelta(minutes=4, seconds=59)) == 4


def test_whole_minutes_accepts_naive_as_utc():
    assert whole_minutes(T0.replace(tzinfo=None), T0 + timedelta(minutes=10)) == 10


def test_start_stamps_once():
    step = make_step()
    apply_status(step, "IN_PROGRESS", T0)
    apply_status(step, "IN_PROGRESS", T0 + timedelta(hours=1))
    assert step.started_at == T0
    assert step.status == "IN_PROGRESS"


def test_step_wait_time_from_previous_completion():
    step = make_step()
    apply_status(step, "IN_PROGRESS", T0, previous_completed_at=T0 - timedelta(minutes=25, seconds=30))
    assert step.wait_time_minutes == 25


def test_complete_records_duration():
    step = make_step(status="IN_PROGRESS", started_at=T0)
    apply_status(step, "COMPLETED", T0 + timedelta(minutes=90))
    assert step.completed_at == T0 + timedelta(minutes=90)
    assert step.duration_minutes == 90


def test_complete_without_start_leaves_timestamps():
    step = make_step()
    apply_status(step, "COMPLETED", T0)
    assert step.status == "COMPLETED"
    assert step.completed_at is None
    assert step.duration_minutes is None


def test_task_actual_minutes_prefers_reported_value():
    task = make_task(status="IN_PROGRESS", started_at=T0)
    apply_status(task, "COMPLETED", T0 + timedelta(minutes=30), actual_minutes=12)
    assert task.actual_minutes == 12


def test_task_actual_minutes_defaults_to_elapsed():
    task = make_task(status="IN_PROGRESS", started_at=T0)
    apply_status(task, "COMPLETED", T0 + timedelta(minutes=30))
    assert task.actual_minutes == 30


def test_unknown_status_rejected():
    with pytest.raises(ValueError):
        apply_status(make_task(), "PAUSED", T0)


def test_cancelled_workflow_is_frozen():
    with pytest.raises(BadRequestError):
        ensure_not_cancelled(SimpleNamespace(status="CANCELLED"))
    ensure_not_cancelled(SimpleNamespace(status="IN_PROGRESS"))
