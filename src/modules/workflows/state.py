"""
Workflow state machine.

    PENDING -> IN_PROGRESS -> COMPLETED
    any     -> CANCELLED   (absorbing for a workflow)

Timing rules applied on entry to a status:

- IN_PROGRESS, first time only: stamp ``started_at``. A step also records
  ``wait_time_minutes``, the whole minutes since the previous step completed.
- COMPLETED, once started: stamp ``completed_at``. Steps record
  ``duration_minutes``; tasks record ``actual_minutes`` unless a value is
  supplied.

Works on any object exposing the timing attributes, so the ORM models and
plain test doubles go through the same code.
"""
from datetime import datetime
from typing import Any

from src.core.exceptions import BadRequestError
from src.core.models import as_utc
from src.modules.workflows.models import WorkflowStatus


def whole_minutes(start: datetime, end: datetime) -> int:
    """Floor of the elapsed minutes between two instants."""
    return int((as_utc(end) - as_utc(start)).total_seconds() // 60)


def ensure_not_cancelled(workflow: Any) -> None:
    if workflow.status == WorkflowStatus.CANCELLED.value:
        raise BadRequestError("Workflow is cancelled and can no longer be updated")


def start(target: Any, now: datetime, previous_completed_at: datetime | None = None) -> None:
    if target.started_at is not None:
        return
    target.started_at = now
    if previous_completed_at is not None and hasattr(target, "wait_time_minutes"):
        target.wait_time_minutes = whole_minutes(previous_completed_at, now)


def complete(target: Any, now: datetime, actual_minutes: int | None = None) -> None:
    if target.started_at is None:
        return
    target.completed_at = now
    elapsed = whole_minutes(target.started_at, now)
    if hasattr(target, "duration_minutes"):
        target.duration_minutes = elapsed
    if hasattr(target, "actual_minutes"):
        target.actual_minutes = actual_minutes if actual_minutes is not None else elapsed


def apply_status(
    target: Any,
    status: WorkflowStatus | str,
    now: datetime,
    previous_completed_at: datetime | None = None,
    actual_minutes: int | None = None,
) -> None:
    """Move a workflow, step or task to ``status`` and stamp its timing fields."""
    status = WorkflowStatus(status)
    target.status = status.value
    if status == WorkflowStatus.IN_PROGRESS:
        start(target, now, previous_completed_at)
    elif status == WorkflowStatus.COMPLETED:
        complete(target, now, actual_minutes)
