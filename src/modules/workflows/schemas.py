"""
Workflows Module - Pydantic Schemas
"""
import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.modules.workflows.models import WorkflowPriority, WorkflowStatus


# ============== Types / Templates ==============

class WorkflowTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, examples=["Move-in"])
    description: str | None = None


class WorkflowTypeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: str | None = None
    created_at: datetime


class StepDefinition(BaseModel):
    """A step given inline on a template or a workflow."""
    name: str | None = Field(None, max_length=255)
    description: str | None = None
    working_group_id: uuid.UUID | None = None
    estimated_minutes: int | None = Field(None, ge=0)


class TemplateCreate(BaseModel):
    workflow_type_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    steps: list[StepDefinition] = []


class TemplateStepResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    step_order: int
    name: str
    description: str | None = None
    working_group_id: uuid.UUID | None = None
    estimated_minutes: int | None = None


class TemplateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    workflow_type_id: uuid.UUID
    name: str
    description: str | None = None
    created_at: datetime
    steps: list[TemplateStepResponse] = []


# ============== Workflows ==============

class WorkflowCreate(BaseModel):
    workflow_type_id: uuid.UUID
    template_id: uuid.UUID | None = None
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    priority: WorkflowPriority = WorkflowPriority.NORMAL
    community_id: uuid.UUID | None = None
    building_id: uuid.UUID | None = None
    household_id: uuid.UUID | None = None
    assigned_to: uuid.UUID | None = None
    due_date: datetime | None = None
    steps: list[StepDefinition] | None = None


class WorkflowUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    priority: WorkflowPriority | None = None
    status: WorkflowStatus | None = None
    assigned_to: uuid.UUID | None = None
    due_date: datetime | None = None


class StepUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    notes: str | None = None
    status: WorkflowStatus | None = None


class TaskCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    assigned_to: uuid.UUID | None = None
    estimated_minutes: int | None = Field(None, ge=0)


class TaskUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    assigned_to: uuid.UUID | None = None
    estimated_minutes: int | None = Field(None, ge=0)
    status: WorkflowStatus | None = None
    actual_minutes: int | None = Field(None, ge=0)
    work_done: str | None = None
    notes: str | None = None


class TaskComplete(BaseModel):
    actual_minutes: int | None = Field(None, ge=0)
    work_done: str | None = None
    notes: str | None = None


class TaskLogCreate(BaseModel):
    action: str = Field(..., min_length=1, max_length=50, examples=["PAUSE"])
    description: str | None = None
    duration_minutes: int | None = Field(None, ge=0)
    metadata: dict[str, Any] | None = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    workflow_id: uuid.UUID
    step_id: uuid.UUID
    name: str
    description: str | None = None
    assigned_to: uuid.UUID | None = None
    status: str
    estimated_minutes: int | None = None
    actual_minutes: int | None = None
    work_done: str | None = None
    notes: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None


class StepResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    workflow_id: uuid.UUID
    step_order: int
    name: str
    description: str | None = None
    working_group_id: uuid.UUID | None = None
    estimated_minutes: int | None = None
    status: str
    notes: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    wait_time_minutes: int | None = None
    duration_minutes: int | None = None
    tasks: list[TaskResponse] = []


class WorkflowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    workflow_type_id: uuid.UUID
    template_id: uuid.UUID | None = None
    name: str
    description: str | None = None
    priority: str
    status: str
    community_id: uuid.UUID | None = None
    building_id: uuid.UUID | None = None
    household_id: uuid.UUID | None = None
    created_by: uuid.UUID | None = None
    assigned_to: uuid.UUID | None = None
    due_date: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime


class WorkflowDetailResponse(WorkflowResponse):
    steps: list[StepResponse] = []


class TaskLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    task_id: uuid.UUID
    user_id: uuid.UUID | None = None
    action: str
    description: str | None = None
    duration_minutes: int | None = None
    metadata: dict[str, Any] | None = Field(None, validation_alias="log_metadata")
    timestamp: datetime
