"""
Workflows Module - API Router

- /workflow-types       types (admin creates)
- /workflow-templates   reusable step lists
- /workflows            instances, their steps, tasks and task logs
"""
import uuid

from fastapi import APIRouter, status

from src.modules.workflows.dependencies import WorkflowServiceDep
from src.modules.workflows.models import WorkflowStatus
from src.modules.workflows.schemas import (
    StepResponse,
    StepUpdate,
    TaskComplete,
    TaskCreate,
    TaskLogCreate,
    TaskLogResponse,
    TaskResponse,
    TaskUpdate,
    TemplateCreate,
    TemplateResponse,
    WorkflowCreate,
    WorkflowDetailResponse,
    WorkflowResponse,
    WorkflowTypeCreate,
    WorkflowTypeResponse,
    WorkflowUpdate,
)

router = APIRouter(tags=["Workflows"])


# ============== Types ==============

@router.post("/workflow-types", response_model=WorkflowTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_workflow_type(data: WorkflowTypeCreate, service: WorkflowServiceDep) -> WorkflowTypeResponse:
    workflow_type = await service.create_type(data)
    return WorkflowTypeResponse.model_validate(workflow_type)


@router.get("/workflow-types", response_model=list[WorkflowTypeResponse])
async def list_workflow_types(service: WorkflowServiceDep) -> list[WorkflowTypeResponse]:
    types = await service.list_types()
    return [WorkflowTypeResponse.model_validate(t) for t in types]


# ============== Templates ==============

@router.post("/workflow-templates", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_template(data: TemplateCreate, service: WorkflowServiceDep) -> TemplateResponse:
    return await service.create_template(data)


@router.get("/workflow-templates", response_model=list[TemplateResponse])
async def list_templates(
    service: WorkflowServiceDep,
    workflow_type_id: uuid.UUID | None = None,
) -> list[TemplateResponse]:
    return await service.list_templates(workflow_type_id)


@router.get("/workflow-templates/{template_id}", response_model=TemplateResponse)
async def get_template(template_id: uuid.UUID, service: WorkflowServiceDep) -> TemplateResponse:
    return await service.get_template(template_id)


# ============== Workflows ==============

@router.post("/workflows", response_model=WorkflowDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_workflow(data: WorkflowCreate, service: WorkflowServiceDep) -> WorkflowDetailResponse:
    """Create a workflow. Steps come from the body, else from the template."""
    return await service.create_workflow(data)


@router.get("/workflows", response_model=list[WorkflowResponse])
async def list_workflows(
    service: WorkflowServiceDep,
    status: WorkflowStatus | None = None,
    community_id: uuid.UUID | None = None,
    building_id: uuid.UUID | None = None,
) -> list[WorkflowResponse]:
    workflows = await service.list_workflows(status=status, community_id=community_id, building_id=building_id)
    return [WorkflowResponse.model_validate(w) for w in workflows]


@router.get("/workflows/{workflow_id}", response_model=WorkflowDetailResponse)
async def get_workflow(workflow_id: uuid.UUID, service: WorkflowServiceDep) -> WorkflowDetailResponse:
    return await service.get_workflow(workflow_id)


@router.patch("/workflows/{workflow_id}", response_model=WorkflowDetailResponse)
async def update_workflow(
    workflow_id: uuid.UUID,
    data: WorkflowUpdate,
    service: WorkflowServiceDep,
) -> WorkflowDetailResponse:
    return await service.update_workflow(workflow_id, data)


@router.delete("/workflows/{workflow_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_workflow(workflow_id: uuid.UUID, service: WorkflowServiceDep) -> None:
    """Cancel the workflow. It stays readable but rejects further changes."""
    await service.cancel_workflow(workflow_id)


# ============== Steps / Tasks ==============

@router.patch("/workflows/{workflow_id}/steps/{step_id}", response_model=StepResponse)
async def update_step(
    workflow_id: uuid.UUID,
    step_id: uuid.UUID,
    data: StepUpdate,
    service: WorkflowServiceDep,
) -> StepResponse:
    return await service.update_step(workflow_id, step_id, data)


@router.post(
    "/workflows/{workflow_id}/steps/{step_id}/tasks",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_task(
    workflow_id: uuid.UUID,
    step_id: uuid.UUID,
    data: TaskCreate,
    service: WorkflowServiceDep,
) -> TaskResponse:
    task = await service.create_task(workflow_id, step_id, data)
    return TaskResponse.model_validate(task)


@router.patch("/workflows/{workflow_id}/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    workflow_id: uuid.UUID,
    task_id: uuid.UUID,
    data: TaskUpdate,
    service: WorkflowServiceDep,
) -> TaskResponse:
    task = await service.update_task(workflow_id, task_id, data)
    return TaskResponse.model_validate(task)


@router.post("/workflows/{workflow_id}/tasks/{task_id}/complete", response_model=TaskResponse)
async def complete_task(
    workflow_id: uuid.UUID,
    task_id: uuid.UUID,
    data: TaskComplete,
    service: WorkflowServiceDep,
) -> TaskResponse:
    task = await service.complete_task(workflow_id, task_id, data)
    return TaskResponse.model_validate(task)


@router.get("/workflows/{workflow_id}/tasks/{task_id}/logs", response_model=list[TaskLogResponse])
async def list_task_logs(
    workflow_id: uuid.UUID,
    task_id: uuid.UUID,
    service: WorkflowServiceDep,
) -> list[TaskLogResponse]:
    logs = await service.list_task_logs(workflow_id, task_id)
    return [TaskLogResponse.model_validate(log) for log in logs]


@router.post(
    "/workflows/{workflow_id}/tasks/{task_id}/logs",
    response_model=TaskLogResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_task_log(
    workflow_id: uuid.UUID,
    task_id: uuid.UUID,
    data: TaskLogCreate,
    service: WorkflowServiceDep,
) -> TaskLogResponse:
    entry = await service.add_task_log(workflow_id, task_id, data)
    return TaskLogResponse.model_validate(entry)
