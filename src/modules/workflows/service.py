"""
Workflows Module - Business Logic Service

Access rules:
    view        admin, creator, assignee, community/building ADMIN/MANAGER/MEMBER,
                member of any step's working group
    edit        admin, creator, community/building ADMIN/MANAGER
    work a step edit rights, or membership of the step's working group
"""
import uuid
from typing import Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from src.core.logging import get_logger
from src.core.metrics import record_transition
from src.core.models import utc_now
from src.modules.auth.models import User
from src.modules.notifications.models import NotificationType
from src.modules.notifications.service import NotificationService
from src.modules.property.models import BuildingMember, CommunityMember, WorkingGroupMember
from src.modules.property.permissions import (
    MEMBER_ROLES,
    get_building_community_id,
    get_building_role,
    get_community_role,
    is_building_or_community_manager,
    is_working_group_member,
)
from src.modules.workflows import state
from src.modules.workflows.models import (
    Workflow,
    WorkflowStatus,
    WorkflowStep,
    WorkflowTask,
    WorkflowTaskLog,
    WorkflowTemplate,
    WorkflowTemplateStep,
    WorkflowType,
)
from src.modules.workflows.schemas import (
    StepDefinition,
    StepResponse,
    StepUpdate,
    TaskComplete,
    TaskCreate,
    TaskLogCreate,
    TaskResponse,
    TaskUpdate,
    TemplateCreate,
    TemplateResponse,
    TemplateStepResponse,
    WorkflowCreate,
    WorkflowDetailResponse,
    WorkflowTypeCreate,
    WorkflowUpdate,
)

logger = get_logger(__name__)


class WorkflowService:
    def __init__(self, db: AsyncSession, user: User):
        self.db = db
        self.user = user

    # ============== Access ==============

    async def _is_manager(self, workflow: Workflow) -> bool:
        if workflow.community_id is None and workflow.building_id is None:
            return self.user.is_admin
        return await is_building_or_community_manager(
            self.db, self.user, workflow.building_id, workflow.community_id
        )

    async def _can_edit(self, workflow: Workflow) -> bool:
        if self.user.is_admin or workflow.created_by == self.user.id:
            return True
        return await self._is_manager(workflow)

    async def _can_view(self, workflow: Workflow) -> bool:
        if self.user.is_admin or self.user.id in (workflow.created_by, workflow.assigned_to):
            return True
        if await get_community_role(self.db, self.user.id, workflow.community_id) in MEMBER_ROLES:
            return True
        if await get_building_role(self.db, self.user.id, workflow.building_id) in MEMBER_ROLES:
            return True
        has_task = await self.db.scalar(
            select(WorkflowTask.id)
            .where(WorkflowTask.workflow_id == workflow.id, WorkflowTask.assigned_to == self.user.id)
            .limit(1)
        )
        if has_task is not None:
            return True
        in_step_group = await self.db.scalar(
            select(WorkflowStep.id)
            .join(WorkingGroupMember, WorkingGroupMember.working_group_id == WorkflowStep.working_group_id)
            .where(WorkflowStep.workflow_id == workflow.id, WorkingGroupMember.user_id == self.user.id)
            .limit(1)
        )
        return in_step_group is not None

    async def _can_work_step(self, workflow: Workflow, step: WorkflowStep) -> bool:
        if await self._can_edit(workflow):
            return True
        return await is_working_group_member(self.db, self.user.id, step.working_group_id)

    async def _notify_assignee(self, user_id: uuid.UUID | None, workflow: Workflow, message: str) -> None:
        if user_id is None or user_id == self.user.id:
            return
        await NotificationService(self.db).send_notification(
            user_id=user_id,
            title="Workflow Update",
            message=message,
            type=NotificationType.WORKFLOW_UPDATE,
            data={"workflow_id": str(workflow.id)},
            source_type="workflow",
            source_id=workflow.id,
        )

    # ============== Types ==============

    async def create_type(self, data: WorkflowTypeCreate) -> WorkflowType:
        if not self.user.is_admin:
            raise ForbiddenError("Only administrators can create workflow types")
        workflow_type = WorkflowType(**data.model_dump())
        self.db.add(workflow_type)
        await self.db.commit()
        await self.db.refresh(workflow_type)
        return workflow_type

    async def list_types(self) -> Sequence[WorkflowType]:
        result = await self.db.execute(select(WorkflowType).order_by(WorkflowType.name))
        return result.scalars().all()

    async def _get_type(self, type_id: uuid.UUID) -> WorkflowType:
        workflow_type = await self.db.get(WorkflowType, type_id)
        if not workflow_type:
            raise NotFoundError("WorkflowType", type_id)
        return workflow_type

    # ============== Templates ==============

    async def _template_steps(self, template_id: uuid.UUID) -> Sequence[WorkflowTemplateStep]:
        result = await self.db.execute(
            select(WorkflowTemplateStep)
            .where(WorkflowTemplateStep.template_id == template_id)
            .order_by(WorkflowTemplateStep.step_order)
        )
        return result.scalars().all()

    async def _template_response(self, template: WorkflowTemplate) -> TemplateResponse:
        steps = await self._template_steps(template.id)
        response = TemplateResponse.model_validate(template)
        response.steps = [TemplateStepResponse.model_validate(s) for s in steps]
        return response

    async def create_template(self, data: TemplateCreate) -> TemplateResponse:
        await self._get_type(data.workflow_type_id)
        template = WorkflowTemplate(
            workflow_type_id=data.workflow_type_id,
            name=data.name,
            description=data.description,
            created_by=self.user.id,
        )
        self.db.add(template)
        await self.db.flush()
        for index, step in enumerate(data.steps):
            self.db.add(WorkflowTemplateStep(
                template_id=template.id,
                step_order=index + 1,
                name=step.name or f"Step {index + 1}",
                description=step.description,
                working_group_id=step.working_group_id,
                estimated_minutes=step.estimated_minutes,
            ))
        await self.db.commit()
        await self.db.refresh(template)
        return await self._template_response(template)

    async def list_templates(self, workflow_type_id: uuid.UUID | None = None) -> list[TemplateResponse]:
        stmt = select(WorkflowTemplate).order_by(WorkflowTemplate.name)
        if workflow_type_id:
            stmt = stmt.where(WorkflowTemplate.workflow_type_id == workflow_type_id)
        templates = (await self.db.execute(stmt)).scalars().all()
        return [await self._template_response(t) for t in templates]

    async def get_template(self, template_id: uuid.UUID) -> TemplateResponse:
        template = await self.db.get(WorkflowTemplate, template_id)
        if not template:
            raise NotFoundError("WorkflowTemplate", template_id)
        return await self._template_response(template)

    # ============== Workflows ==============

    async def create_workflow(self, data: WorkflowCreate) -> WorkflowDetailResponse:
        await self._get_type(data.workflow_type_id)

        community_id = data.community_id
        if data.building_id is not None and community_id is None:
            community_id = await get_building_community_id(self.db, data.building_id)
        if (data.community_id or data.building_id) and not await is_building_or_community_manager(
            self.db, self.user, data.building_id, community_id
        ):
            raise ForbiddenError("Only community or building managers can create workflows here")

        if data.steps:
            definitions = list(data.steps)
        elif data.template_id is not None:
            template = await self.db.get(WorkflowTemplate, data.template_id)
            if not template:
                raise NotFoundError("WorkflowTemplate", data.template_id)
            definitions = [
                StepDefinition(
                    name=s.name,
                    description=s.description,
                    working_group_id=s.working_group_id,
                    estimated_minutes=s.estimated_minutes,
                )
                for s in await self._template_steps(template.id)
            ]
        else:
            definitions = []

        workflow = Workflow(
            workflow_type_id=data.workflow_type_id,
            template_id=data.template_id,
            name=data.name,
            description=data.description,
            priority=data.priority.value,
            status=WorkflowStatus.PENDING.value,
            community_id=community_id,
            building_id=data.building_id,
            household_id=data.household_id,
            created_by=self.user.id,
            assigned_to=data.assigned_to,
            due_date=data.due_date,
        )
        self.db.add(workflow)
        await self.db.flush()

        for index, definition in enumerate(definitions):
            self.db.add(WorkflowStep(
                workflow_id=workflow.id,
                step_order=index + 1,
                name=definition.name or f"Step {index + 1}",
                description=definition.description,
                working_group_id=definition.working_group_id,
                estimated_minutes=definition.estimated_minutes,
                status=WorkflowStatus.PENDING.value,
            ))

        await self._notify_assignee(data.assigned_to, workflow, f'You were assigned to workflow "{workflow.name}"')
        await self.db.commit()
        logger.info("Workflow created", workflow_id=str(workflow.id), steps=len(definitions))
        return await self._detail(workflow)

    async def list_workflows(
        self,
        status: WorkflowStatus | None = None,
        community_id: uuid.UUID | None = None,
        building_id: uuid.UUID | None = None,
    ) -> Sequence[Workflow]:
        stmt = select(Workflow)
        if not self.user.is_admin:
            uid = self.user.id
            communities = select(CommunityMember.community_id).where(
                CommunityMember.user_id == uid, CommunityMember.role.in_(MEMBER_ROLES)
            )
            buildings = select(BuildingMember.building_id).where(
                BuildingMember.user_id == uid, BuildingMember.role.in_(MEMBER_ROLES)
            )
            via_groups = (
                select(WorkflowStep.workflow_id)
                .join(WorkingGroupMember, WorkingGroupMember.working_group_id == WorkflowStep.working_group_id)
                .where(WorkingGroupMember.user_id == uid)
            )
            via_tasks = select(WorkflowTask.workflow_id).where(WorkflowTask.assigned_to == uid)
            stmt = stmt.where(or_(
                Workflow.created_by == uid,
                Workflow.assigned_to == uid,
                Workflow.community_id.in_(communities),
                Workflow.building_id.in_(buildings),
                Workflow.id.in_(via_groups),
                Workflow.id.in_(via_tasks),
            ))
        if status:
            stmt = stmt.where(Workflow.status == status.value)
        if community_id:
            stmt = stmt.where(Workflow.community_id == community_id)
        if building_id:
            stmt = stmt.where(Workflow.building_id == building_id)

        result = await self.db.execute(stmt.order_by(Workflow.created_at.desc()))
        return result.scalars().all()

    async def _get_visible(self, workflow_id: uuid.UUID) -> Workflow:
        workflow = await self.db.get(Workflow, workflow_id)
        if not workflow:
            raise NotFoundError("Workflow", workflow_id)
        if not await self._can_view(workflow):
            raise ForbiddenError("You do not have access to this workflow")
        return workflow

    async def _detail(self, workflow: Workflow) -> WorkflowDetailResponse:
        steps = (await self.db.execute(
            select(WorkflowStep).where(WorkflowStep.workflow_id == workflow.id).order_by(WorkflowStep.step_order)
        )).scalars().all()
        tasks = (await self.db.execute(
            select(WorkflowTask).where(WorkflowTask.workflow_id == workflow.id).order_by(WorkflowTask.created_at)
        )).scalars().all()

        by_step: dict[uuid.UUID, list[TaskResponse]] = {}
        for task in tasks:
            by_step.setdefault(task.step_id, []).append(TaskResponse.model_validate(task))

        detail = WorkflowDetailResponse.model_validate(workflow)
        detail.steps = []
        for step in steps:
            step_response = StepResponse.model_validate(step)
            step_response.tasks = by_step.get(step.id, [])
            detail.steps.append(step_response)
        return detail

    async def get_workflow(self, workflow_id: uuid.UUID) -> WorkflowDetailResponse:
        return await self._detail(await self._get_visible(workflow_id))

    async def update_workflow(self, workflow_id: uuid.UUID, data: WorkflowUpdate) -> WorkflowDetailResponse:
        workflow = await self._get_visible(workflow_id)
        state.ensure_not_cancelled(workflow)
        if not await self._can_edit(workflow):
            raise ForbiddenError("Insufficient permissions")

        changes = data.model_dump(exclude_unset=True, exclude={"status"})
        old_assignee = workflow.assigned_to
        for field, value in changes.items():
            setattr(workflow, field, value.value if field == "priority" and value is not None else value)

        if data.status is not None:
            state.apply_status(workflow, data.status, utc_now())
            record_transition("workflow", workflow.status)

        if workflow.assigned_to != old_assignee:
            await self._notify_assignee(
                workflow.assigned_to, workflow, f'You were assigned to workflow "{workflow.name}"'
            )
        await self.db.commit()
        logger.info("Workflow updated", workflow_id=str(workflow.id), status=workflow.status)
        return await self._detail(workflow)

    async def cancel_workflow(self, workflow_id: uuid.UUID) -> None:
        workflow = await self._get_visible(workflow_id)
        if not await self._can_edit(workflow):
            raise ForbiddenError("Insufficient permissions")
        if workflow.status == WorkflowStatus.CANCELLED.value:
            return
        workflow.status = WorkflowStatus.CANCELLED.value
        record_transition("workflow", workflow.status)
        await self.db.commit()
        logger.info("Workflow cancelled", workflow_id=str(workflow.id))

    # ============== Steps ==============

    async def _get_step(self, workflow: Workflow, step_id: uuid.UUID) -> WorkflowStep:
        step = await self.db.get(WorkflowStep, step_id)
        if not step or step.workflow_id != workflow.id:
            raise NotFoundError("WorkflowStep", step_id)
        return step

    async def _previous_completed_at(self, step: WorkflowStep):
        previous = await self.db.scalar(
            select(WorkflowStep)
            .where(WorkflowStep.workflow_id == step.workflow_id, WorkflowStep.step_order < step.step_order)
            .order_by(WorkflowStep.step_order.desc())
            .limit(1)
        )
        return previous.completed_at if previous else None

    async def update_step(self, workflow_id: uuid.UUID, step_id: uuid.UUID, data: StepUpdate) -> StepResponse:
        workflow = await self._get_visible(workflow_id)
        state.ensure_not_cancelled(workflow)
        step = await self._get_step(workflow, step_id)
        if not await self._can_work_step(workflow, step):
            raise ForbiddenError("Insufficient permissions")

        for field, value in data.model_dump(exclude_unset=True, exclude={"status"}).items():
            setattr(step, field, value)

        if data.status is not None:
            previous_completed_at = None
            if data.status == WorkflowStatus.IN_PROGRESS and step.started_at is None:
                previous_completed_at = await self._previous_completed_at(step)
            state.apply_status(step, data.status, utc_now(), previous_completed_at=previous_completed_at)
            record_transition("workflow_step", step.status)

        await self.db.commit()
        await self.db.refresh(step)
        return await self._step_response(step)

    async def _step_response(self, step: WorkflowStep) -> StepResponse:
        tasks = (await self.db.execute(
            select(WorkflowTask).where(WorkflowTask.step_id == step.id).order_by(WorkflowTask.created_at)
        )).scalars().all()
        response = StepResponse.model_validate(step)
        response.tasks = [TaskResponse.model_validate(t) for t in tasks]
        return response

    # ============== Tasks ==============

    async def create_task(self, workflow_id: uuid.UUID, step_id: uuid.UUID, data: TaskCreate) -> WorkflowTask:
        workflow = await self._get_visible(workflow_id)
        state.ensure_not_cancelled(workflow)
        step = await self._get_step(workflow, step_id)
        if not await self._can_work_step(workflow, step):
            raise ForbiddenError("Insufficient permissions")

        task = WorkflowTask(
            workflow_id=workflow.id,
            step_id=step.id,
            name=data.name,
            description=data.description,
            assigned_to=data.assigned_to,
            estimated_minutes=data.estimated_minutes,
            status=WorkflowStatus.PENDING.value,
        )
        self.db.add(task)
        await self.db.flush()
        await self._notify_assignee(data.assigned_to, workflow, f'New task "{task.name}" in "{workflow.name}"')
        await self.db.commit()
        await self.db.refresh(task)
        logger.info("Workflow task created", workflow_id=str(workflow.id), task_id=str(task.id))
        return task

    async def _get_task(self, workflow: Workflow, task_id: uuid.UUID) -> WorkflowTask:
        task = await self.db.get(WorkflowTask, task_id)
        if not task or task.workflow_id != workflow.id:
            raise NotFoundError("WorkflowTask", task_id)
        return task

    def _log(self, task: WorkflowTask, action: str, description: str | None = None, **fields) -> WorkflowTaskLog:
        entry = WorkflowTaskLog(
            task_id=task.id,
            user_id=self.user.id,
            action=action,
            description=description,
            timestamp=utc_now(),
            **fields,
        )
        self.db.add(entry)
        return entry

    async def update_task(self, workflow_id: uuid.UUID, task_id: uuid.UUID, data: TaskUpdate) -> WorkflowTask:
        workflow = await self._get_visible(workflow_id)
        state.ensure_not_cancelled(workflow)
        task = await self._get_task(workflow, task_id)
        step = await self._get_step(workflow, task.step_id)
        if task.assigned_to != self.user.id and not await self._can_work_step(workflow, step):
            raise ForbiddenError("Insufficient permissions")

        old_assignee = task.assigned_to
        for field, value in data.model_dump(exclude_unset=True, exclude={"status", "actual_minutes"}).items():
            setattr(task, field, value)

        if data.status is not None:
            state.apply_status(task, data.status, utc_now(), actual_minutes=data.actual_minutes)
            record_transition("workflow_task", task.status)
            if data.status == WorkflowStatus.IN_PROGRESS:
                self._log(task, "START", "Task started")
        elif data.actual_minutes is not None:
            task.actual_minutes = data.actual_minutes

        if task.assigned_to != old_assignee:
            await self._notify_assignee(task.assigned_to, workflow, f'You were assigned task "{task.name}"')
        await self.db.commit()
        await self.db.refresh(task)
        return task

    async def complete_task(self, workflow_id: uuid.UUID, task_id: uuid.UUID, data: TaskComplete) -> WorkflowTask:
        workflow = await self.db.get(Workflow, workflow_id)
        if not workflow:
            raise NotFoundError("Workflow", workflow_id)
        state.ensure_not_cancelled(workflow)
        task = await self._get_task(workflow, task_id)

        if task.assigned_to != self.user.id:
            step = await self._get_step(workflow, task.step_id)
            if not await is_working_group_member(self.db, self.user.id, step.working_group_id):
                raise ForbiddenError("You are not assigned to this task")
        if task.status != WorkflowStatus.IN_PROGRESS.value:
            raise BadRequestError("Task is not in progress")

        state.apply_status(task, WorkflowStatus.COMPLETED, utc_now(), actual_minutes=data.actual_minutes)
        if data.work_done is not None:
            task.work_done = data.work_done
        if data.notes is not None:
            task.notes = data.notes
        self._log(
            task,
            "COMPLETE",
            data.work_done or "Task completed",
            duration_minutes=task.actual_minutes,
        )
        record_transition("workflow_task", task.status)

        if workflow.created_by is not None:
            await self._notify_assignee(workflow.created_by, workflow, f'Task "{task.name}" was completed')
        await self.db.commit()
        await self.db.refresh(task)
        logger.info("Workflow task completed", task_id=str(task.id), actual_minutes=task.actual_minutes)
        return task

    # ============== Task logs ==============

    async def list_task_logs(self, workflow_id: uuid.UUID, task_id: uuid.UUID) -> Sequence[WorkflowTaskLog]:
        workflow = await self._get_visible(workflow_id)
        task = await self._get_task(workflow, task_id)
        result = await self.db.execute(
            select(WorkflowTaskLog)
            .where(WorkflowTaskLog.task_id == task.id)
            .order_by(WorkflowTaskLog.timestamp.desc())
        )
        return result.scalars().all()

    async def add_task_log(self, workflow_id: uuid.UUID, task_id: uuid.UUID, data: TaskLogCreate) -> WorkflowTaskLog:
        workflow = await self._get_visible(workflow_id)
        state.ensure_not_cancelled(workflow)
        task = await self._get_task(workflow, task_id)
        step = await self._get_step(workflow, task.step_id)
        if task.assigned_to != self.user.id and not await self._can_work_step(workflow, step):
            raise ForbiddenError("Insufficient permissions")

        entry = self._log(
            task,
            data.action.strip().upper(),
            data.description,
            duration_minutes=data.duration_minutes,
            log_metadata=data.metadata,
        )
        await self.db.commit()
        await self.db.refresh(entry)
        return entry
