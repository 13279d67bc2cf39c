"""
Join Requests Module - Business Logic Service

A user asks to join a community, building or household. Managers of the
target (or the household OWNER) approve or reject. Approval creates the
membership and cascades MEMBER access up the hierarchy.
"""
import uuid
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError, ValidationError
from src.core.logging import get_logger
from src.core.models import utc_now
from src.modules.auth.models import User
from src.modules.join_requests.models import JoinRequest, JoinRequestStatus, JoinRequestType
from src.modules.join_requests.schemas import JoinRequestCreate
from src.modules.notifications.models import NotificationType
from src.modules.notifications.service import NotificationService
from src.modules.property.hierarchy import join_building, join_community
from src.modules.property.models import (
    Building,
    BuildingMember,
    Community,
    CommunityMember,
    CommunityRole,
    Household,
    HouseholdMember,
    HouseholdRole,
)
from src.modules.property.permissions import (
    MANAGER_ROLES,
    can_manage_community_role,
    get_building_role,
    get_community_role,
    get_effective_building_role,
    get_household_role,
    is_building_or_community_manager,
)

logger = get_logger(__name__)

_REQUESTABLE_ROLES = {
    JoinRequestType.COMMUNITY: {CommunityRole.MEMBER.value, CommunityRole.VIEWER.value},
    JoinRequestType.BUILDING: {CommunityRole.MEMBER.value, CommunityRole.VIEWER.value},
    JoinRequestType.HOUSEHOLD: {HouseholdRole.USER.value, HouseholdRole.VISITOR.value},
}

_DEFAULT_ROLES = {
    JoinRequestType.COMMUNITY: CommunityRole.MEMBER.value,
    JoinRequestType.BUILDING: CommunityRole.MEMBER.value,
    JoinRequestType.HOUSEHOLD: HouseholdRole.USER.value,
}


class JoinRequestService:
    def __init__(self, db: AsyncSession, user: User):
        self.db = db
        self.user = user

    # ============== Targets ==============

    async def _get_target(self, type: JoinRequestType, target_id: uuid.UUID) -> Community | Building | Household:
        model = {
            JoinRequestType.COMMUNITY: Community,
            JoinRequestType.BUILDING: Building,
            JoinRequestType.HOUSEHOLD: Household,
        }[type]
        target = await self.db.get(model, target_id)
        if not target:
            raise NotFoundError(model.__name__, target_id)
        return target

    async def _membership_role(self, type: JoinRequestType, user_id: uuid.UUID, target_id: uuid.UUID) -> str | None:
        if type == JoinRequestType.COMMUNITY:
            return await get_community_role(self.db, user_id, target_id)
        if type == JoinRequestType.BUILDING:
            return await get_building_role(self.db, user_id, target_id)
        return await get_household_role(self.db, user_id, target_id)

    async def _can_review(self, type: JoinRequestType, target) -> bool:
        if self.user.is_admin:
            return True
        if type == JoinRequestType.COMMUNITY:
            return await get_community_role(self.db, self.user.id, target.id) in MANAGER_ROLES
        if type == JoinRequestType.BUILDING:
            return await is_building_or_community_manager(self.db, self.user, target.id, target.community_id)
        if await get_household_role(self.db, self.user.id, target.id) == HouseholdRole.OWNER.value:
            return True
        return await is_building_or_community_manager(self.db, self.user, target.building_id)

    async def _reviewer_ids(self, type: JoinRequestType, target_id: uuid.UUID) -> list[uuid.UUID]:
        if type == JoinRequestType.COMMUNITY:
            stmt = select(CommunityMember.user_id).where(
                CommunityMember.community_id == target_id,
                CommunityMember.role.in_(MANAGER_ROLES),
            )
        elif type == JoinRequestType.BUILDING:
            stmt = select(BuildingMember.user_id).where(
                BuildingMember.building_id == target_id,
                BuildingMember.role.in_(MANAGER_ROLES),
            )
        else:
            stmt = select(HouseholdMember.user_id).where(
                HouseholdMember.household_id == target_id,
                HouseholdMember.role == HouseholdRole.OWNER.value,
            )
        return list((await self.db.scalars(stmt)).all())

    # ============== Requests ==============

    async def create_request(self, data: JoinRequestCreate) -> JoinRequest:
        target = await self._get_target(data.type, data.target_id)
        role = data.role or _DEFAULT_ROLES[data.type]
        if role not in _REQUESTABLE_ROLES[data.type]:
            raise ValidationError(
                f"Role {role} cannot be requested",
                details={"allowed": sorted(_REQUESTABLE_ROLES[data.type])},
            )
        if await self._membership_role(data.type, self.user.id, target.id) is not None:
            raise ConflictError(f"You are already a member of this {data.type.value}")

        pending = await self.db.scalar(
            select(JoinRequest.id).where(
                JoinRequest.user_id == self.user.id,
                JoinRequest.type == data.type.value,
                JoinRequest.target_id == target.id,
                JoinRequest.status == JoinRequestStatus.PENDING.value,
            )
        )
        if pending is not None:
            raise ConflictError("A pending request already exists")

        request = JoinRequest(
            user_id=self.user.id,
            type=data.type.value,
            target_id=target.id,
            message=data.message,
            role=role,
        )
        self.db.add(request)
        await self.db.flush()

        await NotificationService(self.db).send_bulk(
            await self._reviewer_ids(data.type, target.id),
            title="New join request",
            message=f"{self.user.full_name or self.user.email} asked to join {target.name}",
            type=NotificationType.JOIN_REQUEST,
            data={"join_request_id": str(request.id), "type": request.type},
            source_type="join_request",
            source_id=request.id,
        )
        await self.db.commit()
        await self.db.refresh(request)

        logger.info("Join request created", join_request_id=str(request.id), type=request.type)
        return request

    async def list_requests(
        self,
        type: JoinRequestType | None = None,
        target_id: uuid.UUID | None = None,
        status: JoinRequestStatus | None = None,
    ) -> Sequence[JoinRequest]:
        """Requests for a target the caller reviews, or the caller's own requests."""
        if type is not None and target_id is not None:
            target = await self._get_target(type, target_id)
            if not await self._can_review(type, target):
                raise ForbiddenError("You cannot review requests for this target")
            query = select(JoinRequest).where(JoinRequest.type == type.value, JoinRequest.target_id == target.id)
        else:
            query = select(JoinRequest).where(JoinRequest.user_id == self.user.id)
            if type is not None:
                query = query.where(JoinRequest.type == type.value)
        if status is not None:
            query = query.where(JoinRequest.status == status.value)
        result = await self.db.execute(query.order_by(JoinRequest.created_at.desc()))
        return result.scalars().all()

    async def _pending_for_review(self, request_id: uuid.UUID):
        request = await self.db.get(JoinRequest, request_id)
        if not request:
            raise NotFoundError("JoinRequest", request_id)
        if request.status != JoinRequestStatus.PENDING.value:
            raise BadRequestError("Join request has already been reviewed")
        type = JoinRequestType(request.type)
        target = await self._get_target(type, request.target_id)
        if not await self._can_review(type, target):
            raise ForbiddenError("You cannot review requests for this target")
        return request, type, target

    async def _check_grantable(self, type: JoinRequestType, target, role: str) -> None:
        if type == JoinRequestType.HOUSEHOLD:
            if role not in {r.value for r in HouseholdRole}:
                raise ValidationError(f"Unknown household role {role}")
            if role == HouseholdRole.OWNER.value and not self.user.is_admin:
                if await get_household_role(self.db, self.user.id, target.id) != HouseholdRole.OWNER.value:
                    raise ForbiddenError("Only an owner can grant the OWNER role")
            return

        if role not in {r.value for r in CommunityRole}:
            raise ValidationError(f"Unknown role {role}")
        if self.user.is_admin:
            return
        if type == JoinRequestType.COMMUNITY:
            reviewer_role = await get_community_role(self.db, self.user.id, target.id)
        else:
            reviewer_role = await get_effective_building_role(self.db, self.user.id, target.id, target.community_id)
        if not can_manage_community_role(reviewer_role, role):
            raise ForbiddenError(f"You cannot grant the {role} role")

    async def _add_membership(self, request: JoinRequest, type: JoinRequestType, target, role: str) -> None:
        if await self._membership_role(type, request.user_id, target.id) is not None:
            return
        if type == JoinRequestType.COMMUNITY:
            self.db.add(CommunityMember(community_id=target.id, user_id=request.user_id, role=role))
        elif type == JoinRequestType.BUILDING:
            self.db.add(BuildingMember(building_id=target.id, user_id=request.user_id, role=role))
            await self.db.flush()
            await join_community(self.db, request.user_id, target.community_id)
        else:
            self.db.add(HouseholdMember(household_id=target.id, user_id=request.user_id, role=role))
            await self.db.flush()
            await join_building(self.db, request.user_id, target.building_id)

    async def _notify_requester(self, request: JoinRequest, target, title: str, message: str) -> None:
        await NotificationService(self.db).send_bulk(
            [request.user_id],
            title=title,
            message=message,
            type=NotificationType.JOIN_REQUEST,
            data={"join_request_id": str(request.id), "status": request.status, "target_name": target.name},
            source_type="join_request",
            source_id=request.id,
        )

    async def approve(self, request_id: uuid.UUID, role: str | None = None) -> JoinRequest:
        request, type, target = await self._pending_for_review(request_id)
        role = role or request.role
        await self._check_grantable(type, target, role)

        await self._add_membership(request, type, target, role)
        request.role = role
        request.status = JoinRequestStatus.APPROVED.value
        request.reviewed_by = self.user.id
        request.reviewed_at = utc_now()
        await self._notify_requester(
            request,
            target,
            "Join request approved",
            f"You are now a {role} of {target.name}",
        )
        await self.db.commit()
        await self.db.refresh(request)

        logger.info("Join request approved", join_request_id=str(request.id), role=role)
        return request

    async def reject(self, request_id: uuid.UUID, reason: str | None = None) -> JoinRequest:
        request, _, target = await self._pending_for_review(request_id)

        request.status = JoinRequestStatus.REJECTED.value
        request.reviewed_by = self.user.id
        request.reviewed_at = utc_now()
        request.rejection_reason = reason
        message = f"Your request to join {target.name} was rejected."
        if reason:
            message += f" Reason: {reason}"
        await self._notify_requester(request, target, "Join request rejected", message)
        await self.db.commit()
        await self.db.refresh(request)

        logger.info("Join request rejected", join_request_id=str(request.id))
        return request
