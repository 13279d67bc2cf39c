"""
Property Module - Business Logic Service
Communities, buildings, households and working groups.
"""
import uuid
from typing import Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from src.core.logging import get_logger
from src.modules.auth.models import User
from src.modules.property.models import (
    Building,
    BuildingMember,
    Community,
    CommunityMember,
    CommunityRole,
    Household,
    HouseholdMember,
    HouseholdRole,
    PermissionScope,
    WorkingGroup,
    WorkingGroupMember,
    WorkingGroupPermission,
    generate_invitation_code,
)
from src.modules.property.hierarchy import join_building
from src.modules.property.permissions import (
    MANAGER_ROLES,
    can_manage_community_role,
    get_assignable_community_roles,
    get_community_permissions,
    get_community_role,
    get_household_role,
    has_community_permission,
    has_household_permission,
    is_building_or_community_manager,
)
from src.modules.property.schemas import (
    AssignableRolesResponse,
    BuildingCreate,
    BuildingUpdate,
    CommunityCreate,
    CommunityUpdate,
    HouseholdCreate,
    HouseholdJoin,
    HouseholdMemberAdd,
    HouseholdUpdate,
    MemberAdd,
    WorkingGroupCreate,
    WorkingGroupMemberAdd,
    WorkingGroupPermissionCreate,
)

logger = get_logger(__name__)


class PropertyService:
    """Community, building, household and working group management."""

    def __init__(self, db: AsyncSession, user: User):
        self.db = db
        self.user = user

    # ============== Helpers ==============

    async def _ensure_user_exists(self, user_id: uuid.UUID) -> None:
        if await self.db.scalar(select(User.id).where(User.id == user_id)) is None:
            raise NotFoundError("User", user_id)

    async def _community_role(self, community_id: uuid.UUID) -> str | None:
        if self.user.is_admin:
            return CommunityRole.ADMIN.value
        return await get_community_role(self.db, self.user.id, community_id)

    async def _require_community_capability(self, community_id: uuid.UUID, capability: str) -> str:
        role = await self._community_role(community_id)
        if not has_community_permission(role, capability):
            raise ForbiddenError("Insufficient community permissions")
        return role

    # ============== Community Operations ==============

    async def create_community(self, data: CommunityCreate) -> Community:
        community = Community(**data.model_dump(), created_by=self.user.id)
        self.db.add(community)
        await self.db.flush()

        self.db.add(CommunityMember(
            community_id=community.id,
            user_id=self.user.id,
            role=CommunityRole.ADMIN.value,
        ))
        await self.db.commit()
        await self.db.refresh(community)

        logger.info("Community created", community_id=str(community.id), user_id=str(self.user.id))
        return community

    async def list_communities(self) -> Sequence[Community]:
        stmt = select(Community).order_by(Community.name)
        if not self.user.is_admin:
            stmt = stmt.join(CommunityMember, CommunityMember.community_id == Community.id).where(
                CommunityMember.user_id == self.user.id
            )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def get_community(self, community_id: uuid.UUID) -> Community:
        community = await self.db.get(Community, community_id)
        if not community:
            raise NotFoundError("Community", community_id)
        if await self._community_role(community_id) is None:
            raise ForbiddenError("You are not a member of this community")
        return community

    async def update_community(self, community_id: uuid.UUID, data: CommunityUpdate) -> Community:
        community = await self.get_community(community_id)
        role = await self._community_role(community_id)
        if role not in MANAGER_ROLES:
            raise ForbiddenError("Only community admins or managers can edit the community")

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(community, field, value)
        await self.db.commit()
        await self.db.refresh(community)
        return community

    async def delete_community(self, community_id: uuid.UUID) -> None:
        community = await self.get_community(community_id)
        await self._require_community_capability(community_id, "can_manage_community")
        await self.db.delete(community)
        await self.db.commit()
        logger.info("Community deleted", community_id=str(community_id))

    async def list_community_members(self, community_id: uuid.UUID) -> Sequence[CommunityMember]:
        await self.get_community(community_id)
        result = await self.db.execute(
            select(CommunityMember)
            .where(CommunityMember.community_id == community_id)
            .order_by(CommunityMember.created_at)
        )
        return result.scalars().all()

    async def add_community_member(self, community_id: uuid.UUID, data: MemberAdd) -> CommunityMember:
        await self.get_community(community_id)
        role = await self._require_community_capability(community_id, "can_add_members")
        if not can_manage_community_role(role, data.role.value):
            raise ForbiddenError(f"Role {role} cannot assign {data.role.value}")
        await self._ensure_user_exists(data.user_id)

        if await get_community_role(self.db, data.user_id, community_id) is not None:
            raise ConflictError("User is already a member of this community")

        member = CommunityMember(community_id=community_id, user_id=data.user_id, role=data.role.value)
        self.db.add(member)
        await self.db.commit()
        await self.db.refresh(member)
        return member

    async def _get_community_member(self, community_id: uuid.UUID, user_id: uuid.UUID) -> CommunityMember:
        member = await self.db.scalar(
            select(CommunityMember).where(
                CommunityMember.community_id == community_id,
                CommunityMember.user_id == user_id,
            )
        )
        if not member:
            raise NotFoundError("CommunityMember", user_id)
        return member

    async def update_community_member_role(
        self,
        community_id: uuid.UUID,
        user_id: uuid.UUID,
        new_role: CommunityRole,
    ) -> CommunityMember:
        role = await self._require_community_capability(community_id, "can_manage_roles")
        member = await self._get_community_member(community_id, user_id)
        if not (can_manage_community_role(role, member.role) and can_manage_community_role(role, new_role.value)):
            raise ForbiddenError(f"Role {role} cannot change {member.role} to {new_role.value}")

        member.role = new_role.value
        await self.db.commit()
        await self.db.refresh(member)
        logger.info("Community role changed", community_id=str(community_id), user_id=str(user_id), role=member.role)
        return member

    async def remove_community_member(self, community_id: uuid.UUID, user_id: uuid.UUID) -> None:
        role = await self._require_community_capability(community_id, "can_remove_members")
        member = await self._get_community_member(community_id, user_id)
        if not can_manage_community_role(role, member.role):
            raise ForbiddenError(f"Role {role} cannot remove a {member.role}")
        await self.db.delete(member)
        await self.db.commit()

    async def get_assignable_roles(self, community_id: uuid.UUID) -> AssignableRolesResponse:
        await self.get_community(community_id)
        role = await self._community_role(community_id)
        return AssignableRolesResponse(
            role=role,
            assignable_roles=get_assignable_community_roles(role),
            permissions=get_community_permissions(role),
        )

    # ============== Building Operations ==============

    async def create_building(self, community_id: uuid.UUID, data: BuildingCreate) -> Building:
        await self.get_community(community_id)
        await self._require_community_capability(community_id, "can_create_buildings")

        building = Building(community_id=community_id, **data.model_dump())
        self.db.add(building)
        await self.db.commit()
        await self.db.refresh(building)

        logger.info("Building created", building_id=str(building.id), community_id=str(community_id))
        return building

    async def list_buildings(self, community_id: uuid.UUID) -> Sequence[Building]:
        await self.get_community(community_id)
        result = await self.db.execute(
            select(Building).where(Building.community_id == community_id).order_by(Building.name)
        )
        return result.scalars().all()

    async def get_building(self, building_id: uuid.UUID) -> Building:
        building = await self.db.get(Building, building_id)
        if not building:
            raise NotFoundError("Building", building_id)
        return building

    async def update_building(self, building_id: uuid.UUID, data: BuildingUpdate) -> Building:
        building = await self.get_building(building_id)
        if not await is_building_or_community_manager(self.db, self.user, building.id, building.community_id):
            raise ForbiddenError("Only building or community managers can edit the building")

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(building, field, value)
        await self.db.commit()
        await self.db.refresh(building)
        return building

    async def add_building_member(self, building_id: uuid.UUID, data: MemberAdd) -> BuildingMember:
        building = await self.get_building(building_id)
        if not await is_building_or_community_manager(self.db, self.user, building.id, building.community_id):
            raise ForbiddenError("Only building or community managers can add building members")
        await self._ensure_user_exists(data.user_id)

        existing = await self.db.scalar(
            select(BuildingMember.id).where(
                BuildingMember.building_id == building_id,
                BuildingMember.user_id == data.user_id,
            )
        )
        if existing is not None:
            raise ConflictError("User is already a member of this building")

        member = BuildingMember(building_id=building_id, user_id=data.user_id, role=data.role.value)
        self.db.add(member)
        await self.db.commit()
        await self.db.refresh(member)
        return member

    # ============== Household Operations ==============

    async def create_household(self, data: HouseholdCreate) -> Household:
        if data.building_id is not None:
            building = await self.get_building(data.building_id)
            if not await is_building_or_community_manager(self.db, self.user, building.id, building.community_id):
                raise ForbiddenError("Only building managers can add households to a building")

        household = Household(**data.model_dump())
        self.db.add(household)
        await self.db.flush()

        self.db.add(HouseholdMember(
            household_id=household.id,
            user_id=self.user.id,
            role=HouseholdRole.OWNER.value,
        ))
        await self.db.commit()
        await self.db.refresh(household)

        logger.info("Household created", household_id=str(household.id), user_id=str(self.user.id))
        return household

    async def list_my_households(self) -> Sequence[Household]:
        result = await self.db.execute(
            select(Household)
            .join(HouseholdMember, HouseholdMember.household_id == Household.id)
            .where(HouseholdMember.user_id == self.user.id)
            .order_by(Household.name)
        )
        return result.scalars().all()

    async def get_household(self, household_id: uuid.UUID) -> Household:
        """Household visible to members, building/community managers and admins."""
        household = await self.db.get(Household, household_id)
        if not household:
            raise NotFoundError("Household", household_id)
        if await get_household_role(self.db, self.user.id, household_id) is None:
            if not await is_building_or_community_manager(self.db, self.user, household.building_id):
                raise NotFoundError("Household", household_id)
        return household

    async def _require_household_capability(self, household_id: uuid.UUID, capability: str) -> None:
        if self.user.is_admin:
            return
        role = await get_household_role(self.db, self.user.id, household_id)
        if not has_household_permission(role, capability):
            raise ForbiddenError("Insufficient household permissions")

    async def update_household(self, household_id: uuid.UUID, data: HouseholdUpdate) -> Household:
        household = await self.get_household(household_id)
        await self._require_household_capability(household_id, "can_manage_household")

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(household, field, value)
        await self.db.commit()
        await self.db.refresh(household)
        return household

    async def list_household_members(self, household_id: uuid.UUID) -> Sequence[HouseholdMember]:
        await self.get_household(household_id)
        result = await self.db.execute(
            select(HouseholdMember)
            .where(HouseholdMember.household_id == household_id)
            .order_by(HouseholdMember.created_at)
        )
        return result.scalars().all()

    async def add_household_member(self, household_id: uuid.UUID, data: HouseholdMemberAdd) -> HouseholdMember:
        await self.get_household(household_id)
        await self._require_household_capability(household_id, "can_manage_members")
        await self._ensure_user_exists(data.user_id)

        if await get_household_role(self.db, data.user_id, household_id) is not None:
            raise ConflictError("User is already a member of this household")

        member = HouseholdMember(household_id=household_id, user_id=data.user_id, role=data.role.value)
        self.db.add(member)
        await self.db.commit()
        await self.db.refresh(member)
        logger.info("Household member added", household_id=str(household_id), user_id=str(data.user_id))
        return member

    async def remove_household_member(self, household_id: uuid.UUID, user_id: uuid.UUID) -> None:
        await self.get_household(household_id)
        await self._require_household_capability(household_id, "can_manage_members")

        member = await self.db.scalar(
            select(HouseholdMember).where(
                HouseholdMember.household_id == household_id,
                HouseholdMember.user_id == user_id,
            )
        )
        if not member:
            raise NotFoundError("HouseholdMember", user_id)

        if member.role == HouseholdRole.OWNER.value:
            owners = await self.db.scalar(
                select(func.count(HouseholdMember.id)).where(
                    HouseholdMember.household_id == household_id,
                    HouseholdMember.role == HouseholdRole.OWNER.value,
                )
            )
            if owners <= 1:
                raise BadRequestError("Cannot remove the last owner of a household")

        await self.db.delete(member)
        await self.db.commit()

    # ============== Invitations ==============

    async def _household_by_code(self, code: str) -> Household:
        household = await self.db.scalar(select(Household).where(Household.invitation_code == code.strip().upper()))
        if not household:
            raise NotFoundError("Household", code)
        return household

    async def preview_invitation(self, code: str) -> tuple[Household, int]:
        household = await self._household_by_code(code)
        member_count = await self.db.scalar(
            select(func.count(HouseholdMember.id)).where(HouseholdMember.household_id == household.id)
        )
        return household, member_count or 0

    async def join_household(self, data: HouseholdJoin) -> HouseholdMember:
        """Join with an invitation code; also joins the building and community as MEMBER."""
        household = await self._household_by_code(data.invitation_code)
        if await get_household_role(self.db, self.user.id, household.id) is not None:
            raise ConflictError("You are already a member of this household")

        member = HouseholdMember(household_id=household.id, user_id=self.user.id, role=data.role.value)
        self.db.add(member)
        await join_building(self.db, self.user.id, household.building_id)
        await self.db.commit()
        await self.db.refresh(member)

        logger.info("Joined household by invitation", household_id=str(household.id), user_id=str(self.user.id))
        return member

    async def regenerate_invitation_code(self, household_id: uuid.UUID) -> Household:
        household = await self.get_household(household_id)
        await self._require_household_capability(household_id, "can_manage_members")

        household.invitation_code = generate_invitation_code()
        await self.db.commit()
        await self.db.refresh(household)
        logger.info("Invitation code regenerated", household_id=str(household.id))
        return household

    # ============== Working Group Operations ==============

    async def create_working_group(self, community_id: uuid.UUID, data: WorkingGroupCreate) -> WorkingGroup:
        await self.get_community(community_id)
        await self._require_community_capability(community_id, "can_create_working_groups")

        group = WorkingGroup(
            community_id=community_id,
            name=data.name,
            description=data.description,
            type=data.type.value,
        )
        self.db.add(group)
        await self.db.commit()
        await self.db.refresh(group)

        logger.info("Working group created", working_group_id=str(group.id), type=group.type)
        return group

    async def list_working_groups(self, community_id: uuid.UUID) -> Sequence[WorkingGroup]:
        await self.get_community(community_id)
        result = await self.db.execute(
            select(WorkingGroup).where(WorkingGroup.community_id == community_id).order_by(WorkingGroup.name)
        )
        return result.scalars().all()

    async def get_working_group(self, group_id: uuid.UUID) -> WorkingGroup:
        group = await self.db.get(WorkingGroup, group_id)
        if not group:
            raise NotFoundError("WorkingGroup", group_id)
        return group

    async def add_working_group_member(self, group_id: uuid.UUID, data: WorkingGroupMemberAdd) -> WorkingGroupMember:
        group = await self.get_working_group(group_id)
        await self._require_community_capability(group.community_id, "can_assign_working_group_members")
        await self._ensure_user_exists(data.user_id)

        existing = await self.db.scalar(
            select(WorkingGroupMember.id).where(
                WorkingGroupMember.working_group_id == group_id,
                WorkingGroupMember.user_id == data.user_id,
            )
        )
        if existing is not None:
            raise ConflictError("User is already a member of this working group")

        member = WorkingGroupMember(working_group_id=group_id, user_id=data.user_id, role=data.role.value)
        self.db.add(member)
        await self.db.commit()
        await self.db.refresh(member)
        return member

    async def remove_working_group_member(self, group_id: uuid.UUID, user_id: uuid.UUID) -> None:
        group = await self.get_working_group(group_id)
        await self._require_community_capability(group.community_id, "can_assign_working_group_members")
        result = await self.db.execute(
            delete(WorkingGroupMember).where(
                WorkingGroupMember.working_group_id == group_id,
                WorkingGroupMember.user_id == user_id,
            )
        )
        if result.rowcount == 0:
            raise NotFoundError("WorkingGroupMember", user_id)
        await self.db.commit()

    async def add_working_group_permission(
        self,
        group_id: uuid.UUID,
        data: WorkingGroupPermissionCreate,
    ) -> WorkingGroupPermission:
        group = await self.get_working_group(group_id)
        await self._require_community_capability(group.community_id, "can_edit_working_groups")

        if data.scope == PermissionScope.SPECIFIC_BUILDING:
            if data.scope_id is None:
                raise BadRequestError("scope_id is required for SPECIFIC_BUILDING scope")
            building = await self.db.get(Building, data.scope_id)
            if not building or building.community_id != group.community_id:
                raise BadRequestError("scope_id must be a building of the same community")

        permission = WorkingGroupPermission(
            working_group_id=group_id,
            permission=data.permission.upper(),
            scope=data.scope.value,
            scope_id=data.scope_id,
        )
        self.db.add(permission)
        await self.db.commit()
        await self.db.refresh(permission)
        return permission

    async def list_working_group_permissions(self, group_id: uuid.UUID) -> Sequence[WorkingGroupPermission]:
        await self.get_working_group(group_id)
        result = await self.db.execute(
            select(WorkingGroupPermission).where(WorkingGroupPermission.working_group_id == group_id)
        )
        return result.scalars().all()
