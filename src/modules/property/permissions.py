"""
Property Module - Role tables and membership lookups

The capability tables are pure data. The async lookups resolve a user's role
in a scope and are shared by every module that gates a route on community,
building, household or working group membership.
"""
import uuid

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.modules.auth.models import User
from src.modules.property.models import (
    Building,
    BuildingMember,
    CommunityMember,
    CommunityRole,
    Household,
    HouseholdMember,
    HouseholdRole,
    PermissionScope,
    WorkingGroup,
    WorkingGroupMember,
    WorkingGroupPermission,
    WorkingGroupType,
)

# ============== Community roles ==============

COMMUNITY_CAPABILITIES = (
    "can_manage_community",
    "can_manage_buildings",
    "can_manage_members",
    "can_manage_working_groups",
    "can_view_buildings",
    "can_create_buildings",
    "can_edit_buildings",
    "can_delete_buildings",
    "can_view_members",
    "can_add_members",
    "can_remove_members",
    "can_manage_roles",
    "can_view_working_groups",
    "can_create_working_groups",
    "can_edit_working_groups",
    "can_delete_working_groups",
    "can_assign_working_group_members",
    "can_create_tickets",
)

_VIEW_ONLY = {"can_view_buildings", "can_view_members", "can_view_working_groups"}

_COMMUNITY_GRANTS: dict[str, set[str]] = {
    CommunityRole.ADMIN.value: set(COMMUNITY_CAPABILITIES),
    CommunityRole.MANAGER.value: set(COMMUNITY_CAPABILITIES) - {
        "can_manage_community",
        "can_delete_buildings",
        "can_delete_working_groups",
    },
    CommunityRole.MEMBER.value: _VIEW_ONLY | {"can_create_tickets"},
    CommunityRole.VIEWER.value: set(_VIEW_ONLY),
}

COMMUNITY_ROLE_LEVELS = {
    CommunityRole.ADMIN.value: 4,
    CommunityRole.MANAGER.value: 3,
    CommunityRole.MEMBER.value: 2,
    CommunityRole.VIEWER.value: 1,
}

MANAGER_ROLES = frozenset({CommunityRole.ADMIN.value, CommunityRole.MANAGER.value})
MEMBER_ROLES = MANAGER_ROLES | {CommunityRole.MEMBER.value}


def get_community_permissions(role: str | None) -> dict[str, bool]:
    granted = _COMMUNITY_GRANTS.get(role or "", set())
    return {name: name in granted for name in COMMUNITY_CAPABILITIES}


def has_community_permission(role: str | None, capability: str) -> bool:
    return get_community_permissions(role).get(capability, False)


def get_community_role_level(role: str | None) -> int:
    return COMMUNITY_ROLE_LEVELS.get(role or "", 0)


def can_manage_community_role(manager_role: str | None, target_role: str) -> bool:
    """ADMIN manages every role, MANAGER only roles strictly below it."""
    if manager_role == CommunityRole.ADMIN.value:
        return True
    if manager_role == CommunityRole.MANAGER.value:
        return get_community_role_level(target_role) < get_community_role_level(manager_role)
    return False


def get_assignable_community_roles(manager_role: str | None) -> list[str]:
    if manager_role == CommunityRole.ADMIN.value:
        return [role.value for role in CommunityRole]
    if manager_role == CommunityRole.MANAGER.value:
        return [CommunityRole.MEMBER.value, CommunityRole.VIEWER.value]
    return []


# ============== Household roles ==============

HOUSEHOLD_CAPABILITIES = (
    "can_manage_household",
    "can_manage_members",
    "can_manage_rooms",
    "can_manage_categories",
    "can_manage_items",
    "can_move_items",
    "can_manage_roles",
)

_HOUSEHOLD_GRANTS: dict[str, set[str]] = {
    HouseholdRole.OWNER.value: set(HOUSEHOLD_CAPABILITIES),
    HouseholdRole.USER.value: {
        "can_manage_rooms",
        "can_manage_categories",
        "can_manage_items",
        "can_move_items",
    },
    HouseholdRole.VISITOR.value: set(),
}

HOUSEHOLD_ROLE_LEVELS = {
    HouseholdRole.OWNER.value: 3,
    HouseholdRole.USER.value: 2,
    HouseholdRole.VISITOR.value: 1,
}


def get_household_permissions(role: str | None) -> dict[str, bool]:
    granted = _HOUSEHOLD_GRANTS.get(role or "", set())
    return {name: name in granted for name in HOUSEHOLD_CAPABILITIES}


def has_household_permission(role: str | None, capability: str) -> bool:
    return get_household_permissions(role).get(capability, False)


def get_household_role_level(role: str | None) -> int:
    return HOUSEHOLD_ROLE_LEVELS.get(role or "", 0)


# ============== Membership lookups ==============

async def get_community_role(db: AsyncSession, user_id: uuid.UUID, community_id: uuid.UUID | None) -> str | None:
    if community_id is None:
        return None
    return await db.scalar(
        select(CommunityMember.role).where(
            CommunityMember.community_id == community_id,
            CommunityMember.user_id == user_id,
        )
    )


async def get_building_role(db: AsyncSession, user_id: uuid.UUID, building_id: uuid.UUID | None) -> str | None:
    if building_id is None:
        return None
    return await db.scalar(
        select(BuildingMember.role).where(
            BuildingMember.building_id == building_id,
            BuildingMember.user_id == user_id,
        )
    )


async def get_effective_building_role(
    db: AsyncSession,
    user_id: uuid.UUID,
    building_id: uuid.UUID,
    community_id: uuid.UUID | None,
) -> str | None:
    """The higher of the building role and the community role."""
    roles = [
        await get_building_role(db, user_id, building_id),
        await get_community_role(db, user_id, community_id),
    ]
    return max(roles, key=get_community_role_level)


async def get_household_role(db: AsyncSession, user_id: uuid.UUID, household_id: uuid.UUID | None) -> str | None:
    if household_id is None:
        return None
    return await db.scalar(
        select(HouseholdMember.role).where(
            HouseholdMember.household_id == household_id,
            HouseholdMember.user_id == user_id,
        )
    )


async def is_working_group_member(
    db: AsyncSession,
    user_id: uuid.UUID,
    working_group_id: uuid.UUID | None,
) -> bool:
    if working_group_id is None:
        return False
    found = await db.scalar(
        select(WorkingGroupMember.id).where(
            WorkingGroupMember.working_group_id == working_group_id,
            WorkingGroupMember.user_id == user_id,
        )
    )
    return found is not None


async def get_working_group_role(
    db: AsyncSession,
    user_id: uuid.UUID,
    working_group_id: uuid.UUID | None,
) -> str | None:
    if working_group_id is None:
        return None
    return await db.scalar(
        select(WorkingGroupMember.role).where(
            WorkingGroupMember.working_group_id == working_group_id,
            WorkingGroupMember.user_id == user_id,
        )
    )


async def is_front_desk_member(db: AsyncSession, user_id: uuid.UUID, community_id: uuid.UUID | None) -> bool:
    """Member of a community front desk group (FRONT_DOOR_TEAM, or a group named like "frontdesk")."""
    if community_id is None:
        return False
    found = await db.scalar(
        select(WorkingGroupMember.id)
        .join(WorkingGroup, WorkingGroup.id == WorkingGroupMember.working_group_id)
        .where(
            WorkingGroup.community_id == community_id,
            WorkingGroupMember.user_id == user_id,
            or_(
                WorkingGroup.type == WorkingGroupType.FRONT_DOOR_TEAM.value,
                WorkingGroup.name.ilike("%frontdesk%"),
                WorkingGroup.name.ilike("%front desk%"),
            ),
        )
        .limit(1)
    )
    return found is not None


async def get_household_member_ids(db: AsyncSession, household_id: uuid.UUID) -> list[uuid.UUID]:
    result = await db.execute(
        select(HouseholdMember.user_id).where(HouseholdMember.household_id == household_id)
    )
    return list(result.scalars().all())


async def get_front_desk_user_ids(db: AsyncSession, building: Building) -> list[uuid.UUID]:
    """
    Front desk staff serving a building.

    FRONT_DOOR_TEAM groups of the building's community whose permission covers
    every building, or this building specifically. Users appear once even when
    they sit in several matching groups.
    """
    if building.community_id is None:
        return []

    stmt = (
        select(WorkingGroupMember.user_id)
        .join(WorkingGroup, WorkingGroup.id == WorkingGroupMember.working_group_id)
        .join(WorkingGroupPermission, WorkingGroupPermission.working_group_id == WorkingGroup.id)
        .where(
            WorkingGroup.community_id == building.community_id,
            WorkingGroup.type == WorkingGroupType.FRONT_DOOR_TEAM.value,
            or_(
                WorkingGroupPermission.scope == PermissionScope.ALL_BUILDINGS.value,
                and_(
                    WorkingGroupPermission.scope == PermissionScope.SPECIFIC_BUILDING.value,
                    WorkingGroupPermission.scope_id == building.id,
                ),
            ),
        )
    )
    result = await db.execute(stmt)
    return list(dict.fromkeys(result.scalars().all()))


async def get_building_community_id(db: AsyncSession, building_id: uuid.UUID | None) -> uuid.UUID | None:
    if building_id is None:
        return None
    return await db.scalar(select(Building.community_id).where(Building.id == building_id))


async def is_building_or_community_manager(
    db: AsyncSession,
    user: User,
    building_id: uuid.UUID | None = None,
    community_id: uuid.UUID | None = None,
) -> bool:
    """ADMIN/MANAGER of the building, or of its community; platform admins always pass."""
    if user.is_admin:
        return True
    if building_id is not None:
        if await get_building_role(db, user.id, building_id) in MANAGER_ROLES:
            return True
        if community_id is None:
            community_id = await get_building_community_id(db, building_id)
    return await get_community_role(db, user.id, community_id) in MANAGER_ROLES


async def can_message_household(db: AsyncSession, user: User, household: Household) -> bool:
    """Front desk access to a household: admins, building/community managers, front desk staff."""
    if user.is_admin:
        return True
    community_id = await get_building_community_id(db, household.building_id)
    if await is_building_or_community_manager(db, user, household.building_id, community_id):
        return True
    return await is_front_desk_member(db, user.id, community_id)


async def get_working_group_member_ids(db: AsyncSession, working_group_id: uuid.UUID | None) -> list[uuid.UUID]:
    if working_group_id is None:
        return []
    result = await db.execute(
        select(WorkingGroupMember.user_id).where(WorkingGroupMember.working_group_id == working_group_id)
    )
    return list(result.scalars().all())


def managed_scope_filters(user_id: uuid.UUID):
    """Subqueries of the building and community ids a user manages."""
    buildings = select(BuildingMember.building_id).where(
        BuildingMember.user_id == user_id,
        BuildingMember.role.in_(MANAGER_ROLES),
    )
    communities = select(CommunityMember.community_id).where(
        CommunityMember.user_id == user_id,
        CommunityMember.role.in_(MANAGER_ROLES),
    )
    return buildings, communities


def household_ids_of(user_id: uuid.UUID):
    return select(HouseholdMember.household_id).where(HouseholdMember.user_id == user_id)
