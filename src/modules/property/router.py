"""
Property Module - API Router
"""
import uuid

from fastapi import APIRouter, status

from src.modules.property.dependencies import PropertyServiceDep
from src.modules.property.schemas import (
    AssignableRolesResponse,
    BuildingCreate,
    BuildingResponse,
    BuildingUpdate,
    CommunityCreate,
    CommunityResponse,
    CommunityUpdate,
    HouseholdCreate,
    HouseholdJoin,
    HouseholdMemberAdd,
    HouseholdPreview,
    HouseholdResponse,
    HouseholdUpdate,
    MemberAdd,
    MemberResponse,
    MemberRoleUpdate,
    WorkingGroupCreate,
    WorkingGroupMemberAdd,
    WorkingGroupPermissionCreate,
    WorkingGroupPermissionResponse,
    WorkingGroupResponse,
)

router = APIRouter(tags=["Property"])


# ============== Communities ==============

@router.post("/communities", response_model=CommunityResponse, status_code=status.HTTP_201_CREATED)
async def create_community(data: CommunityCreate, service: PropertyServiceDep) -> CommunityResponse:
    """Create a community; the creator becomes its ADMIN."""
    community = await service.create_community(data)
    return CommunityResponse.model_validate(community)


@router.get("/communities", response_model=list[CommunityResponse])
async def list_communities(service: PropertyServiceDep) -> list[CommunityResponse]:
    communities = await service.list_communities()
    return [CommunityResponse.model_validate(c) for c in communities]


@router.get("/communities/{community_id}", response_model=CommunityResponse)
async def get_community(community_id: uuid.UUID, service: PropertyServiceDep) -> CommunityResponse:
    community = await service.get_community(community_id)
    return CommunityResponse.model_validate(community)


@router.patch("/communities/{community_id}", response_model=CommunityResponse)
async def update_community(
    community_id: uuid.UUID,
    data: CommunityUpdate,
    service: PropertyServiceDep,
) -> CommunityResponse:
    community = await service.update_community(community_id, data)
    return CommunityResponse.model_validate(community)


@router.delete("/communities/{community_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_community(community_id: uuid.UUID, service: PropertyServiceDep) -> None:
    await service.delete_community(community_id)


@router.get("/communities/{community_id}/members", response_model=list[MemberResponse])
async def list_community_members(community_id: uuid.UUID, service: PropertyServiceDep) -> list[MemberResponse]:
    members = await service.list_community_members(community_id)
    return [MemberResponse.model_validate(m) for m in members]


@router.post(
    "/communities/{community_id}/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_community_member(
    community_id: uuid.UUID,
    data: MemberAdd,
    service: PropertyServiceDep,
) -> MemberResponse:
    member = await service.add_community_member(community_id, data)
    return MemberResponse.model_validate(member)


@router.patch("/communities/{community_id}/members/{user_id}", response_model=MemberResponse)
async def update_community_member_role(
    community_id: uuid.UUID,
    user_id: uuid.UUID,
    data: MemberRoleUpdate,
    service: PropertyServiceDep,
) -> MemberResponse:
    """Change a member's role. MANAGER may only touch roles below its own."""
    member = await service.update_community_member_role(community_id, user_id, data.role)
    return MemberResponse.model_validate(member)


@router.delete("/communities/{community_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_community_member(
    community_id: uuid.UUID,
    user_id: uuid.UUID,
    service: PropertyServiceDep,
) -> None:
    await service.remove_community_member(community_id, user_id)


@router.get("/communities/{community_id}/assignable-roles", response_model=AssignableRolesResponse)
async def get_assignable_roles(community_id: uuid.UUID, service: PropertyServiceDep) -> AssignableRolesResponse:
    return await service.get_assignable_roles(community_id)


# ============== Buildings ==============

@router.post(
    "/communities/{community_id}/buildings",
    response_model=BuildingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_building(
    community_id: uuid.UUID,
    data: BuildingCreate,
    service: PropertyServiceDep,
) -> BuildingResponse:
    building = await service.create_building(community_id, data)
    return BuildingResponse.model_validate(building)


@router.get("/communities/{community_id}/buildings", response_model=list[BuildingResponse])
async def list_buildings(community_id: uuid.UUID, service: PropertyServiceDep) -> list[BuildingResponse]:
    buildings = await service.list_buildings(community_id)
    return [BuildingResponse.model_validate(b) for b in buildings]


@router.get("/buildings/{building_id}", response_model=BuildingResponse)
async def get_building(building_id: uuid.UUID, service: PropertyServiceDep) -> BuildingResponse:
    building = await service.get_building(building_id)
    return BuildingResponse.model_validate(building)


@router.patch("/buildings/{building_id}", response_model=BuildingResponse)
async def update_building(
    building_id: uuid.UUID,
    data: BuildingUpdate,
    service: PropertyServiceDep,
) -> BuildingResponse:
    """Update a building, including its doorbell timeout."""
    building = await service.update_building(building_id, data)
    return BuildingResponse.model_validate(building)


@router.post(
    "/buildings/{building_id}/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_building_member(
    building_id: uuid.UUID,
    data: MemberAdd,
    service: PropertyServiceDep,
) -> MemberResponse:
    member = await service.add_building_member(building_id, data)
    return MemberResponse.model_validate(member)


# ============== Households ==============

@router.post("/households", response_model=HouseholdResponse, status_code=status.HTTP_201_CREATED)
async def create_household(data: HouseholdCreate, service: PropertyServiceDep) -> HouseholdResponse:
    """Create a household; the creator becomes its OWNER."""
    household = await service.create_household(data)
    return HouseholdResponse.model_validate(household)


@router.get("/households", response_model=list[HouseholdResponse])
async def list_my_households(service: PropertyServiceDep) -> list[HouseholdResponse]:
    households = await service.list_my_households()
    return [HouseholdResponse.model_validate(h) for h in households]


# Declared before /households/{household_id} so "join" is not read as an id
@router.get("/households/join", response_model=HouseholdPreview)
async def preview_invitation(code: str, service: PropertyServiceDep) -> HouseholdPreview:
    household, member_count = await service.preview_invitation(code)
    return HouseholdPreview.model_validate(household).model_copy(update={"member_count": member_count})


@router.post("/households/join", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def join_household(data: HouseholdJoin, service: PropertyServiceDep) -> MemberResponse:
    """Join a household with its invitation code as USER or VISITOR."""
    member = await service.join_household(data)
    return MemberResponse.model_validate(member)


@router.get("/households/{household_id}", response_model=HouseholdResponse)
async def get_household(household_id: uuid.UUID, service: PropertyServiceDep) -> HouseholdResponse:
    household = await service.get_household(household_id)
    return HouseholdResponse.model_validate(household)


@router.patch("/households/{household_id}", response_model=HouseholdResponse)
async def update_household(
    household_id: uuid.UUID,
    data: HouseholdUpdate,
    service: PropertyServiceDep,
) -> HouseholdResponse:
    household = await service.update_household(household_id, data)
    return HouseholdResponse.model_validate(household)


@router.post("/households/{household_id}/invitation-code", response_model=HouseholdResponse)
async def regenerate_invitation_code(household_id: uuid.UUID, service: PropertyServiceDep) -> HouseholdResponse:
    household = await service.regenerate_invitation_code(household_id)
    return HouseholdResponse.model_validate(household)


@router.get("/households/{household_id}/members", response_model=list[MemberResponse])
async def list_household_members(household_id: uuid.UUID, service: PropertyServiceDep) -> list[MemberResponse]:
    members = await service.list_household_members(household_id)
    return [MemberResponse.model_validate(m) for m in members]


@router.post(
    "/households/{household_id}/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_household_member(
    household_id: uuid.UUID,
    data: HouseholdMemberAdd,
    service: PropertyServiceDep,
) -> MemberResponse:
    member = await service.add_household_member(household_id, data)
    return MemberResponse.model_validate(member)


@router.delete("/households/{household_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_household_member(
    household_id: uuid.UUID,
    user_id: uuid.UUID,
    service: PropertyServiceDep,
) -> None:
    await service.remove_household_member(household_id, user_id)


# ============== Working Groups ==============

@router.post(
    "/communities/{community_id}/working-groups",
    response_model=WorkingGroupResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_working_group(
    community_id: uuid.UUID,
    data: WorkingGroupCreate,
    service: PropertyServiceDep,
) -> WorkingGroupResponse:
    group = await service.create_working_group(community_id, data)
    return WorkingGroupResponse.model_validate(group)


@router.get("/communities/{community_id}/working-groups", response_model=list[WorkingGroupResponse])
async def list_working_groups(community_id: uuid.UUID, service: PropertyServiceDep) -> list[WorkingGroupResponse]:
    groups = await service.list_working_groups(community_id)
    return [WorkingGroupResponse.model_validate(g) for g in groups]


@router.post(
    "/working-groups/{group_id}/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_working_group_member(
    group_id: uuid.UUID,
    data: WorkingGroupMemberAdd,
    service: PropertyServiceDep,
) -> MemberResponse:
    member = await service.add_working_group_member(group_id, data)
    return MemberResponse.model_validate(member)


@router.delete("/working-groups/{group_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_working_group_member(
    group_id: uuid.UUID,
    user_id: uuid.UUID,
    service: PropertyServiceDep,
) -> None:
    await service.remove_working_group_member(group_id, user_id)


@router.post(
    "/working-groups/{group_id}/permissions",
    response_model=WorkingGroupPermissionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_working_group_permission(
    group_id: uuid.UUID,
    data: WorkingGroupPermissionCreate,
    service: PropertyServiceDep,
) -> WorkingGroupPermissionResponse:
    """Grant a permission; SPECIFIC_BUILDING scope needs a building of the same community."""
    permission = await service.add_working_group_permission(group_id, data)
    return WorkingGroupPermissionResponse.model_validate(permission)


@router.get("/working-groups/{group_id}/permissions", response_model=list[WorkingGroupPermissionResponse])
async def list_working_group_permissions(
    group_id: uuid.UUID,
    service: PropertyServiceDep,
) -> list[WorkingGroupPermissionResponse]:
    permissions = await service.list_working_group_permissions(group_id)
    return [WorkingGroupPermissionResponse.model_validate(p) for p in permissions]
