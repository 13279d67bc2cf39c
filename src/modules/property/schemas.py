"""
Property Module - Pydantic Schemas
"""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.modules.property.models import (
    CommunityRole,
    HouseholdRole,
    PermissionScope,
    WorkingGroupRole,
    WorkingGroupType,
)


# ============== Community ==============

class CommunityCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, examples=["Sunrise Gardens"])
    description: str | None = None
    address: str | None = None


class CommunityUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    address: str | None = None


class CommunityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: str | None = None
    address: str | None = None
    created_by: uuid.UUID | None = None
    created_at: datetime


class MemberAdd(BaseModel):
    """Add a user to a community or building."""
    user_id: uuid.UUID
    role: CommunityRole = CommunityRole.MEMBER


class MemberRoleUpdate(BaseModel):
    role: CommunityRole


class MemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    role: str
    created_at: datetime


class AssignableRolesResponse(BaseModel):
    role: str | None
    assignable_roles: list[str]
    permissions: dict[str, bool]


# ============== Building ==============

class BuildingCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    address: str | None = None
    floor_count: int | None = Field(None, ge=1, le=300)
    doorbell_timeout_seconds: int = Field(default=30, ge=5, le=600)


class BuildingUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    address: str | None = None
    floor_count: int | None = Field(None, ge=1, le=300)
    doorbell_timeout_seconds: int | None = Field(
        None,
        ge=5,
        le=600,
        description="Seconds before an unanswered doorbell call goes to the front desk",
    )


class BuildingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    community_id: uuid.UUID | None = None
    name: str
    address: str | None = None
    floor_count: int | None = None
    doorbell_timeout_seconds: int | None = None
    created_at: datetime


# ============== Household ==============

class HouseholdCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, examples=["Apartment 12B"])
    description: str | None = None
    building_id: uuid.UUID | None = None
    apartment_no: str | None = Field(None, max_length=50)


class HouseholdUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    apartment_no: str | None = Field(None, max_length=50)


class HouseholdResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: str | None = None
    building_id: uuid.UUID | None = None
    apartment_no: str | None = None
    invitation_code: str
    created_at: datetime


class HouseholdMemberAdd(BaseModel):
    user_id: uuid.UUID
    role: HouseholdRole = HouseholdRole.USER


class HouseholdJoin(BaseModel):
    invitation_code: str = Field(..., min_length=1, max_length=12)
    role: HouseholdRole = HouseholdRole.USER

    @field_validator("invitation_code")
    @classmethod
    def normalise_code(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("role")
    @classmethod
    def no_self_promotion(cls, value: HouseholdRole) -> HouseholdRole:
        if value == HouseholdRole.OWNER:
            raise ValueError("An invitation code cannot grant the OWNER role")
        return value


class HouseholdPreview(BaseModel):
    """What someone holding an invitation code may see before joining."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    apartment_no: str | None = None
    building_id: uuid.UUID | None = None
    member_count: int = 0


# ============== Working groups ==============

class WorkingGroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, examples=["Lobby Front Desk"])
    description: str | None = None
    type: WorkingGroupType = WorkingGroupType.OTHER


class WorkingGroupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    community_id: uuid.UUID
    name: str
    description: str | None = None
    type: str
    created_at: datetime


class WorkingGroupMemberAdd(BaseModel):
    user_id: uuid.UUID
    role: WorkingGroupRole = WorkingGroupRole.MEMBER


class WorkingGroupPermissionCreate(BaseModel):
    permission: str = Field(..., min_length=1, max_length=50, examples=["VIEW", "MANAGE_SECURITY"])
    scope: PermissionScope = PermissionScope.ALL_BUILDINGS
    scope_id: uuid.UUID | None = None


class WorkingGroupPermissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    working_group_id: uuid.UUID
    permission: str
    scope: str
    scope_id: uuid.UUID | None = None
