"""
Property Module - Database Models

Hierarchy:
    Community
    ├── Building (doorbell timeout, building staff)
    │   └── Household (residents)
    └── WorkingGroup (front desk, maintenance crew, kitchen...)
        ├── WorkingGroupMember
        └── WorkingGroupPermission (which buildings the group serves)
"""
import secrets
import string
import uuid
from enum import Enum

from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.core.models import Base


class CommunityRole(str, Enum):
    """Roles inside a community or a building."""
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    MEMBER = "MEMBER"
    VIEWER = "VIEWER"


# Buildings share the community role set
BuildingRole = CommunityRole


class HouseholdRole(str, Enum):
    OWNER = "OWNER"
    USER = "USER"
    VISITOR = "VISITOR"


class WorkingGroupType(str, Enum):
    FRONT_DOOR_TEAM = "FRONT_DOOR_TEAM"
    MAINTENANCE = "MAINTENANCE"
    CATERING = "CATERING"
    FOOD_SERVICE = "FOOD_SERVICE"
    KITCHEN = "KITCHEN"
    ADMINISTRATION = "ADMINISTRATION"
    SECURITY = "SECURITY"
    OTHER = "OTHER"


class WorkingGroupRole(str, Enum):
    LEADER = "LEADER"
    MEMBER = "MEMBER"


class PermissionScope(str, Enum):
    """Where a working group permission applies."""
    ALL_BUILDINGS = "ALL_BUILDINGS"
    SPECIFIC_BUILDING = "SPECIFIC_BUILDING"
    SPECIFIC_HOUSEHOLD = "SPECIFIC_HOUSEHOLD"
    ALL_HOUSEHOLDS = "ALL_HOUSEHOLDS"


_INVITATION_ALPHABET = string.ascii_uppercase + string.digits


def generate_invitation_code() -> str:
    return "".join(secrets.choice(_INVITATION_ALPHABET) for _ in range(8))


# ============== Community ==============

class Community(Base):
    __tablename__ = "community"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("user.id", ondelete="SET NULL"),
        nullable=True,
    )


class CommunityMember(Base):
    __tablename__ = "community_member"

    __table_args__ = (
        UniqueConstraint("community_id", "user_id", name="uq_community_member_user"),
    )

    community_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("community.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[str] = mapped_column(String(20), default=CommunityRole.MEMBER.value, nullable=False)


# ============== Building ==============

class Building(Base):
    __tablename__ = "building"

    community_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("community.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    floor_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    doorbell_timeout_seconds: Mapped[int | None] = mapped_column(
        Integer,
        default=30,
        nullable=True,
        comment="Seconds a call may ring before it is routed to the front desk",
    )


class BuildingMember(Base):
    __tablename__ = "building_member"

    __table_args__ = (
        UniqueConstraint("building_id", "user_id", name="uq_building_member_user"),
    )

    building_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("building.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[str] = mapped_column(String(20), default=CommunityRole.MEMBER.value, nullable=False)


# ============== Household ==============

class Household(Base):
    __tablename__ = "household"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    building_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("building.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    apartment_no: Mapped[str | None] = mapped_column(String(50), nullable=True)
    invitation_code: Mapped[str] = mapped_column(
        String(12),
        default=generate_invitation_code,
        unique=True,
        nullable=False,
    )


class HouseholdMember(Base):
    __tablename__ = "household_member"

    __table_args__ = (
        UniqueConstraint("household_id", "user_id", name="uq_household_member_user"),
    )

    household_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("household.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[str] = mapped_column(String(20), default=HouseholdRole.USER.value, nullable=False)


# ============== Working Groups ==============

class WorkingGroup(Base):
    __tablename__ = "working_group"

    __table_args__ = (
        Index("ix_working_group_community_type", "community_id", "type"),
    )

    community_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("community.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(30), default=WorkingGroupType.OTHER.value, nullable=False)


class WorkingGroupMember(Base):
    __tablename__ = "working_group_member"

    __table_args__ = (
        UniqueConstraint("working_group_id", "user_id", name="uq_working_group_member_user"),
    )

    working_group_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("working_group.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[str] = mapped_column(String(20), default=WorkingGroupRole.MEMBER.value, nullable=False)


class WorkingGroupPermission(Base):
    __tablename__ = "working_group_permission"

    working_group_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("working_group.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    permission: Mapped[str] = mapped_column(String(50), nullable=False, comment="VIEW, EDIT, MANAGE_BUILDING, MANAGE_SECURITY...")
    scope: Mapped[str] = mapped_column(String(30), default=PermissionScope.ALL_BUILDINGS.value, nullable=False)
    scope_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
        comment="Building id for SPECIFIC_BUILDING scope",
    )
