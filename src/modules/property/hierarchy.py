"""
Property Module - Cascading membership

Joining a household makes the user a MEMBER of its building and community,
and joining a building makes them a MEMBER of its community. Existing
memberships are never downgraded.
"""
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.logging import get_logger
from src.modules.property.models import Building, BuildingMember, CommunityMember, CommunityRole
from src.modules.property.permissions import get_building_role, get_community_role

logger = get_logger(__name__)


async def join_community(db: AsyncSession, user_id: uuid.UUID, community_id: uuid.UUID | None) -> bool:
    if community_id is None or await get_community_role(db, user_id, community_id) is not None:
        return False
    db.add(CommunityMember(community_id=community_id, user_id=user_id, role=CommunityRole.MEMBER.value))
    return True


async def join_building(db: AsyncSession, user_id: uuid.UUID, building_id: uuid.UUID | None) -> list[str]:
    """Add building and community membership where missing; returns the scopes joined."""
    if building_id is None:
        return []
    building = await db.get(Building, building_id)
    if building is None:
        return []

    joined = []
    if await get_building_role(db, user_id, building.id) is None:
        db.add(BuildingMember(building_id=building.id, user_id=user_id, role=CommunityRole.MEMBER.value))
        joined.append("building")
    if await join_community(db, user_id, building.community_id):
        joined.append("community")
    if joined:
        await db.flush()
        logger.info("Cascaded membership", user_id=str(user_id), building_id=str(building.id), joined=joined)
    return joined
