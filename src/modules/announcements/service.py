"""
Announcements Module - Business Logic Service

An announcement has a source (who speaks: the platform, a community or a
building) and a target (who hears it). A household sees an announcement when
the target covers it:

- ALL_HOUSEHOLDS: every household under the source
- COMMUNITY / BUILDING: households in that community or building
- SPECIFIC_HOUSEHOLD: that household only
"""
import uuid

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from src.core.logging import get_logger
from src.core.models import utc_now
from src.modules.announcements.models import (
    Announcement,
    AnnouncementRead,
    AnnouncementSource,
    AnnouncementTarget,
)
from src.modules.announcements.schemas import AnnouncementCreate
from src.modules.auth.models import User
from src.modules.property.models import Building, Community, Household
from src.modules.property.permissions import (
    MANAGER_ROLES,
    get_building_community_id,
    get_community_role,
    get_household_role,
    is_building_or_community_manager,
)

logger = get_logger(__name__)


class AnnouncementService:
    def __init__(self, db: AsyncSession, user: User):
        self.db = db
        self.user = user

    # ============== Authoring ==============

    async def _can_speak_for(self, source: str, source_id: uuid.UUID | None) -> bool:
        if self.user.is_admin:
            return True
        if source == AnnouncementSource.COMMUNITY.value:
            return await get_community_role(self.db, self.user.id, source_id) in MANAGER_ROLES
        if source == AnnouncementSource.BUILDING.value:
            return await is_building_or_community_manager(self.db, self.user, source_id)
        return False

    async def _check_source_exists(self, data: AnnouncementCreate) -> None:
        if data.source == AnnouncementSource.COMMUNITY and not await self.db.get(Community, data.source_id):
            raise NotFoundError("Community", data.source_id)
        if data.source == AnnouncementSource.BUILDING and not await self.db.get(Building, data.source_id):
            raise NotFoundError("Building", data.source_id)

    async def _check_target_in_scope(self, data: AnnouncementCreate) -> None:
        """Community and building speakers may only address households under them."""
        target, target_id = data.target_type, data.target_id
        if target == AnnouncementTarget.ALL_HOUSEHOLDS:
            return

        if target == AnnouncementTarget.COMMUNITY:
            if not await self.db.get(Community, target_id):
                raise NotFoundError("Community", target_id)
            community_id, building_id = target_id, None
        elif target == AnnouncementTarget.BUILDING:
            building = await self.db.get(Building, target_id)
            if not building:
                raise NotFoundError("Building", target_id)
            community_id, building_id = building.community_id, building.id
        else:
            household = await self.db.get(Household, target_id)
            if not household:
                raise NotFoundError("Household", target_id)
            building_id = household.building_id
            community_id = await get_building_community_id(self.db, building_id)

        if data.source == AnnouncementSource.COMMUNITY and community_id != data.source_id:
            raise BadRequestError("Target is outside this community")
        if data.source == AnnouncementSource.BUILDING and building_id != data.source_id:
            raise BadRequestError("Target is outside this building")

    async def create_announcement(self, data: AnnouncementCreate) -> Announcement:
        await self._check_source_exists(data)
        if not await self._can_speak_for(data.source.value, data.source_id):
            raise ForbiddenError("You cannot publish announcements for this source")
        await self._check_target_in_scope(data)

        announcement = Announcement(
            source=data.source.value,
            source_id=data.source_id,
            title=data.title,
            message=data.message,
            target_type=data.target_type.value,
            target_id=data.target_id,
            expires_at=data.expires_at,
            created_by=self.user.id,
        )
        self.db.add(announcement)
        await self.db.commit()
        await self.db.refresh(announcement)

        logger.info(
            "Announcement published",
            announcement_id=str(announcement.id),
            source=announcement.source,
            target_type=announcement.target_type,
        )
        return announcement

    async def deactivate(self, announcement_id: uuid.UUID) -> None:
        announcement = await self._get(announcement_id)
        if announcement.created_by != self.user.id and not await self._can_speak_for(
            announcement.source, announcement.source_id
        ):
            raise ForbiddenError("You cannot remove this announcement")
        announcement.is_active = False
        await self.db.commit()
        logger.info("Announcement deactivated", announcement_id=str(announcement.id))

    # ============== Reading ==============

    async def _get(self, announcement_id: uuid.UUID) -> Announcement:
        announcement = await self.db.get(Announcement, announcement_id)
        if not announcement:
            raise NotFoundError("Announcement", announcement_id)
        return announcement

    @staticmethod
    def _visible_to(household: Household, building_id: uuid.UUID | None, community_id: uuid.UUID | None):
        everyone = [Announcement.source == AnnouncementSource.SYSTEM.value]
        targeted = [
            and_(
                Announcement.target_type == AnnouncementTarget.SPECIFIC_HOUSEHOLD.value,
                Announcement.target_id == household.id,
            )
        ]
        if community_id is not None:
            everyone.append(and_(
                Announcement.source == AnnouncementSource.COMMUNITY.value,
                Announcement.source_id == community_id,
            ))
            targeted.append(and_(
                Announcement.target_type == AnnouncementTarget.COMMUNITY.value,
                Announcement.target_id == community_id,
            ))
        if building_id is not None:
            everyone.append(and_(
                Announcement.source == AnnouncementSource.BUILDING.value,
                Announcement.source_id == building_id,
            ))
            targeted.append(and_(
                Announcement.target_type == AnnouncementTarget.BUILDING.value,
                Announcement.target_id == building_id,
            ))
        return or_(
            and_(Announcement.target_type == AnnouncementTarget.ALL_HOUSEHOLDS.value, or_(*everyone)),
            *targeted,
        )

    async def list_for_household(
        self,
        household_id: uuid.UUID,
        source: AnnouncementSource | None = None,
    ) -> tuple[list[Announcement], set[uuid.UUID]]:
        """Active, unexpired announcements for a household plus the ids this user has read."""
        household = await self.db.get(Household, household_id)
        if not household:
            raise NotFoundError("Household", household_id)
        if not self.user.is_admin and await get_household_role(self.db, self.user.id, household.id) is None:
            raise ForbiddenError("You are not a member of this household")

        community_id = await get_building_community_id(self.db, household.building_id)
        query = select(Announcement).where(
            Announcement.is_active.is_(True),
            or_(Announcement.expires_at.is_(None), Announcement.expires_at > utc_now()),
            self._visible_to(household, household.building_id, community_id),
        )
        if source is not None:
            query = query.where(Announcement.source == source.value)
        result = await self.db.execute(query.order_by(Announcement.created_at.desc()))
        announcements = list(result.scalars().all())

        read_ids: set[uuid.UUID] = set()
        if announcements:
            reads = await self.db.scalars(
                select(AnnouncementRead.announcement_id).where(
                    AnnouncementRead.user_id == self.user.id,
                    AnnouncementRead.announcement_id.in_([a.id for a in announcements]),
                )
            )
            read_ids = set(reads)
        return announcements, read_ids

    async def mark_read(self, announcement_id: uuid.UUID, household_id: uuid.UUID | None = None) -> Announcement:
        announcement = await self._get(announcement_id)
        if household_id is not None and await get_household_role(self.db, self.user.id, household_id) is None:
            raise ForbiddenError("You are not a member of this household")
        existing = await self.db.scalar(
            select(AnnouncementRead.id).where(
                AnnouncementRead.announcement_id == announcement.id,
                AnnouncementRead.user_id == self.user.id,
            )
        )
        if existing is None:
            self.db.add(AnnouncementRead(
                announcement_id=announcement.id,
                user_id=self.user.id,
                household_id=household_id,
            ))
            await self.db.commit()
        return announcement


def group_by_source(announcements: list) -> dict[str, list]:
    grouped: dict[str, list] = {source.value: [] for source in AnnouncementSource}
    for announcement in announcements:
        grouped[announcement.source].append(announcement)
    return grouped
