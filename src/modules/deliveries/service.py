"""
Deliveries Module - Business Logic Service

Front desk staff check parcels into lockers and flag mailboxes; residents are
notified and mark them collected.
"""
import uuid
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from src.core.logging import get_logger
from src.core.models import utc_now
from src.modules.auth.models import User
from src.modules.deliveries.models import Mailbox, Package, PackageLocker, PackageStatus
from src.modules.deliveries.schemas import LockerCreate, MailboxCreate, PackageCheckIn
from src.modules.notifications.models import NotificationType
from src.modules.notifications.service import NotificationService
from src.modules.property.models import Building, Household
from src.modules.property.permissions import (
    get_household_member_ids,
    get_household_role,
    is_building_or_community_manager,
)

logger = get_logger(__name__)


class DeliveryService:
    def __init__(self, db: AsyncSession, user: User):
        self.db = db
        self.user = user

    # ============== Access ==============

    async def _get_building(self, building_id: uuid.UUID) -> Building:
        building = await self.db.get(Building, building_id)
        if not building:
            raise NotFoundError("Building", building_id)
        return building

    async def _require_manager(self, building: Building) -> None:
        if not await is_building_or_community_manager(self.db, self.user, building.id, building.community_id):
            raise ForbiddenError("Insufficient permissions")

    async def _household_in_building(self, building: Building, household_id: uuid.UUID | None) -> Household | None:
        if household_id is None:
            return None
        household = await self.db.get(Household, household_id)
        if not household:
            raise NotFoundError("Household", household_id)
        if household.building_id != building.id:
            raise BadRequestError("Household does not belong to this building")
        return household

    async def _require_resident_or_manager(self, household_id: uuid.UUID | None, building_id: uuid.UUID) -> None:
        if household_id and await get_household_role(self.db, self.user.id, household_id) is not None:
            return
        if not await is_building_or_community_manager(self.db, self.user, building_id):
            raise ForbiddenError("Insufficient permissions")

    # ============== Lockers ==============

    async def create_locker(self, building_id: uuid.UUID, data: LockerCreate) -> PackageLocker:
        building = await self._get_building(building_id)
        await self._require_manager(building)
        duplicate = await self.db.scalar(
            select(PackageLocker.id).where(
                PackageLocker.building_id == building.id,
                PackageLocker.locker_number == data.locker_number,
            )
        )
        if duplicate is not None:
            raise ConflictError(f"Locker {data.locker_number} already exists in this building")

        locker = PackageLocker(building_id=building.id, **data.model_dump())
        self.db.add(locker)
        await self.db.commit()
        await self.db.refresh(locker)
        return locker

    async def list_lockers(self, building_id: uuid.UUID) -> Sequence[PackageLocker]:
        building = await self._get_building(building_id)
        await self._require_manager(building)
        result = await self.db.execute(
            select(PackageLocker)
            .where(PackageLocker.building_id == building.id)
            .order_by(PackageLocker.locker_number)
        )
        return result.scalars().all()

    # ============== Packages ==============

    async def check_in(self, building_id: uuid.UUID, data: PackageCheckIn) -> tuple[Package, PackageLocker, int]:
        """Put a parcel in a free locker and tell the household where it is."""
        building = await self._get_building(building_id)
        await self._require_manager(building)

        locker = await self.db.get(PackageLocker, data.locker_id)
        if not locker:
            raise NotFoundError("PackageLocker", data.locker_id)
        if locker.building_id != building.id:
            raise BadRequestError("Locker does not belong to this building")
        if locker.is_occupied:
            raise BadRequestError("Locker is already occupied")
        household = await self._household_in_building(building, data.household_id)

        package = Package(
            building_id=building.id,
            locker_id=locker.id,
            household_id=household.id,
            package_number=data.package_number,
            description=data.description,
            checked_in_by=self.user.id,
            status=PackageStatus.PENDING.value,
        )
        locker.is_occupied = True
        self.db.add(package)
        await self.db.flush()

        message = f"You have a package in locker {locker.locker_number}"
        if data.package_number:
            message += f" ({data.package_number})"
        sent = await NotificationService(self.db).send_bulk(
            await get_household_member_ids(self.db, household.id),
            title="Package Received",
            message=message,
            type=NotificationType.PACKAGE_RECEIVED,
            data={"package_id": str(package.id), "locker_number": locker.locker_number},
            source_type="package",
            source_id=package.id,
        )
        await self.db.commit()
        await self.db.refresh(package)
        await self.db.refresh(locker)

        logger.info(
            "Package checked in",
            package_id=str(package.id),
            locker_id=str(locker.id),
            household_id=str(household.id),
            notified=len(sent),
        )
        return package, locker, len(sent)

    async def pick_up(self, package_id: uuid.UUID) -> Package:
        package = await self.db.get(Package, package_id)
        if not package:
            raise NotFoundError("Package", package_id)
        await self._require_resident_or_manager(package.household_id, package.building_id)
        if package.status != PackageStatus.PENDING.value:
            raise BadRequestError("Package has already been picked up")

        package.status = PackageStatus.PICKED_UP.value
        package.picked_up_by = self.user.id
        package.picked_up_at = utc_now()
        if package.locker_id:
            locker = await self.db.get(PackageLocker, package.locker_id)
            if locker:
                locker.is_occupied = False
        await self.db.commit()
        await self.db.refresh(package)

        logger.info("Package picked up", package_id=str(package.id))
        return package

    async def list_household_packages(
        self,
        household_id: uuid.UUID,
        status: PackageStatus | None = None,
    ) -> Sequence[Package]:
        household = await self.db.get(Household, household_id)
        if not household:
            raise NotFoundError("Household", household_id)
        await self._require_resident_or_manager(household.id, household.building_id)

        query = select(Package).where(Package.household_id == household.id)
        if status is not None:
            query = query.where(Package.status == status.value)
        result = await self.db.execute(query.order_by(Package.created_at.desc()))
        return result.scalars().all()

    # ============== Mailboxes ==============

    async def create_mailbox(self, building_id: uuid.UUID, data: MailboxCreate) -> Mailbox:
        building = await self._get_building(building_id)
        await self._require_manager(building)
        await self._household_in_building(building, data.household_id)
        duplicate = await self.db.scalar(
            select(Mailbox.id).where(
                Mailbox.building_id == building.id,
                Mailbox.mailbox_number == data.mailbox_number,
            )
        )
        if duplicate is not None:
            raise ConflictError(f"Mailbox {data.mailbox_number} already exists in this building")

        mailbox = Mailbox(building_id=building.id, **data.model_dump())
        self.db.add(mailbox)
        await self.db.commit()
        await self.db.refresh(mailbox)
        return mailbox

    async def list_mailboxes(self, building_id: uuid.UUID) -> Sequence[Mailbox]:
        building = await self._get_building(building_id)
        await self._require_manager(building)
        result = await self.db.execute(
            select(Mailbox).where(Mailbox.building_id == building.id).order_by(Mailbox.mailbox_number)
        )
        return result.scalars().all()

    async def notify_mail(self, building_id: uuid.UUID, mailbox_id: uuid.UUID) -> tuple[Mailbox, int]:
        building = await self._get_building(building_id)
        await self._require_manager(building)

        mailbox = await self.db.get(Mailbox, mailbox_id)
        if not mailbox:
            raise NotFoundError("Mailbox", mailbox_id)
        if mailbox.building_id != building.id:
            raise BadRequestError("Mailbox does not belong to this building")
        if mailbox.household_id is None:
            raise BadRequestError("Mailbox is not linked to a household")

        mailbox.has_mail = True
        mailbox.last_mail_at = utc_now()
        sent = await NotificationService(self.db).send_bulk(
            await get_household_member_ids(self.db, mailbox.household_id),
            title="You have mail",
            message=f"Mailbox {mailbox.mailbox_number} has new mail. Please collect it from the common area.",
            type=NotificationType.MAIL_RECEIVED,
            data={
                "mailbox_id": str(mailbox.id),
                "mailbox_number": mailbox.mailbox_number,
                "building_name": building.name,
            },
            source_type="mailbox",
            source_id=mailbox.id,
        )
        await self.db.commit()
        await self.db.refresh(mailbox)

        logger.info("Mail notification sent", mailbox_id=str(mailbox.id), notified=len(sent))
        return mailbox, len(sent)

    async def collect_mail(self, mailbox_id: uuid.UUID) -> Mailbox:
        mailbox = await self.db.get(Mailbox, mailbox_id)
        if not mailbox:
            raise NotFoundError("Mailbox", mailbox_id)
        await self._require_resident_or_manager(mailbox.household_id, mailbox.building_id)

        mailbox.has_mail = False
        await self.db.commit()
        await self.db.refresh(mailbox)
        return mailbox
