"""
Deliveries Module - API Router
"""
import uuid

from fastapi import APIRouter, status

from src.modules.deliveries.dependencies import DeliveryServiceDep
from src.modules.deliveries.models import PackageStatus
from src.modules.deliveries.schemas import (
    LockerCreate,
    LockerResponse,
    MailboxCreate,
    MailboxNotifyResponse,
    MailboxResponse,
    PackageCheckIn,
    PackageCheckInResponse,
    PackageResponse,
)

router = APIRouter(tags=["Deliveries"])


# ============== Lockers ==============

@router.post(
    "/buildings/{building_id}/lockers",
    response_model=LockerResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_locker(building_id: uuid.UUID, data: LockerCreate, service: DeliveryServiceDep) -> LockerResponse:
    return LockerResponse.model_validate(await service.create_locker(building_id, data))


@router.get("/buildings/{building_id}/lockers", response_model=list[LockerResponse])
async def list_lockers(building_id: uuid.UUID, service: DeliveryServiceDep) -> list[LockerResponse]:
    return [LockerResponse.model_validate(locker) for locker in await service.list_lockers(building_id)]


# ============== Packages ==============

@router.post(
    "/buildings/{building_id}/packages/check-in",
    response_model=PackageCheckInResponse,
    status_code=status.HTTP_201_CREATED,
)
async def check_in_package(
    building_id: uuid.UUID,
    data: PackageCheckIn,
    service: DeliveryServiceDep,
) -> PackageCheckInResponse:
    """Place a parcel in a locker and notify every member of the household."""
    package, locker, sent = await service.check_in(building_id, data)
    return PackageCheckInResponse(
        package=PackageResponse.model_validate(package),
        locker=LockerResponse.model_validate(locker),
        notifications_sent=sent,
    )


@router.post("/packages/{package_id}/pickup", response_model=PackageResponse)
async def pick_up_package(package_id: uuid.UUID, service: DeliveryServiceDep) -> PackageResponse:
    return PackageResponse.model_validate(await service.pick_up(package_id))


@router.get("/households/{household_id}/packages", response_model=list[PackageResponse])
async def list_household_packages(
    household_id: uuid.UUID,
    service: DeliveryServiceDep,
    status: PackageStatus | None = None,
) -> list[PackageResponse]:
    packages = await service.list_household_packages(household_id, status)
    return [PackageResponse.model_validate(p) for p in packages]


# ============== Mailboxes ==============

@router.post(
    "/buildings/{building_id}/mailboxes",
    response_model=MailboxResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_mailbox(building_id: uuid.UUID, data: MailboxCreate, service: DeliveryServiceDep) -> MailboxResponse:
    return MailboxResponse.model_validate(await service.create_mailbox(building_id, data))


@router.get("/buildings/{building_id}/mailboxes", response_model=list[MailboxResponse])
async def list_mailboxes(building_id: uuid.UUID, service: DeliveryServiceDep) -> list[MailboxResponse]:
    return [MailboxResponse.model_validate(m) for m in await service.list_mailboxes(building_id)]


@router.post("/buildings/{building_id}/mailboxes/{mailbox_id}/notify", response_model=MailboxNotifyResponse)
async def notify_mailbox(
    building_id: uuid.UUID,
    mailbox_id: uuid.UUID,
    service: DeliveryServiceDep,
) -> MailboxNotifyResponse:
    mailbox, sent = await service.notify_mail(building_id, mailbox_id)
    return MailboxNotifyResponse(mailbox=MailboxResponse.model_validate(mailbox), notifications_sent=sent)


@router.post("/mailboxes/{mailbox_id}/collected", response_model=MailboxResponse)
async def mark_mail_collected(mailbox_id: uuid.UUID, service: DeliveryServiceDep) -> MailboxResponse:
    return MailboxResponse.model_validate(await service.collect_mail(mailbox_id))
