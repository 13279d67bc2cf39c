"""
Maintenance Module - API Router
"""
import uuid

from fastapi import APIRouter, status

from src.modules.maintenance.dependencies import MaintenanceServiceDep
from src.modules.maintenance.models import TicketStatus
from src.modules.maintenance.schemas import (
    TicketComplete,
    TicketCreate,
    TicketResponse,
    TicketSignoff,
    TicketUpdate,
)

router = APIRouter(prefix="/maintenance/tickets", tags=["Maintenance"])


@router.post("", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def create_ticket(data: TicketCreate, service: MaintenanceServiceDep) -> TicketResponse:
    """Open a ticket for one of the caller's households. Routing follows the category."""
    ticket = await service.create_ticket(data)
    return TicketResponse.model_validate(ticket)


@router.get("", response_model=list[TicketResponse])
async def list_tickets(
    service: MaintenanceServiceDep,
    status: TicketStatus | None = None,
    household_id: uuid.UUID | None = None,
) -> list[TicketResponse]:
    tickets = await service.list_tickets(status=status, household_id=household_id)
    return [TicketResponse.model_validate(t) for t in tickets]


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(ticket_id: uuid.UUID, service: MaintenanceServiceDep) -> TicketResponse:
    ticket = await service.get_ticket(ticket_id)
    return TicketResponse.model_validate(ticket)


@router.patch("/{ticket_id}", response_model=TicketResponse)
async def update_ticket(ticket_id: uuid.UUID, data: TicketUpdate, service: MaintenanceServiceDep) -> TicketResponse:
    ticket = await service.update_ticket(ticket_id, data)
    return TicketResponse.model_validate(ticket)


@router.post("/{ticket_id}/complete", response_model=TicketResponse)
async def complete_ticket(
    ticket_id: uuid.UUID,
    data: TicketComplete,
    service: MaintenanceServiceDep,
) -> TicketResponse:
    ticket = await service.complete_ticket(ticket_id, data)
    return TicketResponse.model_validate(ticket)


@router.post("/{ticket_id}/signoff", response_model=TicketResponse)
async def signoff_ticket(
    ticket_id: uuid.UUID,
    data: TicketSignoff,
    service: MaintenanceServiceDep,
) -> TicketResponse:
    """Crew lead, supplier (admin) or household sign-off. A household sign-off closes the ticket."""
    ticket = await service.signoff_ticket(ticket_id, data)
    return TicketResponse.model_validate(ticket)
