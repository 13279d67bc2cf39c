import uuid
from datetime import datetime, timezone

from src.modules.maintenance.numbering import (
    format_order_number,
    format_ticket_number,
    next_order_number,
    next_sequence,
    next_ticket_number,
)
from src.modules.maintenance.routing import default_routing
from src.modules.maintenance.models import MaintenanceTicket, RoutingType, TicketCategory

NOW = datetime(2026, 4, 19, 8, 30, tzinfo=timezone.utc)


def test_formats():
    assert format_ticket_number(NOW, 7) == "MT-20260419-0007"
    assert format_order_number(NOW, 42) == "ORD-2026-000042"


def test_next_sequence():
    assert next_sequence(None) == 1
    assert next_sequence("MT-20260419-0009") == 10
    assert next_sequence("garbage") == 1


async def test_first_numbers_of_the_period(db):
    assert await next_ticket_number(db, NOW) == "MT-20260419-0001"
    assert await next_order_number(db, NOW) == "ORD-2026-000001"


async def test_sequence_continues_past_padding_width(db, estate):
    for number in ("MT-20260419-9998", "MT-20260419-10000", "MT-20260419-9999"):
        db.add(MaintenanceTicket(
            ticket_number=number,
            household_id=uuid.UUID(estate.household_id),
            title="Leak",
            category=TicketCategory.BUILDING_MAINTENANCE.value,
            routing_type=RoutingType.INTERNAL_BUILDING.value,
        ))
    await db.commit()

    assert await next_ticket_number(db, NOW) == "MT-20260419-10001"


def test_default_routing_by_category():
    assert default_routing(TicketCategory.BUILDING_MAINTENANCE) == RoutingType.INTERNAL_BUILDING
    assert default_routing(TicketCategory.FOOD_ORDER) == RoutingType.INTERNAL_COMMUNITY
    assert default_routing(TicketCategory.APPLIANCE_REPAIR) == RoutingType.EXTERNAL_SUPPLIER
