"""
Default routing of a new ticket by its category.
"""
from src.modules.maintenance.models import RoutingType, TicketCategory, TicketStatus

CATEGORY_ROUTING: dict[TicketCategory, RoutingType] = {
    TicketCategory.BUILDING_MAINTENANCE: RoutingType.INTERNAL_BUILDING,
    TicketCategory.MAIL_SERVICE: RoutingType.INTERNAL_BUILDING,
    TicketCategory.PACKAGE_SERVICE: RoutingType.INTERNAL_BUILDING,
    TicketCategory.DOORBELL_SERVICE: RoutingType.INTERNAL_BUILDING,
    TicketCategory.HOUSE_CLEANING: RoutingType.INTERNAL_COMMUNITY,
    TicketCategory.FOOD_ORDER: RoutingType.INTERNAL_COMMUNITY,
    TicketCategory.OTHER: RoutingType.INTERNAL_COMMUNITY,
    TicketCategory.CAR_SERVICE: RoutingType.EXTERNAL_SUPPLIER,
    TicketCategory.APPLIANCE_REPAIR: RoutingType.EXTERNAL_SUPPLIER,
    TicketCategory.WATER_FILTER: RoutingType.EXTERNAL_SUPPLIER,
    TicketCategory.SMART_HOME: RoutingType.EXTERNAL_SUPPLIER,
}

# Statuses from which a household may sign off and close the ticket
COMPLETED_STATUSES = frozenset({
    TicketStatus.WORK_COMPLETED.value,
    TicketStatus.SIGNED_OFF_BY_CREW.value,
    TicketStatus.SIGNED_OFF_BY_SUPPLIER.value,
})

FINAL_STATUSES = frozenset({TicketStatus.CLOSED.value, TicketStatus.CANCELLED.value})


def default_routing(category: TicketCategory | str) -> RoutingType:
    return CATEGORY_ROUTING.get(TicketCategory(category), RoutingType.INTERNAL_COMMUNITY)
