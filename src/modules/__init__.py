"""
Habitat Backend Modules

- auth: Users, local credentials, JWT
- property: Communities, buildings, households, working groups, role tables
- inventory: Rooms, cabinets, categories, items and item history
- maintenance: Maintenance tickets, routing, sign-off
- catering: Menu, time slots, food orders
- workflows: Templates, workflows, steps, tasks, task logs
- messaging: Conversations, messages, call sessions
- doorbell: Doorbells, call sessions, front desk routing
- notifications: In-app notifications
- iot: Vendor adapters, MQTT/REST transport, devices
- facilities: Shared facilities, opening hours, reservations
- deliveries: Package lockers, parcels, mailboxes
- announcements: System, community and building announcements
- join_requests: Requests to join a community, building or household
"""
import importlib

MODEL_MODULES = (
    "src.modules.auth.models",
    "src.modules.property.models",
    "src.modules.inventory.models",
    "src.modules.maintenance.models",
    "src.modules.catering.models",
    "src.modules.workflows.models",
    "src.modules.messaging.models",
    "src.modules.doorbell.models",
    "src.modules.notifications.models",
    "src.modules.iot.models",
    "src.modules.facilities.models",
    "src.modules.deliveries.models",
    "src.modules.announcements.models",
    "src.modules.join_requests.models",
)


def import_all_models() -> None:
    """Import every models module so Base.metadata knows all tables."""
    for module in MODEL_MODULES:
        importlib.import_module(module)
