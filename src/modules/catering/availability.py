"""
Menu item serving windows.

A menu item's own time slots replace its category's. An item with no
applicable slots at all is always available. Days follow 0=Sunday..6=Saturday
with -1 meaning every day; a slot whose end is before its start wraps past
midnight.
"""
from collections.abc import Iterable
from datetime import datetime

from src.modules.catering.models import ALL_DAYS, CateringMenuItem, CateringTimeSlot


def sunday_based_weekday(at: datetime) -> int:
    return (at.weekday() + 1) % 7


def effective_slots(item: CateringMenuItem, slots: Iterable[CateringTimeSlot]) -> list[CateringTimeSlot]:
    slots = list(slots)
    own = [s for s in slots if s.menu_item_id == item.id]
    if own:
        return own
    if item.category_id is None:
        return []
    return [s for s in slots if s.menu_item_id is None and s.category_id == item.category_id]


def slot_matches(slot: CateringTimeSlot, at: datetime) -> bool:
    if slot.day_of_week != ALL_DAYS and slot.day_of_week != sunday_based_weekday(at):
        return False

    current = at.time().replace(second=0, microsecond=0, tzinfo=None)
    start, end = slot.start_time, slot.end_time
    if end < start:
        return current >= start or current <= end
    return start <= current <= end


def is_item_available(item: CateringMenuItem, slots: Iterable[CateringTimeSlot], at: datetime) -> bool:
    applicable = effective_slots(item, slots)
    if not applicable:
        return True
    return any(slot_matches(slot, at) for slot in applicable)
