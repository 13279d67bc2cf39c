"""
Serving windows of menu items.
"""
import uuid
from datetime import datetime, time

from src.modules.catering.availability import (
    effective_slots,
    is_item_available,
    sunday_based_weekday,
)
from src.modules.catering.models import CateringMenuItem, CateringTimeSlot

CATEGORY = uuid.uuid4()

# 2026-03-01 is a Sunday
SUNDAY_NOON = datetime(2026, 3, 1, 12, 0)
MONDAY_NOON = datetime(2026, 3, 2, 12, 0)


def item(category_id=CATEGORY):
    return CateringMenuItem(id=uuid.uuid4(), category_id=category_id, name="Noodles")


def slot(start, end, day=-1, menu_item_id=None, category_id=None):
    return CateringTimeSlot(
        id=uuid.uuid4(),
        menu_item_id=menu_item_id,
        category_id=category_id,
        day_of_week=day,
        start_time=start,
        end_time=end,
    )


def test_weekday_is_sunday_based():
    assert sunday_based_weekday(SUNDAY_NOON) == 0
    assert sunday_based_weekday(MONDAY_NOON) == 1


def test_no_slots_means_always_available():
    assert is_item_available(item(), [], SUNDAY_NOON)


def test_category_slots_apply():
    lunch = slot(time(11), time(14), category_id=CATEGORY)
    assert is_item_available(item(), [lunch], SUNDAY_NOON)
    assert not is_item_available(item(), [lunch], datetime(2026, 3, 1, 18, 0))


def test_item_slots_override_category():
    noodles = item()
    lunch = slot(time(11), time(14), category_id=CATEGORY)
    dinner = slot(time(17), time(21), menu_item_id=noodles.id)
    assert effective_slots(noodles, [lunch, dinner]) == [dinner]
    assert not is_item_available(noodles, [lunch, dinner], SUNDAY_NOON)


def test_day_of_week_filter():
    mondays = slot(time(0), time(23, 59), day=1, category_id=CATEGORY)
    assert is_item_available(item(), [mondays], MONDAY_NOON)
    assert not is_item_available(item(), [mondays], SUNDAY_NOON)


def test_window_wrapping_midnight():
    late = slot(time(22), time(2), category_id=CATEGORY)
    assert is_item_available(item(), [late], datetime(2026, 3, 1, 23, 30))
    assert is_item_available(item(), [late], datetime(2026, 3, 2, 1, 15))
    assert not is_item_available(item(), [late], SUNDAY_NOON)
