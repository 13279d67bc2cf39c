"""
Reservation time rules.

Weekdays are 0=Sunday..6=Saturday, as for catering time slots. Times are
compared in UTC. A weekday without an hours row places no restriction.
"""
from datetime import datetime, time

from src.modules.facilities.models import FacilityOperatingHours

# Monday to Friday, 06:00-22:00
DEFAULT_OPEN = time(6, 0)
DEFAULT_CLOSE = time(22, 0)
DEFAULT_DAYS = (1, 2, 3, 4, 5)


def operating_hours_violation(hours: FacilityOperatingHours | None, start: datetime, end: datetime) -> str | None:
    """Why a booking falls outside the facility's hours, or None when it fits."""
    if hours is None:
        return None
    if hours.is_closed:
        return "Facility is closed on this day"

    opens = datetime.combine(start.date(), hours.open_time, tzinfo=start.tzinfo)
    closes = datetime.combine(start.date(), hours.close_time, tzinfo=start.tzinfo)
    if start < opens or end > closes:
        return (
            "Reservation must be within operating hours "
            f"({hours.open_time:%H:%M} - {hours.close_time:%H:%M})"
        )
    return None
