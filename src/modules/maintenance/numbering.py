"""
Sequential reference numbers.

    MT-20260419-0001     maintenance tickets, per UTC day
    ORD-2026-000001      catering orders, per year
"""
import re
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from src.modules.catering.models import CateringOrder
from src.modules.maintenance.models import MaintenanceTicket

_SUFFIX = re.compile(r"-(\d+)$")


def ticket_prefix(now: datetime) -> str:
    return f"MT-{now:%Y%m%d}-"


def order_prefix(now: datetime) -> str:
    return f"ORD-{now:%Y}-"


def format_ticket_number(now: datetime, sequence: int) -> str:
    return f"{ticket_prefix(now)}{sequence:04d}"


def format_order_number(now: datetime, sequence: int) -> str:
    return f"{order_prefix(now)}{sequence:06d}"


def next_sequence(latest: str | None) -> int:
    """Sequence following the latest issued number; 1 when nothing was issued yet."""
    if not latest:
        return 1
    match = _SUFFIX.search(latest)
    if not match:
        return 1
    return int(match.group(1)) + 1


async def latest_with_prefix(db: AsyncSession, column: InstrumentedAttribute, prefix: str) -> str | None:
    # A longer suffix is a higher number once the zero padding overflows
    return await db.scalar(
        select(column)
        .where(column.like(f"{prefix}%"))
        .order_by(func.length(column).desc(), column.desc())
        .limit(1)
    )


async def next_ticket_number(db: AsyncSession, now: datetime) -> str:
    latest = await latest_with_prefix(db, MaintenanceTicket.ticket_number, ticket_prefix(now))
    return format_ticket_number(now, next_sequence(latest))


async def next_order_number(db: AsyncSession, now: datetime) -> str:
    latest = await latest_with_prefix(db, CateringOrder.order_number, order_prefix(now))
    return format_order_number(now, next_sequence(latest))
