from datetime import date, time
from enum import Enum

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_booking.core.db import begin_snapshot
from clinic_booking.models.appointment import Appointment, AppointmentStatus
from clinic_booking.models.block import BlockedDay, BlockedTime
from clinic_booking.services.slot_catalog import is_schedulable_date, slots_of


class SlotStatus(str, Enum):
    free = "free"
    blocked = "blocked"
    reserved = "reserved"


async def is_day_blocked(session: AsyncSession, d: date) -> bool:
    result = await session.execute(select(BlockedDay.id).where(BlockedDay.blocked_date == d).limit(1))
    return result.first() is not None


async def get_blocked_times(session: AsyncSession, d: date) -> set[time]:
    result = await session.execute(select(BlockedTime.blocked_time).where(BlockedTime.blocked_date == d))
    return {row[0] for row in result.all()}


async def get_reserved_times(session: AsyncSession, d: date) -> set[time]:
    result = await session.execute(
        select(Appointment.appointment_time).where(
            Appointment.appointment_date == d,
            Appointment.status == AppointmentStatus.scheduled.value,
        )
    )
    return {row[0] for row in result.all()}


async def get_availability(
    session: AsyncSession, d: date, today: date | None = None
) -> list[tuple[time, SlotStatus]]:
    """Returns (slot_time, status) for every catalog slot of `d`, in order.

    Empty for weekends and past dates. A day block marks every slot blocked.
    The answer may be stale by the time a reservation arrives; reserve()
    re-validates under the day lock.
    """
    if not is_schedulable_date(d, today):
        return []
    await begin_snapshot(session)
    if await is_day_blocked(session, d):
        return [(t, SlotStatus.blocked) for t in slots_of(d, today)]
    blocked = await get_blocked_times(session, d)
    reserved = await get_reserved_times(session, d)
    out: list[tuple[time, SlotStatus]] = []
    for t in slots_of(d, today):
        if t in blocked:
            out.append((t, SlotStatus.blocked))
        elif t in reserved:
            out.append((t, SlotStatus.reserved))
        else:
            out.append((t, SlotStatus.free))
    return out
