import logging
from datetime import date

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_booking.core.db import atomic, lock_day
from clinic_booking.core.exceptions import ConflictError, ConflictReason, NotFoundError, ValidationError
from clinic_booking.models.appointment import Appointment, AppointmentStatus
from clinic_booking.models.block import BlockedDay, BlockedTime
from clinic_booking.services.slot_catalog import is_catalog_time, parse_slot_time

logger = logging.getLogger(__name__)

REASON_MAX_LENGTH = 255


def _clean_reason(reason: str | None) -> str | None:
    if reason is None:
        return None
    reason = reason.strip()
    if len(reason) > REASON_MAX_LENGTH:
        raise ValidationError("reason", f"Reason must have at most {REASON_MAX_LENGTH} characters")
    return reason or None


async def create_day_block(session: AsyncSession, blocked_date: date, reason: str | None = None) -> BlockedDay:
    """Block a whole day. Refused while any appointment is scheduled on it."""
    block = BlockedDay(blocked_date=blocked_date, reason=_clean_reason(reason))
    async with atomic(session, ConflictReason.day_blocked):
        await lock_day(session, blocked_date)
        result = await session.execute(select(BlockedDay.id).where(BlockedDay.blocked_date == blocked_date).limit(1))
        if result.first():
            raise ConflictError(ConflictReason.day_blocked, "This date is already blocked")
        result = await session.execute(
            select(Appointment.id).where(
                Appointment.appointment_date == blocked_date,
                Appointment.status == AppointmentStatus.scheduled.value,
            ).limit(1)
        )
        if result.first():
            raise ConflictError(ConflictReason.day_has_appointments)
        session.add(block)
        await session.flush()
    logger.info("Day %s blocked (block %s)", blocked_date, block.id)
    return block


async def create_time_block(
    session: AsyncSession, blocked_date: date, blocked_time: str, reason: str | None = None
) -> BlockedTime:
    """Block one catalog slot. Refused while an appointment is scheduled in it."""
    t = parse_slot_time(blocked_time)
    if not is_catalog_time(t):
        raise ValidationError("time", f"{blocked_time} is not a slot time")
    block = BlockedTime(blocked_date=blocked_date, blocked_time=t, reason=_clean_reason(reason))
    async with atomic(session, ConflictReason.time_blocked):
        await lock_day(session, blocked_date)
        result = await session.execute(
            select(BlockedTime.id).where(
                BlockedTime.blocked_date == blocked_date,
                BlockedTime.blocked_time == t,
            ).limit(1)
        )
        if result.first():
            raise ConflictError(ConflictReason.time_blocked, "This time is already blocked")
        result = await session.execute(
            select(Appointment.id).where(
                Appointment.appointment_date == blocked_date,
                Appointment.appointment_time == t,
                Appointment.status == AppointmentStatus.scheduled.value,
            ).limit(1)
        )
        if result.first():
            raise ConflictError(ConflictReason.slot_taken, "An appointment is already scheduled at this time")
        session.add(block)
        await session.flush()
    logger.info("Slot %s %s blocked (block %s)", blocked_date, blocked_time, block.id)
    return block


async def remove_day_block(session: AsyncSession, block_id: int) -> None:
    result = await session.execute(delete(BlockedDay).where(BlockedDay.id == block_id))
    if not result.rowcount:
        raise NotFoundError("Blocked day", block_id)
    await session.flush()
    logger.info("Day block %s removed", block_id)


async def remove_time_block(session: AsyncSession, block_id: int) -> None:
    result = await session.execute(delete(BlockedTime).where(BlockedTime.id == block_id))
    if not result.rowcount:
        raise NotFoundError("Blocked time", block_id)
    await session.flush()
    logger.info("Time block %s removed", block_id)


async def list_day_blocks(session: AsyncSession, from_date: date | None = None) -> list[BlockedDay]:
    q = select(BlockedDay).order_by(BlockedDay.blocked_date)
    if from_date:
        q = q.where(BlockedDay.blocked_date >= from_date)
    result = await session.execute(q)
    return list(result.scalars().all())


async def list_time_blocks(session: AsyncSession, d: date | None = None) -> list[BlockedTime]:
    q = select(BlockedTime).order_by(BlockedTime.blocked_date, BlockedTime.blocked_time)
    if d:
        q = q.where(BlockedTime.blocked_date == d)
    result = await session.execute(q)
    return list(result.scalars().all())
