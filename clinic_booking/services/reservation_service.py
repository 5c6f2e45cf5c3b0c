"""
Reservation of slots and appointment status transitions.

Every write that can occupy a slot (reserve, reopen) runs inside
``atomic()`` after taking the day lock, and re-checks day blocks, time
blocks and scheduled appointments before writing. The partial unique index
on (appointment_date, appointment_time) WHERE status = 'scheduled' is the
last line: a violation surfaces as ConflictError(slot_taken).
"""

import logging
import re
from datetime import date, time

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_booking.core.db import atomic, lock_day
from clinic_booking.core.exceptions import ConflictError, ConflictReason, NotFoundError, ValidationError
from clinic_booking.models.appointment import Appointment, AppointmentCreate, AppointmentStatus
from clinic_booking.models.block import BlockedDay, BlockedTime
from clinic_booking.models.service_type import ServiceType
from clinic_booking.services.slot_catalog import clinic_today, is_schedulable_date, parse_slot_time, slots_of

logger = logging.getLogger(__name__)

PATIENT_ID_DIGITS = 11
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 255

_NON_DIGITS = re.compile(r"\D")


def normalize_patient_id(raw: str) -> str:
    """Strip punctuation from a national ID; it must leave exactly 11 digits."""
    digits = _NON_DIGITS.sub("", raw or "")
    if len(digits) != PATIENT_ID_DIGITS:
        raise ValidationError("patient_id", f"Patient ID must have {PATIENT_ID_DIGITS} digits")
    return digits


def validate_reservation(data: AppointmentCreate, today: date | None = None) -> Appointment:
    """Check everything that does not need the database; return an unsaved Appointment."""
    today = today or clinic_today()
    name = (data.name or "").strip()
    if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
        raise ValidationError("name", f"Name must have between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters")
    patient_id = normalize_patient_id(data.patient_id)
    if data.birth_date > today:
        raise ValidationError("birth_date", "Birth date cannot be in the future")
    if data.service_type_id is None or data.service_type_id < 1:
        raise ValidationError("service_type_id", "Invalid service type")
    if not is_schedulable_date(data.appointment_date, today):
        raise ValidationError("date", "Appointments can only be booked on weekdays from today on")
    slot_time = parse_slot_time(data.appointment_time)
    if slot_time not in slots_of(data.appointment_date, today):
        raise ValidationError("time", f"{data.appointment_time} is not a bookable time")
    return Appointment(
        name=name,
        patient_id=patient_id,
        birth_date=data.birth_date,
        appointment_date=data.appointment_date,
        appointment_time=slot_time,
        service_type_id=data.service_type_id,
        status=AppointmentStatus.scheduled.value,
    )


async def ensure_slot_available(session: AsyncSession, d: date, t: time) -> None:
    """Raise ConflictError if (d, t) is blocked or already scheduled.

    Only meaningful while the caller holds the day lock.
    """
    result = await session.execute(select(BlockedDay.id).where(BlockedDay.blocked_date == d).limit(1))
    if result.first():
        raise ConflictError(ConflictReason.day_blocked)
    result = await session.execute(
        select(BlockedTime.id).where(BlockedTime.blocked_date == d, BlockedTime.blocked_time == t).limit(1)
    )
    if result.first():
        raise ConflictError(ConflictReason.time_blocked)
    result = await session.execute(
        select(Appointment.id).where(
            Appointment.appointment_date == d,
            Appointment.appointment_time == t,
            Appointment.status == AppointmentStatus.scheduled.value,
        ).limit(1)
    )
    if result.first():
        raise ConflictError(ConflictReason.slot_taken)


async def _ensure_active_service_type(session: AsyncSession, service_type_id: int) -> None:
    service_type = await session.get(ServiceType, service_type_id)
    if not service_type or not service_type.is_active:
        raise ValidationError("service_type_id", "Unknown or inactive service type")


async def reserve(
    session: AsyncSession, data: AppointmentCreate, today: date | None = None
) -> Appointment:
    appointment = validate_reservation(data, today)
    try:
        async with atomic(session, ConflictReason.slot_taken):
            await lock_day(session, appointment.appointment_date)
            await ensure_slot_available(session, appointment.appointment_date, appointment.appointment_time)
            await _ensure_active_service_type(session, appointment.service_type_id)
            session.add(appointment)
            await session.flush()
    except ConflictError as e:
        logger.info(
            "Reservation rejected (%s) for %s %s",
            e.reason.value,
            appointment.appointment_date,
            appointment.appointment_time,
        )
        raise
    logger.info(
        "Appointment %s scheduled for %s %s",
        appointment.id,
        appointment.appointment_date,
        appointment.appointment_time,
    )
    return appointment


async def get_appointment(session: AsyncSession, appointment_id: int) -> Appointment:
    appointment = await session.get(Appointment, appointment_id)
    if not appointment:
        raise NotFoundError("Appointment", appointment_id)
    return appointment


async def reopen(session: AsyncSession, appointment_id: int) -> Appointment:
    """Move a done/canceled appointment back to scheduled if its slot is still free."""
    async with atomic(session, ConflictReason.slot_taken):
        appointment = await get_appointment(session, appointment_id)
        await lock_day(session, appointment.appointment_date)
        # Re-read under the lock; a concurrent reopen may have won.
        await session.refresh(appointment)
        if appointment.status == AppointmentStatus.scheduled.value:
            return appointment
        await ensure_slot_available(session, appointment.appointment_date, appointment.appointment_time)
        appointment.status = AppointmentStatus.scheduled.value
        session.add(appointment)
        await session.flush()
    logger.info("Appointment %s reopened", appointment_id)
    return appointment


async def set_status(
    session: AsyncSession, appointment_id: int, new_status: AppointmentStatus
) -> Appointment:
    """Apply a lifecycle transition.

    Vacating transitions (to done/canceled) need no conflict check; moving
    back to scheduled goes through reopen().
    """
    new_status = AppointmentStatus(new_status)
    if new_status == AppointmentStatus.scheduled:
        return await reopen(session, appointment_id)
    async with atomic(session, ConflictReason.slot_taken):
        appointment = await get_appointment(session, appointment_id)
        if appointment.status != new_status.value:
            logger.info("Appointment %s: %s -> %s", appointment_id, appointment.status, new_status.value)
            appointment.status = new_status.value
            session.add(appointment)
            await session.flush()
    return appointment


async def find_patient_appointments(
    session: AsyncSession, patient_id: str, birth_date: date
) -> list[tuple[Appointment, str | None]]:
    digits = normalize_patient_id(patient_id)
    result = await session.execute(
        select(Appointment, ServiceType.name)
        .outerjoin(ServiceType, ServiceType.id == Appointment.service_type_id)
        .where(Appointment.patient_id == digits, Appointment.birth_date == birth_date)
        .order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
    )
    return [(a, name) for a, name in result.all()]


async def list_appointments(
    session: AsyncSession,
    d: date | None = None,
    status: AppointmentStatus | None = None,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[tuple[Appointment, str | None]], int]:
    """Admin listing, newest first. Returns (rows, total matching)."""
    filters = []
    if d:
        filters.append(Appointment.appointment_date == d)
    if status:
        filters.append(Appointment.status == AppointmentStatus(status).value)
    total = (await session.execute(select(func.count(Appointment.id)).where(*filters))).scalar_one()
    result = await session.execute(
        select(Appointment, ServiceType.name)
        .outerjoin(ServiceType, ServiceType.id == Appointment.service_type_id)
        .where(*filters)
        .order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return [(a, name) for a, name in result.all()], total
