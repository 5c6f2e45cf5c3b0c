import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_booking.core.db import atomic
from clinic_booking.core.exceptions import ConflictError, ConflictReason, NotFoundError, ValidationError
from clinic_booking.models.appointment import Appointment, AppointmentStatus
from clinic_booking.models.service_type import ServiceType

logger = logging.getLogger(__name__)

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100


def _clean_name(name: str) -> str:
    name = (name or "").strip()
    if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
        raise ValidationError("name", f"Name must have between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters")
    return name


async def list_active_service_types(session: AsyncSession) -> list[ServiceType]:
    result = await session.execute(
        select(ServiceType).where(ServiceType.is_active == True).order_by(ServiceType.name)  # noqa: E712
    )
    return list(result.scalars().all())


async def _name_taken(session: AsyncSession, name: str, exclude_id: int | None = None) -> bool:
    q = select(ServiceType.id).where(ServiceType.name == name)
    if exclude_id is not None:
        q = q.where(ServiceType.id != exclude_id)
    result = await session.execute(q.limit(1))
    return result.first() is not None


async def create_service_type(session: AsyncSession, name: str) -> ServiceType:
    name = _clean_name(name)
    service_type = ServiceType(name=name, is_active=True)
    async with atomic(session, ConflictReason.service_exists):
        if await _name_taken(session, name):
            raise ConflictError(ConflictReason.service_exists)
        session.add(service_type)
        await session.flush()
    logger.info("Service type %s created: %s", service_type.id, name)
    return service_type


async def rename_service_type(session: AsyncSession, service_type_id: int, name: str) -> ServiceType:
    name = _clean_name(name)
    async with atomic(session, ConflictReason.service_exists):
        service_type = await session.get(ServiceType, service_type_id)
        if not service_type:
            raise NotFoundError("Service type", service_type_id)
        if await _name_taken(session, name, exclude_id=service_type_id):
            raise ConflictError(ConflictReason.service_exists)
        service_type.name = name
        session.add(service_type)
        await session.flush()
    return service_type


async def deactivate_service_type(session: AsyncSession, service_type_id: int) -> ServiceType:
    """Soft delete; refused while scheduled appointments reference the type."""
    async with atomic(session, ConflictReason.service_in_use):
        service_type = await session.get(ServiceType, service_type_id)
        if not service_type:
            raise NotFoundError("Service type", service_type_id)
        result = await session.execute(
            select(Appointment.id).where(
                Appointment.service_type_id == service_type_id,
                Appointment.status == AppointmentStatus.scheduled.value,
            ).limit(1)
        )
        if result.first():
            raise ConflictError(ConflictReason.service_in_use)
        service_type.is_active = False
        session.add(service_type)
        await session.flush()
    logger.info("Service type %s deactivated", service_type_id)
    return service_type
