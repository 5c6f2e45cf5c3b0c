import logging
import math
from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_booking.api.deps import get_session, require_admin
from clinic_booking.api.schemas.appointment import (
    AppointmentPage,
    BookAppointmentRequest,
    Pagination,
    StatusUpdateRequest,
)
from clinic_booking.models.appointment import (
    Appointment,
    AppointmentAdminPublic,
    AppointmentCreate,
    AppointmentPublic,
    AppointmentStatus,
)
from clinic_booking.services.reservation_service import (
    find_patient_appointments,
    list_appointments,
    reserve,
    set_status,
)
from clinic_booking.services.slot_catalog import format_slot_time

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/appointments", tags=["appointments"])


def to_public(a: Appointment) -> AppointmentPublic:
    """Build public response; times go out as HH:MM."""
    return AppointmentPublic(
        id=a.id,
        name=a.name,
        patient_id=a.patient_id,
        birth_date=a.birth_date,
        appointment_date=a.appointment_date,
        appointment_time=format_slot_time(a.appointment_time),
        service_type_id=a.service_type_id,
        status=AppointmentStatus(a.status),
        created_at=a.created_at,
    )


def to_admin_public(a: Appointment, service_type_name: str | None) -> AppointmentAdminPublic:
    return AppointmentAdminPublic(
        **to_public(a).model_dump(),
        service_type_name=service_type_name,
    )


@router.post("", response_model=AppointmentPublic, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    body: BookAppointmentRequest,
    session: AsyncSession = Depends(get_session),
) -> AppointmentPublic:
    data = AppointmentCreate(
        name=body.name,
        patient_id=body.patient_id,
        birth_date=body.birth_date,
        appointment_date=body.appointment_date,
        appointment_time=body.appointment_time,
        service_type_id=body.service_type_id,
    )
    appointment = await reserve(session, data)
    return to_public(appointment)


@router.get("/patient", response_model=list[AppointmentAdminPublic])
async def list_patient_appointments(
    patient_id: str = Query(...),
    birth_date: date = Query(...),
    session: AsyncSession = Depends(get_session),
) -> list[AppointmentAdminPublic]:
    """A patient's own appointments, looked up by national ID and birth date."""
    rows = await find_patient_appointments(session, patient_id, birth_date)
    return [to_admin_public(a, name) for a, name in rows]


@router.get("", response_model=AppointmentPage)
async def list_all_appointments_admin(
    date_param: date | None = Query(None, alias="date"),
    status_param: AppointmentStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
    _admin: str = Depends(require_admin),
) -> AppointmentPage:
    rows, total = await list_appointments(session, date_param, status_param, page=page, limit=limit)
    return AppointmentPage(
        data=[to_admin_public(a, name) for a, name in rows],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit),
        ),
    )


@router.put("/{appointment_id}/status", response_model=AppointmentPublic)
async def update_appointment_status(
    appointment_id: int,
    body: StatusUpdateRequest,
    session: AsyncSession = Depends(get_session),
    _admin: str = Depends(require_admin),
) -> AppointmentPublic:
    appointment = await set_status(session, appointment_id, body.status)
    return to_public(appointment)
