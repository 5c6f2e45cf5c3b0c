from datetime import UTC, date, datetime, time
from enum import Enum

from sqlalchemy import DateTime, Index, text
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class AppointmentStatus(str, Enum):
    scheduled = "scheduled"
    done = "done"
    canceled = "canceled"


_SCHEDULED_ONLY = text("status = 'scheduled'")


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    __table_args__ = (
        # At most one scheduled appointment per slot; done/canceled rows may pile up.
        Index(
            "uq_appointments_scheduled_slot",
            "appointment_date",
            "appointment_time",
            unique=True,
            postgresql_where=_SCHEDULED_ONLY,
            sqlite_where=_SCHEDULED_ONLY,
        ),
    )

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(max_length=255)
    patient_id: str = Field(max_length=11, index=True)  # digits only
    birth_date: date
    appointment_date: date = Field(index=True)
    appointment_time: time
    service_type_id: int = Field(foreign_key="service_types.id", index=True)
    status: str = Field(default=AppointmentStatus.scheduled.value, max_length=16, index=True)
    created_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime())


class AppointmentCreate(SQLModel):
    """Unvalidated reservation input; reserve() normalizes and checks it."""

    name: str
    patient_id: str
    birth_date: date
    appointment_date: date
    appointment_time: str
    service_type_id: int


class AppointmentPublic(SQLModel):
    id: int
    name: str
    patient_id: str
    birth_date: date
    appointment_date: date
    appointment_time: str  # HH:MM
    service_type_id: int
    status: AppointmentStatus
    created_at: datetime


class AppointmentAdminPublic(AppointmentPublic):
    service_type_name: str | None = None
