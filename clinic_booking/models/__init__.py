from clinic_booking.models.service_type import ServiceType, ServiceTypePublic
from clinic_booking.models.appointment import (
    Appointment,
    AppointmentAdminPublic,
    AppointmentCreate,
    AppointmentPublic,
    AppointmentStatus,
)
from clinic_booking.models.block import BlockedDay, BlockedDayPublic, BlockedTime, BlockedTimePublic

__all__ = [
    "ServiceType",
    "ServiceTypePublic",
    "Appointment",
    "AppointmentAdminPublic",
    "AppointmentCreate",
    "AppointmentPublic",
    "AppointmentStatus",
    "BlockedDay",
    "BlockedDayPublic",
    "BlockedTime",
    "BlockedTimePublic",
]
