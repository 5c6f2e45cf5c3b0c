from datetime import date

from pydantic import AliasChoices, BaseModel, Field

from clinic_booking.models.appointment import AppointmentAdminPublic, AppointmentStatus


class SlotInfo(BaseModel):
    time: str  # HH:MM
    status: str  # free | blocked | reserved


class BookAppointmentRequest(BaseModel):
    name: str
    patient_id: str = Field(validation_alias=AliasChoices("patient_id", "cpf"))
    birth_date: date
    appointment_date: date = Field(validation_alias=AliasChoices("date", "appointment_date"))
    appointment_time: str = Field(validation_alias=AliasChoices("time", "appointment_time"))
    service_type_id: int


class StatusUpdateRequest(BaseModel):
    status: AppointmentStatus


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class AppointmentPage(BaseModel):
    data: list[AppointmentAdminPublic]
    pagination: Pagination
