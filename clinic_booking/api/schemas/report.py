from pydantic import BaseModel

from clinic_booking.models.appointment import AppointmentAdminPublic


class StatusSummary(BaseModel):
    total: int
    scheduled: int
    done: int
    canceled: int


class StatusCounts(BaseModel):
    scheduled: int
    done: int
    canceled: int


class ReportPeriod(BaseModel):
    year: int
    month: int


class MonthlyReport(BaseModel):
    period: ReportPeriod
    summary: StatusSummary
    by_day: dict[str, StatusCounts]
    by_service_type: dict[str, StatusCounts]
    appointments: list[AppointmentAdminPublic]


class Dashboard(BaseModel):
    stats: StatusSummary
    monthly_stats: dict[str, StatusCounts]
    upcoming_appointments: list[AppointmentAdminPublic]
