"""
Read-only reporting over appointment snapshots.

The grouping functions are pure: they take (Appointment, service name) rows
and never touch the database. Concurrent writes may make a report slightly
stale; reports never gate a write.
"""

import calendar
from collections.abc import Sequence
from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_booking.core.db import begin_snapshot
from clinic_booking.models.appointment import Appointment, AppointmentStatus
from clinic_booking.models.service_type import ServiceType

UNSPECIFIED_SERVICE = "Unspecified"

Row = tuple[Appointment, str | None]


def _empty_counts() -> dict[str, int]:
    return {s.value: 0 for s in AppointmentStatus}


def _bump(counts: dict[str, int], status: str) -> None:
    # Unknown statuses are not counted rather than breaking the report
    if status in counts:
        counts[status] += 1


def count_by_status(rows: Sequence[Row]) -> dict[str, int]:
    counts = _empty_counts()
    for appointment, _ in rows:
        _bump(counts, appointment.status)
    return {"total": len(rows), **counts}


def _month_key(d: date) -> str:
    return f"{d.year}-{d.month:02d}"


def _months_back(today: date, months: int) -> list[date]:
    """First day of the current month and the `months - 1` before it, newest first."""
    firsts: list[date] = []
    year, month = today.year, today.month
    for _ in range(months):
        firsts.append(date(year, month, 1))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return firsts


def monthly_buckets(rows: Sequence[Row], today: date, months: int = 6) -> dict[str, dict[str, int]]:
    """Status counts per YYYY-MM for the last `months` months, newest first."""
    buckets = {_month_key(first): _empty_counts() for first in _months_back(today, months)}
    for appointment, _ in rows:
        counts = buckets.get(_month_key(appointment.appointment_date))
        if counts is not None:
            _bump(counts, appointment.status)
    return buckets


def group_by_day(rows: Sequence[Row]) -> dict[str, dict[str, int]]:
    by_day: dict[str, dict[str, int]] = {}
    for appointment, _ in rows:
        counts = by_day.setdefault(appointment.appointment_date.isoformat(), _empty_counts())
        _bump(counts, appointment.status)
    return dict(sorted(by_day.items()))


def group_by_service(rows: Sequence[Row]) -> dict[str, dict[str, int]]:
    by_service: dict[str, dict[str, int]] = {}
    for appointment, service_name in rows:
        counts = by_service.setdefault(service_name or UNSPECIFIED_SERVICE, _empty_counts())
        _bump(counts, appointment.status)
    return by_service


def month_bounds(year: int, month: int) -> tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def build_monthly_report(rows: Sequence[Row], year: int, month: int) -> dict:
    start, end = month_bounds(year, month)
    in_month = [r for r in rows if start <= r[0].appointment_date <= end]
    return {
        "period": {"year": year, "month": month},
        "summary": count_by_status(in_month),
        "by_day": group_by_day(in_month),
        "by_service_type": group_by_service(in_month),
        "appointments": in_month,
    }


def build_dashboard(
    rows: Sequence[Row],
    today: date,
    months: int = 6,
    upcoming_days: int = 7,
    upcoming_limit: int = 10,
) -> dict:
    horizon = today + timedelta(days=upcoming_days)
    upcoming = sorted(
        (
            r
            for r in rows
            if r[0].status == AppointmentStatus.scheduled.value and today <= r[0].appointment_date <= horizon
        ),
        key=lambda r: (r[0].appointment_date, r[0].appointment_time),
    )
    return {
        "stats": count_by_status(rows),
        "monthly_stats": monthly_buckets(rows, today, months),
        "upcoming_appointments": upcoming[:upcoming_limit],
    }


async def load_rows(
    session: AsyncSession, start: date | None = None, end: date | None = None
) -> list[Row]:
    """Snapshot of appointments with their service type names."""
    await begin_snapshot(session)
    q = (
        select(Appointment, ServiceType.name)
        .outerjoin(ServiceType, ServiceType.id == Appointment.service_type_id)
        .order_by(Appointment.appointment_date, Appointment.appointment_time)
    )
    if start:
        q = q.where(Appointment.appointment_date >= start)
    if end:
        q = q.where(Appointment.appointment_date <= end)
    result = await session.execute(q)
    return [(a, name) for a, name in result.all()]
