from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_booking.api.deps import get_session, require_admin
from clinic_booking.api.routes.appointments import to_admin_public
from clinic_booking.api.schemas.report import Dashboard, MonthlyReport
from clinic_booking.core.config import settings
from clinic_booking.services.report_service import (
    build_dashboard,
    build_monthly_report,
    load_rows,
    month_bounds,
)
from clinic_booking.services.slot_catalog import clinic_today

router = APIRouter(prefix="/reports", tags=["reports"], dependencies=[Depends(require_admin)])


@router.get("/monthly", response_model=MonthlyReport)
async def monthly_report(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    session: AsyncSession = Depends(get_session),
) -> MonthlyReport:
    start, end = month_bounds(year, month)
    rows = await load_rows(session, start, end)
    report = build_monthly_report(rows, year, month)
    report["appointments"] = [to_admin_public(a, name) for a, name in report["appointments"]]
    return MonthlyReport(**report)


@router.get("/dashboard", response_model=Dashboard)
async def dashboard(session: AsyncSession = Depends(get_session)) -> Dashboard:
    """Status totals, last months' buckets and the next scheduled appointments."""
    rows = await load_rows(session)
    data = build_dashboard(
        rows,
        clinic_today(),
        months=settings.report_months,
        upcoming_days=settings.upcoming_days,
        upcoming_limit=settings.upcoming_limit,
    )
    data["upcoming_appointments"] = [to_admin_public(a, name) for a, name in data["upcoming_appointments"]]
    return Dashboard(**data)
