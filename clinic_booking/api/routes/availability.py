from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_booking.api.deps import get_session
from clinic_booking.api.schemas.appointment import SlotInfo
from clinic_booking.services.availability_service import get_availability
from clinic_booking.services.slot_catalog import format_slot_time

router = APIRouter(prefix="/availability", tags=["availability"])


@router.get("", response_model=list[SlotInfo])
async def availability(
    date_param: date = Query(..., alias="date"),
    session: AsyncSession = Depends(get_session),
) -> list[SlotInfo]:
    """Every catalog slot of the date, in order, tagged free/blocked/reserved.

    Empty for weekends and past dates.
    """
    slots = await get_availability(session, date_param)
    return [SlotInfo(time=format_slot_time(t), status=s.value) for t, s in slots]
