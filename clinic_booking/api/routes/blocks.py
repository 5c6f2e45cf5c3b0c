from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_booking.api.deps import get_session, require_admin
from clinic_booking.api.schemas.block import DayBlockRequest, MessageResponse, TimeBlockRequest
from clinic_booking.models.block import BlockedDay, BlockedDayPublic, BlockedTime, BlockedTimePublic
from clinic_booking.services.block_service import (
    create_day_block,
    create_time_block,
    list_day_blocks,
    list_time_blocks,
    remove_day_block,
    remove_time_block,
)
from clinic_booking.services.slot_catalog import format_slot_time

router = APIRouter(prefix="/blocks", tags=["blocks"], dependencies=[Depends(require_admin)])


def _day_public(b: BlockedDay) -> BlockedDayPublic:
    return BlockedDayPublic(id=b.id, blocked_date=b.blocked_date, reason=b.reason, created_at=b.created_at)


def _time_public(b: BlockedTime) -> BlockedTimePublic:
    return BlockedTimePublic(
        id=b.id,
        blocked_date=b.blocked_date,
        blocked_time=format_slot_time(b.blocked_time),
        reason=b.reason,
        created_at=b.created_at,
    )


@router.get("/days", response_model=list[BlockedDayPublic])
async def get_day_blocks(
    from_date: date | None = Query(None),
    session: AsyncSession = Depends(get_session),
) -> list[BlockedDayPublic]:
    return [_day_public(b) for b in await list_day_blocks(session, from_date)]


@router.post("/days", response_model=BlockedDayPublic, status_code=status.HTTP_201_CREATED)
async def block_day(
    body: DayBlockRequest,
    session: AsyncSession = Depends(get_session),
) -> BlockedDayPublic:
    block = await create_day_block(session, body.blocked_date, body.reason)
    return _day_public(block)


@router.delete("/days/{block_id}", response_model=MessageResponse)
async def unblock_day(
    block_id: int,
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await remove_day_block(session, block_id)
    return MessageResponse(message="Day unblocked")


@router.get("/times", response_model=list[BlockedTimePublic])
async def get_time_blocks(
    date_param: date | None = Query(None, alias="date"),
    session: AsyncSession = Depends(get_session),
) -> list[BlockedTimePublic]:
    return [_time_public(b) for b in await list_time_blocks(session, date_param)]


@router.post("/times", response_model=BlockedTimePublic, status_code=status.HTTP_201_CREATED)
async def block_time(
    body: TimeBlockRequest,
    session: AsyncSession = Depends(get_session),
) -> BlockedTimePublic:
    block = await create_time_block(session, body.blocked_date, body.blocked_time, body.reason)
    return _time_public(block)


@router.delete("/times/{block_id}", response_model=MessageResponse)
async def unblock_time(
    block_id: int,
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await remove_time_block(session, block_id)
    return MessageResponse(message="Time unblocked")
