from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_booking.api.deps import get_session, require_admin
from clinic_booking.api.schemas.block import MessageResponse
from clinic_booking.api.schemas.service_type import ServiceTypeRequest
from clinic_booking.models.service_type import ServiceType, ServiceTypePublic
from clinic_booking.services.service_type_service import (
    create_service_type,
    deactivate_service_type,
    list_active_service_types,
    rename_service_type,
)

router = APIRouter(prefix="/services", tags=["services"])


def _to_public(s: ServiceType) -> ServiceTypePublic:
    return ServiceTypePublic(id=s.id, name=s.name, is_active=s.is_active)


@router.get("", response_model=list[ServiceTypePublic])
async def list_services(session: AsyncSession = Depends(get_session)) -> list[ServiceTypePublic]:
    return [_to_public(s) for s in await list_active_service_types(session)]


@router.post(
    "",
    response_model=ServiceTypePublic,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_service(
    body: ServiceTypeRequest,
    session: AsyncSession = Depends(get_session),
) -> ServiceTypePublic:
    return _to_public(await create_service_type(session, body.name))


@router.put("/{service_type_id}", response_model=ServiceTypePublic, dependencies=[Depends(require_admin)])
async def update_service(
    service_type_id: int,
    body: ServiceTypeRequest,
    session: AsyncSession = Depends(get_session),
) -> ServiceTypePublic:
    return _to_public(await rename_service_type(session, service_type_id, body.name))


@router.delete("/{service_type_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
async def delete_service(
    service_type_id: int,
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await deactivate_service_type(session, service_type_id)
    return MessageResponse(message="Service type deactivated")
