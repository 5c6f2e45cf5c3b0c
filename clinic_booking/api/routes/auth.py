import logging

from fastapi import APIRouter, HTTPException, status

from clinic_booking.api.schemas.auth import AccessToken, LoginRequest
from clinic_booking.services.auth_service import login_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=AccessToken)
async def login(body: LoginRequest) -> AccessToken:
    pair = login_admin(body.email, body.password)
    if not pair:
        logger.info("Failed admin login for %s", body.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    access, expires_in = pair
    return AccessToken(access_token=access, expires_in=expires_in)
