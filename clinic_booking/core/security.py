from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt
from passlib.context import CryptContext

from clinic_booking.core.config import settings

ADMIN_ROLE = "admin"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)


def hash_password(password: str) -> str:
    """Bcrypt hash suitable for ADMIN_PASSWORD_HASH."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Malformed hash in the environment
        return False


def token_lifetime_seconds() -> int:
    return settings.access_token_expire_minutes * 60


def create_access_token(subject: str) -> str:
    expire = datetime.now(UTC) + timedelta(seconds=token_lifetime_seconds())
    to_encode = {"sub": subject, "exp": expire, "type": "access", "role": ADMIN_ROLE}
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> str | None:
    """Subject of a valid, unexpired admin access token, else None."""
    try:
        payload = jwt.decode(
            token, settings.secret_key, algorithms=[settings.algorithm]
        )
    except JWTError:
        return None
    if payload.get("type") != "access" or payload.get("role") != ADMIN_ROLE:
        return None
    sub = payload.get("sub")
    return str(sub) if sub else None
