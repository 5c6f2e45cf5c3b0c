import logging

from clinic_booking.core.config import settings
from clinic_booking.core.security import create_access_token, token_lifetime_seconds, verify_password

logger = logging.getLogger(__name__)


def authenticate_admin(email: str, password: str) -> bool:
    if not settings.admin_enabled:
        logger.warning("Admin login attempted but ADMIN_EMAIL/ADMIN_PASSWORD_HASH are not set")
        return False
    if email.lower() != settings.admin_email.lower():
        return False
    return verify_password(password, settings.admin_password_hash)


def login_admin(email: str, password: str) -> tuple[str, int] | None:
    """Returns (access_token, expires_in_seconds) or None on bad credentials."""
    if not authenticate_admin(email, password):
        return None
    access = create_access_token(settings.admin_email.lower())
    return access, token_lifetime_seconds()


def is_admin_subject(subject: str | None) -> bool:
    return bool(subject and settings.admin_enabled and subject.lower() == settings.admin_email.lower())
