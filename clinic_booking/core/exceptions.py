"""
Typed errors raised by the scheduling services.

Routes never build error responses themselves; the handlers registered in
``clinic_booking.main`` turn these into 400/404/409/503 responses.
"""

from enum import Enum


class ConflictReason(str, Enum):
    """Machine-readable reason attached to every ConflictError."""

    day_blocked = "day_blocked"
    time_blocked = "time_blocked"
    slot_taken = "slot_taken"
    day_has_appointments = "day_has_appointments"
    service_exists = "service_exists"
    service_in_use = "service_in_use"


_CONFLICT_MESSAGES = {
    ConflictReason.day_blocked: "This date is not available for appointments",
    ConflictReason.time_blocked: "This time is not available for appointments",
    ConflictReason.slot_taken: "This time slot is already taken",
    ConflictReason.day_has_appointments: "This date already has scheduled appointments",
    ConflictReason.service_exists: "A service type with this name already exists",
    ConflictReason.service_in_use: "Service type is used by scheduled appointments",
}


class SchedulingError(Exception):
    """Base exception for scheduling operations."""

    pass


class ValidationError(SchedulingError):
    """Raised when a request field is malformed or out of range."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class ConflictError(SchedulingError):
    """Raised when a slot, day or name is occupied or blocked."""

    def __init__(self, reason: ConflictReason, message: str | None = None) -> None:
        self.reason = ConflictReason(reason)
        self.message = message or _CONFLICT_MESSAGES[self.reason]
        super().__init__(self.message)


class NotFoundError(SchedulingError):
    """Raised when an appointment, block or service type id is unknown."""

    def __init__(self, resource: str, resource_id: int) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.message = f"{resource} {resource_id} not found"
        super().__init__(self.message)


class StorageError(SchedulingError):
    """Raised when the database is unavailable or a transaction aborts."""

    pass
