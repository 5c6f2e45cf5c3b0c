"""Fixed slot catalog: which days are bookable and at which times."""

from datetime import date, datetime, time, timedelta

from clinic_booking.core.exceptions import ValidationError

SLOT_MINUTES = 30
MORNING = (time(7, 0), time(11, 30))
AFTERNOON = (time(13, 0), time(16, 30))

SATURDAY = 5


def _slot_range(first: time, last: time) -> list[time]:
    """Slot start times from `first` to `last` inclusive, SLOT_MINUTES apart."""
    slots: list[time] = []
    current = datetime.combine(date.min, first)
    end = datetime.combine(date.min, last)
    delta = timedelta(minutes=SLOT_MINUTES)
    while current <= end:
        slots.append(current.time())
        current += delta
    return slots


SLOT_TIMES: tuple[time, ...] = tuple(_slot_range(*MORNING) + _slot_range(*AFTERNOON))
_SLOT_SET = frozenset(SLOT_TIMES)


def clinic_today() -> date:
    """Today in the clinic's (single, local) calendar."""
    return date.today()


def is_schedulable_date(d: date, today: date | None = None) -> bool:
    if d.weekday() >= SATURDAY:
        return False
    return d >= (today or clinic_today())


def slots_of(d: date, today: date | None = None) -> list[time]:
    if not is_schedulable_date(d, today):
        return []
    return list(SLOT_TIMES)


def is_catalog_time(t: time) -> bool:
    return t in _SLOT_SET


def parse_slot_time(value: str, field: str = "time") -> time:
    """Parse HH:MM (seconds tolerated) into a time; raise ValidationError otherwise."""
    raw = (value or "").strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(raw, fmt).time()
        except ValueError:
            continue
    raise ValidationError(field, f"Invalid time {value!r}, expected HH:MM")


def format_slot_time(t: time) -> str:
    return t.strftime("%H:%M")
