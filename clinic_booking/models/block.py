from datetime import UTC, date, datetime, time

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class BlockedDay(SQLModel, table=True):
    __tablename__ = "blocked_days"
    id: int | None = Field(default=None, primary_key=True)
    blocked_date: date = Field(unique=True, index=True)
    reason: str | None = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime())


class BlockedTime(SQLModel, table=True):
    __tablename__ = "blocked_times"
    __table_args__ = (
        UniqueConstraint("blocked_date", "blocked_time", name="uq_blocked_times_slot"),
    )
    id: int | None = Field(default=None, primary_key=True)
    blocked_date: date = Field(index=True)
    blocked_time: time
    reason: str | None = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime())


class BlockedDayPublic(SQLModel):
    id: int
    blocked_date: date
    reason: str | None = None
    created_at: datetime


class BlockedTimePublic(SQLModel):
    id: int
    blocked_date: date
    blocked_time: str  # HH:MM
    reason: str | None = None
    created_at: datetime
