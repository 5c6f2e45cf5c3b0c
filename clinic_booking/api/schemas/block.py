from datetime import date

from pydantic import AliasChoices, BaseModel, Field


class DayBlockRequest(BaseModel):
    blocked_date: date = Field(validation_alias=AliasChoices("date", "blocked_date"))
    reason: str | None = None


class TimeBlockRequest(BaseModel):
    blocked_date: date = Field(validation_alias=AliasChoices("date", "blocked_date"))
    blocked_time: str = Field(validation_alias=AliasChoices("time", "blocked_time"))
    reason: str | None = None


class MessageResponse(BaseModel):
    message: str
