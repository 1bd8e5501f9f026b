"""Event API schemas."""

import datetime as dt
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field

from historia.schemas.period import not_blank

EventTitle = Annotated[str, Field(min_length=1, max_length=255), AfterValidator(not_blank)]


class CreateEventRequest(BaseModel):
    period_id: int = Field(gt=0)
    title: EventTitle
    description: str | None = None
    date: dt.date | None = None
    location: str | None = None
    location_coordinates_lat: float | None = Field(default=None, ge=-90, le=90)
    location_coordinates_lng: float | None = Field(default=None, ge=-180, le=180)
    theme: list[str] | None = None
    sources: list[str] | None = None


class UpdateEventRequest(BaseModel):
    period_id: int | None = Field(default=None, gt=0)
    title: EventTitle | None = None
    description: str | None = None
    date: dt.date | None = None
    location: str | None = None
    location_coordinates_lat: float | None = Field(default=None, ge=-90, le=90)
    location_coordinates_lng: float | None = Field(default=None, ge=-180, le=180)
    theme: list[str] | None = None
    sources: list[str] | None = None


class Event(BaseModel):
    id: int
    period_id: int
    title: str
    description: str | None = None
    date: dt.date | None = None
    location: str | None = None
    location_coordinates_lat: float | None = None
    location_coordinates_lng: float | None = None
    theme: list[str] | None = None
    sources: list[str] | None = None
    created_at: dt.datetime
    updated_at: dt.datetime
