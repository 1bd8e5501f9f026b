"""Media API schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class CreateMediaRequest(BaseModel):
    type: MediaType
    url: str = Field(min_length=1)
    text: str | None = None
    event_id: int = Field(gt=0)


class UpdateMediaRequest(BaseModel):
    type: MediaType | None = None
    url: str | None = Field(default=None, min_length=1)
    text: str | None = None
    event_id: int | None = Field(default=None, gt=0)


class Media(BaseModel):
    id: int
    type: MediaType
    url: str
    text: str | None = None
    event_id: int
    uploader_id: str | None = None
    created_at: datetime
    updated_at: datetime
