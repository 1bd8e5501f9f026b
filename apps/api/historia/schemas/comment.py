"""Comment API schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class CreateCommentRequest(BaseModel):
    content: str = Field(min_length=3, max_length=1000)
    event_id: int = Field(gt=0)


class Comment(BaseModel):
    id: int
    content: str
    user_id: str
    event_id: int
    is_approved: bool
    created_at: datetime
    updated_at: datetime
