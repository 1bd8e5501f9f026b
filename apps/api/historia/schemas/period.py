"""Period API schemas."""

from datetime import date, datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field, model_validator


def not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


PeriodName = Annotated[str, Field(min_length=1, max_length=255), AfterValidator(not_blank)]


class CreatePeriodRequest(BaseModel):
    name: PeriodName
    start_date: date | None = None
    end_date: date | None = None

    @model_validator(mode="after")
    def _start_before_end(self) -> "CreatePeriodRequest":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must be before end_date")
        return self


class UpdatePeriodRequest(BaseModel):
    name: PeriodName | None = None
    start_date: date | None = None
    end_date: date | None = None


class Period(BaseModel):
    id: int
    name: str
    start_date: date | None = None
    end_date: date | None = None
    created_at: datetime
    updated_at: datetime


class PeriodWithEventCount(Period):
    event_count: int
