"""API error response schemas."""

from typing import Any, Literal

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None


class AuthenticationError(BaseModel):
    code: Literal["TOKEN_MISSING", "TOKEN_INVALID", "TOKEN_EXPIRED", "UNAUTHORIZED", "INVALID_CREDENTIALS"]
    message: str


class ForbiddenError(BaseModel):
    code: Literal["FORBIDDEN"]
    message: str


class NotFoundError(BaseModel):
    code: Literal["RESOURCE_NOT_FOUND"]
    message: str


class ReferenceDetails(BaseModel):
    service: str
    entity_kind: str
    entity_id: int


class InvalidReferenceErrorDetails(BaseModel):
    references: list[ReferenceDetails]


class InvalidReferenceError(BaseModel):
    code: Literal["INVALID_REFERENCE"]
    message: str
    details: InvalidReferenceErrorDetails


class DependencyUnavailableErrorDetails(BaseModel):
    references: list[ReferenceDetails] = Field(default_factory=list)
    causes: list[str]


class DependencyUnavailableError(BaseModel):
    code: Literal["DEPENDENCY_UNAVAILABLE"]
    message: str
    details: DependencyUnavailableErrorDetails


class ValidationErrorDetails(BaseModel):
    errors: list[str]


class ValidationError(BaseModel):
    code: Literal["VALIDATION_ERROR"]
    message: str
    details: ValidationErrorDetails


# Shared ``responses=`` fragments for guarded write routes.
GUARDED_WRITE_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ValidationError},
    401: {"model": AuthenticationError},
    403: {"model": ForbiddenError},
}
REFERENCE_CHECK_RESPONSES: dict[int | str, dict[str, Any]] = {
    422: {"model": InvalidReferenceError},
    502: {"model": DependencyUnavailableError},
    504: {"model": DependencyUnavailableError},
}
MEDIA_READ_RESPONSES: dict[int | str, dict[str, Any]] = {
    404: {"model": NotFoundError},
    502: {"model": DependencyUnavailableError},
    504: {"model": DependencyUnavailableError},
}
