"""Application exception types."""

from collections.abc import Sequence
from typing import Any

from historia.domain.integrity import GuardDecision, GuardErrorKind
from historia.schemas.error import ErrorResponse

_TIMEOUT_CAUSES = frozenset({"timeout", "deadline exceeded"})


class ApiError(Exception):
    """Structured API error that maps directly to contract error payloads."""

    def __init__(self, status_code: int, code: str, message: str, details: dict | None = None) -> None:
        self.status_code = status_code
        self.payload = ErrorResponse(code=code, message=message, details=details)
        super().__init__(message)


def not_found() -> ApiError:
    return ApiError(status_code=404, code="RESOURCE_NOT_FOUND", message="Resource not found")


def dependency_unavailable(
    message: str, causes: Sequence[str], *, references: list[dict[str, Any]] | None = None
) -> ApiError:
    """504 when every cause was a timeout, 502 otherwise."""
    all_timeouts = bool(causes) and all(cause in _TIMEOUT_CAUSES for cause in causes)
    details: dict[str, Any] = {"causes": list(causes)}
    if references is not None:
        details = {"references": references, **details}
    return ApiError(
        status_code=504 if all_timeouts else 502,
        code="DEPENDENCY_UNAVAILABLE",
        message=message,
        details=details,
    )


def raise_for_guard_decision(decision: GuardDecision) -> None:
    """Translate a failed guard decision into the HTTP error taxonomy."""
    error = decision.error
    if error is None:
        return

    if error.kind is GuardErrorKind.UNAUTHENTICATED:
        raise ApiError(status_code=401, code="UNAUTHORIZED", message="Authentication required")
    if error.kind is GuardErrorKind.FORBIDDEN:
        raise ApiError(status_code=403, code="FORBIDDEN", message="Forbidden: insufficient role")

    references = [reference.describe() for reference in error.references]
    if error.kind is GuardErrorKind.INVALID_REFERENCE:
        raise ApiError(
            status_code=422,
            code="INVALID_REFERENCE",
            message=error.message,
            details={"references": references},
        )

    raise dependency_unavailable(error.message, error.causes, references=references)


__all__ = ["ApiError", "dependency_unavailable", "not_found", "raise_for_guard_decision"]
