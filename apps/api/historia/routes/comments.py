"""Comment routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, status

from historia.domain.policy import Action, ResourceKind, evaluate
from historia.routes.dependencies import (
    get_authenticated_principal,
    get_comment_service,
    get_consistency_guard,
    get_optional_principal,
    guard_write,
    require_permission,
)
from historia.schemas.auth import Principal
from historia.schemas.comment import Comment, CreateCommentRequest
from historia.schemas.error import (
    GUARDED_WRITE_RESPONSES,
    REFERENCE_CHECK_RESPONSES,
    AuthenticationError,
    ForbiddenError,
    NotFoundError,
)
from historia.services.comments import CommentService
from historia.services.consistency_guard import ConsistencyGuard

router = APIRouter(prefix="/comments", tags=["Comments"])

_STAFF_READ_RESPONSES = {401: {"model": AuthenticationError}, 403: {"model": ForbiddenError}}


@router.get("/approved", response_model=list[Comment])
async def list_approved_comments(
    service: Annotated[CommentService, Depends(get_comment_service)],
) -> list[Comment]:
    return service.list_comments(approved=True)


@router.get("/event/{eventId}", response_model=list[Comment])
async def list_event_comments(
    event_id: Annotated[int, Path(alias="eventId", gt=0)],
    principal: Annotated[Principal | None, Depends(get_optional_principal)],
    service: Annotated[CommentService, Depends(get_comment_service)],
) -> list[Comment]:
    may_moderate = evaluate(principal, ResourceKind.COMMENT, Action.MODERATE).allowed
    return service.list_comments_for_event(event_id, approved_only=not may_moderate)


@router.post(
    "",
    response_model=Comment,
    status_code=status.HTTP_201_CREATED,
    responses={**GUARDED_WRITE_RESPONSES, **REFERENCE_CHECK_RESPONSES},
)
async def create_comment(
    payload: CreateCommentRequest,
    principal: Annotated[Principal, Depends(get_authenticated_principal)],
    guard: Annotated[ConsistencyGuard, Depends(get_consistency_guard)],
    service: Annotated[CommentService, Depends(get_comment_service)],
) -> Comment:
    await guard_write(guard, principal, ResourceKind.COMMENT, Action.CREATE, payload.model_dump())
    return service.create_comment(user_id=principal.user_id, event_id=payload.event_id, content=payload.content)


@router.get("", response_model=list[Comment], responses=_STAFF_READ_RESPONSES)
async def list_all_comments(
    principal: Annotated[Principal, Depends(get_authenticated_principal)],
    service: Annotated[CommentService, Depends(get_comment_service)],
) -> list[Comment]:
    require_permission(principal, ResourceKind.COMMENT, Action.MODERATE)
    return service.list_comments()


@router.get("/pending", response_model=list[Comment], responses=_STAFF_READ_RESPONSES)
async def list_pending_comments(
    principal: Annotated[Principal, Depends(get_authenticated_principal)],
    service: Annotated[CommentService, Depends(get_comment_service)],
) -> list[Comment]:
    require_permission(principal, ResourceKind.COMMENT, Action.MODERATE)
    return service.list_comments(approved=False)


@router.put(
    "/{commentId}/approve",
    response_model=Comment,
    responses={**GUARDED_WRITE_RESPONSES, 404: {"model": NotFoundError}},
)
async def approve_comment(
    comment_id: Annotated[int, Path(alias="commentId", gt=0)],
    principal: Annotated[Principal, Depends(get_authenticated_principal)],
    guard: Annotated[ConsistencyGuard, Depends(get_consistency_guard)],
    service: Annotated[CommentService, Depends(get_comment_service)],
) -> Comment:
    await guard_write(guard, principal, ResourceKind.COMMENT, Action.APPROVE)
    return service.approve_comment(comment_id)


@router.delete(
    "/{commentId}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**GUARDED_WRITE_RESPONSES, 404: {"model": NotFoundError}},
)
async def delete_comment(
    comment_id: Annotated[int, Path(alias="commentId", gt=0)],
    principal: Annotated[Principal, Depends(get_authenticated_principal)],
    guard: Annotated[ConsistencyGuard, Depends(get_consistency_guard)],
    service: Annotated[CommentService, Depends(get_comment_service)],
) -> None:
    await guard_write(guard, principal, ResourceKind.COMMENT, Action.DELETE)
    service.delete_comment(comment_id)
