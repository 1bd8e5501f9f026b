"""Media routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, status

from historia.domain.policy import Action, ResourceKind
from historia.routes.dependencies import (
    get_authenticated_principal,
    get_consistency_guard,
    get_media_service,
    guard_write,
)
from historia.schemas.auth import Principal
from historia.schemas.error import GUARDED_WRITE_RESPONSES, REFERENCE_CHECK_RESPONSES, NotFoundError
from historia.schemas.media import CreateMediaRequest, Media, MediaType, UpdateMediaRequest
from historia.services.consistency_guard import ConsistencyGuard
from historia.services.media import MediaService

router = APIRouter(prefix="/media", tags=["Media"])

MediaId = Annotated[int, Path(alias="mediaId", gt=0)]


@router.get("", response_model=list[Media])
async def list_media(
    service: Annotated[MediaService, Depends(get_media_service)],
    media_type: Annotated[MediaType | None, Query(alias="type")] = None,
    event_id: Annotated[int | None, Query(gt=0)] = None,
) -> list[Media]:
    return service.list_media(media_type=media_type, event_id=event_id)


@router.get("/event/{eventId}", response_model=list[Media])
async def list_event_media(
    event_id: Annotated[int, Path(alias="eventId", gt=0)],
    service: Annotated[MediaService, Depends(get_media_service)],
) -> list[Media]:
    return service.list_media_for_event(event_id)


@router.get("/{mediaId}", response_model=Media, responses={404: {"model": NotFoundError}})
async def get_media(
    media_id: MediaId,
    service: Annotated[MediaService, Depends(get_media_service)],
) -> Media:
    return service.get_media(media_id)


@router.post(
    "",
    response_model=Media,
    status_code=status.HTTP_201_CREATED,
    responses={**GUARDED_WRITE_RESPONSES, **REFERENCE_CHECK_RESPONSES},
)
async def create_media(
    payload: CreateMediaRequest,
    principal: Annotated[Principal, Depends(get_authenticated_principal)],
    guard: Annotated[ConsistencyGuard, Depends(get_consistency_guard)],
    service: Annotated[MediaService, Depends(get_media_service)],
) -> Media:
    await guard_write(guard, principal, ResourceKind.MEDIA, Action.CREATE, payload.model_dump())
    return service.create_media(payload, uploader_id=principal.user_id)


@router.put(
    "/{mediaId}",
    response_model=Media,
    responses={**GUARDED_WRITE_RESPONSES, **REFERENCE_CHECK_RESPONSES, 404: {"model": NotFoundError}},
)
async def update_media(
    media_id: MediaId,
    payload: UpdateMediaRequest,
    principal: Annotated[Principal, Depends(get_authenticated_principal)],
    guard: Annotated[ConsistencyGuard, Depends(get_consistency_guard)],
    service: Annotated[MediaService, Depends(get_media_service)],
) -> Media:
    # A missing media item is answered locally, before any sibling service is asked.
    service.get_media(media_id)
    await guard_write(guard, principal, ResourceKind.MEDIA, Action.UPDATE, payload.model_dump(exclude_unset=True))
    return service.update_media(media_id, payload)


@router.delete(
    "/{mediaId}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**GUARDED_WRITE_RESPONSES, 404: {"model": NotFoundError}},
)
async def delete_media(
    media_id: MediaId,
    principal: Annotated[Principal, Depends(get_authenticated_principal)],
    guard: Annotated[ConsistencyGuard, Depends(get_consistency_guard)],
    service: Annotated[MediaService, Depends(get_media_service)],
) -> None:
    await guard_write(guard, principal, ResourceKind.MEDIA, Action.DELETE)
    service.delete_media(media_id)
