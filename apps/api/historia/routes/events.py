"""Event routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, status

from historia.adapters.remote import EntityResolver
from historia.domain.integrity import EntityKind
from historia.domain.policy import Action, ResourceKind
from historia.routes.dependencies import (
    get_authenticated_principal,
    get_consistency_guard,
    get_entity_resolver,
    get_event_media_service,
    get_event_service,
    guard_write,
)
from historia.schemas.auth import Principal
from historia.schemas.error import (
    GUARDED_WRITE_RESPONSES,
    MEDIA_READ_RESPONSES,
    REFERENCE_CHECK_RESPONSES,
    NotFoundError,
)
from historia.schemas.event import CreateEventRequest, Event, UpdateEventRequest
from historia.schemas.media import Media
from historia.services.consistency_guard import ConsistencyGuard
from historia.services.event_media import EventMediaService
from historia.services.events import EventService

router = APIRouter(prefix="/events", tags=["Events"])

EventId = Annotated[int, Path(alias="eventId", gt=0)]


@router.get("", response_model=list[Event])
async def list_events(service: Annotated[EventService, Depends(get_event_service)]) -> list[Event]:
    return service.list_events()


# Also the endpoint other services resolve event references against.
@router.get("/{eventId}", response_model=Event, responses={404: {"model": NotFoundError}})
async def get_event(
    event_id: EventId,
    service: Annotated[EventService, Depends(get_event_service)],
) -> Event:
    return service.get_event(event_id)


@router.get("/{eventId}/media", response_model=list[Media], responses=MEDIA_READ_RESPONSES)
async def list_media_for_event(
    event_id: EventId,
    service: Annotated[EventMediaService, Depends(get_event_media_service)],
) -> list[Media]:
    return await service.list_for_event(event_id)


@router.post(
    "",
    response_model=Event,
    status_code=status.HTTP_201_CREATED,
    responses={**GUARDED_WRITE_RESPONSES, **REFERENCE_CHECK_RESPONSES},
)
async def create_event(
    payload: CreateEventRequest,
    principal: Annotated[Principal, Depends(get_authenticated_principal)],
    guard: Annotated[ConsistencyGuard, Depends(get_consistency_guard)],
    service: Annotated[EventService, Depends(get_event_service)],
) -> Event:
    await guard_write(guard, principal, ResourceKind.EVENT, Action.CREATE, payload.model_dump())
    return service.create_event(payload)


@router.put(
    "/{eventId}",
    response_model=Event,
    responses={**GUARDED_WRITE_RESPONSES, **REFERENCE_CHECK_RESPONSES, 404: {"model": NotFoundError}},
)
async def update_event(
    event_id: EventId,
    payload: UpdateEventRequest,
    principal: Annotated[Principal, Depends(get_authenticated_principal)],
    guard: Annotated[ConsistencyGuard, Depends(get_consistency_guard)],
    service: Annotated[EventService, Depends(get_event_service)],
) -> Event:
    # A missing event is answered locally, before any sibling service is asked.
    service.get_event(event_id)
    await guard_write(guard, principal, ResourceKind.EVENT, Action.UPDATE, payload.model_dump(exclude_unset=True))
    return service.update_event(event_id, payload)


@router.delete(
    "/{eventId}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**GUARDED_WRITE_RESPONSES, 404: {"model": NotFoundError}},
)
async def delete_event(
    event_id: EventId,
    principal: Annotated[Principal, Depends(get_authenticated_principal)],
    guard: Annotated[ConsistencyGuard, Depends(get_consistency_guard)],
    resolver: Annotated[EntityResolver, Depends(get_entity_resolver)],
    service: Annotated[EventService, Depends(get_event_service)],
) -> None:
    await guard_write(guard, principal, ResourceKind.EVENT, Action.DELETE)
    service.delete_event(event_id)
    resolver.forget(EntityKind.EVENT, event_id)
