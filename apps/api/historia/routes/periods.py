"""Period routes."""

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
    get_period_service,
    guard_write,
)
from historia.schemas.auth import Principal
from historia.schemas.error import GUARDED_WRITE_RESPONSES, MEDIA_READ_RESPONSES, NotFoundError
from historia.schemas.event import Event
from historia.schemas.media import Media
from historia.schemas.period import CreatePeriodRequest, Period, PeriodWithEventCount, UpdatePeriodRequest
from historia.services.consistency_guard import ConsistencyGuard
from historia.services.event_media import EventMediaService
from historia.services.periods import PeriodService

router = APIRouter(prefix="/periods", tags=["Periods"])

PeriodId = Annotated[int, Path(alias="periodId", gt=0)]


@router.get("", response_model=list[Period])
async def list_periods(service: Annotated[PeriodService, Depends(get_period_service)]) -> list[Period]:
    return service.list_periods()


@router.get("/with-counts", response_model=list[PeriodWithEventCount])
async def list_periods_with_counts(
    service: Annotated[PeriodService, Depends(get_period_service)],
) -> list[PeriodWithEventCount]:
    return service.list_periods_with_event_counts()


# Also the endpoint other services resolve period references against.
@router.get("/{periodId}", response_model=Period, responses={404: {"model": NotFoundError}})
async def get_period(
    period_id: PeriodId,
    service: Annotated[PeriodService, Depends(get_period_service)],
) -> Period:
    return service.get_period(period_id)


@router.get("/{periodId}/events", response_model=list[Event], responses={404: {"model": NotFoundError}})
async def list_period_events(
    period_id: PeriodId,
    service: Annotated[PeriodService, Depends(get_period_service)],
) -> list[Event]:
    return service.list_events(period_id)


@router.get("/{periodId}/media", response_model=list[Media], responses=MEDIA_READ_RESPONSES)
async def list_period_media(
    period_id: PeriodId,
    service: Annotated[EventMediaService, Depends(get_event_media_service)],
) -> list[Media]:
    return await service.list_for_period(period_id)


@router.post(
    "",
    response_model=Period,
    status_code=status.HTTP_201_CREATED,
    responses=GUARDED_WRITE_RESPONSES,
)
async def create_period(
    payload: CreatePeriodRequest,
    principal: Annotated[Principal, Depends(get_authenticated_principal)],
    guard: Annotated[ConsistencyGuard, Depends(get_consistency_guard)],
    service: Annotated[PeriodService, Depends(get_period_service)],
) -> Period:
    await guard_write(guard, principal, ResourceKind.PERIOD, Action.CREATE)
    return service.create_period(payload)


@router.put(
    "/{periodId}",
    response_model=Period,
    responses={**GUARDED_WRITE_RESPONSES, 404: {"model": NotFoundError}},
)
async def update_period(
    period_id: PeriodId,
    payload: UpdatePeriodRequest,
    principal: Annotated[Principal, Depends(get_authenticated_principal)],
    guard: Annotated[ConsistencyGuard, Depends(get_consistency_guard)],
    service: Annotated[PeriodService, Depends(get_period_service)],
) -> Period:
    await guard_write(guard, principal, ResourceKind.PERIOD, Action.UPDATE)
    return service.update_period(period_id, payload)


@router.delete(
    "/{periodId}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**GUARDED_WRITE_RESPONSES, 404: {"model": NotFoundError}},
)
async def delete_period(
    period_id: PeriodId,
    principal: Annotated[Principal, Depends(get_authenticated_principal)],
    guard: Annotated[ConsistencyGuard, Depends(get_consistency_guard)],
    resolver: Annotated[EntityResolver, Depends(get_entity_resolver)],
    service: Annotated[PeriodService, Depends(get_period_service)],
) -> None:
    await guard_write(guard, principal, ResourceKind.PERIOD, Action.DELETE)
    removed_event_ids = service.delete_period(period_id)
    resolver.forget(EntityKind.PERIOD, period_id)
    for event_id in removed_event_ids:
        resolver.forget(EntityKind.EVENT, event_id)
