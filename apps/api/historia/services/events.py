"""Event service layer.

``period_id`` is confirmed through the consistency guard before any call here;
this layer does not look periods up itself.
"""

from historia.errors import not_found
from historia.repositories.memory import EventRecord, InMemoryStore
from historia.schemas.event import CreateEventRequest, Event, UpdateEventRequest

_NON_NULLABLE_FIELDS = frozenset({"period_id", "title"})


def to_event(record: EventRecord) -> Event:
    return Event(
        id=record.id,
        period_id=record.period_id,
        title=record.title,
        description=record.description,
        date=record.date,
        location=record.location,
        location_coordinates_lat=record.location_coordinates_lat,
        location_coordinates_lng=record.location_coordinates_lng,
        theme=record.theme,
        sources=record.sources,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class EventService:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def list_events(self) -> list[Event]:
        return [to_event(record) for record in self._store.list_events()]

    def get_event(self, event_id: int) -> Event:
        return to_event(self._require(event_id))

    def create_event(self, payload: CreateEventRequest) -> Event:
        attributes = payload.model_dump(exclude={"period_id", "title"})
        record = self._store.create_event(period_id=payload.period_id, title=payload.title, **attributes)
        return to_event(record)

    def update_event(self, event_id: int, payload: UpdateEventRequest) -> Event:
        record = self._require(event_id)
        changes = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or key not in _NON_NULLABLE_FIELDS
        }
        return to_event(self._store.update_event(record, changes))

    def delete_event(self, event_id: int) -> None:
        self._store.delete_event(self._require(event_id))

    def _require(self, event_id: int) -> EventRecord:
        record = self._store.get_event(event_id)
        if record is None:
            raise not_found()
        return record
