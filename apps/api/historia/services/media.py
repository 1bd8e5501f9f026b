"""Media service layer."""

from historia.errors import not_found
from historia.repositories.memory import InMemoryStore, MediaRecord
from historia.schemas.media import CreateMediaRequest, Media, MediaType, UpdateMediaRequest

_NON_NULLABLE_FIELDS = frozenset({"type", "url", "event_id"})


class MediaService:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def list_media(self, *, media_type: MediaType | None = None, event_id: int | None = None) -> list[Media]:
        return [self._to_media(record) for record in self._store.list_media(type=media_type, event_id=event_id)]

    def list_media_for_event(self, event_id: int) -> list[Media]:
        return [self._to_media(record) for record in self._store.list_media_for_event_newest_first(event_id)]

    def get_media(self, media_id: int) -> Media:
        return self._to_media(self._require(media_id))

    def create_media(self, payload: CreateMediaRequest, *, uploader_id: str) -> Media:
        record = self._store.create_media(
            type=payload.type,
            url=payload.url,
            text=payload.text,
            event_id=payload.event_id,
            uploader_id=uploader_id,
        )
        return self._to_media(record)

    def update_media(self, media_id: int, payload: UpdateMediaRequest) -> Media:
        record = self._require(media_id)
        changes = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or key not in _NON_NULLABLE_FIELDS
        }
        return self._to_media(self._store.update_media(record, changes))

    def delete_media(self, media_id: int) -> None:
        self._store.delete_media(self._require(media_id))

    def _require(self, media_id: int) -> MediaRecord:
        record = self._store.get_media(media_id)
        if record is None:
            raise not_found()
        return record

    @staticmethod
    def _to_media(record: MediaRecord) -> Media:
        return Media(
            id=record.id,
            type=record.type,
            url=record.url,
            text=record.text,
            event_id=record.event_id,
            uploader_id=record.uploader_id,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
