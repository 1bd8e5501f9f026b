"""In-memory repositories used by the API and tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from itertools import count
from typing import Any

from historia.schemas.auth import Role
from historia.schemas.media import MediaType


@dataclass(slots=True)
class UserRecord:
    id: int
    username: str
    email: str
    password_hash: str
    role: Role
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class PeriodRecord:
    id: int
    name: str
    start_date: date | None
    end_date: date | None
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class EventRecord:
    id: int
    period_id: int
    title: str
    created_at: datetime
    updated_at: datetime
    description: str | None = None
    date: date | None = None
    location: str | None = None
    location_coordinates_lat: float | None = None
    location_coordinates_lng: float | None = None
    theme: list[str] | None = None
    sources: list[str] | None = None


@dataclass(slots=True)
class CommentRecord:
    id: int
    content: str
    user_id: str
    event_id: int
    is_approved: bool
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class MediaRecord:
    id: int
    type: MediaType
    url: str
    text: str | None
    event_id: int
    uploader_id: str | None
    created_at: datetime
    updated_at: datetime


def _sequence() -> count:
    return count(1)


def _apply_changes(record: Any, changes: dict[str, Any]) -> None:
    for key, value in changes.items():
        setattr(record, key, value)
    record.updated_at = datetime.now(UTC)


@dataclass(slots=True)
class InMemoryStore:
    """Deterministic persistence layer; write counters let tests assert rejected requests left no trace.

    Foreign keys that cross service boundaries (``event_id`` on comments and
    media, ``period_id`` on events) are stored as plain integers; the store
    never checks them.
    """

    users: dict[int, UserRecord] = field(default_factory=dict)
    periods: dict[int, PeriodRecord] = field(default_factory=dict)
    events: dict[int, EventRecord] = field(default_factory=dict)
    comments: dict[int, CommentRecord] = field(default_factory=dict)
    media: dict[int, MediaRecord] = field(default_factory=dict)
    user_write_count: int = 0
    period_write_count: int = 0
    event_write_count: int = 0
    comment_write_count: int = 0
    media_write_count: int = 0
    _user_ids: count = field(default_factory=_sequence)
    _period_ids: count = field(default_factory=_sequence)
    _event_ids: count = field(default_factory=_sequence)
    _comment_ids: count = field(default_factory=_sequence)
    _media_ids: count = field(default_factory=_sequence)

    # Users

    def create_user(self, *, username: str, email: str, password_hash: str, role: Role) -> UserRecord:
        now = datetime.now(UTC)
        user = UserRecord(
            id=next(self._user_ids),
            username=username,
            email=email,
            password_hash=password_hash,
            role=role,
            created_at=now,
            updated_at=now,
        )
        self.users[user.id] = user
        self.user_write_count += 1
        return user

    def get_user(self, user_id: int) -> UserRecord | None:
        return self.users.get(user_id)

    def get_user_by_email(self, email: str) -> UserRecord | None:
        normalized = email.lower()
        return next((user for user in self.users.values() if user.email.lower() == normalized), None)

    def get_user_by_username(self, username: str) -> UserRecord | None:
        return next((user for user in self.users.values() if user.username == username), None)

    # Periods

    def create_period(self, *, name: str, start_date: date | None, end_date: date | None) -> PeriodRecord:
        now = datetime.now(UTC)
        period = PeriodRecord(
            id=next(self._period_ids),
            name=name,
            start_date=start_date,
            end_date=end_date,
            created_at=now,
            updated_at=now,
        )
        self.periods[period.id] = period
        self.period_write_count += 1
        return period

    def get_period(self, period_id: int) -> PeriodRecord | None:
        return self.periods.get(period_id)

    def list_periods(self) -> list[PeriodRecord]:
        # Undated periods sort last.
        return sorted(self.periods.values(), key=lambda record: (record.start_date is None, record.start_date or date.min, record.id))

    def update_period(self, period: PeriodRecord, changes: dict[str, Any]) -> PeriodRecord:
        _apply_changes(period, changes)
        self.period_write_count += 1
        return period

    def delete_period(self, period: PeriodRecord) -> list[int]:
        """Remove a period and the events that belong to it; returns the removed event ids."""
        orphaned = [event_id for event_id, event in self.events.items() if event.period_id == period.id]
        for event_id in orphaned:
            del self.events[event_id]
        del self.periods[period.id]
        self.period_write_count += 1
        self.event_write_count += len(orphaned)
        return orphaned

    def count_events_for_period(self, period_id: int) -> int:
        return sum(1 for event in self.events.values() if event.period_id == period_id)

    # Events

    def create_event(self, *, period_id: int, title: str, **attributes: Any) -> EventRecord:
        now = datetime.now(UTC)
        event = EventRecord(
            id=next(self._event_ids),
            period_id=period_id,
            title=title,
            created_at=now,
            updated_at=now,
            **attributes,
        )
        self.events[event.id] = event
        self.event_write_count += 1
        return event

    def get_event(self, event_id: int) -> EventRecord | None:
        return self.events.get(event_id)

    def list_events(self) -> list[EventRecord]:
        return sorted(self.events.values(), key=lambda record: record.id)

    def list_events_for_period(self, period_id: int) -> list[EventRecord]:
        events = [record for record in self.events.values() if record.period_id == period_id]
        events.sort(key=lambda record: (record.date is None, record.date or date.min, record.id))
        return events

    def update_event(self, event: EventRecord, changes: dict[str, Any]) -> EventRecord:
        _apply_changes(event, changes)
        self.event_write_count += 1
        return event

    def delete_event(self, event: EventRecord) -> None:
        del self.events[event.id]
        self.event_write_count += 1

    # Comments

    def create_comment(self, *, content: str, user_id: str, event_id: int) -> CommentRecord:
        now = datetime.now(UTC)
        comment = CommentRecord(
            id=next(self._comment_ids),
            content=content,
            user_id=user_id,
            event_id=event_id,
            is_approved=False,
            created_at=now,
            updated_at=now,
        )
        self.comments[comment.id] = comment
        self.comment_write_count += 1
        return comment

    def get_comment(self, comment_id: int) -> CommentRecord | None:
        return self.comments.get(comment_id)

    def list_comments(self, *, approved: bool | None = None, event_id: int | None = None) -> list[CommentRecord]:
        comments = [
            record
            for record in self.comments.values()
            if (approved is None or record.is_approved is approved)
            and (event_id is None or record.event_id == event_id)
        ]
        comments.sort(key=lambda record: record.id)
        return comments

    def approve_comment(self, comment: CommentRecord) -> CommentRecord:
        _apply_changes(comment, {"is_approved": True})
        self.comment_write_count += 1
        return comment

    def delete_comment(self, comment: CommentRecord) -> None:
        del self.comments[comment.id]
        self.comment_write_count += 1

    # Media

    def create_media(
        self,
        *,
        type: MediaType,
        url: str,
        text: str | None,
        event_id: int,
        uploader_id: str | None,
    ) -> MediaRecord:
        now = datetime.now(UTC)
        media = MediaRecord(
            id=next(self._media_ids),
            type=type,
            url=url,
            text=text,
            event_id=event_id,
            uploader_id=uploader_id,
            created_at=now,
            updated_at=now,
        )
        self.media[media.id] = media
        self.media_write_count += 1
        return media

    def get_media(self, media_id: int) -> MediaRecord | None:
        return self.media.get(media_id)

    def list_media(self, *, type: MediaType | None = None, event_id: int | None = None) -> list[MediaRecord]:
        return [
            record
            for record in sorted(self.media.values(), key=lambda record: record.id)
            if (type is None or record.type is type) and (event_id is None or record.event_id == event_id)
        ]

    def list_media_for_event_newest_first(self, event_id: int) -> list[MediaRecord]:
        media = self.list_media(event_id=event_id)
        media.sort(key=lambda record: (record.created_at, record.id), reverse=True)
        return media

    def update_media(self, media: MediaRecord, changes: dict[str, Any]) -> MediaRecord:
        _apply_changes(media, changes)
        self.media_write_count += 1
        return media

    def delete_media(self, media: MediaRecord) -> None:
        del self.media[media.id]
        self.media_write_count += 1
