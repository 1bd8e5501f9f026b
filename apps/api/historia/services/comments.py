"""Comment service layer."""

from historia.errors import not_found
from historia.repositories.memory import CommentRecord, InMemoryStore
from historia.schemas.comment import Comment


class CommentService:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def create_comment(self, *, user_id: str, event_id: int, content: str) -> Comment:
        record = self._store.create_comment(content=content, user_id=user_id, event_id=event_id)
        return self._to_comment(record)

    def list_comments(self, *, approved: bool | None = None) -> list[Comment]:
        return [self._to_comment(record) for record in self._store.list_comments(approved=approved)]

    def list_comments_for_event(self, event_id: int, *, approved_only: bool = True) -> list[Comment]:
        records = self._store.list_comments(approved=True if approved_only else None, event_id=event_id)
        return [self._to_comment(record) for record in records]

    def approve_comment(self, comment_id: int) -> Comment:
        return self._to_comment(self._store.approve_comment(self._require(comment_id)))

    def delete_comment(self, comment_id: int) -> None:
        self._store.delete_comment(self._require(comment_id))

    def _require(self, comment_id: int) -> CommentRecord:
        record = self._store.get_comment(comment_id)
        if record is None:
            raise not_found()
        return record

    @staticmethod
    def _to_comment(record: CommentRecord) -> Comment:
        return Comment(
            id=record.id,
            content=record.content,
            user_id=record.user_id,
            event_id=record.event_id,
            is_approved=record.is_approved,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
