"""Period service layer."""

from historia.errors import ApiError, not_found
from historia.repositories.memory import InMemoryStore, PeriodRecord
from historia.schemas.event import Event
from historia.schemas.period import CreatePeriodRequest, Period, PeriodWithEventCount, UpdatePeriodRequest
from historia.services.events import to_event


class PeriodService:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def list_periods(self) -> list[Period]:
        return [self._to_period(record) for record in self._store.list_periods()]

    def list_periods_with_event_counts(self) -> list[PeriodWithEventCount]:
        return [
            PeriodWithEventCount(
                **self._to_period(record).model_dump(),
                event_count=self._store.count_events_for_period(record.id),
            )
            for record in self._store.list_periods()
        ]

    def get_period(self, period_id: int) -> Period:
        return self._to_period(self._require(period_id))

    def list_events(self, period_id: int) -> list[Event]:
        self._require(period_id)
        return [to_event(record) for record in self._store.list_events_for_period(period_id)]

    def create_period(self, payload: CreatePeriodRequest) -> Period:
        record = self._store.create_period(
            name=payload.name,
            start_date=payload.start_date,
            end_date=payload.end_date,
        )
        return self._to_period(record)

    def update_period(self, period_id: int, payload: UpdatePeriodRequest) -> Period:
        record = self._require(period_id)
        changes = payload.model_dump(exclude_unset=True)
        if changes.get("name", "") is None:
            del changes["name"]
        start_date = changes.get("start_date", record.start_date)
        end_date = changes.get("end_date", record.end_date)
        if start_date and end_date and start_date > end_date:
            raise ApiError(
                status_code=400,
                code="VALIDATION_ERROR",
                message="Invalid request payload",
                details={"errors": ["start_date must be before end_date"]},
            )
        return self._to_period(self._store.update_period(record, changes))

    def delete_period(self, period_id: int) -> list[int]:
        return self._store.delete_period(self._require(period_id))

    def _require(self, period_id: int) -> PeriodRecord:
        record = self._store.get_period(period_id)
        if record is None:
            raise not_found()
        return record

    @staticmethod
    def _to_period(record: PeriodRecord) -> Period:
        return Period(
            id=record.id,
            name=record.name,
            start_date=record.start_date,
            end_date=record.end_date,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
