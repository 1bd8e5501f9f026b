"""Value types for cross-service reference checks."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from historia.domain.policy import ResourceKind


class EntityKind(str, Enum):
    PERIOD = "period"
    EVENT = "event"


# Read API collection segment for each entity kind: GET {base}/api/{collection}/{id}
ENTITY_COLLECTIONS: dict[EntityKind, str] = {
    EntityKind.PERIOD: "periods",
    EntityKind.EVENT: "events",
}


@dataclass(frozen=True, slots=True)
class ForeignReference:
    """A pointer from a local entity to an entity owned by another service."""

    service: str
    entity_kind: EntityKind
    entity_id: int

    def describe(self) -> dict[str, Any]:
        return {"service": self.service, "entity_kind": self.entity_kind.value, "entity_id": self.entity_id}


class VerificationStatus(str, Enum):
    CONFIRMED = "confirmed"
    NOT_FOUND = "not_found"
    UNREACHABLE = "unreachable"
    UNAUTHORIZED = "unauthorized"


@dataclass(frozen=True, slots=True)
class VerificationResult:
    reference: ForeignReference
    status: VerificationStatus
    cause: str | None = None

    @classmethod
    def confirmed(cls, reference: ForeignReference) -> VerificationResult:
        return cls(reference=reference, status=VerificationStatus.CONFIRMED)

    @classmethod
    def not_found(cls, reference: ForeignReference) -> VerificationResult:
        return cls(reference=reference, status=VerificationStatus.NOT_FOUND)

    @classmethod
    def unreachable(cls, reference: ForeignReference, cause: str) -> VerificationResult:
        return cls(reference=reference, status=VerificationStatus.UNREACHABLE, cause=cause)

    @classmethod
    def unauthorized(cls, reference: ForeignReference) -> VerificationResult:
        return cls(reference=reference, status=VerificationStatus.UNAUTHORIZED, cause="unauthorized")


@dataclass(frozen=True, slots=True)
class ReferenceRule:
    field: str
    service: str
    entity_kind: EntityKind


# Which payload fields of a resource must be confirmed against another service before a write.
REFERENCE_RULES: dict[ResourceKind, tuple[ReferenceRule, ...]] = {
    ResourceKind.EVENT: (ReferenceRule(field="period_id", service="period-service", entity_kind=EntityKind.PERIOD),),
    ResourceKind.MEDIA: (ReferenceRule(field="event_id", service="event-service", entity_kind=EntityKind.EVENT),),
    ResourceKind.COMMENT: (ReferenceRule(field="event_id", service="event-service", entity_kind=EntityKind.EVENT),),
    ResourceKind.PERIOD: (),
}


def referenced_services() -> set[str]:
    return {rule.service for rules in REFERENCE_RULES.values() for rule in rules}


def foreign_references_for(resource_kind: ResourceKind, payload: Mapping[str, Any]) -> list[ForeignReference]:
    """Build the references a write must confirm; fields absent from ``payload`` are skipped."""
    references: list[ForeignReference] = []
    for rule in REFERENCE_RULES.get(resource_kind, ()):
        value = payload.get(rule.field)
        if value is None:
            continue
        references.append(ForeignReference(service=rule.service, entity_kind=rule.entity_kind, entity_id=int(value)))
    return references


class GuardErrorKind(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    INVALID_REFERENCE = "invalid_reference"
    DEPENDENCY_UNAVAILABLE = "dependency_unavailable"


@dataclass(frozen=True, slots=True)
class GuardError:
    kind: GuardErrorKind
    message: str
    references: tuple[ForeignReference, ...] = ()
    causes: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class GuardDecision:
    """Outcome of a guarded mutation check; ``error`` is ``None`` when the write may proceed."""

    error: GuardError | None = None
    results: tuple[VerificationResult, ...] = ()

    @property
    def ok(self) -> bool:
        return self.error is None
