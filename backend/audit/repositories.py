# audit/repositories.py
"""
Audit storage.

AuditRepository is what AuditLog writes through; the default stores
AuditLogEntry rows. Tests inject their own to simulate storage failures.
"""

from typing import Iterable, Protocol

from audit.models import AuditLogEntry


class AuditRepository(Protocol):
    def add(self, **fields) -> AuditLogEntry: ...

    def by_entity(self, entity_type: str, entity_id: str) -> Iterable[AuditLogEntry]: ...

    def by_user(self, user_id: str) -> Iterable[AuditLogEntry]: ...

    def all(self) -> Iterable[AuditLogEntry]: ...


class DjangoAuditRepository:

    def add(self, **fields) -> AuditLogEntry:
        return AuditLogEntry.objects.create(**fields)

    def by_entity(self, entity_type: str, entity_id: str):
        return list(
            AuditLogEntry.objects.filter(entity_type=entity_type, entity_id=str(entity_id)).order_by("id")
        )

    def by_user(self, user_id: str):
        return list(AuditLogEntry.objects.filter(user_id=user_id).order_by("id"))

    def all(self):
        return list(AuditLogEntry.objects.order_by("id"))
