# audit/log.py
"""
Audit log service.

Every ledger mutation calls AuditLog.append() inside its own atomic
block, so the entry commits or rolls back together with the change it
describes.
"""

import logging
from typing import Optional

from django.db import DatabaseError

from audit.models import AuditLogEntry
from audit.repositories import AuditRepository, DjangoAuditRepository
from ledger.exceptions import StorageError


logger = logging.getLogger(__name__)

Action = AuditLogEntry.Action
EntityType = AuditLogEntry.EntityType


class AuditLog:

    def __init__(self, repository: Optional[AuditRepository] = None):
        self.repository = repository or DjangoAuditRepository()

    def append(
        self,
        action: str,
        entity_type: str,
        entity_id,
        user_id: str,
        details: str = "",
        previous_state: Optional[dict] = None,
        new_state: Optional[dict] = None,
        ip_address: Optional[str] = None,
    ) -> AuditLogEntry:
        """
        Record one audit entry.

        Raises:
            StorageError: the entry could not be written. The caller's
                atomic block must be allowed to roll back.
        """
        try:
            entry = self.repository.add(
                action=action,
                entity_type=entity_type,
                entity_id=str(entity_id),
                user_id=user_id,
                details=details or "",
                previous_state=previous_state,
                new_state=new_state,
                ip_address=ip_address,
            )
        except DatabaseError as exc:
            logger.error(
                f"Audit append failed for {entity_type}:{entity_id} ({action})",
                exc_info=True,
            )
            raise StorageError(f"Could not write audit entry: {exc}") from exc

        logger.debug(
            f"Audit {action} {entity_type}:{entity_id} by {user_id}",
            extra={"audit_entry_id": entry.pk},
        )
        return entry

    def by_entity(self, entity_type: str, entity_id) -> list:
        return list(self.repository.by_entity(entity_type, str(entity_id)))

    def by_user(self, user_id: str) -> list:
        return list(self.repository.by_user(user_id))

    def all(self) -> list:
        return list(self.repository.all())
