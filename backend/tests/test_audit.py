# tests/test_audit.py
"""
Tests for the audit log.

Tests cover:
- Entries cannot be modified or deleted
- Query by entity and user in insertion order
- Storage failures surface as StorageError
"""

import pytest

from django.db import DatabaseError

from audit.log import Action, AuditLog, EntityType
from audit.models import AuditLogEntry
from audit.repositories import DjangoAuditRepository
from ledger.exceptions import StorageError
from ledger.models import Transaction
from ledger.services import GeneralLedger

from tests.conftest import ACCOUNTANT, ADMIN, MANAGER


class BrokenAuditRepository(DjangoAuditRepository):
    def add(self, **fields):
        raise DatabaseError("disk full")


@pytest.mark.django_db
class TestImmutability:

    @pytest.fixture
    def entry(self):
        return AuditLog().append(
            action=Action.CREATE,
            entity_type=EntityType.TRANSACTION,
            entity_id=1,
            user_id=ADMIN,
            details="created",
            new_state={"status": "DRAFT"},
        )

    def test_entry_cannot_be_saved_again(self, entry):
        entry.details = "rewritten"
        with pytest.raises(ValueError):
            entry.save()
        assert AuditLogEntry.objects.get(pk=entry.pk).details == "created"

    def test_entry_cannot_be_deleted(self, entry):
        with pytest.raises(ValueError):
            entry.delete()
        assert AuditLogEntry.objects.filter(pk=entry.pk).exists()

    def test_queryset_update_and_delete_refused(self, entry):
        with pytest.raises(ValueError):
            AuditLogEntry.objects.filter(pk=entry.pk).update(details="x")
        with pytest.raises(ValueError):
            AuditLogEntry.objects.all().delete()

    def test_entity_id_is_stored_as_text(self, entry):
        assert entry.entity_id == "1"
        assert AuditLog().by_entity(EntityType.TRANSACTION, 1) == [entry]


@pytest.mark.django_db
class TestQueries:

    def test_transaction_history_in_order(self, gl, posted_txn):
        gl.void(posted_txn.id, ADMIN, "input error")

        trail = gl.audit_trail(EntityType.TRANSACTION, posted_txn.id)

        assert [e.action for e in trail] == [Action.CREATE, Action.APPROVE, Action.POST, Action.VOID]
        assert [e.user_id for e in trail] == [ACCOUNTANT, MANAGER, ACCOUNTANT, ADMIN]
        assert all(a.timestamp <= b.timestamp for a, b in zip(trail, trail[1:]))

    def test_by_user(self, gl, posted_txn):
        actions = [e.action for e in gl.audit_by_user(MANAGER)]
        assert actions == [Action.APPROVE]

    def test_all_entries_include_calendar_actions(self, gl, fiscal_year):
        entity_types = {e.entity_type for e in gl.audit_log_entries()}
        assert entity_types == {EntityType.FISCAL_YEAR}


@pytest.mark.django_db
class TestStorageFailure:

    def test_append_failure_raises_storage_error(self):
        log = AuditLog(BrokenAuditRepository())
        with pytest.raises(StorageError):
            log.append(
                action=Action.CREATE,
                entity_type=EntityType.TRANSACTION,
                entity_id=1,
                user_id=ADMIN,
            )

    def test_failed_audit_rolls_back_creation(self, memberships, chart, make_request):
        gl = GeneralLedger(audit=BrokenAuditRepository())
        with pytest.raises(StorageError):
            gl.create_transaction(make_request())
        assert Transaction.objects.count() == 0
