# tests/test_posting.py
"""
Tests for the posting coordinator.

Tests cover:
- Posting applies one delta per entry, exactly once
- Voiding reverses the deltas in the original period
- Permission and calendar checks on post / void
- Atomicity: a storage failure part-way through leaves nothing behind
"""

import pytest
from decimal import Decimal

from django.core.exceptions import PermissionDenied
from django.db import DatabaseError

from audit.models import AuditLogEntry
from audit.repositories import DjangoAuditRepository
from balances.models import AccountBalance
from balances.repositories import DjangoBalanceRepository
from ledger.exceptions import (
    InvalidEntryError,
    InvalidStateTransitionError,
    PeriodClosedError,
    StorageError,
    TransactionNotFoundError,
)
from ledger.models import Transaction, TransactionEntry
from ledger.services import GeneralLedger
from ledger.types import EntryRequest

from tests.conftest import ACCOUNTANT, ADMIN, CASH, EXPENSE, MANAGER, PAYABLES, REVENUE


class FailingBalanceRepository(DjangoBalanceRepository):
    """Fails on the n-th balance row it is asked to lock."""

    def __init__(self, fail_on=2):
        self.fail_on = fail_on
        self.calls = 0

    def lock_or_create(self, account_id, fiscal_year_id, fiscal_period_id):
        self.calls += 1
        if self.calls == self.fail_on:
            raise DatabaseError("simulated balance write failure")
        return super().lock_or_create(account_id, fiscal_year_id, fiscal_period_id)


class FailingAuditRepository(DjangoAuditRepository):
    """Refuses to store entries for one action."""

    def __init__(self, action):
        self.action = action

    def add(self, **fields):
        if fields["action"] == self.action:
            raise DatabaseError("simulated audit write failure")
        return super().add(**fields)


# =============================================================================
# Post
# =============================================================================

@pytest.mark.django_db
class TestPost:

    def test_post_updates_balances(self, gl, approved_txn, period):
        txn = gl.post(approved_txn.id, posted_by=ACCOUNTANT)

        assert txn.status == Transaction.Status.POSTED
        assert txn.posted_by == ACCOUNTANT
        assert txn.posted_at is not None
        assert gl.current_balance(CASH, period.fiscal_year_id, period.id) == Decimal("500.00")
        assert gl.current_balance(REVENUE, period.fiscal_year_id, period.id) == Decimal("-500.00")

    def test_second_post_is_rejected_and_counts_once(self, gl, posted_txn, period):
        with pytest.raises(InvalidStateTransitionError):
            gl.post(posted_txn.id, posted_by=ACCOUNTANT)
        assert gl.current_balance(CASH, period.fiscal_year_id, period.id) == Decimal("500.00")

    def test_poster_defaults_to_approver(self, gl, approved_txn):
        # The approver is a manager, who may approve but not post.
        with pytest.raises(PermissionDenied):
            gl.post(approved_txn.id)
        assert gl.get_transaction(approved_txn.id).status == Transaction.Status.APPROVED

    def test_admin_approver_posts_by_default(self, gl, pending_txn):
        gl.approve(pending_txn.id, ADMIN)
        txn = gl.post(pending_txn.id)
        assert txn.posted_by == ADMIN

    def test_pending_cannot_be_posted(self, gl, pending_txn):
        with pytest.raises(InvalidStateTransitionError):
            gl.post(pending_txn.id, posted_by=ACCOUNTANT)

    def test_missing_transaction(self, gl, fiscal_year):
        with pytest.raises(TransactionNotFoundError):
            gl.post(987654, posted_by=ACCOUNTANT)

    def test_deltas_accumulate_per_account(self, gl, make_request, period):
        for amount in ("100.00", "250.00"):
            txn = gl.create_transaction(make_request(amount=amount))
            gl.approve(txn.id, MANAGER)
            gl.post(txn.id, posted_by=ACCOUNTANT)

        assert gl.current_balance(CASH, period.fiscal_year_id, period.id) == Decimal("350.00")
        assert len(gl.balances_for_period(period.id)) == 2

    def test_multi_line_posting(self, gl, make_request, period):
        txn = gl.create_transaction(make_request(entries=[
            EntryRequest(account_id=EXPENSE, debit_amount=Decimal("120.00")),
            EntryRequest(account_id=CASH, debit_amount=Decimal("30.00")),
            EntryRequest(account_id=PAYABLES, credit_amount=Decimal("150.00")),
        ]))
        gl.approve(txn.id, MANAGER)
        gl.post(txn.id, posted_by=ACCOUNTANT)

        trial = gl.trial_balance(period.id)
        assert trial["is_balanced"]
        assert trial["total_debit"] == Decimal("150.00")

    def test_post_is_audited_with_state_change(self, gl, posted_txn):
        entry = gl.audit_trail(AuditLogEntry.EntityType.TRANSACTION, posted_txn.id)[-1]
        assert entry.action == AuditLogEntry.Action.POST
        assert entry.user_id == ACCOUNTANT
        assert entry.previous_state["status"] == Transaction.Status.APPROVED
        assert entry.new_state["status"] == Transaction.Status.POSTED

    def test_post_into_closed_period_rejected(self, gl, make_request, period):
        # Approved transactions do not block a close, but cannot post afterwards.
        txn = gl.create_transaction(make_request())
        gl.approve(txn.id, MANAGER)
        gl.close_fiscal_period(period.id, ADMIN)

        with pytest.raises(PeriodClosedError):
            gl.post(txn.id, posted_by=ACCOUNTANT)
        assert gl.get_transaction(txn.id).status == Transaction.Status.APPROVED


# =============================================================================
# Void
# =============================================================================

@pytest.mark.django_db
class TestVoid:

    def test_void_reverses_balances(self, gl, posted_txn, period):
        txn = gl.void(posted_txn.id, ADMIN, "input error")

        assert txn.status == Transaction.Status.VOIDED
        assert txn.voided_by == ADMIN
        assert txn.void_reason == "input error"
        assert gl.current_balance(CASH, period.fiscal_year_id, period.id) == Decimal("0.00")
        assert gl.current_balance(REVENUE, period.fiscal_year_id, period.id) == Decimal("0.00")

    def test_void_keeps_entries(self, gl, posted_txn):
        txn = gl.void(posted_txn.id, ADMIN, "input error")
        assert txn.entries.count() == 2
        assert txn.total_debit == Decimal("500.00")

    def test_blank_reason_rejected(self, gl, posted_txn):
        with pytest.raises(InvalidEntryError):
            gl.void(posted_txn.id, ADMIN, "   ")
        assert gl.get_transaction(posted_txn.id).status == Transaction.Status.POSTED

    def test_accountant_cannot_void(self, gl, posted_txn):
        with pytest.raises(PermissionDenied):
            gl.void(posted_txn.id, ACCOUNTANT, "input error")

    def test_void_twice_rejected(self, gl, posted_txn, period):
        gl.void(posted_txn.id, ADMIN, "input error")
        with pytest.raises(InvalidStateTransitionError):
            gl.void(posted_txn.id, ADMIN, "again")
        assert gl.current_balance(CASH, period.fiscal_year_id, period.id) == Decimal("0.00")

    def test_void_after_period_close_rejected(self, gl, posted_txn, period):
        gl.close_fiscal_period(period.id, ADMIN)
        with pytest.raises(PeriodClosedError):
            gl.void(posted_txn.id, ADMIN, "input error")

        balance = gl.get_balance(CASH, period.fiscal_year_id, period.id)
        assert balance.current_balance == Decimal("500.00")
        assert balance.closing_balance == Decimal("500.00")


# =============================================================================
# Entry immutability
# =============================================================================

@pytest.mark.django_db
class TestEntryImmutability:

    def test_posted_entry_cannot_be_saved(self, posted_txn):
        entry = TransactionEntry.objects.filter(transaction=posted_txn).first()
        entry.debit_amount = Decimal("1.00")
        with pytest.raises(ValueError):
            entry.save()
        assert posted_txn.entries.get(pk=entry.pk).debit_amount == Decimal("500.00")

    def test_posted_entry_cannot_be_deleted(self, posted_txn):
        entry = TransactionEntry.objects.filter(transaction=posted_txn).first()
        with pytest.raises(ValueError):
            entry.delete()
        assert posted_txn.entries.count() == 2

    def test_queryset_update_refused_for_posted(self, posted_txn):
        with pytest.raises(ValueError):
            TransactionEntry.objects.filter(transaction=posted_txn).update(account_id=EXPENSE)
        assert set(posted_txn.entries.values_list("account_id", flat=True)) == {CASH, REVENUE}

    def test_queryset_delete_refused_for_voided(self, gl, posted_txn):
        gl.void(posted_txn.id, ADMIN, "input error")
        with pytest.raises(ValueError):
            TransactionEntry.objects.all().delete()
        with pytest.raises(ValueError):
            posted_txn.entries.all().delete()
        assert TransactionEntry.objects.count() == 2

    def test_bulk_writes_allowed_for_draft(self, gl, make_request):
        draft = gl.create_transaction(make_request(created_by=ADMIN))
        assert draft.status == Transaction.Status.DRAFT

        draft.entries.all().update(description="Edited")
        assert set(draft.entries.values_list("description", flat=True)) == {"Edited"}

        draft.entries.all().delete()
        assert draft.entries.count() == 0

# =============================================================================
# Atomicity
# =============================================================================

@pytest.mark.django_db
class TestAtomicity:

    def test_balance_failure_rolls_back_post(self, memberships, chart, make_request):
        gl = GeneralLedger(balances=FailingBalanceRepository(fail_on=2))
        txn = gl.create_transaction(make_request())
        gl.approve(txn.id, MANAGER)

        with pytest.raises(StorageError):
            gl.post(txn.id, posted_by=ACCOUNTANT)

        assert gl.get_transaction(txn.id).status == Transaction.Status.APPROVED
        assert AccountBalance.objects.count() == 0
        actions = [e.action for e in gl.audit_trail(AuditLogEntry.EntityType.TRANSACTION, txn.id)]
        assert AuditLogEntry.Action.POST not in actions

    def test_audit_failure_rolls_back_post(self, memberships, chart, make_request):
        gl = GeneralLedger(audit=FailingAuditRepository(AuditLogEntry.Action.POST))
        txn = gl.create_transaction(make_request())
        gl.approve(txn.id, MANAGER)

        with pytest.raises(StorageError):
            gl.post(txn.id, posted_by=ACCOUNTANT)

        assert gl.get_transaction(txn.id).status == Transaction.Status.APPROVED
        assert AccountBalance.objects.count() == 0

    def test_balance_failure_rolls_back_void(self, memberships, chart, posted_txn, period):
        # Post with the default ledger, then void through one whose first
        # balance write succeeds and second fails.
        gl = GeneralLedger(balances=FailingBalanceRepository(fail_on=2))

        with pytest.raises(StorageError):
            gl.void(posted_txn.id, ADMIN, "input error")

        assert gl.get_transaction(posted_txn.id).status == Transaction.Status.POSTED
        assert gl.current_balance(CASH, period.fiscal_year_id, period.id) == Decimal("500.00")
        assert gl.current_balance(REVENUE, period.fiscal_year_id, period.id) == Decimal("-500.00")
