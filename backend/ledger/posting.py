# ledger/posting.py
"""
Posting coordinator.

Post and void are the two operations that change a transaction's status,
the account balances and the audit log together. Each runs in a single
database transaction under the shared write lock:

    lock transaction row -> check state and permission
    -> re-check (and lock) the fiscal period
    -> flip status -> apply one balance delta per entry -> audit

If anything raises, the atomic block rolls back: the status stays as it
was, no balance row moves and no audit entry remains.

Modules that book into the ledger (AP, AR, depreciation, bank
reconciliation, tuition credits) call this instead of writing balances.
"""

import logging
import threading
from typing import Optional

from django.db import transaction
from django.utils import timezone

from accounts.authz import RoleAuthorizer, require
from audit.log import Action, AuditLog, EntityType
from balances.ledger import AccountBalanceLedger
from balances.write_barrier import posting_writes_allowed
from fiscal.calendar import FiscalCalendar
from ledger.exceptions import InvalidEntryError, TransactionNotFoundError
from ledger.models import Transaction
from ledger.policies import assert_can_post, assert_can_void
from ledger.repositories import DjangoTransactionRepository, TransactionRepository
from ledger.serializers import transaction_snapshot


logger = logging.getLogger(__name__)


class PostingCoordinator:

    def __init__(
        self,
        repository: Optional[TransactionRepository] = None,
        balances: Optional[AccountBalanceLedger] = None,
        calendar=None,
        audit_log: Optional[AuditLog] = None,
        authorizer=None,
        lock=None,
    ):
        self._lock = lock or threading.RLock()
        self.repository = repository or DjangoTransactionRepository()
        self.audit_log = audit_log or AuditLog()
        self.authorizer = authorizer or RoleAuthorizer()
        self.balances = balances or AccountBalanceLedger(
            audit_log=self.audit_log, authorizer=self.authorizer, lock=self._lock
        )
        self.calendar = calendar or FiscalCalendar(
            audit_log=self.audit_log,
            balances=self.balances,
            transactions=self.repository,
            authorizer=self.authorizer,
            lock=self._lock,
        )

    def _lock_transaction(self, transaction_id) -> Transaction:
        txn = self.repository.get(transaction_id, lock=True)
        if txn is None:
            raise TransactionNotFoundError(transaction_id)
        return txn

    def _apply_entries(self, txn: Transaction, sign: int) -> None:
        with posting_writes_allowed():
            for entry in txn.entries.all():
                self.balances.apply_delta(
                    entry.account_id,
                    txn.fiscal_year_id,
                    txn.fiscal_period_id,
                    sign * entry.signed_amount,
                )

    def post(self, transaction_id, posted_by: Optional[str] = None) -> Transaction:
        """
        Post an APPROVED transaction.

        The poster defaults to the approver. A second post of the same
        transaction fails with InvalidStateTransitionError; it never
        counts twice.
        """
        with self._lock, transaction.atomic():
            txn = self._lock_transaction(transaction_id)
            assert_can_post(txn)

            poster = posted_by or txn.approved_by
            require(self.authorizer.can_post(poster), poster, "transactions.post")

            self.calendar.require_postable(txn.fiscal_year_id, txn.fiscal_period_id, lock=True)
            previous_state = transaction_snapshot(txn)

            txn.status = Transaction.Status.POSTED
            txn.posted_by = poster
            txn.posted_at = timezone.now()
            self.repository.save(txn)

            self._apply_entries(txn, sign=1)

            self.audit_log.append(
                action=Action.POST,
                entity_type=EntityType.TRANSACTION,
                entity_id=txn.pk,
                user_id=poster,
                details=f"Posted {txn.amount} to period {txn.fiscal_period_id}",
                previous_state=previous_state,
                new_state=transaction_snapshot(txn),
            )

        logger.info(
            f"Posted transaction {txn.pk} ({txn.amount})",
            extra={"transaction_id": txn.pk, "user_id": poster},
        )
        return txn

    def void(self, transaction_id, voided_by: str, reason: str) -> Transaction:
        """
        Void a POSTED transaction by reversing every entry in its original
        fiscal period, which must still be open.

        The entries themselves are kept unchanged.
        """
        if not reason or not reason.strip():
            raise InvalidEntryError("A void reason is required.")

        with self._lock, transaction.atomic():
            txn = self._lock_transaction(transaction_id)
            assert_can_void(txn)
            require(self.authorizer.can_void(voided_by), voided_by, "transactions.void")

            self.calendar.require_postable(txn.fiscal_year_id, txn.fiscal_period_id, lock=True)
            previous_state = transaction_snapshot(txn)

            txn.status = Transaction.Status.VOIDED
            txn.voided_by = voided_by
            txn.voided_at = timezone.now()
            txn.void_reason = reason.strip()
            self.repository.save(txn)

            self._apply_entries(txn, sign=-1)

            self.audit_log.append(
                action=Action.VOID,
                entity_type=EntityType.TRANSACTION,
                entity_id=txn.pk,
                user_id=voided_by,
                details=f"Voided transaction: {txn.void_reason}",
                previous_state=previous_state,
                new_state=transaction_snapshot(txn),
            )

        logger.info(
            f"Voided transaction {txn.pk}: {txn.void_reason}",
            extra={"transaction_id": txn.pk, "user_id": voided_by},
        )
        return txn
