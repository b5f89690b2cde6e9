# ledger/store.py
"""
Ledger transaction store.

Owns transactions and their entries, validates double entry and walks
transactions through their lifecycle. Posting and voiding touch
balances as well, so they are delegated to the PostingCoordinator.

Each mutating method:
1. Checks permission through the authorizer
2. Validates the request / current state (ledger.policies)
3. Locks the rows involved and applies the change in one atomic block
4. Appends exactly one audit entry in that same block

Any failure raises; the ledger is then unchanged.
"""

import logging
import threading
from decimal import Decimal, InvalidOperation
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from accounting.chart import ChartOfAccounts, DjangoChartOfAccounts
from accounts.authz import RoleAuthorizer, require
from audit.log import Action, AuditLog, EntityType
from fiscal.calendar import FiscalCalendar
from ledger.exceptions import (
    AccountNotFoundError,
    InvalidEntryError,
    TransactionNotFoundError,
    UnbalancedEntryError,
)
from ledger.models import Transaction
from ledger.policies import (
    assert_can_approve,
    assert_can_discard,
    assert_can_edit,
    assert_can_reject,
    assert_can_submit,
)
from ledger.posting import PostingCoordinator
from ledger.repositories import DjangoTransactionRepository, TransactionRepository
from ledger.serializers import transaction_snapshot
from ledger.types import TransactionRequest


logger = logging.getLogger(__name__)

MONEY_Q = Decimal("0.01")
ZERO = Decimal("0.00")

EDITABLE_FIELDS = {"description", "reference", "date", "entries", "amount"}


def _to_decimal(value, line_no: int, field: str) -> Decimal:
    if value is None or value == "":
        return ZERO
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidEntryError(f"Line {line_no}: invalid {field} {value!r}.")
    if not amount.is_finite():
        raise InvalidEntryError(f"Line {line_no}: invalid {field} {value!r}.")
    if amount != amount.quantize(MONEY_Q):
        raise InvalidEntryError(f"Line {line_no}: {field} has more than two decimal places.")
    return amount


def _declared_amount(value) -> Decimal:
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidEntryError(f"Invalid transaction amount {value!r}.")
    if not amount.is_finite():
        raise InvalidEntryError(f"Invalid transaction amount {value!r}.")
    if amount != amount.quantize(MONEY_Q):
        raise InvalidEntryError("Transaction amount has more than two decimal places.")
    return amount


class LedgerTransactionStore:

    def __init__(
        self,
        repository: Optional[TransactionRepository] = None,
        calendar: Optional[FiscalCalendar] = None,
        chart: Optional[ChartOfAccounts] = None,
        authorizer=None,
        audit_log: Optional[AuditLog] = None,
        coordinator: Optional[PostingCoordinator] = None,
        lock=None,
    ):
        self._lock = lock or threading.RLock()
        self.repository = repository or DjangoTransactionRepository()
        self.authorizer = authorizer or RoleAuthorizer()
        self.audit_log = audit_log or AuditLog()
        self.chart = chart or DjangoChartOfAccounts()
        self.calendar = calendar or FiscalCalendar(
            audit_log=self.audit_log,
            transactions=self.repository,
            authorizer=self.authorizer,
            lock=self._lock,
        )
        self.coordinator = coordinator or PostingCoordinator(
            repository=self.repository,
            balances=self.calendar.balances,
            calendar=self.calendar,
            audit_log=self.audit_log,
            authorizer=self.authorizer,
            lock=self._lock,
        )

    # =========================================================================
    # Validation
    # =========================================================================

    def validate_entries(self, entries, declared_amount=None) -> tuple[list, Decimal]:
        """
        Check the lines of a transaction and return (lines, total).

        ``lines`` are plain dicts ready for the repository.

        Raises:
            InvalidEntryError: too few lines, negative or 0/0 line
            AccountNotFoundError: line references an unknown account
            InvalidEntryError: line references an inactive or header account
            UnbalancedEntryError: debits != credits, or != declared amount
        """
        min_lines = getattr(settings, "LEDGER_MIN_ENTRY_LINES", 2)
        entries = list(entries or [])
        if len(entries) < min_lines:
            raise InvalidEntryError(
                f"A transaction needs at least {min_lines} entries (got {len(entries)})."
            )

        lines = []
        total_debit = ZERO
        total_credit = ZERO

        for line_no, entry in enumerate(entries, start=1):
            debit = _to_decimal(entry.debit_amount, line_no, "debit_amount")
            credit = _to_decimal(entry.credit_amount, line_no, "credit_amount")

            if debit < 0 or credit < 0:
                raise InvalidEntryError(f"Line {line_no}: negative debit/credit is not allowed.")
            if debit == 0 and credit == 0:
                raise InvalidEntryError(f"Line {line_no}: either debit or credit must be non-zero.")

            account_id = str(entry.account_id or "").strip()
            if not account_id or not self.chart.account_exists(account_id):
                raise AccountNotFoundError(account_id)
            if not self.chart.is_postable(account_id):
                raise InvalidEntryError(
                    f"Line {line_no}: account {account_id} is inactive or a header account."
                )

            lines.append({
                "account_id": account_id,
                "description": entry.description or "",
                "debit_amount": debit,
                "credit_amount": credit,
            })
            total_debit += debit
            total_credit += credit

        if total_debit != total_credit or total_debit <= 0:
            raise UnbalancedEntryError(total_debit, total_credit)

        if declared_amount is not None:
            declared = _declared_amount(declared_amount)
            if declared != total_debit:
                raise UnbalancedEntryError(total_debit, total_credit, declared=declared)

        return lines, total_debit

    def _check_date(self, txn_date, period) -> None:
        if not period.contains(txn_date):
            raise InvalidEntryError(
                f"Date {txn_date} is outside fiscal period {period.name} "
                f"({period.start_date} - {period.end_date})."
            )

    def _lock_transaction(self, transaction_id) -> Transaction:
        txn = self.repository.get(transaction_id, lock=True)
        if txn is None:
            raise TransactionNotFoundError(transaction_id)
        return txn

    # =========================================================================
    # Mutations
    # =========================================================================

    def create(self, request: TransactionRequest) -> Transaction:
        """
        Validate and store a new transaction.

        The result is DRAFT, or PENDING_APPROVAL when the creator's role
        requires approval.
        """
        user_id = request.created_by
        require(self.authorizer.can_create(user_id), user_id, "transactions.create")

        if request.transaction_type not in Transaction.TransactionType.values:
            raise InvalidEntryError(f"Unknown transaction type {request.transaction_type!r}.")

        lines, total = self.validate_entries(request.entries, request.amount)

        with self._lock, transaction.atomic():
            year, period = self.calendar.require_postable(
                request.fiscal_year_id, request.fiscal_period_id, lock=True
            )
            self._check_date(request.date, period)

            if self.authorizer.requires_approval(user_id):
                status = Transaction.Status.PENDING_APPROVAL
            else:
                status = Transaction.Status.DRAFT

            txn = self.repository.add(
                header={
                    "transaction_type": request.transaction_type,
                    "date": request.date,
                    "description": request.description or "",
                    "reference": request.reference or "",
                    "amount": total,
                    "status": status,
                    "fiscal_year": year,
                    "fiscal_period": period,
                    "created_by": user_id,
                },
                entries=lines,
            )
            txn = self.repository.get(txn.pk)

            self.audit_log.append(
                action=Action.CREATE,
                entity_type=EntityType.TRANSACTION,
                entity_id=txn.pk,
                user_id=user_id,
                details=f"Created {txn.transaction_type} {txn.reference or txn.pk} for {total}",
                new_state=transaction_snapshot(txn),
            )

        logger.info(
            f"Created transaction {txn.pk} ({txn.transaction_type}, {total}) as {txn.status}",
            extra={"transaction_id": txn.pk, "user_id": user_id},
        )
        return txn

    def update(self, transaction_id, user_id: str, **changes) -> Transaction:
        """
        Change a DRAFT transaction.

        Accepts description, reference, date, entries and amount. New
        entries replace the old ones and are validated as on create; when
        entries change without an explicit amount, the amount follows the
        new total.
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise InvalidEntryError(f"Cannot update field(s): {', '.join(sorted(unknown))}.")

        require(self.authorizer.can_create(user_id), user_id, "transactions.create")

        with self._lock, transaction.atomic():
            txn = self._lock_transaction(transaction_id)
            assert_can_edit(txn)

            _, period = self.calendar.require_postable(txn.fiscal_year_id, txn.fiscal_period_id, lock=True)
            previous_state = transaction_snapshot(txn)

            if "entries" in changes:
                lines, total = self.validate_entries(changes["entries"], changes.get("amount"))
                self.repository.replace_entries(txn, lines)
                txn.amount = total
            elif "amount" in changes:
                declared = _declared_amount(changes["amount"])
                if declared != txn.total_debit:
                    raise UnbalancedEntryError(txn.total_debit, txn.total_credit, declared=declared)

            if "date" in changes:
                self._check_date(changes["date"], period)
                txn.date = changes["date"]
            if "description" in changes:
                txn.description = changes["description"] or ""
            if "reference" in changes:
                txn.reference = changes["reference"] or ""

            self.repository.save(txn)
            txn = self.repository.get(txn.pk)

            self.audit_log.append(
                action=Action.UPDATE,
                entity_type=EntityType.TRANSACTION,
                entity_id=txn.pk,
                user_id=user_id,
                details=f"Updated {', '.join(sorted(changes))}",
                previous_state=previous_state,
                new_state=transaction_snapshot(txn),
            )

        logger.info(f"Updated transaction {txn.pk}", extra={"transaction_id": txn.pk, "user_id": user_id})
        return txn

    def submit(self, transaction_id, user_id: str) -> Transaction:
        require(self.authorizer.can_create(user_id), user_id, "transactions.create")

        with self._lock, transaction.atomic():
            txn = self._lock_transaction(transaction_id)
            assert_can_submit(txn)
            previous_state = transaction_snapshot(txn)

            txn.status = Transaction.Status.PENDING_APPROVAL
            self.repository.save(txn)

            self.audit_log.append(
                action=Action.SUBMIT,
                entity_type=EntityType.TRANSACTION,
                entity_id=txn.pk,
                user_id=user_id,
                details="Submitted for approval",
                previous_state=previous_state,
                new_state=transaction_snapshot(txn),
            )

        logger.info(f"Submitted transaction {txn.pk}", extra={"transaction_id": txn.pk, "user_id": user_id})
        return txn

    def approve(self, transaction_id, approver_id: str) -> Transaction:
        require(self.authorizer.can_approve(approver_id), approver_id, "transactions.approve")

        with self._lock, transaction.atomic():
            txn = self._lock_transaction(transaction_id)
            assert_can_approve(txn)
            previous_state = transaction_snapshot(txn)

            txn.status = Transaction.Status.APPROVED
            txn.approved_by = approver_id
            txn.approved_at = timezone.now()
            self.repository.save(txn)

            self.audit_log.append(
                action=Action.APPROVE,
                entity_type=EntityType.TRANSACTION,
                entity_id=txn.pk,
                user_id=approver_id,
                details="Approved",
                previous_state=previous_state,
                new_state=transaction_snapshot(txn),
            )

        logger.info(f"Approved transaction {txn.pk}", extra={"transaction_id": txn.pk, "user_id": approver_id})
        return txn

    def reject(self, transaction_id, user_id: str, reason: str) -> Transaction:
        if not reason or not reason.strip():
            raise InvalidEntryError("A rejection reason is required.")
        require(self.authorizer.can_approve(user_id), user_id, "transactions.approve")

        with self._lock, transaction.atomic():
            txn = self._lock_transaction(transaction_id)
            assert_can_reject(txn)
            previous_state = transaction_snapshot(txn)

            txn.status = Transaction.Status.REJECTED
            txn.rejected_by = user_id
            txn.rejected_at = timezone.now()
            txn.rejection_reason = reason.strip()
            self.repository.save(txn)

            self.audit_log.append(
                action=Action.REJECT,
                entity_type=EntityType.TRANSACTION,
                entity_id=txn.pk,
                user_id=user_id,
                details=f"Rejected: {txn.rejection_reason}",
                previous_state=previous_state,
                new_state=transaction_snapshot(txn),
            )

        logger.info(f"Rejected transaction {txn.pk}", extra={"transaction_id": txn.pk, "user_id": user_id})
        return txn

    def discard(self, transaction_id, user_id: str, reason: str = "") -> Transaction:
        """Void a DRAFT that never reached the books. Balances are not touched."""
        require(self.authorizer.can_create(user_id), user_id, "transactions.create")

        with self._lock, transaction.atomic():
            txn = self._lock_transaction(transaction_id)
            assert_can_discard(txn)
            previous_state = transaction_snapshot(txn)

            txn.status = Transaction.Status.VOIDED
            txn.voided_by = user_id
            txn.voided_at = timezone.now()
            txn.void_reason = (reason or "").strip()
            self.repository.save(txn)

            self.audit_log.append(
                action=Action.DISCARD,
                entity_type=EntityType.TRANSACTION,
                entity_id=txn.pk,
                user_id=user_id,
                details=f"Discarded draft{': ' + txn.void_reason if txn.void_reason else ''}",
                previous_state=previous_state,
                new_state=transaction_snapshot(txn),
            )

        logger.info(f"Discarded transaction {txn.pk}", extra={"transaction_id": txn.pk, "user_id": user_id})
        return txn

    def post(self, transaction_id, posted_by: Optional[str] = None) -> Transaction:
        return self.coordinator.post(transaction_id, posted_by=posted_by)

    def void(self, transaction_id, voided_by: str, reason: str) -> Transaction:
        return self.coordinator.void(transaction_id, voided_by, reason)

    # =========================================================================
    # Reads
    # =========================================================================

    def by_id(self, transaction_id) -> Optional[Transaction]:
        return self.repository.get(transaction_id)

    def by_fiscal_year(self, fiscal_year_id) -> list:
        return list(self.repository.filter(fiscal_year_id=fiscal_year_id))

    def by_fiscal_period(self, fiscal_period_id) -> list:
        return list(self.repository.filter(fiscal_period_id=fiscal_period_id))

    def by_account(self, account_id: str) -> list:
        return list(self.repository.by_account(account_id))

    def by_type(self, transaction_type: str) -> list:
        return list(self.repository.filter(transaction_type=transaction_type))

    def by_status(self, status: str) -> list:
        return list(self.repository.filter(status=status))

    def all(self) -> list:
        return list(self.repository.filter())
