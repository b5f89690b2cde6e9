# ledger/repositories.py
"""
Transaction storage.

The store and the posting coordinator go through a TransactionRepository
instead of the ORM directly. The default works on Transaction /
TransactionEntry rows and converts ORM failures into StorageError.
"""

from typing import Iterable, Optional, Protocol

from django.db import DatabaseError

from ledger.exceptions import StorageError
from ledger.models import Transaction, TransactionEntry
from ledger.policies import OPEN_STATUSES


class TransactionRepository(Protocol):
    def get(self, transaction_id, lock: bool = False) -> Optional[Transaction]: ...

    def add(self, header: dict, entries: list) -> Transaction: ...

    def save(self, txn: Transaction) -> None: ...

    def replace_entries(self, txn: Transaction, entries: list) -> None: ...

    def count_open_for_period(self, fiscal_period_id) -> int: ...

    def filter(self, **criteria) -> Iterable[Transaction]: ...

    def by_account(self, account_id: str) -> Iterable[Transaction]: ...


class DjangoTransactionRepository:

    def _queryset(self):
        return Transaction.objects.prefetch_related("entries")

    def get(self, transaction_id, lock=False):
        if lock:
            # Lock only the header row; entries are loaded separately.
            return Transaction.objects.select_for_update().filter(pk=transaction_id).first()
        return self._queryset().filter(pk=transaction_id).first()

    def add(self, header, entries):
        """
        Insert a transaction and its entries.

        ``entries`` is a list of dicts with account_id, description,
        debit_amount and credit_amount; line numbers are assigned here.
        """
        try:
            txn = Transaction.objects.create(**header)
            self._create_entries(txn, entries)
        except DatabaseError as exc:
            raise StorageError(f"Could not store transaction: {exc}") from exc
        return txn

    def save(self, txn):
        try:
            txn.save()
        except DatabaseError as exc:
            raise StorageError(f"Could not save transaction {txn.pk}: {exc}") from exc

    def replace_entries(self, txn, entries):
        try:
            txn.entries.all().delete()
            self._create_entries(txn, entries)
        except DatabaseError as exc:
            raise StorageError(f"Could not replace entries of transaction {txn.pk}: {exc}") from exc

    def _create_entries(self, txn, entries):
        for line_no, line in enumerate(entries, start=1):
            TransactionEntry(transaction=txn, line_no=line_no, **line).save()

    def count_open_for_period(self, fiscal_period_id):
        return Transaction.objects.filter(
            fiscal_period_id=fiscal_period_id,
            status__in=OPEN_STATUSES,
        ).count()

    def filter(self, **criteria):
        return list(self._queryset().filter(**criteria).order_by("date", "id"))

    def by_account(self, account_id):
        return list(
            self._queryset()
            .filter(entries__account_id=account_id)
            .distinct()
            .order_by("date", "id")
        )
