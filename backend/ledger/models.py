# ledger/models.py
"""
Transaction models.

A Transaction is a balanced set of TransactionEntry lines. Workflow
(which status may follow which) lives in ledger/policies.py; the models
only enforce what must always hold.
"""

from decimal import Decimal

from django.db import models
from django.db.models import Q, Sum


class Transaction(models.Model):
    """
    Financial transaction header.

    amount is the declared total; it must equal both the sum of debits
    and the sum of credits of the entries.
    """

    class TransactionType(models.TextChoices):
        JOURNAL_ENTRY = "JOURNAL_ENTRY", "Journal entry"
        ACCOUNTS_PAYABLE = "ACCOUNTS_PAYABLE", "Accounts payable"
        ACCOUNTS_RECEIVABLE = "ACCOUNTS_RECEIVABLE", "Accounts receivable"
        BANK_TRANSACTION = "BANK_TRANSACTION", "Bank transaction"
        BUDGET_ADJUSTMENT = "BUDGET_ADJUSTMENT", "Budget adjustment"
        TUITION_CREDIT = "TUITION_CREDIT", "Tuition credit"
        DEPRECIATION = "DEPRECIATION", "Depreciation"
        BANK_ADJUSTMENT = "BANK_ADJUSTMENT", "Bank adjustment"

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        PENDING_APPROVAL = "PENDING_APPROVAL", "Pending approval"
        APPROVED = "APPROVED", "Approved"
        POSTED = "POSTED", "Posted"
        VOIDED = "VOIDED", "Voided"
        REJECTED = "REJECTED", "Rejected"

    transaction_type = models.CharField(
        max_length=30,
        choices=TransactionType.choices,
        db_column="type",
    )
    date = models.DateField()
    description = models.TextField(blank=True, default="")
    reference = models.CharField(max_length=100, blank=True, default="")
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.DRAFT,
    )

    fiscal_year = models.ForeignKey(
        "fiscal.FiscalYear",
        on_delete=models.PROTECT,
        related_name="transactions",
    )
    fiscal_period = models.ForeignKey(
        "fiscal.FiscalPeriod",
        on_delete=models.PROTECT,
        related_name="transactions",
    )

    created_by = models.CharField(max_length=64)
    approved_by = models.CharField(max_length=64, blank=True, default="")
    approved_at = models.DateTimeField(null=True, blank=True)
    posted_by = models.CharField(max_length=64, blank=True, default="")
    posted_at = models.DateTimeField(null=True, blank=True)
    voided_by = models.CharField(max_length=64, blank=True, default="")
    voided_at = models.DateTimeField(null=True, blank=True)
    void_reason = models.TextField(blank=True, default="")
    rejected_by = models.CharField(max_length=64, blank=True, default="")
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["date", "id"]
        indexes = [
            models.Index(fields=["fiscal_period", "status"], name="txn_period_status_idx"),
            models.Index(fields=["transaction_type"], name="txn_type_idx"),
            models.Index(fields=["status"], name="txn_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="chk_txn_amount_positive",
            ),
        ]

    def __str__(self):
        return f"TXN#{self.id} {self.transaction_type} {self.amount} ({self.status})"

    @property
    def total_debit(self) -> Decimal:
        return self.entries.aggregate(total=Sum("debit_amount"))["total"] or Decimal("0.00")

    @property
    def total_credit(self) -> Decimal:
        return self.entries.aggregate(total=Sum("credit_amount"))["total"] or Decimal("0.00")

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit == self.amount


LOCKED_STATUSES = (Transaction.Status.POSTED, Transaction.Status.VOIDED)


class TransactionEntryQuerySet(models.QuerySet):
    """
    Bulk update and delete bypass the per-row guards in save() and
    delete(), so they refuse any batch touching a locked transaction.
    """

    def _check_unlocked(self, operation: str) -> None:
        if self.filter(transaction__status__in=LOCKED_STATUSES).exists():
            raise ValueError(
                f"Cannot {operation} entries of a POSTED or VOIDED transaction."
            )

    def update(self, **kwargs):
        self._check_unlocked("update")
        return super().update(**kwargs)

    def delete(self):
        self._check_unlocked("delete")
        return super().delete()


class TransactionEntry(models.Model):
    """
    One debit or credit line of a transaction.

    Entries of a POSTED or VOIDED transaction can no longer change.
    """

    LOCKED_STATUSES = LOCKED_STATUSES

    transaction = models.ForeignKey(
        Transaction,
        on_delete=models.CASCADE,
        related_name="entries",
    )
    line_no = models.PositiveIntegerField()
    account_id = models.CharField(max_length=32)
    description = models.CharField(max_length=255, blank=True, default="")
    debit_amount = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    credit_amount = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))

    objects = TransactionEntryQuerySet.as_manager()

    class Meta:
        ordering = ["transaction", "line_no"]
        constraints = [
            models.UniqueConstraint(
                fields=["transaction", "line_no"],
                name="uniq_txn_entry_line_no",
            ),
            models.CheckConstraint(
                condition=~(Q(debit_amount__exact=0) & Q(credit_amount__exact=0)),
                name="chk_entry_not_both_zero",
            ),
            models.CheckConstraint(
                condition=Q(debit_amount__gte=0) & Q(credit_amount__gte=0),
                name="chk_entry_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["account_id"], name="txn_entry_account_idx"),
        ]

    def __str__(self):
        return f"TXN#{self.transaction_id} L{self.line_no} {self.account_id}"

    @property
    def signed_amount(self) -> Decimal:
        """Raw balance effect of this line: debit minus credit."""
        return self.debit_amount - self.credit_amount

    def save(self, *args, **kwargs):
        if self.transaction.status in self.LOCKED_STATUSES:
            raise ValueError(
                f"Entries of a {self.transaction.status} transaction are immutable."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.transaction.status in self.LOCKED_STATUSES:
            raise ValueError(
                f"Entries of a {self.transaction.status} transaction cannot be deleted."
            )
        return super().delete(*args, **kwargs)
