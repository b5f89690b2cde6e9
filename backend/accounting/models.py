# accounting/models.py
"""
Chart of Accounts model.

Accounts are identified across the ledger by their ``code``; a
TransactionEntry's ``account_id`` is an account code. The ledger never
writes to this table.
"""

from django.db import models


class Account(models.Model):
    """
    Chart of Accounts entry.

    Supports:
    - Account types with normal balance rules
    - Header accounts (non-postable groupings)
    - Cash accounts (eligible for bank-account linkage)
    """

    class AccountType(models.TextChoices):
        ASSET = "ASSET", "Asset"
        LIABILITY = "LIABILITY", "Liability"
        EQUITY = "EQUITY", "Equity"
        REVENUE = "REVENUE", "Revenue"
        EXPENSE = "EXPENSE", "Expense"

    class NormalBalance(models.TextChoices):
        DEBIT = "DEBIT", "Debit"
        CREDIT = "CREDIT", "Credit"

    class Status(models.TextChoices):
        ACTIVE = "ACTIVE", "Active"
        INACTIVE = "INACTIVE", "Inactive"

    # Asset/expense accounts increase on debit; the rest increase on credit.
    NORMAL_BALANCE_MAP = {
        AccountType.ASSET: NormalBalance.DEBIT,
        AccountType.EXPENSE: NormalBalance.DEBIT,
        AccountType.LIABILITY: NormalBalance.CREDIT,
        AccountType.EQUITY: NormalBalance.CREDIT,
        AccountType.REVENUE: NormalBalance.CREDIT,
    }

    code = models.CharField(max_length=32, unique=True)
    name = models.CharField(max_length=255)
    account_type = models.CharField(
        max_length=20,
        choices=AccountType.choices,
        db_column="type",
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
    )
    is_header = models.BooleanField(default=False)
    is_cash_account = models.BooleanField(default=False)
    description = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]

    def __str__(self):
        return f"{self.code} - {self.name}"

    @property
    def normal_balance(self) -> str:
        return self.NORMAL_BALANCE_MAP[self.account_type]

    def present_balance(self, raw_balance):
        """
        Translate a raw debit-minus-credit balance into the account's
        normal direction (positive = increase).
        """
        if self.normal_balance == self.NormalBalance.DEBIT:
            return raw_balance
        return -raw_balance
