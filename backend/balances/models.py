# balances/models.py
"""
Account balance model.

One row per (account, fiscal year, fiscal period), created lazily the
first time a posted transaction touches that key. Balances are raw:
debits minus credits. See accounting.models.Account.present_balance for
the account-type view.
"""

from decimal import Decimal

from django.db import models

from balances.write_barrier import BALANCE_WRITE_CONTEXTS, write_context_allowed


class AccountBalanceQuerySet(models.QuerySet):
    """
    Bulk writes skip save(), so the write barrier is checked here too.
    """

    def _check_write(self, operation: str) -> None:
        if not write_context_allowed(BALANCE_WRITE_CONTEXTS):
            raise RuntimeError(
                f"AccountBalance {operation} is only allowed within a balance write context."
            )

    def update(self, **kwargs):
        self._check_write("update")
        return super().update(**kwargs)

    def bulk_update(self, objs, fields, *args, **kwargs):
        self._check_write("bulk_update")
        return super().bulk_update(objs, fields, *args, **kwargs)

    def bulk_create(self, objs, *args, **kwargs):
        self._check_write("bulk_create")
        return super().bulk_create(objs, *args, **kwargs)

    def delete(self):
        self._check_write("delete")
        return super().delete()


class AccountBalance(models.Model):
    """
    Running balance of one account within one fiscal period.

    Invariant: current_balance == opening_balance + sum of posted deltas.
    closing_balance stays null until the period is closed.
    """

    account_id = models.CharField(max_length=32)
    fiscal_year = models.ForeignKey(
        "fiscal.FiscalYear",
        on_delete=models.PROTECT,
        related_name="account_balances",
    )
    fiscal_period = models.ForeignKey(
        "fiscal.FiscalPeriod",
        on_delete=models.PROTECT,
        related_name="account_balances",
    )
    opening_balance = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    current_balance = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    closing_balance = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        null=True,
        blank=True,
    )
    last_updated = models.DateTimeField(auto_now=True)

    objects = AccountBalanceQuerySet.as_manager()

    class Meta:
        ordering = ["fiscal_period_id", "account_id"]
        constraints = [
            models.UniqueConstraint(
                fields=["account_id", "fiscal_year", "fiscal_period"],
                name="uniq_account_balance_key",
            )
        ]
        indexes = [
            models.Index(fields=["fiscal_period", "account_id"], name="balance_period_account_idx"),
        ]

    def __str__(self):
        return f"{self.account_id} P{self.fiscal_period_id}: {self.current_balance}"

    def save(self, *args, **kwargs):
        if not write_context_allowed(BALANCE_WRITE_CONTEXTS):
            raise RuntimeError(
                "AccountBalance rows are owned by the posting coordinator. "
                "Direct saves are only allowed within a balance write context."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if not write_context_allowed(BALANCE_WRITE_CONTEXTS):
            raise RuntimeError(
                "AccountBalance rows are owned by the posting coordinator. "
                "Direct deletes are only allowed within a balance write context."
            )
        return super().delete(*args, **kwargs)
