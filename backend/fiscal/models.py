# fiscal/models.py
"""
Fiscal year and fiscal period models.

A year moves PENDING -> OPEN -> CLOSED and never back. Its periods are
contiguous, non-overlapping and numbered from 1. At most one year is
current at a time, and at most one period within a year.
"""

from django.db import models


class FiscalYear(models.Model):

    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        OPEN = "OPEN", "Open"
        CLOSED = "CLOSED", "Closed"

    name = models.CharField(max_length=100, unique=True)
    start_date = models.DateField()
    end_date = models.DateField()
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.PENDING,
    )
    is_current = models.BooleanField(default=False)
    closing_date = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["start_date"]
        indexes = [
            models.Index(fields=["start_date", "end_date"], name="fiscal_fisc_start_d_8a1c2e_idx"),
        ]

    def __str__(self):
        return f"FY {self.name} ({self.status})"

    def contains(self, target_date) -> bool:
        return self.start_date <= target_date <= self.end_date


class FiscalPeriod(models.Model):
    """
    Fiscal period within a year.

    Closing a period freezes the closing balance of every account
    balance row recorded against it.
    """

    class Status(models.TextChoices):
        OPEN = "OPEN", "Open"
        CLOSED = "CLOSED", "Closed"

    fiscal_year = models.ForeignKey(
        FiscalYear,
        on_delete=models.PROTECT,
        related_name="periods",
    )
    period = models.PositiveSmallIntegerField()
    name = models.CharField(max_length=100, blank=True, default="")
    start_date = models.DateField()
    end_date = models.DateField()
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.OPEN,
    )
    is_current = models.BooleanField(default=False)
    closed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["fiscal_year__start_date", "period"]
        constraints = [
            models.UniqueConstraint(
                fields=["fiscal_year", "period"],
                name="uniq_fiscal_year_period",
            )
        ]
        indexes = [
            models.Index(fields=["start_date", "end_date"], name="fiscal_fisc_start_d_4f7b90_idx"),
        ]

    def __str__(self):
        return f"{self.fiscal_year.name} P{self.period} ({self.status})"

    def contains(self, target_date) -> bool:
        return self.start_date <= target_date <= self.end_date
