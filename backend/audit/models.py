# audit/models.py
"""
Audit log entry model.

Entries are written once, in the same database transaction as the
mutation they describe, and never changed afterwards. Both the model and
its queryset refuse updates and deletes.
"""

from django.db import models


class AuditLogQuerySet(models.QuerySet):

    def update(self, **kwargs):
        raise ValueError("Audit log entries are immutable and cannot be modified.")

    def delete(self):
        raise ValueError("Audit log entries are immutable and cannot be deleted.")


class AuditLogEntry(models.Model):
    """
    Immutable audit record.

    previous_state / new_state hold JSON snapshots of the entity, where
    the action has a meaningful before or after.
    """

    class Action(models.TextChoices):
        CREATE = "CREATE", "Create"
        UPDATE = "UPDATE", "Update"
        SUBMIT = "SUBMIT", "Submit"
        APPROVE = "APPROVE", "Approve"
        REJECT = "REJECT", "Reject"
        POST = "POST", "Post"
        VOID = "VOID", "Void"
        DISCARD = "DISCARD", "Discard"
        OPEN = "OPEN", "Open"
        CLOSE = "CLOSE", "Close"
        CARRY_FORWARD = "CARRY_FORWARD", "Carry forward"

    class EntityType(models.TextChoices):
        TRANSACTION = "TRANSACTION", "Transaction"
        FISCAL_YEAR = "FISCAL_YEAR", "Fiscal year"
        FISCAL_PERIOD = "FISCAL_PERIOD", "Fiscal period"
        ACCOUNT_BALANCE = "ACCOUNT_BALANCE", "Account balance"

    action = models.CharField(max_length=20, choices=Action.choices)
    entity_type = models.CharField(max_length=20, choices=EntityType.choices)
    entity_id = models.CharField(max_length=64)
    user_id = models.CharField(max_length=64)
    timestamp = models.DateTimeField(auto_now_add=True)
    details = models.TextField(blank=True, default="")
    previous_state = models.JSONField(null=True, blank=True)
    new_state = models.JSONField(null=True, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)

    objects = AuditLogQuerySet.as_manager()

    class Meta:
        ordering = ["id"]
        indexes = [
            models.Index(fields=["entity_type", "entity_id"], name="audit_entity_idx"),
            models.Index(fields=["user_id", "timestamp"], name="audit_user_ts_idx"),
        ]

    def __str__(self):
        return f"{self.action} {self.entity_type}:{self.entity_id} by {self.user_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Audit log entries are immutable and cannot be modified.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Audit log entries are immutable and cannot be deleted.")
