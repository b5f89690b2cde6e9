# accounts/models.py
"""
Ledger user roles.

Users are identified by opaque string ids issued by whatever
authentication system fronts the application. The ledger only needs to
know which role a user holds; permission codes per role come from
accounts/permission_defaults.py.
"""

from django.db import models


class Membership(models.Model):
    """
    Role held by a user in the finance office.

    Inactive memberships grant nothing, whatever the role.
    """

    class Role(models.TextChoices):
        ADMIN = "ADMIN", "Admin"
        ACCOUNTANT = "ACCOUNTANT", "Accountant"
        MANAGER = "MANAGER", "Manager"
        READONLY = "READONLY", "Read only"
        USER = "USER", "User"

    user_id = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255, blank=True, default="")
    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.USER,
    )
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["user_id"]

    def __str__(self):
        return f"{self.user_id} ({self.role})"

    def has_permission(self, code: str) -> bool:
        """Check a permission code against the role defaults."""
        from accounts.permission_defaults import ROLE_DEFAULTS

        if not self.is_active:
            return False
        return code in ROLE_DEFAULTS.get(self.role, set())
