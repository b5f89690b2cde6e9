# accounts/authz.py
"""
Authorization collaborator for the ledger.

Provides:
- Authorizer: the protocol the ledger calls before each transition
- RoleAuthorizer: default implementation backed by Membership rows
- require: check a permission and raise if not granted

The check is deliberately coarse: a user either holds a role that grants
the permission code or does not. There is no per-transaction or
per-amount policy here.
"""

from typing import Optional, Protocol

from django.core.exceptions import PermissionDenied

from accounts.models import Membership


class Authorizer(Protocol):
    """What the ledger needs to know about a user before acting for them."""

    def can_create(self, user_id: str) -> bool: ...

    def can_approve(self, user_id: str) -> bool: ...

    def can_post(self, user_id: str) -> bool: ...

    def can_void(self, user_id: str) -> bool: ...

    def can_open_year(self, user_id: str) -> bool: ...

    def can_close_period(self, user_id: str) -> bool: ...

    def can_close_year(self, user_id: str) -> bool: ...

    def requires_approval(self, user_id: str) -> bool: ...


class RoleAuthorizer:
    """
    Authorizer that resolves the user's Membership on every call.

    Memberships are looked up fresh each time so that a role change takes
    effect immediately, mirroring how request actors are resolved.
    """

    def _membership(self, user_id: str) -> Optional[Membership]:
        if not user_id:
            return None
        return Membership.objects.filter(user_id=user_id, is_active=True).first()

    def has(self, user_id: str, code: str) -> bool:
        membership = self._membership(user_id)
        return bool(membership and membership.has_permission(code))

    def can_create(self, user_id: str) -> bool:
        return self.has(user_id, "transactions.create")

    def can_approve(self, user_id: str) -> bool:
        return self.has(user_id, "transactions.approve")

    def can_post(self, user_id: str) -> bool:
        return self.has(user_id, "transactions.post")

    def can_void(self, user_id: str) -> bool:
        return self.has(user_id, "transactions.void")

    def can_open_year(self, user_id: str) -> bool:
        return self.has(user_id, "periods.open")

    def can_close_period(self, user_id: str) -> bool:
        return self.has(user_id, "periods.close")

    def can_close_year(self, user_id: str) -> bool:
        return self.has(user_id, "years.close")

    def requires_approval(self, user_id: str) -> bool:
        """Users who cannot approve have their transactions queued for approval."""
        return not self.can_approve(user_id)


def require(allowed: bool, user_id: str, code: str) -> None:
    """
    Raise PermissionDenied unless ``allowed``.

    Example:
        require(authorizer.can_post(user_id), user_id, "transactions.post")
    """
    if not allowed:
        raise PermissionDenied(f"Permission denied: {code} for user {user_id!r}")
