# accounting/chart.py
"""
Chart of Accounts collaborator.

The ledger depends on this narrow read-only protocol instead of the
Account model so that another chart (a fixture, a remote service) can
stand in for it.
"""

from typing import Protocol

from accounting.models import Account
from ledger.exceptions import AccountNotFoundError


class ChartOfAccounts(Protocol):
    def account_exists(self, account_id: str) -> bool: ...

    def get_account_type(self, account_id: str) -> str: ...

    def is_cash_account(self, account_id: str) -> bool: ...

    def is_postable(self, account_id: str) -> bool: ...


class DjangoChartOfAccounts:
    """Chart backed by accounting.Account rows, keyed by account code."""

    def _get(self, account_id: str) -> Account:
        try:
            return Account.objects.get(code=account_id)
        except Account.DoesNotExist:
            raise AccountNotFoundError(account_id)

    def account_exists(self, account_id: str) -> bool:
        return Account.objects.filter(code=account_id).exists()

    def get_account_type(self, account_id: str) -> str:
        return self._get(account_id).account_type

    def is_cash_account(self, account_id: str) -> bool:
        return self._get(account_id).is_cash_account

    def is_postable(self, account_id: str) -> bool:
        """Entries may only hit active, non-header accounts."""
        account = self._get(account_id)
        return account.status == Account.Status.ACTIVE and not account.is_header
