# balances/repositories.py
"""
Balance storage.

AccountBalanceLedger reads and writes rows only through a
BalanceRepository. The default works on AccountBalance; tests swap in
one that fails to check that posting rolls back.
"""

from decimal import Decimal
from typing import Iterable, Optional, Protocol

from balances.models import AccountBalance


class BalanceRepository(Protocol):
    def get(
        self, account_id: str, fiscal_year_id: int, fiscal_period_id: int, lock: bool = False
    ) -> Optional[AccountBalance]: ...

    def lock_or_create(self, account_id: str, fiscal_year_id: int, fiscal_period_id: int) -> AccountBalance: ...

    def save(self, balance: AccountBalance) -> None: ...

    def for_period(self, fiscal_period_id: int, lock: bool = False) -> Iterable[AccountBalance]: ...

    def for_account(self, account_id: str) -> Iterable[AccountBalance]: ...


class DjangoBalanceRepository:

    def get(self, account_id, fiscal_year_id, fiscal_period_id, lock=False):
        qs = AccountBalance.objects.all()
        if lock:
            qs = qs.select_for_update()
        return qs.filter(
            account_id=account_id,
            fiscal_year_id=fiscal_year_id,
            fiscal_period_id=fiscal_period_id,
        ).first()

    def lock_or_create(self, account_id, fiscal_year_id, fiscal_period_id):
        """Return the locked row for the key, creating it at zero if absent."""
        balance, _ = AccountBalance.objects.select_for_update().get_or_create(
            account_id=account_id,
            fiscal_year_id=fiscal_year_id,
            fiscal_period_id=fiscal_period_id,
            defaults={
                "opening_balance": Decimal("0.00"),
                "current_balance": Decimal("0.00"),
            },
        )
        return balance

    def save(self, balance):
        balance.save()

    def for_period(self, fiscal_period_id, lock=False):
        qs = AccountBalance.objects.filter(fiscal_period_id=fiscal_period_id)
        if lock:
            qs = qs.select_for_update()
        return list(qs.order_by("account_id"))

    def for_account(self, account_id):
        return list(
            AccountBalance.objects.filter(account_id=account_id)
            .order_by("fiscal_period__start_date")
        )
