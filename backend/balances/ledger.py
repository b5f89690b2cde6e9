# balances/ledger.py
"""
Account balance ledger.

Maintains one running raw balance (debits minus credits) per account,
fiscal year and fiscal period. The only writers are:

- PostingCoordinator (apply_delta, inside posting_writes_allowed())
- FiscalCalendar.close_period (freeze, inside closing_writes_allowed())
- carry_forward below

Reads never raise for a missing row; a balance that was never touched is
zero.
"""

import logging
import threading
from decimal import Decimal
from typing import Any, Dict, Optional

from django.db import DatabaseError, transaction

from accounts.authz import RoleAuthorizer, require
from audit.log import Action, AuditLog, EntityType
from balances.models import AccountBalance
from balances.repositories import BalanceRepository, DjangoBalanceRepository
from balances.write_barrier import carry_forward_writes_allowed
from fiscal.models import FiscalPeriod
from ledger.exceptions import (
    FiscalPeriodNotFoundError,
    InvalidPeriodRangeError,
    InvalidStateError,
    PeriodClosedError,
    StorageError,
)
from ledger.models import Transaction, TransactionEntry


logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


class AccountBalanceLedger:

    def __init__(
        self,
        repository: Optional[BalanceRepository] = None,
        audit_log: Optional[AuditLog] = None,
        authorizer=None,
        lock=None,
    ):
        self.repository = repository or DjangoBalanceRepository()
        self.audit_log = audit_log or AuditLog()
        self.authorizer = authorizer or RoleAuthorizer()
        self._lock = lock or threading.RLock()

    # =========================================================================
    # Writes
    # =========================================================================

    def apply_delta(self, account_id: str, fiscal_year_id: int, fiscal_period_id: int, signed_amount: Decimal):
        """
        Add a signed raw amount to the balance for the key.

        Must run inside the caller's atomic block and write context; the
        row stays locked until that block commits.
        """
        try:
            balance = self.repository.lock_or_create(account_id, fiscal_year_id, fiscal_period_id)
            if balance.closing_balance is not None:
                raise PeriodClosedError(
                    f"Balance for {account_id} in period {fiscal_period_id} is frozen."
                )
            balance.current_balance += signed_amount
            self.repository.save(balance)
        except DatabaseError as exc:
            logger.error(
                f"Balance update failed for {account_id} P{fiscal_period_id}",
                exc_info=True,
            )
            raise StorageError(f"Could not update balance for {account_id}: {exc}") from exc

        logger.debug(
            f"Balance {account_id} P{fiscal_period_id} += {signed_amount} -> {balance.current_balance}"
        )
        return balance

    def freeze(self, fiscal_period_id: int) -> int:
        """Set closing = current for every row of the period. Returns the row count."""
        try:
            rows = self.repository.for_period(fiscal_period_id, lock=True)
            for balance in rows:
                balance.closing_balance = balance.current_balance
                self.repository.save(balance)
        except DatabaseError as exc:
            logger.error(f"Freezing balances failed for period {fiscal_period_id}", exc_info=True)
            raise StorageError(f"Could not freeze balances: {exc}") from exc
        return len(rows)

    def carry_forward(self, from_period_id: int, to_period_id: int, user_id: str) -> list:
        """
        Seed opening balances of ``to_period`` with the closing balances of
        ``from_period``.

        The target row's current balance moves by the same amount as its
        opening balance, so deltas already posted to the target are kept.
        Running it twice is harmless: the second run moves nothing.
        """
        require(self.authorizer.can_close_period(user_id), user_id, "periods.close")

        with self._lock, transaction.atomic():
            source = self._lock_period(from_period_id)
            target = self._lock_period(to_period_id)

            if source.status != FiscalPeriod.Status.CLOSED:
                raise InvalidStateError(
                    f"Cannot carry forward from period {source}: it is not closed."
                )
            if target.status != FiscalPeriod.Status.OPEN:
                raise PeriodClosedError(f"Cannot carry forward into closed period {target}.")
            if target.start_date <= source.end_date:
                raise InvalidPeriodRangeError(
                    f"Target period {target} does not follow source period {source}."
                )

            carried = []
            with carry_forward_writes_allowed():
                try:
                    for closed in self.repository.for_period(source.id):
                        if closed.closing_balance is None:
                            continue
                        balance = self.repository.lock_or_create(
                            closed.account_id, target.fiscal_year_id, target.id
                        )
                        difference = closed.closing_balance - balance.opening_balance
                        balance.opening_balance = closed.closing_balance
                        balance.current_balance += difference
                        self.repository.save(balance)
                        carried.append(balance)
                except DatabaseError as exc:
                    logger.error(f"Carry forward failed {source.id}->{target.id}", exc_info=True)
                    raise StorageError(f"Could not carry balances forward: {exc}") from exc

            self.audit_log.append(
                action=Action.CARRY_FORWARD,
                entity_type=EntityType.ACCOUNT_BALANCE,
                entity_id=f"{source.id}->{target.id}",
                user_id=user_id,
                details=f"Carried {len(carried)} balance(s) from {source} to {target}",
                new_state={
                    "from_period_id": source.id,
                    "to_period_id": target.id,
                    "accounts": {b.account_id: str(b.opening_balance) for b in carried},
                },
            )

        logger.info(
            f"Carried forward {len(carried)} balance(s) from period {source.id} to {target.id}",
            extra={"user_id": user_id},
        )
        return carried

    def _lock_period(self, period_id: int) -> FiscalPeriod:
        try:
            return FiscalPeriod.objects.select_for_update().get(pk=period_id)
        except FiscalPeriod.DoesNotExist:
            raise FiscalPeriodNotFoundError(period_id)

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, account_id: str, fiscal_year_id: int, fiscal_period_id: int):
        return self.repository.get(account_id, fiscal_year_id, fiscal_period_id)

    def current_balance(self, account_id: str, fiscal_year_id: int, fiscal_period_id: int) -> Decimal:
        balance = self.get(account_id, fiscal_year_id, fiscal_period_id)
        if balance is None:
            return ZERO
        return balance.current_balance

    def for_period(self, fiscal_period_id: int) -> list:
        return list(self.repository.for_period(fiscal_period_id))

    def for_account(self, account_id: str) -> list:
        return list(self.repository.for_account(account_id))

    def trial_balance(self, fiscal_period_id: int) -> Dict[str, Any]:
        """
        Trial balance of raw balances for one period.

        Returns:
            {
                "fiscal_period_id": 3,
                "accounts": [
                    {"account_id": "1000", "balance": Decimal("500.00"),
                     "debit": Decimal("500.00"), "credit": Decimal("0.00")},
                    ...
                ],
                "total_debit": Decimal("500.00"),
                "total_credit": Decimal("500.00"),
                "is_balanced": True,
            }
        """
        accounts = []
        total_debit = ZERO
        total_credit = ZERO

        for balance in self.repository.for_period(fiscal_period_id):
            raw = balance.current_balance
            if raw >= 0:
                debit, credit = raw, ZERO
            else:
                debit, credit = ZERO, -raw

            accounts.append({
                "account_id": balance.account_id,
                "balance": raw,
                "debit": debit,
                "credit": credit,
            })
            total_debit += debit
            total_credit += credit

        return {
            "fiscal_period_id": fiscal_period_id,
            "accounts": accounts,
            "total_debit": total_debit,
            "total_credit": total_credit,
            "is_balanced": total_debit == total_credit,
        }

    def verify(self, fiscal_period_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Recompute balances from POSTED transactions and compare.

        Posted-then-voided transactions net to zero and are skipped.

        Returns:
            {
                "total_balances": 10,
                "verified": 10,
                "mismatches": [],
                "transactions_processed": 50,
            }
        """
        expected: Dict[tuple, Decimal] = {}
        posted = Transaction.objects.filter(status=Transaction.Status.POSTED)
        if fiscal_period_id is not None:
            posted = posted.filter(fiscal_period_id=fiscal_period_id)
        transactions_processed = posted.count()

        entries = TransactionEntry.objects.filter(transaction__in=posted).select_related("transaction")
        for entry in entries:
            key = (entry.account_id, entry.transaction.fiscal_period_id)
            expected[key] = expected.get(key, ZERO) + entry.debit_amount - entry.credit_amount

        balances = AccountBalance.objects.all()
        if fiscal_period_id is not None:
            balances = balances.filter(fiscal_period_id=fiscal_period_id)

        mismatches = []
        verified = 0
        seen = set()

        for balance in balances:
            key = (balance.account_id, balance.fiscal_period_id)
            seen.add(key)
            expected_current = balance.opening_balance + expected.get(key, ZERO)
            if balance.current_balance != expected_current:
                mismatches.append({
                    "account_id": balance.account_id,
                    "fiscal_period_id": balance.fiscal_period_id,
                    "stored": str(balance.current_balance),
                    "expected": str(expected_current),
                })
            else:
                verified += 1

        for (account_id, period_id), amount in expected.items():
            if (account_id, period_id) not in seen and amount != ZERO:
                mismatches.append({
                    "account_id": account_id,
                    "fiscal_period_id": period_id,
                    "stored": "(missing)",
                    "expected": str(amount),
                })

        if mismatches:
            logger.warning(f"Balance verification found {len(mismatches)} mismatch(es)")

        return {
            "total_balances": len(seen),
            "verified": verified,
            "mismatches": mismatches,
            "transactions_processed": transactions_processed,
        }
