# ledger/exceptions.py
"""
Error taxonomy for the general ledger.

Every rejection is raised synchronously to the caller. Nothing in the
ledger core catches one of these and returns an empty value instead:
a caller either gets the result of a completed operation or one of
these exceptions, and in the latter case the ledger is unchanged.

Authorization failures are not part of this hierarchy; they raise
django.core.exceptions.PermissionDenied (see accounts/authz.py).
"""


class LedgerError(Exception):
    """Base class for every ledger rejection."""


# =============================================================================
# Transaction validation
# =============================================================================

class UnbalancedEntryError(LedgerError):
    """Sum of debits differs from sum of credits (or from the declared total)."""

    def __init__(self, total_debit, total_credit, declared=None):
        self.total_debit = total_debit
        self.total_credit = total_credit
        self.declared = declared
        if declared is not None and total_debit == total_credit:
            message = (
                f"Entry total {total_debit} does not match declared amount {declared}."
            )
        else:
            message = f"Entry is not balanced. Debit={total_debit} Credit={total_credit}"
        super().__init__(message)


class InvalidEntryError(LedgerError):
    """A line or header field is malformed (negative amount, 0/0 line, bad date)."""


class AccountNotFoundError(LedgerError, LookupError):
    """An entry references an account the chart of accounts does not know."""

    def __init__(self, account_id):
        self.account_id = account_id
        super().__init__(f"Account {account_id} not found.")


# =============================================================================
# Fiscal calendar gating
# =============================================================================

class PeriodClosedError(LedgerError):
    """Target fiscal period is not OPEN."""


class YearClosedError(LedgerError):
    """Target fiscal year is not OPEN."""


class PeriodHasOpenTransactionsError(LedgerError):
    """Period close blocked by DRAFT / PENDING_APPROVAL transactions."""

    def __init__(self, period, open_count: int):
        self.period = period
        self.open_count = open_count
        super().__init__(
            f"Cannot close fiscal period {period}: "
            f"{open_count} transaction(s) still in DRAFT or PENDING_APPROVAL."
        )


class YearHasOpenPeriodsError(LedgerError):
    """Year close blocked by periods that are still OPEN."""

    def __init__(self, year, open_periods):
        self.year = year
        self.open_periods = list(open_periods)
        numbers = ", ".join(str(p) for p in self.open_periods)
        super().__init__(
            f"Cannot close fiscal year {year} until all periods are closed (open: {numbers})."
        )


class InvalidPeriodRangeError(LedgerError):
    """Overlapping, non-contiguous or out-of-year period/year definition."""


class NoCurrentPeriodError(LedgerError):
    """The calendar has no current year or period; posting must stop."""


# =============================================================================
# Lifecycle
# =============================================================================

class InvalidStateTransitionError(LedgerError):
    """A transaction transition that the state machine does not allow."""

    def __init__(self, old_status, new_status, reason: str = ""):
        self.old_status = old_status
        self.new_status = new_status
        super().__init__(reason or f"Invalid status transition: {old_status} -> {new_status}")


class InvalidStateError(LedgerError):
    """A calendar object is in the wrong state for the requested operation."""


# =============================================================================
# Lookups
# =============================================================================

class TransactionNotFoundError(LedgerError, LookupError):
    def __init__(self, transaction_id):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found.")


class FiscalYearNotFoundError(LedgerError, LookupError):
    def __init__(self, year_id):
        self.year_id = year_id
        super().__init__(f"Fiscal year {year_id} not found.")


class FiscalPeriodNotFoundError(LedgerError, LookupError):
    def __init__(self, period_id):
        self.period_id = period_id
        super().__init__(f"Fiscal period {period_id} not found.")


# =============================================================================
# Storage
# =============================================================================

class StorageError(LedgerError):
    """
    Underlying persistence failure.

    Fatal for the in-flight operation. The surrounding database transaction
    is rolled back, so the caller must not assume any part of the operation
    was applied.
    """
