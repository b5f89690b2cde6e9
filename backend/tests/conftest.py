# tests/conftest.py
"""
Pytest fixtures for the general ledger tests.

The default fixture world:
- Roles: ADMIN, ACCOUNTANT, MANAGER, READONLY (user ids below)
- Chart: cash, receivables, payables, equity, revenue, expense
- Fiscal year 2026 (OPEN, current) split into 12 periods; period 1 is
  2026-01-01 .. 2026-01-31
"""

import pytest
from datetime import date
from decimal import Decimal

from accounting.models import Account
from accounts.models import Membership
from ledger.models import Transaction
from ledger.services import GeneralLedger
from ledger.types import EntryRequest, TransactionRequest


ADMIN = "admin-1"
ACCOUNTANT = "accountant-1"
MANAGER = "manager-1"
READONLY = "readonly-1"

CASH = "1000"
RECEIVABLES = "1100"
PAYABLES = "2000"
EQUITY = "3000"
REVENUE = "4000"
EXPENSE = "5000"


# =============================================================================
# Users & Chart
# =============================================================================

@pytest.fixture
def memberships(db):
    """One active membership per role."""
    return {
        user_id: Membership.objects.create(user_id=user_id, name=user_id, role=role)
        for user_id, role in [
            (ADMIN, Membership.Role.ADMIN),
            (ACCOUNTANT, Membership.Role.ACCOUNTANT),
            (MANAGER, Membership.Role.MANAGER),
            (READONLY, Membership.Role.READONLY),
        ]
    }


@pytest.fixture
def chart(db):
    """Small chart of accounts keyed by code."""
    rows = [
        (CASH, "Cash", Account.AccountType.ASSET, True),
        (RECEIVABLES, "Accounts Receivable", Account.AccountType.ASSET, False),
        (PAYABLES, "Accounts Payable", Account.AccountType.LIABILITY, False),
        (EQUITY, "Retained Earnings", Account.AccountType.EQUITY, False),
        (REVENUE, "Tuition Revenue", Account.AccountType.REVENUE, False),
        (EXPENSE, "Depreciation Expense", Account.AccountType.EXPENSE, False),
    ]
    return {
        code: Account.objects.create(code=code, name=name, account_type=account_type, is_cash_account=is_cash)
        for code, name, account_type, is_cash in rows
    }


# =============================================================================
# Ledger & Calendar
# =============================================================================

@pytest.fixture
def gl(db, memberships, chart):
    """GeneralLedger with the default Django-backed collaborators."""
    return GeneralLedger()


@pytest.fixture
def fiscal_year(gl):
    """FY 2026, opened and current, with 12 generated periods."""
    year = gl.create_fiscal_year("2026", date(2026, 1, 1), date(2026, 12, 31), ADMIN)
    gl.generate_fiscal_periods(year.id, 12)
    return gl.open_fiscal_year(year.id, ADMIN)


@pytest.fixture
def period(gl, fiscal_year):
    """Period 1 of FY 2026 (January)."""
    return gl.calendar.periods_for_year(fiscal_year.id)[0]


@pytest.fixture
def next_period(gl, fiscal_year):
    """Period 2 of FY 2026."""
    return gl.calendar.periods_for_year(fiscal_year.id)[1]


# =============================================================================
# Transaction Helpers
# =============================================================================

@pytest.fixture
def make_request(fiscal_year, period):
    """
    Factory for a two-line journal entry request.

    Defaults to debit cash / credit revenue for 500.00 in period 1.
    """
    def _make(
        amount="500.00",
        debit_account=CASH,
        credit_account=REVENUE,
        created_by=ACCOUNTANT,
        txn_date=date(2026, 1, 15),
        target_period=None,
        transaction_type=Transaction.TransactionType.JOURNAL_ENTRY,
        entries=None,
        declared=None,
    ):
        target_period = target_period or period
        if entries is None:
            entries = [
                EntryRequest(account_id=debit_account, debit_amount=Decimal(amount), description="Debit"),
                EntryRequest(account_id=credit_account, credit_amount=Decimal(amount), description="Credit"),
            ]
        return TransactionRequest(
            transaction_type=transaction_type,
            date=txn_date,
            description="Test transaction",
            reference="REF-001",
            fiscal_year_id=target_period.fiscal_year_id,
            fiscal_period_id=target_period.id,
            created_by=created_by,
            entries=entries,
            amount=Decimal(declared) if declared is not None else None,
        )

    return _make


@pytest.fixture
def pending_txn(gl, make_request):
    """Created by an accountant, so it lands in PENDING_APPROVAL."""
    return gl.create_transaction(make_request())


@pytest.fixture
def approved_txn(gl, pending_txn):
    return gl.approve(pending_txn.id, MANAGER)


@pytest.fixture
def posted_txn(gl, approved_txn):
    return gl.post(approved_txn.id, posted_by=ACCOUNTANT)
