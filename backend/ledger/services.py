# ledger/services.py
"""
General ledger facade.

Wires the fiscal calendar, transaction store, balance ledger, audit log
and posting coordinator together around one write lock, and exposes
their operations to the rest of the application.

Usage:
    from ledger.services import GeneralLedger

    gl = GeneralLedger()
    txn = gl.create_transaction(request)
    gl.approve(txn.pk, approver_id="manager-1")
    gl.post(txn.pk, posted_by="accountant-1")

Repositories and collaborators can be injected; tests use this to swap
in a failing balance repository, a fixed chart or an allow-all
authorizer.
"""

import threading
from datetime import date
from typing import Optional, Union

from accounting.chart import ChartOfAccounts, DjangoChartOfAccounts
from accounts.authz import Authorizer, RoleAuthorizer
from audit.log import AuditLog
from audit.repositories import AuditRepository, DjangoAuditRepository
from balances.ledger import AccountBalanceLedger
from balances.repositories import BalanceRepository, DjangoBalanceRepository
from fiscal.calendar import FiscalCalendar
from ledger.posting import PostingCoordinator
from ledger.repositories import DjangoTransactionRepository, TransactionRepository
from ledger.serializers import parse_transaction_request
from ledger.store import LedgerTransactionStore
from ledger.types import TransactionRequest


class GeneralLedger:

    def __init__(
        self,
        transactions: Optional[TransactionRepository] = None,
        balances: Optional[BalanceRepository] = None,
        audit: Optional[AuditRepository] = None,
        chart: Optional[ChartOfAccounts] = None,
        authorizer: Optional[Authorizer] = None,
    ):
        self.lock = threading.RLock()
        self.authorizer = authorizer or RoleAuthorizer()
        self.chart = chart or DjangoChartOfAccounts()
        transactions = transactions or DjangoTransactionRepository()

        self.audit_log = AuditLog(audit or DjangoAuditRepository())
        self.balances = AccountBalanceLedger(
            repository=balances or DjangoBalanceRepository(),
            audit_log=self.audit_log,
            authorizer=self.authorizer,
            lock=self.lock,
        )
        self.calendar = FiscalCalendar(
            audit_log=self.audit_log,
            balances=self.balances,
            transactions=transactions,
            authorizer=self.authorizer,
            lock=self.lock,
        )
        self.coordinator = PostingCoordinator(
            repository=transactions,
            balances=self.balances,
            calendar=self.calendar,
            audit_log=self.audit_log,
            authorizer=self.authorizer,
            lock=self.lock,
        )
        self.store = LedgerTransactionStore(
            repository=transactions,
            calendar=self.calendar,
            chart=self.chart,
            authorizer=self.authorizer,
            audit_log=self.audit_log,
            coordinator=self.coordinator,
            lock=self.lock,
        )

    # =========================================================================
    # Transactions
    # =========================================================================

    def create_transaction(self, request: Union[TransactionRequest, dict]):
        """Accepts a TransactionRequest or a dict of the same shape."""
        if isinstance(request, dict):
            request = parse_transaction_request(request)
        return self.store.create(request)

    def update_transaction(self, transaction_id, user_id: str, **changes):
        return self.store.update(transaction_id, user_id, **changes)

    def submit(self, transaction_id, user_id: str):
        return self.store.submit(transaction_id, user_id)

    def approve(self, transaction_id, approver_id: str):
        return self.store.approve(transaction_id, approver_id)

    def reject(self, transaction_id, user_id: str, reason: str):
        return self.store.reject(transaction_id, user_id, reason)

    def discard(self, transaction_id, user_id: str, reason: str = ""):
        return self.store.discard(transaction_id, user_id, reason)

    def post(self, transaction_id, posted_by: Optional[str] = None):
        return self.coordinator.post(transaction_id, posted_by=posted_by)

    def void(self, transaction_id, voided_by: str, reason: str):
        return self.coordinator.void(transaction_id, voided_by, reason)

    def get_transaction(self, transaction_id):
        return self.store.by_id(transaction_id)

    def transactions_by_fiscal_year(self, fiscal_year_id):
        return self.store.by_fiscal_year(fiscal_year_id)

    def transactions_by_fiscal_period(self, fiscal_period_id):
        return self.store.by_fiscal_period(fiscal_period_id)

    def transactions_by_account(self, account_id: str):
        return self.store.by_account(account_id)

    def transactions_by_type(self, transaction_type: str):
        return self.store.by_type(transaction_type)

    def transactions_by_status(self, status: str):
        return self.store.by_status(status)

    def all_transactions(self):
        return self.store.all()

    # =========================================================================
    # Fiscal calendar
    # =========================================================================

    def create_fiscal_year(self, name: str, start_date: date, end_date: date, user_id: str):
        return self.calendar.create_year(name, start_date, end_date, user_id)

    def open_fiscal_year(self, year_id, user_id: str):
        return self.calendar.open_year(year_id, user_id)

    def close_fiscal_year(self, year_id, user_id: str):
        return self.calendar.close_year(year_id, user_id)

    def create_fiscal_period(self, year_id, start_date: date, end_date: date, name: str = ""):
        return self.calendar.create_period(year_id, start_date, end_date, name=name)

    def generate_fiscal_periods(self, year_id, period_count: Optional[int] = None):
        return self.calendar.generate_periods(year_id, period_count)

    def set_current_period(self, period_id):
        return self.calendar.set_current_period(period_id)

    def close_fiscal_period(self, period_id, user_id: str):
        return self.calendar.close_period(period_id, user_id)

    def current_fiscal_year(self):
        return self.calendar.get_current_year()

    def current_fiscal_period(self, as_of: Optional[date] = None):
        return self.calendar.get_current_period(as_of)

    # =========================================================================
    # Balances
    # =========================================================================

    def get_balance(self, account_id: str, fiscal_year_id, fiscal_period_id):
        return self.balances.get(account_id, fiscal_year_id, fiscal_period_id)

    def current_balance(self, account_id: str, fiscal_year_id, fiscal_period_id):
        return self.balances.current_balance(account_id, fiscal_year_id, fiscal_period_id)

    def balances_for_period(self, fiscal_period_id):
        return self.balances.for_period(fiscal_period_id)

    def balances_for_account(self, account_id: str):
        return self.balances.for_account(account_id)

    def carry_forward(self, from_period_id, to_period_id, user_id: str):
        return self.balances.carry_forward(from_period_id, to_period_id, user_id)

    def trial_balance(self, fiscal_period_id):
        return self.balances.trial_balance(fiscal_period_id)

    def verify_balances(self, fiscal_period_id=None):
        return self.balances.verify(fiscal_period_id)

    # =========================================================================
    # Audit
    # =========================================================================

    def audit_trail(self, entity_type: str, entity_id):
        return self.audit_log.by_entity(entity_type, entity_id)

    def audit_by_user(self, user_id: str):
        return self.audit_log.by_user(user_id)

    def audit_log_entries(self):
        return self.audit_log.all()
