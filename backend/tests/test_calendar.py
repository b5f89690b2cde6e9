# tests/test_calendar.py
"""
Tests for the fiscal calendar.

Tests cover:
- Year creation, overlap rejection and opening
- Period generation, contiguity and the current-period lookup
- Period close gating and balance freezing
- Year close and promotion of the next year
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from django.core.exceptions import PermissionDenied

from audit.models import AuditLogEntry
from fiscal.models import FiscalPeriod, FiscalYear
from ledger.exceptions import (
    FiscalPeriodNotFoundError,
    FiscalYearNotFoundError,
    InvalidPeriodRangeError,
    InvalidStateError,
    NoCurrentPeriodError,
    PeriodClosedError,
    PeriodHasOpenTransactionsError,
    YearClosedError,
    YearHasOpenPeriodsError,
)

from tests.conftest import ACCOUNTANT, ADMIN, CASH, MANAGER


def _close_all_periods(gl, year):
    for period in gl.calendar.periods_for_year(year.id):
        if period.status == FiscalPeriod.Status.OPEN:
            gl.close_fiscal_period(period.id, ADMIN)


# =============================================================================
# Years
# =============================================================================

@pytest.mark.django_db
class TestFiscalYears:

    def test_new_year_is_pending(self, gl):
        year = gl.create_fiscal_year("2026", date(2026, 1, 1), date(2026, 12, 31), ADMIN)
        assert year.status == FiscalYear.Status.PENDING
        assert not year.is_current
        assert gl.current_fiscal_year() is None

    def test_year_creation_is_audited(self, gl):
        year = gl.create_fiscal_year("2026", date(2026, 1, 1), date(2026, 12, 31), ADMIN)
        trail = gl.audit_trail(AuditLogEntry.EntityType.FISCAL_YEAR, year.id)
        assert [e.action for e in trail] == [AuditLogEntry.Action.CREATE]

    def test_overlapping_year_rejected(self, gl):
        gl.create_fiscal_year("2026", date(2026, 1, 1), date(2026, 12, 31), ADMIN)
        with pytest.raises(InvalidPeriodRangeError):
            gl.create_fiscal_year("2026b", date(2026, 7, 1), date(2027, 6, 30), ADMIN)

    def test_inverted_range_rejected(self, gl):
        with pytest.raises(InvalidPeriodRangeError):
            gl.create_fiscal_year("bad", date(2026, 12, 31), date(2026, 1, 1), ADMIN)

    def test_open_makes_current(self, gl, fiscal_year):
        assert fiscal_year.status == FiscalYear.Status.OPEN
        assert fiscal_year.is_current
        assert gl.current_fiscal_year() == fiscal_year

    def test_open_requires_admin(self, gl):
        year = gl.create_fiscal_year("2026", date(2026, 1, 1), date(2026, 12, 31), ADMIN)
        with pytest.raises(PermissionDenied):
            gl.open_fiscal_year(year.id, ACCOUNTANT)

    def test_cannot_open_twice(self, gl, fiscal_year):
        with pytest.raises(InvalidStateError):
            gl.open_fiscal_year(fiscal_year.id, ADMIN)

    def test_cannot_open_while_another_is_current(self, gl, fiscal_year):
        later = gl.create_fiscal_year("2027", date(2027, 1, 1), date(2027, 12, 31), ADMIN)
        with pytest.raises(InvalidStateError):
            gl.open_fiscal_year(later.id, ADMIN)

    def test_missing_year(self, gl):
        with pytest.raises(FiscalYearNotFoundError):
            gl.open_fiscal_year(4242, ADMIN)


# =============================================================================
# Periods
# =============================================================================

@pytest.mark.django_db
class TestFiscalPeriods:

    def test_generated_periods_tile_the_year(self, gl, fiscal_year):
        periods = gl.calendar.periods_for_year(fiscal_year.id)

        assert [p.period for p in periods] == list(range(1, 13))
        assert periods[0].start_date == fiscal_year.start_date
        assert periods[-1].end_date == fiscal_year.end_date
        for previous, current in zip(periods, periods[1:]):
            assert current.start_date == previous.end_date + timedelta(days=1)

    def test_remainder_days_go_to_first_periods(self, gl, fiscal_year):
        # 365 days / 12 = 30 remainder 5
        lengths = [
            (p.end_date - p.start_date).days + 1
            for p in gl.calendar.periods_for_year(fiscal_year.id)
        ]
        assert lengths == [31] * 5 + [30] * 7

    def test_generate_uses_configured_default(self, gl, settings):
        settings.LEDGER_DEFAULT_PERIOD_COUNT = 4
        year = gl.create_fiscal_year("2026", date(2026, 1, 1), date(2026, 12, 31), ADMIN)
        assert len(gl.generate_fiscal_periods(year.id)) == 4

    def test_generate_twice_rejected(self, gl, fiscal_year):
        with pytest.raises(InvalidPeriodRangeError):
            gl.generate_fiscal_periods(fiscal_year.id, 12)

    def test_manual_periods_must_be_contiguous(self, gl):
        year = gl.create_fiscal_year("2026", date(2026, 1, 1), date(2026, 12, 31), ADMIN)
        first = gl.create_fiscal_period(year.id, date(2026, 1, 1), date(2026, 6, 30))
        assert first.period == 1
        assert first.name == "2026 P1"

        with pytest.raises(InvalidPeriodRangeError):
            gl.create_fiscal_period(year.id, date(2026, 7, 2), date(2026, 12, 31))
        with pytest.raises(InvalidPeriodRangeError):
            gl.create_fiscal_period(year.id, date(2026, 7, 1), date(2027, 1, 31))

        second = gl.create_fiscal_period(year.id, date(2026, 7, 1), date(2026, 12, 31), name="H2")
        assert second.period == 2
        assert second.name == "H2"

    def test_flagged_current_period_wins(self, gl, fiscal_year, next_period):
        gl.set_current_period(next_period.id)
        assert gl.current_fiscal_period(as_of=date(2026, 1, 10)) == next_period

    def test_current_period_falls_back_to_date(self, gl, fiscal_year, period):
        assert gl.current_fiscal_period(as_of=date(2026, 1, 10)) == period

    def test_setting_current_period_clears_the_previous_one(self, gl, period, next_period):
        gl.set_current_period(period.id)
        gl.set_current_period(next_period.id)
        assert list(FiscalPeriod.objects.filter(is_current=True)) == [next_period]

    def test_closed_period_is_never_current(self, gl, period):
        gl.set_current_period(period.id)
        closed = gl.close_fiscal_period(period.id, ADMIN)

        assert not closed.is_current
        assert gl.current_fiscal_period(as_of=date(2026, 1, 10)) is None
        with pytest.raises(NoCurrentPeriodError):
            gl.calendar.require_current_period(as_of=date(2026, 1, 10))

    def test_current_period_falls_through_to_next_open_period(self, gl, period, next_period):
        gl.close_fiscal_period(period.id, ADMIN)
        assert gl.current_fiscal_period(as_of=date(2026, 2, 3)) == next_period

    def test_closed_period_cannot_be_made_current(self, gl, period):
        gl.close_fiscal_period(period.id, ADMIN)
        with pytest.raises(PeriodClosedError):
            gl.set_current_period(period.id)
        assert not FiscalPeriod.objects.filter(is_current=True).exists()

    def test_no_current_period_without_calendar(self, gl):
        assert gl.current_fiscal_period() is None
        with pytest.raises(NoCurrentPeriodError):
            gl.calendar.require_current_period()

    def test_period_must_belong_to_year(self, gl, fiscal_year):
        other = gl.create_fiscal_year("2027", date(2027, 1, 1), date(2027, 12, 31), ADMIN)
        gl.generate_fiscal_periods(other.id, 12)
        foreign = gl.calendar.periods_for_year(other.id)[0]
        with pytest.raises(InvalidPeriodRangeError):
            gl.calendar.require_postable(fiscal_year.id, foreign.id)

    def test_missing_period(self, gl, fiscal_year):
        with pytest.raises(FiscalPeriodNotFoundError):
            gl.close_fiscal_period(4242, ADMIN)


# =============================================================================
# Period close
# =============================================================================

@pytest.mark.django_db
class TestPeriodClose:

    def test_close_blocked_by_open_transactions(self, gl, pending_txn, period):
        with pytest.raises(PeriodHasOpenTransactionsError) as exc_info:
            gl.close_fiscal_period(period.id, ADMIN)
        assert exc_info.value.open_count == 1
        assert gl.calendar.period_by_id(period.id).status == FiscalPeriod.Status.OPEN

    def test_close_freezes_balances(self, gl, posted_txn, period):
        closed = gl.close_fiscal_period(period.id, ACCOUNTANT)

        assert closed.status == FiscalPeriod.Status.CLOSED
        assert closed.closed_at is not None
        for balance in gl.balances_for_period(period.id):
            assert balance.closing_balance == balance.current_balance
        cash = gl.get_balance(CASH, period.fiscal_year_id, period.id)
        assert cash.closing_balance == Decimal("500.00")

    def test_close_is_audited(self, gl, period):
        gl.close_fiscal_period(period.id, ADMIN)
        trail = gl.audit_trail(AuditLogEntry.EntityType.FISCAL_PERIOD, period.id)
        assert trail[-1].action == AuditLogEntry.Action.CLOSE
        assert trail[-1].new_state["status"] == FiscalPeriod.Status.CLOSED

    def test_close_twice_rejected(self, gl, period):
        gl.close_fiscal_period(period.id, ADMIN)
        with pytest.raises(InvalidStateError):
            gl.close_fiscal_period(period.id, ADMIN)

    def test_manager_cannot_close(self, gl, period):
        with pytest.raises(PermissionDenied):
            gl.close_fiscal_period(period.id, MANAGER)


# =============================================================================
# Year close
# =============================================================================

@pytest.mark.django_db
class TestYearClose:

    def test_close_blocked_by_open_periods(self, gl, fiscal_year, period):
        gl.close_fiscal_period(period.id, ADMIN)
        with pytest.raises(YearHasOpenPeriodsError) as exc_info:
            gl.close_fiscal_year(fiscal_year.id, ADMIN)
        assert exc_info.value.open_periods == list(range(2, 13))

    def test_close_requires_admin(self, gl, fiscal_year):
        _close_all_periods(gl, fiscal_year)
        with pytest.raises(PermissionDenied):
            gl.close_fiscal_year(fiscal_year.id, ACCOUNTANT)

    def test_close_without_successor(self, gl, fiscal_year):
        _close_all_periods(gl, fiscal_year)
        closed = gl.close_fiscal_year(fiscal_year.id, ADMIN)

        assert closed.status == FiscalYear.Status.CLOSED
        assert not closed.is_current
        assert closed.closing_date is not None
        assert gl.current_fiscal_year() is None

    def test_close_promotes_next_pending_year(self, gl, fiscal_year):
        later = gl.create_fiscal_year("2028", date(2028, 1, 1), date(2028, 12, 31), ADMIN)
        following = gl.create_fiscal_year("2027", date(2027, 1, 1), date(2027, 12, 31), ADMIN)
        _close_all_periods(gl, fiscal_year)

        gl.close_fiscal_year(fiscal_year.id, ADMIN)

        following.refresh_from_db()
        later.refresh_from_db()
        assert following.status == FiscalYear.Status.OPEN
        assert following.is_current
        assert later.status == FiscalYear.Status.PENDING
        assert gl.current_fiscal_year() == following

    def test_closed_year_accepts_no_new_periods(self, gl):
        year = gl.create_fiscal_year("2026", date(2026, 1, 1), date(2026, 12, 31), ADMIN)
        gl.generate_fiscal_periods(year.id, 1)
        gl.open_fiscal_year(year.id, ADMIN)
        _close_all_periods(gl, year)
        gl.close_fiscal_year(year.id, ADMIN)

        with pytest.raises(YearClosedError):
            gl.create_fiscal_period(year.id, date(2027, 1, 1), date(2027, 1, 31))
