# fiscal/calendar.py
"""
Fiscal calendar service.

Answers "which year/period is current" and "may this period be posted
to", and owns the year/period lifecycle:

    FiscalYear:   PENDING -> OPEN -> CLOSED
    FiscalPeriod: OPEN -> CLOSED

Every state change runs under the shared write lock and one database
transaction, and writes one audit entry in that transaction.
"""

import logging
import threading
from datetime import date, timedelta
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from accounts.authz import RoleAuthorizer, require
from audit.log import Action, AuditLog, EntityType
from balances.ledger import AccountBalanceLedger
from balances.write_barrier import closing_writes_allowed
from fiscal.models import FiscalPeriod, FiscalYear
from fiscal.serializers import period_snapshot, year_snapshot
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
from ledger.repositories import DjangoTransactionRepository


logger = logging.getLogger(__name__)


class FiscalCalendar:

    def __init__(
        self,
        audit_log: Optional[AuditLog] = None,
        balances: Optional[AccountBalanceLedger] = None,
        transactions=None,
        authorizer=None,
        lock=None,
    ):
        self._lock = lock or threading.RLock()
        self.audit_log = audit_log or AuditLog()
        self.authorizer = authorizer or RoleAuthorizer()
        self.balances = balances or AccountBalanceLedger(
            audit_log=self.audit_log, authorizer=self.authorizer, lock=self._lock
        )
        self.transactions = transactions or DjangoTransactionRepository()

    # =========================================================================
    # Queries
    # =========================================================================

    def years(self) -> list:
        return list(FiscalYear.objects.order_by("start_date"))

    def year_by_id(self, year_id) -> Optional[FiscalYear]:
        return FiscalYear.objects.filter(pk=year_id).first()

    def periods_for_year(self, year_id) -> list:
        return list(FiscalPeriod.objects.filter(fiscal_year_id=year_id).order_by("period"))

    def period_by_id(self, period_id) -> Optional[FiscalPeriod]:
        return FiscalPeriod.objects.select_related("fiscal_year").filter(pk=period_id).first()

    def get_current_year(self) -> Optional[FiscalYear]:
        return FiscalYear.objects.filter(is_current=True).first()

    def get_current_period(self, as_of: Optional[date] = None) -> Optional[FiscalPeriod]:
        """
        Current period of the current year.

        The OPEN period flagged current wins; otherwise the OPEN period
        whose range contains ``as_of`` (today by default). A closed period
        is never current.
        """
        year = self.get_current_year()
        if year is None:
            return None

        periods = FiscalPeriod.objects.filter(fiscal_year=year, status=FiscalPeriod.Status.OPEN)
        flagged = periods.filter(is_current=True).first()
        if flagged is not None:
            return flagged

        as_of = as_of or timezone.localdate()
        return periods.filter(start_date__lte=as_of, end_date__gte=as_of).first()

    def require_current_period(self, as_of: Optional[date] = None) -> FiscalPeriod:
        period = self.get_current_period(as_of)
        if period is None:
            raise NoCurrentPeriodError("No current fiscal period; the fiscal calendar is not initialized.")
        return period

    def require_postable(self, fiscal_year_id, fiscal_period_id, lock: bool = False) -> tuple:
        """
        Return (year, period) if both are open for posting.

        With ``lock=True`` the period row stays locked until the caller's
        atomic block ends, so the period cannot close underneath it.
        """
        year = self._get_year(fiscal_year_id)
        period = self._get_period(fiscal_period_id, lock=lock)

        if period.fiscal_year_id != year.id:
            raise InvalidPeriodRangeError(
                f"Fiscal period {period.id} does not belong to fiscal year {year.id}."
            )
        if year.status != FiscalYear.Status.OPEN:
            raise YearClosedError(f"Fiscal year {year.name} is {year.status}, not open for posting.")
        if period.status != FiscalPeriod.Status.OPEN:
            raise PeriodClosedError(
                f"Fiscal period {year.name} P{period.period} is closed. Cannot post to a closed period."
            )
        return year, period

    # =========================================================================
    # Years
    # =========================================================================

    def create_year(self, name: str, start_date: date, end_date: date, user_id: str) -> FiscalYear:
        if end_date < start_date:
            raise InvalidPeriodRangeError(f"Fiscal year {name} ends before it starts.")

        with self._lock, transaction.atomic():
            overlapping = FiscalYear.objects.filter(
                start_date__lte=end_date,
                end_date__gte=start_date,
            ).first()
            if overlapping is not None:
                raise InvalidPeriodRangeError(
                    f"Fiscal year {name} overlaps fiscal year {overlapping.name}."
                )

            year = FiscalYear.objects.create(
                name=name,
                start_date=start_date,
                end_date=end_date,
                status=FiscalYear.Status.PENDING,
            )
            self.audit_log.append(
                action=Action.CREATE,
                entity_type=EntityType.FISCAL_YEAR,
                entity_id=year.id,
                user_id=user_id,
                details=f"Created fiscal year {name}",
                new_state=year_snapshot(year),
            )

        logger.info(f"Created fiscal year {name} ({start_date} - {end_date})")
        return year

    def open_year(self, year_id, user_id: str) -> FiscalYear:
        require(self.authorizer.can_open_year(user_id), user_id, "periods.open")

        with self._lock, transaction.atomic():
            year = self._get_year(year_id, lock=True)
            if year.status != FiscalYear.Status.PENDING:
                raise InvalidStateError(f"Fiscal year {year.name} is {year.status}; only PENDING years can be opened.")

            current = (
                FiscalYear.objects.select_for_update()
                .filter(status=FiscalYear.Status.OPEN, is_current=True)
                .exclude(pk=year.pk)
                .first()
            )
            if current is not None:
                raise InvalidStateError(
                    f"Fiscal year {current.name} is still open and current. Close it first."
                )

            previous_state = year_snapshot(year)
            self._make_current(year)
            self.audit_log.append(
                action=Action.OPEN,
                entity_type=EntityType.FISCAL_YEAR,
                entity_id=year.id,
                user_id=user_id,
                details=f"Opened fiscal year {year.name}",
                previous_state=previous_state,
                new_state=year_snapshot(year),
            )

        logger.info(f"Opened fiscal year {year.name}", extra={"user_id": user_id})
        return year

    def close_year(self, year_id, user_id: str) -> FiscalYear:
        """
        Close a fiscal year once every period is closed.

        If the year was current, the earliest PENDING year starting after
        it is opened and made current in the same transaction.
        """
        require(self.authorizer.can_close_year(user_id), user_id, "years.close")

        with self._lock, transaction.atomic():
            year = self._get_year(year_id, lock=True)
            if year.status != FiscalYear.Status.OPEN:
                raise InvalidStateError(f"Fiscal year {year.name} is {year.status}; only OPEN years can be closed.")

            open_periods = list(
                year.periods.exclude(status=FiscalPeriod.Status.CLOSED)
                .order_by("period")
                .values_list("period", flat=True)
            )
            if open_periods:
                raise YearHasOpenPeriodsError(year.name, open_periods)

            was_current = year.is_current
            previous_state = year_snapshot(year)

            year.status = FiscalYear.Status.CLOSED
            year.is_current = False
            year.closing_date = timezone.now()
            year.save()

            self.audit_log.append(
                action=Action.CLOSE,
                entity_type=EntityType.FISCAL_YEAR,
                entity_id=year.id,
                user_id=user_id,
                details=f"Closed fiscal year {year.name}",
                previous_state=previous_state,
                new_state=year_snapshot(year),
            )

            promoted = None
            if was_current:
                promoted = (
                    FiscalYear.objects.select_for_update()
                    .filter(status=FiscalYear.Status.PENDING, start_date__gt=year.end_date)
                    .order_by("start_date")
                    .first()
                )
            if promoted is not None:
                promoted_previous = year_snapshot(promoted)
                self._make_current(promoted)
                self.audit_log.append(
                    action=Action.OPEN,
                    entity_type=EntityType.FISCAL_YEAR,
                    entity_id=promoted.id,
                    user_id=user_id,
                    details=f"Opened fiscal year {promoted.name} on close of {year.name}",
                    previous_state=promoted_previous,
                    new_state=year_snapshot(promoted),
                )

        logger.info(
            f"Closed fiscal year {year.name}"
            + (f"; {promoted.name} is now current" if promoted else ""),
            extra={"user_id": user_id},
        )
        return year

    def _make_current(self, year: FiscalYear) -> None:
        FiscalYear.objects.filter(is_current=True).exclude(pk=year.pk).update(is_current=False)
        year.status = FiscalYear.Status.OPEN
        year.is_current = True
        year.save()

    # =========================================================================
    # Periods
    # =========================================================================

    def create_period(self, year_id, start_date: date, end_date: date, name: str = "") -> FiscalPeriod:
        """
        Append the next period to a year.

        Periods must tile the year: the first starts on the year's start
        date, each later one the day after its predecessor ends.
        """
        with self._lock, transaction.atomic():
            year = self._get_year(year_id, lock=True)
            if year.status == FiscalYear.Status.CLOSED:
                raise YearClosedError(f"Fiscal year {year.name} is closed.")

            last = year.periods.order_by("-period").first()
            expected_start = year.start_date if last is None else last.end_date + timedelta(days=1)
            number = 1 if last is None else last.period + 1

            if start_date != expected_start:
                raise InvalidPeriodRangeError(
                    f"Period {number} of {year.name} must start on {expected_start}, not {start_date}."
                )
            if end_date < start_date:
                raise InvalidPeriodRangeError(f"Period {number} of {year.name} ends before it starts.")
            if end_date > year.end_date:
                raise InvalidPeriodRangeError(
                    f"Period {number} of {year.name} ends after the fiscal year ({year.end_date})."
                )

            period = FiscalPeriod.objects.create(
                fiscal_year=year,
                period=number,
                name=name or f"{year.name} P{number}",
                start_date=start_date,
                end_date=end_date,
            )

        logger.info(f"Created fiscal period {period.name} ({start_date} - {end_date})")
        return period

    def generate_periods(self, year_id, period_count: Optional[int] = None) -> list:
        """
        Split a year without periods into ``period_count`` contiguous periods.

        Days that do not divide evenly go to the first periods, one each.
        """
        if period_count is None:
            period_count = getattr(settings, "LEDGER_DEFAULT_PERIOD_COUNT", 12)

        with self._lock, transaction.atomic():
            year = self._get_year(year_id, lock=True)
            if year.periods.exists():
                raise InvalidPeriodRangeError(f"Fiscal year {year.name} already has periods.")

            total_days = (year.end_date - year.start_date).days + 1
            if period_count < 1 or period_count > total_days:
                raise InvalidPeriodRangeError(
                    f"Cannot split {total_days} day(s) of {year.name} into {period_count} period(s)."
                )

            base, remainder = divmod(total_days, period_count)
            periods = []
            start = year.start_date
            for index in range(period_count):
                length = base + (1 if index < remainder else 0)
                end = start + timedelta(days=length - 1)
                periods.append(self.create_period(year.id, start, end))
                start = end + timedelta(days=1)

        return periods

    def set_current_period(self, period_id) -> FiscalPeriod:
        with self._lock, transaction.atomic():
            period = self._get_period(period_id, lock=True)
            if period.status != FiscalPeriod.Status.OPEN:
                raise PeriodClosedError(f"Fiscal period {period} is closed and cannot be made current.")
            FiscalPeriod.objects.filter(
                fiscal_year_id=period.fiscal_year_id, is_current=True
            ).exclude(pk=period.pk).update(is_current=False)
            period.is_current = True
            period.save()
        return period

    def close_period(self, period_id, user_id: str) -> FiscalPeriod:
        """
        Close a fiscal period and freeze its balances.

        The period row is locked before counting open transactions.
        Creation and posting lock the same row, so nothing can enter the
        period between the check and the close.
        """
        require(self.authorizer.can_close_period(user_id), user_id, "periods.close")

        with self._lock, transaction.atomic():
            period = self._get_period(period_id, lock=True)
            if period.status == FiscalPeriod.Status.CLOSED:
                raise InvalidStateError(f"Fiscal period {period} is already closed.")

            open_count = self.transactions.count_open_for_period(period.id)
            if open_count:
                logger.warning(
                    f"Close of period {period.id} refused: {open_count} open transaction(s)"
                )
                raise PeriodHasOpenTransactionsError(period, open_count)

            previous_state = period_snapshot(period)
            period.status = FiscalPeriod.Status.CLOSED
            period.closed_at = timezone.now()
            period.is_current = False
            period.save()

            with closing_writes_allowed():
                frozen = self.balances.freeze(period.id)

            self.audit_log.append(
                action=Action.CLOSE,
                entity_type=EntityType.FISCAL_PERIOD,
                entity_id=period.id,
                user_id=user_id,
                details=f"Closed fiscal period {period.name}; froze {frozen} balance(s)",
                previous_state=previous_state,
                new_state=period_snapshot(period),
            )

        logger.info(
            f"Closed fiscal period {period.name}, froze {frozen} balance(s)",
            extra={"user_id": user_id},
        )
        return period

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get_year(self, year_id, lock: bool = False) -> FiscalYear:
        qs = FiscalYear.objects.select_for_update() if lock else FiscalYear.objects
        try:
            return qs.get(pk=year_id)
        except FiscalYear.DoesNotExist:
            raise FiscalYearNotFoundError(year_id)

    def _get_period(self, period_id, lock: bool = False) -> FiscalPeriod:
        qs = FiscalPeriod.objects.select_for_update() if lock else FiscalPeriod.objects.select_related("fiscal_year")
        try:
            return qs.get(pk=period_id)
        except FiscalPeriod.DoesNotExist:
            raise FiscalPeriodNotFoundError(period_id)
