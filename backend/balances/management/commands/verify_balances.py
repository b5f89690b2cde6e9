# balances/management/commands/verify_balances.py
"""
Management command to check stored account balances against posted
transactions.

Usage:
    # Verify every period
    python manage.py verify_balances

    # Verify one fiscal period
    python manage.py verify_balances --period 3

    # Print the trial balance of a period after verifying it
    python manage.py verify_balances --period 3 --trial-balance

Exits with an error if any mismatch is found.
"""

from django.core.management.base import BaseCommand, CommandError

from balances.ledger import AccountBalanceLedger
from fiscal.models import FiscalPeriod


class Command(BaseCommand):
    """Verify account balances."""

    help = "Recompute account balances from posted transactions and report mismatches"

    def add_arguments(self, parser):
        parser.add_argument(
            "--period",
            type=int,
            help="Fiscal period id to verify (default: all periods)",
        )
        parser.add_argument(
            "--trial-balance",
            action="store_true",
            help="Print the trial balance of --period",
        )

    def handle(self, *args, **options):
        period_id = options.get("period")
        if period_id is not None and not FiscalPeriod.objects.filter(pk=period_id).exists():
            raise CommandError(f"Fiscal period {period_id} not found")
        if options.get("trial_balance") and period_id is None:
            raise CommandError("--trial-balance requires --period")

        ledger = AccountBalanceLedger()
        result = ledger.verify(fiscal_period_id=period_id)

        self.stdout.write(
            f"Checked {result['total_balances']} balance(s) against "
            f"{result['transactions_processed']} posted transaction(s)"
        )

        if options.get("trial_balance"):
            trial = ledger.trial_balance(period_id)
            for line in trial["accounts"]:
                self.stdout.write(
                    f"  {line['account_id']:<12} {line['debit']:>16} {line['credit']:>16}"
                )
            self.stdout.write(
                f"  {'TOTAL':<12} {trial['total_debit']:>16} {trial['total_credit']:>16}"
            )
            if not trial["is_balanced"]:
                self.stdout.write(self.style.WARNING("Trial balance does not balance"))

        if result["mismatches"]:
            for mismatch in result["mismatches"]:
                self.stdout.write(self.style.ERROR(
                    f"  {mismatch['account_id']} P{mismatch['fiscal_period_id']}: "
                    f"stored={mismatch['stored']} expected={mismatch['expected']}"
                ))
            raise CommandError(f"{len(result['mismatches'])} balance mismatch(es) found")

        self.stdout.write(self.style.SUCCESS(f"All {result['verified']} balance(s) verified"))
