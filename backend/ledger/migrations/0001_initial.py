from decimal import Decimal

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("fiscal", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Transaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("transaction_type", models.CharField(
                    choices=[
                        ("JOURNAL_ENTRY", "Journal entry"),
                        ("ACCOUNTS_PAYABLE", "Accounts payable"),
                        ("ACCOUNTS_RECEIVABLE", "Accounts receivable"),
                        ("BANK_TRANSACTION", "Bank transaction"),
                        ("BUDGET_ADJUSTMENT", "Budget adjustment"),
                        ("TUITION_CREDIT", "Tuition credit"),
                        ("DEPRECIATION", "Depreciation"),
                        ("BANK_ADJUSTMENT", "Bank adjustment"),
                    ],
                    db_column="type",
                    max_length=30,
                )),
                ("date", models.DateField()),
                ("description", models.TextField(blank=True, default="")),
                ("reference", models.CharField(blank=True, default="", max_length=100)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("status", models.CharField(
                    choices=[
                        ("DRAFT", "Draft"),
                        ("PENDING_APPROVAL", "Pending approval"),
                        ("APPROVED", "Approved"),
                        ("POSTED", "Posted"),
                        ("VOIDED", "Voided"),
                        ("REJECTED", "Rejected"),
                    ],
                    default="DRAFT",
                    max_length=20,
                )),
                ("created_by", models.CharField(max_length=64)),
                ("approved_by", models.CharField(blank=True, default="", max_length=64)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("posted_by", models.CharField(blank=True, default="", max_length=64)),
                ("posted_at", models.DateTimeField(blank=True, null=True)),
                ("voided_by", models.CharField(blank=True, default="", max_length=64)),
                ("voided_at", models.DateTimeField(blank=True, null=True)),
                ("void_reason", models.TextField(blank=True, default="")),
                ("rejected_by", models.CharField(blank=True, default="", max_length=64)),
                ("rejected_at", models.DateTimeField(blank=True, null=True)),
                ("rejection_reason", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("fiscal_year", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="transactions",
                    to="fiscal.fiscalyear",
                )),
                ("fiscal_period", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="transactions",
                    to="fiscal.fiscalperiod",
                )),
            ],
            options={
                "ordering": ["date", "id"],
                "indexes": [
                    models.Index(fields=["fiscal_period", "status"], name="txn_period_status_idx"),
                    models.Index(fields=["transaction_type"], name="txn_type_idx"),
                    models.Index(fields=["status"], name="txn_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(amount__gt=0), name="chk_txn_amount_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="TransactionEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("line_no", models.PositiveIntegerField()),
                ("account_id", models.CharField(max_length=32)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("debit_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("credit_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("transaction", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="entries",
                    to="ledger.transaction",
                )),
            ],
            options={
                "ordering": ["transaction", "line_no"],
                "indexes": [
                    models.Index(fields=["account_id"], name="txn_entry_account_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("transaction", "line_no"), name="uniq_txn_entry_line_no"),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("debit_amount__exact", 0), ("credit_amount__exact", 0)),
                            _negated=True,
                        ),
                        name="chk_entry_not_both_zero",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("debit_amount__gte", 0), ("credit_amount__gte", 0)),
                        name="chk_entry_non_negative",
                    ),
                ],
            },
        ),
    ]
