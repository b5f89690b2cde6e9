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
            name="AccountBalance",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("account_id", models.CharField(max_length=32)),
                ("opening_balance", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("current_balance", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("closing_balance", models.DecimalField(blank=True, decimal_places=2, max_digits=18, null=True)),
                ("last_updated", models.DateTimeField(auto_now=True)),
                ("fiscal_year", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="account_balances",
                    to="fiscal.fiscalyear",
                )),
                ("fiscal_period", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="account_balances",
                    to="fiscal.fiscalperiod",
                )),
            ],
            options={
                "ordering": ["fiscal_period_id", "account_id"],
                "indexes": [
                    models.Index(fields=["fiscal_period", "account_id"], name="balance_period_account_idx"),
                ],
            },
        ),
        migrations.AddConstraint(
            model_name="accountbalance",
            constraint=models.UniqueConstraint(
                fields=("account_id", "fiscal_year", "fiscal_period"),
                name="uniq_account_balance_key",
            ),
        ),
    ]
