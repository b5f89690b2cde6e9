from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="FiscalYear",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, unique=True)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("status", models.CharField(
                    choices=[("PENDING", "Pending"), ("OPEN", "Open"), ("CLOSED", "Closed")],
                    default="PENDING",
                    max_length=10,
                )),
                ("is_current", models.BooleanField(default=False)),
                ("closing_date", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["start_date"],
                "indexes": [
                    models.Index(fields=["start_date", "end_date"], name="fiscal_fisc_start_d_8a1c2e_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="FiscalPeriod",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("period", models.PositiveSmallIntegerField()),
                ("name", models.CharField(blank=True, default="", max_length=100)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("status", models.CharField(
                    choices=[("OPEN", "Open"), ("CLOSED", "Closed")],
                    default="OPEN",
                    max_length=10,
                )),
                ("is_current", models.BooleanField(default=False)),
                ("closed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("fiscal_year", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="periods",
                    to="fiscal.fiscalyear",
                )),
            ],
            options={
                "ordering": ["fiscal_year__start_date", "period"],
                "indexes": [
                    models.Index(fields=["start_date", "end_date"], name="fiscal_fisc_start_d_4f7b90_idx"),
                ],
            },
        ),
        migrations.AddConstraint(
            model_name="fiscalperiod",
            constraint=models.UniqueConstraint(fields=("fiscal_year", "period"), name="uniq_fiscal_year_period"),
        ),
    ]
