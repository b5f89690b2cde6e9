from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Account",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=32, unique=True)),
                ("name", models.CharField(max_length=255)),
                ("account_type", models.CharField(
                    choices=[
                        ("ASSET", "Asset"),
                        ("LIABILITY", "Liability"),
                        ("EQUITY", "Equity"),
                        ("REVENUE", "Revenue"),
                        ("EXPENSE", "Expense"),
                    ],
                    db_column="type",
                    max_length=20,
                )),
                ("status", models.CharField(
                    choices=[("ACTIVE", "Active"), ("INACTIVE", "Inactive")],
                    default="ACTIVE",
                    max_length=20,
                )),
                ("is_header", models.BooleanField(default=False)),
                ("is_cash_account", models.BooleanField(default=False)),
                ("description", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["code"],
            },
        ),
    ]
