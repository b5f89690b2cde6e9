from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AuditLogEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(
                    choices=[
                        ("CREATE", "Create"),
                        ("UPDATE", "Update"),
                        ("SUBMIT", "Submit"),
                        ("APPROVE", "Approve"),
                        ("REJECT", "Reject"),
                        ("POST", "Post"),
                        ("VOID", "Void"),
                        ("DISCARD", "Discard"),
                        ("OPEN", "Open"),
                        ("CLOSE", "Close"),
                        ("CARRY_FORWARD", "Carry forward"),
                    ],
                    max_length=20,
                )),
                ("entity_type", models.CharField(
                    choices=[
                        ("TRANSACTION", "Transaction"),
                        ("FISCAL_YEAR", "Fiscal year"),
                        ("FISCAL_PERIOD", "Fiscal period"),
                        ("ACCOUNT_BALANCE", "Account balance"),
                    ],
                    max_length=20,
                )),
                ("entity_id", models.CharField(max_length=64)),
                ("user_id", models.CharField(max_length=64)),
                ("timestamp", models.DateTimeField(auto_now_add=True)),
                ("details", models.TextField(blank=True, default="")),
                ("previous_state", models.JSONField(blank=True, null=True)),
                ("new_state", models.JSONField(blank=True, null=True)),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
            ],
            options={
                "ordering": ["id"],
                "indexes": [
                    models.Index(fields=["entity_type", "entity_id"], name="audit_entity_idx"),
                    models.Index(fields=["user_id", "timestamp"], name="audit_user_ts_idx"),
                ],
            },
        ),
    ]
