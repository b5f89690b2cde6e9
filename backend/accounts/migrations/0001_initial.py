from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Membership",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_id", models.CharField(max_length=64, unique=True)),
                ("name", models.CharField(blank=True, default="", max_length=255)),
                ("role", models.CharField(
                    choices=[
                        ("ADMIN", "Admin"),
                        ("ACCOUNTANT", "Accountant"),
                        ("MANAGER", "Manager"),
                        ("READONLY", "Read only"),
                        ("USER", "User"),
                    ],
                    default="USER",
                    max_length=20,
                )),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["user_id"],
            },
        ),
    ]
