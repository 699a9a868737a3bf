# Generated manually - job ledger

import django.core.serializers.json
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="QueuedJob",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                ("job_id", models.CharField(max_length=255, unique=True)),
                (
                    "queue",
                    models.CharField(
                        choices=[
                            ("email", "Email"),
                            ("sync", "Sync"),
                            ("payment", "Payment"),
                            ("enrollment", "Enrollment"),
                            ("notification", "Notification"),
                            ("cleanup", "Cleanup"),
                        ],
                        db_index=True,
                        max_length=32,
                    ),
                ),
                ("name", models.CharField(max_length=64)),
                (
                    "payload",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        encoder=django.core.serializers.json.DjangoJSONEncoder,
                    ),
                ),
                ("priority", models.PositiveSmallIntegerField(default=5)),
                ("attempts_made", models.PositiveSmallIntegerField(default=0)),
                ("max_attempts", models.PositiveSmallIntegerField(default=3)),
                (
                    "backoff_type",
                    models.CharField(
                        choices=[("fixed", "Fixed"), ("exponential", "Exponential")],
                        default="exponential",
                        max_length=16,
                    ),
                ),
                ("backoff_delay_ms", models.PositiveIntegerField(default=2000)),
                ("delay_until", models.DateTimeField(blank=True, null=True)),
                ("repeat_key", models.CharField(blank=True, max_length=255, null=True)),
                ("progress", models.PositiveSmallIntegerField(default=0)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("waiting", "Waiting"),
                            ("delayed", "Delayed"),
                            ("active", "Active"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="waiting",
                        max_length=16,
                    ),
                ),
                (
                    "result",
                    models.JSONField(
                        blank=True,
                        encoder=django.core.serializers.json.DjangoJSONEncoder,
                        null=True,
                    ),
                ),
                ("last_error", models.TextField(blank=True, default="")),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("finished_at", models.DateTimeField(blank=True, null=True)),
                ("celery_task_id", models.CharField(blank=True, default="", max_length=255)),
            ],
            options={
                "verbose_name": "Queued Job",
                "verbose_name_plural": "Queued Jobs",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["queue", "status"], name="jobs_queued_queue_2b1c4e_idx"),
                    models.Index(fields=["status", "finished_at"], name="jobs_queued_status_8d0f3a_idx"),
                    models.Index(fields=["status", "started_at"], name="jobs_queued_status_5e7a91_idx"),
                ],
            },
        ),
    ]
