"""
Job ledger admin configuration.

Jobs are read-only in the admin. Failed jobs can be re-armed and pending
jobs cancelled through admin actions, which go through the QueueManager.
"""

from django.contrib import admin, messages

from jobs.kinds import JobStatus
from jobs.manager import JobOptions
from jobs.models import QueuedJob
from jobs.runtime import get_runtime


@admin.register(QueuedJob)
class QueuedJobAdmin(admin.ModelAdmin):
    """
    Admin configuration for QueuedJob.

    Provides visibility into queue contents, attempts and errors.
    """

    list_display = [
        "job_id",
        "queue",
        "name",
        "status",
        "priority",
        "attempts_made",
        "max_attempts",
        "progress",
        "created_at",
        "finished_at",
    ]
    list_filter = ["queue", "status", "name"]
    search_fields = ["job_id", "name", "last_error"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    actions = ["retry_failed_jobs", "cancel_pending_jobs"]

    fieldsets = (
        (
            None,
            {
                "fields": ("job_id", "queue", "name", "status", "progress"),
            },
        ),
        (
            "Delivery",
            {
                "fields": (
                    "priority",
                    "attempts_made",
                    "max_attempts",
                    "backoff_type",
                    "backoff_delay_ms",
                    "delay_until",
                    "repeat_key",
                    "celery_task_id",
                ),
            },
        ),
        (
            "Payload",
            {
                "fields": ("payload",),
                "classes": ("collapse",),
            },
        ),
        (
            "Outcome",
            {
                "fields": ("result", "last_error"),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at", "started_at", "finished_at"),
            },
        ),
    )

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request) -> bool:
        return False

    @admin.action(description="Retry selected failed jobs")
    def retry_failed_jobs(self, request, queryset):
        manager = get_runtime().manager
        retried = 0
        for job in queryset.filter(status=JobStatus.FAILED):
            manager.enqueue(
                job.kind,
                job.payload,
                JobOptions(
                    priority=job.priority,
                    attempts=job.max_attempts,
                    job_id=job.job_id,
                ),
            )
            retried += 1
        self.message_user(request, f"Re-queued {retried} failed job(s).", messages.SUCCESS)

    @admin.action(description="Cancel selected waiting/delayed jobs")
    def cancel_pending_jobs(self, request, queryset):
        manager = get_runtime().manager
        cancelled = sum(1 for job in queryset if manager.cancel(job.job_id))
        self.message_user(request, f"Cancelled {cancelled} job(s).", messages.SUCCESS)
