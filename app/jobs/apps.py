"""
Jobs app configuration.

This app provides the durable job queue:
- QueuedJob ledger and QueueManager
- Queue façades used by processors and views
- Celery tasks that execute jobs and maintain the ledger
"""

from django.apps import AppConfig


class JobsConfig(AppConfig):
    """Configuration for the jobs application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "jobs"
    verbose_name = "Jobs"

    runtime = None

    def ready(self):
        """Build the job runtime and connect worker signals."""
        from jobs.runtime import build_runtime

        self.runtime = build_runtime()

        import jobs.signals  # noqa: F401
