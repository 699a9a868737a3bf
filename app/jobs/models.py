"""
QueuedJob ledger model.

Every job published to a Celery queue first gets a QueuedJob row. The row
is the source of truth for the job's options, its attempt count and its
outcome; the Celery message only carries the row's primary key.

Usage:
    from jobs.models import QueuedJob
    from jobs.kinds import JobStatus

    failed = QueuedJob.objects.filter(queue="payment", status=JobStatus.FAILED)
    for job in failed:
        print(job.job_id, job.last_error)
"""

from __future__ import annotations

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models

from core.models import BaseModel
from jobs.kinds import (
    BackoffType,
    CLAIMABLE_STATUSES,
    JobKind,
    JobStatus,
    PENDING_STATUSES,
    QueueName,
    TERMINAL_STATUSES,
)


class QueuedJob(BaseModel):
    """
    Durable record of one job.

    Fields:
        job_id: Caller-supplied or generated id, unique across all queues
        queue: Queue the job runs on (also the Celery queue name)
        name: JobKind value, resolves the handler
        payload: JSON arguments handed to the handler
        priority: 1 is most urgent
        attempts_made / max_attempts: Retry accounting
        backoff_type / backoff_delay_ms: Delay rule between attempts
        delay_until: Earliest time a delayed job runs
        repeat_key: PeriodicTask name when enqueued by a schedule
        progress: 0-100, written by handlers through JobContext
        status: Lifecycle state (see jobs.kinds)
        result / last_error: Outcome of the last attempt
        celery_task_id: Id of the published Celery message, used to revoke
    """

    job_id = models.CharField(max_length=255, unique=True)
    queue = models.CharField(max_length=32, choices=QueueName.choices, db_index=True)
    name = models.CharField(max_length=64)
    payload = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)

    priority = models.PositiveSmallIntegerField(default=5)
    attempts_made = models.PositiveSmallIntegerField(default=0)
    max_attempts = models.PositiveSmallIntegerField(default=3)
    backoff_type = models.CharField(
        max_length=16,
        choices=BackoffType.choices,
        default=BackoffType.EXPONENTIAL,
    )
    backoff_delay_ms = models.PositiveIntegerField(default=2000)
    delay_until = models.DateTimeField(null=True, blank=True)
    repeat_key = models.CharField(max_length=255, null=True, blank=True)

    progress = models.PositiveSmallIntegerField(default=0)
    status = models.CharField(
        max_length=16,
        choices=JobStatus.choices,
        default=JobStatus.WAITING,
        db_index=True,
    )
    result = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    last_error = models.TextField(blank=True, default="")

    started_at = models.DateTimeField(null=True, blank=True)
    finished_at = models.DateTimeField(null=True, blank=True)
    celery_task_id = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Queued Job"
        verbose_name_plural = "Queued Jobs"
        indexes = [
            models.Index(fields=["queue", "status"], name="jobs_queued_queue_2b1c4e_idx"),
            models.Index(fields=["status", "finished_at"], name="jobs_queued_status_8d0f3a_idx"),
            models.Index(fields=["status", "started_at"], name="jobs_queued_status_5e7a91_idx"),
        ]

    def __str__(self) -> str:
        return f"QueuedJob({self.job_id}, {self.name}, {self.status})"

    @property
    def kind(self) -> JobKind:
        return JobKind(self.name)

    @property
    def is_pending(self) -> bool:
        return self.status in PENDING_STATUSES

    @property
    def is_claimable(self) -> bool:
        return self.status in CLAIMABLE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def attempts_left(self) -> int:
        return max(self.max_attempts - self.attempts_made, 0)
