"""
QueueManager: durable job queue on top of Celery.

The manager owns the QueuedJob ledger and the dispatch table that maps each
JobKind to its handler. Celery only transports the ledger row's primary key;
options, attempt accounting and outcomes live in the database so that they
survive worker restarts and can be inspected from the admin.

Lifecycle of one job:
    1. enqueue() writes the ledger row and, once the surrounding transaction
       commits, publishes ``jobs.tasks.execute_job`` to the queue's broker
       queue with the mapped priority and a countdown for delayed jobs.
    2. The worker calls process(), which claims the row with a conditional
       UPDATE. Rows that cannot be claimed (cancelled, already active,
       finished) are skipped.
    3. The handler runs with a JobContext. Its return value is stored as the
       result; an exception either schedules a retry (delayed) or parks the
       job as failed.

Usage:
    from jobs.kinds import JobKind
    from jobs.manager import JobOptions, QueueManager

    manager = QueueManager(celery_app)
    manager.register_handlers({JobKind.VERIFY_PAYMENT: verify_payment})
    manager.enqueue(
        JobKind.VERIFY_PAYMENT,
        {"reference": "abc123"},
        JobOptions(priority=1, job_id="verify-payment-abc123"),
    )

Note:
    Build one manager per process (see jobs.runtime) and pass it to the
    objects that need it. Nothing in this module keeps global state.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import timedelta
from functools import partial
from typing import TYPE_CHECKING, Any, Callable, Mapping
from uuid import uuid4

from django.conf import settings
from django.core.cache import cache
from django.core.exceptions import ImproperlyConfigured
from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction
from django.db.models import Count, F, Q
from django.db.models.functions import Coalesce
from django.utils import timezone

from core.services import BaseService
from jobs.config import (
    BackoffPolicy,
    QUEUE_DEFAULTS,
    QueueConfig,
    DEFAULT_QUEUE_CONFIG,
    to_broker_priority,
)
from jobs.kinds import (
    CLAIMABLE_STATUSES,
    JobKind,
    JobStatus,
    QueueName,
    TERMINAL_STATUSES,
)
from jobs.models import QueuedJob

if TYPE_CHECKING:
    from celery import Celery
    from django_celery_beat.models import PeriodicTask


EXECUTE_TASK_NAME = "jobs.tasks.execute_job"
ENQUEUE_REPEATABLE_TASK_NAME = "jobs.tasks.enqueue_repeatable"
REPEATABLE_PREFIX = "jobs:"
PAUSED_CACHE_KEY = "jobs:paused:{queue}"


# =============================================================================
# Value Objects
# =============================================================================


@dataclass(frozen=True)
class JobOptions:
    """
    Per-call job options. Unset fields fall back to the queue defaults.

    Attributes:
        priority: 1 is most urgent
        delay: Seconds (or timedelta) before the job becomes runnable
        attempts: Maximum number of attempts
        backoff: Delay rule between attempts
        job_id: Stable id; enqueueing an id that is still pending is a no-op
        repeat_key: Name of the schedule that produced the job
        once: Keep a completed job with the same job_id as a marker, so the
            job runs successfully at most once while its row is retained
    """

    priority: int | None = None
    delay: float | timedelta | None = None
    attempts: int | None = None
    backoff: BackoffPolicy | None = None
    job_id: str | None = None
    repeat_key: str | None = None
    once: bool = False


@dataclass(frozen=True)
class JobHandle:
    """Reference to an enqueued job returned by QueueManager.enqueue()."""

    job_id: str
    queue: str
    kind: JobKind
    status: str
    created: bool

    @classmethod
    def from_job(cls, job: QueuedJob, created: bool) -> JobHandle:
        return cls(
            job_id=job.job_id,
            queue=job.queue,
            kind=job.kind,
            status=job.status,
            created=created,
        )


@dataclass
class JobContext:
    """
    What a handler receives when its job runs.

    Attributes:
        job_id: Ledger job id
        kind: JobKind being executed
        payload: JSON payload given at enqueue time
        attempt: 1 on the first attempt, incremented on every retry
    """

    job_id: str
    kind: JobKind
    payload: dict[str, Any]
    attempt: int
    job_pk: int | None = None

    def report_progress(self, percentage: int) -> None:
        """Persist the job's progress (clamped to 0-100)."""
        value = max(0, min(100, int(percentage)))
        if self.job_pk is not None:
            QueuedJob.objects.filter(pk=self.job_pk).update(progress=value)


@dataclass(frozen=True)
class JobOutcome:
    """
    Result of QueueManager.process().

    ``retry_in`` is set (seconds) only when status is DELAYED, i.e. the
    caller must schedule another delivery.
    """

    status: str
    result: Any = None
    error: str = ""
    retry_in: float | None = None

    @property
    def should_retry(self) -> bool:
        return self.status == JobStatus.DELAYED and self.retry_in is not None


Handler = Callable[[JobContext], Any]


def _to_seconds(value: float | timedelta | None) -> float:
    if value is None:
        return 0.0
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


# =============================================================================
# Queue Manager
# =============================================================================


class QueueManager(BaseService):
    """
    Durable job queue: enqueue, execute, cancel, schedule and inspect jobs.

    Args:
        celery_app: Celery application used to publish and control tasks
        queue_configs: Per-queue defaults (defaults to QUEUE_DEFAULTS)
    """

    def __init__(
        self,
        celery_app: Celery,
        queue_configs: Mapping[str, QueueConfig] | None = None,
    ):
        self.celery_app = celery_app
        self.queue_configs = dict(queue_configs or QUEUE_DEFAULTS)
        self._handlers: dict[JobKind, Handler] = {}

    # -------------------------------------------------------------------------
    # Dispatch table
    # -------------------------------------------------------------------------

    def register_handlers(self, handlers: Mapping[JobKind, Handler]) -> None:
        """
        Add handlers to the dispatch table.

        Raises:
            ImproperlyConfigured: If a kind already has a handler
        """
        for kind, handler in handlers.items():
            kind = JobKind(kind)
            if kind in self._handlers:
                raise ImproperlyConfigured(f"Duplicate handler for job kind {kind.value}")
            self._handlers[kind] = handler

    def ensure_complete(self) -> None:
        """
        Verify every JobKind has a handler.

        Raises:
            ImproperlyConfigured: Listing the kinds without a handler
        """
        missing = [kind.value for kind in JobKind if kind not in self._handlers]
        if missing:
            raise ImproperlyConfigured(
                f"No handler registered for job kinds: {', '.join(missing)}"
            )

    def get_handler(self, kind: JobKind) -> Handler | None:
        return self._handlers.get(JobKind(kind))

    def get_queue_config(self, queue: str) -> QueueConfig:
        return self.queue_configs.get(queue, DEFAULT_QUEUE_CONFIG)

    # -------------------------------------------------------------------------
    # Enqueue
    # -------------------------------------------------------------------------

    def enqueue(
        self,
        kind: JobKind,
        payload: dict[str, Any] | None = None,
        options: JobOptions | None = None,
    ) -> JobHandle:
        """
        Add a job to its queue.

        With a job_id, enqueue is idempotent: while a job with that id is
        waiting, delayed or active the existing handle is returned and
        nothing is published. A failed or cancelled job with the same id is
        re-armed; so is a completed one unless ``options.once`` is set.

        Publication happens on transaction commit, so jobs enqueued inside
        an atomic block never run before the data they depend on is visible.
        """
        kind = JobKind(kind)
        options = options or JobOptions()
        config = self.get_queue_config(kind.queue)
        backoff = options.backoff or config.backoff
        delay = _to_seconds(options.delay)
        now = timezone.now()

        job_id = options.job_id or f"{kind.value}-{uuid4().hex}"
        fields = {
            "queue": kind.queue,
            "name": kind.value,
            "payload": payload or {},
            "priority": options.priority or config.priority,
            "attempts_made": 0,
            "max_attempts": options.attempts or config.attempts,
            "backoff_type": backoff.type,
            "backoff_delay_ms": backoff.delay_ms,
            "delay_until": now + timedelta(seconds=delay) if delay > 0 else None,
            "repeat_key": options.repeat_key,
            "progress": 0,
            "status": JobStatus.DELAYED if delay > 0 else JobStatus.WAITING,
            "result": None,
            "last_error": "",
            "started_at": None,
            "finished_at": None,
            "celery_task_id": str(uuid4()),
        }

        logger = self.get_logger()

        with transaction.atomic():
            job, created = QueuedJob.objects.get_or_create(job_id=job_id, defaults=fields)

            if not created:
                if not job.is_terminal or (
                    options.once and job.status == JobStatus.COMPLETED
                ):
                    logger.info(
                        f"Job {job_id} already {job.status}, skipping enqueue",
                        extra={"job_id": job_id, "status": job.status},
                    )
                    return JobHandle.from_job(job, created=False)

                rearmed = QueuedJob.objects.filter(
                    pk=job.pk, status__in=TERMINAL_STATUSES
                ).update(updated_at=now, **fields)
                job.refresh_from_db()
                if not rearmed:
                    return JobHandle.from_job(job, created=False)

            transaction.on_commit(partial(self._publish, job), robust=True)

        logger.info(
            f"Enqueued {kind.value} on {kind.queue}",
            extra={
                "job_id": job_id,
                "queue": kind.queue,
                "priority": job.priority,
                "delay": delay,
            },
        )
        return JobHandle.from_job(job, created=True)

    def _publish(self, job: QueuedJob) -> None:
        """Send the execute_job message for a ledger row."""
        countdown = None
        if job.delay_until is not None:
            countdown = max((job.delay_until - timezone.now()).total_seconds(), 0)

        publish_options: dict[str, Any] = {
            "args": [str(job.pk)],
            "queue": job.queue,
            "priority": to_broker_priority(job.priority),
            "countdown": countdown,
            "task_id": job.celery_task_id,
        }
        timeout = self.get_queue_config(job.queue).timeout_seconds
        if timeout:
            publish_options["soft_time_limit"] = timeout

        self.celery_app.send_task(EXECUTE_TASK_NAME, **publish_options)

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def process(self, job_pk: int | str) -> JobOutcome:
        """
        Run one delivery of a job.

        Claims the ledger row, dispatches to the registered handler and
        records the outcome. Called by ``jobs.tasks.execute_job``.
        """
        logger = self.get_logger()
        now = timezone.now()

        claimed = QueuedJob.objects.filter(
            pk=job_pk, status__in=CLAIMABLE_STATUSES
        ).update(
            status=JobStatus.ACTIVE,
            attempts_made=F("attempts_made") + 1,
            started_at=now,
            delay_until=None,
            updated_at=now,
        )
        if not claimed:
            current = QueuedJob.objects.filter(pk=job_pk).values_list("status", flat=True).first()
            logger.info(
                f"Job {job_pk} not claimable, skipping",
                extra={"job_pk": str(job_pk), "status": current},
            )
            return JobOutcome(status="skipped")

        job = QueuedJob.objects.get(pk=job_pk)
        handler = self._handlers.get(job.kind)
        if handler is None:
            error = ImproperlyConfigured(f"No handler registered for {job.name}")
            return self._record_failure(job, error, retryable=False)

        context = JobContext(
            job_id=job.job_id,
            kind=job.kind,
            payload=job.payload or {},
            attempt=job.attempts_made,
            job_pk=job.pk,
        )

        logger.info(
            f"Running {job.name} (attempt {job.attempts_made}/{job.max_attempts})",
            extra={"job_id": job.job_id, "queue": job.queue},
        )

        try:
            result = handler(context)
        except Exception as exc:
            return self._record_failure(job, exc)

        QueuedJob.objects.filter(pk=job.pk).update(
            status=JobStatus.COMPLETED,
            progress=100,
            result=result,
            last_error="",
            finished_at=timezone.now(),
        )
        logger.info(
            f"Job {job.job_id} completed",
            extra={"job_id": job.job_id, "queue": job.queue},
        )
        return JobOutcome(status=JobStatus.COMPLETED, result=result)

    def _record_failure(
        self, job: QueuedJob, exc: Exception, retryable: bool | None = None
    ) -> JobOutcome:
        logger = self.get_logger()
        error = f"{type(exc).__name__}: {exc}"
        if retryable is None:
            retryable = getattr(exc, "is_retryable", True)
        now = timezone.now()

        if not retryable or job.attempts_made >= job.max_attempts:
            QueuedJob.objects.filter(pk=job.pk).update(
                status=JobStatus.FAILED,
                last_error=error,
                finished_at=now,
            )
            logger.error(
                f"Job {job.job_id} failed permanently: {error}",
                extra={
                    "job_id": job.job_id,
                    "queue": job.queue,
                    "attempts_made": job.attempts_made,
                    "retryable": retryable,
                },
                exc_info=exc,
            )
            return JobOutcome(status=JobStatus.FAILED, error=error)

        backoff = BackoffPolicy(job.backoff_type, job.backoff_delay_ms)
        retry_in = backoff.delay_for(job.attempts_made)
        QueuedJob.objects.filter(pk=job.pk).update(
            status=JobStatus.DELAYED,
            last_error=error,
            delay_until=now + timedelta(seconds=retry_in),
        )
        logger.warning(
            f"Job {job.job_id} failed, retrying in {retry_in:.0f}s: {error}",
            extra={
                "job_id": job.job_id,
                "queue": job.queue,
                "attempts_made": job.attempts_made,
            },
        )
        return JobOutcome(status=JobStatus.DELAYED, error=error, retry_in=retry_in)

    # -------------------------------------------------------------------------
    # Cancellation and lookup
    # -------------------------------------------------------------------------

    def cancel(self, job_id: str) -> bool:
        """
        Cancel a waiting or delayed job.

        Returns:
            True if the job was cancelled. Active and finished jobs are left
            untouched and return False.
        """
        job = QueuedJob.objects.filter(job_id=job_id).first()
        if job is None:
            return False

        cancelled = QueuedJob.objects.filter(
            pk=job.pk, status__in=CLAIMABLE_STATUSES
        ).update(status=JobStatus.CANCELLED, finished_at=timezone.now())
        if not cancelled:
            self.get_logger().info(
                f"Job {job_id} cannot be cancelled",
                extra={"job_id": job_id, "status": job.status},
            )
            return False

        if job.celery_task_id:
            try:
                self.celery_app.control.revoke(job.celery_task_id)
            except Exception:
                # The ledger row is already cancelled, the claim will skip it.
                self.get_logger().warning(
                    f"Could not revoke task for job {job_id}",
                    extra={"job_id": job_id},
                    exc_info=True,
                )
        return True

    def get_job(self, job_id: str) -> QueuedJob | None:
        return QueuedJob.objects.filter(job_id=job_id).first()

    def get_job_status(self, job_id: str) -> dict[str, Any] | None:
        """Summary of a job suitable for API responses, or None."""
        job = self.get_job(job_id)
        if job is None:
            return None
        return {
            "job_id": job.job_id,
            "queue": job.queue,
            "name": job.name,
            "status": job.status,
            "progress": job.progress,
            "attempts_made": job.attempts_made,
            "max_attempts": job.max_attempts,
            "result": job.result,
            "last_error": job.last_error,
        }

    def retry_job(self, job_id: str) -> bool:
        """
        Re-run a failed or cancelled job with a fresh attempt budget.

        Returns:
            True if the job was re-armed. Jobs in any other status return False.
        """
        task_id = str(uuid4())
        with transaction.atomic():
            rearmed = QueuedJob.objects.filter(
                job_id=job_id,
                status__in=(JobStatus.FAILED, JobStatus.CANCELLED),
            ).update(
                status=JobStatus.WAITING,
                attempts_made=0,
                progress=0,
                result=None,
                last_error="",
                delay_until=None,
                started_at=None,
                finished_at=None,
                celery_task_id=task_id,
                updated_at=timezone.now(),
            )
            if not rearmed:
                return False

            job = QueuedJob.objects.get(job_id=job_id)
            transaction.on_commit(partial(self._publish, job), robust=True)

        self.get_logger().info(f"Retrying job {job_id}", extra={"job_id": job_id})
        return True

    def retry_failed(self, queue: str, limit: int = 100) -> dict[str, int]:
        """Re-arm up to ``limit`` failed jobs of a queue, oldest failure first."""
        job_ids = list(
            QueuedJob.objects.filter(queue=queue, status=JobStatus.FAILED)
            .order_by("finished_at")
            .values_list("job_id", flat=True)[:limit]
        )
        retried = sum(1 for job_id in job_ids if self.retry_job(job_id))
        return {"total": len(job_ids), "retried": retried, "failed": len(job_ids) - retried}

    def remove_job(self, job_id: str) -> bool:
        """
        Delete a job's ledger row, revoking its pending delivery.

        Returns:
            False if the job does not exist or is running.
        """
        job = QueuedJob.objects.filter(job_id=job_id).first()
        if job is None or job.status == JobStatus.ACTIVE:
            return False

        if job.status in CLAIMABLE_STATUSES:
            self.cancel(job_id)
        deleted, _ = QueuedJob.objects.filter(pk=job.pk).exclude(status=JobStatus.ACTIVE).delete()
        if deleted:
            self.get_logger().info(f"Removed job {job_id}", extra={"job_id": job_id})
        return bool(deleted)

    # -------------------------------------------------------------------------
    # Repeatable jobs
    # -------------------------------------------------------------------------

    def add_repeatable(
        self,
        kind: JobKind,
        payload: dict[str, Any] | None = None,
        *,
        job_id: str,
        cron: str | None = None,
        every: float | timedelta | None = None,
        priority: int | None = None,
    ) -> PeriodicTask:
        """
        Create or update a beat schedule that enqueues ``kind`` on each tick.

        Every tick enqueues with the same job_id, so a tick that fires
        while the previous run is still pending is a no-op.

        Args:
            cron: Five-field crontab expression ("*/15 * * * *")
            every: Interval in seconds or as a timedelta

        Raises:
            ValueError: Unless exactly one of cron / every is given
        """
        from django_celery_beat.models import CrontabSchedule, IntervalSchedule, PeriodicTask

        if (cron is None) == (every is None):
            raise ValueError("Exactly one of cron or every is required")

        kind = JobKind(kind)
        name = f"{REPEATABLE_PREFIX}{job_id}"
        defaults: dict[str, Any] = {
            "task": ENQUEUE_REPEATABLE_TASK_NAME,
            "kwargs": json.dumps(
                {
                    "kind": kind.value,
                    "payload": payload or {},
                    "job_id": job_id,
                    "priority": priority,
                },
                cls=DjangoJSONEncoder,
            ),
            "enabled": True,
            "description": f"Enqueue {kind.value} on the {kind.queue} queue",
        }

        if cron is not None:
            parts = cron.split()
            if len(parts) != 5:
                raise ValueError(f"Invalid cron expression: {cron!r}")
            minute, hour, day_of_month, month_of_year, day_of_week = parts
            schedule, _ = CrontabSchedule.objects.get_or_create(
                minute=minute,
                hour=hour,
                day_of_month=day_of_month,
                month_of_year=month_of_year,
                day_of_week=day_of_week,
            )
            defaults.update(crontab=schedule, interval=None)
        else:
            seconds = max(int(_to_seconds(every)), 1)
            schedule, _ = IntervalSchedule.objects.get_or_create(
                every=seconds,
                period=IntervalSchedule.SECONDS,
            )
            defaults.update(interval=schedule, crontab=None)

        task, created = PeriodicTask.objects.update_or_create(name=name, defaults=defaults)
        self.get_logger().info(
            f"{'Added' if created else 'Updated'} repeatable job {job_id}",
            extra={"job_id": job_id, "cron": cron, "every": _to_seconds(every) or None},
        )
        return task

    def remove_repeatable(self, job_id: str) -> bool:
        from django_celery_beat.models import PeriodicTask

        deleted, _ = PeriodicTask.objects.filter(name=f"{REPEATABLE_PREFIX}{job_id}").delete()
        return deleted > 0

    # -------------------------------------------------------------------------
    # Observability and maintenance
    # -------------------------------------------------------------------------

    def get_queue_stats(self, queue: str) -> dict[str, Any]:
        """Job counts per status for a queue, plus its paused flag."""
        counts = dict(
            QueuedJob.objects.filter(queue=queue)
            .values_list("status")
            .annotate(total=Count("pk"))
            .order_by()
        )
        stats: dict[str, Any] = {"queue": queue}
        for status in JobStatus:
            stats[status.value] = counts.get(status.value, 0)
        stats["paused"] = self.is_paused(queue)
        return stats

    def get_all_stats(self) -> dict[str, dict[str, Any]]:
        return {queue: self.get_queue_stats(queue) for queue in QueueName.values}

    def clean_queue(
        self,
        queue: str,
        grace: float | timedelta,
        status: str = JobStatus.COMPLETED,
    ) -> int:
        """
        Delete finished jobs of one status older than ``grace``.

        Raises:
            ValueError: If status is not a terminal status
        """
        if status not in TERMINAL_STATUSES:
            raise ValueError(f"Only finished jobs can be cleaned, got {status!r}")

        cutoff = timezone.now() - timedelta(seconds=_to_seconds(grace))
        deleted, _ = QueuedJob.objects.filter(
            queue=queue,
            status=status,
            finished_at__lt=cutoff,
        ).delete()
        if deleted:
            self.get_logger().info(
                f"Cleaned {deleted} {status} jobs from {queue}",
                extra={"queue": queue, "status": status, "deleted": deleted},
            )
        return deleted

    def prune_finished(self) -> dict[str, int]:
        """Apply the retention policy to every queue."""
        completed_grace = timedelta(hours=settings.JOB_RETENTION_COMPLETED_HOURS)
        failed_grace = timedelta(days=settings.JOB_RETENTION_FAILED_DAYS)

        pruned = {"completed": 0, "failed": 0, "cancelled": 0}
        for queue in QueueName.values:
            pruned["completed"] += self.clean_queue(queue, completed_grace, JobStatus.COMPLETED)
            pruned["failed"] += self.clean_queue(queue, failed_grace, JobStatus.FAILED)
            pruned["cancelled"] += self.clean_queue(queue, completed_grace, JobStatus.CANCELLED)
        return pruned

    def recover_stalled(self, threshold: timedelta | None = None) -> dict[str, int]:
        """
        Repair jobs whose delivery was lost.

        - Active jobs older than the threshold (worker died mid-run) are
          rescheduled, or failed when they have no attempts left.
        - Waiting/delayed jobs overdue by more than the threshold (message
          never published or dropped) are published again.
        """
        if threshold is None:
            threshold = timedelta(minutes=settings.JOB_STALLED_THRESHOLD_MINUTES)
        logger = self.get_logger()
        now = timezone.now()
        cutoff = now - threshold
        recovered = {"requeued": 0, "failed": 0, "republished": 0}

        stalled = QueuedJob.objects.filter(status=JobStatus.ACTIVE, started_at__lt=cutoff)
        for job in stalled:
            if job.attempts_made >= job.max_attempts:
                updated = QueuedJob.objects.filter(
                    pk=job.pk, status=JobStatus.ACTIVE, started_at=job.started_at
                ).update(
                    status=JobStatus.FAILED,
                    last_error="Stalled: worker stopped while the job was active",
                    finished_at=now,
                )
                recovered["failed"] += updated
                continue
            if self._republish(job, status=JobStatus.ACTIVE):
                recovered["requeued"] += 1

        overdue = QueuedJob.objects.annotate(
            due_at=Coalesce("delay_until", "updated_at")
        ).filter(status__in=CLAIMABLE_STATUSES, due_at__lt=cutoff)
        for job in overdue:
            if self._republish(job, status=job.status):
                recovered["republished"] += 1

        if any(recovered.values()):
            logger.warning("Recovered stalled jobs", extra=recovered)
        return recovered

    def _republish(self, job: QueuedJob, status: str) -> bool:
        task_id = str(uuid4())
        now = timezone.now()
        updated = QueuedJob.objects.filter(
            Q(pk=job.pk) & Q(status=status) & Q(updated_at=job.updated_at)
        ).update(
            status=JobStatus.DELAYED,
            delay_until=None,
            celery_task_id=task_id,
            updated_at=now,
        )
        if not updated:
            return False
        job.refresh_from_db()
        transaction.on_commit(partial(self._publish, job), robust=True)
        return True

    def pause_queue(self, queue: str) -> None:
        """Stop workers from consuming ``queue``. Jobs keep accumulating."""
        cache.set(PAUSED_CACHE_KEY.format(queue=queue), True, None)
        self.celery_app.control.cancel_consumer(queue)
        self.get_logger().info(f"Paused queue {queue}", extra={"queue": queue})

    def resume_queue(self, queue: str) -> None:
        cache.delete(PAUSED_CACHE_KEY.format(queue=queue))
        self.celery_app.control.add_consumer(queue)
        self.get_logger().info(f"Resumed queue {queue}", extra={"queue": queue})

    def is_paused(self, queue: str) -> bool:
        return bool(cache.get(PAUSED_CACHE_KEY.format(queue=queue), False))
