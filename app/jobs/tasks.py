"""
Celery tasks for the durable job queue.

This module provides:
- execute_job: runs one delivery of a QueuedJob (published by QueueManager)
- enqueue_repeatable: fired by celery-beat for repeatable jobs
- prune_finished_jobs: retention policy for finished ledger rows
- recover_stalled_jobs: republishes jobs whose delivery was lost

Usage:
    # Workers, one per queue
    celery -A config worker -Q payment -c 3
    celery -A config worker -Q email -c 5

    # Maintenance tasks are scheduled by migration (django-celery-beat)
    from jobs.tasks import prune_finished_jobs
    prune_finished_jobs.delay()
"""

from __future__ import annotations

import logging

from celery import shared_task

from jobs.kinds import JobKind
from jobs.manager import JobOptions
from jobs.runtime import get_runtime

logger = logging.getLogger(__name__)


@shared_task(bind=True, acks_late=True, max_retries=None)
def execute_job(self, job_pk: str) -> dict:
    """
    Execute a QueuedJob.

    The ledger row decides what happens: the manager claims it, runs the
    handler and records the outcome. When a retry is due the task re-publishes
    itself with the backoff countdown.

    Args:
        job_pk: Primary key of the QueuedJob

    Returns:
        Dict with the job status (and error when the attempt failed)
    """
    outcome = get_runtime().manager.process(job_pk)

    if outcome.should_retry:
        raise self.retry(countdown=outcome.retry_in, max_retries=None)

    return {"job_pk": str(job_pk), "status": outcome.status, "error": outcome.error}


@shared_task
def enqueue_repeatable(
    kind: str,
    payload: dict | None = None,
    job_id: str | None = None,
    priority: int | None = None,
) -> dict:
    """
    Enqueue one tick of a repeatable job.

    The fixed job_id makes a tick a no-op while the previous run is pending.
    """
    handle = get_runtime().manager.enqueue(
        JobKind(kind),
        payload or {},
        JobOptions(priority=priority, job_id=job_id, repeat_key=job_id),
    )
    return {"job_id": handle.job_id, "created": handle.created, "status": handle.status}


@shared_task
def prune_finished_jobs() -> dict:
    """
    Delete finished ledger rows past their retention.

    Completed and cancelled rows are kept for JOB_RETENTION_COMPLETED_HOURS,
    failed rows for JOB_RETENTION_FAILED_DAYS.
    """
    pruned = get_runtime().manager.prune_finished()
    logger.info("Pruned finished jobs", extra=pruned)
    return pruned


@shared_task
def recover_stalled_jobs() -> dict:
    """Reschedule active jobs whose worker died and jobs whose message was lost."""
    return get_runtime().manager.recover_stalled()
