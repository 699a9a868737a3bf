"""
Worker lifecycle hooks for the job system.

A worker started for a single queue without ``-c`` takes its concurrency
from QUEUE_CONCURRENCY. When a Celery worker is ready, the recurring
schedules are (re)installed and, if LMS sync is enabled, the initial sync is
enqueued. Every worker runs this; the fixed job ids and schedule names make
the repeated calls no-ops.
"""

from __future__ import annotations

import logging

from celery.signals import celeryd_init, worker_ready
from django.conf import settings

from jobs.config import get_queue_concurrency
from jobs.runtime import get_runtime

logger = logging.getLogger(__name__)


@celeryd_init.connect
def size_worker_for_queue(sender=None, conf=None, options=None, **kwargs) -> None:
    options = options or {}
    if options.get("concurrency"):
        return

    queues = options.get("queues") or []
    if isinstance(queues, str):
        queues = [name for name in queues.split(",") if name]
    if len(queues) != 1:
        return

    conf.worker_concurrency = get_queue_concurrency(queues[0])
    logger.info(
        f"Worker {sender} sized for queue {queues[0]}",
        extra={"queue": queues[0], "concurrency": conf.worker_concurrency},
    )


@worker_ready.connect
def schedule_startup_jobs(sender=None, **kwargs) -> None:
    runtime = get_runtime()

    runtime.payments.schedule_recurring()
    logger.info("Payment poller and cleanup schedules installed")

    if not settings.MOODLE_SYNC_ENABLED:
        logger.info("Moodle sync disabled, skipping sync schedules")
        return

    runtime.sync.schedule_periodic_sync()
    runtime.sync.initial_sync()
    logger.info("Moodle periodic sync scheduled and initial sync enqueued")
