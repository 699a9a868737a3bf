"""
Tests for QueueManager.

Tests cover:
- Enqueue: defaults, idempotent job ids, re-arming, publication on commit
- Execution: claim, success, retry with backoff, permanent failure
- Cancellation, manual retry, removal and status lookup
- Repeatable jobs (django-celery-beat schedules)
- Stats, retention cleanup, stalled job recovery, pause/resume
"""

import json
from datetime import timedelta

import pytest
from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone
from django_celery_beat.models import PeriodicTask
from freezegun import freeze_time

from core.exceptions import ExternalServiceError, ValidationError
from jobs.config import BackoffPolicy
from jobs.kinds import BackoffType, JobKind, JobStatus, QueueName
from jobs.manager import (
    ENQUEUE_REPEATABLE_TASK_NAME,
    EXECUTE_TASK_NAME,
    JobContext,
    JobOptions,
)
from jobs.models import QueuedJob


def set_status(job_id, status, **fields):
    QueuedJob.objects.filter(job_id=job_id).update(status=status, **fields)


# =============================================================================
# Enqueue
# =============================================================================


@pytest.mark.django_db
class TestEnqueue:
    def test_applies_queue_defaults(self, manager):
        """A payment job gets the payment queue's attempts, priority and backoff."""
        handle = manager.enqueue(JobKind.VERIFY_PAYMENT, {"reference": "ref_1"})

        job = QueuedJob.objects.get(job_id=handle.job_id)
        assert handle.created is True
        assert handle.queue == QueueName.PAYMENT
        assert job.status == JobStatus.WAITING
        assert job.priority == 2
        assert job.max_attempts == 5
        assert job.backoff_type == BackoffType.FIXED
        assert job.backoff_delay_ms == 30000
        assert job.payload == {"reference": "ref_1"}
        assert job.job_id.startswith("verify-payment-")

    def test_options_override_defaults(self, manager):
        handle = manager.enqueue(
            JobKind.SEND_PAYMENT_RECEIPT,
            {},
            JobOptions(
                priority=7,
                attempts=9,
                backoff=BackoffPolicy(BackoffType.FIXED, 1000),
                job_id="custom",
            ),
        )

        job = QueuedJob.objects.get(job_id="custom")
        assert handle.job_id == "custom"
        assert (job.priority, job.max_attempts) == (7, 9)
        assert (job.backoff_type, job.backoff_delay_ms) == (BackoffType.FIXED, 1000)

    def test_delay_makes_job_delayed(self, manager):
        before = timezone.now()

        handle = manager.enqueue(
            JobKind.SEND_PAYMENT_REMINDER, {}, JobOptions(delay=timedelta(hours=24))
        )

        job = QueuedJob.objects.get(job_id=handle.job_id)
        assert job.status == JobStatus.DELAYED
        assert job.delay_until >= before + timedelta(hours=24)

    def test_pending_job_id_is_not_duplicated(self, manager):
        first = manager.enqueue(JobKind.VERIFY_PAYMENT, {"reference": "a"}, JobOptions(job_id="v-1"))
        second = manager.enqueue(JobKind.VERIFY_PAYMENT, {"reference": "b"}, JobOptions(job_id="v-1"))

        assert first.created is True
        assert second.created is False
        assert QueuedJob.objects.filter(job_id="v-1").count() == 1
        assert QueuedJob.objects.get(job_id="v-1").payload == {"reference": "a"}

    @pytest.mark.parametrize("status", [JobStatus.DELAYED, JobStatus.ACTIVE])
    def test_other_pending_states_are_not_duplicated(self, manager, status):
        manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(job_id="v-1"))
        set_status("v-1", status)

        handle = manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(job_id="v-1"))

        assert handle.created is False
        assert handle.status == status

    @pytest.mark.parametrize(
        "status", [JobStatus.FAILED, JobStatus.CANCELLED, JobStatus.COMPLETED]
    )
    def test_finished_job_is_rearmed(self, manager, status):
        manager.enqueue(JobKind.VERIFY_PAYMENT, {"reference": "a"}, JobOptions(job_id="v-1"))
        set_status("v-1", status, attempts_made=5, last_error="boom", finished_at=timezone.now())

        handle = manager.enqueue(
            JobKind.VERIFY_PAYMENT, {"reference": "b"}, JobOptions(job_id="v-1")
        )

        job = QueuedJob.objects.get(job_id="v-1")
        assert handle.created is True
        assert job.status == JobStatus.WAITING
        assert job.attempts_made == 0
        assert job.last_error == ""
        assert job.finished_at is None
        assert job.payload == {"reference": "b"}

    def test_once_keeps_completed_marker(self, manager):
        options = JobOptions(job_id="email-receipt-1", once=True)
        manager.enqueue(JobKind.SEND_PAYMENT_RECEIPT, {}, options)
        set_status("email-receipt-1", JobStatus.COMPLETED)

        handle = manager.enqueue(JobKind.SEND_PAYMENT_RECEIPT, {}, options)

        assert handle.created is False
        assert QueuedJob.objects.get(job_id="email-receipt-1").status == JobStatus.COMPLETED

    def test_once_still_rearms_failed_job(self, manager):
        options = JobOptions(job_id="email-receipt-1", once=True)
        manager.enqueue(JobKind.SEND_PAYMENT_RECEIPT, {}, options)
        set_status("email-receipt-1", JobStatus.FAILED)

        assert manager.enqueue(JobKind.SEND_PAYMENT_RECEIPT, {}, options).created is True


@pytest.mark.django_db
class TestPublish:
    def test_publishes_after_commit(self, manager, celery_app, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            handle = manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(job_id="v-1"))
            celery_app.send_task.assert_not_called()

        job = QueuedJob.objects.get(job_id=handle.job_id)
        assert len(callbacks) == 1
        celery_app.send_task.assert_called_once_with(
            EXECUTE_TASK_NAME,
            args=[str(job.pk)],
            queue="payment",
            priority=1,
            countdown=None,
            task_id=job.celery_task_id,
        )

    def test_delayed_job_gets_countdown(self, manager, celery_app, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            manager.enqueue(JobKind.SEND_PAYMENT_REMINDER, {}, JobOptions(delay=600))

        countdown = celery_app.send_task.call_args.kwargs["countdown"]
        assert 590 < countdown <= 600

    def test_sync_jobs_carry_time_limit(self, manager, celery_app, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            manager.enqueue(JobKind.PERIODIC_SYNC, {})

        assert celery_app.send_task.call_args.kwargs["soft_time_limit"] == 60

    def test_duplicate_enqueue_does_not_publish(
        self, manager, celery_app, django_capture_on_commit_callbacks
    ):
        manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(job_id="v-1"))

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(job_id="v-1"))

        assert callbacks == []
        celery_app.send_task.assert_not_called()


# =============================================================================
# Execution
# =============================================================================


@pytest.mark.django_db
class TestProcess:
    def test_success_records_result(self, manager, recording_handler):
        handler = recording_handler(result={"sent": True})
        manager.register_handlers({JobKind.SEND_PAYMENT_RECEIPT: handler})
        handle = manager.enqueue(JobKind.SEND_PAYMENT_RECEIPT, {"payment_id": "p1"})
        job = QueuedJob.objects.get(job_id=handle.job_id)

        outcome = manager.process(job.pk)

        assert outcome.status == JobStatus.COMPLETED
        assert outcome.result == {"sent": True}
        job.refresh_from_db()
        assert job.status == JobStatus.COMPLETED
        assert job.progress == 100
        assert job.result == {"sent": True}
        assert job.attempts_made == 1
        assert job.started_at is not None
        assert job.finished_at is not None

        ctx = handler.contexts[0]
        assert ctx.job_id == handle.job_id
        assert ctx.kind == JobKind.SEND_PAYMENT_RECEIPT
        assert ctx.payload == {"payment_id": "p1"}
        assert ctx.attempt == 1

    def test_handler_progress_is_persisted(self, manager):
        seen = []

        def handler(ctx):
            ctx.report_progress(40)
            seen.append(QueuedJob.objects.get(pk=ctx.job_pk).progress)
            ctx.report_progress(250)
            seen.append(QueuedJob.objects.get(pk=ctx.job_pk).progress)

        manager.register_handlers({JobKind.INITIAL_SYNC: handler})
        handle = manager.enqueue(JobKind.INITIAL_SYNC, {})

        manager.process(QueuedJob.objects.get(job_id=handle.job_id).pk)

        assert seen == [40, 100]

    def test_retryable_error_schedules_retry(self, manager, recording_handler):
        """Email queue backoff is exponential from 5s."""
        handler = recording_handler(error=ExternalServiceError("SMTP down"))
        manager.register_handlers({JobKind.SEND_PAYMENT_RECEIPT: handler})
        handle = manager.enqueue(JobKind.SEND_PAYMENT_RECEIPT, {})
        pk = QueuedJob.objects.get(job_id=handle.job_id).pk

        first = manager.process(pk)
        second = manager.process(pk)

        assert first.status == JobStatus.DELAYED
        assert first.should_retry
        assert (first.retry_in, second.retry_in) == (5.0, 10.0)
        job = QueuedJob.objects.get(pk=pk)
        assert job.attempts_made == 2
        assert job.status == JobStatus.DELAYED
        assert "SMTP down" in job.last_error
        assert job.delay_until is not None
        assert [ctx.attempt for ctx in handler.contexts] == [1, 2]

    def test_exhausted_attempts_fail_the_job(self, manager, recording_handler):
        manager.register_handlers(
            {JobKind.VERIFY_PAYMENT: recording_handler(error=ExternalServiceError("down"))}
        )
        handle = manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(attempts=2))
        pk = QueuedJob.objects.get(job_id=handle.job_id).pk

        manager.process(pk)
        outcome = manager.process(pk)

        assert outcome.status == JobStatus.FAILED
        assert not outcome.should_retry
        job = QueuedJob.objects.get(pk=pk)
        assert job.status == JobStatus.FAILED
        assert job.finished_at is not None

    def test_non_retryable_error_fails_immediately(self, manager, recording_handler):
        manager.register_handlers(
            {JobKind.VERIFY_PAYMENT: recording_handler(error=ValidationError("bad payload"))}
        )
        handle = manager.enqueue(JobKind.VERIFY_PAYMENT, {})

        outcome = manager.process(QueuedJob.objects.get(job_id=handle.job_id).pk)

        assert outcome.status == JobStatus.FAILED
        assert outcome.error == "ValidationError: [VALIDATION_ERROR] bad payload"

    def test_plain_exceptions_are_retried(self, manager, recording_handler):
        manager.register_handlers({JobKind.VERIFY_PAYMENT: recording_handler(error=KeyError("x"))})
        handle = manager.enqueue(JobKind.VERIFY_PAYMENT, {})

        outcome = manager.process(QueuedJob.objects.get(job_id=handle.job_id).pk)

        assert outcome.status == JobStatus.DELAYED
        assert outcome.retry_in == 30.0

    @pytest.mark.parametrize(
        "status", [JobStatus.ACTIVE, JobStatus.COMPLETED, JobStatus.CANCELLED, JobStatus.FAILED]
    )
    def test_unclaimable_job_is_skipped(self, manager, recording_handler, status):
        handler = recording_handler()
        manager.register_handlers({JobKind.VERIFY_PAYMENT: handler})
        handle = manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(job_id="v-1"))
        set_status("v-1", status)

        outcome = manager.process(QueuedJob.objects.get(job_id=handle.job_id).pk)

        assert outcome.status == "skipped"
        assert handler.contexts == []

    def test_unknown_job_is_skipped(self, manager):
        assert manager.process(987654).status == "skipped"

    def test_missing_handler_fails_the_job(self, manager):
        handle = manager.enqueue(JobKind.VERIFY_PAYMENT, {})

        outcome = manager.process(QueuedJob.objects.get(job_id=handle.job_id).pk)

        assert outcome.status == JobStatus.FAILED
        assert "No handler registered" in outcome.error


# =============================================================================
# Dispatch table
# =============================================================================


class TestDispatchTable:
    def test_duplicate_handler_is_rejected(self, manager):
        manager.register_handlers({JobKind.VERIFY_PAYMENT: lambda ctx: None})

        with pytest.raises(ImproperlyConfigured, match="verify-payment"):
            manager.register_handlers({JobKind.VERIFY_PAYMENT: lambda ctx: None})

    def test_ensure_complete_lists_missing_kinds(self, manager):
        manager.register_handlers({JobKind.VERIFY_PAYMENT: lambda ctx: None})

        with pytest.raises(ImproperlyConfigured) as exc_info:
            manager.ensure_complete()

        assert "complete-enrollment" in str(exc_info.value)
        assert "verify-payment" not in str(exc_info.value)

    def test_accepts_kind_values(self, manager):
        handler = lambda ctx: None  # noqa: E731
        manager.register_handlers({"verify-payment": handler})

        assert manager.get_handler(JobKind.VERIFY_PAYMENT) is handler


class TestJobContext:
    def test_report_progress_without_row_is_a_no_op(self):
        ctx = JobContext(job_id="j", kind=JobKind.INITIAL_SYNC, payload={}, attempt=1)

        ctx.report_progress(50)


# =============================================================================
# Cancellation and lookup
# =============================================================================


@pytest.mark.django_db
class TestCancel:
    def test_cancels_waiting_job_and_revokes_task(self, manager, celery_app):
        manager.enqueue(JobKind.SEND_PAYMENT_REMINDER, {}, JobOptions(job_id="r-1", delay=60))
        job = QueuedJob.objects.get(job_id="r-1")

        assert manager.cancel("r-1") is True

        job.refresh_from_db()
        assert job.status == JobStatus.CANCELLED
        assert job.finished_at is not None
        celery_app.control.revoke.assert_called_once_with(job.celery_task_id)

    def test_active_job_is_not_cancelled(self, manager, celery_app):
        manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(job_id="v-1"))
        set_status("v-1", JobStatus.ACTIVE)

        assert manager.cancel("v-1") is False
        assert QueuedJob.objects.get(job_id="v-1").status == JobStatus.ACTIVE
        celery_app.control.revoke.assert_not_called()

    def test_unknown_job(self, manager):
        assert manager.cancel("missing") is False

    def test_revoke_failure_keeps_cancellation(self, manager, celery_app):
        celery_app.control.revoke.side_effect = ConnectionError("broker down")
        manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(job_id="v-1"))

        assert manager.cancel("v-1") is True
        assert QueuedJob.objects.get(job_id="v-1").status == JobStatus.CANCELLED

    def test_cancelled_job_is_skipped_by_worker(self, manager, recording_handler):
        handler = recording_handler()
        manager.register_handlers({JobKind.VERIFY_PAYMENT: handler})
        manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(job_id="v-1"))
        manager.cancel("v-1")

        outcome = manager.process(QueuedJob.objects.get(job_id="v-1").pk)

        assert outcome.status == "skipped"
        assert handler.contexts == []


@pytest.mark.django_db
class TestRetryAndRemove:
    def test_retry_rearms_failed_job(self, manager, celery_app, django_capture_on_commit_callbacks):
        manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(job_id="v-1"))
        set_status(
            "v-1",
            JobStatus.FAILED,
            attempts_made=5,
            last_error="gateway down",
            finished_at=timezone.now(),
        )
        old_task_id = QueuedJob.objects.get(job_id="v-1").celery_task_id

        with django_capture_on_commit_callbacks(execute=True):
            assert manager.retry_job("v-1") is True

        job = QueuedJob.objects.get(job_id="v-1")
        assert job.status == JobStatus.WAITING
        assert job.attempts_made == 0
        assert job.last_error == ""
        assert job.finished_at is None
        assert job.celery_task_id != old_task_id
        assert celery_app.send_task.call_args.kwargs["task_id"] == job.celery_task_id

    @pytest.mark.parametrize("status", [JobStatus.WAITING, JobStatus.ACTIVE, JobStatus.COMPLETED])
    def test_retry_only_failed_or_cancelled(self, manager, status):
        manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(job_id="v-1"))
        set_status("v-1", status)

        assert manager.retry_job("v-1") is False
        assert QueuedJob.objects.get(job_id="v-1").status == status

    def test_retry_cancelled_job(self, manager):
        manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(job_id="v-1"))
        manager.cancel("v-1")

        assert manager.retry_job("v-1") is True
        assert QueuedJob.objects.get(job_id="v-1").status == JobStatus.WAITING

    def test_retry_failed_respects_limit(self, manager):
        for job_id in ("a", "b", "c"):
            manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(job_id=job_id))
            set_status(job_id, JobStatus.FAILED, finished_at=timezone.now())
        manager.enqueue(JobKind.INITIAL_SYNC, {}, JobOptions(job_id="other-queue"))
        set_status("other-queue", JobStatus.FAILED)

        counts = manager.retry_failed(QueueName.PAYMENT, limit=2)

        assert counts == {"total": 2, "retried": 2, "failed": 0}
        assert QueuedJob.objects.filter(status=JobStatus.FAILED).count() == 2

    def test_remove_waiting_job_revokes_it(self, manager, celery_app):
        manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(job_id="v-1"))
        task_id = QueuedJob.objects.get(job_id="v-1").celery_task_id

        assert manager.remove_job("v-1") is True

        assert not QueuedJob.objects.filter(job_id="v-1").exists()
        celery_app.control.revoke.assert_called_once_with(task_id)

    def test_remove_finished_job(self, manager, celery_app):
        manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(job_id="v-1"))
        set_status("v-1", JobStatus.COMPLETED)

        assert manager.remove_job("v-1") is True
        celery_app.control.revoke.assert_not_called()

    def test_active_job_is_not_removed(self, manager):
        manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(job_id="v-1"))
        set_status("v-1", JobStatus.ACTIVE)

        assert manager.remove_job("v-1") is False
        assert QueuedJob.objects.filter(job_id="v-1").exists()

    def test_remove_unknown_job(self, manager):
        assert manager.remove_job("missing") is False


@pytest.mark.django_db
class TestGetJobStatus:
    def test_summary(self, manager):
        manager.enqueue(JobKind.VERIFY_PAYMENT, {"reference": "a"}, JobOptions(job_id="v-1"))

        status = manager.get_job_status("v-1")

        assert status["job_id"] == "v-1"
        assert status["queue"] == "payment"
        assert status["name"] == "verify-payment"
        assert status["status"] == JobStatus.WAITING
        assert status["attempts_made"] == 0
        assert status["max_attempts"] == 5

    def test_unknown_job(self, manager):
        assert manager.get_job_status("missing") is None


# =============================================================================
# Repeatable jobs
# =============================================================================


@pytest.mark.django_db
class TestRepeatable:
    def test_cron_schedule(self, manager):
        task = manager.add_repeatable(
            JobKind.POLL_PENDING_PAYMENTS,
            {"limit": 50},
            job_id="poll-pending-payments",
            cron="*/15 * * * *",
            priority=5,
        )

        assert task.name == "jobs:poll-pending-payments"
        assert task.task == ENQUEUE_REPEATABLE_TASK_NAME
        assert task.crontab.minute == "*/15"
        assert task.crontab.hour == "*"
        assert task.interval is None
        assert json.loads(task.kwargs) == {
            "kind": "poll-pending-payments",
            "payload": {"limit": 50},
            "job_id": "poll-pending-payments",
            "priority": 5,
        }

    def test_interval_schedule(self, manager):
        task = manager.add_repeatable(
            JobKind.PERIODIC_SYNC, job_id="periodic-sync", every=timedelta(hours=1)
        )

        assert task.interval.every == 3600
        assert task.crontab is None

    def test_adding_twice_updates_the_schedule(self, manager):
        manager.add_repeatable(JobKind.PERIODIC_SYNC, job_id="periodic-sync", every=60)
        manager.add_repeatable(JobKind.PERIODIC_SYNC, job_id="periodic-sync", every=120)

        tasks = PeriodicTask.objects.filter(name="jobs:periodic-sync")
        assert tasks.count() == 1
        assert tasks.get().interval.every == 120

    @pytest.mark.parametrize(
        "kwargs",
        [
            {},
            {"cron": "* * * * *", "every": 60},
            {"cron": "*/15 * * *"},
        ],
    )
    def test_invalid_schedule(self, manager, kwargs):
        with pytest.raises(ValueError):
            manager.add_repeatable(JobKind.PERIODIC_SYNC, job_id="periodic-sync", **kwargs)

    def test_remove(self, manager):
        manager.add_repeatable(JobKind.PERIODIC_SYNC, job_id="periodic-sync", every=60)

        assert manager.remove_repeatable("periodic-sync") is True
        assert manager.remove_repeatable("periodic-sync") is False


# =============================================================================
# Observability and maintenance
# =============================================================================


@pytest.mark.django_db
class TestStats:
    def test_counts_per_status(self, manager):
        manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(job_id="a"))
        manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(job_id="b"))
        manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(job_id="c"))
        set_status("c", JobStatus.FAILED)
        manager.enqueue(JobKind.INITIAL_SYNC, {})

        stats = manager.get_queue_stats(QueueName.PAYMENT)

        assert stats["queue"] == QueueName.PAYMENT
        assert stats["waiting"] == 2
        assert stats["failed"] == 1
        assert stats["completed"] == 0
        assert stats["paused"] is False

    def test_all_queues(self, manager):
        stats = manager.get_all_stats()

        assert set(stats) == set(QueueName.values)

    def test_pause_and_resume(self, manager, celery_app):
        manager.pause_queue(QueueName.EMAIL)

        assert manager.is_paused(QueueName.EMAIL) is True
        assert manager.get_queue_stats(QueueName.EMAIL)["paused"] is True
        celery_app.control.cancel_consumer.assert_called_once_with(QueueName.EMAIL)

        manager.resume_queue(QueueName.EMAIL)

        assert manager.is_paused(QueueName.EMAIL) is False
        celery_app.control.add_consumer.assert_called_once_with(QueueName.EMAIL)


@pytest.mark.django_db
class TestCleanup:
    def _finished_job(self, manager, job_id, status, at):
        manager.enqueue(JobKind.PERIODIC_SYNC, {}, JobOptions(job_id=job_id))
        with freeze_time(at):
            set_status(job_id, status, finished_at=timezone.now())

    def test_clean_queue_respects_grace(self, manager):
        now = timezone.now()
        self._finished_job(manager, "old", JobStatus.COMPLETED, now - timedelta(hours=25))
        self._finished_job(manager, "new", JobStatus.COMPLETED, now - timedelta(hours=1))
        self._finished_job(manager, "old-failed", JobStatus.FAILED, now - timedelta(hours=25))

        deleted = manager.clean_queue(QueueName.SYNC, timedelta(hours=24))

        assert deleted == 1
        assert set(QueuedJob.objects.values_list("job_id", flat=True)) == {"new", "old-failed"}

    def test_pending_jobs_cannot_be_cleaned(self, manager):
        with pytest.raises(ValueError):
            manager.clean_queue(QueueName.SYNC, 0, status=JobStatus.WAITING)

    def test_prune_finished_applies_retention(self, manager):
        now = timezone.now()
        self._finished_job(manager, "completed-old", JobStatus.COMPLETED, now - timedelta(hours=30))
        self._finished_job(manager, "failed-recent", JobStatus.FAILED, now - timedelta(days=3))
        self._finished_job(manager, "failed-old", JobStatus.FAILED, now - timedelta(days=8))
        self._finished_job(manager, "cancelled-old", JobStatus.CANCELLED, now - timedelta(days=2))

        pruned = manager.prune_finished()

        assert pruned == {"completed": 1, "failed": 1, "cancelled": 1}
        assert list(QueuedJob.objects.values_list("job_id", flat=True)) == ["failed-recent"]


@pytest.mark.django_db
class TestRecoverStalled:
    def test_stalled_active_job_is_rescheduled(
        self, manager, celery_app, django_capture_on_commit_callbacks
    ):
        manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(job_id="v-1"))
        old_task_id = QueuedJob.objects.get(job_id="v-1").celery_task_id
        set_status(
            "v-1",
            JobStatus.ACTIVE,
            attempts_made=1,
            started_at=timezone.now() - timedelta(minutes=45),
        )

        with django_capture_on_commit_callbacks(execute=True):
            recovered = manager.recover_stalled()

        assert recovered == {"requeued": 1, "failed": 0, "republished": 0}
        job = QueuedJob.objects.get(job_id="v-1")
        assert job.status == JobStatus.DELAYED
        assert job.celery_task_id != old_task_id
        assert celery_app.send_task.call_args.kwargs["task_id"] == job.celery_task_id

    def test_stalled_job_without_attempts_left_fails(self, manager):
        manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(job_id="v-1", attempts=1))
        set_status(
            "v-1",
            JobStatus.ACTIVE,
            attempts_made=1,
            started_at=timezone.now() - timedelta(minutes=45),
        )

        recovered = manager.recover_stalled()

        assert recovered["failed"] == 1
        job = QueuedJob.objects.get(job_id="v-1")
        assert job.status == JobStatus.FAILED
        assert job.last_error.startswith("Stalled")

    def test_lost_waiting_message_is_republished(self, manager):
        manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(job_id="v-1"))
        QueuedJob.objects.filter(job_id="v-1").update(
            updated_at=timezone.now() - timedelta(hours=1)
        )

        recovered = manager.recover_stalled()

        assert recovered["republished"] == 1

    def test_recent_jobs_are_left_alone(self, manager):
        manager.enqueue(JobKind.VERIFY_PAYMENT, {}, JobOptions(job_id="v-1"))
        manager.enqueue(
            JobKind.SEND_PAYMENT_REMINDER, {}, JobOptions(job_id="r-1", delay=timedelta(hours=24))
        )
        set_status("v-1", JobStatus.ACTIVE, started_at=timezone.now())

        assert manager.recover_stalled() == {"requeued": 0, "failed": 0, "republished": 0}
