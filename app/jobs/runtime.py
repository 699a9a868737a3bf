"""
Composition root for the job system.

build_runtime() wires everything once per process: the QueueManager, the
queue façades, the external-system clients and the processors. Processors
receive the façades they enqueue onto through their constructors and
contribute their handlers to the manager's dispatch table, which must cover
every JobKind.

JobsConfig.ready() stores the result on the app config; get_runtime()
returns it.

Usage:
    from jobs.runtime import get_runtime

    get_runtime().payments.verify_payment(reference="abc123")

    # Tests build their own runtime around mocks
    runtime = build_runtime(MagicMock(), paystack=fake_gateway)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.apps import apps

from jobs.manager import QueueManager
from jobs.queues import EmailQueue, EnrollmentQueue, PaymentQueue, SyncQueue

if TYPE_CHECKING:
    from celery import Celery

    from integrations.adapters import IncubatorAdapter, MoodleAdapter
    from notifications.email import EmailService
    from notifications.realtime import RealtimeEmitter
    from payments.adapters import PaystackAdapter


@dataclass(frozen=True)
class JobRuntime:
    """The process-wide job objects."""

    manager: QueueManager
    payments: PaymentQueue
    enrollments: EnrollmentQueue
    sync: SyncQueue
    emails: EmailQueue


def build_runtime(
    celery_app: Celery | None = None,
    *,
    paystack: PaystackAdapter | None = None,
    moodle: MoodleAdapter | None = None,
    incubator: IncubatorAdapter | None = None,
    realtime: RealtimeEmitter | None = None,
    email_service: EmailService | None = None,
) -> JobRuntime:
    """
    Build the manager, façades and processors and register every handler.

    Collaborators left as None are built from settings.

    Raises:
        ImproperlyConfigured: If a JobKind has no handler
    """
    from courses.processors import EnrollmentProcessor
    from integrations.adapters import IncubatorAdapter, MoodleAdapter
    from integrations.processors import SyncProcessor
    from integrations.services import LmsEnrollmentService, MoodleSyncService
    from notifications.email import EmailService
    from notifications.processors import EmailProcessor
    from notifications.realtime import RealtimeEmitter
    from payments.adapters import PaystackAdapter
    from payments.processors import PaymentProcessor

    if celery_app is None:
        from config.celery import app as celery_app

    manager = QueueManager(celery_app)
    payment_queue = PaymentQueue(manager)
    enrollment_queue = EnrollmentQueue(manager)
    sync_queue = SyncQueue(manager)
    email_queue = EmailQueue(manager)

    paystack = paystack or PaystackAdapter.from_settings()
    moodle = moodle or MoodleAdapter.from_settings()
    incubator = incubator or IncubatorAdapter.from_settings()
    realtime = realtime or RealtimeEmitter()
    email_service = email_service or EmailService()
    lms = LmsEnrollmentService(moodle)

    processors = [
        PaymentProcessor(
            gateway=paystack,
            payment_queue=payment_queue,
            enrollment_queue=enrollment_queue,
            email_queue=email_queue,
            realtime=realtime,
        ),
        EnrollmentProcessor(
            lms=lms,
            incubator=incubator,
            enrollment_queue=enrollment_queue,
            email_queue=email_queue,
            realtime=realtime,
        ),
        SyncProcessor(sync_service=MoodleSyncService(moodle), lms=lms),
        EmailProcessor(email_service=email_service),
    ]
    for processor in processors:
        manager.register_handlers(processor.handlers())
    manager.ensure_complete()

    return JobRuntime(
        manager=manager,
        payments=payment_queue,
        enrollments=enrollment_queue,
        sync=sync_queue,
        emails=email_queue,
    )


def get_runtime() -> JobRuntime:
    return apps.get_app_config("jobs").runtime
