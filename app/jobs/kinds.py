"""
Queue names, job kinds and job lifecycle states.

Every unit of asynchronous work in the portal is a JobKind. Each kind
belongs to exactly one queue; the QueueManager routes a job to the Celery
queue of the same name and dispatches it to the handler registered for its
kind.

Queues:
    payment     - verification, reconciliation polling, webhook processing
    enrollment  - activation, progress, external account sync
    sync        - LMS reconciliation passes
    email       - transactional email
    notification, cleanup - reserved queues with their own retry defaults

Job lifecycle:
    waiting → active → completed
    delayed → active → completed
    active → delayed (retry scheduled) → active → ...
    active → failed (attempts exhausted or non-retryable error)
    waiting/delayed → cancelled
"""

from django.db import models


class QueueName(models.TextChoices):
    """Named durable queues."""

    EMAIL = "email", "Email"
    SYNC = "sync", "Sync"
    PAYMENT = "payment", "Payment"
    ENROLLMENT = "enrollment", "Enrollment"
    NOTIFICATION = "notification", "Notification"
    CLEANUP = "cleanup", "Cleanup"


class JobStatus(models.TextChoices):
    """
    States of a QueuedJob ledger row.

    Pending states: WAITING, DELAYED, ACTIVE
    Terminal states: COMPLETED, FAILED, CANCELLED
    """

    WAITING = "waiting", "Waiting"
    DELAYED = "delayed", "Delayed"
    ACTIVE = "active", "Active"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    CANCELLED = "cancelled", "Cancelled"


PENDING_STATUSES = (JobStatus.WAITING, JobStatus.DELAYED, JobStatus.ACTIVE)
CLAIMABLE_STATUSES = (JobStatus.WAITING, JobStatus.DELAYED)
TERMINAL_STATUSES = (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


class BackoffType(models.TextChoices):
    """Delay rule between successive attempts of a failed job."""

    FIXED = "fixed", "Fixed"
    EXPONENTIAL = "exponential", "Exponential"


class JobKind(models.TextChoices):
    """
    Every job the workers know how to run.

    The value is the job name stored on the ledger row. The queue a kind
    runs on is available as ``kind.queue``.
    """

    # Payment queue
    VERIFY_PAYMENT = "verify-payment", "Verify payment"
    POLL_PENDING_PAYMENTS = "poll-pending-payments", "Poll pending payments"
    RETRY_FAILED_ENROLLMENT = "retry-failed-enrollment", "Retry failed enrollment"
    CLEANUP_ABANDONED_PAYMENTS = (
        "cleanup-abandoned-payments",
        "Cleanup abandoned payments",
    )
    PROCESS_WEBHOOK = "process-webhook", "Process webhook"

    # Enrollment queue
    COMPLETE_ENROLLMENT = "complete-enrollment", "Complete enrollment"
    SYNC_MOODLE_ENROLLMENT = "sync-moodle-enrollment", "Sync Moodle enrollment"
    SYNC_INCUBATOR_PROFILE = "sync-incubator-profile", "Sync incubator profile"
    CREATE_MOODLE_ACCOUNT = "create-moodle-account", "Create Moodle account"
    CREATE_INCUBATOR_ACCOUNT = "create-incubator-account", "Create incubator account"
    INITIALIZE_PROGRESS = "initialize-progress", "Initialize progress"
    CALCULATE_PROGRESS = "calculate-progress", "Calculate progress"
    SYNC_COURSE_COMPLETION = "sync-course-completion", "Sync course completion"

    # Sync queue
    INITIAL_SYNC = "initial-sync", "Initial sync"
    PERIODIC_SYNC = "periodic-sync", "Periodic sync"
    SYNC_USER_ENROLLMENT = "sync-user-enrollment", "Sync user enrollment"
    FORCE_SYNC_USERS = "force-sync-users", "Force sync users"
    FORCE_SYNC_COURSES = "force-sync-courses", "Force sync courses"
    FORCE_SYNC_ENROLLMENTS = "force-sync-enrollments", "Force sync enrollments"

    # Email queue
    SEND_ENROLLMENT_CONFIRMATION = (
        "send-enrollment-confirmation",
        "Send enrollment confirmation",
    )
    SEND_COURSE_COMPLETION = "send-course-completion", "Send course completion"
    SEND_PAYMENT_RECEIPT = "send-payment-receipt", "Send payment receipt"
    SEND_PAYMENT_REMINDER = "send-payment-reminder", "Send payment reminder"

    @property
    def queue(self) -> str:
        return JOB_QUEUES[self]


JOB_QUEUES: dict[JobKind, str] = {
    JobKind.VERIFY_PAYMENT: QueueName.PAYMENT,
    JobKind.POLL_PENDING_PAYMENTS: QueueName.PAYMENT,
    JobKind.RETRY_FAILED_ENROLLMENT: QueueName.PAYMENT,
    JobKind.CLEANUP_ABANDONED_PAYMENTS: QueueName.PAYMENT,
    JobKind.PROCESS_WEBHOOK: QueueName.PAYMENT,
    JobKind.COMPLETE_ENROLLMENT: QueueName.ENROLLMENT,
    JobKind.SYNC_MOODLE_ENROLLMENT: QueueName.ENROLLMENT,
    JobKind.SYNC_INCUBATOR_PROFILE: QueueName.ENROLLMENT,
    JobKind.CREATE_MOODLE_ACCOUNT: QueueName.ENROLLMENT,
    JobKind.CREATE_INCUBATOR_ACCOUNT: QueueName.ENROLLMENT,
    JobKind.INITIALIZE_PROGRESS: QueueName.ENROLLMENT,
    JobKind.CALCULATE_PROGRESS: QueueName.ENROLLMENT,
    JobKind.SYNC_COURSE_COMPLETION: QueueName.ENROLLMENT,
    JobKind.INITIAL_SYNC: QueueName.SYNC,
    JobKind.PERIODIC_SYNC: QueueName.SYNC,
    JobKind.SYNC_USER_ENROLLMENT: QueueName.SYNC,
    JobKind.FORCE_SYNC_USERS: QueueName.SYNC,
    JobKind.FORCE_SYNC_COURSES: QueueName.SYNC,
    JobKind.FORCE_SYNC_ENROLLMENTS: QueueName.SYNC,
    JobKind.SEND_ENROLLMENT_CONFIRMATION: QueueName.EMAIL,
    JobKind.SEND_COURSE_COMPLETION: QueueName.EMAIL,
    JobKind.SEND_PAYMENT_RECEIPT: QueueName.EMAIL,
    JobKind.SEND_PAYMENT_REMINDER: QueueName.EMAIL,
}
