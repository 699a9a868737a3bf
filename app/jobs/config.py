"""
Retry, priority and retention defaults for the durable job queues.

Option resolution for a job, most specific first:
    1. JobOptions passed to QueueManager.enqueue()
    2. QUEUE_DEFAULTS[queue]
    3. DEFAULT_QUEUE_CONFIG

Priorities follow the "1 is most urgent" convention. They are mapped onto
the broker's 0-9 priority range when published.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from django.conf import settings

from jobs.kinds import BackoffType, QueueName


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Delay rule between attempts.

    Attributes:
        type: fixed or exponential
        delay_ms: Base delay in milliseconds

    Example:
        policy = BackoffPolicy(BackoffType.EXPONENTIAL, 2000)
        policy.delay_for(1)  # 2.0 seconds
        policy.delay_for(3)  # 8.0 seconds
    """

    type: str = BackoffType.EXPONENTIAL
    delay_ms: int = 2000

    def delay_for(self, attempts_made: int) -> float:
        """
        Seconds to wait before the next attempt.

        Args:
            attempts_made: Attempts already executed (1 after the first failure)
        """
        if self.type == BackoffType.FIXED:
            return self.delay_ms / 1000
        exponent = max(attempts_made - 1, 0)
        return self.delay_ms * (2**exponent) / 1000


@dataclass(frozen=True)
class QueueConfig:
    """Per-queue job defaults."""

    attempts: int = 3
    priority: int = 5
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)
    timeout_seconds: int | None = None


DEFAULT_QUEUE_CONFIG = QueueConfig()

QUEUE_DEFAULTS: dict[str, QueueConfig] = {
    QueueName.EMAIL: QueueConfig(
        attempts=5,
        priority=1,
        backoff=BackoffPolicy(BackoffType.EXPONENTIAL, 5000),
    ),
    QueueName.SYNC: QueueConfig(attempts=3, priority=5, timeout_seconds=60),
    QueueName.PAYMENT: QueueConfig(
        attempts=5,
        priority=2,
        backoff=BackoffPolicy(BackoffType.FIXED, 30000),
    ),
    QueueName.ENROLLMENT: QueueConfig(attempts=4, priority=2),
    QueueName.NOTIFICATION: QueueConfig(attempts=3, priority=3),
    QueueName.CLEANUP: QueueConfig(attempts=2, priority=10),
}


def get_queue_config(queue: str) -> QueueConfig:
    return QUEUE_DEFAULTS.get(queue, DEFAULT_QUEUE_CONFIG)


def get_queue_concurrency(queue: str) -> int:
    """Worker concurrency for a queue (``celery worker -Q <queue> -c <n>``)."""
    return settings.QUEUE_CONCURRENCY.get(queue, 1)


def to_broker_priority(priority: int) -> int:
    """Map a 1..10 job priority onto the broker's 0 (highest) .. 9 range."""
    return max(0, min(9, priority - 1))
