"""
Serializers for the queue administration API.

Serializers:
    QueuedJobSerializer: Read-only ledger row
    QueueStatsSerializer: Per-status job counts of one queue
    CleanQueueSerializer: Request body for cleaning finished jobs
    CleanQueueResponseSerializer: Number of jobs removed by a clean
    RetryFailedSerializer: Request body for bulk retry of failed jobs
    RetryFailedResponseSerializer: Bulk retry counters
"""

from __future__ import annotations

from rest_framework import serializers

from jobs.kinds import JobStatus, TERMINAL_STATUSES
from jobs.models import QueuedJob


class QueuedJobSerializer(serializers.ModelSerializer):
    class Meta:
        model = QueuedJob
        fields = [
            "job_id",
            "queue",
            "name",
            "status",
            "priority",
            "progress",
            "payload",
            "attempts_made",
            "max_attempts",
            "result",
            "last_error",
            "delay_until",
            "started_at",
            "finished_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class QueueStatsSerializer(serializers.Serializer):
    queue = serializers.CharField()
    waiting = serializers.IntegerField()
    delayed = serializers.IntegerField()
    active = serializers.IntegerField()
    completed = serializers.IntegerField()
    failed = serializers.IntegerField()
    cancelled = serializers.IntegerField()
    paused = serializers.BooleanField()


class CleanQueueSerializer(serializers.Serializer):
    """
    Clean finished jobs older than a grace period.

    Fields:
        grace_seconds: Only jobs finished longer ago are deleted (default 24h)
        status: Finished status to clean (default completed)
    """

    grace_seconds = serializers.IntegerField(min_value=0, default=24 * 60 * 60)
    status = serializers.ChoiceField(
        choices=[(status.value, status.label) for status in TERMINAL_STATUSES],
        default=JobStatus.COMPLETED.value,
    )


class CleanQueueResponseSerializer(serializers.Serializer):
    queue = serializers.CharField()
    status = serializers.CharField()
    removed = serializers.IntegerField()


class RetryFailedSerializer(serializers.Serializer):
    limit = serializers.IntegerField(min_value=1, max_value=1000, default=100)


class RetryFailedResponseSerializer(serializers.Serializer):
    total = serializers.IntegerField()
    retried = serializers.IntegerField()
    failed = serializers.IntegerField()
