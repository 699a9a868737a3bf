"""
Views for the queue administration API.

ViewSets:
    QueueViewSet: Per-queue statistics and operator actions
    QueuedJobViewSet: Ledger browsing, single-job retry and removal

Endpoints:
    Queues:
        GET  /api/v1/admin/queues/                      - Stats of every queue
        GET  /api/v1/admin/queues/{name}/               - Stats of one queue
        POST /api/v1/admin/queues/{name}/pause/         - Stop consuming the queue
        POST /api/v1/admin/queues/{name}/resume/        - Resume consuming
        POST /api/v1/admin/queues/{name}/clean/         - Delete old finished jobs
        POST /api/v1/admin/queues/{name}/retry-failed/  - Re-arm failed jobs

    Jobs:
        GET    /api/v1/admin/jobs/                  - List jobs (?queue=, ?status=)
        GET    /api/v1/admin/jobs/{job_id}/         - Job detail
        POST   /api/v1/admin/jobs/{job_id}/retry/   - Re-arm a failed or cancelled job
        DELETE /api/v1/admin/jobs/{job_id}/         - Remove a job that is not running

All endpoints require an admin account (IsPortalAdmin).
"""

from __future__ import annotations

import logging
from datetime import timedelta

from django.http import Http404
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
    extend_schema_view,
)

from jobs.kinds import JobStatus, QueueName
from jobs.models import QueuedJob
from jobs.permissions import IsPortalAdmin
from jobs.runtime import get_runtime
from jobs.serializers import (
    CleanQueueResponseSerializer,
    CleanQueueSerializer,
    QueuedJobSerializer,
    QueueStatsSerializer,
    RetryFailedResponseSerializer,
    RetryFailedSerializer,
)

logger = logging.getLogger(__name__)


class QueueViewSet(viewsets.ViewSet):
    """
    Operator view of the named queues.

    Unknown queue names return 404.
    """

    permission_classes = [IsPortalAdmin]
    lookup_field = "name"
    lookup_value_regex = "[a-z]+"

    @property
    def manager(self):
        return get_runtime().manager

    def _get_queue(self, name: str) -> str:
        if name not in QueueName.values:
            raise Http404(f"Unknown queue {name!r}")
        return name

    @extend_schema(
        operation_id="list_queue_stats",
        summary="Statistics of every queue",
        responses={200: QueueStatsSerializer(many=True)},
        tags=["Admin - Queues"],
    )
    def list(self, request):
        stats = self.manager.get_all_stats()
        return Response(QueueStatsSerializer(stats.values(), many=True).data)

    @extend_schema(
        operation_id="get_queue_stats",
        summary="Statistics of one queue",
        responses={200: QueueStatsSerializer, 404: OpenApiResponse(description="Unknown queue")},
        tags=["Admin - Queues"],
    )
    def retrieve(self, request, name=None):
        queue = self._get_queue(name)
        return Response(QueueStatsSerializer(self.manager.get_queue_stats(queue)).data)

    @extend_schema(
        operation_id="pause_queue",
        summary="Pause a queue",
        request=None,
        responses={200: QueueStatsSerializer},
        tags=["Admin - Queues"],
    )
    @action(detail=True, methods=["post"])
    def pause(self, request, name=None):
        queue = self._get_queue(name)
        self.manager.pause_queue(queue)
        logger.info(f"Queue {queue} paused by {request.user.pk}", extra={"queue": queue})
        return Response(QueueStatsSerializer(self.manager.get_queue_stats(queue)).data)

    @extend_schema(
        operation_id="resume_queue",
        summary="Resume a paused queue",
        request=None,
        responses={200: QueueStatsSerializer},
        tags=["Admin - Queues"],
    )
    @action(detail=True, methods=["post"])
    def resume(self, request, name=None):
        queue = self._get_queue(name)
        self.manager.resume_queue(queue)
        logger.info(f"Queue {queue} resumed by {request.user.pk}", extra={"queue": queue})
        return Response(QueueStatsSerializer(self.manager.get_queue_stats(queue)).data)

    @extend_schema(
        operation_id="clean_queue",
        summary="Delete old finished jobs",
        request=CleanQueueSerializer,
        responses={200: CleanQueueResponseSerializer},
        tags=["Admin - Queues"],
    )
    @action(detail=True, methods=["post"])
    def clean(self, request, name=None):
        queue = self._get_queue(name)
        serializer = CleanQueueSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        job_status = serializer.validated_data["status"]
        removed = self.manager.clean_queue(
            queue,
            timedelta(seconds=serializer.validated_data["grace_seconds"]),
            job_status,
        )
        return Response(
            CleanQueueResponseSerializer(
                {"queue": queue, "status": job_status, "removed": removed}
            ).data
        )

    @extend_schema(
        operation_id="retry_failed_jobs",
        summary="Retry the failed jobs of a queue",
        request=RetryFailedSerializer,
        responses={200: RetryFailedResponseSerializer},
        tags=["Admin - Queues"],
    )
    @action(detail=True, methods=["post"], url_path="retry-failed")
    def retry_failed(self, request, name=None):
        queue = self._get_queue(name)
        serializer = RetryFailedSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        counts = self.manager.retry_failed(queue, limit=serializer.validated_data["limit"])
        logger.info(f"Bulk retry on {queue} by {request.user.pk}", extra={"queue": queue, **counts})
        return Response(RetryFailedResponseSerializer(counts).data)


@extend_schema_view(
    list=extend_schema(
        operation_id="list_jobs",
        summary="List ledger jobs",
        parameters=[
            OpenApiParameter(
                name="queue",
                type=str,
                location=OpenApiParameter.QUERY,
                enum=QueueName.values,
                required=False,
            ),
            OpenApiParameter(
                name="status",
                type=str,
                location=OpenApiParameter.QUERY,
                enum=JobStatus.values,
                required=False,
            ),
        ],
        tags=["Admin - Jobs"],
    ),
    retrieve=extend_schema(operation_id="get_job", summary="Job detail", tags=["Admin - Jobs"]),
    destroy=extend_schema(
        operation_id="remove_job",
        summary="Remove a job",
        responses={
            204: OpenApiResponse(description="Job removed"),
            409: OpenApiResponse(description="Job is running"),
        },
        tags=["Admin - Jobs"],
    ),
)
class QueuedJobViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """
    Ledger rows, newest first.

    Filtering:
    - ?queue=<name>
    - ?status=<status>
    """

    permission_classes = [IsPortalAdmin]
    serializer_class = QueuedJobSerializer
    lookup_field = "job_id"
    lookup_value_regex = "[^/]+"

    def get_queryset(self):
        queryset = QueuedJob.objects.all()

        queue = self.request.query_params.get("queue")
        if queue:
            queryset = queryset.filter(queue=queue)

        job_status = self.request.query_params.get("status")
        if job_status:
            queryset = queryset.filter(status=job_status)

        return queryset

    def destroy(self, request, *args, **kwargs):
        job = self.get_object()
        if not get_runtime().manager.remove_job(job.job_id):
            return Response(
                {"detail": f"Job {job.job_id} is {job.status} and cannot be removed."},
                status=status.HTTP_409_CONFLICT,
            )
        logger.info(f"Job {job.job_id} removed by {request.user.pk}", extra={"job_id": job.job_id})
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="retry_job",
        summary="Retry a failed or cancelled job",
        request=None,
        responses={
            200: QueuedJobSerializer,
            409: OpenApiResponse(description="Job is not failed or cancelled"),
        },
        tags=["Admin - Jobs"],
    )
    @action(detail=True, methods=["post"])
    def retry(self, request, job_id=None):
        job = self.get_object()
        if not get_runtime().manager.retry_job(job.job_id):
            return Response(
                {"detail": f"Job {job.job_id} is {job.status} and cannot be retried."},
                status=status.HTTP_409_CONFLICT,
            )
        job.refresh_from_db()
        return Response(self.get_serializer(job).data)
