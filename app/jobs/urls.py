"""
URL configuration for the queue administration API.

Routes:
    Queues:
        /queues/                       - Stats of every queue (GET)
        /queues/{name}/                - Stats of one queue (GET)
        /queues/{name}/pause/          - Pause a queue (POST)
        /queues/{name}/resume/         - Resume a queue (POST)
        /queues/{name}/clean/          - Delete old finished jobs (POST)
        /queues/{name}/retry-failed/   - Retry failed jobs (POST)

    Jobs:
        /jobs/                         - List jobs (GET)
        /jobs/{job_id}/                - Job detail (GET), remove (DELETE)
        /jobs/{job_id}/retry/          - Retry a job (POST)
"""

from rest_framework.routers import DefaultRouter

from jobs.views import QueuedJobViewSet, QueueViewSet

router = DefaultRouter()
router.register(r"queues", QueueViewSet, basename="queue")
router.register(r"jobs", QueuedJobViewSet, basename="job")

app_name = "jobs"
urlpatterns = router.urls
