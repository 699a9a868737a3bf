# =============================================================================
# Course Portal Project Configuration Package
# =============================================================================
# Settings, URLs, ASGI/WSGI applications and the Celery app.
#
# The Celery app is imported here so that it is loaded when Django starts and
# jobs.tasks is registered before the first job is published.
# =============================================================================

from config.celery import app as celery_app

__all__ = ("celery_app",)
