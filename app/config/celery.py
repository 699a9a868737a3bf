"""
Celery configuration for the course portal.

Celery carries the portal's background work:
- execute_job: one delivery of a ledger job (jobs.models.QueuedJob), routed
  to the job's named queue (email, sync, payment, enrollment, notification,
  cleanup)
- enqueue_repeatable: fired by django-celery-beat for recurring jobs
  (payment poller, abandoned payment cleanup, periodic LMS sync)
- prune_finished_jobs / recover_stalled_jobs: ledger maintenance

Redis is both the message broker and result backend. Tasks are
auto-discovered from all installed Django apps.

Usage:
    # One worker per queue, sized by QUEUE_CONCURRENCY
    celery -A config worker -Q payment -c 3
    celery -A config worker -Q email -c 5

    # Scheduler (schedules live in the database)
    celery -A config beat

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Celery will look for a tasks.py module in each installed app
app.autodiscover_tasks()
