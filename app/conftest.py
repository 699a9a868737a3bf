"""
Project-wide pytest configuration for the course portal.

This module configures pytest-django for tests and provides fixtures shared
by several apps: a job runtime wired to mocked external systems, and a
helper that runs enqueued jobs the way a worker would.

App-specific fixtures are defined in each app's tests/conftest.py.

Usage:
    def test_example(runtime, run_job, paystack):
        handle = runtime.payments.verify_payment(reference="ref_1")
        outcome = run_job(handle)
        assert outcome.status == "completed"
"""

import os
from unittest.mock import MagicMock

import django
import pytest

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")


def pytest_configure():
    """Configure Django settings before tests run."""
    django.setup()

    from django.conf import settings

    # No Redis during tests: in-process cache and channel layer
    settings.CACHES = {
        "default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"}
    }
    settings.SESSION_ENGINE = "django.contrib.sessions.backends.db"
    settings.CHANNEL_LAYERS = {
        "default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}
    }

    # Use fast password hasher for tests (PBKDF2 is too slow with 870K iterations)
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py → e2e (payment-to-enrollment workflows)
    - test_processors.py, test_views.py, test_manager.py, etc. → integration
    - test_models.py, test_adapters.py, test_http_client.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_views.py",
        "test_processors.py",
        "test_manager.py",
        "test_queues.py",
        "test_tasks.py",
        "test_handlers.py",
        "test_moodle_sync.py",
        "test_lms_enrollment.py",
        "test_runtime.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_managers.py",
        "test_adapters.py",
        "test_http_client.py",
        "test_exceptions.py",
        "test_config.py",
        "test_state_machines.py",
        "test_email.py",
        "test_realtime.py",
    ]

    for item in items:
        # Skip if test already has unit/integration/e2e marker
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def clear_cache():
    """Paused-queue flags live in the cache; start every test clean."""
    from django.core.cache import cache

    cache.clear()
    yield
    cache.clear()


# =============================================================================
# External System Doubles
# =============================================================================


@pytest.fixture
def celery_app():
    """Celery app double; published messages are recorded on send_task."""
    return MagicMock(name="celery_app")


@pytest.fixture
def paystack():
    from payments.adapters import PaystackAdapter

    return MagicMock(spec=PaystackAdapter)


@pytest.fixture
def moodle():
    from integrations.adapters import MoodleAdapter

    adapter = MagicMock(spec=MoodleAdapter)
    adapter.is_configured = True
    return adapter


@pytest.fixture
def incubator():
    from integrations.adapters import IncubatorAdapter

    adapter = MagicMock(spec=IncubatorAdapter)
    adapter.is_configured = True
    return adapter


@pytest.fixture
def realtime():
    from notifications.realtime import RealtimeEmitter

    return MagicMock(spec=RealtimeEmitter)


@pytest.fixture
def email_service():
    from notifications.email import EmailService

    return MagicMock(spec=EmailService)


# =============================================================================
# Job Runtime
# =============================================================================


@pytest.fixture
def runtime(celery_app, paystack, moodle, incubator, realtime, email_service):
    """A fully wired JobRuntime whose external systems are all mocks."""
    from jobs.runtime import build_runtime

    return build_runtime(
        celery_app,
        paystack=paystack,
        moodle=moodle,
        incubator=incubator,
        realtime=realtime,
        email_service=email_service,
    )


@pytest.fixture
def run_job(runtime):
    """
    Execute an enqueued job once, as execute_job would.

    Accepts a JobHandle or a job id and returns the JobOutcome.
    """
    from jobs.models import QueuedJob

    def _run(handle_or_job_id):
        job_id = getattr(handle_or_job_id, "job_id", handle_or_job_id)
        job = QueuedJob.objects.get(job_id=job_id)
        return runtime.manager.process(job.pk)

    return _run
