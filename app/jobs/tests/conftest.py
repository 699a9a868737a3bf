"""
Fixtures for job queue tests.

``manager`` is a bare QueueManager with no processors attached, so ledger
behaviour can be tested with plain handler functions.
"""

import pytest

from jobs.manager import QueueManager


class RecordingHandler:
    """Handler double that records contexts and returns or raises on demand."""

    def __init__(self, result=None, error=None):
        self.result = result if result is not None else {"ok": True}
        self.error = error
        self.contexts = []

    def __call__(self, ctx):
        self.contexts.append(ctx)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def manager(celery_app):
    return QueueManager(celery_app)


@pytest.fixture
def recording_handler():
    return RecordingHandler
