"""
Tests for the integrations app.

Test modules:
- test_adapters.py: Moodle and incubator clients over a mocked session
- test_lms_enrollment.py: Idempotent LMS account and enrollment steps
- test_moodle_sync.py: Reconciliation passes
- test_processors.py: Sync queue handlers
"""
