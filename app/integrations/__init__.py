"""
Integrations Application - LMS and incubator synchronization

Adapters (import from integrations.adapters):
    - MoodleAdapter: Moodle web service client
    - IncubatorAdapter: Talent incubator API client

Services (import from integrations.services):
    - LmsEnrollmentService: idempotent LMS account + course enrollment
    - MoodleSyncService: pull-based reconciliation of courses, users,
      enrollments and completion

Processors:
    - SyncProcessor: handlers for the sync queue
"""
