"""
Jobs Application - Durable job queue

Layers:
    - kinds: QueueName, JobKind, JobStatus
    - config: per-queue retry and priority defaults
    - models: QueuedJob ledger
    - manager: QueueManager (enqueue, process, cancel, schedule, stats)
    - queues: PaymentQueue, EnrollmentQueue, SyncQueue, EmailQueue façades
    - runtime: build_runtime() / get_runtime() composition root
    - tasks: Celery entry points

Note:
    Models and the manager are NOT imported here to avoid
    AppRegistryNotReady errors. Import them from their modules.
"""
