"""
Tests for the jobs app.

Test modules:
- test_config.py: Backoff delays and broker priority mapping
- test_manager.py: QueueManager enqueue, execution, cancellation, schedules, maintenance
- test_queues.py: Queue façade job ids, priorities and options
- test_tasks.py: Celery task entry points
- test_runtime.py: Handler registration covers every job kind
"""
