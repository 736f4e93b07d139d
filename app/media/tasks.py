"""
Celery tasks for background blob cleanup.

This module provides periodic tasks for:
- Deleting orphaned blobs recorded as cleanup jobs, with backoff on failure
- Purging finished cleanup jobs after the retention period

Both are scheduled through django-celery-beat (see migration
0002_add_celery_beat_schedules). The processing task runs every 15 minutes;
a job is attempted only once its next_retry_at has passed, so the ladder of
retry delays is honoured independently of the tick interval.

Usage:
    from media.tasks import process_cleanup_jobs

    # Run one tick now (e.g. from a shell after an outage)
    process_cleanup_jobs.delay()
"""

from __future__ import annotations

import logging

from celery import shared_task
from django.conf import settings

from media.services.container import get_media_services

logger = logging.getLogger(__name__)


# =============================================================================
# Cleanup Processing
# =============================================================================


@shared_task(bind=True, acks_late=True)
def process_cleanup_jobs(self) -> dict:
    """
    Periodic task that attempts every due cleanup job once.

    Deletes succeed → job completed. Failures are rescheduled on the backoff
    ladder until the retry limit, after which the job is marked failed and
    needs manual reconciliation.

    Returns:
        Dict with processed/completed/retried/failed counts for this tick and
        the queue statistics after it.
    """
    queue = get_media_services().cleanup_queue

    report = queue.process_due()
    stats = queue.stats()

    logger.info(
        "Cleanup tick finished",
        extra={
            "task_id": self.request.id,
            **report.to_dict(),
            "pending_total": stats.pending,
            "failed_total": stats.failed,
        },
    )
    if report.failed:
        logger.error(
            f"{report.failed} cleanup jobs permanently failed this tick",
            extra={"failed": report.failed},
        )

    return {**report.to_dict(), "stats": stats.to_dict()}


# =============================================================================
# Housekeeping
# =============================================================================


@shared_task
def purge_finished_cleanup_jobs() -> dict:
    """
    Periodic task to delete completed and failed jobs past retention.

    Retention is CLEANUP_JOB_RETENTION_DAYS (default 30).

    Returns:
        Dict with count of jobs deleted.
    """
    deleted = get_media_services().cleanup_queue.purge_finished(
        older_than_days=settings.CLEANUP_JOB_RETENTION_DAYS
    )
    return {"deleted_count": deleted}
