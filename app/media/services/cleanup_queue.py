"""
Durable queue of blob deletions with exponential backoff.

A blob becomes orphaned when its catalog row is deleted, or when the catalog
write fails after the blob was uploaded. Either way a CleanupJob row is
recorded and a Celery beat task (media.tasks.process_cleanup_jobs) works
through the due jobs every 15 minutes.

Retry schedule after the Nth failed attempt:
    N:      1    2    3     4     5      (6 = max retries)
    delay:  1m   5m   15m   1h    6h     -> failed

The ladder continues with 24h, which is used only when
CLEANUP_JOB_MAX_RETRIES is raised above 6.

Usage:
    queue = CleanupJobQueue(blob_store)
    queue.schedule("cf-image-id", "image")  # idempotent per blob id

    report = queue.process_due()
    print(report.completed, report.retried, report.failed)

Note:
    One beat scheduler drives processing, so due jobs are not claimed with
    row locks. A tick that crashes leaves its jobs pending for the next one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from django.db import DatabaseError
from django.db.models import Count, Min, Q
from django.utils import timezone

from media.exceptions import CleanupSchedulingError
from media.models import CleanupJob

if TYPE_CHECKING:
    from typing import Any

    from media.services.blob_store import BlobStoreClient

logger = logging.getLogger(__name__)

BACKOFF_MINUTES = (1, 5, 15, 60, 360, 1440)
DEFAULT_MAX_RETRIES = 6
DEFAULT_BATCH_SIZE = 50
DEFAULT_INITIAL_DELAY = timedelta(minutes=1)


@dataclass
class ProcessingReport:
    """Outcome of one processing tick."""

    processed: int = 0
    completed: int = 0
    retried: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "completed": self.completed,
            "retried": self.retried,
            "failed": self.failed,
        }


@dataclass
class CleanupQueueStats:
    """Queue counts for monitoring."""

    pending: int
    completed: int
    failed: int
    oldest_pending: datetime | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "pending": self.pending,
            "completed": self.completed,
            "failed": self.failed,
            "oldest_pending": self.oldest_pending.isoformat() if self.oldest_pending else None,
        }


def backoff_delay(retry_count: int) -> timedelta:
    """Delay before the next attempt once ``retry_count`` attempts have failed."""
    index = min(max(retry_count - 1, 0), len(BACKOFF_MINUTES) - 1)
    return timedelta(minutes=BACKOFF_MINUTES[index])


class CleanupJobQueue:
    """Create, process and report on blob cleanup jobs."""

    def __init__(
        self,
        blob_store: BlobStoreClient,
        max_retries: int = DEFAULT_MAX_RETRIES,
        batch_size: int = DEFAULT_BATCH_SIZE,
        initial_delay: timedelta = DEFAULT_INITIAL_DELAY,
    ):
        self.blob_store = blob_store
        self.max_retries = max_retries
        self.batch_size = batch_size
        self.initial_delay = initial_delay

    # =========================================================================
    # Creation
    # =========================================================================

    def schedule(self, external_blob_id: str, kind: str) -> CleanupJob:
        """
        Record a pending deletion, or return the job already recorded.

        The blob id is unique, so a duplicate or racing call resolves to the
        existing row whatever its status.

        Raises:
            CleanupSchedulingError: If the job cannot be written.
        """
        try:
            job, created = CleanupJob.objects.get_or_create(
                external_blob_id=external_blob_id,
                defaults={
                    "kind": kind,
                    "retry_count": 0,
                    "status": CleanupJob.Status.PENDING,
                    "next_retry_at": timezone.now() + self.initial_delay,
                },
            )
        except DatabaseError as e:
            raise CleanupSchedulingError(
                f"Could not schedule cleanup for {external_blob_id}",
                details={"external_blob_id": external_blob_id, "kind": kind, "error": str(e)},
            ) from e

        if created:
            logger.info(
                "Scheduled blob cleanup job",
                extra={"job_id": job.pk, "external_blob_id": external_blob_id, "kind": kind},
            )
        return job

    # =========================================================================
    # Processing
    # =========================================================================

    def due_jobs(self, now: datetime | None = None, limit: int | None = None) -> list[CleanupJob]:
        """Pending jobs whose next attempt is due, oldest first."""
        now = now or timezone.now()
        return list(
            CleanupJob.objects.filter(
                status=CleanupJob.Status.PENDING,
                next_retry_at__lte=now,
            ).order_by("created_at", "pk")[: limit or self.batch_size]
        )

    def process_due(self, now: datetime | None = None) -> ProcessingReport:
        """Attempt every due job once."""
        report = ProcessingReport()
        jobs = self.due_jobs(now)
        logger.info("Processing cleanup jobs", extra={"count": len(jobs)})

        for job in jobs:
            self.process_job(job)
            report.processed += 1
            if job.status == CleanupJob.Status.COMPLETED:
                report.completed += 1
            elif job.status == CleanupJob.Status.FAILED:
                report.failed += 1
            else:
                report.retried += 1

        return report

    def process_job(self, job: CleanupJob) -> CleanupJob:
        """Try to delete the job's blob and record the outcome on the job."""
        logger.info(
            "Attempting blob cleanup",
            extra={
                "job_id": job.pk,
                "external_blob_id": job.external_blob_id,
                "kind": job.kind,
                "attempt": job.retry_count + 1,
            },
        )

        try:
            deleted = self.blob_store.delete_asset(job.external_blob_id, job.kind)
        except Exception as e:
            logger.error(
                "Exception during blob cleanup",
                extra={"job_id": job.pk, "external_blob_id": job.external_blob_id},
                exc_info=True,
            )
            return self.record_failure(job, str(e) or e.__class__.__name__)

        if deleted:
            return self.mark_completed(job)
        return self.record_failure(job, "Blob store delete returned false")

    def mark_completed(self, job: CleanupJob) -> CleanupJob:
        job.status = CleanupJob.Status.COMPLETED
        job.save(update_fields=["status", "updated_at"])
        logger.info(
            "Blob cleanup completed",
            extra={"job_id": job.pk, "external_blob_id": job.external_blob_id},
        )
        return job

    def record_failure(
        self, job: CleanupJob, error: str, now: datetime | None = None
    ) -> CleanupJob:
        """
        Count a failed attempt and either reschedule or give up.

        The job is marked failed once retry_count reaches max_retries.
        """
        now = now or timezone.now()
        job.retry_count += 1
        job.last_error = error

        if job.retry_count >= self.max_retries:
            job.status = CleanupJob.Status.FAILED
            job.save(update_fields=["retry_count", "last_error", "status", "updated_at"])
            logger.error(
                "Blob cleanup permanently failed; manual reconciliation required",
                extra={
                    "job_id": job.pk,
                    "external_blob_id": job.external_blob_id,
                    "retry_count": job.retry_count,
                    "last_error": error,
                },
            )
            return job

        job.next_retry_at = now + backoff_delay(job.retry_count)
        job.save(update_fields=["retry_count", "last_error", "next_retry_at", "updated_at"])
        logger.warning(
            "Blob cleanup failed; retry scheduled",
            extra={
                "job_id": job.pk,
                "external_blob_id": job.external_blob_id,
                "retry_count": job.retry_count,
                "next_retry_at": job.next_retry_at.isoformat(),
                "last_error": error,
            },
        )
        return job

    # =========================================================================
    # Reporting and housekeeping
    # =========================================================================

    def stats(self) -> CleanupQueueStats:
        totals = CleanupJob.objects.aggregate(
            pending=Count("id", filter=Q(status=CleanupJob.Status.PENDING)),
            completed=Count("id", filter=Q(status=CleanupJob.Status.COMPLETED)),
            failed=Count("id", filter=Q(status=CleanupJob.Status.FAILED)),
            oldest_pending=Min("created_at", filter=Q(status=CleanupJob.Status.PENDING)),
        )
        return CleanupQueueStats(
            pending=totals["pending"],
            completed=totals["completed"],
            failed=totals["failed"],
            oldest_pending=totals["oldest_pending"],
        )

    def purge_finished(self, older_than_days: int = 30) -> int:
        """Delete completed and failed jobs last touched before the cutoff."""
        cutoff = timezone.now() - timedelta(days=older_than_days)
        deleted, _ = CleanupJob.objects.filter(
            status__in=[CleanupJob.Status.COMPLETED, CleanupJob.Status.FAILED],
            updated_at__lt=cutoff,
        ).delete()
        if deleted:
            logger.info(
                "Purged finished cleanup jobs",
                extra={"deleted": deleted, "older_than_days": older_than_days},
            )
        return deleted
