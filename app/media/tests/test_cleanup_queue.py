"""
Tests for CleanupJobQueue.

Tests cover:
- Scheduling is idempotent per blob id and first due after one minute
- Successful deletion completes the job
- Backoff ladder 1m, 5m, 15m, 1h, 6h and failure on the 6th attempt
- Exceptions from the blob store count as failures
- Due-job selection, statistics and purging
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from django.utils import timezone
from freezegun import freeze_time

from media.models import CleanupJob
from media.services.cleanup_queue import BACKOFF_MINUTES, CleanupJobQueue, backoff_delay
from media.tests.factories import CleanupJobFactory


class TestBackoffDelay:
    """Test the retry ladder."""

    @pytest.mark.parametrize(
        ("retry_count", "minutes"),
        [(0, 1), (1, 1), (2, 5), (3, 15), (4, 60), (5, 360), (6, 1440), (10, 1440)],
    )
    def test_ladder(self, retry_count, minutes):
        assert backoff_delay(retry_count) == timedelta(minutes=minutes)

    def test_ladder_values(self):
        assert BACKOFF_MINUTES == (1, 5, 15, 60, 360, 1440)


@pytest.mark.django_db
class TestSchedule:
    """Test job creation."""

    @freeze_time("2024-06-01 12:00:00")
    def test_creates_pending_job_due_in_one_minute(self, cleanup_queue):
        job = cleanup_queue.schedule("blob-1", "image")

        assert job.status == CleanupJob.Status.PENDING
        assert job.retry_count == 0
        assert job.next_retry_at == timezone.now() + timedelta(minutes=1)

    def test_duplicate_returns_existing_job(self, cleanup_queue):
        first = cleanup_queue.schedule("blob-1", "image")
        second = cleanup_queue.schedule("blob-1", "image")

        assert first.pk == second.pk
        assert CleanupJob.objects.count() == 1

    def test_duplicate_of_finished_job_is_not_reopened(self, cleanup_queue):
        job = CleanupJobFactory(external_blob_id="blob-done", status=CleanupJob.Status.COMPLETED)

        again = cleanup_queue.schedule("blob-done", "image")

        assert again.pk == job.pk
        assert again.status == CleanupJob.Status.COMPLETED


@pytest.mark.django_db
class TestProcessing:
    """Test attempts against the blob store."""

    def test_success_completes_job(self, cleanup_queue, blob_store):
        job = CleanupJobFactory(external_blob_id="blob-ok", kind="video")

        cleanup_queue.process_job(job)

        job.refresh_from_db()
        assert job.status == CleanupJob.Status.COMPLETED
        assert blob_store.deleted == [("blob-ok", "video")]

    def test_false_from_blob_store_schedules_retry(self, cleanup_queue, blob_store):
        blob_store.delete_results = [False]
        job = CleanupJobFactory()

        with freeze_time("2024-06-01 12:00:00"):
            cleanup_queue.process_job(job)

            job.refresh_from_db()
            assert job.status == CleanupJob.Status.PENDING
            assert job.retry_count == 1
            assert job.last_error == "Blob store delete returned false"
            assert job.next_retry_at == timezone.now() + timedelta(minutes=1)

    def test_exception_from_blob_store_counts_as_failure(self, cleanup_queue, blob_store):
        blob_store.delete_results = [ConnectionError("network down")]
        job = CleanupJobFactory()

        cleanup_queue.process_job(job)

        job.refresh_from_db()
        assert job.retry_count == 1
        assert job.last_error == "network down"

    def test_full_ladder_then_permanent_failure(self, cleanup_queue, blob_store):
        blob_store.delete_results = [False] * 6
        expected_delays = [1, 5, 15, 60, 360]

        with freeze_time("2024-06-01 00:00:00") as frozen:
            job = CleanupJobFactory(next_retry_at=timezone.now())

            for attempt, minutes in enumerate(expected_delays, start=1):
                report = cleanup_queue.process_due()
                assert report.retried == 1

                job.refresh_from_db()
                assert job.retry_count == attempt
                assert job.status == CleanupJob.Status.PENDING
                assert job.next_retry_at == timezone.now() + timedelta(minutes=minutes)

                # Not due yet one second before the delay elapses
                frozen.tick(timedelta(minutes=minutes) - timedelta(seconds=1))
                assert cleanup_queue.due_jobs() == []
                frozen.tick(timedelta(seconds=1))

            report = cleanup_queue.process_due()

        job.refresh_from_db()
        assert report.failed == 1
        assert job.retry_count == 6
        assert job.status == CleanupJob.Status.FAILED
        assert len(blob_store.deleted) == 6

    def test_failed_jobs_are_never_attempted_again(self, cleanup_queue, blob_store):
        CleanupJobFactory(status=CleanupJob.Status.FAILED, retry_count=6)

        report = cleanup_queue.process_due()

        assert report.processed == 0
        assert blob_store.deleted == []

    def test_raised_retry_limit_uses_day_delay(self, blob_store):
        queue = CleanupJobQueue(blob_store, max_retries=8)
        job = CleanupJobFactory(retry_count=5)

        with freeze_time("2024-06-01 12:00:00"):
            queue.record_failure(job, "still failing")
            assert job.next_retry_at == timezone.now() + timedelta(minutes=1440)


@pytest.mark.django_db
class TestDueJobs:
    """Test selection of due jobs."""

    def test_only_due_pending_jobs_oldest_first(self, cleanup_queue):
        now = timezone.now()
        older = CleanupJobFactory(next_retry_at=now - timedelta(minutes=5))
        newer = CleanupJobFactory(next_retry_at=now - timedelta(minutes=1))
        CleanupJobFactory(next_retry_at=now + timedelta(minutes=5))
        CleanupJobFactory(status=CleanupJob.Status.COMPLETED, next_retry_at=now - timedelta(hours=1))

        assert cleanup_queue.due_jobs(now) == [older, newer]

    def test_batch_size_bounds_a_tick(self, blob_store):
        queue = CleanupJobQueue(blob_store, batch_size=2)
        CleanupJobFactory.create_batch(3)

        report = queue.process_due()

        assert report.processed == 2
        assert CleanupJob.objects.filter(status=CleanupJob.Status.PENDING).count() == 1


@pytest.mark.django_db
class TestStatsAndPurge:
    """Test monitoring and housekeeping."""

    def test_stats_counts_by_status(self, cleanup_queue):
        pending = CleanupJobFactory()
        CleanupJobFactory(status=CleanupJob.Status.COMPLETED)
        CleanupJobFactory.create_batch(2, status=CleanupJob.Status.FAILED)

        stats = cleanup_queue.stats()

        assert (stats.pending, stats.completed, stats.failed) == (1, 1, 2)
        assert stats.oldest_pending == pending.created_at

    def test_stats_on_empty_queue(self, cleanup_queue):
        assert cleanup_queue.stats().to_dict() == {
            "pending": 0,
            "completed": 0,
            "failed": 0,
            "oldest_pending": None,
        }

    def test_purge_removes_only_old_finished_jobs(self, cleanup_queue):
        with freeze_time("2024-01-01 00:00:00"):
            old_done = CleanupJobFactory(status=CleanupJob.Status.COMPLETED)
            old_failed = CleanupJobFactory(status=CleanupJob.Status.FAILED)
            old_pending = CleanupJobFactory()
        recent_done = CleanupJobFactory(status=CleanupJob.Status.COMPLETED)

        deleted = cleanup_queue.purge_finished(older_than_days=30)

        assert deleted == 2
        remaining = set(CleanupJob.objects.values_list("pk", flat=True))
        assert remaining == {old_pending.pk, recent_done.pk}
        assert old_done.pk not in remaining and old_failed.pk not in remaining
