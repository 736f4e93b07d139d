"""
CleanupJob model: a durable request to delete an orphaned blob.

Jobs are created when a blob exists without a catalog row, either because
the catalog write failed after a successful upload or because the row was
deleted. The Celery beat processor is the only writer after creation.

State machine:
    pending --delete ok--> completed
    pending --delete fails, retries left--> pending (next_retry_at pushed back)
    pending --delete fails, retries exhausted--> failed

completed and failed are terminal. A failed job needs manual reconciliation.
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel
from media.models.media_asset import MediaAsset


class CleanupJob(BaseModel):
    """
    Pending blob deletion with retry bookkeeping.

    Attributes:
        external_blob_id: Blob to delete, unique so creation is idempotent.
        kind: image or video, selects the blob store endpoint.
        retry_count: Failed attempts so far.
        next_retry_at: Earliest time the processor may attempt deletion.
        last_error: Message from the most recent failed attempt.
        status: pending, completed or failed.
    """

    class Status(models.TextChoices):
        """Job lifecycle states."""

        PENDING = "pending", "Pending"
        COMPLETED = "completed", "Completed"
        FAILED = "failed", "Failed"

    external_blob_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Blob store identifier to delete",
    )

    kind = models.CharField(
        max_length=10,
        choices=MediaAsset.Kind.choices,
        help_text="Image or video",
    )

    retry_count = models.PositiveIntegerField(
        default=0,
        help_text="Number of failed deletion attempts",
    )

    next_retry_at = models.DateTimeField(
        help_text="Earliest time of the next deletion attempt",
    )

    last_error = models.TextField(
        null=True,
        blank=True,
        help_text="Error from the most recent failed attempt",
    )

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        help_text="Lifecycle state",
    )

    class Meta:
        """Model metadata."""

        verbose_name = "Cleanup Job"
        verbose_name_plural = "Cleanup Jobs"
        ordering = ["created_at"]

        indexes = [
            models.Index(
                fields=["status", "next_retry_at"],
                name="idx_cleanup_due",
            ),
        ]

    def __str__(self) -> str:
        """Return string representation."""
        return f"Cleanup {self.kind} {self.external_blob_id} ({self.status})"
