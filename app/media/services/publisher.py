"""
Atomic publishing of an album's metadata diff.

A client edits an album offline (deletes, reorders, cover changes, title)
and submits the whole diff at once. Every mutation is applied in one
durable transaction: either the album ends up exactly as the client sees
it, or nothing changes. A partial application would corrupt the ordering
or leave the album with zero or two main images.

Steps:
    1. Validate and group the changes (delete / reorder / updateMainImage)
    2. Fetch the blob ids of the assets about to be deleted
    3. In one batch: lock album, deletes, display orders, main image flags, title
    4. After commit, schedule blob cleanup for every deleted asset

Blob cleanup scheduling failures are logged only; the rows are already gone
and the blobs are merely orphaned.

Usage:
    publisher = BatchPublisher(catalog, cleanup_queue)
    result = publisher.publish_metadata_changes(
        album_id=42,
        changes=[
            {"change_type": "delete", "media_id": 7},
            {"change_type": "reorder", "media_id": 8, "new_display_order": 0},
            {"change_type": "updateMainImage", "media_id": 8, "is_main_image": True},
        ],
        album_title="Summer",
    )
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING

from django.db import DatabaseError

from core.services import BaseService, ServiceResult
from media.exceptions import (
    CleanupSchedulingError,
    MediaNotFoundError,
    MediaValidationError,
    PublishFailedError,
)
from media.services.catalog import BatchStatementError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from typing import Any

    from media.services.catalog import MediaCatalogRepository
    from media.services.cleanup_queue import CleanupJobQueue


class ChangeType:
    """Kinds of change a metadata diff may contain."""

    DELETE = "delete"
    REORDER = "reorder"
    UPDATE_MAIN_IMAGE = "updateMainImage"

    ALL = (DELETE, REORDER, UPDATE_MAIN_IMAGE)


@dataclass(frozen=True)
class MetadataChange:
    """One entry of a metadata diff."""

    change_type: str
    media_id: int
    new_display_order: int | None = None
    is_main_image: bool | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> MetadataChange:
        """
        Build and validate a change from request data.

        Raises:
            MediaValidationError: Unknown type or missing field.
        """
        change_type = data.get("change_type")
        if change_type not in ChangeType.ALL:
            raise MediaValidationError(
                f"Unknown change type: {change_type!r}",
                error_code="INVALID_CHANGE",
                details={"change_type": change_type},
            )

        media_id = data.get("media_id")
        if media_id is None or isinstance(media_id, bool):
            raise MediaValidationError(
                "media_id is required for every change",
                error_code="INVALID_CHANGE",
                details={"change_type": change_type},
            )
        try:
            media_id = int(media_id)
        except (TypeError, ValueError):
            raise MediaValidationError(
                f"Invalid media_id: {media_id!r}",
                error_code="INVALID_CHANGE",
            ) from None

        change = cls(
            change_type=change_type,
            media_id=media_id,
            new_display_order=data.get("new_display_order"),
            is_main_image=data.get("is_main_image"),
        )
        if change.change_type == ChangeType.REORDER and change.new_display_order is None:
            raise MediaValidationError(
                "new_display_order is required for reorder",
                error_code="INVALID_CHANGE",
                details={"media_id": media_id},
            )
        if change.change_type == ChangeType.UPDATE_MAIN_IMAGE and change.is_main_image is None:
            raise MediaValidationError(
                "is_main_image is required for updateMainImage",
                error_code="INVALID_CHANGE",
                details={"media_id": media_id},
            )
        return change


@dataclass
class PublishSummary:
    """What a successful publish applied."""

    album_id: int
    changes_applied: int
    deleted: int
    reordered: int
    main_image_updates: int
    title_updated: bool
    cleanup_jobs_scheduled: int
    message: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class BatchPublisher(BaseService):
    """Apply a metadata diff to one album as a single transaction."""

    def __init__(self, catalog: MediaCatalogRepository, cleanup_queue: CleanupJobQueue):
        self.catalog = catalog
        self.cleanup_queue = cleanup_queue

    def publish_metadata_changes(
        self,
        album_id: int,
        changes: Iterable[MetadataChange | Mapping[str, Any]],
        album_title: str | None = None,
    ) -> ServiceResult[PublishSummary]:
        """
        Publish a diff. Nothing is applied unless everything is.

        Returns:
            ServiceResult with a PublishSummary, or METADATA_PUBLISH_FAILED
            (500) when the batch was rolled back.
        """
        logger = self.get_logger()

        try:
            parsed = [
                c if isinstance(c, MetadataChange) else MetadataChange.from_mapping(c)
                for c in changes
            ]
        except MediaValidationError as e:
            return ServiceResult.from_error(e)

        if self.catalog.get_album(album_id) is None:
            return ServiceResult.from_error(
                MediaNotFoundError(
                    f"Album {album_id} not found",
                    error_code="ALBUM_NOT_FOUND",
                )
            )

        deletes = [c for c in parsed if c.change_type == ChangeType.DELETE]
        reorders = [c for c in parsed if c.change_type == ChangeType.REORDER]
        main_updates = [c for c in parsed if c.change_type == ChangeType.UPDATE_MAIN_IMAGE]

        logger.info(
            "Starting album publish",
            extra={
                "album_id": album_id,
                "change_count": len(parsed),
                "deletes": len(deletes),
                "reorders": len(reorders),
                "main_image_updates": len(main_updates),
            },
        )

        cleanup_targets = self.catalog.blob_ids_for(album_id, [c.media_id for c in deletes])

        try:
            with self.atomic():
                self.catalog.lock_album(album_id)
                for change in deletes:
                    self.catalog.delete_in_album(album_id, change.media_id)
                for change in reorders:
                    self.catalog.set_display_order(
                        album_id, change.media_id, change.new_display_order
                    )
                for change in main_updates:
                    self.catalog.set_main_image(
                        album_id, change.media_id, bool(change.is_main_image)
                    )
                if album_title:
                    self.catalog.set_album_title(album_id, album_title)
        except (BatchStatementError, DatabaseError) as e:
            logger.error(
                "Failed to publish album metadata; batch rolled back",
                extra={"album_id": album_id, "error": str(e)},
            )
            return ServiceResult.from_error(
                PublishFailedError(f"Failed to publish album: {e}")
            )

        scheduled = 0
        for _media_id, external_blob_id, kind in cleanup_targets:
            try:
                self.cleanup_queue.schedule(external_blob_id, kind)
                scheduled += 1
            except CleanupSchedulingError as e:
                logger.warning(
                    "Failed to schedule blob cleanup after publish",
                    extra={"external_blob_id": external_blob_id, "error": str(e)},
                )

        summary = PublishSummary(
            album_id=album_id,
            changes_applied=len(parsed),
            deleted=len(deletes),
            reordered=len(reorders),
            main_image_updates=len(main_updates),
            title_updated=bool(album_title),
            cleanup_jobs_scheduled=scheduled,
            message=f"Successfully published {len(parsed)} metadata changes",
        )
        logger.info(
            "Published album metadata",
            extra={
                "album_id": album_id,
                "changes_applied": summary.changes_applied,
                "cleanup_jobs_scheduled": scheduled,
            },
        )
        return ServiceResult.success(summary)
