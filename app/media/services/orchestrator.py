"""
Media lifecycle orchestration: upload, delete and reorder.

The catalog (database) and the blob store (Cloudflare) fail independently
and there is no transaction spanning both. The orchestrator keeps them
consistent by ordering the steps so that the only possible inconsistency
is an orphaned blob, and by recording a cleanup job for every orphan.

Upload sequence:
    1. Validate shape (file, album, size ceiling)      -> 400 / 404
    2. Quota check                                      -> 400, no network call made
    3. Moderation                                       -> 400 / 502
    4. Blob upload                                      -> 502, nothing to compensate
    5. Catalog insert                                   -> 500, blob is orphaned:
         schedule a cleanup job (CRITICAL log if even that fails)
    6. Return the persisted asset                       -> 201

Deletion sequence:
    Row first, then a cleanup job for the blob. The blob may outlive its
    row for a while; a row never points at a deleted blob.

Usage:
    services = get_media_services()
    result = services.orchestrator.upload_single_media(
        album_id=42,
        payload=MediaPayload.from_upload(request.FILES["file"]),
        display_order=3,
    )
    if result:
        asset = result.data
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.db import DatabaseError

from core.services import BaseService, ServiceResult
from media.exceptions import (
    CatalogWriteError,
    CleanupSchedulingError,
    MediaNotFoundError,
    MediaValidationError,
    ModerationRejectedError,
    ModerationUnavailableError,
    UploadFailedError,
)
from media.models import MediaAsset
from media.services.catalog import BatchStatementError
from media.services.moderation import ModerationStatus

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from typing import Any

    from media.models import Album
    from media.services.blob_store import BlobStoreClient
    from media.services.catalog import MediaCatalogRepository
    from media.services.cleanup_queue import CleanupJobQueue
    from media.services.moderation import ModerationGateway
    from media.services.payload import MediaPayload
    from media.services.quota import QuotaValidator

DEFAULT_MAX_IMAGE_BYTES = 15 * 1024 * 1024
DEFAULT_MAX_VIDEO_BYTES = 100 * 1024 * 1024


@dataclass(frozen=True)
class ReorderUpdate:
    """New display order for one asset."""

    media_id: int
    display_order: int

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ReorderUpdate:
        """
        Build an update from request data.

        Raises:
            MediaValidationError: Missing or non-integer field.
        """
        try:
            media_id = data["media_id"]
            display_order = data["display_order"]
            if isinstance(media_id, bool) or isinstance(display_order, bool):
                raise TypeError("booleans are not ids")
            return cls(media_id=int(media_id), display_order=int(display_order))
        except (KeyError, TypeError, ValueError) as e:
            raise MediaValidationError(
                f"Invalid reorder update: {data!r}",
                error_code="INVALID_REQUEST",
                details={"reason": str(e)},
            ) from None


class MediaLifecycleOrchestrator(BaseService):
    """
    Entry points for uploading, deleting and reordering album media.

    None of the operations raise for expected failures: every outcome is a
    ServiceResult carrying (error_code, error, status_code).
    """

    def __init__(
        self,
        quota: QuotaValidator,
        moderation: ModerationGateway,
        blob_store: BlobStoreClient,
        catalog: MediaCatalogRepository,
        cleanup_queue: CleanupJobQueue,
        max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
        max_video_bytes: int = DEFAULT_MAX_VIDEO_BYTES,
    ):
        self.quota = quota
        self.moderation = moderation
        self.blob_store = blob_store
        self.catalog = catalog
        self.cleanup_queue = cleanup_queue
        self.max_image_bytes = max_image_bytes
        self.max_video_bytes = max_video_bytes

    # =========================================================================
    # Upload
    # =========================================================================

    def upload_single_media(
        self,
        album_id: Any,
        payload: MediaPayload | None,
        display_order: int = 0,
        is_main_image: bool = False,
        duration_seconds: int | None = None,
    ) -> ServiceResult[MediaAsset]:
        """
        Validate, moderate, upload and catalog one image or video.

        Args:
            album_id: Target album (int or numeric string).
            payload: File bytes; None when the request carried no file.
            display_order: Position within the album.
            is_main_image: Make this the album cover, unsetting any other.
            duration_seconds: Client-reported video length, used for the
                quota check and stored when Stream reports none.

        Returns:
            ServiceResult with the created MediaAsset (status 201).
        """
        logger = self.get_logger()

        try:
            album = self._validate_upload(album_id, payload)
            kind = MediaAsset.Kind.VIDEO if payload.is_video else MediaAsset.Kind.IMAGE
            self.quota.check(album, kind, duration_seconds)
        except (MediaValidationError, MediaNotFoundError) as e:
            logger.info(
                "Upload rejected",
                extra={"album_id": album_id, "error_code": e.error_code},
            )
            return ServiceResult.from_error(e)
        except DatabaseError as e:
            return self.handle_exception(
                e,
                context=f"Quota check for album {album_id}",
                error_code="VALIDATION_FAILED",
            )

        payload = payload.load()
        moderation = self.moderation.moderate(payload)
        if moderation.status == ModerationStatus.UNAVAILABLE:
            return ServiceResult.from_error(
                ModerationUnavailableError(moderation.reason or "Moderation service error")
            )
        if moderation.status == ModerationStatus.COMPRESSION_FAILED:
            return ServiceResult.from_error(
                ModerationRejectedError(
                    moderation.reason or "Unable to compress image for moderation",
                    error_code="MODERATION_COMPRESSION_FAILED",
                )
            )
        if not moderation.approved:
            logger.info(
                "Upload rejected by moderation",
                extra={"album_id": album.pk, "scores": moderation.scores},
            )
            return ServiceResult.from_error(
                ModerationRejectedError(moderation.reason or "Content rejected")
            )
        if moderation.compressed:
            logger.info(
                "Moderation used compression; uploading original",
                extra={
                    "original_bytes": payload.size,
                    "compressed_bytes": moderation.compressed_payload.size,
                },
            )

        if kind == MediaAsset.Kind.VIDEO:
            upload = self.blob_store.upload_video(payload)
        else:
            upload = self.blob_store.upload_image(payload)

        if not upload.success or not upload.external_id:
            logger.error(
                "Blob upload failed",
                extra={"album_id": album.pk, "kind": kind, "error": upload.error},
            )
            return ServiceResult.from_error(
                UploadFailedError(upload.error or "Failed to upload media")
            )

        try:
            asset = self.catalog.create(
                album_id=album.pk,
                external_blob_id=upload.external_id,
                kind=kind,
                url=upload.url or "",
                thumbnail_url=upload.thumbnail_url,
                file_name=payload.file_name,
                is_main_image=is_main_image,
                display_order=display_order,
                duration_seconds=(
                    upload.duration_seconds
                    if upload.duration_seconds is not None
                    else duration_seconds
                ),
            )
        except Exception:
            logger.error(
                "Catalog insert failed after blob upload; scheduling cleanup",
                extra={"album_id": album.pk, "external_blob_id": upload.external_id},
                exc_info=True,
            )
            self._compensate_orphan(upload.external_id, kind)
            return ServiceResult.from_error(
                CatalogWriteError("Failed to save media metadata")
            )

        logger.info(
            "Media uploaded",
            extra={"media_id": asset.pk, "album_id": album.pk, "kind": kind},
        )
        return ServiceResult.success(asset, status_code=201)

    def _validate_upload(self, album_id: Any, payload: MediaPayload | None) -> Album:
        if payload is None or payload.size == 0:
            raise MediaValidationError("No file provided", error_code="NO_FILE")

        try:
            album_pk = int(album_id)
        except (TypeError, ValueError):
            album_pk = None
        if album_pk is None or isinstance(album_id, bool) or album_pk <= 0:
            raise MediaValidationError("Invalid album id", error_code="INVALID_ALBUM")

        if payload.is_video and payload.size > self.max_video_bytes:
            raise MediaValidationError(
                f"Video file size exceeds {self.max_video_bytes // (1024 * 1024)}MB limit",
                error_code="VIDEO_TOO_LARGE",
                details={"size": payload.size, "limit": self.max_video_bytes},
            )
        if not payload.is_video and payload.size > self.max_image_bytes:
            raise MediaValidationError(
                f"Image file size exceeds {self.max_image_bytes // (1024 * 1024)}MB limit",
                error_code="IMAGE_TOO_LARGE",
                details={"size": payload.size, "limit": self.max_image_bytes},
            )

        album = self.catalog.get_album(album_pk)
        if album is None:
            raise MediaNotFoundError(
                f"Album {album_pk} not found", error_code="ALBUM_NOT_FOUND"
            )
        return album

    def _compensate_orphan(self, external_blob_id: str, kind: str) -> None:
        try:
            self.cleanup_queue.schedule(external_blob_id, kind)
        except CleanupSchedulingError:
            self.get_logger().critical(
                "Orphaned blob could not be scheduled for cleanup; manual reconciliation required",
                extra={"external_blob_id": external_blob_id, "kind": kind},
                exc_info=True,
            )

    # =========================================================================
    # Delete
    # =========================================================================

    def delete_media(self, media_id: int) -> ServiceResult[bool]:
        """Delete the catalog row, then schedule deletion of its blob."""
        logger = self.get_logger()

        try:
            asset = self.catalog.get(media_id)
            deleted = asset is not None and self.catalog.delete(media_id)
        except DatabaseError as e:
            return self.handle_exception(
                e,
                context=f"Delete media {media_id}",
                error_code="DELETE_FAILED",
            )

        if asset is None:
            return ServiceResult.from_error(
                MediaNotFoundError("Media object not found", error_code="MEDIA_NOT_FOUND")
            )

        if not deleted:
            # Deleted concurrently between the read and the delete
            return ServiceResult.from_error(
                MediaNotFoundError("Media object not found", error_code="MEDIA_NOT_FOUND")
            )

        try:
            self.cleanup_queue.schedule(asset.external_blob_id, asset.kind)
        except CleanupSchedulingError as e:
            logger.warning(
                "Failed to schedule blob cleanup after delete",
                extra={
                    "media_id": media_id,
                    "external_blob_id": asset.external_blob_id,
                    "error": str(e),
                },
            )

        logger.info("Media deleted", extra={"media_id": media_id, "album_id": asset.album_id})
        return ServiceResult.success(True)

    # =========================================================================
    # Reorder
    # =========================================================================

    def batch_reorder(
        self, updates: Iterable[ReorderUpdate | Mapping[str, Any]]
    ) -> ServiceResult[int]:
        """
        Apply display-order updates as one batch.

        Returns:
            ServiceResult with the number of rows updated; INVALID_REQUEST
            (400) for a malformed update, NO_UPDATES (400) for an empty list,
            REORDER_FAILED (500) with nothing applied when any id is missing.
        """
        try:
            normalized = [
                u if isinstance(u, ReorderUpdate) else ReorderUpdate.from_mapping(u)
                for u in updates
            ]
        except MediaValidationError as e:
            return ServiceResult.from_error(e)
        if not normalized:
            return ServiceResult.from_error(
                MediaValidationError("No updates provided", error_code="NO_UPDATES")
            )

        try:
            count = self.catalog.reorder((u.media_id, u.display_order) for u in normalized)
        except (BatchStatementError, DatabaseError) as e:
            self.get_logger().error(
                "Batch reorder rolled back",
                extra={"update_count": len(normalized), "error": str(e)},
            )
            return ServiceResult.failure(
                f"Reorder aborted, no updates applied: {e}",
                error_code="REORDER_FAILED",
                status_code=500,
            )

        self.get_logger().info("Batch reordered media", extra={"count": count})
        return ServiceResult.success(count)
