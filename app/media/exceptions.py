"""
Media-specific exceptions for the upload, publish and cleanup lifecycle.

Each class fixes the HTTP status the boundary answers with; services convert
them to ServiceResult via ServiceResult.from_error().

Exception Hierarchy:
    MediaError (base for media domain)
    ├── MediaValidationError - Malformed upload or change list (400)
    │   └── QuotaExceededError - Album tier limit hit (400)
    ├── MediaNotFoundError - Album or asset lookup failures (404)
    ├── ModerationRejectedError - Content rejected by moderation (400)
    ├── ModerationUnavailableError - Moderation service failed (502)
    ├── UploadFailedError - Blob store refused the upload (502)
    ├── CatalogWriteError - Catalog insert failed after upload (500)
    ├── PublishFailedError - Metadata batch aborted (500)
    └── CleanupSchedulingError - Cleanup job could not be recorded (logged only)

Usage:
    from media.exceptions import QuotaExceededError

    raise QuotaExceededError(
        "Image limit reached for this album",
        error_code=QuotaExceededError.UPGRADE_REQUIRED,
        details={"limit": 50, "current": 50},
    )
"""

from __future__ import annotations

from core.exceptions import (
    BaseApplicationError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)


class MediaError(BaseApplicationError):
    """Base exception for all media lifecycle operations."""

    default_error_code = "MEDIA_ERROR"


class MediaValidationError(MediaError, ValidationError):
    """
    Raised when an upload or change list is malformed.

    Codes: NO_FILE, INVALID_ALBUM, IMAGE_TOO_LARGE, VIDEO_TOO_LARGE,
    INVALID_CHANGE, NO_UPDATES.
    """

    default_error_code = "MEDIA_VALIDATION_ERROR"


class QuotaExceededError(MediaValidationError):
    """
    Raised when an upload would exceed the album's storage tier.

    UPGRADE_REQUIRED tells a base-tier client that upgrading helps;
    TIER_LIMIT means the album is already upgraded. VIDEO_TOO_LONG is
    raised for a single video longer than the whole allowance.
    """

    UPGRADE_REQUIRED = "UPGRADE_REQUIRED"
    TIER_LIMIT = "TIER_LIMIT"
    VIDEO_TOO_LONG = "VIDEO_TOO_LONG"

    default_error_code = TIER_LIMIT


class MediaNotFoundError(MediaError, NotFoundError):
    """Raised when an album or asset does not exist."""

    default_error_code = "MEDIA_NOT_FOUND"


class ModerationRejectedError(MediaError):
    """
    Raised when moderation refuses the content.

    MODERATION_COMPRESSION_FAILED marks a file that could not be shrunk for
    the single "image too large" retry, as opposed to a content verdict.
    """

    default_error_code = "MODERATION_REJECTED"
    http_status = 400


class ModerationUnavailableError(MediaError, ExternalServiceError):
    """Raised when the moderation service cannot give a verdict."""

    default_error_code = "MODERATION_UNAVAILABLE"


class UploadFailedError(MediaError, ExternalServiceError):
    """Raised when the blob store refuses or fails an upload."""

    default_error_code = "UPLOAD_FAILED"


class CatalogWriteError(MediaError):
    """Raised when the catalog row cannot be written after a blob upload."""

    default_error_code = "CATALOG_WRITE_FAILED"
    http_status = 500


class PublishFailedError(MediaError):
    """Raised when a metadata batch is aborted and rolled back."""

    default_error_code = "METADATA_PUBLISH_FAILED"
    http_status = 500


class CleanupSchedulingError(MediaError):
    """Raised when a cleanup job cannot be recorded. Never reaches clients."""

    default_error_code = "CLEANUP_SCHEDULING_FAILED"
    http_status = 500
