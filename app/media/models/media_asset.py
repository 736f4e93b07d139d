"""
MediaAsset model: the catalog row for one uploaded image or video.

The bytes live in the external blob store (Cloudflare Images or Stream);
this row holds the delivery URLs and the album-level presentation state.

Invariants:
- external_blob_id is unique across all assets
- at most one asset per album has is_main_image=True, enforced by a partial
  unique constraint and by the unset-then-set swap in one atomic batch
"""

from __future__ import annotations

from django.db import models
from django.db.models import Q

from core.models import BaseModel


class MediaAsset(BaseModel):
    """
    Image or video attached to an album.

    Attributes:
        album: Album this asset belongs to.
        external_blob_id: Identifier of the bytes in the blob store.
        kind: image or video.
        url: Delivery URL.
        thumbnail_url: Thumbnail delivery URL, if the store provides one.
        file_name: Original client file name.
        is_main_image: Whether this is the album's cover.
        display_order: Position in the album, ascending.
        duration_seconds: Video length; None for images.

    Note:
        Main assets do not count against the album's storage quota.
    """

    # =========================================================================
    # Enums
    # =========================================================================

    class Kind(models.TextChoices):
        """Media kinds the blob store accepts."""

        IMAGE = "image", "Image"
        VIDEO = "video", "Video"

    # =========================================================================
    # Fields
    # =========================================================================

    album = models.ForeignKey(
        "media.Album",
        on_delete=models.CASCADE,
        related_name="media_assets",
        help_text="Album this asset belongs to",
    )

    external_blob_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Identifier of the stored bytes in the blob store",
    )

    kind = models.CharField(
        max_length=10,
        choices=Kind.choices,
        help_text="Image or video",
    )

    url = models.URLField(
        max_length=500,
        help_text="Delivery URL for the asset",
    )

    thumbnail_url = models.URLField(
        max_length=500,
        null=True,
        blank=True,
        help_text="Thumbnail delivery URL",
    )

    file_name = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Original file name supplied by the client",
    )

    is_main_image = models.BooleanField(
        default=False,
        help_text="Whether this asset is the album cover",
    )

    display_order = models.IntegerField(
        default=0,
        help_text="Position within the album (ascending)",
    )

    duration_seconds = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Video duration in seconds",
    )

    # =========================================================================
    # Meta
    # =========================================================================

    class Meta:
        """Model metadata."""

        verbose_name = "Media Asset"
        verbose_name_plural = "Media Assets"
        ordering = ["display_order", "-created_at"]

        constraints = [
            models.UniqueConstraint(
                fields=["album"],
                condition=Q(is_main_image=True),
                name="unique_main_image_per_album",
            ),
        ]

        indexes = [
            models.Index(
                fields=["album", "display_order"],
                name="idx_asset_album_order",
            ),
        ]

    def __str__(self) -> str:
        """Return string representation."""
        return f"{self.kind} {self.external_blob_id} in album {self.album_id}"
