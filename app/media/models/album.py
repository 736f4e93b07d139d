"""
Album model: the container media assets belong to.

Only an album's identity and storage tier matter to the media lifecycle.
The tier picks the quota thresholds from settings.MEDIA_STORAGE_LIMITS.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel


class Album(BaseModel):
    """
    Logical album that owns an ordered set of media assets.

    Attributes:
        title: Display title, editable through metadata publishing.
        storage_tier: Quota tier (base or upgraded).
        owner: User allowed to modify the album through the API.
        sealed_at: When the album was locked by its owner, if ever.

    Example:
        >>> album = Album.objects.create(title="Trip", storage_tier=Album.StorageTier.BASE)
        >>> album.is_upgraded
        False
    """

    class StorageTier(models.TextChoices):
        """Quota tiers."""

        BASE = "base", "Base"
        UPGRADED = "upgraded", "Upgraded"

    title = models.CharField(
        max_length=200,
        blank=True,
        default="",
        help_text="Display title of the album",
    )

    storage_tier = models.CharField(
        max_length=20,
        choices=StorageTier.choices,
        default=StorageTier.BASE,
        help_text="Quota tier applied to uploads",
    )

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="albums",
        help_text="User who owns this album",
    )

    sealed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the album was sealed by its owner",
    )

    class Meta:
        """Model metadata."""

        verbose_name = "Album"
        verbose_name_plural = "Albums"
        ordering = ["-created_at"]

    def __str__(self) -> str:
        """Return string representation."""
        return self.title or f"Album {self.pk}"

    @property
    def is_upgraded(self) -> bool:
        return self.storage_tier == self.StorageTier.UPGRADED
