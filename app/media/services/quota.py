"""
Storage quota enforcement per album tier.

Quota is checked before any network call, so a rejected upload costs one
aggregate query and nothing else. The check is read-then-decide: two
concurrent uploads can both pass against the same count. That overshoot is
accepted; the main-image invariant, not the quota, is the strict one.

Rules (main assets never count):
    video  - longer than the tier's whole allowance on its own: VIDEO_TOO_LONG
           - existing + proposed seconds > allowance: UPGRADE_REQUIRED / TIER_LIMIT
    image  - existing count >= image limit: UPGRADE_REQUIRED / TIER_LIMIT

UPGRADE_REQUIRED is reported on the base tier, TIER_LIMIT on upgraded.

Usage:
    validator = QuotaValidator(settings.MEDIA_STORAGE_LIMITS)
    validator.check(album, MediaAsset.Kind.IMAGE)  # raises QuotaExceededError
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING

from django.db.models import Count, Q, Sum

from media.exceptions import QuotaExceededError
from media.models import Album, MediaAsset

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_LIMITS = {
    Album.StorageTier.BASE: {"image_limit": 50, "video_seconds_limit": 60},
    Album.StorageTier.UPGRADED: {"image_limit": 100, "video_seconds_limit": 120},
}


@dataclass(frozen=True)
class TierLimits:
    """Thresholds for one storage tier."""

    image_limit: int
    video_seconds_limit: int


@dataclass(frozen=True)
class QuotaUsage:
    """Current non-main usage of an album."""

    image_count: int
    video_seconds: int


@dataclass(frozen=True)
class QuotaSnapshot:
    """Data a client needs to pre-validate uploads."""

    album_id: int
    storage_tier: str
    image_count: int
    video_seconds: int
    image_limit: int
    video_seconds_limit: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class QuotaValidator:
    """Decide whether an album can take one more image or video."""

    def __init__(self, limits: dict[str, dict[str, int]] | None = None):
        """
        Args:
            limits: Mapping of tier to {"image_limit", "video_seconds_limit"},
                usually settings.MEDIA_STORAGE_LIMITS.
        """
        self.limits = {
            tier: TierLimits(**values)
            for tier, values in (limits or DEFAULT_LIMITS).items()
        }

    def limits_for(self, album: Album) -> TierLimits:
        return self.limits[album.storage_tier]

    def usage(self, album: Album) -> QuotaUsage:
        """Count non-main images and sum non-main video seconds."""
        totals = MediaAsset.objects.filter(album=album, is_main_image=False).aggregate(
            image_count=Count("id", filter=Q(kind=MediaAsset.Kind.IMAGE)),
            video_seconds=Sum("duration_seconds", filter=Q(kind=MediaAsset.Kind.VIDEO)),
        )
        return QuotaUsage(
            image_count=totals["image_count"] or 0,
            video_seconds=totals["video_seconds"] or 0,
        )

    def check(
        self,
        album: Album,
        kind: str,
        duration_seconds: int | None = None,
    ) -> None:
        """
        Raise if adding one asset of ``kind`` would exceed the album's tier.

        Raises:
            QuotaExceededError: With VIDEO_TOO_LONG, UPGRADE_REQUIRED or TIER_LIMIT.
        """
        limits = self.limits_for(album)
        usage = self.usage(album)
        limit_code = (
            QuotaExceededError.TIER_LIMIT
            if album.is_upgraded
            else QuotaExceededError.UPGRADE_REQUIRED
        )

        if kind == MediaAsset.Kind.VIDEO:
            proposed = duration_seconds or 0
            if proposed > limits.video_seconds_limit:
                raise QuotaExceededError(
                    f"Video is longer than the {limits.video_seconds_limit} second limit",
                    error_code=QuotaExceededError.VIDEO_TOO_LONG,
                    details={
                        "duration_seconds": proposed,
                        "limit": limits.video_seconds_limit,
                    },
                )
            if usage.video_seconds + proposed > limits.video_seconds_limit:
                logger.info(
                    "Video quota exceeded",
                    extra={
                        "album_id": album.pk,
                        "used_seconds": usage.video_seconds,
                        "proposed_seconds": proposed,
                    },
                )
                raise QuotaExceededError(
                    "Video time limit reached for this album",
                    error_code=limit_code,
                    details={
                        "used_seconds": usage.video_seconds,
                        "proposed_seconds": proposed,
                        "limit": limits.video_seconds_limit,
                    },
                )
            return

        if usage.image_count >= limits.image_limit:
            logger.info(
                "Image quota exceeded",
                extra={"album_id": album.pk, "image_count": usage.image_count},
            )
            raise QuotaExceededError(
                "Image limit reached for this album",
                error_code=limit_code,
                details={"current": usage.image_count, "limit": limits.image_limit},
            )

    def snapshot(self, album: Album) -> QuotaSnapshot:
        """Return usage and limits for client-side pre-validation."""
        limits = self.limits_for(album)
        usage = self.usage(album)
        return QuotaSnapshot(
            album_id=album.pk,
            storage_tier=album.storage_tier,
            image_count=usage.image_count,
            video_seconds=usage.video_seconds,
            image_limit=limits.image_limit,
            video_seconds_limit=limits.video_seconds_limit,
        )
