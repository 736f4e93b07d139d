"""
Relational catalog of media assets.

Single-row reads and writes plus the statements a metadata batch is built
from. Batch statements are scoped to one album and must each touch exactly
one row; anything else raises BatchStatementError, which aborts the
surrounding BaseService.atomic() block so nothing in the batch commits.

Main image swaps lock the album row first (SELECT ... FOR UPDATE), so two
concurrent swaps on the same album serialize and the last one wins. The
partial unique constraint on (album) where is_main_image backs this up at
the database level.

Usage:
    catalog = MediaCatalogRepository()

    asset = catalog.create(album_id=42, external_blob_id="cf-1", kind="image",
                           url="https://...", is_main_image=True)

    with catalog.atomic():
        catalog.lock_album(42)
        catalog.delete_in_album(42, media_id=7)
        catalog.set_display_order(42, media_id=8, display_order=0)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.services import BaseService
from media.models import Album, MediaAsset

if TYPE_CHECKING:
    from collections.abc import Iterable


class BatchStatementError(Exception):
    """Raised when a batch statement does not affect exactly one row."""

    def __init__(self, statement: str, expected: int, affected: int, **context):
        self.statement = statement
        self.expected = expected
        self.affected = affected
        self.context = context
        super().__init__(
            f"{statement} affected {affected} rows, expected {expected} ({context})"
        )


class MediaCatalogRepository(BaseService):
    """Database access for MediaAsset rows and album metadata."""

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, media_id: int) -> MediaAsset | None:
        return MediaAsset.objects.filter(pk=media_id).first()

    def get_album(self, album_id: int) -> Album | None:
        return Album.objects.filter(pk=album_id).first()

    def blob_ids_for(self, album_id: int, media_ids: Iterable[int]) -> list[tuple[int, str, str]]:
        """Return (id, external_blob_id, kind) for the given assets of an album."""
        return list(
            MediaAsset.objects.filter(album_id=album_id, pk__in=list(media_ids)).values_list(
                "pk", "external_blob_id", "kind"
            )
        )

    # =========================================================================
    # Single-operation writes
    # =========================================================================

    def create(
        self,
        album_id: int,
        external_blob_id: str,
        kind: str,
        url: str,
        thumbnail_url: str | None = None,
        file_name: str | None = None,
        is_main_image: bool = False,
        display_order: int = 0,
        duration_seconds: int | None = None,
    ) -> MediaAsset:
        """
        Insert an asset, unsetting any other main image in the same batch.

        Raises:
            DatabaseError: On any database failure; nothing is committed.
        """
        with self.atomic():
            if is_main_image:
                self.lock_album(album_id)
                self._unset_main_image(album_id)
            asset = MediaAsset.objects.create(
                album_id=album_id,
                external_blob_id=external_blob_id,
                kind=kind,
                url=url,
                thumbnail_url=thumbnail_url,
                file_name=file_name,
                is_main_image=is_main_image,
                display_order=display_order,
                duration_seconds=duration_seconds,
            )

        self.get_logger().info(
            "Created media asset",
            extra={
                "media_id": asset.pk,
                "album_id": album_id,
                "external_blob_id": external_blob_id,
                "is_main_image": is_main_image,
            },
        )
        return asset

    def delete(self, media_id: int) -> bool:
        """Delete one asset; False if it did not exist."""
        deleted, _ = MediaAsset.objects.filter(pk=media_id).delete()
        return deleted > 0

    def reorder(self, updates: Iterable[tuple[int, int]]) -> int:
        """
        Apply (media_id, display_order) pairs as one batch.

        Raises:
            BatchStatementError: If any id does not exist; nothing is applied.
        """
        count = 0
        with self.atomic():
            for media_id, display_order in updates:
                affected = MediaAsset.objects.filter(pk=media_id).update(
                    display_order=display_order
                )
                _expect_one("reorder", affected, media_id=media_id)
                count += affected
        return count

    # =========================================================================
    # Batch statements (call inside self.atomic())
    # =========================================================================

    def lock_album(self, album_id: int) -> Album:
        """Lock the album row until the surrounding transaction ends."""
        album = Album.objects.select_for_update().filter(pk=album_id).first()
        if album is None:
            raise BatchStatementError("lock album", 1, 0, album_id=album_id)
        return album

    def delete_in_album(self, album_id: int, media_id: int) -> None:
        deleted, _ = MediaAsset.objects.filter(pk=media_id, album_id=album_id).delete()
        _expect_one("delete", deleted, album_id=album_id, media_id=media_id)

    def set_display_order(self, album_id: int, media_id: int, display_order: int) -> None:
        affected = MediaAsset.objects.filter(pk=media_id, album_id=album_id).update(
            display_order=display_order
        )
        _expect_one("reorder", affected, album_id=album_id, media_id=media_id)

    def set_main_image(self, album_id: int, media_id: int, is_main_image: bool) -> None:
        """
        Set or clear the main flag on one asset.

        Setting unsets every other main image of the album first, so the
        album never has two at any point of the batch.
        """
        if is_main_image:
            self._unset_main_image(album_id, exclude_id=media_id)
        affected = MediaAsset.objects.filter(pk=media_id, album_id=album_id).update(
            is_main_image=is_main_image
        )
        _expect_one("update main image", affected, album_id=album_id, media_id=media_id)

    def set_album_title(self, album_id: int, title: str) -> None:
        affected = Album.objects.filter(pk=album_id).update(title=title)
        _expect_one("update album title", affected, album_id=album_id)

    def _unset_main_image(self, album_id: int, exclude_id: int | None = None) -> int:
        queryset = MediaAsset.objects.filter(album_id=album_id, is_main_image=True)
        if exclude_id is not None:
            queryset = queryset.exclude(pk=exclude_id)
        return queryset.update(is_main_image=False)


def _expect_one(statement: str, affected: int, **context) -> None:
    if affected != 1:
        raise BatchStatementError(statement, 1, affected, **context)
