"""
Tests for MediaCatalogRepository.

Tests cover:
- At most one main image per album across successive creates and updates
- The database constraint backing the main-image invariant
- Batch reorder is all-or-nothing
- Batch statements reject missing rows
"""

from __future__ import annotations

import pytest
from django.db import IntegrityError, transaction

from media.models import MediaAsset
from media.services.catalog import BatchStatementError
from media.tests.factories import AlbumFactory, MediaAssetFactory


def _main_ids(album) -> list[int]:
    return list(
        MediaAsset.objects.filter(album=album, is_main_image=True).values_list("pk", flat=True)
    )


def _create(catalog, album, blob_id, is_main_image=False, display_order=0):
    return catalog.create(
        album_id=album.pk,
        external_blob_id=blob_id,
        kind=MediaAsset.Kind.IMAGE,
        url=f"https://cdn.example.com/{blob_id}",
        is_main_image=is_main_image,
        display_order=display_order,
    )


@pytest.mark.django_db
class TestMainImageInvariant:
    """Test the one-main-image-per-album rule."""

    def test_create_main_unsets_previous_main(self, catalog):
        album = AlbumFactory()
        first = _create(catalog, album, "blob-a", is_main_image=True)
        second = _create(catalog, album, "blob-b", is_main_image=True)

        assert _main_ids(album) == [second.pk]
        first.refresh_from_db()
        assert first.is_main_image is False

    def test_last_writer_wins_across_creates_and_updates(self, catalog):
        album = AlbumFactory()
        assets = [_create(catalog, album, f"blob-{i}", is_main_image=True) for i in range(3)]

        with catalog.atomic():
            catalog.set_main_image(album.pk, assets[0].pk, True)
        assert _main_ids(album) == [assets[0].pk]

        _create(catalog, album, "blob-late", is_main_image=False)
        with catalog.atomic():
            catalog.set_main_image(album.pk, assets[1].pk, True)
        assert _main_ids(album) == [assets[1].pk]

    def test_main_images_of_other_albums_are_untouched(self, catalog):
        album, other = AlbumFactory(), AlbumFactory()
        other_main = _create(catalog, other, "blob-other", is_main_image=True)

        _create(catalog, album, "blob-mine", is_main_image=True)

        assert _main_ids(other) == [other_main.pk]

    def test_clearing_main_image(self, catalog):
        album = AlbumFactory()
        asset = _create(catalog, album, "blob-a", is_main_image=True)

        with catalog.atomic():
            catalog.set_main_image(album.pk, asset.pk, False)

        assert _main_ids(album) == []

    def test_database_rejects_second_main_image(self):
        album = AlbumFactory()
        MediaAssetFactory(album=album, is_main_image=True)

        with pytest.raises(IntegrityError), transaction.atomic():
            MediaAssetFactory(album=album, is_main_image=True)


@pytest.mark.django_db
class TestReorder:
    """Test batch display-order updates."""

    def test_applies_all_updates(self, catalog):
        a, b = MediaAssetFactory(display_order=0), MediaAssetFactory(display_order=1)

        count = catalog.reorder([(a.pk, 5), (b.pk, 6)])

        assert count == 2
        a.refresh_from_db()
        b.refresh_from_db()
        assert (a.display_order, b.display_order) == (5, 6)

    def test_missing_id_rolls_back_everything(self, catalog):
        a = MediaAssetFactory(display_order=0)

        with pytest.raises(BatchStatementError) as exc_info:
            catalog.reorder([(a.pk, 9), (999999, 1)])

        assert exc_info.value.affected == 0
        a.refresh_from_db()
        assert a.display_order == 0


@pytest.mark.django_db
class TestBatchStatements:
    """Test statements that must hit exactly one row."""

    def test_delete_in_wrong_album_raises(self, catalog):
        asset = MediaAssetFactory()
        other_album = AlbumFactory()

        with pytest.raises(BatchStatementError):
            with catalog.atomic():
                catalog.delete_in_album(other_album.pk, asset.pk)

        assert MediaAsset.objects.filter(pk=asset.pk).exists()

    def test_lock_missing_album_raises(self, catalog):
        with pytest.raises(BatchStatementError):
            with catalog.atomic():
                catalog.lock_album(424242)

    def test_blob_ids_for_only_returns_album_assets(self, catalog):
        asset = MediaAssetFactory(external_blob_id="blob-mine")
        stranger = MediaAssetFactory(external_blob_id="blob-stranger")

        rows = catalog.blob_ids_for(asset.album_id, [asset.pk, stranger.pk])

        assert rows == [(asset.pk, "blob-mine", "image")]

    def test_delete_reports_missing_row(self, catalog):
        asset = MediaAssetFactory()

        assert catalog.delete(asset.pk) is True
        assert catalog.delete(asset.pk) is False
