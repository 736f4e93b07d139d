"""
Factory Boy factories for media models.

Usage:
    from media.tests.factories import AlbumFactory, MediaAssetFactory

    album = AlbumFactory(storage_tier=Album.StorageTier.UPGRADED)
    MediaAssetFactory.create_batch(3, album=album)
    MediaAssetFactory(album=album, kind=MediaAsset.Kind.VIDEO, duration_seconds=20)
"""

import io
from datetime import timedelta

import factory
from django.contrib.auth import get_user_model
from django.utils import timezone
from PIL import Image

from media.models import Album, CleanupJob, MediaAsset


class UserFactory(factory.django.DjangoModelFactory):
    """Factory for the default auth user."""

    class Meta:
        model = get_user_model()
        django_get_or_create = ("username",)

    username = factory.Sequence(lambda n: f"user{n}")
    email = factory.LazyAttribute(lambda o: f"{o.username}@example.com")
    password = factory.django.Password("testpass123")


class AlbumFactory(factory.django.DjangoModelFactory):
    """
    Factory for Album model.

    Albums are owned and on the base tier by default.
    """

    class Meta:
        model = Album

    title = factory.Sequence(lambda n: f"Album {n}")
    storage_tier = Album.StorageTier.BASE
    owner = factory.SubFactory(UserFactory)


class MediaAssetFactory(factory.django.DjangoModelFactory):
    """Factory for MediaAsset model. Images by default."""

    class Meta:
        model = MediaAsset

    album = factory.SubFactory(AlbumFactory)
    external_blob_id = factory.Sequence(lambda n: f"blob-{n:05d}")
    kind = MediaAsset.Kind.IMAGE
    url = factory.LazyAttribute(
        lambda o: f"https://imagedelivery.net/acct-hash/{o.external_blob_id}/standard"
    )
    thumbnail_url = factory.LazyAttribute(
        lambda o: f"https://imagedelivery.net/acct-hash/{o.external_blob_id}/thumb"
    )
    file_name = factory.Sequence(lambda n: f"photo_{n}.jpg")
    is_main_image = False
    display_order = factory.Sequence(lambda n: n)
    duration_seconds = None


class CleanupJobFactory(factory.django.DjangoModelFactory):
    """Factory for CleanupJob model. Pending and due now by default."""

    class Meta:
        model = CleanupJob

    external_blob_id = factory.Sequence(lambda n: f"orphan-{n:05d}")
    kind = MediaAsset.Kind.IMAGE
    retry_count = 0
    status = CleanupJob.Status.PENDING
    next_retry_at = factory.LazyFunction(lambda: timezone.now() - timedelta(seconds=1))


def jpeg_bytes(color: str = "red", size: tuple[int, int] = (64, 64)) -> bytes:
    """Encode a solid-colour JPEG."""
    image = Image.new("RGB", size, color=color)
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG")
    return buffer.getvalue()
