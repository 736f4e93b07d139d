"""
Test fixtures for media app.

Provides fixtures for:
- Sample files (JPEG, PNG, MP4 bytes) as payloads and uploads
- Albums owned by the test user
- In-memory fakes for the blob store and moderation gateway
- An orchestrator, publisher and cleanup queue wired with those fakes
"""

from __future__ import annotations

import io
import itertools

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from PIL import Image

from media.models import Album
from media.services.blob_store import UploadResult
from media.services.catalog import MediaCatalogRepository
from media.services.cleanup_queue import CleanupJobQueue
from media.services.container import MediaServices
from media.services.moderation import ModerationResult
from media.services.orchestrator import MediaLifecycleOrchestrator
from media.services.payload import MediaPayload
from media.services.publisher import BatchPublisher
from media.services.quota import QuotaValidator
from media.tests.factories import AlbumFactory, jpeg_bytes

# =============================================================================
# Fakes
# =============================================================================


class FakeBlobStore:
    """
    In-memory blob store.

    Records every call; ``fail_uploads`` and ``delete_results`` script failures.
    """

    def __init__(self):
        self._ids = itertools.count(1)
        self.uploaded: list[MediaPayload] = []
        self.deleted: list[tuple[str, str]] = []
        self.fail_uploads = False
        self.delete_results: list[bool | Exception] = []
        self.video_duration: int | None = None

    def upload_image(self, payload: MediaPayload) -> UploadResult:
        return self._upload(payload, "img")

    def upload_video(self, payload: MediaPayload) -> UploadResult:
        result = self._upload(payload, "vid")
        if result.success:
            result.duration_seconds = self.video_duration
        return result

    def delete_asset(self, external_id: str, kind: str) -> bool:
        self.deleted.append((external_id, kind))
        if not self.delete_results:
            return True
        outcome = self.delete_results.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def _upload(self, payload: MediaPayload, prefix: str) -> UploadResult:
        self.uploaded.append(payload)
        if self.fail_uploads:
            return UploadResult.failed("Cloudflare returned 500")
        external_id = f"{prefix}-{next(self._ids)}"
        return UploadResult(
            success=True,
            external_id=external_id,
            url=f"https://cdn.example.com/{external_id}",
            thumbnail_url=f"https://cdn.example.com/{external_id}/thumb",
        )


class FakeModeration:
    """Moderation gateway returning a scripted result."""

    def __init__(self):
        self.result = ModerationResult.approve({"nudity": 0.01, "gore": 0.0})
        self.checked: list[MediaPayload] = []

    def moderate(self, payload: MediaPayload) -> ModerationResult:
        self.checked.append(payload)
        return self.result


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def moderation() -> FakeModeration:
    return FakeModeration()


@pytest.fixture
def catalog() -> MediaCatalogRepository:
    return MediaCatalogRepository()


@pytest.fixture
def cleanup_queue(blob_store) -> CleanupJobQueue:
    return CleanupJobQueue(blob_store)


@pytest.fixture
def quota() -> QuotaValidator:
    return QuotaValidator()


@pytest.fixture
def orchestrator(quota, moderation, blob_store, catalog, cleanup_queue):
    return MediaLifecycleOrchestrator(
        quota=quota,
        moderation=moderation,
        blob_store=blob_store,
        catalog=catalog,
        cleanup_queue=cleanup_queue,
    )


@pytest.fixture
def publisher(catalog, cleanup_queue) -> BatchPublisher:
    return BatchPublisher(catalog, cleanup_queue)


@pytest.fixture
def fake_services(quota, moderation, blob_store, catalog, cleanup_queue, publisher, orchestrator):
    """Patch the process-wide container so views and tasks use the fakes."""
    from unittest.mock import patch

    services = MediaServices(
        quota=quota,
        moderation=moderation,
        blob_store=blob_store,
        catalog=catalog,
        cleanup_queue=cleanup_queue,
        publisher=publisher,
        orchestrator=orchestrator,
    )
    with (
        patch("media.views.get_media_services", return_value=services),
        patch("media.tasks.get_media_services", return_value=services),
    ):
        yield services


# =============================================================================
# Album Fixtures
# =============================================================================


@pytest.fixture
def album(user) -> Album:
    """Base-tier album owned by the test user."""
    return AlbumFactory(owner=user)


@pytest.fixture
def upgraded_album(user) -> Album:
    return AlbumFactory(owner=user, storage_tier=Album.StorageTier.UPGRADED)


# =============================================================================
# File Fixtures
# =============================================================================


@pytest.fixture
def jpeg_payload() -> MediaPayload:
    return MediaPayload(content=jpeg_bytes(), file_name="beach.jpg", content_type="image/jpeg")


@pytest.fixture
def png_payload() -> MediaPayload:
    image = Image.new("RGBA", (64, 64), color=(0, 0, 255, 128))
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return MediaPayload(content=buffer.getvalue(), file_name="logo.png", content_type="image/png")


@pytest.fixture
def video_payload() -> MediaPayload:
    # Contents are never decoded; only the content type matters
    return MediaPayload(
        content=b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 256,
        file_name="clip.mp4",
        content_type="video/mp4",
    )


@pytest.fixture
def jpeg_upload() -> SimpleUploadedFile:
    return SimpleUploadedFile(
        name="beach.jpg",
        content=jpeg_bytes(),
        content_type="image/jpeg",
    )
