"""
Wiring of the media lifecycle services.

Services receive their collaborators through their constructors. This module
is the one place that reads settings and builds the graph; views and Celery
tasks ask for the process-wide container instead of constructing services.

Usage:
    from media.services.container import get_media_services

    services = get_media_services()
    services.orchestrator.delete_media(media_id)

Tests build the services directly with fakes, or call
get_media_services.cache_clear() after overriding settings.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache

from django.conf import settings

from media.services.blob_store import CloudflareMediaClient
from media.services.catalog import MediaCatalogRepository
from media.services.cleanup_queue import CleanupJobQueue
from media.services.compression import ImageCompressor
from media.services.moderation import ModerationGateway
from media.services.orchestrator import MediaLifecycleOrchestrator
from media.services.publisher import BatchPublisher
from media.services.quota import QuotaValidator


@dataclass(frozen=True)
class MediaServices:
    """The wired service graph."""

    quota: QuotaValidator
    moderation: ModerationGateway
    blob_store: CloudflareMediaClient
    catalog: MediaCatalogRepository
    cleanup_queue: CleanupJobQueue
    publisher: BatchPublisher
    orchestrator: MediaLifecycleOrchestrator


def build_media_services() -> MediaServices:
    """Build a fresh service graph from Django settings."""
    quota = QuotaValidator(settings.MEDIA_STORAGE_LIMITS)

    compressor = (
        ImageCompressor(quality=settings.MODERATION_COMPRESSION_QUALITY)
        if settings.MODERATION_COMPRESSION_ENABLED
        else None
    )
    moderation = ModerationGateway(
        api_user=settings.SIGHTENGINE_API_USER,
        api_secret=settings.SIGHTENGINE_API_SECRET,
        compressor=compressor,
        threshold=settings.MODERATION_REJECT_THRESHOLD,
        timeout=settings.SIGHTENGINE_TIMEOUT_SECONDS,
    )

    blob_store = CloudflareMediaClient(
        account_id=settings.CLOUDFLARE_ACCOUNT_ID,
        api_token=settings.CLOUDFLARE_MEDIA_API_TOKEN,
        timeout=settings.CLOUDFLARE_API_TIMEOUT_SECONDS,
    )

    catalog = MediaCatalogRepository()
    cleanup_queue = CleanupJobQueue(
        blob_store,
        max_retries=settings.CLEANUP_JOB_MAX_RETRIES,
        batch_size=settings.CLEANUP_JOB_BATCH_SIZE,
        initial_delay=timedelta(seconds=settings.CLEANUP_JOB_INITIAL_DELAY_SECONDS),
    )

    return MediaServices(
        quota=quota,
        moderation=moderation,
        blob_store=blob_store,
        catalog=catalog,
        cleanup_queue=cleanup_queue,
        publisher=BatchPublisher(catalog, cleanup_queue),
        orchestrator=MediaLifecycleOrchestrator(
            quota=quota,
            moderation=moderation,
            blob_store=blob_store,
            catalog=catalog,
            cleanup_queue=cleanup_queue,
            max_image_bytes=settings.MEDIA_MAX_IMAGE_BYTES,
            max_video_bytes=settings.MEDIA_MAX_VIDEO_BYTES,
        ),
    )


@lru_cache(maxsize=1)
def get_media_services() -> MediaServices:
    """Return the process-wide service graph, built on first use."""
    return build_media_services()
