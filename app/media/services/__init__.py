"""Media lifecycle services: quota, moderation, blob store, catalog, cleanup and publishing."""

from media.services.blob_store import BlobStoreClient, CloudflareMediaClient, UploadResult
from media.services.catalog import BatchStatementError, MediaCatalogRepository
from media.services.cleanup_queue import CleanupJobQueue, CleanupQueueStats, ProcessingReport
from media.services.compression import CompressionError, ImageCompressor
from media.services.container import MediaServices, build_media_services, get_media_services
from media.services.moderation import ModerationGateway, ModerationResult, ModerationStatus
from media.services.orchestrator import MediaLifecycleOrchestrator, ReorderUpdate
from media.services.payload import MediaPayload
from media.services.publisher import BatchPublisher, ChangeType, MetadataChange, PublishSummary
from media.services.quota import QuotaSnapshot, QuotaValidator

__all__ = [
    "BatchPublisher",
    "BatchStatementError",
    "BlobStoreClient",
    "ChangeType",
    "CleanupJobQueue",
    "CleanupQueueStats",
    "CloudflareMediaClient",
    "CompressionError",
    "ImageCompressor",
    "MediaCatalogRepository",
    "MediaLifecycleOrchestrator",
    "MediaPayload",
    "MediaServices",
    "MetadataChange",
    "ModerationGateway",
    "ModerationResult",
    "ModerationStatus",
    "ProcessingReport",
    "PublishSummary",
    "QuotaSnapshot",
    "QuotaValidator",
    "ReorderUpdate",
    "UploadResult",
    "build_media_services",
    "get_media_services",
]
