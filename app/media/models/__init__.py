"""
Media models package.

Exports:
    Album: Logical container whose tier sets the storage quota
    MediaAsset: Catalog row for one image or video held in the blob store
    CleanupJob: Durable request to delete an orphaned blob
"""

from media.models.album import Album
from media.models.cleanup_job import CleanupJob
from media.models.media_asset import MediaAsset

__all__ = [
    "Album",
    "CleanupJob",
    "MediaAsset",
]
