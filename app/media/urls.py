"""
URL configuration for media app.

API Documentation Groups (following [App Name] - [Group Name] pattern):

Media - Upload:
    POST /upload/                                 - Upload image or video

Media - Albums:
    POST /albums/{album_id}/publish/              - Publish metadata diff
    GET /albums/{album_id}/validation-data/       - Quota usage and limits
    DELETE /assets/{media_id}/                    - Delete media
    POST /batch-reorder/                          - Batch display-order update

Media - Operations:
    GET /cleanup-jobs/stats/                      - Cleanup queue statistics (staff)

Unsafe endpoints require an Idempotency-Key header.
"""

from django.urls import path

from media.views import (
    AlbumPublishView,
    AlbumValidationDataView,
    BatchReorderView,
    CleanupJobStatsView,
    MediaAssetDetailView,
    MediaUploadView,
)

app_name = "media"

urlpatterns = [
    # Upload
    path("upload/", MediaUploadView.as_view(), name="upload"),
    # Albums
    path(
        "albums/<int:album_id>/publish/",
        AlbumPublishView.as_view(),
        name="album-publish",
    ),
    path(
        "albums/<int:album_id>/validation-data/",
        AlbumValidationDataView.as_view(),
        name="album-validation-data",
    ),
    # Assets
    path("assets/<int:media_id>/", MediaAssetDetailView.as_view(), name="asset-detail"),
    path("batch-reorder/", BatchReorderView.as_view(), name="batch-reorder"),
    # Operations
    path("cleanup-jobs/stats/", CleanupJobStatsView.as_view(), name="cleanup-stats"),
]
