"""
API views for the album media lifecycle.

Provides:
- MediaUploadView: Upload one image or video into an album
- AlbumPublishView: Publish a metadata diff for an album atomically
- MediaAssetDetailView: Delete one asset
- BatchReorderView: Apply display-order updates as one batch
- AlbumValidationDataView: Quota usage and limits for client pre-validation
- CleanupJobStatsView: Cleanup queue counts (staff only)

Views are thin: they check shape and ownership, call the service from the
container, and render the ServiceResult with the status code it carries.
Every unsafe endpoint is wrapped with @idempotent and requires an
Idempotency-Key header.

Response format:
    Success: {"success": true, "data": {...}}
    Failure: {"success": false, "error": "...", "error_code": "..."}
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.idempotency import IDEMPOTENCY_HEADER, idempotent
from core.services import ServiceResult
from media.models import Album, MediaAsset
from media.serializers import (
    BatchReorderSerializer,
    CleanupStatsSerializer,
    MediaAssetSerializer,
    MediaUploadSerializer,
    PublishMetadataSerializer,
    PublishSummarySerializer,
    ValidationDataSerializer,
)
from media.services.container import get_media_services
from media.services.payload import MediaPayload

if TYPE_CHECKING:
    from typing import Any

IDEMPOTENCY_KEY_PARAMETER = OpenApiParameter(
    name=IDEMPOTENCY_HEADER,
    type=OpenApiTypes.STR,
    location=OpenApiParameter.HEADER,
    required=True,
    description=(
        "Client-generated key. A retry with the same key replays the first "
        "response instead of repeating the operation."
    ),
)


def _render(result: ServiceResult) -> Response:
    """Render a ServiceResult with the status it carries."""
    return Response(result.to_response(), status=result.status_code)


def _invalid_request(errors: Any) -> Response:
    return Response(
        {
            "success": False,
            "error": "Invalid request",
            "error_code": "INVALID_REQUEST",
            "errors": errors,
        },
        status=status.HTTP_400_BAD_REQUEST,
    )


def _album_not_found(album_id: Any) -> Response:
    return Response(
        {
            "success": False,
            "error": f"Album {album_id} not found",
            "error_code": "ALBUM_NOT_FOUND",
        },
        status=status.HTTP_404_NOT_FOUND,
    )


def _is_foreign_album(album_id: Any, user) -> bool:
    """
    True when the album exists but belongs to someone else.

    Unknown or malformed ids return False so the service reports them with
    its own error codes.
    """
    try:
        album_pk = int(album_id)
    except (TypeError, ValueError):
        return False
    album = Album.objects.filter(pk=album_pk).only("owner_id").first()
    return album is not None and album.owner_id != user.pk


class MediaUploadView(APIView):
    """
    Upload a single image or video into an album.

    POST /api/v1/media/upload/

    Authentication:
        Requires valid JWT token. The album must belong to the caller.

    Request:
        Content-Type: multipart/form-data
        - file (required): Image or video
        - album_id (required): Target album
        - display_order (optional): Position, default 0
        - is_main_image (optional): Album cover flag, default false
        - duration_seconds (optional): Video length for the quota check

    Response:
        201 Created: Asset persisted
        400 Bad Request: NO_FILE, INVALID_ALBUM, size limits, quota,
            MODERATION_REJECTED, MODERATION_COMPRESSION_FAILED
        404 Not Found: ALBUM_NOT_FOUND
        409 Conflict: Same Idempotency-Key still processing
        500 / 502: Catalog write, upload or moderation service failure
    """

    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser]

    @extend_schema(
        operation_id="upload_album_media",
        summary="Upload album media",
        description=(
            "Validate, check the album's tier quota, moderate, upload to the "
            "blob store and record the asset. When the catalog write fails "
            "after the upload, a cleanup job is scheduled for the orphaned blob."
        ),
        parameters=[IDEMPOTENCY_KEY_PARAMETER],
        request=MediaUploadSerializer,
        responses={
            201: OpenApiResponse(response=MediaAssetSerializer, description="Media uploaded"),
            400: OpenApiResponse(description="Validation, quota or moderation rejection"),
            404: OpenApiResponse(description="Album not found"),
            409: OpenApiResponse(description="Request with this key in progress"),
            500: OpenApiResponse(description="Catalog write failed"),
            502: OpenApiResponse(description="Blob store or moderation unavailable"),
        },
        tags=["Media - Upload"],
    )
    @idempotent()
    def post(self, request):
        """Upload one media file."""
        serializer = MediaUploadSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid_request(serializer.errors)
        data = serializer.validated_data

        album_id = data.get("album_id")
        if _is_foreign_album(album_id, request.user):
            return _album_not_found(album_id)

        uploaded = data.get("file")
        result = get_media_services().orchestrator.upload_single_media(
            album_id=album_id,
            payload=MediaPayload.from_upload(uploaded) if uploaded is not None else None,
            display_order=data["display_order"],
            is_main_image=data["is_main_image"],
            duration_seconds=data["duration_seconds"],
        )
        return _render(result.map(lambda asset: MediaAssetSerializer(asset).data))


class AlbumPublishView(APIView):
    """
    Publish an album's metadata diff.

    POST /api/v1/media/albums/{album_id}/publish/

    Every delete, reorder, main-image change and the title update commit
    together or not at all.
    """

    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser]

    @extend_schema(
        operation_id="publish_album_metadata",
        summary="Publish album metadata",
        description=(
            "Apply deletes, display-order changes, main-image changes and an "
            "optional title update as one all-or-nothing batch. Blob cleanup "
            "for deleted assets is scheduled after commit."
        ),
        parameters=[IDEMPOTENCY_KEY_PARAMETER],
        request=PublishMetadataSerializer,
        responses={
            200: OpenApiResponse(response=PublishSummarySerializer, description="Published"),
            400: OpenApiResponse(description="INVALID_CHANGE"),
            404: OpenApiResponse(description="Album not found"),
            409: OpenApiResponse(description="Request with this key in progress"),
            500: OpenApiResponse(description="Batch rolled back, nothing applied"),
        },
        tags=["Media - Albums"],
    )
    @idempotent()
    def post(self, request, album_id):
        """Publish a metadata diff."""
        if _is_foreign_album(album_id, request.user):
            return _album_not_found(album_id)

        serializer = PublishMetadataSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid_request(serializer.errors)

        result = get_media_services().publisher.publish_metadata_changes(
            album_id=album_id,
            changes=serializer.validated_data["changes"],
            album_title=serializer.validated_data.get("album_title"),
        )
        return _render(result.map(lambda summary: PublishSummarySerializer(summary).data))


class MediaAssetDetailView(APIView):
    """
    Delete one asset.

    DELETE /api/v1/media/assets/{media_id}/

    The row is deleted immediately; the blob is removed later by the
    cleanup queue.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="delete_album_media",
        summary="Delete album media",
        parameters=[IDEMPOTENCY_KEY_PARAMETER],
        responses={
            200: OpenApiResponse(description="Asset deleted"),
            404: OpenApiResponse(description="MEDIA_NOT_FOUND"),
            409: OpenApiResponse(description="Request with this key in progress"),
        },
        tags=["Media - Albums"],
    )
    @idempotent()
    def delete(self, request, media_id):
        """Delete an asset the caller owns."""
        asset = MediaAsset.objects.filter(pk=media_id).values("album__owner_id").first()
        # Assets in owner-less albums are foreign to everyone
        if asset is not None and asset["album__owner_id"] != request.user.pk:
            return Response(
                {
                    "success": False,
                    "error": "Media object not found",
                    "error_code": "MEDIA_NOT_FOUND",
                },
                status=status.HTTP_404_NOT_FOUND,
            )

        return _render(get_media_services().orchestrator.delete_media(media_id))


class BatchReorderView(APIView):
    """
    Apply display-order updates as one batch.

    POST /api/v1/media/batch-reorder/

    Request:
        {"updates": [{"media_id": 8, "display_order": 0}, ...]}
    """

    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser]

    @extend_schema(
        operation_id="batch_reorder_media",
        summary="Batch reorder media",
        description=(
            "Update display orders of several assets at once. If any asset "
            "does not exist, nothing is applied and REORDER_FAILED is returned."
        ),
        parameters=[IDEMPOTENCY_KEY_PARAMETER],
        request=BatchReorderSerializer,
        responses={
            200: OpenApiResponse(description="Number of assets updated"),
            400: OpenApiResponse(description="NO_UPDATES"),
            403: OpenApiResponse(description="An asset belongs to another user"),
            409: OpenApiResponse(description="Request with this key in progress"),
            500: OpenApiResponse(description="REORDER_FAILED, nothing applied"),
        },
        tags=["Media - Albums"],
    )
    @idempotent()
    def post(self, request):
        """Reorder assets."""
        serializer = BatchReorderSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid_request(serializer.errors)
        updates = serializer.validated_data["updates"]

        media_ids = {u["media_id"] for u in updates}
        foreign = (
            MediaAsset.objects.filter(pk__in=media_ids)
            .exclude(album__owner=request.user)
            .exists()
        )
        if foreign:
            return Response(
                {
                    "success": False,
                    "error": "You do not have permission to reorder these media",
                    "error_code": "PERMISSION_DENIED",
                },
                status=status.HTTP_403_FORBIDDEN,
            )

        return _render(get_media_services().orchestrator.batch_reorder(updates))


class AlbumValidationDataView(APIView):
    """
    Quota usage and limits for an album.

    GET /api/v1/media/albums/{album_id}/validation-data/

    Clients use this to reject over-quota uploads before sending bytes.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_album_validation_data",
        summary="Get album validation data",
        responses={
            200: OpenApiResponse(response=ValidationDataSerializer, description="Usage and limits"),
            404: OpenApiResponse(description="Album not found"),
        },
        tags=["Media - Albums"],
    )
    def get(self, request, album_id):
        """Return the album's quota snapshot."""
        album = Album.objects.filter(pk=album_id, owner=request.user).first()
        if album is None:
            return _album_not_found(album_id)

        snapshot = get_media_services().quota.snapshot(album)
        return Response(
            {"success": True, "data": ValidationDataSerializer(snapshot).data},
            status=status.HTTP_200_OK,
        )


class CleanupJobStatsView(APIView):
    """
    Cleanup queue statistics.

    GET /api/v1/media/cleanup-jobs/stats/

    Staff only. Failed jobs need manual reconciliation of their blobs.
    """

    permission_classes = [IsAdminUser]

    @extend_schema(
        operation_id="get_cleanup_job_stats",
        summary="Get cleanup job statistics",
        responses={
            200: OpenApiResponse(response=CleanupStatsSerializer, description="Queue counts"),
            403: OpenApiResponse(description="Staff only"),
        },
        tags=["Media - Operations"],
    )
    def get(self, request):
        """Return pending, completed and failed counts."""
        stats = get_media_services().cleanup_queue.stats()
        return Response(
            {"success": True, "data": CleanupStatsSerializer(stats).data},
            status=status.HTTP_200_OK,
        )
