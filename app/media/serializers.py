"""
Serializers for album media uploads, metadata publishing and reordering.

Provides:
- MediaUploadSerializer: Multipart upload form
- MediaAssetSerializer: Read-only asset representation for responses
- MetadataChangeSerializer: One entry of a metadata diff
- PublishMetadataSerializer: Whole diff plus optional album title
- PublishSummarySerializer: Result of a publish
- ReorderUpdateSerializer / BatchReorderSerializer: Display-order updates
- ValidationDataSerializer: Quota snapshot for client-side pre-validation
- CleanupStatsSerializer: Cleanup queue counts for staff

Request serializers only check shape. Business rules (quota, moderation,
change validity against the album) live in media.services.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiExample, extend_schema_serializer
from rest_framework import serializers

from media.models import MediaAsset
from media.services.publisher import ChangeType


class MediaUploadSerializer(serializers.Serializer):
    """
    Multipart form for a single image or video upload.

    The file and album id are loose at this layer so that a missing file or
    malformed album id reaches the orchestrator and is reported as NO_FILE or
    INVALID_ALBUM, like every other upload error.
    """

    file = serializers.FileField(
        required=False,
        allow_empty_file=True,
        help_text="Image or video file",
    )
    album_id = serializers.CharField(
        required=False,
        allow_blank=True,
        help_text="Album the media belongs to",
    )
    display_order = serializers.IntegerField(
        required=False,
        default=0,
        help_text="Position within the album",
    )
    is_main_image = serializers.BooleanField(
        required=False,
        default=False,
        help_text="Make this asset the album cover",
    )
    duration_seconds = serializers.IntegerField(
        required=False,
        allow_null=True,
        default=None,
        min_value=0,
        help_text="Client-reported video length in seconds",
    )


@extend_schema_serializer(
    examples=[
        OpenApiExample(
            "Uploaded image",
            value={
                "id": 812,
                "album_id": 42,
                "external_blob_id": "2cdc28f0-017a-49c4-9ed7-87056c83901",
                "kind": "image",
                "url": "https://imagedelivery.net/Vi7wi5KSItxGFsWRG2Us6Q/2cdc28f0-017a-49c4-9ed7-87056c83901/standard",
                "thumbnail_url": "https://imagedelivery.net/Vi7wi5KSItxGFsWRG2Us6Q/2cdc28f0-017a-49c4-9ed7-87056c83901/thumb",
                "file_name": "beach.jpg",
                "is_main_image": False,
                "display_order": 3,
                "duration_seconds": None,
                "created_at": "2024-06-01T10:30:00Z",
            },
            response_only=True,
        ),
    ]
)
class MediaAssetSerializer(serializers.ModelSerializer):
    """Read-only serializer for MediaAsset responses."""

    album_id = serializers.IntegerField(read_only=True)

    class Meta:
        """Serializer metadata."""

        model = MediaAsset
        fields = [
            "id",
            "album_id",
            "external_blob_id",
            "kind",
            "url",
            "thumbnail_url",
            "file_name",
            "is_main_image",
            "display_order",
            "duration_seconds",
            "created_at",
        ]
        read_only_fields = fields


class MetadataChangeSerializer(serializers.Serializer):
    """
    One change of an album diff.

    Only types are checked here; unknown change types and missing ids are
    reported by the publisher as INVALID_CHANGE.
    """

    change_type = serializers.CharField(
        help_text=(
            f"{ChangeType.DELETE}, {ChangeType.REORDER} or {ChangeType.UPDATE_MAIN_IMAGE}"
        ),
    )
    media_id = serializers.IntegerField(
        required=False,
        allow_null=True,
        help_text="Asset the change applies to",
    )
    new_display_order = serializers.IntegerField(
        required=False,
        allow_null=True,
        help_text="Required for reorder",
    )
    is_main_image = serializers.BooleanField(
        required=False,
        allow_null=True,
        default=None,
        help_text="Required for updateMainImage",
    )


@extend_schema_serializer(
    examples=[
        OpenApiExample(
            "Album diff",
            value={
                "album_title": "Summer 2024",
                "changes": [
                    {"change_type": "delete", "media_id": 7},
                    {"change_type": "reorder", "media_id": 8, "new_display_order": 0},
                    {"change_type": "updateMainImage", "media_id": 8, "is_main_image": True},
                ],
            },
            request_only=True,
        ),
    ]
)
class PublishMetadataSerializer(serializers.Serializer):
    """A client's whole metadata diff for one album."""

    changes = MetadataChangeSerializer(many=True, allow_empty=True)
    album_title = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        max_length=200,
        help_text="New album title; omitted or blank leaves it unchanged",
    )


class PublishSummarySerializer(serializers.Serializer):
    """What a publish applied."""

    album_id = serializers.IntegerField()
    changes_applied = serializers.IntegerField()
    deleted = serializers.IntegerField()
    reordered = serializers.IntegerField()
    main_image_updates = serializers.IntegerField()
    title_updated = serializers.BooleanField()
    cleanup_jobs_scheduled = serializers.IntegerField()
    message = serializers.CharField()


class ReorderUpdateSerializer(serializers.Serializer):
    """New display order for one asset."""

    media_id = serializers.IntegerField()
    display_order = serializers.IntegerField()


class BatchReorderSerializer(serializers.Serializer):
    """
    Display-order updates applied as one batch.

    An empty list is accepted here and rejected by the service as NO_UPDATES.
    """

    updates = ReorderUpdateSerializer(many=True, allow_empty=True)


class ValidationDataSerializer(serializers.Serializer):
    """Album usage and tier limits used by clients before uploading."""

    album_id = serializers.IntegerField()
    storage_tier = serializers.CharField()
    image_count = serializers.IntegerField(help_text="Non-main images in the album")
    video_seconds = serializers.IntegerField(help_text="Seconds of non-main video")
    image_limit = serializers.IntegerField()
    video_seconds_limit = serializers.IntegerField()


class CleanupStatsSerializer(serializers.Serializer):
    """Cleanup job counts by status."""

    pending = serializers.IntegerField()
    completed = serializers.IntegerField()
    failed = serializers.IntegerField()
    oldest_pending = serializers.DateTimeField(allow_null=True)
