"""Django admin configuration for media app."""

from django.contrib import admin
from django.utils import timezone

from media.models import Album, CleanupJob, MediaAsset


class MediaAssetInline(admin.TabularInline):
    """Assets listed on the album page, in display order."""

    model = MediaAsset
    extra = 0
    fields = ["display_order", "kind", "is_main_image", "file_name", "external_blob_id"]
    readonly_fields = ["kind", "file_name", "external_blob_id"]
    ordering = ["display_order"]


@admin.register(Album)
class AlbumAdmin(admin.ModelAdmin):
    """Admin configuration for Album model."""

    list_display = ["id", "title", "storage_tier", "owner", "sealed_at", "created_at"]
    list_filter = ["storage_tier"]
    search_fields = ["title", "owner__username", "owner__email"]
    raw_id_fields = ["owner"]
    readonly_fields = ["created_at", "updated_at"]
    inlines = [MediaAssetInline]


@admin.register(MediaAsset)
class MediaAssetAdmin(admin.ModelAdmin):
    """Admin configuration for MediaAsset model."""

    list_display = [
        "id",
        "album",
        "kind",
        "is_main_image",
        "display_order",
        "duration_seconds",
        "created_at",
    ]
    list_filter = ["kind", "is_main_image"]
    search_fields = ["external_blob_id", "file_name"]
    raw_id_fields = ["album"]
    readonly_fields = ["external_blob_id", "created_at", "updated_at"]
    date_hierarchy = "created_at"


@admin.register(CleanupJob)
class CleanupJobAdmin(admin.ModelAdmin):
    """
    Admin configuration for CleanupJob model.

    Failed jobs are the manual reconciliation worklist; resetting one to
    pending hands it back to the processor.
    """

    list_display = [
        "id",
        "external_blob_id",
        "kind",
        "status",
        "retry_count",
        "next_retry_at",
        "updated_at",
    ]
    list_filter = ["status", "kind"]
    search_fields = ["external_blob_id", "last_error"]
    readonly_fields = ["external_blob_id", "kind", "created_at", "updated_at"]
    ordering = ["-updated_at"]
    actions = ["retry_now"]

    @admin.action(description="Reset selected jobs to pending and retry now")
    def retry_now(self, request, queryset):
        updated = queryset.update(
            status=CleanupJob.Status.PENDING,
            retry_count=0,
            next_retry_at=timezone.now(),
        )
        self.message_user(request, f"{updated} cleanup jobs rescheduled")
