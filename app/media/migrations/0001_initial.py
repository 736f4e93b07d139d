import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Album",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("title", models.CharField(blank=True, default="", help_text="Display title of the album", max_length=200)),
                ("storage_tier", models.CharField(choices=[("base", "Base"), ("upgraded", "Upgraded")], default="base", help_text="Quota tier applied to uploads", max_length=20)),
                ("sealed_at", models.DateTimeField(blank=True, help_text="When the album was sealed by its owner", null=True)),
                ("owner", models.ForeignKey(blank=True, help_text="User who owns this album", null=True, on_delete=django.db.models.deletion.CASCADE, related_name="albums", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "Album",
                "verbose_name_plural": "Albums",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="CleanupJob",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("external_blob_id", models.CharField(help_text="Blob store identifier to delete", max_length=255, unique=True)),
                ("kind", models.CharField(choices=[("image", "Image"), ("video", "Video")], help_text="Image or video", max_length=10)),
                ("retry_count", models.PositiveIntegerField(default=0, help_text="Number of failed deletion attempts")),
                ("next_retry_at", models.DateTimeField(help_text="Earliest time of the next deletion attempt")),
                ("last_error", models.TextField(blank=True, help_text="Error from the most recent failed attempt", null=True)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("completed", "Completed"), ("failed", "Failed")], default="pending", help_text="Lifecycle state", max_length=20)),
            ],
            options={
                "verbose_name": "Cleanup Job",
                "verbose_name_plural": "Cleanup Jobs",
                "ordering": ["created_at"],
                "indexes": [models.Index(fields=["status", "next_retry_at"], name="idx_cleanup_due")],
            },
        ),
        migrations.CreateModel(
            name="MediaAsset",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("external_blob_id", models.CharField(help_text="Identifier of the stored bytes in the blob store", max_length=255, unique=True)),
                ("kind", models.CharField(choices=[("image", "Image"), ("video", "Video")], help_text="Image or video", max_length=10)),
                ("url", models.URLField(help_text="Delivery URL for the asset", max_length=500)),
                ("thumbnail_url", models.URLField(blank=True, help_text="Thumbnail delivery URL", max_length=500, null=True)),
                ("file_name", models.CharField(blank=True, help_text="Original file name supplied by the client", max_length=255, null=True)),
                ("is_main_image", models.BooleanField(default=False, help_text="Whether this asset is the album cover")),
                ("display_order", models.IntegerField(default=0, help_text="Position within the album (ascending)")),
                ("duration_seconds", models.PositiveIntegerField(blank=True, help_text="Video duration in seconds", null=True)),
                ("album", models.ForeignKey(help_text="Album this asset belongs to", on_delete=django.db.models.deletion.CASCADE, related_name="media_assets", to="media.album")),
            ],
            options={
                "verbose_name": "Media Asset",
                "verbose_name_plural": "Media Assets",
                "ordering": ["display_order", "-created_at"],
                "indexes": [models.Index(fields=["album", "display_order"], name="idx_asset_album_order")],
                "constraints": [models.UniqueConstraint(condition=models.Q(("is_main_image", True)), fields=("album",), name="unique_main_image_per_album")],
            },
        ),
    ]
