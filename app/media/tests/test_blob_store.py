"""
Tests for the Cloudflare Images / Stream client.

Uses httpx.MockTransport so no request leaves the process.

Tests cover:
- Image and video upload parsing and delivery URLs
- Failure bodies and transport errors never raise
- Deletion of images (by id or delivery URL) and videos
- Unconfigured client
"""

from __future__ import annotations

import httpx
import pytest

from media.services.blob_store import CloudflareMediaClient, UploadResult

API = "https://api.cloudflare.com/client/v4/accounts/acct-1"


def _client(handler) -> CloudflareMediaClient:
    return CloudflareMediaClient(
        account_id="acct-1",
        api_token="token-1",
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


class TestImageUpload:
    """Test uploads to Cloudflare Images."""

    def test_success_builds_delivery_urls(self, jpeg_payload):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "result": {
                        "id": "img-123",
                        "variants": ["https://imagedelivery.net/HASH42/img-123/public"],
                    },
                },
            )

        result = _client(handler).upload_image(jpeg_payload)

        assert result == UploadResult(
            success=True,
            external_id="img-123",
            url="https://imagedelivery.net/HASH42/img-123/standard",
            thumbnail_url="https://imagedelivery.net/HASH42/img-123/thumb",
        )
        assert str(seen[0].url) == f"{API}/images/v1"
        assert seen[0].headers["Authorization"] == "Bearer token-1"

    def test_without_variants_falls_back_to_empty_url(self, jpeg_payload):
        def handler(request):
            return httpx.Response(200, json={"success": True, "result": {"id": "img-9"}})

        result = _client(handler).upload_image(jpeg_payload)

        assert result.success
        assert result.url == ""
        assert result.thumbnail_url is None

    def test_error_message_from_body(self, jpeg_payload):
        def handler(request):
            return httpx.Response(
                400,
                json={"success": False, "errors": [{"code": 5400, "message": "Bad image"}]},
            )

        result = _client(handler).upload_image(jpeg_payload)

        assert result.success is False
        assert result.error == "Bad image"

    def test_non_json_body(self, jpeg_payload):
        def handler(request):
            return httpx.Response(502, content=b"<html>Bad gateway</html>")

        result = _client(handler).upload_image(jpeg_payload)

        assert result.success is False
        assert result.error == "Bad Gateway"

    def test_transport_error(self, jpeg_payload):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        result = _client(handler).upload_image(jpeg_payload)

        assert result.success is False
        assert "connection refused" in result.error


class TestVideoUpload:
    """Test uploads to Cloudflare Stream."""

    @pytest.mark.parametrize(
        ("reported", "expected"),
        [(12.6, 13), (0, None), (-1, None), (None, None)],
    )
    def test_duration_rounding(self, video_payload, reported, expected):
        def handler(request):
            return httpx.Response(
                200,
                json={"success": True, "result": {"uid": "vid-77", "duration": reported}},
            )

        result = _client(handler).upload_video(video_payload)

        assert result.duration_seconds == expected

    def test_delivery_urls(self, video_payload):
        def handler(request):
            assert str(request.url) == f"{API}/stream"
            return httpx.Response(200, json={"success": True, "result": {"uid": "vid-77"}})

        result = _client(handler).upload_video(video_payload)

        assert result.external_id == "vid-77"
        assert result.url == "https://videodelivery.net/vid-77/manifest/video.m3u8"
        assert result.thumbnail_url == (
            "https://videodelivery.net/vid-77/thumbnails/thumbnail.jpg?time=1s&width=300"
        )

    def test_missing_uid_is_failure(self, video_payload):
        def handler(request):
            return httpx.Response(200, json={"success": True, "result": {}})

        assert _client(handler).upload_video(video_payload).success is False


class TestDelete:
    """Test blob deletion."""

    def test_delete_image_by_id(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"success": True})

        assert _client(handler).delete_asset("img-123", "image") is True
        assert seen[0].method == "DELETE"
        assert str(seen[0].url) == f"{API}/images/v1/img-123"

    def test_delete_image_by_delivery_url(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"success": True})

        client = _client(handler)
        assert client.delete_asset("https://imagedelivery.net/HASH42/img-123/standard", "image")
        assert str(seen[0].url) == f"{API}/images/v1/img-123"

    def test_delete_video(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"success": True})

        assert _client(handler).delete_asset("vid-77", "video") is True
        assert str(seen[0].url) == f"{API}/stream/vid-77"

    def test_not_found_is_false(self):
        def handler(request):
            return httpx.Response(404, json={"success": False})

        assert _client(handler).delete_asset("img-gone", "image") is False

    def test_transport_error_is_false(self):
        def handler(request):
            raise httpx.ReadTimeout("slow")

        assert _client(handler).delete_asset("img-1", "image") is False


class TestUnconfigured:
    """Test a client without account or token."""

    def test_uploads_fail_and_deletes_return_false(self, jpeg_payload, video_payload):
        def handler(request):
            raise AssertionError("no request expected")

        client = CloudflareMediaClient(
            http_client=httpx.Client(transport=httpx.MockTransport(handler))
        )

        assert client.upload_image(jpeg_payload).error == "Cloudflare media not configured"
        assert client.upload_video(video_payload).success is False
        assert client.delete_asset("img-1", "image") is False
