"""
Blob store client for Cloudflare Images (images) and Stream (videos).

The catalog only keeps identifiers and delivery URLs; the bytes live here.
Uploads and deletes are independent of the database, which is why a failed
catalog write after a successful upload leaves an orphan that the cleanup
queue later deletes.

Usage:
    from media.services.blob_store import CloudflareMediaClient

    client = CloudflareMediaClient(account_id="acc", api_token="token")
    result = client.upload_image(payload)
    if result.success:
        print(result.external_id, result.url)

    client.delete_asset(result.external_id, "image")  # True on 2xx

Delivery URL formats:
    image:     https://imagedelivery.net/<account hash>/<id>/standard
    thumbnail: https://imagedelivery.net/<account hash>/<id>/thumb
    video:     https://videodelivery.net/<uid>/manifest/video.m3u8
    thumbnail: https://videodelivery.net/<uid>/thumbnails/thumbnail.jpg?time=1s&width=300
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol
from urllib.parse import urlparse

import httpx

if TYPE_CHECKING:
    from typing import Any

    from media.services.payload import MediaPayload

logger = logging.getLogger(__name__)

CLOUDFLARE_API_BASE = "https://api.cloudflare.com/client/v4"
IMAGE_DELIVERY_BASE = "https://imagedelivery.net"
VIDEO_DELIVERY_BASE = "https://videodelivery.net"
NOT_CONFIGURED_ERROR = "Cloudflare media not configured"


@dataclass
class UploadResult:
    """
    Result of a blob upload.

    Attributes:
        success: Whether the blob store accepted the file.
        external_id: Image id or Stream uid.
        url: Delivery URL.
        thumbnail_url: Thumbnail delivery URL.
        duration_seconds: Video length reported by Stream, rounded.
        error: Failure message from the blob store.
    """

    success: bool
    external_id: str | None = None
    url: str | None = None
    thumbnail_url: str | None = None
    duration_seconds: int | None = None
    error: str | None = None

    @classmethod
    def failed(cls, error: str) -> UploadResult:
        """Create a failed upload result."""
        return cls(success=False, error=error)


class BlobStoreClient(Protocol):
    """Contract the lifecycle services depend on."""

    def upload_image(self, payload: MediaPayload) -> UploadResult: ...

    def upload_video(self, payload: MediaPayload) -> UploadResult: ...

    def delete_asset(self, external_id: str, kind: str) -> bool:
        """
        Delete a blob. False on any failure, including "already gone".

        Callers treat False as retryable.
        """
        ...


class CloudflareMediaClient:
    """
    Cloudflare Images and Stream over HTTP.

    Transport failures never raise: uploads return a failed UploadResult and
    deletes return False. An unconfigured client (no account or token) fails
    every call the same way.
    """

    def __init__(
        self,
        account_id: str = "",
        api_token: str = "",
        http_client: httpx.Client | None = None,
        timeout: float = 60,
        api_base: str = CLOUDFLARE_API_BASE,
    ):
        self.account_id = account_id
        self.api_token = api_token
        self.api_base = api_base.rstrip("/")
        self._client = http_client or httpx.Client(timeout=timeout)

        if not self.is_configured:
            logger.warning("Cloudflare media is not configured; uploads will fail")

    @property
    def is_configured(self) -> bool:
        return bool(self.account_id and self.api_token)

    @property
    def images_endpoint(self) -> str:
        return f"{self.api_base}/accounts/{self.account_id}/images/v1"

    @property
    def stream_endpoint(self) -> str:
        return f"{self.api_base}/accounts/{self.account_id}/stream"

    def upload_image(self, payload: MediaPayload) -> UploadResult:
        """Upload an image to Cloudflare Images."""
        if not self.is_configured:
            return UploadResult.failed(NOT_CONFIGURED_ERROR)

        body = self._post_file(self.images_endpoint, payload, "image.jpg")
        if isinstance(body, str):
            logger.error("Cloudflare image upload failed", extra={"error": body})
            return UploadResult.failed(body)

        result = body["result"]
        image_id = str(result["id"])
        variants = result.get("variants") or []
        account_hash = _account_hash(variants[0] if variants else None)

        if account_hash:
            base_url = f"{IMAGE_DELIVERY_BASE}/{account_hash}/{image_id}"
            url, thumbnail_url = f"{base_url}/standard", f"{base_url}/thumb"
        else:
            url, thumbnail_url = (variants[0] if variants else ""), None

        logger.info("Uploaded image to Cloudflare", extra={"external_id": image_id})
        return UploadResult(
            success=True,
            external_id=image_id,
            url=url,
            thumbnail_url=thumbnail_url,
        )

    def upload_video(self, payload: MediaPayload) -> UploadResult:
        """Upload a video to Cloudflare Stream."""
        if not self.is_configured:
            return UploadResult.failed(NOT_CONFIGURED_ERROR)

        body = self._post_file(self.stream_endpoint, payload, "video.mp4", id_key="uid")
        if isinstance(body, str):
            logger.error("Cloudflare video upload failed", extra={"error": body})
            return UploadResult.failed(body)

        result = body["result"]
        uid = str(result["uid"])
        duration = result.get("duration")
        duration_seconds = (
            round(duration)
            if isinstance(duration, (int, float)) and duration > 0
            else None
        )

        logger.info("Uploaded video to Cloudflare Stream", extra={"external_id": uid})
        return UploadResult(
            success=True,
            external_id=uid,
            url=f"{VIDEO_DELIVERY_BASE}/{uid}/manifest/video.m3u8",
            thumbnail_url=(
                f"{VIDEO_DELIVERY_BASE}/{uid}/thumbnails/thumbnail.jpg?time=1s&width=300"
            ),
            duration_seconds=duration_seconds,
        )

    def delete_asset(self, external_id: str, kind: str) -> bool:
        """Delete an image or video; True only on a 2xx answer."""
        if not self.is_configured:
            return False

        if kind == "video":
            target = f"{self.stream_endpoint}/{external_id}"
        else:
            image_id = _image_id(external_id)
            if not image_id:
                logger.error(
                    "Cannot derive image id for deletion",
                    extra={"external_id": external_id},
                )
                return False
            target = f"{self.images_endpoint}/{image_id}"

        try:
            response = self._client.delete(target, headers=self._auth_headers())
        except httpx.HTTPError as e:
            logger.error(
                "Cloudflare delete request failed",
                extra={"external_id": external_id, "kind": kind, "error": str(e)},
            )
            return False

        if not response.is_success:
            logger.error(
                "Cloudflare delete failed",
                extra={
                    "external_id": external_id,
                    "kind": kind,
                    "status_code": response.status_code,
                },
            )
        return response.is_success

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_token}"}

    def _post_file(
        self,
        endpoint: str,
        payload: MediaPayload,
        default_name: str,
        id_key: str = "id",
    ) -> dict[str, Any] | str:
        """POST a file; return the parsed body, or an error message string."""
        files = {
            "file": (payload.file_name or default_name, payload.content, payload.content_type)
        }
        try:
            response = self._client.post(endpoint, headers=self._auth_headers(), files=files)
        except httpx.HTTPError as e:
            return str(e) or "Upload failed"

        try:
            body = response.json()
        except ValueError:
            body = None

        result = body.get("result") if isinstance(body, dict) else None
        if (
            not isinstance(body, dict)
            or not response.is_success
            or not body.get("success")
            or not isinstance(result, dict)
            or not result.get(id_key)
        ):
            errors = body.get("errors") if isinstance(body, dict) else None
            if errors and isinstance(errors[0], dict) and errors[0].get("message"):
                return errors[0]["message"]
            return response.reason_phrase or "Upload failed"
        return body


def _account_hash(variant: str | None) -> str | None:
    if not variant:
        return None
    segments = [s for s in urlparse(variant).path.split("/") if s]
    return segments[0] if segments else None


def _image_id(identifier: str) -> str | None:
    """Accept a bare image id or a delivery URL ending in /<id>/<variant>."""
    if not identifier:
        return None
    if "/" not in identifier:
        return identifier
    segments = [s for s in urlparse(identifier).path.split("/") if s]
    return segments[-2] if len(segments) >= 2 else None
