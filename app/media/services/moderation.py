"""
Content moderation through the Sightengine API.

This module provides the moderation gateway used before any upload:
- Submits images to /check.json and videos to /video/check-sync.json
- Rejects when a nudity or gore score is above the threshold
- Retries an image once, recompressed, when Sightengine reports it too large
- Approves everything when Sightengine credentials are not configured

Usage:
    from media.services.moderation import ModerationGateway, ModerationStatus

    gateway = ModerationGateway(api_user="u", api_secret="s", compressor=ImageCompressor())
    result = gateway.moderate(payload)

    if result.status == ModerationStatus.APPROVED:
        # Safe to upload the original bytes
    elif result.status == ModerationStatus.REJECTED:
        print(f"Rejected: {result.reason}")
    elif result.status == ModerationStatus.COMPRESSION_FAILED:
        # File too large for moderation and could not be shrunk
    elif result.status == ModerationStatus.UNAVAILABLE:
        # Sightengine failed; the client may retry

The gateway never raises for service failures. Every outcome is a
ModerationResult.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

import httpx

from media.services.compression import CompressionError

if TYPE_CHECKING:
    from typing import Any

    from media.services.compression import ImageCompressor
    from media.services.payload import MediaPayload

logger = logging.getLogger(__name__)

SIGHTENGINE_BASE_URL = "https://api.sightengine.com/1.0"
SIGHTENGINE_MODELS = "nudity-2.0,wad,gore"
IMAGE_TOO_LARGE_ERROR_CODE = 14
DEFAULT_THRESHOLD = 0.9


class ModerationStatus(str, Enum):
    """Outcome of a moderation check."""

    APPROVED = "approved"
    REJECTED = "rejected"
    COMPRESSION_FAILED = "compression_failed"
    UNAVAILABLE = "unavailable"


@dataclass
class ModerationResult:
    """
    Result of a moderation check.

    Attributes:
        status: Outcome of the check.
        reason: Why the file was not approved.
        scores: Category scores returned by Sightengine.
        compressed: Whether the verdict was reached on recompressed bytes.
        compressed_payload: The recompressed bytes, when compressed is True.
    """

    status: ModerationStatus
    reason: str | None = None
    scores: dict[str, float] = field(default_factory=dict)
    compressed: bool = False
    compressed_payload: MediaPayload | None = None

    @property
    def approved(self) -> bool:
        return self.status == ModerationStatus.APPROVED

    @classmethod
    def approve(cls, scores: dict[str, float] | None = None) -> ModerationResult:
        """Create an approved result."""
        return cls(status=ModerationStatus.APPROVED, scores=scores or {})

    @classmethod
    def reject(cls, reason: str, scores: dict[str, float] | None = None) -> ModerationResult:
        """Create a content-based rejection."""
        return cls(status=ModerationStatus.REJECTED, reason=reason, scores=scores or {})

    @classmethod
    def compression_failed(cls, reason: str) -> ModerationResult:
        """Create a rejection caused by the size retry, not the content."""
        return cls(status=ModerationStatus.COMPRESSION_FAILED, reason=reason)

    @classmethod
    def unavailable(cls, reason: str = "Moderation service error") -> ModerationResult:
        """Create a result for a failed moderation call."""
        return cls(status=ModerationStatus.UNAVAILABLE, reason=reason)


class ModerationGateway:
    """
    Sightengine client with the single compression retry.

    Example:
        gateway = ModerationGateway(
            api_user=settings.SIGHTENGINE_API_USER,
            api_secret=settings.SIGHTENGINE_API_SECRET,
            compressor=ImageCompressor(quality=90),
        )
        if not gateway.moderate(payload).approved:
            ...
    """

    def __init__(
        self,
        api_user: str = "",
        api_secret: str = "",
        compressor: ImageCompressor | None = None,
        threshold: float = DEFAULT_THRESHOLD,
        http_client: httpx.Client | None = None,
        timeout: float = 30,
        base_url: str = SIGHTENGINE_BASE_URL,
    ):
        """
        Initialize the gateway.

        Args:
            api_user: Sightengine API user; empty disables moderation.
            api_secret: Sightengine API secret; empty disables moderation.
            compressor: Used for the "image too large" retry. None means the
                retry ends in a COMPRESSION_FAILED result.
            threshold: Scores strictly above this reject the file.
            http_client: Client to send requests with (tests pass a mock transport).
            timeout: Request timeout in seconds for the default client.
            base_url: Sightengine API root.
        """
        self.api_user = api_user
        self.api_secret = api_secret
        self.compressor = compressor
        self.threshold = threshold
        self.base_url = base_url.rstrip("/")
        self._client = http_client or httpx.Client(timeout=timeout)

        if not self.is_configured:
            logger.warning("Sightengine is not configured; all media will be approved")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_user and self.api_secret)

    def moderate(self, payload: MediaPayload) -> ModerationResult:
        """Check an image or video, chosen by the payload's content type."""
        if payload.is_video:
            return self.moderate_video(payload)
        return self.moderate_image(payload)

    def moderate_image(self, payload: MediaPayload) -> ModerationResult:
        """
        Check an image, retrying once with recompressed bytes if too large.

        The retry happens at most once per call; a second "too large" answer
        is treated as a service error.
        """
        if not self.is_configured:
            return ModerationResult.approve()

        submitted = payload
        compressed = False

        while True:
            try:
                response = self._submit("check.json", submitted, {})
                body = response.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.error(
                    "Sightengine image moderation error",
                    extra={"file_name": payload.file_name, "error": str(e)},
                )
                return ModerationResult.unavailable()

            if _error_code(body) == IMAGE_TOO_LARGE_ERROR_CODE and not compressed:
                logger.warning(
                    "Sightengine rejected image as too large; compressing and retrying",
                    extra={"file_name": payload.file_name, "original_bytes": payload.size},
                )
                if self.compressor is None:
                    logger.error("Cannot compress image: no compressor configured")
                    return ModerationResult.compression_failed(
                        "Image compression unavailable (server configuration error)"
                    )
                try:
                    submitted = self.compressor.compress(payload)
                except CompressionError as e:
                    logger.error(
                        "Failed to compress image for moderation",
                        extra={"file_name": payload.file_name, "error": str(e)},
                    )
                    return ModerationResult.compression_failed(
                        "Unable to compress image for moderation retry"
                    )
                compressed = True
                continue

            if not response.is_success or _is_failure(body):
                logger.error(
                    "Sightengine image moderation failed",
                    extra={
                        "status_code": response.status_code,
                        "file_name": payload.file_name,
                        "error_code": _error_code(body),
                    },
                )
                return ModerationResult.unavailable()

            result = self._evaluate(body)
            if compressed:
                result.compressed = True
                result.compressed_payload = submitted
            return result

    def moderate_video(self, payload: MediaPayload) -> ModerationResult:
        """Check a video synchronously, scoring its first result frame."""
        if not self.is_configured:
            return ModerationResult.approve()

        try:
            response = self._submit("video/check-sync.json", payload, {"mode": "sync"})
            if not response.is_success:
                logger.error(
                    "Sightengine video moderation failed",
                    extra={"status_code": response.status_code, "file_name": payload.file_name},
                )
                return ModerationResult.unavailable()
            body = response.json()
            if _is_failure(body):
                logger.error(
                    "Sightengine video moderation returned an error",
                    extra={"error_code": _error_code(body), "file_name": payload.file_name},
                )
                return ModerationResult.unavailable()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(
                "Sightengine video moderation error",
                extra={"file_name": payload.file_name, "error": str(e)},
            )
            return ModerationResult.unavailable()

        results = body.get("results") if isinstance(body, dict) else None
        if isinstance(results, list):
            body = results[0] if results else {}
        if not isinstance(body, dict):
            return ModerationResult.unavailable()
        return self._evaluate(body)

    def _submit(
        self, endpoint: str, payload: MediaPayload, extra: dict[str, str]
    ) -> httpx.Response:
        data = {
            "api_user": self.api_user,
            "api_secret": self.api_secret,
            "models": SIGHTENGINE_MODELS,
            **extra,
        }
        files = {"media": (payload.file_name, payload.content, payload.content_type)}
        return self._client.post(f"{self.base_url}/{endpoint}", data=data, files=files)

    def _evaluate(self, body: dict[str, Any]) -> ModerationResult:
        scores: dict[str, float] = {}
        reasons: list[str] = []

        nudity = _score(body, "nudity", "sexual")
        if nudity is not None:
            scores["nudity"] = float(nudity)
            if nudity > self.threshold:
                reasons.append(f"Explicit content detected (score: {nudity:.2f})")

        gore = _score(body, "gore", "prob")
        if gore is not None:
            scores["gore"] = float(gore)
            if gore > self.threshold:
                reasons.append(f"Violent content detected (score: {gore:.2f})")

        if reasons:
            return ModerationResult.reject("; ".join(reasons), scores)
        return ModerationResult.approve(scores)


def _error_code(body: Any) -> int | None:
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"].get("code")
    return None


def _is_failure(body: Any) -> bool:
    if not isinstance(body, dict):
        return True
    return body.get("status") == "failure" or _error_code(body) is not None


def _score(body: dict[str, Any], category: str, key: str) -> float | None:
    section = body.get(category)
    if not isinstance(section, dict):
        return None
    value = section.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)
