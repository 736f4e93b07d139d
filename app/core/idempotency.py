"""
Request-level idempotency for unsafe API endpoints.

Clients retry uploads and publishes after timeouts without knowing whether
the first attempt landed. Each such request carries an ``Idempotency-Key``
header; the guard records the first response under that key and replays it
for every duplicate, so a retried upload never creates a second row.

Record lifecycle:
    (absent) --add--> processing --handler < 500--> completed --TTL--> (absent)
                          |
                          +--handler >= 500 or raises--> (absent)

    - processing lives for IDEMPOTENCY_PROCESSING_TTL_SECONDS, which bounds
      how long a crashed worker can block retries of the same key
    - completed lives for IDEMPOTENCY_COMPLETED_TTL_SECONDS, which bounds
      how long the stored response is replayed
    - 5xx responses are never stored, the client must be able to retry them
    - 4xx responses are stored, a retry gets the identical rejection without
      re-running validation or moderation

Usage:
    from core.idempotency import idempotent

    class UploadMediaView(APIView):
        @idempotent()
        def post(self, request):
            ...
            return Response(data, status=201)

Related:
    - core.protocols.KeyValueStore: Store contract (Django cache)
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.cache import caches
from rest_framework.response import Response

from core.exceptions import BaseApplicationError, ConflictError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import Any

    from core.protocols import KeyValueStore

logger = logging.getLogger(__name__)

IDEMPOTENCY_HEADER = "Idempotency-Key"
REPLAY_HEADER = "Idempotent-Replayed"
KEY_PREFIX = "idempotency"


class IdempotencyKeyMissingError(ValidationError):
    """Raised when an idempotent endpoint is called without a key."""

    default_error_code = "IDEMPOTENCY_KEY_REQUIRED"


class IdempotencyInProgressError(ConflictError):
    """Raised when a duplicate arrives while the first request is running."""

    default_error_code = "IDEMPOTENCY_IN_PROGRESS"


@dataclass
class IdempotencyRecord:
    """Stored state for one (endpoint, client key) pair."""

    status: str
    cached_status: int | None = None
    cached_body: Any = None

    PROCESSING = "processing"
    COMPLETED = "completed"

    @property
    def is_completed(self) -> bool:
        return self.status == self.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        # Bodies may be DRF ReturnDicts; store them as-is
        return {
            "status": self.status,
            "cached_status": self.cached_status,
            "cached_body": self.cached_body,
        }


@dataclass
class IdempotentOutcome:
    """Response produced by the guard, either fresh or replayed."""

    status_code: int
    body: Any
    replayed: bool = False


class IdempotencyGuard:
    """
    Dedupe and replay requests by client-supplied key.

    Attributes:
        store: Key-value store with atomic add (a Django cache)
        processing_ttl: Seconds a processing marker blocks duplicates
        completed_ttl: Seconds a completed response is replayed
    """

    def __init__(
        self,
        store: KeyValueStore,
        processing_ttl: int = 60,
        completed_ttl: int = 86400,
    ):
        self.store = store
        self.processing_ttl = processing_ttl
        self.completed_ttl = completed_ttl

    @classmethod
    def from_settings(cls) -> IdempotencyGuard:
        """Build a guard from the IDEMPOTENCY_* settings."""
        return cls(
            store=caches[settings.IDEMPOTENCY_CACHE_ALIAS],
            processing_ttl=settings.IDEMPOTENCY_PROCESSING_TTL_SECONDS,
            completed_ttl=settings.IDEMPOTENCY_COMPLETED_TTL_SECONDS,
        )

    @staticmethod
    def build_key(endpoint: str, client_key: str) -> str:
        """
        Build the store key for an endpoint path and client key.

        Example:
            >>> IdempotencyGuard.build_key("/api/v1/media/upload/", "abc")
            'idempotency:api:v1:media:upload:abc'
        """
        normalized = endpoint.strip("/").replace("/", ":")
        return f"{KEY_PREFIX}:{normalized}:{client_key}"

    def execute(
        self,
        endpoint: str,
        client_key: str | None,
        handler: Callable[[], tuple[int, Any]],
    ) -> IdempotentOutcome:
        """
        Run ``handler`` at most once per key and replay its result.

        Args:
            endpoint: Request path the key is scoped to
            client_key: Value of the Idempotency-Key header
            handler: Callable returning (status_code, body)

        Raises:
            IdempotencyKeyMissingError: No client key supplied
            IdempotencyInProgressError: A request with this key is running

        Exceptions raised by ``handler`` propagate after the processing
        marker has been cleared.
        """
        if not client_key or not client_key.strip():
            raise IdempotencyKeyMissingError(
                f"{IDEMPOTENCY_HEADER} header is required for this endpoint"
            )

        key = self.build_key(endpoint, client_key.strip())

        existing = self._load(key)
        if existing is not None:
            return self._resolve_duplicate(key, existing)

        marker = IdempotencyRecord(status=IdempotencyRecord.PROCESSING)
        if not self.store.add(key, marker.to_dict(), timeout=self.processing_ttl):
            # Lost the race to a concurrent request with the same key
            existing = self._load(key)
            if existing is None:
                raise IdempotencyInProgressError(
                    "A request with this idempotency key is already being processed"
                )
            return self._resolve_duplicate(key, existing)

        try:
            status_code, body = handler()
        except Exception:
            self.store.delete(key)
            raise

        if status_code >= 500:
            self.store.delete(key)
            logger.info(
                "Not caching server error response",
                extra={"idempotency_key": key, "status_code": status_code},
            )
        else:
            record = IdempotencyRecord(
                status=IdempotencyRecord.COMPLETED,
                cached_status=status_code,
                cached_body=body,
            )
            self.store.set(key, record.to_dict(), timeout=self.completed_ttl)

        return IdempotentOutcome(status_code=status_code, body=body)

    def _load(self, key: str) -> IdempotencyRecord | None:
        raw = self.store.get(key)
        if raw is None:
            return None
        return IdempotencyRecord(**raw)

    def _resolve_duplicate(self, key: str, record: IdempotencyRecord) -> IdempotentOutcome:
        if record.is_completed:
            logger.info("Replaying idempotent response", extra={"idempotency_key": key})
            return IdempotentOutcome(
                status_code=record.cached_status,
                body=record.cached_body,
                replayed=True,
            )
        raise IdempotencyInProgressError(
            "A request with this idempotency key is already being processed"
        )


def idempotent(endpoint: str | None = None):
    """
    Wrap a DRF view method with an IdempotencyGuard.

    Args:
        endpoint: Key scope; defaults to the request path

    Example:
        @idempotent()
        def post(self, request, album_id):
            ...

    Replayed responses carry ``Idempotent-Replayed: true``.
    """

    def decorator(view_method: Callable):
        @functools.wraps(view_method)
        def wrapper(view, request, *args, **kwargs):
            guard = IdempotencyGuard.from_settings()

            def handler() -> tuple[int, Any]:
                response = view_method(view, request, *args, **kwargs)
                return response.status_code, response.data

            try:
                outcome = guard.execute(
                    endpoint or request.path,
                    request.headers.get(IDEMPOTENCY_HEADER),
                    handler,
                )
            except BaseApplicationError as e:
                return Response({"success": False, **e.to_dict()}, status=e.http_status)

            response = Response(outcome.body, status=outcome.status_code)
            if outcome.replayed:
                response[REPLAY_HEADER] = "true"
            return response

        return wrapper

    return decorator
