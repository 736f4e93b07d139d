"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with logging and durable transaction helpers

Service Layer Philosophy:
    Services encapsulate business logic separate from views and models.
    Views handle HTTP concerns, models handle data, services handle logic.
    Services are plain instances whose collaborators are passed to the
    constructor, so tests can hand them fakes without patching.

Pattern Comparison:
    - ServiceResult: Use for expected failures (validation, quota, moderation)
    - Exceptions: Use for unexpected failures (database errors, bugs)

Usage:
    from core.services import BaseService, ServiceResult

    class AlbumTitleService(BaseService):
        def rename(self, album_id: int, title: str) -> ServiceResult[Album]:
            album = Album.objects.filter(pk=album_id).first()
            if album is None:
                return ServiceResult.failure(
                    "Album not found",
                    error_code="ALBUM_NOT_FOUND",
                    status_code=404,
                )

            with self.atomic():
                album.title = title
                album.save(update_fields=["title", "updated_at"])

            self.get_logger().info("Renamed album", extra={"album_id": album_id})
            return ServiceResult.success(album)

    # In view
    result = service.rename(album_id, title)
    if result.success:
        return Response(AlbumSerializer(result.data).data, status=200)
    return Response(result.to_response(), status=result.status_code)

Related:
    - core.exceptions: Error taxonomy; ServiceResult.from_error() converts it
    - core.idempotency: Replays the responses built from these results
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

    from core.exceptions import BaseApplicationError

# Generic type for ServiceResult data
T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Provides consistent success/failure handling without exceptions.
    Use this for expected failures (validation errors, business rule violations).

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
        status_code: HTTP status the boundary should answer with
        errors: Field-level errors for validation failures

    Usage:
        # Success case
        return ServiceResult.success(asset, status_code=201)

        # Failure case
        return ServiceResult.failure("Upload failed", "UPLOAD_FAILED", status_code=502)

        # Check result
        result = orchestrator.upload_single_media(...)
        if result.success:
            asset = result.data
        else:
            logger.warning("Rejected: %s (%s)", result.error, result.error_code)

    Note:
        The (error_code, error, status_code) triple is what clients see, and
        what the idempotency guard decides to cache or not.
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    status_code: int = 200
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def ok(cls, data: T, status_code: int = 200) -> ServiceResult[T]:
        """Alias for success() - use whichever reads better in context."""
        return cls(success=True, data=data, status_code=status_code)

    @classmethod
    def success(cls, data: T, status_code: int = 200) -> ServiceResult[T]:
        """
        Create a successful result.

        Args:
            data: The result data
            status_code: HTTP status for the boundary (200 unless created)

        Returns:
            ServiceResult with success=True and data set
        """
        return cls(success=True, data=data, status_code=status_code)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
        status_code: int = 400,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)
            status_code: HTTP status for the boundary (400 by default)

        Returns:
            ServiceResult with success=False and error details

        Example:
            return ServiceResult.failure(
                "Media not found", "MEDIA_NOT_FOUND", status_code=404
            )
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
            status_code=status_code,
        )

    @classmethod
    def from_error(cls, exc: BaseApplicationError) -> ServiceResult[T]:
        """
        Create a failed result from an application error.

        Carries the error's code and HTTP status over unchanged, which keeps
        the mapping from the exception taxonomy to responses in one place.

        Example:
            try:
                validator.check(album, kind, duration)
            except QuotaExceededError as e:
                return ServiceResult.from_error(e)
        """
        return cls(
            success=False,
            error=exc.message,
            error_code=exc.error_code,
            status_code=exc.http_status,
        )

    @classmethod
    def from_exception(
        cls,
        exc: Exception,
        error_code: str | None = None,
        status_code: int = 500,
    ) -> ServiceResult[T]:
        """
        Create a failed result from an unexpected exception.

        Args:
            exc: The caught exception
            error_code: Optional error code (defaults to exception class name)
            status_code: HTTP status (defaults to 500)
        """
        return cls(
            success=False,
            error=str(exc),
            error_code=error_code or exc.__class__.__name__.upper(),
            status_code=status_code,
        )

    def to_response(self) -> dict[str, Any]:
        """
        Convert to API response format.

        Returns:
            Dict with success status and data or error details
        """
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {
            "success": False,
            "error": self.error,
        }
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        return response

    def map(self, func) -> ServiceResult:
        """
        Transform the data if successful.

        Example:
            result = orchestrator.upload_single_media(...)
            serialized = result.map(lambda a: MediaAssetSerializer(a).data)
        """
        if self.success and self.data is not None:
            return ServiceResult.success(func(self.data), status_code=self.status_code)
        return self  # type: ignore

    def __bool__(self) -> bool:
        """Allow using result in boolean context."""
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Durable database transactions for multi-row invariants
    - Exception to ServiceResult conversion with logging

    Usage:
        class BatchPublisher(BaseService):
            def __init__(self, cleanup_queue):
                self.cleanup_queue = cleanup_queue

            def publish(self, album_id, changes):
                with self.atomic():
                    ...  # every statement commits or none does

    Design Notes:
        - Collaborators are injected through __init__
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls, using: str | None = None) -> Generator[None, None, None]:
        """
        Execute operations as one all-or-nothing database batch.

        The block is durable: it must be the outermost transaction, and
        Django raises RuntimeError if it is opened inside another atomic
        block. Multi-row invariants (one main image per album, display order)
        depend on the whole batch committing together, so it is never
        silently folded into a caller's savepoint.

        Example:
            with self.atomic():
                MediaAsset.objects.filter(pk=a).update(display_order=0)
                MediaAsset.objects.filter(pk=b).update(display_order=1)
                # If the second update raises, the first is rolled back
        """
        with transaction.atomic(using=using, durable=True):
            yield

    @classmethod
    def handle_exception(
        cls,
        exc: Exception,
        context: str = "",
        error_code: str | None = None,
        status_code: int = 500,
        log_level: int = logging.ERROR,
    ) -> ServiceResult:
        """
        Convert exception to ServiceResult with logging.

        Args:
            exc: The caught exception
            context: Additional context for logging
            error_code: Code to report instead of the exception class name
            status_code: HTTP status for the result
            log_level: Logging level (default ERROR)
        """
        logger = cls.get_logger()
        message = f"{context}: {exc}" if context else str(exc)
        logger.log(log_level, message, exc_info=True)
        return ServiceResult.from_exception(exc, error_code, status_code)
