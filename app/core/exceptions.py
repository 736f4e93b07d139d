"""
Base exception classes for application-wide error handling.

This module provides a standardized exception hierarchy that enables:
- Consistent error responses across the application
- Machine-readable error codes for client handling
- An HTTP status per error class, so services never guess it

Exception Hierarchy:
    BaseApplicationError (base, 500)
    ├── ValidationError - Input validation failures (400)
    ├── NotFoundError - Resource not found (404)
    ├── PermissionDeniedError - Authorization failures (403)
    ├── ConflictError - State conflicts, in-flight duplicates (409)
    └── ExternalServiceError - Third-party service failures (502)

Usage:
    from core.exceptions import ValidationError, NotFoundError

    # Raise with message only
    raise ValidationError("No file provided")

    # Raise with error code for client handling
    raise NotFoundError("Album not found", error_code="ALBUM_NOT_FOUND")

    # Convert to a ServiceResult at the service boundary
    try:
        ...
    except BaseApplicationError as e:
        return ServiceResult.from_error(e)

Note:
    These exceptions are for domain/business logic errors.
    DRF handles API-layer exceptions (serialization, authentication, etc.).
    Domain apps extend this hierarchy (see media.exceptions).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        http_status: Status the HTTP boundary answers with
        details: Additional error context (field errors, metadata, etc.)

    Example:
        try:
            catalog.create(...)
        except CatalogWriteError as e:
            logger.error("Catalog write failed", extra={"code": e.error_code})
            return ServiceResult.from_error(e)
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = 500

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Media not found",
                "error_code": "MEDIA_NOT_FOUND",
                "details": {"media_id": 123}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for:
    - Missing or malformed request input
    - Business rule violations (size ceilings, quotas)
    """

    default_error_code: str = "VALIDATION_ERROR"
    http_status: int = 400


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Example:
        raise NotFoundError(
            f"Media {media_id} not found",
            error_code="MEDIA_NOT_FOUND",
            details={"media_id": media_id},
        )
    """

    default_error_code: str = "NOT_FOUND"
    http_status: int = 404


class PermissionDeniedError(BaseApplicationError):
    """Raised when the caller may not act on the resource."""

    default_error_code: str = "PERMISSION_DENIED"
    http_status: int = 403


class ConflictError(BaseApplicationError):
    """
    Raised when operation conflicts with current resource state.

    Use for:
    - A duplicate request arriving while the first is still in flight
    - Concurrent modification conflicts
    """

    default_error_code: str = "CONFLICT"
    http_status: int = 409


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Use for:
    - Blob store or moderation API failures
    - Network timeouts
    - Unexpected external service responses

    Note:
        Log the original error for debugging but don't expose
        internal details to clients in production.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    http_status: int = 502
