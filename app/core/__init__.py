"""
Core Application - Infrastructure & Base Classes

Generic building blocks the domain apps extend. No album or media logic
lives here.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Services (import from core.services):
    - BaseService: Base class for the service layer (logger, durable atomic batches)
    - ServiceResult: Result wrapper carrying (error_code, error, status_code)

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes and HTTP status
    - ValidationError: Input validation failures (400)
    - NotFoundError: Resource not found (404)
    - PermissionDeniedError: Authorization failures (403)
    - ConflictError: State conflicts (409)
    - ExternalServiceError: Third-party service failures (502)

Protocols (import from core.protocols):
    - KeyValueStore: Cache interface with atomic add, used for idempotency

Idempotency (import from core.idempotency):
    - IdempotencyGuard: Dedupe and replay requests by client key
    - idempotent: DRF view method decorator requiring an Idempotency-Key header

Usage:
    from core.models import BaseModel
    from core.services import BaseService, ServiceResult
    from core.exceptions import ValidationError, NotFoundError
    from core.idempotency import idempotent

Note:
    Models and the idempotency module are NOT imported here: they need the
    app registry and settings. Import them directly from their modules.
"""

# Services (no Django model dependencies)
from .services import BaseService, ServiceResult

# Exceptions (no Django dependencies)
from .exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

# Protocols (no Django dependencies)
from .protocols import KeyValueStore

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Exceptions
    "BaseApplicationError",
    "ValidationError",
    "NotFoundError",
    "PermissionDeniedError",
    "ConflictError",
    "ExternalServiceError",
    # Protocols
    "KeyValueStore",
]
