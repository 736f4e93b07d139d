"""
Protocol definitions for generic infrastructure services.

Available Protocols:
    KeyValueStore: Durable key-value store with per-key expiry

Usage:
    from django.core.cache import caches
    from core.protocols import KeyValueStore

    store: KeyValueStore = caches["default"]

Django cache backends (django-redis in production, locmem in tests) satisfy
the protocol without explicit inheritance.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from typing import Any


@runtime_checkable
class KeyValueStore(Protocol):
    """
    Protocol for the key-value store behind request idempotency.

    Compatible with Django's cache interface. ``add`` must be atomic: it only
    writes when the key is absent and reports whether it did.
    """

    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value or ``default``."""
        ...

    def add(self, key: str, value: Any, timeout: int | None = None) -> bool:
        """Store the value only if the key is absent; True when stored."""
        ...

    def set(self, key: str, value: Any, timeout: int | None = None) -> None:
        """Store the value, replacing any previous one."""
        ...

    def delete(self, key: str) -> bool:
        """Remove the key; True if it existed."""
        ...
