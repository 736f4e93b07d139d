"""
Project-wide pytest fixtures and test markers.

Fixtures:
    - api_client: Unauthenticated DRF client
    - user / other_user / staff_user: Users from the default auth model
    - authenticated_client / staff_client: Clients carrying a JWT access token
    - clear_caches: Empties the cache and the service container between tests
"""

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import caches
from rest_framework.test import APIClient


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_views.py, test_tasks.py, test_orchestrator.py, etc. → integration
    - test_idempotency.py, test_blob_store.py, test_moderation.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    unit_patterns = [
        "test_models.py",
        "test_service_result.py",
        "test_idempotency.py",
        "test_blob_store.py",
        "test_moderation.py",
        "test_compression.py",
    ]

    for item in items:
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration"}:
            continue

        filename = str(item.fspath).split("/")[-1]
        if any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)


def _client_for(user) -> APIClient:
    from rest_framework_simplejwt.tokens import RefreshToken

    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
    return client


@pytest.fixture(autouse=True)
def clear_caches():
    """Start every test with an empty cache and a freshly wired container."""
    from media.services.container import get_media_services

    caches["default"].clear()
    get_media_services.cache_clear()
    yield
    get_media_services.cache_clear()


@pytest.fixture
def api_client() -> APIClient:
    """Return unauthenticated API client."""
    return APIClient()


@pytest.fixture
def user(db):
    """Create a regular user."""
    return get_user_model().objects.create_user(
        username="album-owner", email="owner@example.com", password="testpass123"
    )


@pytest.fixture
def other_user(db):
    """Create a second user who owns nothing the tests touch."""
    return get_user_model().objects.create_user(
        username="someone-else", email="else@example.com", password="testpass123"
    )


@pytest.fixture
def staff_user(db):
    """Create a staff user."""
    return get_user_model().objects.create_user(
        username="operator", email="ops@example.com", password="testpass123", is_staff=True
    )


@pytest.fixture
def authenticated_client(user) -> APIClient:
    """Return API client authenticated with JWT token."""
    return _client_for(user)


@pytest.fixture
def staff_client(staff_user) -> APIClient:
    """Return API client authenticated as staff."""
    return _client_for(staff_user)
