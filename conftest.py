"""
Root pytest configuration for the Django project.

This module configures pytest-django and provides project-wide fixtures.
App-specific fixtures are defined in each app's tests/conftest.py.

Tests run without Docker: SQLite in memory and a local-memory cache stand in
for PostgreSQL and Redis unless DATABASE_URL is set explicitly.
"""

import os

import django

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite://:memory:")
os.environ.setdefault("DEBUG", "True")


def pytest_configure():
    """Configure Django settings before tests run."""
    from django.conf import settings

    settings.CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            "LOCATION": "media-tests",
        }
    }

    # Use fast password hasher for tests (PBKDF2 is too slow with 870K iterations)
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]

    settings.SECURE_SSL_REDIRECT = False
    settings.CELERY_TASK_ALWAYS_EAGER = True

    # Never reach the real blob store or moderation API from tests
    settings.CLOUDFLARE_ACCOUNT_ID = ""
    settings.CLOUDFLARE_MEDIA_API_TOKEN = ""
    settings.SIGHTENGINE_API_USER = ""
    settings.SIGHTENGINE_API_SECRET = ""

    django.setup()
