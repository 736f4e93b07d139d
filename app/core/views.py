"""
Core views providing infrastructure endpoints.

health_check reports the two backends every unsafe API call depends on:
the database (catalog, cleanup jobs) and the idempotency cache.
"""

import logging

from django.conf import settings
from django.core.cache import caches
from django.db import DatabaseError, connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)

HEALTH_CHECK_KEY = "health_check"


def health_check(request):
    """
    Health check endpoint for Docker, Kubernetes probes and load balancers.

    Both backends are critical: without the idempotency cache no upload,
    publish, delete or reorder can be accepted.

    HTTP Status Codes:
        200: Database and cache reachable
        503: Either is unreachable

    Example Response:
        {"status": "healthy", "database": "connected", "cache": "connected"}
    """
    health_status = {
        "status": "healthy",
        "database": "connected",
        "cache": "connected",
    }

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except DatabaseError:
        logger.exception("Health check: database unreachable")
        health_status["database"] = "disconnected"

    cache = caches[settings.IDEMPOTENCY_CACHE_ALIAS]
    try:
        cache.set(HEALTH_CHECK_KEY, "ok", timeout=1)
        cache_ok = cache.get(HEALTH_CHECK_KEY) == "ok"
    except Exception:
        # Cache backends raise client-specific errors (redis, memcached)
        logger.exception("Health check: cache unreachable")
        cache_ok = False
    if not cache_ok:
        health_status["cache"] = "disconnected"

    is_healthy = "disconnected" not in (health_status["database"], health_status["cache"])
    if not is_healthy:
        health_status["status"] = "unhealthy"

    return JsonResponse(health_status, status=200 if is_healthy else 503)
