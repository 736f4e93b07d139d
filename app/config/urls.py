"""
URL configuration for the album media service.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/media/                 - Media endpoints
        upload/                    - Upload one image or video (idempotent)
        assets/{id}/               - Delete media (idempotent)
        batch-reorder/             - Apply display-order updates (idempotent)
        albums/{id}/publish/       - Publish a metadata diff (idempotent)
        albums/{id}/validation-data/ - Quota snapshot for client pre-validation
        cleanup-jobs/stats/        - Cleanup queue statistics (staff)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    path("media/", include("media.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Album Media Admin"
admin.site.site_title = "Album Media"
admin.site.index_title = "Media catalog and cleanup queue"
