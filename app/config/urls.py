"""
URL configuration for the payment sync service.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/payment-sync/          - Payment sync endpoints
        sessions/                  - Sync session list
        sessions/start/            - Start an initial sync (POST)
        sessions/{id}/             - Sync session detail
        sessions/{id}/cancel/      - Cancel a sync session (POST)
        sessions/{id}/events/      - Sync events for a session
        webhooks/{provider}/{workspace_id}/ - Provider webhook endpoint (POST)

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
api_v1_patterns = [
    path("payment-sync/", include("payment_sync.urls")),
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
admin.site.site_header = "Payment Sync Admin"
admin.site.site_title = "Payment Sync"
admin.site.index_title = "Workspaces, synced billing data and sync sessions"
