"""
URL configuration for the payment sync API.

Routes:
    Sessions:
        /sessions/                - List sessions (GET)
        /sessions/{id}/           - Session detail (GET)
        /sessions/start/          - Start an initial sync (POST)
        /sessions/{id}/cancel/    - Cancel a session (POST)
        /sessions/{id}/events/    - Session audit events (GET)

    Webhooks:
        /webhooks/<provider>/<workspace_id>/ - Provider webhook receiver (POST)
"""

from django.urls import path

from rest_framework.routers import DefaultRouter

from payment_sync.views import SyncSessionViewSet
from payment_sync.webhooks.views import provider_webhook

router = DefaultRouter()
router.register(r"sessions", SyncSessionViewSet, basename="sync-session")

app_name = "payment_sync"
urlpatterns = router.urls + [
    path(
        "webhooks/<str:provider>/<uuid:workspace_id>/",
        provider_webhook,
        name="provider-webhook",
    ),
]
