"""
Webhook endpoint views for payment providers.

This module provides the HTTP endpoint for receiving provider webhooks.
The view:
1. Verifies the webhook signature through the provider adapter
2. Creates or refreshes the ProviderWebhookEvent record
3. Queues the event for async processing
4. Returns immediately

Usage:
    # In urls.py
    from payment_sync.webhooks.views import provider_webhook

    urlpatterns = [
        path(
            "webhooks/<str:provider>/<uuid:workspace_id>/",
            provider_webhook,
            name="provider_webhook",
        ),
    ]
"""

from __future__ import annotations

import json
import logging
from uuid import UUID

from django.db.models import F
from django.http import HttpRequest, HttpResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payment_sync.adapters.registry import ProviderRegistry
from payment_sync.exceptions import (
    ProviderConfigurationError,
    ProviderNotRegisteredError,
    WebhookMappingError,
    WebhookSignatureError,
)
from payment_sync.models import ProviderWebhookEvent, WebhookEventStatus, Workspace

logger = logging.getLogger(__name__)

# Header carrying the signature, per provider
SIGNATURE_HEADERS = {
    "stripe": "Stripe-Signature",
}


@csrf_exempt
@require_POST
def provider_webhook(request: HttpRequest, provider: str, workspace_id: UUID) -> HttpResponse:
    """
    Receive and queue a provider webhook for a workspace.

    Idempotency:
    - (provider, provider_event_id) is unique on ProviderWebhookEvent
    - A duplicate delivery refreshes the stored row, bumps
      delivery_count and is queued again; the upsert path absorbs it

    Returns:
        HttpResponse with status:
        - 200: Event accepted (new or duplicate)
        - 400: Invalid signature, unmappable payload or bad configuration
        - 404: Unknown provider or workspace
    """
    raw_body = request.body
    signature = request.headers.get(SIGNATURE_HEADERS.get(provider, ""), "")

    if not Workspace.objects.filter(id=workspace_id).exists():
        logger.warning(
            "Webhook received for unknown workspace",
            extra={"provider": provider, "workspace_id": str(workspace_id)},
        )
        return HttpResponse("Unknown workspace", status=404)

    try:
        adapter = ProviderRegistry.get_provider_service(workspace_id, provider)
    except ProviderNotRegisteredError:
        logger.warning("Webhook received for unknown provider", extra={"provider": provider})
        return HttpResponse("Unknown provider", status=404)
    except ProviderConfigurationError as e:
        logger.warning(
            "Webhook received without usable provider configuration",
            extra={"provider": provider, "workspace_id": str(workspace_id), "error": str(e)},
        )
        return HttpResponse("Provider not configured", status=400)

    # Step 1: Verify signature and map
    try:
        event = adapter.handle_webhook(raw_body, signature)
    except WebhookSignatureError as e:
        logger.warning(
            "Webhook signature verification failed",
            extra={"provider": provider, "error": str(e)},
        )
        return HttpResponse("Invalid signature", status=400)
    except WebhookMappingError as e:
        logger.warning(
            "Webhook payload could not be mapped",
            extra={"provider": provider, "error": str(e)},
        )
        return HttpResponse("Invalid event", status=400)

    logger.info(
        f"Received {provider} webhook: {event.event_type}",
        extra={
            "provider_event_id": event.provider_event_id,
            "event_type": event.event_type,
            "workspace_id": str(workspace_id),
        },
    )

    # Step 2: Store the verified delivery
    webhook_event, created = ProviderWebhookEvent.objects.get_or_create(
        provider=provider,
        provider_event_id=event.provider_event_id,
        defaults={
            "workspace_id": workspace_id,
            "event_type": event.event_type,
            "data_kind": event.data_kind,
            "raw_body": raw_body,
            "payload": _decoded_payload(event),
            "signature_valid": True,
            "status": WebhookEventStatus.PENDING,
        },
    )

    if not created:
        ProviderWebhookEvent.objects.filter(id=webhook_event.id).update(
            raw_body=raw_body,
            payload=_decoded_payload(event),
            data_kind=event.data_kind,
            delivery_count=F("delivery_count") + 1,
            status=WebhookEventStatus.PENDING,
            updated_at=timezone.now(),
        )
        logger.info(
            f"Duplicate delivery of webhook, previous status: {webhook_event.status}",
            extra={
                "provider_event_id": event.provider_event_id,
                "webhook_event_id": str(webhook_event.id),
            },
        )

    # Step 3: Queue for async processing
    try:
        from payment_sync.tasks import process_provider_webhook_event

        process_provider_webhook_event.delay(str(webhook_event.id))
        logger.info(
            "Webhook queued for processing",
            extra={
                "provider_event_id": event.provider_event_id,
                "webhook_event_id": str(webhook_event.id),
            },
        )
    except Exception as e:
        # Row stays pending; retry_failed_webhooks re-queues stale pending rows
        logger.error(
            f"Failed to queue webhook: {type(e).__name__}",
            extra={"provider_event_id": event.provider_event_id},
            exc_info=True,
        )

    return HttpResponse("Accepted", status=200)


def _decoded_payload(event) -> dict:
    """Decoded JSON envelope of a verified event."""
    return json.loads(event.raw_data)
