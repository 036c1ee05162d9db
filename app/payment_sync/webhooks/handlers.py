"""
Webhook event handlers.

Stored provider events are mapped back to canonical WebhookEvents and
dispatched by ``data_kind`` to a handler that applies the record through
the reconciliation layer. Kinds without a handler (including
UNRECOGNIZED) are acknowledged without action.

Usage:
    from payment_sync.webhooks.handlers import dispatch_webhook, register_handler

    # Register a handler for a canonical kind
    @register_handler(WebhookDataKind.PRODUCT)
    def handle_product(stored: ProviderWebhookEvent, event: WebhookEvent) -> ServiceResult:
        ...

    # Dispatch a stored event to its handler
    result = dispatch_webhook(stored_event)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from core.services import ServiceResult

from payment_sync.adapters.registry import ProviderRegistry
from payment_sync.canonical import WebhookDataKind
from payment_sync.exceptions import PaymentSyncError
from payment_sync.services import ReconciliationService

if TYPE_CHECKING:
    from payment_sync.canonical import WebhookEvent
    from payment_sync.models import ProviderWebhookEvent

logger = logging.getLogger(__name__)

WebhookHandler = Callable[["ProviderWebhookEvent", "WebhookEvent"], ServiceResult]


# =============================================================================
# Handler Registry
# =============================================================================


# Maps canonical data kinds to handler functions
WEBHOOK_HANDLERS: dict[str, WebhookHandler] = {}


def register_handler(data_kind: str) -> Callable[[WebhookHandler], WebhookHandler]:
    """
    Decorator to register a webhook handler for a canonical data kind.

    Example:
        @register_handler(WebhookDataKind.CUSTOMER)
        def handle_customer(stored, event) -> ServiceResult:
            ...
    """

    def decorator(func: WebhookHandler) -> WebhookHandler:
        WEBHOOK_HANDLERS[data_kind] = func
        logger.debug(f"Registered webhook handler for {data_kind}")
        return func

    return decorator


def dispatch_webhook(stored: ProviderWebhookEvent) -> ServiceResult:
    """
    Map a stored webhook and run the handler for its data kind.

    Args:
        stored: A verified ProviderWebhookEvent

    Returns:
        ServiceResult from the handler. Success without action when no
        handler is registered for the kind.
    """
    try:
        provider = ProviderRegistry.create_provider(stored.provider)
        event = provider.map_webhook_payload(bytes(stored.raw_body))
    except PaymentSyncError as e:
        logger.warning(
            "Stored webhook could not be mapped",
            extra={
                "webhook_event_id": str(stored.id),
                "provider_event_id": stored.provider_event_id,
                "error": str(e),
            },
        )
        return ServiceResult.failure(str(e), error_code=e.error_code)

    handler = WEBHOOK_HANDLERS.get(event.data_kind)
    if handler is None:
        logger.info(
            f"No handler for webhook kind: {event.data_kind}",
            extra={
                "provider_event_id": stored.provider_event_id,
                "event_type": stored.event_type,
            },
        )
        return ServiceResult.success({"status": "ignored", "data_kind": event.data_kind})

    return handler(stored, event)


# =============================================================================
# Handlers
# =============================================================================


def _reconcile(stored: ProviderWebhookEvent, event: WebhookEvent) -> ServiceResult:
    result = ReconciliationService.reconcile(stored.workspace, stored.provider, event.data)
    if result.success:
        logger.info(
            f"Applied {event.event_type}",
            extra={
                "provider_event_id": event.provider_event_id,
                "external_id": result.data.instance.external_id,
                "payment_sync_version": result.data.instance.payment_sync_version,
            },
        )
    return result


@register_handler(WebhookDataKind.CUSTOMER)
def handle_customer(stored: ProviderWebhookEvent, event: WebhookEvent) -> ServiceResult:
    """
    Upsert the customer, or soft-delete it on ``customer.deleted``.
    """
    customer = event.data
    if event.event_type == "customer.deleted" or customer.deleted:
        deleted = ReconciliationService.soft_delete_customer(
            stored.workspace, stored.provider, customer.external_id
        )
        return ServiceResult.success(
            {"status": "deleted" if deleted else "not_found", "external_id": customer.external_id}
        )
    return _reconcile(stored, event)


@register_handler(WebhookDataKind.PRODUCT)
def handle_product(stored: ProviderWebhookEvent, event: WebhookEvent) -> ServiceResult:
    return _reconcile(stored, event)


@register_handler(WebhookDataKind.PRICE)
def handle_price(stored: ProviderWebhookEvent, event: WebhookEvent) -> ServiceResult:
    return _reconcile(stored, event)


@register_handler(WebhookDataKind.SUBSCRIPTION)
def handle_subscription(stored: ProviderWebhookEvent, event: WebhookEvent) -> ServiceResult:
    return _reconcile(stored, event)


@register_handler(WebhookDataKind.INVOICE)
def handle_invoice(stored: ProviderWebhookEvent, event: WebhookEvent) -> ServiceResult:
    return _reconcile(stored, event)


@register_handler(WebhookDataKind.TRANSACTION)
def handle_transaction(stored: ProviderWebhookEvent, event: WebhookEvent) -> ServiceResult:
    return _reconcile(stored, event)
