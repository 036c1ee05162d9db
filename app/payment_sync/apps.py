"""
Payment sync app configuration.

This app provides:
- Canonical billing records and the provider adapter contract
- The Stripe adapter
- Webhook ingestion and the initial sync orchestrator
- The idempotent reconciliation (upsert) layer
"""

from django.apps import AppConfig


class PaymentSyncConfig(AppConfig):
    """Configuration for the payment_sync application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payment_sync"
    verbose_name = "Payment Sync"

    def ready(self) -> None:
        # Register webhook handlers and built-in providers
        from payment_sync import adapters  # noqa: F401
        from payment_sync.webhooks import handlers  # noqa: F401
        from payment_sync.adapters.stripe_adapter import configure_http_client

        configure_http_client()
