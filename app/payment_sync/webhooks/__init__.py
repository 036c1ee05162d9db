"""
Inbound webhook handling for payment providers.

Usage:
    from payment_sync.webhooks.handlers import dispatch_webhook
    from payment_sync.webhooks.views import provider_webhook
"""
