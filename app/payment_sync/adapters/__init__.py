"""
Payment provider adapters.

Usage:
    from payment_sync.adapters import ProviderRegistry, StripeAdapter
"""

from payment_sync.adapters.base import PaymentProvider
from payment_sync.adapters.registry import ProviderRegistry, register_provider
from payment_sync.adapters.stripe_adapter import StripeAdapter

__all__ = [
    "PaymentProvider",
    "ProviderRegistry",
    "StripeAdapter",
    "register_provider",
]
