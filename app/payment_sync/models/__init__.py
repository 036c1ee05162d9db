"""
Models for the payment_sync app.

Usage:
    from payment_sync.models import Customer, SyncSession, Workspace
"""

from payment_sync.models.base import PaymentSyncMixin
from payment_sync.models.catalog import Price, Product
from payment_sync.models.customer import Customer, WorkspaceCustomer
from payment_sync.models.invoice import Invoice, InvoiceLineItem
from payment_sync.models.subscription import (
    Subscription,
    SubscriptionItem,
    SubscriptionStatus,
)
from payment_sync.models.sync_session import (
    SyncEvent,
    SyncEventType,
    SyncSession,
    SyncSessionStatus,
    SyncSessionType,
)
from payment_sync.models.transaction import Transaction
from payment_sync.models.webhook_event import ProviderWebhookEvent, WebhookEventStatus
from payment_sync.models.workspace import (
    Wallet,
    Workspace,
    WorkspacePaymentConfiguration,
)

__all__ = [
    "Customer",
    "Invoice",
    "InvoiceLineItem",
    "PaymentSyncMixin",
    "Price",
    "Product",
    "ProviderWebhookEvent",
    "Subscription",
    "SubscriptionItem",
    "SubscriptionStatus",
    "SyncEvent",
    "SyncEventType",
    "SyncSession",
    "SyncSessionStatus",
    "SyncSessionType",
    "Transaction",
    "Wallet",
    "WebhookEventStatus",
    "Workspace",
    "WorkspaceCustomer",
    "WorkspacePaymentConfiguration",
]
