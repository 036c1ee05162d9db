"""
Provider-independent billing records.

Every provider adapter translates its native objects into these
dataclasses and back. Nothing provider-specific crosses this boundary:
the orchestrator, the webhook pipeline and the reconciliation layer only
ever see the types defined here.

Every field has a default, so calling a record class with no arguments
returns its zero value. Mappers return that zero value for absent
provider objects.

Types:
    Customer, Product, Price, Subscription, Invoice, Transaction,
    ExternalAccount: canonical entities
    WebhookEvent: normalized inbound webhook with a tagged ``data`` payload
    ListParams / next_cursor: pagination contract for list operations
    InitialSyncConfig: options for a bulk initial sync
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Union

from django.db import models


# =============================================================================
# Enumerations
# =============================================================================


class PaymentSyncStatus(models.TextChoices):
    """Sync bookkeeping status carried by every synced record."""

    UNSYNCED = "unsynced", "Unsynced"
    SYNCED = "synced", "Synced"
    ERROR = "error", "Error"


class PriceType(models.TextChoices):
    """Billing type of a Price."""

    RECURRING = "recurring", "Recurring"
    ONE_TIME = "one_time", "One Time"


class IntervalType(models.TextChoices):
    """Recurring billing interval of a Price."""

    DAY = "day", "Day"
    WEEK = "week", "Week"
    MONTH = "month", "Month"
    YEAR = "year", "Year"


class TransactionType(models.TextChoices):
    """
    Which provider-native object a Transaction was derived from.

    Distinct provider objects (payment intents, charges, refunds) map
    onto the same canonical Transaction shape; this tag disambiguates them.
    """

    PAYMENT_INTENT = "payment_intent", "Payment Intent"
    CHARGE = "charge", "Charge"
    REFUND = "refund", "Refund"


class EntityType(models.TextChoices):
    """Entity types the initial sync knows how to page through."""

    CUSTOMERS = "customers", "Customers"
    PRODUCTS = "products", "Products"
    PRICES = "prices", "Prices"
    SUBSCRIPTIONS = "subscriptions", "Subscriptions"
    INVOICES = "invoices", "Invoices"
    TRANSACTIONS = "transactions", "Transactions"


class WebhookDataKind(models.TextChoices):
    """Discriminant for WebhookEvent.data."""

    CUSTOMER = "customer", "Customer"
    PRODUCT = "product", "Product"
    PRICE = "price", "Price"
    SUBSCRIPTION = "subscription", "Subscription"
    INVOICE = "invoice", "Invoice"
    TRANSACTION = "transaction", "Transaction"
    UNRECOGNIZED = "unrecognized", "Unrecognized"


# =============================================================================
# Shared Value Types
# =============================================================================


@dataclass
class SyncInfo:
    """Provider-sync bookkeeping attached to canonical records read from the store."""

    payment_provider: str = ""
    payment_sync_status: str = PaymentSyncStatus.UNSYNCED
    payment_synced_at: datetime | None = None
    payment_sync_version: int = 0


@dataclass
class Address:
    line1: str = ""
    line2: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""

    def is_empty(self) -> bool:
        return not any(asdict(self).values())


@dataclass
class TaxID:
    type: str = ""
    value: str = ""
    country: str = ""


@dataclass
class Period:
    start: datetime | None = None
    end: datetime | None = None


@dataclass
class TaxAmount:
    """One tax line on an invoice or invoice line item."""

    amount: int = 0
    rate_id: str = ""
    taxable_amount: int = 0
    inclusive: bool = False


# =============================================================================
# Canonical Entities
# =============================================================================


@dataclass
class Customer:
    external_id: str = ""
    email: str = ""
    name: str = ""
    phone: str = ""
    description: str = ""
    address: Address | None = None
    shipping_address: Address | None = None
    tax_ids: list[TaxID] = field(default_factory=list)
    preferred_locales: list[str] = field(default_factory=list)
    currency: str = ""
    deleted: bool = False
    created_at: datetime | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    sync: SyncInfo = field(default_factory=SyncInfo)


@dataclass
class Product:
    external_id: str = ""
    name: str = ""
    description: str = ""
    active: bool = False
    type: str = ""
    tax_code: str = ""
    unit_label: str = ""
    shippable: bool = False
    images: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    sync: SyncInfo = field(default_factory=SyncInfo)


@dataclass
class RecurringInterval:
    interval: str = ""
    interval_count: int = 0
    usage_type: str = ""


@dataclass
class PriceTier:
    up_to: int | None = None
    unit_amount: int | None = None
    flat_amount: int | None = None


@dataclass
class TransformQuantity:
    divide_by: int = 0
    round: str = ""


@dataclass
class Price:
    """
    A price attached to exactly one Product.

    ``unit_amount`` is in minor currency units and is never converted.
    ``recurring`` is set only for recurring prices.
    """

    external_id: str = ""
    product_id: str = ""
    active: bool = False
    currency: str = ""
    unit_amount: int = 0
    type: str = ""
    recurring: RecurringInterval | None = None
    billing_scheme: str = ""
    tax_behavior: str = ""
    tiers: list[PriceTier] | None = None
    tiers_mode: str = ""
    transform_quantity: TransformQuantity | None = None
    nickname: str = ""
    lookup_key: str = ""
    created_at: datetime | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    sync: SyncInfo = field(default_factory=SyncInfo)

    @property
    def is_recurring(self) -> bool:
        return self.type == PriceType.RECURRING

    @property
    def interval_type(self) -> str:
        """Recurring interval ("month", ...), empty for one-time prices."""
        if not self.is_recurring or self.recurring is None:
            return ""
        return self.recurring.interval

    @property
    def term_length(self) -> int:
        """Number of intervals per billing term; at least 1 when recurring, else 0."""
        if not self.is_recurring or self.recurring is None:
            return 0
        return self.recurring.interval_count or 1


@dataclass
class SubscriptionItem:
    external_id: str = ""
    price_id: str = ""
    quantity: int = 0
    metadata: dict[str, str] = field(default_factory=dict)
    tax_rate_ids: list[str] = field(default_factory=list)


@dataclass
class Subscription:
    """
    A subscription for one Customer.

    cancel_at_period_end only schedules cancellation; canceled_at and
    ended_at are the authoritative termination markers.
    """

    external_id: str = ""
    customer_id: str = ""
    status: str = ""
    currency: str = ""
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    cancel_at_period_end: bool = False
    cancel_at: datetime | None = None
    canceled_at: datetime | None = None
    ended_at: datetime | None = None
    trial_start: datetime | None = None
    trial_end: datetime | None = None
    default_payment_method_id: str = ""
    items: list[SubscriptionItem] = field(default_factory=list)
    latest_invoice_id: str = ""
    billing_cycle_anchor: datetime | None = None
    collection_method: str = ""
    default_tax_rate_ids: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    sync: SyncInfo = field(default_factory=SyncInfo)


@dataclass
class InvoiceLineItem:
    external_id: str = ""
    description: str = ""
    amount: int = 0
    currency: str = ""
    quantity: int = 0
    price_id: str = ""
    subscription_item_id: str = ""
    period: Period | None = None
    proration: bool = False
    taxes: list[TaxAmount] | None = None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class Invoice:
    """
    An invoice for one Customer, optionally tied to a Subscription.

    Amounts are passed through as reported by the provider; partial
    credits mean amount_paid + amount_remaining need not equal amount_due.
    """

    external_id: str = ""
    customer_id: str = ""
    subscription_id: str = ""
    status: str = ""
    currency: str = ""
    number: str = ""
    amount_due: int = 0
    amount_paid: int = 0
    amount_remaining: int = 0
    subtotal: int = 0
    total: int = 0
    tax_amount: int = 0
    total_tax_amounts: list[TaxAmount] | None = None
    billing_reason: str = ""
    collection_method: str = ""
    due_date: datetime | None = None
    paid_at: datetime | None = None
    period: Period | None = None
    paid_out_of_band: bool = False
    hosted_invoice_url: str = ""
    lines: list[InvoiceLineItem] = field(default_factory=list)
    created_at: datetime | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    sync: SyncInfo = field(default_factory=SyncInfo)


@dataclass
class Transaction:
    external_id: str = ""
    type: str = ""
    amount: int = 0
    amount_refunded: int = 0
    currency: str = ""
    status: str = ""
    customer_id: str = ""
    invoice_id: str = ""
    payment_intent_id: str = ""
    payment_method_id: str = ""
    description: str = ""
    failure_reason: str = ""
    created_at: datetime | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    sync: SyncInfo = field(default_factory=SyncInfo)


@dataclass
class ExternalAccount:
    external_id: str = ""
    account_type: str = ""
    status: str = ""
    country: str = ""
    default_currency: str = ""
    email: str = ""
    charges_enabled: bool = False
    payouts_enabled: bool = False
    metadata: dict[str, str] = field(default_factory=dict)


# =============================================================================
# Webhook Event
# =============================================================================


@dataclass
class UnrecognizedPayload:
    """Webhook payload for an event type with no registered mapper."""

    raw: bytes = b""
    decoded: dict[str, Any] = field(default_factory=dict)


WebhookData = Union[
    Customer,
    Product,
    Price,
    Subscription,
    Invoice,
    Transaction,
    UnrecognizedPayload,
    None,
]


@dataclass
class WebhookEvent:
    """
    A normalized inbound webhook.

    ``data_kind`` is the discriminant for ``data``: consumers switch on it
    (or on ``isinstance``) to reach the canonical record. ``raw_data`` is
    the request body exactly as received.
    """

    provider: str = ""
    provider_event_id: str = ""
    event_type: str = ""
    data_kind: str = ""
    data: WebhookData = None
    raw_data: bytes = b""
    signature_valid: bool = False
    livemode: bool = False
    provider_account_id: str = ""
    created_at: datetime | None = None


# =============================================================================
# Pagination
# =============================================================================


@dataclass
class ListParams:
    """
    Parameters accepted by every list operation.

    starting_after / ending_before are opaque external ids of the
    boundary record. filters holds provider-specific filter keys.
    """

    limit: int = 0
    starting_after: str = ""
    ending_before: str = ""
    created_after: datetime | None = None
    created_before: datetime | None = None
    ids: list[str] = field(default_factory=list)
    filters: dict[str, Any] = field(default_factory=dict)


def next_cursor(items: list[Any], limit: int) -> str:
    """
    Cursor for the page after ``items``.

    Non-empty only when the page is full (``len(items) == limit``), in
    which case it is the external id of the last item. A short page gives
    an empty cursor, and so does ``limit <= 0``.
    """
    if limit > 0 and items and len(items) == limit:
        return items[-1].external_id
    return ""


# =============================================================================
# Initial Sync Configuration
# =============================================================================


DEFAULT_BATCH_SIZE = 100
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_SECONDS = 2.0
DEFAULT_ENTITY_TYPES = [
    EntityType.CUSTOMERS.value,
    EntityType.PRODUCTS.value,
    EntityType.PRICES.value,
    EntityType.SUBSCRIPTIONS.value,
]


@dataclass
class InitialSyncConfig:
    """
    Options for a bulk initial sync.

    Zero values mean "use the default"; call with_defaults() to get a
    fully populated copy.
    """

    batch_size: int = 0
    entity_types: list[str] = field(default_factory=list)
    full_sync: bool = False
    starting_after: str = ""
    ending_before: str = ""
    max_retries: int = 0
    retry_delay: float = 0.0

    def with_defaults(self) -> InitialSyncConfig:
        return InitialSyncConfig(
            batch_size=self.batch_size or DEFAULT_BATCH_SIZE,
            entity_types=list(self.entity_types) or list(DEFAULT_ENTITY_TYPES),
            full_sync=self.full_sync,
            starting_after=self.starting_after,
            ending_before=self.ending_before,
            max_retries=self.max_retries or DEFAULT_MAX_RETRIES,
            retry_delay=self.retry_delay or DEFAULT_RETRY_DELAY_SECONDS,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> InitialSyncConfig:
        data = data or {}
        return cls(
            batch_size=int(data.get("batch_size") or 0),
            entity_types=list(data.get("entity_types") or []),
            full_sync=bool(data.get("full_sync", False)),
            starting_after=data.get("starting_after") or "",
            ending_before=data.get("ending_before") or "",
            max_retries=int(data.get("max_retries") or 0),
            retry_delay=float(data.get("retry_delay") or 0.0),
        )
