"""
Pure mapping functions between Stripe objects and canonical records.

Two functions per entity:
    <entity>_to_canonical(obj) -> canonical record
    <entity>_to_provider_params(record) -> kwargs for the Stripe SDK

Rules:
    - ``None`` maps to the canonical zero value; read-side mappers never raise.
    - Amounts pass through unchanged (minor units). Currencies are stored
      upper-case internally and sent lower-case to Stripe.
    - Expandable relations may arrive as an id string or as an expanded
      object; both are read. A relation that was not expanded leaves the
      canonical field at its zero value.
    - Empty tax lists map to ``None`` (absent), not to an empty list.

Input objects may be plain dicts (webhook payloads, tests) or Stripe SDK
objects. Read-side mappers convert SDK objects with to_plain() first;
current SDK releases no longer make StripeObject a dict, so
mapping-style access only works on the converted copy.
"""

from __future__ import annotations

import functools
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Callable, TypeVar

import stripe

from payment_sync.canonical import (
    Address,
    Customer,
    ExternalAccount,
    Invoice,
    InvoiceLineItem,
    Period,
    Price,
    PriceTier,
    PriceType,
    Product,
    RecurringInterval,
    Subscription,
    SubscriptionItem,
    TaxAmount,
    TaxID,
    Transaction,
    TransactionType,
    TransformQuantity,
    WebhookDataKind,
)

# =============================================================================
# Declared Expansions
# =============================================================================

# Every nested relation read by the mappers below, per read operation.
CUSTOMER_EXPANSIONS = ["tax_ids"]
SUBSCRIPTION_EXPANSIONS = [
    "latest_invoice",
    "default_payment_method",
    "default_tax_rates",
    "items.data.tax_rates",
]
INVOICE_EXPANSIONS = [
    "customer",
    "lines.data.parent.invoice_item_details",
    "lines.data.parent.subscription_item_details",
    "lines.data.pricing.price_details",
    "lines.data.taxes.tax_rate_details",
]
PAYMENT_INTENT_EXPANSIONS = [
    "customer",
    "payment_method",
    "latest_charge.customer",
    "invoice",
]


# =============================================================================
# Helpers
# =============================================================================


Record = TypeVar("Record")


def to_plain(value: Any) -> Any:
    """
    Convert Stripe SDK objects into plain dicts and lists, recursively.

    Values that are already plain come back as equal builtin copies.
    """
    if isinstance(value, stripe.StripeObject) and not isinstance(value, Mapping):
        value = value.to_dict()
    if isinstance(value, Mapping):
        return {key: to_plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(item) for item in value]
    return value


def reads_sdk_objects(mapper: Callable[[Any], Record]) -> Callable[[Any], Record]:
    """Normalize the mapper argument with to_plain() before mapping."""

    @functools.wraps(mapper)
    def wrapper(obj: Any) -> Record:
        return mapper(None if obj is None else to_plain(obj))

    return wrapper


def _get(obj: Any, key: str, default: Any = None) -> Any:
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        value = obj.get(key, default)
    else:
        value = getattr(obj, key, default)
    return default if value is None else value


def _path(obj: Any, *keys: str) -> Any:
    for key in keys:
        obj = _get(obj, key)
        if obj is None:
            return None
    return obj


def _id(value: Any) -> str:
    """Id of an expandable relation, whether expanded or not."""
    if not value:
        return ""
    if isinstance(value, str):
        return value
    return _get(value, "id", "") or ""


def _ids(values: Any) -> list[str]:
    return [i for i in (_id(v) for v in (values or [])) if i]


def items_of(list_object: Any) -> list[Any]:
    """Items of a Stripe list object (or a plain list)."""
    if not list_object:
        return []
    if isinstance(list_object, (list, tuple)):
        return list(list_object)
    return list(_get(list_object, "data", []) or [])


def _ts(value: Any) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def _unix(value: datetime | None) -> int | None:
    if value is None:
        return None
    return int(value.timestamp())


def _str_dict(value: Any) -> dict[str, str]:
    if not value:
        return {}
    return {str(k): str(v) for k, v in to_plain(value).items()}


def _upper(currency: Any) -> str:
    return str(currency).upper() if currency else ""


def _lower(currency: str) -> str:
    return currency.lower() if currency else ""


def _compact(params: dict[str, Any]) -> dict[str, Any]:
    """Drop keys whose value is None or an empty string/collection."""
    return {
        k: v
        for k, v in params.items()
        if v is not None and not (isinstance(v, (str, list, dict)) and not v)
    }


def _address(obj: Any) -> Address | None:
    if not obj:
        return None
    address = Address(
        line1=_get(obj, "line1", ""),
        line2=_get(obj, "line2", ""),
        city=_get(obj, "city", ""),
        state=_get(obj, "state", ""),
        postal_code=_get(obj, "postal_code", ""),
        country=_get(obj, "country", ""),
    )
    return None if address.is_empty() else address


def _address_params(address: Address | None) -> dict[str, str] | None:
    if address is None or address.is_empty():
        return None
    return _compact(
        {
            "line1": address.line1,
            "line2": address.line2,
            "city": address.city,
            "state": address.state,
            "postal_code": address.postal_code,
            "country": address.country,
        }
    )


def _tax_amounts(items: Any) -> list[TaxAmount] | None:
    """
    Map Stripe tax lines to TaxAmount records.

    Handles both shapes Stripe has used: ``total_taxes``/``taxes`` entries
    with ``tax_behavior`` and ``tax_rate_details``, and the older
    ``total_tax_amounts``/``tax_amounts`` entries with ``inclusive`` and
    ``tax_rate``. An empty or missing list maps to None.
    """
    rows = items_of(items)
    if not rows:
        return None
    result = []
    for row in rows:
        inclusive = _get(row, "inclusive")
        if inclusive is None:
            inclusive = _get(row, "tax_behavior") == "inclusive"
        rate_id = _id(_path(row, "tax_rate_details", "tax_rate")) or _id(
            _get(row, "tax_rate")
        )
        result.append(
            TaxAmount(
                amount=_get(row, "amount", 0),
                rate_id=rate_id,
                taxable_amount=_get(row, "taxable_amount", 0),
                inclusive=bool(inclusive),
            )
        )
    return result


# =============================================================================
# Customer
# =============================================================================


@reads_sdk_objects
def customer_to_canonical(obj: Any) -> Customer:
    if obj is None:
        return Customer()
    return Customer(
        external_id=_get(obj, "id", ""),
        email=_get(obj, "email", ""),
        name=_get(obj, "name", ""),
        phone=_get(obj, "phone", ""),
        description=_get(obj, "description", ""),
        address=_address(_get(obj, "address")),
        shipping_address=_address(_path(obj, "shipping", "address")),
        tax_ids=[
            TaxID(
                type=_get(t, "type", ""),
                value=_get(t, "value", ""),
                country=_get(t, "country", ""),
            )
            for t in items_of(_get(obj, "tax_ids"))
        ],
        preferred_locales=list(_get(obj, "preferred_locales", []) or []),
        currency=_upper(_get(obj, "currency")),
        deleted=bool(_get(obj, "deleted", False)),
        created_at=_ts(_get(obj, "created")),
        metadata=_str_dict(_get(obj, "metadata")),
    )


def customer_to_provider_params(customer: Customer) -> dict[str, Any]:
    shipping = None
    shipping_address = _address_params(customer.shipping_address)
    if shipping_address:
        shipping = {"name": customer.name, "address": shipping_address}
    return _compact(
        {
            "email": customer.email,
            "name": customer.name,
            "phone": customer.phone,
            "description": customer.description,
            "address": _address_params(customer.address),
            "shipping": shipping,
            "preferred_locales": list(customer.preferred_locales),
            "metadata": dict(customer.metadata),
        }
    )


# =============================================================================
# Product
# =============================================================================


@reads_sdk_objects
def product_to_canonical(obj: Any) -> Product:
    if obj is None:
        return Product()
    return Product(
        external_id=_get(obj, "id", ""),
        name=_get(obj, "name", ""),
        description=_get(obj, "description", ""),
        active=bool(_get(obj, "active", False)),
        type=_get(obj, "type", ""),
        tax_code=_id(_get(obj, "tax_code")),
        unit_label=_get(obj, "unit_label", ""),
        shippable=bool(_get(obj, "shippable", False)),
        images=list(_get(obj, "images", []) or []),
        created_at=_ts(_get(obj, "created")),
        metadata=_str_dict(_get(obj, "metadata")),
    )


def product_to_provider_params(product: Product) -> dict[str, Any]:
    params = _compact(
        {
            "name": product.name,
            "description": product.description,
            "tax_code": product.tax_code,
            "unit_label": product.unit_label,
            "images": list(product.images),
            "metadata": dict(product.metadata),
        }
    )
    params["active"] = product.active
    if product.shippable:
        params["shippable"] = True
    return params


# =============================================================================
# Price
# =============================================================================


@reads_sdk_objects
def price_to_canonical(obj: Any) -> Price:
    if obj is None:
        return Price()

    recurring_obj = _get(obj, "recurring")
    price_type = _get(obj, "type", "") or (
        PriceType.RECURRING.value if recurring_obj else PriceType.ONE_TIME.value
    )

    recurring = None
    if price_type == PriceType.RECURRING and recurring_obj:
        recurring = RecurringInterval(
            interval=_get(recurring_obj, "interval", ""),
            interval_count=_get(recurring_obj, "interval_count", 0),
            usage_type=_get(recurring_obj, "usage_type", ""),
        )

    tiers = [
        PriceTier(
            up_to=_get(t, "up_to") if _get(t, "up_to") != "inf" else None,
            unit_amount=_get(t, "unit_amount"),
            flat_amount=_get(t, "flat_amount"),
        )
        for t in items_of(_get(obj, "tiers"))
    ] or None

    transform = _get(obj, "transform_quantity")
    transform_quantity = None
    if transform:
        transform_quantity = TransformQuantity(
            divide_by=_get(transform, "divide_by", 0),
            round=_get(transform, "round", ""),
        )

    return Price(
        external_id=_get(obj, "id", ""),
        product_id=_id(_get(obj, "product")),
        active=bool(_get(obj, "active", False)),
        currency=_upper(_get(obj, "currency")),
        unit_amount=_get(obj, "unit_amount", 0),
        type=price_type,
        recurring=recurring,
        billing_scheme=_get(obj, "billing_scheme", ""),
        tax_behavior=_get(obj, "tax_behavior", ""),
        tiers=tiers,
        tiers_mode=_get(obj, "tiers_mode", ""),
        transform_quantity=transform_quantity,
        nickname=_get(obj, "nickname", ""),
        lookup_key=_get(obj, "lookup_key", ""),
        created_at=_ts(_get(obj, "created")),
        metadata=_str_dict(_get(obj, "metadata")),
    )


def price_to_provider_params(price: Price) -> dict[str, Any]:
    """
    Create parameters for a Stripe Price.

    ``recurring`` is sent only for recurring prices, with interval_count
    defaulting to 1, so reading the params back yields a positive term
    length. One-time prices carry no interval fields at all.
    """
    params: dict[str, Any] = {
        "currency": _lower(price.currency),
        "product": price.product_id,
        "active": price.active,
    }
    if price.billing_scheme != "tiered":
        params["unit_amount"] = price.unit_amount
    if price.is_recurring:
        recurring = price.recurring or RecurringInterval()
        params["recurring"] = _compact(
            {
                "interval": recurring.interval,
                "interval_count": recurring.interval_count or 1,
                "usage_type": recurring.usage_type,
            }
        )
    if price.tiers:
        params["tiers"] = [
            _compact(
                {
                    "up_to": tier.up_to if tier.up_to is not None else "inf",
                    "unit_amount": tier.unit_amount,
                    "flat_amount": tier.flat_amount,
                }
            )
            for tier in price.tiers
        ]
    if price.transform_quantity:
        params["transform_quantity"] = {
            "divide_by": price.transform_quantity.divide_by,
            "round": price.transform_quantity.round,
        }
    params.update(
        _compact(
            {
                "billing_scheme": price.billing_scheme,
                "tiers_mode": price.tiers_mode,
                "tax_behavior": price.tax_behavior,
                "nickname": price.nickname,
                "lookup_key": price.lookup_key,
                "metadata": dict(price.metadata),
            }
        )
    )
    return _compact(params)


# =============================================================================
# Subscription
# =============================================================================


@reads_sdk_objects
def subscription_item_to_canonical(obj: Any) -> SubscriptionItem:
    if obj is None:
        return SubscriptionItem()
    return SubscriptionItem(
        external_id=_get(obj, "id", ""),
        price_id=_id(_get(obj, "price")),
        quantity=_get(obj, "quantity", 0),
        metadata=_str_dict(_get(obj, "metadata")),
        tax_rate_ids=_ids(_get(obj, "tax_rates")),
    )


@reads_sdk_objects
def subscription_to_canonical(obj: Any) -> Subscription:
    if obj is None:
        return Subscription()

    items_data = items_of(_get(obj, "items"))
    # Billing periods live on items in current API versions
    first_item = items_data[0] if items_data else None
    period_start = _get(first_item, "current_period_start") or _get(
        obj, "current_period_start"
    )
    period_end = _get(first_item, "current_period_end") or _get(
        obj, "current_period_end"
    )

    return Subscription(
        external_id=_get(obj, "id", ""),
        customer_id=_id(_get(obj, "customer")),
        status=_get(obj, "status", ""),
        currency=_upper(_get(obj, "currency")),
        current_period_start=_ts(period_start),
        current_period_end=_ts(period_end),
        cancel_at_period_end=bool(_get(obj, "cancel_at_period_end", False)),
        cancel_at=_ts(_get(obj, "cancel_at")),
        canceled_at=_ts(_get(obj, "canceled_at")),
        ended_at=_ts(_get(obj, "ended_at")),
        trial_start=_ts(_get(obj, "trial_start")),
        trial_end=_ts(_get(obj, "trial_end")),
        default_payment_method_id=_id(_get(obj, "default_payment_method")),
        items=[subscription_item_to_canonical(item) for item in items_data],
        latest_invoice_id=_id(_get(obj, "latest_invoice")),
        billing_cycle_anchor=_ts(_get(obj, "billing_cycle_anchor")),
        collection_method=_get(obj, "collection_method", ""),
        default_tax_rate_ids=_ids(_get(obj, "default_tax_rates")),
        created_at=_ts(_get(obj, "created")),
        metadata=_str_dict(_get(obj, "metadata")),
    )


def subscription_to_provider_params(
    subscription: Subscription,
    for_update: bool = False,
) -> dict[str, Any]:
    """
    Create (or modify) parameters for a Stripe Subscription.

    On update the customer is omitted (Stripe does not allow moving a
    subscription) and items carry their ids so Stripe edits them in place.
    """
    items = []
    for item in subscription.items:
        entry = _compact(
            {
                "price": item.price_id,
                "quantity": item.quantity or None,
                "tax_rates": list(item.tax_rate_ids),
                "metadata": dict(item.metadata),
            }
        )
        if for_update and item.external_id:
            entry["id"] = item.external_id
        items.append(entry)

    params = _compact(
        {
            "customer": None if for_update else subscription.customer_id,
            "items": items,
            "default_payment_method": subscription.default_payment_method_id,
            "collection_method": subscription.collection_method,
            "default_tax_rates": list(subscription.default_tax_rate_ids),
            "trial_end": _unix(subscription.trial_end),
            "cancel_at": _unix(subscription.cancel_at),
            "metadata": dict(subscription.metadata),
        }
    )
    params["cancel_at_period_end"] = subscription.cancel_at_period_end
    return params


# =============================================================================
# Invoice
# =============================================================================


def _period(obj: Any) -> Period | None:
    if not obj:
        return None
    start, end = _ts(_get(obj, "start")), _ts(_get(obj, "end"))
    if start is None and end is None:
        return None
    return Period(start=start, end=end)


@reads_sdk_objects
def invoice_line_to_canonical(obj: Any) -> InvoiceLineItem:
    if obj is None:
        return InvoiceLineItem()

    subscription_item_details = _path(obj, "parent", "subscription_item_details")
    price_id = _id(_path(obj, "pricing", "price_details", "price")) or _id(
        _get(obj, "price")
    )
    subscription_item_id = _id(_get(subscription_item_details, "subscription_item")) or _id(
        _get(obj, "subscription_item")
    )
    proration = _get(subscription_item_details, "proration")
    if proration is None:
        proration = _get(obj, "proration", False)
    taxes = _get(obj, "taxes")
    if not taxes:
        taxes = _get(obj, "tax_amounts")

    return InvoiceLineItem(
        external_id=_get(obj, "id", ""),
        description=_get(obj, "description", ""),
        amount=_get(obj, "amount", 0),
        currency=_upper(_get(obj, "currency")),
        quantity=_get(obj, "quantity", 0),
        price_id=price_id,
        subscription_item_id=subscription_item_id,
        period=_period(_get(obj, "period")),
        proration=bool(proration),
        taxes=_tax_amounts(taxes),
        metadata=_str_dict(_get(obj, "metadata")),
    )


@reads_sdk_objects
def invoice_to_canonical(obj: Any) -> Invoice:
    if obj is None:
        return Invoice()

    subscription_id = _id(
        _path(obj, "parent", "subscription_details", "subscription")
    ) or _id(_get(obj, "subscription"))

    total_taxes = _get(obj, "total_taxes")
    if not total_taxes:
        total_taxes = _get(obj, "total_tax_amounts")
    total_tax_amounts = _tax_amounts(total_taxes)

    tax_amount = _get(obj, "tax")
    if tax_amount is None:
        tax_amount = sum(t.amount for t in total_tax_amounts or [])

    period = None
    if _get(obj, "period_start") or _get(obj, "period_end"):
        period = Period(
            start=_ts(_get(obj, "period_start")),
            end=_ts(_get(obj, "period_end")),
        )

    return Invoice(
        external_id=_get(obj, "id", ""),
        customer_id=_id(_get(obj, "customer")),
        subscription_id=subscription_id,
        status=_get(obj, "status", ""),
        currency=_upper(_get(obj, "currency")),
        number=_get(obj, "number", ""),
        amount_due=_get(obj, "amount_due", 0),
        amount_paid=_get(obj, "amount_paid", 0),
        amount_remaining=_get(obj, "amount_remaining", 0),
        subtotal=_get(obj, "subtotal", 0),
        total=_get(obj, "total", 0),
        tax_amount=tax_amount,
        total_tax_amounts=total_tax_amounts,
        billing_reason=_get(obj, "billing_reason", ""),
        collection_method=_get(obj, "collection_method", ""),
        due_date=_ts(_get(obj, "due_date")),
        paid_at=_ts(_path(obj, "status_transitions", "paid_at")),
        period=period,
        paid_out_of_band=bool(_get(obj, "paid_out_of_band", False)),
        hosted_invoice_url=_get(obj, "hosted_invoice_url", ""),
        lines=[invoice_line_to_canonical(line) for line in items_of(_get(obj, "lines"))],
        created_at=_ts(_get(obj, "created")),
        metadata=_str_dict(_get(obj, "metadata")),
    )


def invoice_to_provider_params(invoice: Invoice) -> dict[str, Any]:
    return _compact(
        {
            "customer": invoice.customer_id,
            "subscription": invoice.subscription_id,
            "collection_method": invoice.collection_method,
            "due_date": _unix(invoice.due_date),
            "currency": _lower(invoice.currency),
            "metadata": dict(invoice.metadata),
        }
    )


# =============================================================================
# Transaction
# =============================================================================


@reads_sdk_objects
def payment_intent_to_transaction(obj: Any) -> Transaction:
    if obj is None:
        return Transaction()
    latest_charge = _get(obj, "latest_charge")
    return Transaction(
        external_id=_get(obj, "id", ""),
        type=TransactionType.PAYMENT_INTENT,
        amount=_get(obj, "amount", 0),
        amount_refunded=_get(latest_charge, "amount_refunded", 0)
        if not isinstance(latest_charge, str)
        else 0,
        currency=_upper(_get(obj, "currency")),
        status=_get(obj, "status", ""),
        customer_id=_id(_get(obj, "customer")),
        invoice_id=_id(_get(obj, "invoice")),
        payment_intent_id=_get(obj, "id", ""),
        payment_method_id=_id(_get(obj, "payment_method")),
        description=_get(obj, "description", ""),
        failure_reason=_path(obj, "last_payment_error", "message") or "",
        created_at=_ts(_get(obj, "created")),
        metadata=_str_dict(_get(obj, "metadata")),
    )


@reads_sdk_objects
def charge_to_transaction(obj: Any) -> Transaction:
    if obj is None:
        return Transaction()
    return Transaction(
        external_id=_get(obj, "id", ""),
        type=TransactionType.CHARGE,
        amount=_get(obj, "amount", 0),
        amount_refunded=_get(obj, "amount_refunded", 0),
        currency=_upper(_get(obj, "currency")),
        status=_get(obj, "status", ""),
        customer_id=_id(_get(obj, "customer")),
        invoice_id=_id(_get(obj, "invoice")),
        payment_intent_id=_id(_get(obj, "payment_intent")),
        payment_method_id=_id(_get(obj, "payment_method")),
        description=_get(obj, "description", ""),
        failure_reason=_get(obj, "failure_message", ""),
        created_at=_ts(_get(obj, "created")),
        metadata=_str_dict(_get(obj, "metadata")),
    )


@reads_sdk_objects
def refund_to_transaction(obj: Any) -> Transaction:
    if obj is None:
        return Transaction()
    return Transaction(
        external_id=_get(obj, "id", ""),
        type=TransactionType.REFUND,
        amount=_get(obj, "amount", 0),
        currency=_upper(_get(obj, "currency")),
        status=_get(obj, "status", ""),
        payment_intent_id=_id(_get(obj, "payment_intent")),
        description=_get(obj, "reason", ""),
        failure_reason=_get(obj, "failure_reason", ""),
        created_at=_ts(_get(obj, "created")),
        metadata=_str_dict(_get(obj, "metadata")),
    )


_TRANSACTION_MAPPERS = {
    "payment_intent": payment_intent_to_transaction,
    "charge": charge_to_transaction,
    "refund": refund_to_transaction,
}


@reads_sdk_objects
def transaction_to_canonical(obj: Any) -> Transaction:
    """Map a payment intent, charge or refund, chosen by its ``object`` field."""
    if obj is None:
        return Transaction()
    mapper = _TRANSACTION_MAPPERS.get(_get(obj, "object", ""), payment_intent_to_transaction)
    return mapper(obj)


def transaction_to_provider_params(transaction: Transaction) -> dict[str, Any]:
    """PaymentIntent create parameters for a canonical transaction."""
    return _compact(
        {
            "amount": transaction.amount,
            "currency": _lower(transaction.currency),
            "customer": transaction.customer_id,
            "payment_method": transaction.payment_method_id,
            "description": transaction.description,
            "metadata": dict(transaction.metadata),
        }
    )


# =============================================================================
# External Account
# =============================================================================


@reads_sdk_objects
def external_account_to_canonical(obj: Any) -> ExternalAccount:
    if obj is None:
        return ExternalAccount()
    return ExternalAccount(
        external_id=_get(obj, "id", ""),
        account_type=_get(obj, "type", ""),
        status="active" if _get(obj, "charges_enabled", False) else "restricted",
        country=_get(obj, "country", ""),
        default_currency=_upper(_get(obj, "default_currency")),
        email=_get(obj, "email", ""),
        charges_enabled=bool(_get(obj, "charges_enabled", False)),
        payouts_enabled=bool(_get(obj, "payouts_enabled", False)),
        metadata=_str_dict(_get(obj, "metadata")),
    )


# =============================================================================
# Webhook Routing
# =============================================================================

CUSTOMER_EVENTS = frozenset(
    {"customer.created", "customer.updated", "customer.deleted"}
)
INVOICE_EVENTS = frozenset(
    {
        "invoice.created",
        "invoice.updated",
        "invoice.deleted",
        "invoice.paid",
        "invoice.payment_failed",
        "invoice.payment_succeeded",
        "invoice.finalized",
        "invoice.voided",
        "invoice.marked_uncollectible",
    }
)
CHARGE_EVENTS = frozenset(
    {
        "charge.succeeded",
        "charge.failed",
        "charge.pending",
        "charge.captured",
        "charge.expired",
        "charge.refunded",
        "charge.updated",
    }
)
REFUND_EVENTS = frozenset(
    {"charge.refund.updated", "refund.created", "refund.updated", "refund.failed"}
)

# Checked in order; "customer.subscription." must precede any customer match
_PREFIX_ROUTES = [
    ("customer.subscription.", WebhookDataKind.SUBSCRIPTION, subscription_to_canonical),
    ("product.", WebhookDataKind.PRODUCT, product_to_canonical),
    ("price.", WebhookDataKind.PRICE, price_to_canonical),
    ("payment_intent.", WebhookDataKind.TRANSACTION, payment_intent_to_transaction),
]


def resolve_event_mapper(event_type: str):
    """
    Find the canonical kind and mapper for a Stripe event type.

    Returns:
        (WebhookDataKind, mapper) or (WebhookDataKind.UNRECOGNIZED, None)
    """
    if event_type in CUSTOMER_EVENTS:
        return WebhookDataKind.CUSTOMER, customer_to_canonical
    if event_type in INVOICE_EVENTS:
        return WebhookDataKind.INVOICE, invoice_to_canonical
    if event_type in CHARGE_EVENTS:
        return WebhookDataKind.TRANSACTION, charge_to_transaction
    if event_type in REFUND_EVENTS:
        return WebhookDataKind.TRANSACTION, refund_to_transaction
    for prefix, kind, mapper in _PREFIX_ROUTES:
        if event_type.startswith(prefix):
            return kind, mapper
    return WebhookDataKind.UNRECOGNIZED, None
