"""
Tests for Stripe <-> canonical mapping functions.

Tests cover:
- Absent objects map to zero values
- Currency casing and untouched minor-unit amounts
- Expandable relations given as ids or expanded objects
- Price recurrence in both directions
- Invoice tax and period shapes across Stripe API versions
- Stripe SDK objects as input
- Webhook event routing
"""

from datetime import datetime, timezone

import pytest
import stripe

from payment_sync.adapters import stripe_mappers as mappers
from payment_sync.adapters.tests.conftest import stripe_list
from payment_sync.canonical import (
    Address,
    Customer,
    Invoice,
    Price,
    PriceType,
    RecurringInterval,
    Subscription,
    SubscriptionItem,
    TransactionType,
    WebhookDataKind,
)


# =============================================================================
# Zero Value Tests
# =============================================================================


class TestNoneMapsToZeroValue:
    @pytest.mark.parametrize(
        "mapper,expected",
        [
            (mappers.customer_to_canonical, Customer()),
            (mappers.price_to_canonical, Price()),
            (mappers.subscription_to_canonical, Subscription()),
            (mappers.invoice_to_canonical, Invoice()),
        ],
    )
    def test_none(self, mapper, expected):
        assert mapper(None) == expected


# =============================================================================
# Customer Tests
# =============================================================================


class TestCustomerMapping:
    def test_to_canonical(self, stripe_customer):
        customer = mappers.customer_to_canonical(stripe_customer())

        assert customer.external_id == "cus_test123"
        assert customer.currency == "USD"
        assert customer.phone == ""
        assert customer.address == Address(line1="1 Main St", city="Berlin", country="DE")
        assert customer.created_at == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
        assert customer.metadata == {"tier": "gold"}

    def test_empty_address_is_none(self, stripe_customer):
        customer = mappers.customer_to_canonical(stripe_customer(address={}))

        assert customer.address is None

    def test_deleted_flag(self, stripe_customer):
        assert mappers.customer_to_canonical(stripe_customer(deleted=True)).deleted is True

    def test_provider_params_drop_empty_values(self):
        params = mappers.customer_to_provider_params(
            Customer(email="a@example.com", address=Address(city="Paris"))
        )

        assert params == {"email": "a@example.com", "address": {"city": "Paris"}}

    def test_metadata_values_stringified(self, stripe_customer):
        customer = mappers.customer_to_canonical(stripe_customer(metadata={"seats": 5}))

        assert customer.metadata == {"seats": "5"}


# =============================================================================
# Price Tests
# =============================================================================


class TestPriceMapping:
    def test_recurring_price(self, stripe_price):
        price = mappers.price_to_canonical(
            stripe_price(recurring={"interval": "year", "interval_count": 2})
        )

        assert price.type == PriceType.RECURRING
        assert price.interval_type == "year"
        assert price.term_length == 2
        assert price.currency == "EUR"
        assert price.unit_amount == 1999

    def test_one_time_price_has_no_recurrence(self, stripe_price):
        price = mappers.price_to_canonical(stripe_price(type="one_time"))

        assert price.type == PriceType.ONE_TIME
        assert price.recurring is None
        assert price.term_length == 0

    def test_expanded_product(self, stripe_price):
        price = mappers.price_to_canonical(
            stripe_price(product={"id": "prod_x", "object": "product"})
        )

        assert price.product_id == "prod_x"

    def test_tiers_with_infinite_bound(self, stripe_price):
        price = mappers.price_to_canonical(
            stripe_price(
                billing_scheme="tiered",
                tiers_mode="graduated",
                tiers=[
                    {"up_to": 10, "unit_amount": 500},
                    {"up_to": "inf", "unit_amount": 400},
                ],
            )
        )

        assert price.tiers[0].up_to == 10
        assert price.tiers[1].up_to is None

    def test_recurring_params_default_interval_count(self):
        params = mappers.price_to_provider_params(
            Price(
                product_id="prod_1",
                currency="USD",
                unit_amount=1000,
                type=PriceType.RECURRING,
                recurring=RecurringInterval(interval="month"),
            )
        )

        assert params["currency"] == "usd"
        assert params["recurring"] == {"interval": "month", "interval_count": 1}

    def test_one_time_params_have_no_recurring(self):
        params = mappers.price_to_provider_params(
            Price(product_id="prod_1", currency="USD", unit_amount=1000, type=PriceType.ONE_TIME)
        )

        assert "recurring" not in params


# =============================================================================
# Subscription Tests
# =============================================================================


class TestSubscriptionMapping:
    def test_to_canonical(self, stripe_subscription):
        subscription = mappers.subscription_to_canonical(stripe_subscription())

        assert subscription.customer_id == "cus_test123"
        assert subscription.latest_invoice_id == "in_test123"
        assert subscription.items[0].price_id == "price_test123"
        assert subscription.items[0].tax_rate_ids == ["txr_1"]
        # Period read from the first item
        assert subscription.current_period_end is not None

    def test_expanded_customer(self, stripe_subscription):
        subscription = mappers.subscription_to_canonical(
            stripe_subscription(customer={"id": "cus_exp", "object": "customer"})
        )

        assert subscription.customer_id == "cus_exp"

    def test_cancel_at_period_end_is_not_termination(self, stripe_subscription):
        subscription = mappers.subscription_to_canonical(
            stripe_subscription(cancel_at_period_end=True)
        )

        assert subscription.cancel_at_period_end is True
        assert subscription.canceled_at is None
        assert subscription.ended_at is None

    def test_update_params_omit_customer_and_keep_item_ids(self):
        subscription = Subscription(
            external_id="sub_1",
            customer_id="cus_1",
            items=[SubscriptionItem(external_id="si_1", price_id="price_1", quantity=3)],
        )

        params = mappers.subscription_to_provider_params(subscription, for_update=True)

        assert "customer" not in params
        assert params["items"] == [{"price": "price_1", "quantity": 3, "id": "si_1"}]
        assert params["cancel_at_period_end"] is False


# =============================================================================
# Invoice Tests
# =============================================================================


class TestInvoiceMapping:
    def test_current_api_shape(self):
        invoice = mappers.invoice_to_canonical(
            {
                "id": "in_1",
                "customer": "cus_1",
                "currency": "usd",
                "amount_due": 1000,
                "amount_paid": 400,
                "amount_remaining": 500,
                "parent": {"subscription_details": {"subscription": "sub_1"}},
                "total_taxes": [
                    {
                        "amount": 190,
                        "tax_behavior": "exclusive",
                        "taxable_amount": 1000,
                        "tax_rate_details": {"tax_rate": "txr_1"},
                    }
                ],
                "status_transitions": {"paid_at": 1700000000},
                "lines": stripe_list(
                    [
                        {
                            "id": "il_1",
                            "amount": 1000,
                            "currency": "usd",
                            "quantity": 1,
                            "pricing": {"price_details": {"price": "price_1"}},
                            "parent": {
                                "subscription_item_details": {
                                    "subscription_item": "si_1",
                                    "proration": True,
                                }
                            },
                            "period": {"start": 1700000000, "end": 1702592000},
                        }
                    ]
                ),
            }
        )

        assert invoice.subscription_id == "sub_1"
        assert invoice.currency == "USD"
        # Partial credits: amounts are passed through unchanged
        assert invoice.amount_paid + invoice.amount_remaining != invoice.amount_due
        assert invoice.tax_amount == 190
        assert invoice.total_tax_amounts[0].rate_id == "txr_1"
        assert invoice.total_tax_amounts[0].inclusive is False
        assert invoice.paid_at is not None
        line = invoice.lines[0]
        assert line.price_id == "price_1"
        assert line.subscription_item_id == "si_1"
        assert line.proration is True
        assert line.period.start is not None

    def test_legacy_api_shape(self):
        invoice = mappers.invoice_to_canonical(
            {
                "id": "in_2",
                "subscription": "sub_2",
                "tax": 50,
                "total_tax_amounts": [{"amount": 50, "inclusive": True, "tax_rate": "txr_2"}],
                "lines": {"data": [{"id": "il_2", "price": {"id": "price_2"}}]},
            }
        )

        assert invoice.subscription_id == "sub_2"
        assert invoice.tax_amount == 50
        assert invoice.total_tax_amounts[0].inclusive is True
        assert invoice.lines[0].price_id == "price_2"

    def test_empty_tax_list_is_absent(self):
        invoice = mappers.invoice_to_canonical({"id": "in_3", "total_taxes": []})

        assert invoice.total_tax_amounts is None
        assert invoice.tax_amount == 0


# =============================================================================
# Transaction Tests
# =============================================================================


class TestTransactionMapping:
    def test_charge(self):
        txn = mappers.transaction_to_canonical(
            {
                "id": "ch_1",
                "object": "charge",
                "amount": 3000,
                "amount_refunded": 1000,
                "payment_intent": "pi_1",
                "currency": "usd",
            }
        )

        assert txn.type == TransactionType.CHARGE
        assert txn.amount_refunded == 1000
        assert txn.payment_intent_id == "pi_1"

    def test_refund(self):
        txn = mappers.transaction_to_canonical(
            {"id": "re_1", "object": "refund", "amount": 1000, "payment_intent": "pi_1"}
        )

        assert txn.type == TransactionType.REFUND

    def test_payment_intent_expanded_charge(self):
        txn = mappers.payment_intent_to_transaction(
            {
                "id": "pi_1",
                "amount": 3000,
                "latest_charge": {"id": "ch_1", "amount_refunded": 500},
                "last_payment_error": {"message": "card declined"},
            }
        )

        assert txn.amount_refunded == 500
        assert txn.failure_reason == "card declined"
        assert txn.payment_intent_id == "pi_1"


# =============================================================================
# SDK Object Tests
# =============================================================================


class TestSdkObjects:
    """Mappers receive StripeObjects from the SDK, not only plain dicts."""

    def test_customer_from_sdk(self):
        customer = mappers.customer_to_canonical(
            stripe.Customer.construct_from(
                {
                    "id": "cus_sdk",
                    "object": "customer",
                    "email": "sdk@example.com",
                    "currency": "usd",
                    "metadata": {"a": "1"},
                    "address": {"line1": "2 Side St", "city": "Lyon", "country": "FR"},
                },
                "sk_test",
            )
        )

        assert customer.external_id == "cus_sdk"
        assert customer.currency == "USD"
        assert customer.metadata == {"a": "1"}
        assert customer.address == Address(line1="2 Side St", city="Lyon", country="FR")

    def test_subscription_items_from_sdk(self):
        subscription = mappers.subscription_to_canonical(
            stripe.Subscription.construct_from(
                {
                    "id": "sub_sdk",
                    "object": "subscription",
                    "customer": "cus_sdk",
                    "status": "active",
                    "items": {
                        "object": "list",
                        "data": [
                            {
                                "id": "si_sdk",
                                "object": "subscription_item",
                                "price": {"id": "price_sdk", "object": "price"},
                                "quantity": 2,
                            }
                        ],
                    },
                    "metadata": {},
                },
                "sk_test",
            )
        )

        assert subscription.customer_id == "cus_sdk"
        assert [(item.price_id, item.quantity) for item in subscription.items] == [
            ("price_sdk", 2)
        ]

    def test_to_plain_unwraps_nested_objects(self):
        obj = stripe.StripeObject.construct_from(
            {"id": "in_1", "lines": {"object": "list", "data": [{"id": "il_1"}]}},
            "sk_test",
        )

        plain = mappers.to_plain(obj)

        assert plain == {"id": "in_1", "lines": {"object": "list", "data": [{"id": "il_1"}]}}
        assert type(plain) is dict
        assert type(plain["lines"]["data"][0]) is dict


# =============================================================================
# Webhook Routing Tests
# =============================================================================


class TestResolveEventMapper:
    @pytest.mark.parametrize(
        "event_type,kind",
        [
            ("customer.created", WebhookDataKind.CUSTOMER),
            ("customer.deleted", WebhookDataKind.CUSTOMER),
            ("customer.subscription.deleted", WebhookDataKind.SUBSCRIPTION),
            ("product.updated", WebhookDataKind.PRODUCT),
            ("price.created", WebhookDataKind.PRICE),
            ("invoice.paid", WebhookDataKind.INVOICE),
            ("payment_intent.succeeded", WebhookDataKind.TRANSACTION),
            ("charge.refunded", WebhookDataKind.TRANSACTION),
            ("refund.created", WebhookDataKind.TRANSACTION),
        ],
    )
    def test_known_event_types(self, event_type, kind):
        resolved_kind, mapper = mappers.resolve_event_mapper(event_type)

        assert resolved_kind == kind
        assert mapper is not None

    @pytest.mark.parametrize("event_type", ["payout.paid", "customer.source.created", ""])
    def test_unknown_event_types(self, event_type):
        assert mappers.resolve_event_mapper(event_type) == (WebhookDataKind.UNRECOGNIZED, None)
