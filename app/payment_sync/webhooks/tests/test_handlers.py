"""
Tests for webhook dispatch and handlers.
"""

import pytest

from payment_sync.canonical import WebhookDataKind
from payment_sync.models import Customer, Product, Subscription
from payment_sync.tests.factories import (
    CustomerFactory,
    PriceFactory,
    ProductFactory,
    ProviderWebhookEventFactory,
)
from payment_sync.webhooks.handlers import (
    WEBHOOK_HANDLERS,
    dispatch_webhook,
    register_handler,
)


def stored_event(workspace, event_type: str, data_object: dict, **kwargs):
    return ProviderWebhookEventFactory(
        workspace=workspace, event_type=event_type, data_object=data_object, **kwargs
    )


class TestHandlerRegistry:
    def test_every_kind_but_unrecognized_has_handler(self):
        expected = set(WebhookDataKind.values) - {WebhookDataKind.UNRECOGNIZED}

        assert expected <= set(WEBHOOK_HANDLERS)
        assert WebhookDataKind.UNRECOGNIZED not in WEBHOOK_HANDLERS

    def test_register_handler_replaces(self, monkeypatch):
        monkeypatch.setitem(WEBHOOK_HANDLERS, "product", WEBHOOK_HANDLERS["product"])

        @register_handler("product")
        def custom(stored, event):
            return None

        assert WEBHOOK_HANDLERS["product"] is custom


class TestDispatchWebhook:
    def test_customer_created(self, workspace):
        stored = stored_event(
            workspace,
            "customer.created",
            {"id": "cus_hook", "object": "customer", "email": "hook@example.com"},
        )

        result = dispatch_webhook(stored)

        assert result.success is True
        customer = Customer.objects.get(external_id="cus_hook")
        assert customer.email == "hook@example.com"
        assert customer.payment_sync_version == 1
        assert workspace in customer.workspaces.all()

    def test_customer_deleted_soft_deletes(self, workspace):
        CustomerFactory(external_id="cus_gone", workspace=workspace)
        stored = stored_event(
            workspace,
            "customer.deleted",
            {"id": "cus_gone", "object": "customer", "deleted": True},
        )

        result = dispatch_webhook(stored)

        assert result.data["status"] == "deleted"
        assert not Customer.objects.filter(external_id="cus_gone").exists()
        assert Customer.all_objects.get(external_id="cus_gone").is_deleted is True

    def test_delete_of_unknown_customer_succeeds(self, workspace):
        stored = stored_event(
            workspace, "customer.deleted", {"id": "cus_never", "object": "customer"}
        )

        result = dispatch_webhook(stored)

        assert result.success is True
        assert result.data["status"] == "not_found"

    def test_product_updated(self, workspace, wallet):
        stored = stored_event(
            workspace,
            "product.updated",
            {"id": "prod_hook", "object": "product", "name": "Hooked", "active": True},
        )

        result = dispatch_webhook(stored)

        assert result.success is True
        assert Product.objects.get(external_id="prod_hook").wallet == wallet

    def test_price_before_product_fails(self, workspace):
        stored = stored_event(
            workspace,
            "price.created",
            {
                "id": "price_early",
                "object": "price",
                "product": "prod_later",
                "type": "one_time",
                "currency": "usd",
                "unit_amount": 500,
            },
        )

        result = dispatch_webhook(stored)

        assert result.success is False
        assert result.error_code == "DEPENDENCY_NOT_FOUND"

    def test_subscription_routed_by_prefix(self, workspace):
        """customer.subscription.* events update subscriptions, not customers."""
        customer = CustomerFactory(external_id="cus_sub", workspace=workspace)
        product = ProductFactory(workspace=workspace)
        price = PriceFactory(product=product, external_id="price_sub")
        stored = stored_event(
            workspace,
            "customer.subscription.updated",
            {
                "id": "sub_hook",
                "object": "subscription",
                "customer": "cus_sub",
                "status": "active",
                "items": {"data": [{"id": "si_hook", "price": {"id": "price_sub"}, "quantity": 1}]},
            },
            data_kind="subscription",
        )

        result = dispatch_webhook(stored)

        assert result.success is True
        subscription = Subscription.objects.get(external_id="sub_hook")
        assert subscription.customer == customer
        assert subscription.items.get().price == price

    def test_unrecognized_ignored(self, workspace):
        stored = stored_event(
            workspace, "payout.paid", {"id": "po_1", "object": "payout"}, data_kind="unrecognized"
        )

        result = dispatch_webhook(stored)

        assert result.success is True
        assert result.data == {"status": "ignored", "data_kind": WebhookDataKind.UNRECOGNIZED}

    def test_unmappable_stored_body(self, workspace):
        stored = ProviderWebhookEventFactory(workspace=workspace, raw_body=b"not json", payload={})

        result = dispatch_webhook(stored)

        assert result.success is False
        assert result.error_code == "WEBHOOK_MAPPING_ERROR"


@pytest.mark.parametrize(
    "event_type,data_object",
    [
        (
            "invoice.paid",
            {"id": "in_hook", "object": "invoice", "amount_due": 1000, "amount_paid": 1000},
        ),
        (
            "charge.refunded",
            {"id": "ch_hook", "object": "charge", "amount": 1000, "amount_refunded": 1000},
        ),
    ],
)
def test_customerless_records_applied(workspace, event_type, data_object):
    stored = stored_event(workspace, event_type, data_object)

    result = dispatch_webhook(stored)

    assert result.success is True
    assert result.data.created is True
