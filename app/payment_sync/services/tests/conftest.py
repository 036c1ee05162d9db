"""
Pytest fixtures for payment sync service tests.

Canonical records are built with sensible defaults; override any field
by keyword.

Usage:
    def test_upsert(workspace, canonical_customer):
        record = canonical_customer(external_id="cus_1", email="a@example.com")
        ReconciliationService.upsert_customer(workspace, "stripe", record)
"""

from datetime import datetime, timezone

import pytest

from payment_sync import canonical
from payment_sync.canonical import PriceType, RecurringInterval

PERIOD_START = datetime(2024, 1, 1, tzinfo=timezone.utc)
PERIOD_END = datetime(2024, 2, 1, tzinfo=timezone.utc)


@pytest.fixture
def canonical_customer():
    def _create(external_id: str = "cus_test123", **kwargs) -> canonical.Customer:
        kwargs.setdefault("email", "jane@example.com")
        kwargs.setdefault("name", "Jane Doe")
        kwargs.setdefault("currency", "USD")
        return canonical.Customer(external_id=external_id, **kwargs)

    return _create


@pytest.fixture
def canonical_product():
    def _create(external_id: str = "prod_test123", **kwargs) -> canonical.Product:
        kwargs.setdefault("name", "Pro Plan")
        kwargs.setdefault("active", True)
        return canonical.Product(external_id=external_id, **kwargs)

    return _create


@pytest.fixture
def canonical_price():
    """Monthly recurring price by default."""

    def _create(
        external_id: str = "price_test123",
        product_id: str = "prod_test123",
        **kwargs,
    ) -> canonical.Price:
        kwargs.setdefault("currency", "USD")
        kwargs.setdefault("unit_amount", 1999)
        kwargs.setdefault("active", True)
        kwargs.setdefault("type", PriceType.RECURRING)
        if kwargs["type"] == PriceType.RECURRING:
            kwargs.setdefault("recurring", RecurringInterval(interval="month", interval_count=1))
        return canonical.Price(external_id=external_id, product_id=product_id, **kwargs)

    return _create


@pytest.fixture
def canonical_subscription():
    def _create(
        external_id: str = "sub_test123",
        customer_id: str = "cus_test123",
        items: list | None = None,
        **kwargs,
    ) -> canonical.Subscription:
        kwargs.setdefault("status", "active")
        kwargs.setdefault("current_period_start", PERIOD_START)
        kwargs.setdefault("current_period_end", PERIOD_END)
        if items is None:
            items = [
                canonical.SubscriptionItem(
                    external_id="si_test123", price_id="price_test123", quantity=1
                )
            ]
        return canonical.Subscription(
            external_id=external_id, customer_id=customer_id, items=items, **kwargs
        )

    return _create
