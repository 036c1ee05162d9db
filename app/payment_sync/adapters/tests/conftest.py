"""
Pytest fixtures for payment adapter tests.

Stripe objects are represented as plain dicts and list responses are
{"data": [...]} dicts. sdk_object() wraps one of them the way the Stripe
SDK returns it, for tests that cover SDK responses.

Usage:
    def test_list_customers(stripe_adapter, mock_stripe_customer, stripe_customer):
        mock_stripe_customer.list.return_value = stripe_list([stripe_customer()])
        customers, cursor = stripe_adapter.list_customers(ListParams(limit=10))
"""

from unittest.mock import patch

import pytest
import stripe

from payment_sync.adapters.stripe_adapter import StripeAdapter

TEST_CREDENTIALS = {"api_key": "sk_test_x", "webhook_secret": "whsec_test"}


def stripe_list(items: list, has_more: bool = False) -> dict:
    """A Stripe list response."""
    return {"object": "list", "data": items, "has_more": has_more}


def sdk_object(values: dict) -> stripe.StripeObject:
    """Build the StripeObject the SDK would return for a response dict."""
    return stripe.StripeObject.construct_from(values, TEST_CREDENTIALS["api_key"])


# =============================================================================
# Adapter Fixtures
# =============================================================================


@pytest.fixture
def stripe_adapter():
    """StripeAdapter configured with test credentials and fast retries."""
    adapter = StripeAdapter()
    adapter.configure(dict(TEST_CREDENTIALS))
    adapter.set_retry_policy(max_retries=2, retry_delay=0.01)
    return adapter


@pytest.fixture
def no_sleep():
    """Skip backoff sleeps between retries."""
    with patch("payment_sync.adapters.stripe_adapter.time.sleep") as mock:
        yield mock


# =============================================================================
# Mock Stripe Object Fixtures
# =============================================================================


@pytest.fixture
def stripe_customer():
    """Create a Stripe Customer object."""

    def _create(
        id: str = "cus_test123",
        email: str = "jane@example.com",
        deleted: bool = False,
        **extra,
    ) -> dict:
        obj = {
            "id": id,
            "object": "customer",
            "email": email,
            "name": "Jane Doe",
            "phone": None,
            "currency": "usd",
            "created": 1700000000,
            "metadata": {"tier": "gold"},
            "address": {"line1": "1 Main St", "city": "Berlin", "country": "DE"},
            "tax_ids": stripe_list([{"type": "eu_vat", "value": "DE123", "country": "DE"}]),
        }
        if deleted:
            obj = {"id": id, "object": "customer", "deleted": True}
        obj.update(extra)
        return obj

    return _create


@pytest.fixture
def stripe_price():
    """Create a Stripe Price object (monthly recurring by default)."""

    def _create(
        id: str = "price_test123",
        product: str = "prod_test123",
        recurring: dict | None = None,
        type: str = "recurring",
        **extra,
    ) -> dict:
        obj = {
            "id": id,
            "object": "price",
            "product": product,
            "active": True,
            "currency": "eur",
            "unit_amount": 1999,
            "type": type,
            "billing_scheme": "per_unit",
            "recurring": recurring
            if recurring is not None or type != "recurring"
            else {"interval": "month", "interval_count": 1, "usage_type": "licensed"},
            "created": 1700000000,
            "metadata": {},
        }
        obj.update(extra)
        return obj

    return _create


@pytest.fixture
def stripe_subscription():
    """Create a Stripe Subscription object with one item."""

    def _create(
        id: str = "sub_test123",
        customer: str | dict = "cus_test123",
        price: str = "price_test123",
        **extra,
    ) -> dict:
        obj = {
            "id": id,
            "object": "subscription",
            "customer": customer,
            "status": "active",
            "currency": "usd",
            "cancel_at_period_end": False,
            "canceled_at": None,
            "created": 1700000000,
            "items": stripe_list(
                [
                    {
                        "id": "si_test123",
                        "price": {"id": price, "object": "price"},
                        "quantity": 2,
                        "current_period_start": 1700000000,
                        "current_period_end": 1702592000,
                        "tax_rates": [{"id": "txr_1"}],
                    }
                ]
            ),
            "latest_invoice": {"id": "in_test123", "object": "invoice"},
            "default_tax_rates": [],
            "metadata": {},
        }
        obj.update(extra)
        return obj

    return _create


# =============================================================================
# Mock Stripe Error Fixtures
# =============================================================================


@pytest.fixture
def resource_missing_error():
    return stripe.InvalidRequestError(
        message="No such customer: 'cus_missing'",
        param="id",
        code="resource_missing",
    )


@pytest.fixture
def invalid_request_error():
    return stripe.InvalidRequestError(
        message="Invalid integer: abc",
        param="limit",
        code="parameter_invalid_integer",
    )


@pytest.fixture
def rate_limit_error():
    return stripe.RateLimitError(message="Too many requests hit the API too quickly.")


@pytest.fixture
def api_connection_error():
    return stripe.APIConnectionError(message="Could not connect to Stripe.")


@pytest.fixture
def timeout_error():
    return stripe.APIConnectionError(message="Request to Stripe timed out.")


@pytest.fixture
def api_error():
    return stripe.APIError(message="Something went wrong on Stripe's end.")


@pytest.fixture
def authentication_error():
    return stripe.AuthenticationError(message="Invalid API Key provided.")


# =============================================================================
# Mock Stripe Client Fixtures
# =============================================================================


@pytest.fixture
def mock_stripe_customer():
    """Mock stripe.Customer API."""
    with patch("stripe.Customer") as mock:
        mock.list.return_value = stripe_list([])
        yield mock


@pytest.fixture
def mock_stripe_price():
    """Mock stripe.Price API."""
    with patch("stripe.Price") as mock:
        mock.list.return_value = stripe_list([])
        yield mock


@pytest.fixture
def mock_stripe_subscription():
    """Mock stripe.Subscription API."""
    with patch("stripe.Subscription") as mock:
        mock.list.return_value = stripe_list([])
        yield mock
