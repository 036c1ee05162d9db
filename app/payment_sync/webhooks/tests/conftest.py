"""
Pytest fixtures for webhook tests.

Usage:
    def test_receive(post_webhook, stripe_config):
        body = stripe_event_body("evt_1", "customer.created", {...})
        response = post_webhook(body)
"""

from unittest.mock import patch

import pytest
from django.urls import reverse

from payment_sync.tests.factories import sign_stripe_payload


@pytest.fixture
def webhook_url(workspace):
    return reverse(
        "payment_sync:provider-webhook",
        kwargs={"provider": "stripe", "workspace_id": workspace.id},
    )


@pytest.fixture
def post_webhook(client, webhook_url):
    """
    POST a Stripe event body, signed with the test secret unless a
    signature is given.
    """

    def _post(body: bytes, signature: str | None = None, url: str | None = None):
        return client.post(
            url or webhook_url,
            data=body,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=sign_stripe_payload(body) if signature is None else signature,
        )

    return _post


@pytest.fixture
def mock_process_task():
    """Patch the processing task so receipt tests never dispatch."""
    with patch("payment_sync.tasks.process_provider_webhook_event.delay") as mock:
        yield mock
