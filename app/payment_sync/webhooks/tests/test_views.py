"""
Tests for the provider webhook endpoint.

Tests cover:
- Signature verification against the raw body
- Storing and queueing verified events
- Duplicate deliveries
- Unknown workspace, unknown provider and missing configuration
"""

import time
import uuid

from django.urls import reverse

from payment_sync.models import ProviderWebhookEvent, WebhookEventStatus
from payment_sync.tests.factories import sign_stripe_payload, stripe_event_body

CUSTOMER = {"id": "cus_hook", "object": "customer", "email": "hook@example.com"}


class TestReceiveWebhook:
    """Tests for verified deliveries."""

    def test_valid_event_stored_and_queued(
        self, post_webhook, stripe_config, workspace, mock_process_task
    ):
        body = stripe_event_body("evt_1", "customer.created", CUSTOMER)

        response = post_webhook(body)

        assert response.status_code == 200
        stored = ProviderWebhookEvent.objects.get(provider_event_id="evt_1")
        assert stored.workspace == workspace
        assert stored.event_type == "customer.created"
        assert stored.data_kind == "customer"
        assert bytes(stored.raw_body) == body
        assert stored.signature_valid is True
        assert stored.status == WebhookEventStatus.PENDING
        assert stored.get_object_id() == "cus_hook"
        mock_process_task.assert_called_once_with(str(stored.id))

    def test_unrecognized_event_accepted(self, post_webhook, stripe_config, mock_process_task):
        body = stripe_event_body("evt_payout", "payout.paid", {"id": "po_1", "object": "payout"})

        response = post_webhook(body)

        assert response.status_code == 200
        stored = ProviderWebhookEvent.objects.get(provider_event_id="evt_payout")
        assert stored.data_kind == "unrecognized"

    def test_duplicate_delivery(self, post_webhook, stripe_config, mock_process_task):
        """A redelivery refreshes the row and is queued again."""
        body = stripe_event_body("evt_dup", "customer.updated", CUSTOMER)
        post_webhook(body)
        ProviderWebhookEvent.objects.filter(provider_event_id="evt_dup").update(
            status=WebhookEventStatus.PROCESSED
        )

        response = post_webhook(body)

        assert response.status_code == 200
        stored = ProviderWebhookEvent.objects.get(provider_event_id="evt_dup")
        assert stored.delivery_count == 2
        assert stored.status == WebhookEventStatus.PENDING
        assert mock_process_task.call_count == 2

    def test_queue_failure_still_accepted(self, post_webhook, stripe_config, mock_process_task):
        """The row stays pending for retry_failed_webhooks when the broker is down."""
        mock_process_task.side_effect = ConnectionError("broker down")
        body = stripe_event_body("evt_q", "customer.updated", CUSTOMER)

        response = post_webhook(body)

        assert response.status_code == 200
        assert ProviderWebhookEvent.objects.get(provider_event_id="evt_q").status == (
            WebhookEventStatus.PENDING
        )


class TestRejectWebhook:
    """Tests for deliveries that are rejected before storage."""

    def test_invalid_signature(self, post_webhook, stripe_config, mock_process_task):
        body = stripe_event_body("evt_bad", "customer.updated", CUSTOMER)

        response = post_webhook(body, signature=sign_stripe_payload(body, secret="whsec_wrong"))

        assert response.status_code == 400
        assert not ProviderWebhookEvent.objects.exists()
        mock_process_task.assert_not_called()

    def test_tampered_body(self, post_webhook, stripe_config, mock_process_task):
        body = stripe_event_body("evt_t", "customer.updated", CUSTOMER)
        signature = sign_stripe_payload(body)
        tampered = body.replace(b"hook@example.com", b"evil@example.com")

        response = post_webhook(tampered, signature=signature)

        assert response.status_code == 400
        assert not ProviderWebhookEvent.objects.exists()

    def test_missing_signature(self, post_webhook, stripe_config, mock_process_task):
        response = post_webhook(stripe_event_body(), signature="")

        assert response.status_code == 400

    def test_expired_signature(self, post_webhook, stripe_config, mock_process_task):
        body = stripe_event_body()
        old = int(time.time()) - 3600

        response = post_webhook(body, signature=sign_stripe_payload(body, timestamp=old))

        assert response.status_code == 400

    def test_signed_body_without_object(self, post_webhook, stripe_config, mock_process_task):
        body = b'{"id": "evt_x", "object": "event", "type": "customer.updated", "data": {}}'

        response = post_webhook(body)

        assert response.status_code == 400
        assert not ProviderWebhookEvent.objects.exists()

    def test_unknown_workspace(self, post_webhook, stripe_config, mock_process_task):
        url = reverse(
            "payment_sync:provider-webhook",
            kwargs={"provider": "stripe", "workspace_id": uuid.uuid4()},
        )

        response = post_webhook(stripe_event_body(), url=url)

        assert response.status_code == 404

    def test_unknown_provider(self, post_webhook, workspace, mock_process_task):
        url = reverse(
            "payment_sync:provider-webhook",
            kwargs={"provider": "paypal", "workspace_id": workspace.id},
        )

        response = post_webhook(stripe_event_body(), url=url)

        assert response.status_code == 404

    def test_provider_not_configured(self, post_webhook, workspace, mock_process_task):
        response = post_webhook(stripe_event_body())

        assert response.status_code == 400
        assert not ProviderWebhookEvent.objects.exists()

    def test_get_not_allowed(self, client, webhook_url):
        response = client.get(webhook_url)

        assert response.status_code == 405
