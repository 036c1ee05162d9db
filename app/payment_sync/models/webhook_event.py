"""
ProviderWebhookEvent model for inbound webhook tracking.

Stores every verified webhook once per (provider, provider_event_id)
together with the request body exactly as received, so events can be
audited and replayed. Duplicate deliveries reuse the stored row and bump
``delivery_count``; each delivery is still applied through the
idempotent upsert path.

Usage:
    from payment_sync.models import ProviderWebhookEvent

    event, created = ProviderWebhookEvent.objects.get_or_create(
        provider="stripe",
        provider_event_id="evt_123",
        defaults={...},
    )
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class WebhookEventStatus(models.TextChoices):
    """Processing status of a stored webhook event."""

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


class ProviderWebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    A webhook received from a payment provider.

    Fields:
        provider_event_id: Provider event id (evt_xxx), unique per provider
        event_type: Provider event type ("customer.updated")
        data_kind: Canonical payload kind the event mapped to
        raw_body: Request body, byte-for-byte
        payload: Decoded JSON envelope
        signature_valid: Always True for stored rows; unverified payloads are never stored
        delivery_count: Number of times the provider delivered this event
        processing_attempts: Number of times processing started
    """

    workspace = models.ForeignKey(
        "payment_sync.Workspace",
        on_delete=models.CASCADE,
        related_name="webhook_events",
    )
    provider = models.CharField(max_length=50)
    provider_event_id = models.CharField(max_length=255)
    event_type = models.CharField(max_length=100, db_index=True)
    data_kind = models.CharField(max_length=30, blank=True, default="")
    raw_body = models.BinaryField()
    payload = models.JSONField(default=dict)
    signature_valid = models.BooleanField(default=False)
    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
    )
    delivery_count = models.PositiveIntegerField(default=1)
    processing_attempts = models.PositiveIntegerField(default=0)
    processed_at = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Provider Webhook Event"
        verbose_name_plural = "Provider Webhook Events"
        constraints = [
            models.UniqueConstraint(
                fields=["provider", "provider_event_id"],
                name="uniq_webhook_provider_event_id",
            ),
        ]
        indexes = [
            models.Index(
                fields=["status", "created_at"],
                name="webhook_status_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"ProviderWebhookEvent({self.provider_event_id}, {self.event_type})"

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    def mark_processing(self) -> None:
        """Mark as being processed. Caller saves."""
        self.status = WebhookEventStatus.PROCESSING
        self.processing_attempts += 1

    def mark_processed(self) -> None:
        """Mark as successfully processed. Caller saves."""
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        """Mark as failed. Caller saves."""
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message

    def get_object_id(self) -> str | None:
        """Extract data.object.id from the stored envelope."""
        try:
            return self.payload.get("data", {}).get("object", {}).get("id")
        except (AttributeError, TypeError):
            return None
