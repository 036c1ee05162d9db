"""
Subscriptions and their items.

CancelAtPeriodEnd is a scheduling flag only; canceled_at and ended_at
mark termination.
"""

from __future__ import annotations

from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from payment_sync.models.base import PaymentSyncMixin


class SubscriptionStatus(models.TextChoices):
    """Statuses a provider may report for a subscription."""

    ACTIVE = "active", "Active"
    TRIALING = "trialing", "Trialing"
    PAST_DUE = "past_due", "Past Due"
    CANCELED = "canceled", "Canceled"
    INCOMPLETE = "incomplete", "Incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired", "Incomplete Expired"
    UNPAID = "unpaid", "Unpaid"
    PAUSED = "paused", "Paused"


class Subscription(UUIDPrimaryKeyMixin, PaymentSyncMixin, BaseModel):
    """Subscription of one customer within one workspace."""

    workspace = models.ForeignKey(
        "payment_sync.Workspace",
        on_delete=models.CASCADE,
        related_name="subscriptions",
    )
    customer = models.ForeignKey(
        "payment_sync.Customer",
        on_delete=models.PROTECT,
        related_name="subscriptions",
    )
    status = models.CharField(
        max_length=30,
        choices=SubscriptionStatus.choices,
        db_index=True,
    )
    currency = models.CharField(max_length=3, blank=True, default="")
    current_period_start = models.DateTimeField(null=True, blank=True)
    current_period_end = models.DateTimeField(null=True, blank=True)
    cancel_at_period_end = models.BooleanField(default=False)
    cancel_at = models.DateTimeField(null=True, blank=True)
    canceled_at = models.DateTimeField(null=True, blank=True)
    ended_at = models.DateTimeField(null=True, blank=True)
    trial_start = models.DateTimeField(null=True, blank=True)
    trial_end = models.DateTimeField(null=True, blank=True)
    default_payment_method_id = models.CharField(max_length=255, blank=True, default="")
    latest_invoice_external_id = models.CharField(max_length=255, blank=True, default="")
    collection_method = models.CharField(max_length=50, blank=True, default="")
    billing_cycle_anchor = models.DateTimeField(null=True, blank=True)
    default_tax_rate_ids = models.JSONField(default=list, blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["workspace", "external_id", "payment_provider"],
                name="uniq_subscription_workspace_external_id_provider",
            ),
        ]

    def __str__(self) -> str:
        return f"Subscription({self.external_id}, {self.status})"

    @property
    def is_terminated(self) -> bool:
        return self.canceled_at is not None or self.ended_at is not None


class SubscriptionItem(UUIDPrimaryKeyMixin, BaseModel):
    """One price and quantity on a subscription."""

    subscription = models.ForeignKey(
        Subscription,
        on_delete=models.CASCADE,
        related_name="items",
    )
    price = models.ForeignKey(
        "payment_sync.Price",
        on_delete=models.PROTECT,
        related_name="subscription_items",
    )
    external_id = models.CharField(max_length=255, blank=True, default="")
    quantity = models.PositiveIntegerField(default=1)
    tax_rate_ids = models.JSONField(default=list, blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self) -> str:
        return f"SubscriptionItem({self.external_id}, qty={self.quantity})"
