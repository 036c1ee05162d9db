"""
Transaction model.

One canonical row shape for payment intents, charges and refunds; the
``transaction_type`` tag records which provider object it came from.
"""

from __future__ import annotations

from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from payment_sync.canonical import TransactionType
from payment_sync.models.base import PaymentSyncMixin


class Transaction(UUIDPrimaryKeyMixin, PaymentSyncMixin, BaseModel):
    """Money movement mirrored from a payment provider."""

    workspace = models.ForeignKey(
        "payment_sync.Workspace",
        on_delete=models.CASCADE,
        related_name="transactions",
    )
    customer = models.ForeignKey(
        "payment_sync.Customer",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transactions",
    )
    invoice = models.ForeignKey(
        "payment_sync.Invoice",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transactions",
    )
    transaction_type = models.CharField(
        max_length=30,
        choices=TransactionType.choices,
        db_index=True,
    )
    amount = models.BigIntegerField(default=0)
    amount_refunded = models.BigIntegerField(default=0)
    currency = models.CharField(max_length=3, blank=True, default="")
    status = models.CharField(max_length=50, blank=True, default="")
    payment_intent_external_id = models.CharField(max_length=255, blank=True, default="")
    payment_method_id = models.CharField(max_length=255, blank=True, default="")
    description = models.TextField(blank=True, default="")
    failure_reason = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["workspace", "external_id", "payment_provider"],
                name="uniq_transaction_workspace_external_id_provider",
            ),
        ]

    def __str__(self) -> str:
        return f"Transaction({self.transaction_type}, {self.external_id})"
