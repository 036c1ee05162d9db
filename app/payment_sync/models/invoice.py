"""
Invoices and invoice line items.

Amounts are stored as the provider reports them; nothing here
recomputes totals.
"""

from __future__ import annotations

from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from payment_sync.models.base import PaymentSyncMixin


class Invoice(UUIDPrimaryKeyMixin, PaymentSyncMixin, BaseModel):
    """Invoice for one customer, optionally tied to a subscription."""

    workspace = models.ForeignKey(
        "payment_sync.Workspace",
        on_delete=models.CASCADE,
        related_name="invoices",
    )
    customer = models.ForeignKey(
        "payment_sync.Customer",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="invoices",
    )
    subscription = models.ForeignKey(
        "payment_sync.Subscription",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="invoices",
    )
    status = models.CharField(max_length=30, blank=True, default="", db_index=True)
    number = models.CharField(max_length=100, blank=True, default="")
    currency = models.CharField(max_length=3, blank=True, default="")
    amount_due = models.BigIntegerField(default=0)
    amount_paid = models.BigIntegerField(default=0)
    amount_remaining = models.BigIntegerField(default=0)
    subtotal = models.BigIntegerField(default=0)
    total = models.BigIntegerField(default=0)
    tax_amount = models.BigIntegerField(default=0)
    total_tax_amounts = models.JSONField(null=True, blank=True)
    billing_reason = models.CharField(max_length=50, blank=True, default="")
    collection_method = models.CharField(max_length=50, blank=True, default="")
    due_date = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    period_start = models.DateTimeField(null=True, blank=True)
    period_end = models.DateTimeField(null=True, blank=True)
    paid_out_of_band = models.BooleanField(default=False)
    hosted_invoice_url = models.URLField(max_length=1000, blank=True, default="")

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["workspace", "external_id", "payment_provider"],
                name="uniq_invoice_workspace_external_id_provider",
            ),
        ]

    def __str__(self) -> str:
        return f"Invoice({self.external_id}, {self.status})"


class InvoiceLineItem(UUIDPrimaryKeyMixin, BaseModel):
    """Line of an invoice, kept in provider order via ``position``."""

    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name="line_items",
    )
    position = models.PositiveIntegerField(default=0)
    external_id = models.CharField(max_length=255, blank=True, default="")
    description = models.TextField(blank=True, default="")
    amount = models.BigIntegerField(default=0)
    currency = models.CharField(max_length=3, blank=True, default="")
    quantity = models.PositiveIntegerField(default=0)
    price_external_id = models.CharField(max_length=255, blank=True, default="")
    proration = models.BooleanField(default=False)
    period_start = models.DateTimeField(null=True, blank=True)
    period_end = models.DateTimeField(null=True, blank=True)
    taxes = models.JSONField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["invoice", "position"]

    def __str__(self) -> str:
        return f"InvoiceLineItem({self.external_id}, {self.amount})"
