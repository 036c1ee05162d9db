"""
Customer and its workspace association.

Customers are keyed globally by (external_id, payment_provider): the same
provider customer may be shared by several workspaces, so the workspace
link lives in WorkspaceCustomer rather than a foreign key on Customer.
"""

from __future__ import annotations

from django.db import models

from core.managers import SoftDeleteManager
from core.model_mixins import SoftDeleteMixin, UUIDPrimaryKeyMixin
from core.models import BaseModel

from payment_sync.models.base import PaymentSyncMixin


class Customer(UUIDPrimaryKeyMixin, SoftDeleteMixin, PaymentSyncMixin, BaseModel):
    """
    Billing customer mirrored from a payment provider.

    Soft-deleted when the provider reports the customer deleted; the
    row stays so invoices and subscriptions keep their reference.
    """

    email = models.CharField(max_length=255, blank=True, default="")
    name = models.CharField(max_length=255, blank=True, default="")
    phone = models.CharField(max_length=50, blank=True, default="")
    description = models.TextField(blank=True, default="")
    billing_address = models.JSONField(null=True, blank=True)
    shipping_address = models.JSONField(null=True, blank=True)
    tax_ids = models.JSONField(default=list, blank=True)
    preferred_locales = models.JSONField(default=list, blank=True)
    currency = models.CharField(max_length=3, blank=True, default="")

    workspaces = models.ManyToManyField(
        "payment_sync.Workspace",
        through="payment_sync.WorkspaceCustomer",
        related_name="customers",
    )

    objects = SoftDeleteManager()
    all_objects = models.Manager()

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["external_id", "payment_provider"],
                name="uniq_customer_external_id_provider",
            ),
        ]

    def __str__(self) -> str:
        return f"Customer({self.external_id}, {self.email})"


class WorkspaceCustomer(UUIDPrimaryKeyMixin, BaseModel):
    """Many-to-many link between a workspace and a customer."""

    workspace = models.ForeignKey(
        "payment_sync.Workspace",
        on_delete=models.CASCADE,
        related_name="customer_links",
    )
    customer = models.ForeignKey(
        Customer,
        on_delete=models.CASCADE,
        related_name="workspace_links",
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["workspace", "customer"],
                name="uniq_workspace_customer",
            ),
        ]
