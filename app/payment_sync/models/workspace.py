"""
Workspace, settlement wallet and per-workspace provider credentials.

A workspace owns its products, prices, subscriptions and invoices.
Customers are linked to workspaces through WorkspaceCustomer instead.

Usage:
    from payment_sync.models import Workspace, WorkspacePaymentConfiguration

    workspace = Workspace.objects.create(name="Acme")
    WorkspacePaymentConfiguration.objects.create(
        workspace=workspace,
        provider="stripe",
        credentials={"api_key": "sk_test_...", "webhook_secret": "whsec_..."},
    )
"""

from __future__ import annotations

from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class Workspace(UUIDPrimaryKeyMixin, BaseModel):
    """A tenant whose billing entities are kept in sync with a provider."""

    name = models.CharField(max_length=255)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return f"Workspace({self.name})"


class Wallet(UUIDPrimaryKeyMixin, BaseModel):
    """
    Settlement wallet of a workspace.

    Products synced from a provider are attached to the workspace's
    first wallet (oldest by creation time).
    """

    workspace = models.ForeignKey(
        Workspace,
        on_delete=models.CASCADE,
        related_name="wallets",
    )
    name = models.CharField(max_length=255, blank=True, default="")
    address = models.CharField(
        max_length=255,
        help_text="Settlement address",
    )
    network = models.CharField(max_length=50, blank=True, default="")

    class Meta:
        ordering = ["created_at"]

    def __str__(self) -> str:
        return f"Wallet({self.address})"


class WorkspacePaymentConfiguration(UUIDPrimaryKeyMixin, BaseModel):
    """
    Provider credentials for one workspace.

    Fields:
        provider: Provider name, matches a name in the provider registry
        credentials: Provider-specific keys (Stripe: api_key, webhook_secret)
        is_active: Inactive configurations are ignored by the registry
    """

    workspace = models.ForeignKey(
        Workspace,
        on_delete=models.CASCADE,
        related_name="payment_configurations",
    )
    provider = models.CharField(max_length=50)
    credentials = models.JSONField(default=dict)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["workspace", "provider"],
                name="uniq_workspace_payment_provider",
            ),
        ]

    def __str__(self) -> str:
        return f"WorkspacePaymentConfiguration({self.workspace_id}, {self.provider})"
