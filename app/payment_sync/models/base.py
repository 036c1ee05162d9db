"""
Abstract sync bookkeeping shared by every provider-synced model.

A synced row is identified on the provider side by (external_id,
payment_provider). The version counter is bumped with an F() expression
so concurrent applies each count exactly once.
"""

from __future__ import annotations

from django.db import models
from django.db.models import F
from django.utils import timezone

from payment_sync.canonical import PaymentSyncStatus


class PaymentSyncMixin(models.Model):
    """
    Provider-sync fields for internal billing rows.

    Fields:
        external_id: Identifier assigned by the provider (cus_xxx, prod_xxx, ...)
        payment_provider: Provider name ("stripe")
        payment_sync_status: unsynced, synced or error
        payment_synced_at: Last successful sync
        payment_sync_version: Incremented on every successful sync
        metadata: Provider metadata (string to string)
    """

    external_id = models.CharField(
        max_length=255,
        db_index=True,
        help_text="Identifier assigned by the payment provider",
    )
    payment_provider = models.CharField(
        max_length=50,
        db_index=True,
        help_text="Payment provider name (e.g., 'stripe')",
    )
    payment_sync_status = models.CharField(
        max_length=20,
        choices=PaymentSyncStatus.choices,
        default=PaymentSyncStatus.UNSYNCED,
        help_text="Provider sync status",
    )
    payment_synced_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When this row was last synced from the provider",
    )
    payment_sync_version = models.PositiveIntegerField(
        default=0,
        help_text="Incremented on every successful sync",
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Provider metadata",
    )

    class Meta:
        abstract = True

    @classmethod
    def sync_applied_fields(cls) -> dict:
        """
        Field values to write alongside an update that applied a sync.

        Usage:
            Product.objects.filter(pk=pk).update(
                name=name, **Product.sync_applied_fields()
            )
        """
        return {
            "payment_sync_status": PaymentSyncStatus.SYNCED,
            "payment_synced_at": timezone.now(),
            "payment_sync_version": F("payment_sync_version") + 1,
            "updated_at": timezone.now(),
        }

    @property
    def is_synced(self) -> bool:
        return self.payment_sync_status == PaymentSyncStatus.SYNCED
