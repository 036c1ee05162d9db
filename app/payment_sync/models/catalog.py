"""
Product catalog: products and their prices.

A Product belongs to one workspace and one settlement wallet. A Price
belongs to one Product. The recurring/one_time field invariant is
enforced twice: by the reconciliation layer before writing, and by a
database check constraint as the last line.
"""

from __future__ import annotations

from django.db import models
from django.db.models import Q

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from payment_sync.canonical import IntervalType, PriceType
from payment_sync.models.base import PaymentSyncMixin


class Product(UUIDPrimaryKeyMixin, PaymentSyncMixin, BaseModel):
    """Catalog product mirrored from a payment provider."""

    workspace = models.ForeignKey(
        "payment_sync.Workspace",
        on_delete=models.CASCADE,
        related_name="products",
    )
    wallet = models.ForeignKey(
        "payment_sync.Wallet",
        on_delete=models.PROTECT,
        related_name="products",
        help_text="Settlement wallet for this product",
    )
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    active = models.BooleanField(default=True)
    product_type = models.CharField(max_length=50, blank=True, default="")
    tax_code = models.CharField(max_length=100, blank=True, default="")
    unit_label = models.CharField(max_length=50, blank=True, default="")
    shippable = models.BooleanField(default=False)
    images = models.JSONField(default=list, blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["workspace", "external_id", "payment_provider"],
                name="uniq_product_workspace_external_id_provider",
            ),
        ]

    def __str__(self) -> str:
        return f"Product({self.external_id}, {self.name})"


class Price(UUIDPrimaryKeyMixin, PaymentSyncMixin, BaseModel):
    """
    Price of a Product.

    Fields:
        unit_amount: Minor currency units, stored exactly as the provider sent it
        currency: Upper-case ISO 4217 code
        price_type: recurring or one_time
        interval_type / interval_count / term_length: set only for recurring prices
        pricing_details: Provider extension fields (tiers, transform_quantity, ...)
    """

    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="prices",
    )
    active = models.BooleanField(default=True)
    currency = models.CharField(max_length=3)
    unit_amount = models.BigIntegerField(default=0)
    price_type = models.CharField(max_length=20, choices=PriceType.choices)
    interval_type = models.CharField(
        max_length=10,
        choices=IntervalType.choices,
        null=True,
        blank=True,
    )
    interval_count = models.PositiveIntegerField(null=True, blank=True)
    term_length = models.PositiveIntegerField(null=True, blank=True)
    nickname = models.CharField(max_length=255, blank=True, default="")
    billing_scheme = models.CharField(max_length=50, blank=True, default="")
    tax_behavior = models.CharField(max_length=50, blank=True, default="")
    pricing_details = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["product", "external_id", "payment_provider"],
                name="uniq_price_product_external_id_provider",
            ),
            models.CheckConstraint(
                condition=(
                    Q(
                        price_type=PriceType.RECURRING,
                        interval_type__isnull=False,
                        term_length__gt=0,
                    )
                    | Q(
                        price_type=PriceType.ONE_TIME,
                        interval_type__isnull=True,
                        interval_count__isnull=True,
                        term_length__isnull=True,
                    )
                ),
                name="price_recurring_fields_match_type",
            ),
        ]

    def __str__(self) -> str:
        return f"Price({self.external_id}, {self.unit_amount} {self.currency})"
