"""
Reconciliation (upsert) layer.

Turns canonical records into internal rows, idempotently. Every upsert
is keyed by (external_id, payment_provider), scoped to the workspace for
workspace-owned entities:

- Not found: create the row with payment_sync_status=synced and
  payment_sync_version=1. Customers also get their WorkspaceCustomer link.
- Found: update mutable fields, mark synced and bump payment_sync_version
  with an F() expression. The internal id, created_at and foreign keys
  to other entities are never rewritten.

Creates run inside a savepoint. If a concurrent writer inserted the same
key first, the IntegrityError is caught and the record is applied as an
update, so two concurrent applies of one record give one row at version 2.

Dependencies must already be synced (customers → products → prices →
subscriptions → invoices); a missing one raises DependencyNotFoundError
before anything is written.

Usage:
    from payment_sync.services import ReconciliationService

    result = ReconciliationService.upsert_customer(workspace, "stripe", customer)
    result.instance.payment_sync_version  # 1 on create, +1 per later apply

    # Non-raising variant for batch callers
    service_result = ReconciliationService.reconcile(workspace, "stripe", record)
    if not service_result.success:
        ...
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from django.db import DatabaseError, IntegrityError, models, transaction
from django.utils import timezone

from core.services import BaseService, ServiceResult

from payment_sync import canonical
from payment_sync.canonical import IntervalType, PaymentSyncStatus, PriceType
from payment_sync.exceptions import (
    DependencyNotFoundError,
    PriceInvariantError,
    ReconciliationError,
)
from payment_sync.models import (
    Customer,
    Invoice,
    InvoiceLineItem,
    Price,
    Product,
    Subscription,
    SubscriptionItem,
    Transaction,
    WorkspaceCustomer,
)

if TYPE_CHECKING:
    from payment_sync.models import Workspace

M = TypeVar("M", bound=models.Model)


@dataclass
class UpsertResult(Generic[M]):
    """Row written by an upsert and whether it was newly created."""

    instance: M
    created: bool


def _json(value: Any) -> Any:
    """Dataclass (or list of dataclasses) to JSON-ready data; None stays None."""
    if value is None:
        return None
    if isinstance(value, list):
        return [asdict(v) for v in value]
    return asdict(value)


def _resolved(**links: Any) -> dict[str, Any]:
    """Foreign keys whose target was found; unresolved ones are left out."""
    return {name: target for name, target in links.items() if target is not None}


class ReconciliationService(BaseService):
    """
    Idempotent create-or-update of canonical records.

    All methods are class-level; the service holds no state.
    """

    # =========================================================================
    # Dispatch
    # =========================================================================

    @classmethod
    def reconcile(
        cls,
        workspace: Workspace,
        provider: str,
        record: Any,
    ) -> ServiceResult[UpsertResult]:
        """
        Upsert any canonical record, reporting failures as a ServiceResult.

        Reconciliation and database errors are per-item failures: they are
        logged and returned, never raised.
        """
        upserts = {
            canonical.Customer: cls.upsert_customer,
            canonical.Product: cls.upsert_product,
            canonical.Price: cls.upsert_price,
            canonical.Subscription: cls.upsert_subscription,
            canonical.Invoice: cls.upsert_invoice,
            canonical.Transaction: cls.upsert_transaction,
        }
        upsert = upserts.get(type(record))
        if upsert is None:
            return ServiceResult.failure(
                f"Unsupported record type: {type(record).__name__}",
                error_code="UNSUPPORTED_RECORD_TYPE",
            )
        invalid = cls.validate_required(external_id=record.external_id)
        if invalid:
            return invalid

        try:
            return ServiceResult.success(upsert(workspace, provider, record))
        except ReconciliationError as e:
            return cls.handle_exception(
                e, f"reconcile {type(record).__name__}", log_level=logging.WARNING
            )
        except DatabaseError as e:
            return cls.handle_exception(
                e, f"reconcile {type(record).__name__}", error_code="DATABASE_ERROR"
            )

    # =========================================================================
    # Shared Upsert
    # =========================================================================

    @classmethod
    def _apply(
        cls,
        model: type[M],
        provider: str,
        lookup: dict[str, Any],
        fields: dict[str, Any],
        create_fields: dict[str, Any] | None = None,
    ) -> UpsertResult[M]:
        """
        Create or update one row.

        Args:
            model: PaymentSyncMixin model
            provider: Provider name, part of the key
            lookup: Remaining key filters (external_id, workspace, ...)
            fields: Mutable fields, written on create and update
            create_fields: Written on create only (foreign keys)
        """
        manager = getattr(model, "all_objects", model._default_manager)
        key = {**lookup, "payment_provider": provider}

        if not manager.filter(**key).exists():
            try:
                with transaction.atomic():
                    instance = manager.create(
                        **key,
                        **(create_fields or {}),
                        **fields,
                        payment_sync_status=PaymentSyncStatus.SYNCED,
                        payment_synced_at=timezone.now(),
                        payment_sync_version=1,
                    )
                return UpsertResult(instance, True)
            except IntegrityError:
                cls.get_logger().info(
                    "Concurrent create detected, applying as update",
                    extra={"model": model.__name__, "external_id": lookup.get("external_id")},
                )

        updated = manager.filter(**key).update(**fields, **model.sync_applied_fields())
        if not updated:
            raise ReconciliationError(
                f"{model.__name__} disappeared during upsert",
                details={"external_id": lookup.get("external_id"), "provider": provider},
            )
        return UpsertResult(manager.get(**key), False)

    # =========================================================================
    # Customers
    # =========================================================================

    @classmethod
    def upsert_customer(
        cls,
        workspace: Workspace,
        provider: str,
        customer: canonical.Customer,
    ) -> UpsertResult[Customer]:
        """
        Upsert a customer and link it to the workspace.

        Customers are shared across workspaces, so the key is global
        (external_id, provider); soft-deleted rows are matched too.
        """
        cls._require_external_id("customer", customer.external_id)

        fields = {
            "email": customer.email,
            "name": customer.name,
            "phone": customer.phone,
            "description": customer.description,
            "billing_address": _json(customer.address),
            "shipping_address": _json(customer.shipping_address),
            "tax_ids": _json(customer.tax_ids),
            "preferred_locales": list(customer.preferred_locales),
            "currency": customer.currency,
            "metadata": dict(customer.metadata),
        }

        with cls.atomic():
            result = cls._apply(
                Customer, provider, {"external_id": customer.external_id}, fields
            )
            WorkspaceCustomer.objects.get_or_create(
                workspace=workspace, customer=result.instance
            )

        cls.get_logger().debug(
            "Customer upserted",
            extra={
                "external_id": customer.external_id,
                "workspace_id": str(workspace.id),
                "was_created": result.created,
            },
        )
        return result

    @classmethod
    def soft_delete_customer(
        cls,
        workspace: Workspace,
        provider: str,
        external_id: str,
    ) -> Customer | None:
        """
        Soft-delete a customer the provider reported deleted.

        Returns None when the customer was never synced; that is not an
        error. Already deleted customers are returned unchanged.
        """
        customer = Customer.all_objects.filter(
            external_id=external_id, payment_provider=provider
        ).first()
        if customer is None:
            cls.get_logger().info(
                "Deleted customer not found locally",
                extra={"external_id": external_id, "workspace_id": str(workspace.id)},
            )
            return None

        if not customer.is_deleted:
            Customer.all_objects.filter(pk=customer.pk).update(
                is_deleted=True,
                deleted_at=timezone.now(),
                **Customer.sync_applied_fields(),
            )
            customer.refresh_from_db()
        return customer

    # =========================================================================
    # Products & Prices
    # =========================================================================

    @classmethod
    def upsert_product(
        cls,
        workspace: Workspace,
        provider: str,
        product: canonical.Product,
    ) -> UpsertResult[Product]:
        """
        Upsert a product. New products settle to the workspace's first wallet.

        Raises:
            DependencyNotFoundError: The workspace has no wallet
        """
        cls._require_external_id("product", product.external_id)

        fields = {
            "name": product.name,
            "description": product.description,
            "active": product.active,
            "product_type": product.type,
            "tax_code": product.tax_code,
            "unit_label": product.unit_label,
            "shippable": product.shippable,
            "images": list(product.images),
            "metadata": dict(product.metadata),
        }
        lookup = {"workspace": workspace, "external_id": product.external_id}

        with cls.atomic():
            create_fields = {}
            if not Product.objects.filter(**lookup, payment_provider=provider).exists():
                wallet = workspace.wallets.order_by("created_at").first()
                if wallet is None:
                    raise DependencyNotFoundError(
                        "no wallet found for workspace",
                        details={
                            "entity_type": "product",
                            "external_id": product.external_id,
                            "workspace_id": str(workspace.id),
                        },
                    )
                create_fields["wallet"] = wallet
            return cls._apply(Product, provider, lookup, fields, create_fields)

    @classmethod
    def validate_price(cls, price: canonical.Price) -> None:
        """
        Check the recurring/one_time invariant.

        Recurring prices need a known interval and a term length above
        zero; one-time prices must carry no recurrence at all.

        Raises:
            PriceInvariantError: The price violates the invariant
        """
        details = {"entity_type": "price", "external_id": price.external_id}

        if price.type == PriceType.RECURRING:
            if price.interval_type not in IntervalType.values:
                raise PriceInvariantError(
                    f"recurring price requires an interval type, got '{price.interval_type}'",
                    details=details,
                )
            if price.term_length <= 0:
                raise PriceInvariantError(
                    "recurring price requires a term length greater than 0",
                    details=details,
                )
        elif price.type == PriceType.ONE_TIME:
            if price.recurring is not None:
                raise PriceInvariantError(
                    "one_time price must not carry a recurring interval",
                    details=details,
                )
        else:
            raise PriceInvariantError(
                f"unknown price type: '{price.type}'",
                details=details,
            )

    @classmethod
    def upsert_price(
        cls,
        workspace: Workspace,
        provider: str,
        price: canonical.Price,
    ) -> UpsertResult[Price]:
        """
        Upsert a price under its product.

        Raises:
            PriceInvariantError: Invalid recurring/one_time fields
            DependencyNotFoundError: "product not found for external_id: X"
        """
        cls._require_external_id("price", price.external_id)
        cls.validate_price(price)

        product = Product.objects.filter(
            workspace=workspace,
            external_id=price.product_id,
            payment_provider=provider,
        ).first()
        if product is None:
            raise DependencyNotFoundError(
                f"product not found for external_id: {price.product_id}",
                details={"entity_type": "price", "external_id": price.external_id},
            )

        recurring = price.is_recurring
        fields = {
            "active": price.active,
            "currency": price.currency,
            "unit_amount": price.unit_amount,
            "price_type": price.type,
            "interval_type": price.interval_type if recurring else None,
            "interval_count": (price.recurring.interval_count or 1) if recurring else None,
            "term_length": price.term_length if recurring else None,
            "nickname": price.nickname,
            "billing_scheme": price.billing_scheme,
            "tax_behavior": price.tax_behavior,
            "pricing_details": {
                "tiers": _json(price.tiers),
                "tiers_mode": price.tiers_mode,
                "transform_quantity": _json(price.transform_quantity),
                "lookup_key": price.lookup_key,
                "usage_type": price.recurring.usage_type if recurring else "",
            },
            "metadata": dict(price.metadata),
        }

        with cls.atomic():
            return cls._apply(
                Price,
                provider,
                {"product": product, "external_id": price.external_id},
                fields,
            )

    # =========================================================================
    # Subscriptions
    # =========================================================================

    @classmethod
    def upsert_subscription(
        cls,
        workspace: Workspace,
        provider: str,
        subscription: canonical.Subscription,
    ) -> UpsertResult[Subscription]:
        """
        Upsert a subscription and re-sync its items.

        Items are matched by external id; items the provider no longer
        reports are removed.

        Raises:
            DependencyNotFoundError: Customer or an item's price not synced
        """
        cls._require_external_id("subscription", subscription.external_id)
        details = {"entity_type": "subscription", "external_id": subscription.external_id}

        customer = Customer.all_objects.filter(
            external_id=subscription.customer_id, payment_provider=provider
        ).first()
        if customer is None:
            raise DependencyNotFoundError(
                f"customer not found for external_id: {subscription.customer_id}",
                details=details,
            )

        prices = {}
        for item in subscription.items:
            price = Price.objects.filter(
                product__workspace=workspace,
                external_id=item.price_id,
                payment_provider=provider,
            ).first()
            if price is None:
                raise DependencyNotFoundError(
                    f"price not found for external_id: {item.price_id}",
                    details=details,
                )
            prices[item.price_id] = price

        fields = {
            "status": subscription.status,
            "currency": subscription.currency,
            "current_period_start": subscription.current_period_start,
            "current_period_end": subscription.current_period_end,
            "cancel_at_period_end": subscription.cancel_at_period_end,
            "cancel_at": subscription.cancel_at,
            "canceled_at": subscription.canceled_at,
            "ended_at": subscription.ended_at,
            "trial_start": subscription.trial_start,
            "trial_end": subscription.trial_end,
            "default_payment_method_id": subscription.default_payment_method_id,
            "latest_invoice_external_id": subscription.latest_invoice_id,
            "collection_method": subscription.collection_method,
            "billing_cycle_anchor": subscription.billing_cycle_anchor,
            "default_tax_rate_ids": list(subscription.default_tax_rate_ids),
            "metadata": dict(subscription.metadata),
        }

        with cls.atomic():
            result = cls._apply(
                Subscription,
                provider,
                {"workspace": workspace, "external_id": subscription.external_id},
                fields,
                {"customer": customer},
            )
            cls._sync_subscription_items(result.instance, subscription.items, prices)
        return result

    @classmethod
    def _sync_subscription_items(
        cls,
        instance: Subscription,
        items: list[canonical.SubscriptionItem],
        prices: dict[str, Price],
    ) -> None:
        keep = []
        for item in items:
            row, _ = SubscriptionItem.objects.update_or_create(
                subscription=instance,
                external_id=item.external_id,
                defaults={
                    "price": prices[item.price_id],
                    "quantity": item.quantity,
                    "tax_rate_ids": list(item.tax_rate_ids),
                    "metadata": dict(item.metadata),
                },
            )
            keep.append(row.pk)
        instance.items.exclude(pk__in=keep).delete()

    # =========================================================================
    # Invoices
    # =========================================================================

    @classmethod
    def upsert_invoice(
        cls,
        workspace: Workspace,
        provider: str,
        invoice: canonical.Invoice,
    ) -> UpsertResult[Invoice]:
        """
        Upsert an invoice and replace its line items.

        The subscription link is optional: an invoice whose subscription
        is not synced is stored without it and linked on a later apply.
        A link that does not resolve never clears one stored earlier.

        Raises:
            DependencyNotFoundError: Customer not synced
        """
        cls._require_external_id("invoice", invoice.external_id)

        customer = None
        if invoice.customer_id:
            customer = Customer.all_objects.filter(
                external_id=invoice.customer_id, payment_provider=provider
            ).first()
            if customer is None:
                raise DependencyNotFoundError(
                    f"customer not found for external_id: {invoice.customer_id}",
                    details={"entity_type": "invoice", "external_id": invoice.external_id},
                )

        subscription = None
        if invoice.subscription_id:
            subscription = Subscription.objects.filter(
                workspace=workspace,
                external_id=invoice.subscription_id,
                payment_provider=provider,
            ).first()

        period = invoice.period or canonical.Period()
        fields = {
            "status": invoice.status,
            "number": invoice.number,
            "currency": invoice.currency,
            "amount_due": invoice.amount_due,
            "amount_paid": invoice.amount_paid,
            "amount_remaining": invoice.amount_remaining,
            "subtotal": invoice.subtotal,
            "total": invoice.total,
            "tax_amount": invoice.tax_amount,
            "total_tax_amounts": _json(invoice.total_tax_amounts),
            "billing_reason": invoice.billing_reason,
            "collection_method": invoice.collection_method,
            "due_date": invoice.due_date,
            "paid_at": invoice.paid_at,
            "period_start": period.start,
            "period_end": period.end,
            "paid_out_of_band": invoice.paid_out_of_band,
            "hosted_invoice_url": invoice.hosted_invoice_url,
            "metadata": dict(invoice.metadata),
        }

        # Links resolve on every apply, so an invoice received before its
        # subscription is linked once the invoice is applied again
        fields.update(_resolved(customer=customer, subscription=subscription))

        with cls.atomic():
            result = cls._apply(
                Invoice,
                provider,
                {"workspace": workspace, "external_id": invoice.external_id},
                fields,
            )
            result.instance.line_items.all().delete()
            InvoiceLineItem.objects.bulk_create(
                [
                    InvoiceLineItem(
                        invoice=result.instance,
                        position=position,
                        external_id=line.external_id,
                        description=line.description,
                        amount=line.amount,
                        currency=line.currency,
                        quantity=line.quantity,
                        price_external_id=line.price_id,
                        proration=line.proration,
                        period_start=line.period.start if line.period else None,
                        period_end=line.period.end if line.period else None,
                        taxes=_json(line.taxes),
                        metadata=dict(line.metadata),
                    )
                    for position, line in enumerate(invoice.lines)
                ]
            )
        return result

    # =========================================================================
    # Transactions
    # =========================================================================

    @classmethod
    def upsert_transaction(
        cls,
        workspace: Workspace,
        provider: str,
        txn: canonical.Transaction,
    ) -> UpsertResult[Transaction]:
        """
        Upsert a payment intent, charge or refund.

        Customer and invoice links are best effort: a transaction is kept
        even when neither has been synced. Links are filled in as soon as
        their targets exist.
        """
        cls._require_external_id("transaction", txn.external_id)

        customer = None
        if txn.customer_id:
            customer = Customer.all_objects.filter(
                external_id=txn.customer_id, payment_provider=provider
            ).first()
        invoice = None
        if txn.invoice_id:
            invoice = Invoice.objects.filter(
                workspace=workspace,
                external_id=txn.invoice_id,
                payment_provider=provider,
            ).first()

        fields = {
            "transaction_type": txn.type,
            "amount": txn.amount,
            "amount_refunded": txn.amount_refunded,
            "currency": txn.currency,
            "status": txn.status,
            "payment_intent_external_id": txn.payment_intent_id,
            "payment_method_id": txn.payment_method_id,
            "description": txn.description,
            "failure_reason": txn.failure_reason,
            "metadata": dict(txn.metadata),
        }

        fields.update(_resolved(customer=customer, invoice=invoice))

        with cls.atomic():
            return cls._apply(
                Transaction,
                provider,
                {"workspace": workspace, "external_id": txn.external_id},
                fields,
            )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _require_external_id(entity_type: str, external_id: str) -> None:
        if not external_id:
            raise ReconciliationError(
                f"{entity_type} has no external_id",
                details={"entity_type": entity_type},
            )
