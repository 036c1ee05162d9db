"""
Provider adapter contract.

Every payment provider integration subclasses PaymentProvider. The
orchestrator, the webhook endpoint and the registry only talk to this
interface, and every method takes and returns canonical records from
payment_sync.canonical, never provider-native types.

An adapter instance is stateful (it holds its configured credentials)
but has a single owner: the registry builds a fresh instance per
workspace and caller. configure() may be called more than once;
check_connection() may be called any time after it.

List operations return ``(items, next_cursor)``. ``next_cursor`` is the
external id of the last item when the page is full, and empty otherwise.
An empty cursor after a short page does not prove there is no more data
if the provider filtered items out of the page.
"""

from __future__ import annotations

import abc
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from uuid import UUID

    from payment_sync.canonical import (
        Customer,
        ExternalAccount,
        InitialSyncConfig,
        Invoice,
        ListParams,
        Price,
        Product,
        Subscription,
        Transaction,
        WebhookEvent,
    )
    from payment_sync.models import SyncSession


class PaymentProvider(abc.ABC):
    """
    Abstract base class for payment provider adapters.

    Subclasses implement configuration, connectivity, per-entity CRUD and
    list operations, and webhook handling. start_initial_sync is shared:
    it hands the configured adapter to the InitialSyncOrchestrator.
    """

    #: Registry name of the provider ("stripe")
    name: str = ""

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    def get_service_name(self) -> str:
        return self.name

    # =========================================================================
    # Configuration
    # =========================================================================

    @abc.abstractmethod
    def configure(self, credentials: dict[str, Any]) -> None:
        """Store credentials; raise ProviderConfigurationError if any are missing."""

    @abc.abstractmethod
    def check_connection(self) -> None:
        """Make a cheap authenticated read; raise on failure."""

    # =========================================================================
    # Customers
    # =========================================================================

    @abc.abstractmethod
    def create_customer(self, customer: Customer) -> Customer: ...

    @abc.abstractmethod
    def get_customer(self, external_id: str) -> Customer: ...

    @abc.abstractmethod
    def update_customer(self, customer: Customer) -> Customer: ...

    @abc.abstractmethod
    def delete_customer(self, external_id: str) -> None: ...

    @abc.abstractmethod
    def list_customers(self, params: ListParams) -> tuple[list[Customer], str]: ...

    # =========================================================================
    # Products
    # =========================================================================

    @abc.abstractmethod
    def create_product(self, product: Product) -> Product: ...

    @abc.abstractmethod
    def get_product(self, external_id: str) -> Product: ...

    @abc.abstractmethod
    def update_product(self, product: Product) -> Product: ...

    @abc.abstractmethod
    def delete_product(self, external_id: str) -> None: ...

    @abc.abstractmethod
    def list_products(self, params: ListParams) -> tuple[list[Product], str]: ...

    # =========================================================================
    # Prices
    # =========================================================================

    @abc.abstractmethod
    def create_price(self, price: Price) -> Price: ...

    @abc.abstractmethod
    def get_price(self, external_id: str) -> Price: ...

    @abc.abstractmethod
    def update_price(self, price: Price) -> Price: ...

    @abc.abstractmethod
    def delete_price(self, external_id: str) -> None: ...

    @abc.abstractmethod
    def list_prices(self, params: ListParams) -> tuple[list[Price], str]: ...

    # =========================================================================
    # Subscriptions
    # =========================================================================

    @abc.abstractmethod
    def create_subscription(self, subscription: Subscription) -> Subscription: ...

    @abc.abstractmethod
    def get_subscription(self, external_id: str) -> Subscription: ...

    @abc.abstractmethod
    def update_subscription(self, subscription: Subscription) -> Subscription: ...

    @abc.abstractmethod
    def delete_subscription(self, external_id: str) -> None: ...

    @abc.abstractmethod
    def list_subscriptions(
        self, params: ListParams
    ) -> tuple[list[Subscription], str]: ...

    @abc.abstractmethod
    def cancel_subscription(
        self, external_id: str, at_period_end: bool = False
    ) -> Subscription: ...

    @abc.abstractmethod
    def reactivate_subscription(self, external_id: str) -> Subscription: ...

    # =========================================================================
    # Invoices
    # =========================================================================

    @abc.abstractmethod
    def create_invoice(self, invoice: Invoice) -> Invoice: ...

    @abc.abstractmethod
    def get_invoice(self, external_id: str) -> Invoice: ...

    @abc.abstractmethod
    def update_invoice(self, invoice: Invoice) -> Invoice: ...

    @abc.abstractmethod
    def delete_invoice(self, external_id: str) -> None: ...

    @abc.abstractmethod
    def list_invoices(self, params: ListParams) -> tuple[list[Invoice], str]: ...

    @abc.abstractmethod
    def pay_invoice(self, external_id: str) -> Invoice: ...

    @abc.abstractmethod
    def void_invoice(self, external_id: str) -> Invoice: ...

    @abc.abstractmethod
    def finalize_invoice(self, external_id: str) -> Invoice: ...

    @abc.abstractmethod
    def send_invoice(self, external_id: str) -> Invoice: ...

    # =========================================================================
    # Transactions
    # =========================================================================

    @abc.abstractmethod
    def get_transaction(self, external_id: str) -> Transaction: ...

    @abc.abstractmethod
    def list_transactions(
        self, params: ListParams
    ) -> tuple[list[Transaction], str]: ...

    @abc.abstractmethod
    def create_payment_intent(
        self,
        transaction: Transaction,
        confirm: bool = False,
        off_session: bool = False,
    ) -> Transaction:
        """
        Create an intent to collect ``transaction.amount`` from a customer.

        amount, currency, customer_id, payment_method_id, description and
        metadata are read from the record.
        """

    @abc.abstractmethod
    def capture_payment_intent(
        self, external_id: str, amount_to_capture: int | None = None
    ) -> Transaction:
        """Capture an authorized intent; None captures the full amount."""

    @abc.abstractmethod
    def create_refund(
        self,
        payment_intent_id: str,
        amount: int | None = None,
        reason: str = "",
    ) -> Transaction: ...

    # =========================================================================
    # External Accounts
    # =========================================================================

    @abc.abstractmethod
    def create_external_account(self, account: ExternalAccount) -> ExternalAccount: ...

    @abc.abstractmethod
    def get_external_account(self, external_id: str) -> ExternalAccount: ...

    @abc.abstractmethod
    def update_external_account(self, account: ExternalAccount) -> ExternalAccount: ...

    @abc.abstractmethod
    def delete_external_account(self, external_id: str) -> None: ...

    @abc.abstractmethod
    def list_external_accounts(
        self, params: ListParams
    ) -> tuple[list[ExternalAccount], str]: ...

    # =========================================================================
    # Webhooks & Initial Sync
    # =========================================================================

    @abc.abstractmethod
    def handle_webhook(self, raw_body: bytes, signature: str) -> WebhookEvent:
        """
        Verify, parse and map an inbound webhook.

        Raises:
            WebhookSignatureError: carrying an event with signature_valid=False
            WebhookMappingError: verified payload could not be mapped
        """

    @abc.abstractmethod
    def map_webhook_payload(self, raw_body: bytes) -> WebhookEvent:
        """
        Map a previously verified webhook body without re-verifying it.

        Used when processing stored events, after the signature timestamp
        may have expired.
        """

    def set_retry_policy(self, max_retries: int, retry_delay: float) -> None:
        """Adjust how provider calls are retried; adapters without retries ignore it."""

    def start_initial_sync(
        self,
        workspace_id: UUID | str,
        config: InitialSyncConfig | None = None,
    ) -> SyncSession:
        """
        Start a bulk initial sync and return its session immediately.

        The sync continues in a background task; see InitialSyncOrchestrator.
        """
        from payment_sync.services.sync_orchestrator import InitialSyncOrchestrator

        return InitialSyncOrchestrator.start(
            provider_name=self.get_service_name(),
            workspace_id=workspace_id,
            config=config,
        )
