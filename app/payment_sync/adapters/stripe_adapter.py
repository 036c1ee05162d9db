"""
Stripe implementation of the PaymentProvider contract.

All Stripe calls made by the sync engine go through this adapter to
ensure consistent error handling, timeouts, retries and observability.
Stripe objects never leave this module: every method maps them to
canonical records through payment_sync.adapters.stripe_mappers.

Features:
- Per-instance credentials (one adapter per workspace), passed to every
  SDK call as ``api_key`` so concurrent workspaces never share a key
- Automatic error translation to domain exceptions
- Retry with exponential backoff for transient errors (rate limits,
  connection errors, Stripe 5xx)
- Idempotency keys on create calls so retries never duplicate objects
- Structured logging with timing metrics

Configuration (via settings, overridable per instance):
- STRIPE_API_TIMEOUT_SECONDS: API call timeout, process-wide (default: 10)
- STRIPE_MAX_RETRIES: Max retry attempts (default: 3)
- PAYMENT_SYNC_DEFAULT_RETRY_DELAY_SECONDS: Base backoff delay (default: 2.0)
- STRIPE_WEBHOOK_TOLERANCE_SECONDS: Accepted webhook timestamp skew (default: 300)

Usage:
    adapter = StripeAdapter()
    adapter.configure({"api_key": "sk_test_...", "webhook_secret": "whsec_..."})
    adapter.check_connection()

    customers, cursor = adapter.list_customers(ListParams(limit=100))
"""

from __future__ import annotations

import hashlib
import json
import random
import time
import uuid
from typing import TYPE_CHECKING, Any, Callable

import stripe
from django.conf import settings

from payment_sync.adapters import stripe_mappers as mappers
from payment_sync.adapters.base import PaymentProvider
from payment_sync.adapters.registry import register_provider
from payment_sync.canonical import (
    DEFAULT_RETRY_DELAY_SECONDS,
    UnrecognizedPayload,
    WebhookDataKind,
    WebhookEvent,
    next_cursor,
)
from payment_sync.exceptions import (
    ProviderConfigurationError,
    ProviderNotImplementedError,
    StripeAPIUnavailableError,
    StripeAuthenticationError,
    StripeError,
    StripeInvalidRequestError,
    StripeNotFoundError,
    StripeRateLimitError,
    StripeTimeoutError,
    WebhookMappingError,
    WebhookSignatureError,
)

if TYPE_CHECKING:
    from payment_sync.canonical import (
        Customer,
        ExternalAccount,
        Invoice,
        ListParams,
        Price,
        Product,
        Subscription,
        Transaction,
    )


MAX_RETRY_DELAY_SECONDS = 60.0


def configure_http_client() -> None:
    """
    Install the process-wide Stripe HTTP client with the configured timeout.

    Called once from PaymentSyncConfig.ready(). Adapter instances never
    touch SDK globals; credentials travel with each call.
    """
    timeout = getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
    stripe.default_http_client = stripe.RequestsClient(timeout=timeout)


# =============================================================================
# Idempotency
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe create calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    The key is generated once per logical call, before the retry loop,
    so every retry of the same create reuses it.

    Example:
        key = IdempotencyKeyGenerator.generate(operation="create_customer")
        # Result: "create_customer:2f1c...:1:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str | None = None,
        attempt: int = 1,
    ) -> str:
        """
        Generate a unique idempotency key.

        Args:
            operation: The Stripe operation (create_customer, create_refund, etc.)
            entity_id: Domain id to bind the key to; a random one when omitted
            attempt: Attempt number of the logical operation (default: 1)
        """
        entity_str = str(entity_id or uuid.uuid4())
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]

        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


# =============================================================================
# Retry Logic Helpers
# =============================================================================


def is_retryable_stripe_error(error: Exception) -> bool:
    """
    Check if a translated Stripe error is retryable.

    Only domain StripeError instances carry the flag; anything else is
    treated as permanent.
    """
    if isinstance(error, StripeError):
        return getattr(error, "is_retryable", False)
    return False


def backoff_delay(attempt: int, base: float = 1.0, max_delay: float = 60.0) -> float:
    """
    Calculate exponential backoff delay with jitter.

    Args:
        attempt: Current attempt number (0-indexed)
        base: Base delay in seconds (default: 1.0)
        max_delay: Maximum delay in seconds (default: 60.0)

    Returns:
        Delay in seconds with jitter (0-25% of calculated delay)

    Example:
        # base=2.0
        # Attempt 0: 2.0 - 2.5 seconds
        # Attempt 1: 4.0 - 5.0 seconds
        # Attempt 2: 8.0 - 10.0 seconds
        delay = backoff_delay(attempt=2, base=2.0)
    """
    delay = min(base * (2**attempt), max_delay)
    # Add jitter (0-25% of delay)
    jitter = delay * random.uniform(0, 0.25)
    return delay + jitter


# =============================================================================
# Stripe Adapter
# =============================================================================


@register_provider("stripe")
class StripeAdapter(PaymentProvider):
    """
    PaymentProvider backed by the Stripe API.

    Instances hold the credentials of one workspace. They are cheap to
    build; the registry creates a fresh one per caller.

    Usage:
        adapter = StripeAdapter()
        adapter.configure(credentials)
        price = adapter.get_price("price_123")
    """

    name = "stripe"

    def __init__(self) -> None:
        self._api_key: str = ""
        self._webhook_secret: str = ""
        self.max_retries: int = getattr(settings, "STRIPE_MAX_RETRIES", 3)
        self.retry_delay: float = getattr(
            settings,
            "PAYMENT_SYNC_DEFAULT_RETRY_DELAY_SECONDS",
            DEFAULT_RETRY_DELAY_SECONDS,
        )
        self.webhook_tolerance: int = getattr(
            settings, "STRIPE_WEBHOOK_TOLERANCE_SECONDS", 300
        )

    # =========================================================================
    # Configuration
    # =========================================================================

    def configure(self, credentials: dict[str, Any]) -> None:
        """
        Store API credentials for this adapter.

        Args:
            credentials: Must contain non-empty "api_key" and "webhook_secret"

        Raises:
            ProviderConfigurationError: A required credential is missing
        """
        credentials = credentials or {}
        missing = [
            key for key in ("api_key", "webhook_secret") if not credentials.get(key)
        ]
        if missing:
            raise ProviderConfigurationError(
                f"Missing Stripe credentials: {', '.join(missing)}",
                details={"provider": self.name, "missing": missing},
            )

        self._api_key = credentials["api_key"]
        self._webhook_secret = credentials["webhook_secret"]

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key and self._webhook_secret)

    def _require_configured(self) -> None:
        if not self.is_configured:
            raise ProviderConfigurationError(
                "Stripe adapter used before configure()",
                details={"provider": self.name},
            )

    def set_retry_policy(self, max_retries: int, retry_delay: float) -> None:
        self.max_retries = max(0, int(max_retries))
        self.retry_delay = max(0.0, float(retry_delay))

    def check_connection(self) -> None:
        """
        Verify the API key with a cheap authenticated read.

        Raises:
            ProviderConfigurationError: Adapter not configured
            StripeAuthenticationError: Stripe rejected the key
        """
        account = self._call("check_connection", stripe.Account.retrieve)
        self.get_logger().info(
            "Stripe connection verified",
            extra={"provider": self.name, "account_id": mappers._get(account, "id")},
        )

    # =========================================================================
    # Call Wrapper
    # =========================================================================

    def _call(
        self,
        operation: str,
        func: Callable[..., Any],
        *args: Any,
        log_context: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> Any:
        """
        Invoke a Stripe SDK function with credentials, logging and retries.

        Transient errors are retried up to max_retries times with
        exponential backoff. Permanent errors are raised at once.

        Raises:
            StripeError subclass: translated SDK error
        """
        self._require_configured()
        logger = self.get_logger()
        log_context = {"operation": operation, "provider": self.name, **(log_context or {})}

        attempt = 0
        while True:
            start_time = time.time()
            try:
                result = func(*args, api_key=self._api_key, **kwargs)
            except Exception as e:
                duration_ms = (time.time() - start_time) * 1000
                error = self._handle_stripe_error(e, log_context, duration_ms)
                if is_retryable_stripe_error(error) and attempt < self.max_retries:
                    delay = backoff_delay(
                        attempt,
                        base=self.retry_delay,
                        max_delay=MAX_RETRY_DELAY_SECONDS,
                    )
                    logger.warning(
                        "Retrying Stripe operation",
                        extra={
                            **log_context,
                            "attempt": attempt + 1,
                            "max_retries": self.max_retries,
                            "delay_seconds": delay,
                            "error_code": error.error_code,
                        },
                    )
                    time.sleep(delay)
                    attempt += 1
                    continue
                raise error from e

            duration_ms = (time.time() - start_time) * 1000
            logger.debug(
                "Stripe operation completed",
                extra={**log_context, "attempt": attempt, "duration_ms": duration_ms},
            )
            return result

    def _list(
        self,
        operation: str,
        func: Callable[..., Any],
        params: ListParams,
        mapper: Callable[[Any], Any],
        filters: dict[str, Any] | None = None,
        skip: Callable[[Any], bool] | None = None,
    ) -> tuple[list[Any], str]:
        """
        Run a list call and map the page.

        ``skip`` drops provider objects before mapping (deleted customers).
        The cursor is computed from the mapped page, so a page shortened
        by ``skip`` ends pagination.
        """
        kwargs = self._list_kwargs(params)
        kwargs.update(mappers._compact(filters or {}))

        page = self._call(
            operation,
            func,
            log_context={"limit": params.limit, "starting_after": params.starting_after},
            **kwargs,
        )
        items = [
            mapper(obj)
            for obj in mappers.items_of(mappers.to_plain(page))
            if not (skip is not None and skip(obj))
        ]
        return items, next_cursor(items, params.limit)

    @staticmethod
    def _list_kwargs(params: ListParams) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        if params.limit > 0:
            kwargs["limit"] = params.limit
        if params.starting_after:
            kwargs["starting_after"] = params.starting_after
        if params.ending_before:
            kwargs["ending_before"] = params.ending_before

        created = mappers._compact(
            {
                "gte": mappers._unix(params.created_after),
                "lte": mappers._unix(params.created_before),
            }
        )
        if created:
            kwargs["created"] = created
        return kwargs

    @staticmethod
    def _require_id(entity: str, external_id: str) -> str:
        if not external_id:
            raise ValueError(f"external_id is required to update a {entity}")
        return external_id

    # =========================================================================
    # Customers
    # =========================================================================

    def create_customer(self, customer: Customer) -> Customer:
        obj = self._call(
            "create_customer",
            stripe.Customer.create,
            idempotency_key=IdempotencyKeyGenerator.generate("create_customer"),
            **mappers.customer_to_provider_params(customer),
        )
        return mappers.customer_to_canonical(obj)

    def get_customer(self, external_id: str) -> Customer:
        obj = self._call(
            "get_customer",
            stripe.Customer.retrieve,
            external_id,
            expand=mappers.CUSTOMER_EXPANSIONS,
            log_context={"external_id": external_id},
        )
        return mappers.customer_to_canonical(obj)

    def update_customer(self, customer: Customer) -> Customer:
        external_id = self._require_id("customer", customer.external_id)
        obj = self._call(
            "update_customer",
            stripe.Customer.modify,
            external_id,
            log_context={"external_id": external_id},
            **mappers.customer_to_provider_params(customer),
        )
        return mappers.customer_to_canonical(obj)

    def delete_customer(self, external_id: str) -> None:
        self._call(
            "delete_customer",
            stripe.Customer.delete,
            external_id,
            log_context={"external_id": external_id},
        )

    def list_customers(self, params: ListParams) -> tuple[list[Customer], str]:
        """
        List customers. Filters: ``email``.

        Customers Stripe reports as deleted are left out of the page.
        """
        return self._list(
            "list_customers",
            stripe.Customer.list,
            params,
            mappers.customer_to_canonical,
            filters={
                "email": params.filters.get("email"),
                "expand": [f"data.{e}" for e in mappers.CUSTOMER_EXPANSIONS],
            },
            skip=lambda obj: bool(mappers._get(obj, "deleted", False)),
        )

    # =========================================================================
    # Products
    # =========================================================================

    def create_product(self, product: Product) -> Product:
        obj = self._call(
            "create_product",
            stripe.Product.create,
            idempotency_key=IdempotencyKeyGenerator.generate("create_product"),
            **mappers.product_to_provider_params(product),
        )
        return mappers.product_to_canonical(obj)

    def get_product(self, external_id: str) -> Product:
        obj = self._call(
            "get_product",
            stripe.Product.retrieve,
            external_id,
            log_context={"external_id": external_id},
        )
        return mappers.product_to_canonical(obj)

    def update_product(self, product: Product) -> Product:
        external_id = self._require_id("product", product.external_id)
        obj = self._call(
            "update_product",
            stripe.Product.modify,
            external_id,
            log_context={"external_id": external_id},
            **mappers.product_to_provider_params(product),
        )
        return mappers.product_to_canonical(obj)

    def delete_product(self, external_id: str) -> None:
        self._call(
            "delete_product",
            stripe.Product.delete,
            external_id,
            log_context={"external_id": external_id},
        )

    def list_products(self, params: ListParams) -> tuple[list[Product], str]:
        """List products. Filters: ``active``, ``type``; ``ids`` from ListParams."""
        return self._list(
            "list_products",
            stripe.Product.list,
            params,
            mappers.product_to_canonical,
            filters={
                "active": params.filters.get("active"),
                "type": params.filters.get("type"),
                "ids": list(params.ids) or params.filters.get("ids"),
            },
        )

    # =========================================================================
    # Prices
    # =========================================================================

    def create_price(self, price: Price) -> Price:
        obj = self._call(
            "create_price",
            stripe.Price.create,
            idempotency_key=IdempotencyKeyGenerator.generate("create_price"),
            **mappers.price_to_provider_params(price),
        )
        return mappers.price_to_canonical(obj)

    def get_price(self, external_id: str) -> Price:
        obj = self._call(
            "get_price",
            stripe.Price.retrieve,
            external_id,
            log_context={"external_id": external_id},
        )
        return mappers.price_to_canonical(obj)

    def update_price(self, price: Price) -> Price:
        """
        Update the mutable fields of a price.

        Stripe prices are immutable apart from these; amount, currency
        and recurrence changes need a new price.
        """
        external_id = self._require_id("price", price.external_id)
        obj = self._call(
            "update_price",
            stripe.Price.modify,
            external_id,
            log_context={"external_id": external_id},
            **mappers._compact(
                {
                    "active": price.active,
                    "nickname": price.nickname,
                    "lookup_key": price.lookup_key,
                    "tax_behavior": price.tax_behavior,
                    "metadata": price.metadata,
                }
            ),
        )
        return mappers.price_to_canonical(obj)

    def delete_price(self, external_id: str) -> None:
        """Stripe cannot delete prices; archive it instead."""
        self._call(
            "delete_price",
            stripe.Price.modify,
            external_id,
            active=False,
            log_context={"external_id": external_id},
        )

    def list_prices(self, params: ListParams) -> tuple[list[Price], str]:
        """List prices. Filters: ``product``, ``active``, ``currency``, ``type``."""
        return self._list(
            "list_prices",
            stripe.Price.list,
            params,
            mappers.price_to_canonical,
            filters={
                "product": params.filters.get("product"),
                "active": params.filters.get("active"),
                "currency": mappers._lower(params.filters.get("currency", "")),
                "type": params.filters.get("type"),
            },
        )

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def create_subscription(self, subscription: Subscription) -> Subscription:
        obj = self._call(
            "create_subscription",
            stripe.Subscription.create,
            idempotency_key=IdempotencyKeyGenerator.generate("create_subscription"),
            expand=mappers.SUBSCRIPTION_EXPANSIONS,
            **mappers.subscription_to_provider_params(subscription),
        )
        return mappers.subscription_to_canonical(obj)

    def get_subscription(self, external_id: str) -> Subscription:
        obj = self._call(
            "get_subscription",
            stripe.Subscription.retrieve,
            external_id,
            expand=mappers.SUBSCRIPTION_EXPANSIONS,
            log_context={"external_id": external_id},
        )
        return mappers.subscription_to_canonical(obj)

    def update_subscription(self, subscription: Subscription) -> Subscription:
        external_id = self._require_id("subscription", subscription.external_id)
        obj = self._call(
            "update_subscription",
            stripe.Subscription.modify,
            external_id,
            expand=mappers.SUBSCRIPTION_EXPANSIONS,
            log_context={"external_id": external_id},
            **mappers.subscription_to_provider_params(subscription, for_update=True),
        )
        return mappers.subscription_to_canonical(obj)

    def delete_subscription(self, external_id: str) -> None:
        """Subscriptions cannot be deleted; cancel immediately."""
        self._call(
            "delete_subscription",
            stripe.Subscription.cancel,
            external_id,
            log_context={"external_id": external_id},
        )

    def list_subscriptions(self, params: ListParams) -> tuple[list[Subscription], str]:
        """
        List subscriptions. Filters: ``customer``, ``status``, ``price``.

        Stripe omits canceled subscriptions unless ``status="all"``.
        """
        return self._list(
            "list_subscriptions",
            stripe.Subscription.list,
            params,
            mappers.subscription_to_canonical,
            filters={
                "customer": params.filters.get("customer"),
                "status": params.filters.get("status"),
                "price": params.filters.get("price"),
                "expand": ["data.default_tax_rates", "data.items.data.tax_rates"],
            },
        )

    def cancel_subscription(
        self, external_id: str, at_period_end: bool = False
    ) -> Subscription:
        """
        Cancel a subscription now, or schedule it for the end of the period.

        A scheduled cancellation only sets cancel_at_period_end; the
        subscription stays active until Stripe ends it.
        """
        if at_period_end:
            obj = self._call(
                "cancel_subscription",
                stripe.Subscription.modify,
                external_id,
                cancel_at_period_end=True,
                log_context={"external_id": external_id, "at_period_end": True},
            )
        else:
            obj = self._call(
                "cancel_subscription",
                stripe.Subscription.cancel,
                external_id,
                log_context={"external_id": external_id, "at_period_end": False},
            )
        return mappers.subscription_to_canonical(obj)

    def reactivate_subscription(self, external_id: str) -> Subscription:
        """Undo a scheduled cancellation."""
        obj = self._call(
            "reactivate_subscription",
            stripe.Subscription.modify,
            external_id,
            cancel_at_period_end=False,
            log_context={"external_id": external_id},
        )
        return mappers.subscription_to_canonical(obj)

    # =========================================================================
    # Invoices
    # =========================================================================

    def create_invoice(self, invoice: Invoice) -> Invoice:
        obj = self._call(
            "create_invoice",
            stripe.Invoice.create,
            idempotency_key=IdempotencyKeyGenerator.generate("create_invoice"),
            **mappers.invoice_to_provider_params(invoice),
        )
        return mappers.invoice_to_canonical(obj)

    def get_invoice(self, external_id: str) -> Invoice:
        obj = self._call(
            "get_invoice",
            stripe.Invoice.retrieve,
            external_id,
            expand=mappers.INVOICE_EXPANSIONS,
            log_context={"external_id": external_id},
        )
        return mappers.invoice_to_canonical(obj)

    def update_invoice(self, invoice: Invoice) -> Invoice:
        external_id = self._require_id("invoice", invoice.external_id)
        params = mappers.invoice_to_provider_params(invoice)
        # Ownership of a draft invoice cannot move
        params.pop("customer", None)
        params.pop("subscription", None)
        obj = self._call(
            "update_invoice",
            stripe.Invoice.modify,
            external_id,
            log_context={"external_id": external_id},
            **params,
        )
        return mappers.invoice_to_canonical(obj)

    def delete_invoice(self, external_id: str) -> None:
        """Delete a draft invoice. Finalized invoices must be voided instead."""
        self._call(
            "delete_invoice",
            stripe.Invoice.delete,
            external_id,
            log_context={"external_id": external_id},
        )

    def list_invoices(self, params: ListParams) -> tuple[list[Invoice], str]:
        """
        List invoices.

        Filters: ``customer``, ``status``, ``subscription``,
        ``collection_method``, and ``due_date_after``/``due_date_before``
        (datetimes).
        """
        due_date = mappers._compact(
            {
                "gte": mappers._unix(params.filters.get("due_date_after")),
                "lte": mappers._unix(params.filters.get("due_date_before")),
            }
        )
        return self._list(
            "list_invoices",
            stripe.Invoice.list,
            params,
            mappers.invoice_to_canonical,
            filters={
                "customer": params.filters.get("customer"),
                "status": params.filters.get("status"),
                "subscription": params.filters.get("subscription"),
                "collection_method": params.filters.get("collection_method"),
                "due_date": due_date,
            },
        )

    def pay_invoice(self, external_id: str) -> Invoice:
        return self._invoice_action("pay_invoice", stripe.Invoice.pay, external_id)

    def void_invoice(self, external_id: str) -> Invoice:
        return self._invoice_action(
            "void_invoice", stripe.Invoice.void_invoice, external_id
        )

    def finalize_invoice(self, external_id: str) -> Invoice:
        return self._invoice_action(
            "finalize_invoice", stripe.Invoice.finalize_invoice, external_id
        )

    def send_invoice(self, external_id: str) -> Invoice:
        return self._invoice_action(
            "send_invoice", stripe.Invoice.send_invoice, external_id
        )

    def _invoice_action(
        self, operation: str, func: Callable[..., Any], external_id: str
    ) -> Invoice:
        obj = self._call(operation, func, external_id, log_context={"external_id": external_id})
        return mappers.invoice_to_canonical(obj)

    # =========================================================================
    # Transactions
    # =========================================================================

    def get_transaction(self, external_id: str) -> Transaction:
        """
        Retrieve a payment intent, charge or refund by id.

        The resource is chosen by id prefix (pi_, ch_/py_, re_/pyr_).
        """
        log_context = {"external_id": external_id}
        if external_id.startswith(("ch_", "py_")):
            obj = self._call(
                "get_transaction", stripe.Charge.retrieve, external_id, log_context=log_context
            )
        elif external_id.startswith(("re_", "pyr_")):
            obj = self._call(
                "get_transaction", stripe.Refund.retrieve, external_id, log_context=log_context
            )
        else:
            obj = self._call(
                "get_transaction",
                stripe.PaymentIntent.retrieve,
                external_id,
                expand=mappers.PAYMENT_INTENT_EXPANSIONS,
                log_context=log_context,
            )
        return mappers.transaction_to_canonical(obj)

    def list_transactions(self, params: ListParams) -> tuple[list[Transaction], str]:
        """List payment intents as transactions. Filters: ``customer``."""
        return self._list(
            "list_transactions",
            stripe.PaymentIntent.list,
            params,
            mappers.payment_intent_to_transaction,
            filters={"customer": params.filters.get("customer")},
        )

    def create_payment_intent(
        self,
        transaction: Transaction,
        confirm: bool = False,
        off_session: bool = False,
    ) -> Transaction:
        """
        Create a PaymentIntent for a canonical transaction.

        off_session only applies to confirmed intents (charging a saved
        payment method without the customer present).
        """
        if transaction.amount <= 0 or not transaction.currency:
            raise ValueError("amount and currency are required to create a payment intent")

        params = mappers.transaction_to_provider_params(transaction)
        if confirm:
            params["confirm"] = True
            if off_session:
                params["off_session"] = True
        obj = self._call(
            "create_payment_intent",
            stripe.PaymentIntent.create,
            idempotency_key=IdempotencyKeyGenerator.generate("create_payment_intent"),
            expand=mappers.PAYMENT_INTENT_EXPANSIONS,
            log_context={
                "customer_id": transaction.customer_id,
                "amount": transaction.amount,
                "confirm": confirm,
            },
            **params,
        )
        return mappers.payment_intent_to_transaction(obj)

    def capture_payment_intent(
        self, external_id: str, amount_to_capture: int | None = None
    ) -> Transaction:
        obj = self._call(
            "capture_payment_intent",
            stripe.PaymentIntent.capture,
            external_id,
            expand=mappers.PAYMENT_INTENT_EXPANSIONS,
            log_context={"external_id": external_id, "amount_to_capture": amount_to_capture},
            **mappers._compact({"amount_to_capture": amount_to_capture}),
        )
        return mappers.payment_intent_to_transaction(obj)

    def create_refund(
        self,
        payment_intent_id: str,
        amount: int | None = None,
        reason: str = "",
    ) -> Transaction:
        """
        Refund a payment intent, fully or partially.

        Args:
            payment_intent_id: PaymentIntent to refund (pi_xxx)
            amount: Minor units to refund; None refunds the remainder
            reason: duplicate, fraudulent or requested_by_customer
        """
        obj = self._call(
            "create_refund",
            stripe.Refund.create,
            idempotency_key=IdempotencyKeyGenerator.generate("create_refund"),
            log_context={"payment_intent_id": payment_intent_id, "amount": amount},
            **mappers._compact(
                {"payment_intent": payment_intent_id, "amount": amount, "reason": reason}
            ),
        )
        return mappers.refund_to_transaction(obj)

    # =========================================================================
    # External Accounts
    # =========================================================================

    def _external_accounts_unsupported(self, operation: str):
        return ProviderNotImplementedError(
            f"Stripe adapter does not manage external accounts ({operation})",
            details={"provider": self.name, "operation": operation},
        )

    def create_external_account(self, account: ExternalAccount) -> ExternalAccount:
        raise self._external_accounts_unsupported("create_external_account")

    def get_external_account(self, external_id: str) -> ExternalAccount:
        raise self._external_accounts_unsupported("get_external_account")

    def update_external_account(self, account: ExternalAccount) -> ExternalAccount:
        raise self._external_accounts_unsupported("update_external_account")

    def delete_external_account(self, external_id: str) -> None:
        raise self._external_accounts_unsupported("delete_external_account")

    def list_external_accounts(
        self, params: ListParams
    ) -> tuple[list[ExternalAccount], str]:
        raise self._external_accounts_unsupported("list_external_accounts")

    # =========================================================================
    # Webhooks
    # =========================================================================

    def handle_webhook(self, raw_body: bytes, signature: str) -> WebhookEvent:
        """
        Verify and map a Stripe webhook.

        The signature is checked against the raw body before the body is
        parsed. Event types without a mapper produce an UNRECOGNIZED event
        carrying the raw and decoded payload rather than an error.

        Args:
            raw_body: Request body exactly as received
            signature: Stripe-Signature header value

        Raises:
            WebhookSignatureError: Verification failed; ``error.event`` has
                signature_valid=False and the raw body attached
            WebhookMappingError: Payload verified but is malformed
        """
        self._require_configured()

        try:
            stripe.WebhookSignature.verify_header(
                raw_body.decode("utf-8"),
                signature or "",
                self._webhook_secret,
                self.webhook_tolerance,
            )
        except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
            self.get_logger().warning(
                "Stripe webhook signature verification failed",
                extra={"provider": self.name, "error": str(e)},
            )
            raise WebhookSignatureError(
                "Invalid webhook signature",
                event=WebhookEvent(
                    provider=self.name, raw_data=raw_body, signature_valid=False
                ),
                details={"error": str(e)},
            ) from e

        event = self.map_webhook_payload(raw_body)
        event.signature_valid = True
        self.get_logger().info(
            "Stripe webhook verified",
            extra={
                "event_id": event.provider_event_id,
                "event_type": event.event_type,
                "data_kind": event.data_kind,
            },
        )
        return event

    def map_webhook_payload(self, raw_body: bytes) -> WebhookEvent:
        """
        Map an already verified Stripe event body to a WebhookEvent.

        Does not check the signature; only call it for bodies that were
        verified on receipt (stored ProviderWebhookEvent rows).

        Raises:
            WebhookMappingError: Body is not a Stripe event envelope
        """
        event = WebhookEvent(provider=self.name, raw_data=raw_body)

        try:
            envelope = json.loads(raw_body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise WebhookMappingError(
                "Webhook payload is not valid JSON", details={"error": str(e)}
            ) from e
        if not isinstance(envelope, dict):
            raise WebhookMappingError("Webhook payload is not a JSON object")

        event.provider_event_id = envelope.get("id") or ""
        event.event_type = envelope.get("type") or ""
        event.livemode = bool(envelope.get("livemode", False))
        event.provider_account_id = envelope.get("account") or ""
        event.created_at = mappers._ts(envelope.get("created"))

        if not event.provider_event_id or not event.event_type:
            raise WebhookMappingError(
                "Webhook payload is missing id or type",
                details={"event_id": event.provider_event_id},
            )

        kind, mapper = mappers.resolve_event_mapper(event.event_type)
        if mapper is None:
            event.data_kind = WebhookDataKind.UNRECOGNIZED
            event.data = UnrecognizedPayload(raw=raw_body, decoded=envelope)
            return event

        data = envelope.get("data")
        obj = data.get("object") if isinstance(data, dict) else None
        if not isinstance(obj, dict):
            raise WebhookMappingError(
                f"Webhook {event.event_type} has no data.object",
                details={"event_id": event.provider_event_id},
            )

        event.data_kind = kind
        event.data = mapper(obj)
        return event

    # =========================================================================
    # Error Handling
    # =========================================================================

    def _handle_stripe_error(
        self,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> StripeError:
        """
        Translate Stripe exceptions to domain exceptions.

        Returns the translated exception instead of raising it so the
        retry wrapper can decide whether to try again.

        Args:
            error: The Stripe exception
            log_context: Logging context dict
            duration_ms: Operation duration for logging
        """
        logger = self.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}
        stripe_code = getattr(error, "code", None)

        if isinstance(error, stripe.InvalidRequestError):
            if stripe_code == "resource_missing":
                logger.info("Stripe resource missing", extra=log_context)
                return StripeNotFoundError(str(error), stripe_code=stripe_code)
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": stripe_code},
            )
            return StripeInvalidRequestError(str(error), stripe_code=stripe_code)

        if isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            return StripeAuthenticationError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            )

        if isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            return StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            )

        if isinstance(error, stripe.APIConnectionError):
            if "timed out" in str(error).lower():
                logger.error("Stripe request timed out", extra=log_context)
                return StripeTimeoutError(
                    "Stripe request timed out. Please retry.",
                    stripe_code="timeout",
                )
            logger.error("Connection error to Stripe", extra=log_context, exc_info=True)
            return StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            )

        if isinstance(error, stripe.APIError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            return StripeAPIUnavailableError(
                "Stripe service error. Please retry.",
                stripe_code="api_error",
            )

        if isinstance(error, stripe.StripeError):
            logger.error(
                f"Stripe error: {type(error).__name__}",
                extra={**log_context, "stripe_code": stripe_code},
            )
            return StripeError(str(error), stripe_code=stripe_code)

        logger.error(
            f"Unexpected error calling Stripe: {type(error).__name__}",
            extra=log_context,
            exc_info=True,
        )
        return StripeError(
            f"Unexpected Stripe error: {error}",
            stripe_code="unknown_error",
        )
