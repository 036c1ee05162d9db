"""
Exceptions raised by the payment synchronization engine.

The hierarchy mirrors the error taxonomy the engine works with:
configuration problems fail fast, signature problems reject a webhook,
mapping problems reject a payload, and reconciliation problems are
per-item failures that callers record and skip.

Exception Hierarchy:
    PaymentSyncError (base, inherits BaseApplicationError)
    ├── ProviderConfigurationError - Missing/invalid credentials or workspace config
    ├── ProviderNotRegisteredError - Unknown provider name
    ├── ProviderNotImplementedError - Operation not offered by a provider
    ├── WebhookSignatureError - Payload failed signature verification
    ├── WebhookMappingError - Verified payload could not be mapped
    ├── ReconciliationError - Upsert failures (per item, non-fatal)
    │   ├── DependencyNotFoundError - Referenced entity not synced yet
    │   └── PriceInvariantError - recurring/one_time invariant violated
    └── ProviderError - Provider API failures
        └── StripeError - Base for all Stripe errors
            ├── StripeInvalidRequestError - Invalid request params (permanent)
            ├── StripeAuthenticationError - Bad API key (permanent)
            ├── StripeNotFoundError - Resource missing (permanent)
            ├── StripeRateLimitError - Rate limited (transient, retry)
            ├── StripeAPIUnavailableError - API unavailable (transient, retry)
            └── StripeTimeoutError - Request timeout (transient, retry)

    InvalidSessionTransitionError - SyncSession FSM transition not allowed

Usage:
    from payment_sync.exceptions import DependencyNotFoundError

    raise DependencyNotFoundError(
        f"product not found for external_id: {price.product_id}",
        details={"entity_type": "price", "external_id": price.external_id},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError, ExternalServiceError

if TYPE_CHECKING:
    from typing import Any


class PaymentSyncError(BaseApplicationError):
    """
    Base exception for the payment synchronization engine.

    Example:
        try:
            provider.check_connection()
        except PaymentSyncError as e:
            logger.error(f"Provider unusable: {e}")
    """

    default_error_code: str = "PAYMENT_SYNC_ERROR"


# =============================================================================
# Configuration Errors
# =============================================================================


class ProviderConfigurationError(PaymentSyncError):
    """
    Raised when a provider cannot be used with the given configuration.

    Use for:
    - Missing api_key or webhook_secret at configure()
    - Calling an operation before configure()
    - Missing or inactive workspace payment configuration
    """

    default_error_code: str = "PROVIDER_CONFIGURATION_ERROR"


class ProviderNotRegisteredError(PaymentSyncError):
    """Raised when a provider name has no registered adapter."""

    default_error_code: str = "PROVIDER_NOT_REGISTERED"


class ProviderNotImplementedError(PaymentSyncError):
    """
    Raised for contract operations a provider does not offer.

    Stripe, for example, does not manage external (connected) accounts
    through this adapter.
    """

    default_error_code: str = "PROVIDER_NOT_IMPLEMENTED"


# =============================================================================
# Webhook Errors
# =============================================================================


class WebhookSignatureError(PaymentSyncError):
    """
    Raised when a webhook payload fails signature verification.

    Carries the unverified WebhookEvent (signature_valid=False, raw body
    attached) so callers can audit the attempt without trusting it.
    """

    default_error_code: str = "WEBHOOK_SIGNATURE_INVALID"

    def __init__(
        self,
        message: str,
        event: Any = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, error_code=error_code, details=details)
        self.event = event


class WebhookMappingError(PaymentSyncError):
    """Raised when a verified webhook payload cannot be mapped to a canonical record."""

    default_error_code: str = "WEBHOOK_MAPPING_ERROR"


# =============================================================================
# Reconciliation Errors
# =============================================================================


class ReconciliationError(PaymentSyncError):
    """
    Base for upsert failures.

    These are per-item failures: the orchestrator records them as
    sync_failed events and moves on to the next item.
    """

    default_error_code: str = "RECONCILIATION_ERROR"


class DependencyNotFoundError(ReconciliationError):
    """
    Raised when an entity references another entity that is not synced yet.

    Example:
        raise DependencyNotFoundError("product not found for external_id: prod_123")
    """

    default_error_code: str = "DEPENDENCY_NOT_FOUND"


class PriceInvariantError(ReconciliationError):
    """
    Raised when a Price violates the recurring/one_time field invariant.

    Recurring prices need an interval and a positive term length;
    one-time prices must not carry either.
    """

    default_error_code: str = "PRICE_INVARIANT_VIOLATION"


# =============================================================================
# Provider API Errors
# =============================================================================


class ProviderError(PaymentSyncError, ExternalServiceError):
    """
    Base for failures reported by a provider API.

    is_retryable tells the adapter's retry wrapper whether the call
    may be attempted again after a backoff delay.
    """

    default_error_code: str = "PROVIDER_ERROR"
    is_retryable: bool = False


class StripeError(ProviderError):
    """
    Base exception for all Stripe-related errors.

    Attributes:
        stripe_code: Stripe's internal error code, when provided
    """

    default_error_code: str = "STRIPE_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code


class StripeInvalidRequestError(StripeError):
    """Invalid parameters sent to Stripe. Permanent."""

    default_error_code: str = "INVALID_STRIPE_REQUEST"
    is_retryable: bool = False


class StripeAuthenticationError(StripeError):
    """Stripe rejected the API key. Permanent, operational issue."""

    default_error_code: str = "STRIPE_AUTHENTICATION_FAILED"
    is_retryable: bool = False


class StripeNotFoundError(StripeInvalidRequestError):
    """Requested Stripe object does not exist."""

    default_error_code: str = "STRIPE_RESOURCE_MISSING"


class StripeRateLimitError(StripeError):
    """Stripe rate limit hit. Transient, retry with backoff."""

    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """Stripe unreachable or returned a server error. Transient."""

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True


class StripeTimeoutError(StripeError):
    """Request to Stripe timed out. Transient."""

    default_error_code: str = "STRIPE_TIMEOUT"
    is_retryable: bool = True


# =============================================================================
# Session State Errors
# =============================================================================


class InvalidSessionTransitionError(ConflictError):
    """
    Raised when a SyncSession status transition is not allowed.

    Example:
        raise InvalidSessionTransitionError(
            "Cannot cancel a completed session",
            details={"current_status": "completed", "target_status": "cancelled"},
        )
    """

    default_error_code: str = "INVALID_SESSION_TRANSITION"
