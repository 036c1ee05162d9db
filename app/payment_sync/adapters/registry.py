"""
Registry of payment provider adapters.

Adapters register a factory under their provider name. Callers never
hold a shared adapter: create_provider() builds a fresh unconfigured
instance, get_provider_service() builds one and configures it from the
workspace's stored credentials.

Usage:
    from payment_sync.adapters.registry import ProviderRegistry

    provider = ProviderRegistry.get_provider_service(workspace.id, "stripe")
    customers, cursor = provider.list_customers(ListParams(limit=100))

Registering a provider:
    @register_provider("stripe")
    class StripeAdapter(PaymentProvider):
        ...
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from django.conf import settings

from payment_sync.exceptions import (
    ProviderConfigurationError,
    ProviderNotRegisteredError,
)

if TYPE_CHECKING:
    from uuid import UUID

    from payment_sync.adapters.base import PaymentProvider
    from payment_sync.canonical import InitialSyncConfig
    from payment_sync.models import SyncSession

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[], "PaymentProvider"]


class ProviderRegistry:
    """
    Name to adapter-factory mapping.

    All methods are class-level; the mapping is process-wide and filled
    at import time (see PaymentSyncConfig.ready()).
    """

    _factories: dict[str, ProviderFactory] = {}

    @classmethod
    def register_provider(cls, name: str, factory: ProviderFactory) -> None:
        """
        Register an adapter factory under a provider name.

        Re-registering a name replaces the previous factory.
        """
        if name in cls._factories:
            logger.warning(
                f"Overwriting provider registration for {name}",
                extra={"provider": name},
            )
        cls._factories[name] = factory
        logger.debug(f"Registered payment provider: {name}")

    @classmethod
    def unregister_provider(cls, name: str) -> None:
        cls._factories.pop(name, None)

    @classmethod
    def get_available_providers(cls) -> list[str]:
        return sorted(cls._factories)

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name in cls._factories

    @classmethod
    def create_provider(cls, name: str) -> PaymentProvider:
        """
        Build a new, unconfigured adapter.

        Raises:
            ProviderNotRegisteredError: No adapter registered under ``name``
        """
        factory = cls._factories.get(name)
        if factory is None:
            raise ProviderNotRegisteredError(
                f"Payment provider not registered: {name}",
                details={
                    "provider": name,
                    "available": cls.get_available_providers(),
                },
            )
        return factory()

    @classmethod
    def get_provider_service(
        cls,
        workspace_id: UUID | str,
        name: str,
    ) -> PaymentProvider:
        """
        Build an adapter configured with a workspace's credentials.

        Raises:
            ProviderNotRegisteredError: Unknown provider name
            ProviderConfigurationError: No active configuration for the
                workspace and no PAYMENT_SYNC_DEFAULT_CREDENTIALS entry, or
                the credentials are incomplete
        """
        from payment_sync.models import WorkspacePaymentConfiguration

        provider = cls.create_provider(name)

        configuration = WorkspacePaymentConfiguration.objects.filter(
            workspace_id=workspace_id,
            provider=name,
            is_active=True,
        ).first()
        if configuration is not None:
            credentials = configuration.credentials
        else:
            # Project-wide credentials from settings, if any
            credentials = getattr(settings, "PAYMENT_SYNC_DEFAULT_CREDENTIALS", {}).get(name)
        if not credentials:
            raise ProviderConfigurationError(
                f"No active {name} configuration for workspace {workspace_id}",
                details={"workspace_id": str(workspace_id), "provider": name},
            )

        provider.configure(credentials)
        return provider

    @classmethod
    def start_initial_sync(
        cls,
        workspace_id: UUID | str,
        name: str,
        config: InitialSyncConfig | None = None,
    ) -> SyncSession:
        """
        Start an initial sync for a workspace through its configured provider.

        Credentials are validated here so a misconfigured workspace fails
        before any session is created.
        """
        provider = cls.get_provider_service(workspace_id, name)
        return provider.start_initial_sync(workspace_id, config)


def register_provider(name: str) -> Callable[[type], type]:
    """
    Class decorator registering a PaymentProvider subclass by name.

    The class itself is the factory, so it must be constructible
    without arguments.
    """

    def decorator(provider_cls: type) -> type:
        ProviderRegistry.register_provider(name, provider_cls)
        return provider_cls

    return decorator
