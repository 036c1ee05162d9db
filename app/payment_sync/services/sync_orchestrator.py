"""
Initial sync orchestrator.

Drives one SyncSession from creation to its final status:

    start()  persist session (pending → running), queue run_initial_sync
             on commit, return the session to the caller immediately
    run()    for each entity type, in order and never in parallel:
               sync_started event
               page through provider.list_<type>() in batch_size pages
               reconcile each item, one sync_completed / sync_failed event
             then complete() or fail() the session

Per-item failures are recorded and skipped. An entity type whose listing
fails (after the adapter's own retries) is aborted; the remaining entity
types still run, and the session ends ``failed``. Unknown entity types
are logged and skipped without failing the session.

Usage:
    from payment_sync.services import InitialSyncOrchestrator

    session = InitialSyncOrchestrator.start(
        provider_name="stripe",
        workspace_id=workspace.id,
        config=InitialSyncConfig(entity_types=["customers", "products"]),
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from uuid import UUID

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django_fsm import can_proceed

from core.exceptions import NotFoundError
from core.services import BaseService

from payment_sync.adapters.registry import ProviderRegistry
from payment_sync.canonical import EntityType, InitialSyncConfig, ListParams
from payment_sync.exceptions import (
    InvalidSessionTransitionError,
    PaymentSyncError,
    ProviderNotRegisteredError,
)
from payment_sync.models import (
    SyncEvent,
    SyncEventType,
    SyncSession,
    SyncSessionStatus,
    SyncSessionType,
    Workspace,
)
from payment_sync.services.reconciliation_service import ReconciliationService

if TYPE_CHECKING:
    from payment_sync.adapters.base import PaymentProvider


# Provider list operation per entity type; dict order is the dependency order
ENTITY_LISTERS: dict[str, str] = {
    EntityType.CUSTOMERS: "list_customers",
    EntityType.PRODUCTS: "list_products",
    EntityType.PRICES: "list_prices",
    EntityType.SUBSCRIPTIONS: "list_subscriptions",
    EntityType.INVOICES: "list_invoices",
    EntityType.TRANSACTIONS: "list_transactions",
}


@dataclass
class EntitySyncStats:
    """Outcome of syncing one entity type."""

    processed: int = 0
    failed: int = 0
    pages: int = 0
    aborted: bool = False
    cancelled: bool = False
    last_error: str = ""
    failed_items: list[str] = field(default_factory=list)

    def error_entry(self) -> dict[str, Any] | None:
        if not (self.failed or self.aborted):
            return None
        return {
            "last_error": self.last_error,
            "failed_items": self.failed_items,
            "aborted": self.aborted,
        }


class InitialSyncOrchestrator(BaseService):
    """Creates, runs and cancels bulk sync sessions."""

    # Cap on external ids kept per entity type in error_summary
    MAX_FAILED_ITEMS_RECORDED = 100

    # =========================================================================
    # Start / Cancel
    # =========================================================================

    @classmethod
    def start(
        cls,
        provider_name: str,
        workspace_id: UUID | str,
        config: InitialSyncConfig | None = None,
        session_type: str = SyncSessionType.INITIAL_SYNC,
    ) -> SyncSession:
        """
        Create a running session and queue its background run.

        The run is queued on transaction commit, so it never starts before
        the session row is visible to the worker. The caller's request
        ending does not affect the run.

        Raises:
            ProviderNotRegisteredError: Unknown provider name
            NotFoundError: Unknown workspace
        """
        from payment_sync.tasks import run_initial_sync

        if not ProviderRegistry.is_registered(provider_name):
            raise ProviderNotRegisteredError(
                f"Payment provider not registered: {provider_name}",
                details={"provider": provider_name},
            )
        config = cls._apply_setting_defaults(config or InitialSyncConfig())

        try:
            workspace = Workspace.objects.get(pk=workspace_id)
        except Workspace.DoesNotExist as e:
            raise NotFoundError(
                f"Workspace not found: {workspace_id}",
                error_code="WORKSPACE_NOT_FOUND",
            ) from e

        with cls.atomic():
            session = SyncSession.objects.create(
                workspace=workspace,
                provider=provider_name,
                session_type=session_type,
                entity_types=list(config.entity_types),
                config=config.to_dict(),
            )
            session.start()
            session.save()

            session_id = str(session.id)
            transaction.on_commit(lambda: run_initial_sync.delay(session_id))

        cls.get_logger().info(
            "Sync session started",
            extra={
                "session_id": session_id,
                "workspace_id": str(workspace.id),
                "provider": provider_name,
                "entity_types": config.entity_types,
            },
        )
        return session

    @classmethod
    def cancel_session(cls, session_id: UUID | str) -> SyncSession:
        """
        Cancel a pending or running session.

        A running session stops at its next page boundary.

        Raises:
            NotFoundError: Unknown session
            InvalidSessionTransitionError: Session already finished
        """
        with cls.atomic():
            session = (
                SyncSession.objects.select_for_update().filter(pk=session_id).first()
            )
            if session is None:
                raise NotFoundError(
                    f"Sync session not found: {session_id}",
                    error_code="SYNC_SESSION_NOT_FOUND",
                )
            if not can_proceed(session.cancel):
                raise InvalidSessionTransitionError(
                    f"Cannot cancel a {session.status} session",
                    details={
                        "current_status": session.status,
                        "target_status": SyncSessionStatus.CANCELLED,
                    },
                )
            session.cancel()
            session.save()

        cls.get_logger().info(
            "Sync session cancelled", extra={"session_id": str(session.id)}
        )
        return session

    @classmethod
    def fail_session(cls, session_id: UUID | str, error: Exception) -> None:
        """Mark a session failed after an unexpected error in its run."""
        with cls.atomic():
            session = (
                SyncSession.objects.select_for_update().filter(pk=session_id).first()
            )
            if session is None or not can_proceed(session.fail):
                return
            summary = dict(session.error_summary or {})
            summary["session"] = {
                "last_error": f"{type(error).__name__}: {error}",
                "error_code": getattr(error, "error_code", type(error).__name__.upper()),
            }
            session.fail(summary)
            session.save()

    # =========================================================================
    # Run
    # =========================================================================

    @classmethod
    def run(cls, session: SyncSession, provider: PaymentProvider) -> SyncSession:
        """
        Run every configured entity type and finalize the session.

        Args:
            session: A running session
            provider: Adapter configured for the session's workspace

        Returns:
            The session with its final status, progress and error_summary
        """
        logger = cls.get_logger()
        config = InitialSyncConfig.from_dict(session.config).with_defaults()
        if session.status == SyncSessionStatus.PENDING:
            session.start()
            session.save()
        provider.set_retry_policy(config.max_retries, config.retry_delay)

        progress: dict[str, Any] = {
            "total_processed": 0,
            "current_entity": "",
            "started_at": timezone.now().isoformat(),
            "skipped_entity_types": [],
        }
        error_summary: dict[str, Any] = {}
        any_aborted = False
        first_listed = True

        for entity_type in dict.fromkeys(session.entity_types):
            if cls._is_cancelled(session):
                break

            lister = ENTITY_LISTERS.get(entity_type)
            if lister is None:
                logger.warning(
                    "Unknown entity type, skipping",
                    extra={"session_id": str(session.id), "entity_type": entity_type},
                )
                progress["skipped_entity_types"].append(entity_type)
                continue

            logger.info(
                "Processing entity type",
                extra={"session_id": str(session.id), "entity_type": entity_type},
            )
            progress["current_entity"] = entity_type
            cls._save_progress(session, progress)

            params = ListParams(
                limit=config.batch_size,
                filters=cls._entity_filters(entity_type, config),
            )
            # A configured cursor is an id of the first listed entity type
            if first_listed:
                params.starting_after = config.starting_after
                params.ending_before = config.ending_before
                first_listed = False

            stats = cls._sync_entity_type(
                session, provider, entity_type, params, progress
            )

            progress[f"{entity_type}_processed"] = stats.processed
            progress[f"{entity_type}_failed"] = stats.failed
            progress[f"{entity_type}_pages"] = stats.pages
            entry = stats.error_entry()
            if entry is not None:
                error_summary[entity_type] = entry
            any_aborted = any_aborted or stats.aborted

            logger.info(
                "Completed entity type sync",
                extra={
                    "session_id": str(session.id),
                    "entity_type": entity_type,
                    "processed": stats.processed,
                    "failed": stats.failed,
                    "aborted": stats.aborted,
                },
            )
            if stats.cancelled:
                break

        progress["current_entity"] = ""
        progress["completed_at"] = timezone.now().isoformat()
        return cls._finalize(session, progress, error_summary, any_aborted)

    @classmethod
    def _sync_entity_type(
        cls,
        session: SyncSession,
        provider: PaymentProvider,
        entity_type: str,
        params: ListParams,
        progress: dict[str, Any],
    ) -> EntitySyncStats:
        logger = cls.get_logger()
        stats = EntitySyncStats()
        list_page = getattr(provider, ENTITY_LISTERS[entity_type])
        backwards = bool(params.ending_before) and not params.starting_after

        cls._record(
            session,
            entity_type,
            SyncEventType.SYNC_STARTED,
            f"Starting {entity_type} sync",
        )

        while True:
            if stats.pages and cls._is_cancelled(session):
                stats.cancelled = True
                break

            try:
                items, cursor = list_page(params)
            except Exception as e:
                # Untranslated errors abort this entity type like provider errors
                error_code = (
                    e.error_code
                    if isinstance(e, PaymentSyncError)
                    else "UNEXPECTED_ERROR"
                )
                stats.aborted = True
                stats.last_error = str(e) or type(e).__name__
                logger.error(
                    "Failed to list entity type",
                    extra={
                        "session_id": str(session.id),
                        "entity_type": entity_type,
                        "error_code": error_code,
                    },
                    exc_info=not isinstance(e, PaymentSyncError),
                )
                cls._record(
                    session,
                    entity_type,
                    SyncEventType.SYNC_FAILED,
                    f"Failed to list {entity_type}: {stats.last_error}",
                    details={"error_code": error_code, "page": stats.pages + 1},
                )
                break

            stats.pages += 1
            for record in items:
                cls._sync_item(session, entity_type, record, stats)

            progress["total_processed"] += stats.processed - progress.get(
                f"{entity_type}_processed", 0
            )
            progress[f"{entity_type}_processed"] = stats.processed
            progress[f"{entity_type}_failed"] = stats.failed
            cls._save_progress(session, progress)

            if not cursor:
                break
            if backwards:
                params.ending_before = items[0].external_id
            else:
                params.starting_after = cursor
                params.ending_before = ""

        return stats

    @classmethod
    def _sync_item(
        cls,
        session: SyncSession,
        entity_type: str,
        record: Any,
        stats: EntitySyncStats,
    ) -> None:
        external_id = getattr(record, "external_id", "")
        result = ReconciliationService.reconcile(session.workspace, session.provider, record)

        if result.success:
            stats.processed += 1
            cls._record(
                session,
                entity_type,
                SyncEventType.SYNC_COMPLETED,
                f"Successfully synced {external_id}",
                entity_id=external_id,
                details={"external_id": external_id, "created": result.data.created},
            )
            return

        stats.failed += 1
        stats.last_error = result.error or ""
        if len(stats.failed_items) < cls.MAX_FAILED_ITEMS_RECORDED:
            stats.failed_items.append(external_id)
        cls.get_logger().warning(
            "Failed to sync item",
            extra={
                "session_id": str(session.id),
                "entity_type": entity_type,
                "external_id": external_id,
                "error_code": result.error_code,
            },
        )
        cls._record(
            session,
            entity_type,
            SyncEventType.SYNC_FAILED,
            f"Failed to sync {external_id}: {result.error}",
            entity_id=external_id,
            details={"external_id": external_id, "error_code": result.error_code},
        )

    @classmethod
    def _finalize(
        cls,
        session: SyncSession,
        progress: dict[str, Any],
        error_summary: dict[str, Any],
        any_aborted: bool,
    ) -> SyncSession:
        with cls.atomic():
            locked = SyncSession.objects.select_for_update().get(pk=session.pk)
            locked.progress = progress
            locked.error_summary = error_summary

            if locked.status == SyncSessionStatus.CANCELLED:
                locked.save(update_fields=["progress", "error_summary", "updated_at"])
            elif any_aborted:
                locked.fail(error_summary)
                locked.save()
            else:
                locked.complete()
                locked.save()

        cls.get_logger().info(
            "Sync session finished",
            extra={
                "session_id": str(locked.id),
                "status": locked.status,
                "total_processed": progress["total_processed"],
            },
        )
        return locked

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _apply_setting_defaults(config: InitialSyncConfig) -> InitialSyncConfig:
        if not config.batch_size:
            config.batch_size = getattr(settings, "PAYMENT_SYNC_DEFAULT_BATCH_SIZE", 0)
        if not config.retry_delay:
            config.retry_delay = getattr(
                settings, "PAYMENT_SYNC_DEFAULT_RETRY_DELAY_SECONDS", 0.0
            )
        return config.with_defaults()

    @staticmethod
    def _entity_filters(entity_type: str, config: InitialSyncConfig) -> dict[str, Any]:
        # Providers omit canceled subscriptions unless asked for all of them
        if entity_type == EntityType.SUBSCRIPTIONS and config.full_sync:
            return {"status": "all"}
        return {}

    @staticmethod
    def _is_cancelled(session: SyncSession) -> bool:
        return SyncSession.objects.filter(
            pk=session.pk, status=SyncSessionStatus.CANCELLED
        ).exists()

    @staticmethod
    def _save_progress(session: SyncSession, progress: dict[str, Any]) -> None:
        # update() so a concurrent cancel is never overwritten
        SyncSession.objects.filter(pk=session.pk).update(
            progress=progress, updated_at=timezone.now()
        )
        session.progress = progress

    @staticmethod
    def _record(
        session: SyncSession,
        entity_type: str,
        event_type: str,
        message: str,
        entity_id: str = "",
        details: dict[str, Any] | None = None,
    ) -> SyncEvent:
        return SyncEvent.objects.create(
            session=session,
            entity_type=entity_type,
            entity_id=entity_id,
            event_type=event_type,
            message=message,
            details=details or {},
        )
