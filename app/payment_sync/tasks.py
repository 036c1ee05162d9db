"""
Celery tasks for payment provider synchronization.

This module provides async tasks for:
- Running a bulk initial sync session
- Processing stored provider webhook events
- Retrying failed or unqueued webhook events
- Resetting webhook events stuck in processing

Usage:
    from payment_sync.tasks import process_provider_webhook_event

    # Queue a stored webhook for async processing
    process_provider_webhook_event.delay(str(webhook_event.id))

    # Sessions are queued by InitialSyncOrchestrator.start(), not directly
"""

from __future__ import annotations

import logging
from datetime import timedelta
from uuid import UUID

from celery import shared_task
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from payment_sync.adapters.registry import ProviderRegistry
from payment_sync.exceptions import PaymentSyncError
from payment_sync.models import ProviderWebhookEvent, SyncSession, WebhookEventStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

MAX_WEBHOOK_RETRIES = 5
STUCK_PROCESSING_THRESHOLD_MINUTES = 30
UNQUEUED_PENDING_THRESHOLD_MINUTES = 10


# =============================================================================
# Initial Sync
# =============================================================================


@shared_task(bind=True, acks_late=True)
def run_initial_sync(self, session_id: str) -> dict:
    """
    Run a sync session to completion.

    Not retried: a half-finished session is finalized as failed instead,
    and a new session can be started. Entity upserts are idempotent, so
    a rerun is safe.

    Args:
        session_id: UUID of the SyncSession to run

    Returns:
        Dict with the final session status
    """
    from payment_sync.services import InitialSyncOrchestrator

    session = SyncSession.objects.select_related("workspace").filter(pk=session_id).first()
    if session is None:
        logger.error("SyncSession not found", extra={"session_id": session_id})
        return {"status": "not_found", "session_id": session_id}

    if session.is_finished:
        logger.info(
            f"SyncSession already {session.status}, skipping",
            extra={"session_id": session_id},
        )
        return {"status": session.status, "session_id": session_id}

    try:
        provider = ProviderRegistry.get_provider_service(session.workspace_id, session.provider)
    except PaymentSyncError as e:
        logger.error(
            "Provider unavailable for sync session",
            extra={"session_id": session_id, "error_code": e.error_code, "error": str(e)},
        )
        InitialSyncOrchestrator.fail_session(session_id, e)
        return {"status": "failed", "session_id": session_id, "error": str(e)}

    try:
        session = InitialSyncOrchestrator.run(session, provider)
    except Exception as e:
        logger.exception(
            "Sync session crashed",
            extra={"session_id": session_id, "error": f"{type(e).__name__}: {e}"},
        )
        InitialSyncOrchestrator.fail_session(session_id, e)
        raise

    return {
        "status": session.status,
        "session_id": session_id,
        "total_processed": session.progress.get("total_processed", 0),
    }


# =============================================================================
# Webhook Processing Tasks
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_WEBHOOK_RETRIES},
    acks_late=True,
)
def process_provider_webhook_event(self, webhook_event_id: str) -> dict:
    """
    Apply a stored provider webhook event.

    This task:
    1. Loads the ProviderWebhookEvent by ID
    2. Marks it as processing
    3. Dispatches it to the handler for its data kind
    4. Marks it as processed or failed

    Each queued task is one delivery, so an already processed event is
    applied again; the upsert path is idempotent.

    Args:
        webhook_event_id: UUID of the ProviderWebhookEvent to process

    Returns:
        Dict with processing result status

    Raises:
        Exception: Re-raised to trigger Celery retry mechanism
    """
    # Import here to avoid circular imports
    from payment_sync.webhooks.handlers import dispatch_webhook

    if isinstance(webhook_event_id, str):
        webhook_event_id = UUID(webhook_event_id)

    try:
        webhook_event = ProviderWebhookEvent.objects.select_related("workspace").get(
            id=webhook_event_id
        )
    except ProviderWebhookEvent.DoesNotExist:
        logger.error(
            "ProviderWebhookEvent not found",
            extra={"webhook_event_id": str(webhook_event_id)},
        )
        return {"status": "not_found", "webhook_event_id": str(webhook_event_id)}

    webhook_event.mark_processing()
    webhook_event.save()

    logger.info(
        f"Dispatching webhook: {webhook_event.event_type}",
        extra={
            "webhook_event_id": str(webhook_event_id),
            "provider_event_id": webhook_event.provider_event_id,
            "event_type": webhook_event.event_type,
            "processing_attempts": webhook_event.processing_attempts,
        },
    )

    try:
        with transaction.atomic():
            result = dispatch_webhook(webhook_event)

        if result.success:
            webhook_event.mark_processed()
            webhook_event.save()
            logger.info(
                "Webhook processed successfully",
                extra={
                    "webhook_event_id": str(webhook_event_id),
                    "provider_event_id": webhook_event.provider_event_id,
                },
            )
            return {
                "status": "processed",
                "webhook_event_id": str(webhook_event_id),
                "provider_event_id": webhook_event.provider_event_id,
            }

        error_msg = result.error or "Handler returned failure"
        webhook_event.mark_failed(error_msg)
        webhook_event.save()
        logger.warning(
            f"Webhook handler failed: {error_msg}",
            extra={
                "webhook_event_id": str(webhook_event_id),
                "provider_event_id": webhook_event.provider_event_id,
                "error_code": result.error_code,
            },
        )
        return {
            "status": "handler_failed",
            "webhook_event_id": str(webhook_event_id),
            "error": error_msg,
        }

    except Exception as e:
        error_msg = f"{type(e).__name__}: {str(e)}"
        webhook_event.mark_failed(error_msg)
        webhook_event.save()

        logger.exception(
            "Webhook processing failed with exception",
            extra={
                "webhook_event_id": str(webhook_event_id),
                "provider_event_id": webhook_event.provider_event_id,
                "error": error_msg,
            },
        )
        raise


@shared_task
def retry_failed_webhooks() -> dict:
    """
    Periodic task to retry failed webhook events.

    Re-queues failed events below the attempt limit, which covers events
    that arrived before the records they reference, and pending events
    whose queueing failed at receipt time.

    Returns:
        Dict with count of webhooks queued for retry
    """
    stale = timezone.now() - timedelta(minutes=UNQUEUED_PENDING_THRESHOLD_MINUTES)
    candidates = ProviderWebhookEvent.objects.filter(
        Q(status=WebhookEventStatus.FAILED) | Q(status=WebhookEventStatus.PENDING, updated_at__lt=stale),
        processing_attempts__lt=MAX_WEBHOOK_RETRIES,
    ).order_by("created_at")[:100]

    queued_count = 0
    for webhook in candidates:
        try:
            process_provider_webhook_event.delay(str(webhook.id))
            queued_count += 1
        except Exception as e:
            logger.error(
                f"Failed to queue webhook for retry: {e}",
                extra={"webhook_event_id": str(webhook.id)},
            )

    if queued_count:
        logger.info(
            f"Queued {queued_count} webhooks for retry",
            extra={"queued_count": queued_count},
        )
    return {"queued_count": queued_count}


@shared_task
def cleanup_stuck_webhooks() -> dict:
    """
    Periodic task to reset webhooks stuck in processing.

    Handles workers that died mid-event. Reset events become eligible
    for retry_failed_webhooks.

    Returns:
        Dict with count of webhooks reset
    """
    threshold = timezone.now() - timedelta(minutes=STUCK_PROCESSING_THRESHOLD_MINUTES)
    stuck_webhooks = ProviderWebhookEvent.objects.filter(
        status=WebhookEventStatus.PROCESSING,
        updated_at__lt=threshold,
    )

    reset_count = 0
    for webhook in stuck_webhooks:
        webhook.mark_failed("Processing timed out - reset for retry")
        webhook.save()
        reset_count += 1
        logger.warning(
            "Reset stuck webhook",
            extra={
                "webhook_event_id": str(webhook.id),
                "provider_event_id": webhook.provider_event_id,
            },
        )

    return {"reset_count": reset_count}
