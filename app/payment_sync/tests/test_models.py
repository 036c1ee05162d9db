"""
Tests for payment sync models.

Tests cover:
- SyncSession state machine transitions
- SyncEvent append-only behavior
- Price recurring/one_time check constraint
- Unique keys on synced rows
- ProviderWebhookEvent status helpers
"""

import pytest
from django.db import IntegrityError, transaction
from django_fsm import TransitionNotAllowed

from payment_sync.canonical import PaymentSyncStatus, PriceType
from payment_sync.models import (
    Customer,
    Price,
    SyncEvent,
    SyncEventType,
    SyncSessionStatus,
    WebhookEventStatus,
)
from payment_sync.tests.factories import (
    CustomerFactory,
    PriceFactory,
    ProductFactory,
    ProviderWebhookEventFactory,
)


# =============================================================================
# SyncSession Transition Tests
# =============================================================================


class TestSyncSessionTransitions:
    """Tests for SyncSession state machine transitions."""

    # -------------------------------------------------------------------------
    # Valid Transitions
    # -------------------------------------------------------------------------

    def test_pending_to_running(self, db, pending_session):
        """Should transition from pending to running and stamp started_at."""
        pending_session.start()
        pending_session.save()

        assert pending_session.status == SyncSessionStatus.RUNNING
        assert pending_session.started_at is not None

    def test_running_to_completed(self, db, running_session):
        """Should transition from running to completed."""
        running_session.complete()
        running_session.save()

        assert running_session.status == SyncSessionStatus.COMPLETED
        assert running_session.completed_at is not None
        assert running_session.is_finished

    def test_running_to_failed_keeps_summary(self, db, running_session):
        """Should record the given error summary on failure."""
        summary = {"customers": {"last_error": "boom", "aborted": True}}

        running_session.fail(summary)
        running_session.save()

        assert running_session.status == SyncSessionStatus.FAILED
        assert running_session.error_summary == summary

    def test_failed_session_always_has_error_summary(self, db, running_session):
        """A failed session without a summary gets a generic one."""
        running_session.fail()
        running_session.save()

        assert running_session.error_summary
        assert "session" in running_session.error_summary

    def test_pending_to_failed(self, db, pending_session):
        """Should allow failing a session that never started."""
        pending_session.fail({"session": {"last_error": "no credentials"}})
        pending_session.save()

        assert pending_session.status == SyncSessionStatus.FAILED

    def test_pending_and_running_can_be_cancelled(self, db, pending_session, running_session):
        """Should cancel both pending and running sessions."""
        for session in (pending_session, running_session):
            session.cancel()
            session.save()
            assert session.status == SyncSessionStatus.CANCELLED

    # -------------------------------------------------------------------------
    # Invalid Transitions
    # -------------------------------------------------------------------------

    def test_cannot_complete_pending(self, db, pending_session):
        """Should not complete a session that never ran."""
        with pytest.raises(TransitionNotAllowed):
            pending_session.complete()

    def test_cannot_cancel_completed(self, db, completed_session):
        """Should not cancel a finished session."""
        with pytest.raises(TransitionNotAllowed):
            completed_session.cancel()

    def test_cannot_restart_completed(self, db, completed_session):
        with pytest.raises(TransitionNotAllowed):
            completed_session.start()


# =============================================================================
# SyncEvent Tests
# =============================================================================


class TestSyncEvent:
    """Tests for the append-only audit trail."""

    def test_create_event(self, db, running_session):
        event = SyncEvent.objects.create(
            session=running_session,
            entity_type="customers",
            event_type=SyncEventType.SYNC_STARTED,
            message="Starting customers sync",
        )

        assert running_session.events.count() == 1
        assert event.entity_id == ""

    def test_event_cannot_be_updated(self, db, running_session):
        """Saving an existing event should raise."""
        event = SyncEvent.objects.create(
            session=running_session,
            entity_type="customers",
            event_type=SyncEventType.SYNC_COMPLETED,
            message="Successfully synced cus_1",
        )
        event.message = "rewritten"

        with pytest.raises(ValueError, match="append-only"):
            event.save()

    def test_events_ordered_by_creation(self, db, running_session):
        for event_type in (SyncEventType.SYNC_STARTED, SyncEventType.SYNC_COMPLETED):
            SyncEvent.objects.create(
                session=running_session,
                entity_type="customers",
                event_type=event_type,
            )

        event_types = list(running_session.events.values_list("event_type", flat=True))

        assert event_types == [SyncEventType.SYNC_STARTED, SyncEventType.SYNC_COMPLETED]


# =============================================================================
# Price Constraint Tests
# =============================================================================


class TestPriceConstraint:
    """Tests for the recurring/one_time database check constraint."""

    def test_recurring_price_valid(self, db):
        price = PriceFactory()

        assert price.price_type == PriceType.RECURRING
        assert price.term_length == 1

    def test_one_time_price_valid(self, db):
        price = PriceFactory(one_time=True)

        assert price.interval_type is None
        assert price.term_length is None

    def test_recurring_price_without_interval_rejected(self, db):
        product = ProductFactory()

        with pytest.raises(IntegrityError), transaction.atomic():
            PriceFactory(product=product, interval_type=None)

    def test_recurring_price_with_zero_term_rejected(self, db):
        product = ProductFactory()

        with pytest.raises(IntegrityError), transaction.atomic():
            PriceFactory(product=product, term_length=0)

    def test_one_time_price_with_interval_rejected(self, db):
        product = ProductFactory()

        with pytest.raises(IntegrityError), transaction.atomic():
            PriceFactory(product=product, one_time=True, interval_type="month")


# =============================================================================
# Synced Row Tests
# =============================================================================


class TestSyncedRows:
    """Tests for the shared provider-sync bookkeeping."""

    def test_customer_external_id_unique_per_provider(self, db):
        CustomerFactory(external_id="cus_dup")

        with pytest.raises(IntegrityError), transaction.atomic():
            CustomerFactory(external_id="cus_dup")

    def test_same_external_id_allowed_for_other_provider(self, db):
        CustomerFactory(external_id="cus_dup")
        CustomerFactory(external_id="cus_dup", payment_provider="other")

        assert Customer.objects.filter(external_id="cus_dup").count() == 2

    def test_sync_applied_fields_bump_version(self, db):
        """An update with sync_applied_fields() should count exactly once."""
        price = PriceFactory()

        Price.objects.filter(pk=price.pk).update(
            nickname="Monthly", **Price.sync_applied_fields()
        )
        price.refresh_from_db()

        assert price.payment_sync_version == 2
        assert price.payment_sync_status == PaymentSyncStatus.SYNCED
        assert price.is_synced

    def test_soft_deleted_customer_hidden_from_default_manager(self, db):
        customer = CustomerFactory()

        customer.soft_delete()

        assert not Customer.objects.filter(pk=customer.pk).exists()
        assert Customer.all_objects.filter(pk=customer.pk).exists()


# =============================================================================
# ProviderWebhookEvent Tests
# =============================================================================


class TestProviderWebhookEvent:
    """Tests for webhook event status helpers."""

    def test_mark_processing_counts_attempts(self, db):
        event = ProviderWebhookEventFactory()

        event.mark_processing()
        event.save()

        assert event.status == WebhookEventStatus.PROCESSING
        assert event.processing_attempts == 1

    def test_mark_processed(self, db):
        event = ProviderWebhookEventFactory(error_message="old error")

        event.mark_processed()
        event.save()

        assert event.is_processed
        assert event.processed_at is not None
        assert event.error_message is None

    def test_mark_failed(self, db):
        event = ProviderWebhookEventFactory()

        event.mark_failed("customer not found")
        event.save()

        assert event.status == WebhookEventStatus.FAILED
        assert event.error_message == "customer not found"

    def test_get_object_id(self, db):
        event = ProviderWebhookEventFactory(data_object={"id": "cus_abc", "object": "customer"})

        assert event.get_object_id() == "cus_abc"

    def test_raw_body_stored_verbatim(self, db):
        event = ProviderWebhookEventFactory()
        expected = bytes(event.raw_body)

        event.refresh_from_db()

        assert bytes(event.raw_body) == expected

    def test_provider_event_id_unique(self, db):
        ProviderWebhookEventFactory(provider_event_id="evt_dup")

        with pytest.raises(IntegrityError), transaction.atomic():
            ProviderWebhookEventFactory(provider_event_id="evt_dup")
