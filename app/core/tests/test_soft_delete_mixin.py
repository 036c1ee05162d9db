"""
Tests for SoftDeleteMixin in core/model_mixins.py.

This module tests:
- soft_delete() method sets is_deleted and deleted_at
- Related rows survive a soft delete
"""

import pytest
from django.utils import timezone

from payment_sync.models import Customer, WorkspaceCustomer
from payment_sync.tests.factories import CustomerFactory, WorkspaceFactory


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def workspace(db):
    return WorkspaceFactory()


@pytest.fixture
def customer(db, workspace):
    """Create a synced customer linked to a workspace."""
    return CustomerFactory(workspace=workspace)


# =============================================================================
# soft_delete() Tests
# =============================================================================


@pytest.mark.django_db
class TestSoftDelete:
    """Tests for soft_delete() method."""

    def test_soft_delete_sets_is_deleted_true(self, customer):
        """
        soft_delete should set is_deleted to True.
        """
        assert customer.is_deleted is False

        customer.soft_delete()

        assert customer.is_deleted is True

    def test_soft_delete_sets_deleted_at(self, customer):
        assert customer.deleted_at is None

        before = timezone.now()
        customer.soft_delete()
        after = timezone.now()

        assert before <= customer.deleted_at <= after

    def test_soft_delete_persists_to_database(self, customer):
        """
        soft_delete changes should be saved to database.

        Why it matters: Changes must persist, not just update in memory.
        """
        customer.soft_delete()

        customer.refresh_from_db()

        assert customer.is_deleted is True
        assert customer.deleted_at is not None

    def test_soft_delete_hides_from_default_manager(self, customer):
        customer.soft_delete()

        assert not Customer.objects.filter(pk=customer.pk).exists()
        assert Customer.all_objects.filter(pk=customer.pk).exists()

    def test_soft_delete_keeps_workspace_link(self, customer, workspace):
        """
        Soft-deleted customers keep their workspace association.

        Why it matters: Invoices and subscriptions still reference the row.
        """
        customer.soft_delete()

        assert WorkspaceCustomer.objects.filter(
            workspace=workspace, customer_id=customer.pk
        ).exists()

    def test_soft_delete_leaves_sync_fields(self, customer):
        customer.soft_delete()
        customer.refresh_from_db()

        assert customer.payment_sync_version == 1
        assert customer.external_id.startswith("cus_")

