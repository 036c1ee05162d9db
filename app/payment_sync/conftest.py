"""
Pytest fixtures for payment sync tests.

Usage:
    def test_start_sync(api_client, stripe_config):
        response = api_client.post(
            "/api/v1/payment-sync/sessions/start/",
            {"workspace_id": str(stripe_config.workspace_id), "provider": "stripe"},
            format="json",
        )
"""

import pytest
from rest_framework.test import APIClient

from payment_sync.models import SyncSessionStatus
from payment_sync.tests.factories import (
    SyncSessionFactory,
    UserFactory,
    WalletFactory,
    WorkspaceFactory,
    WorkspacePaymentConfigurationFactory,
)


# =============================================================================
# Workspace Fixtures
# =============================================================================


@pytest.fixture
def workspace(db):
    """Create a workspace."""
    return WorkspaceFactory()


@pytest.fixture
def wallet(db, workspace):
    """Create the workspace's settlement wallet."""
    return WalletFactory(workspace=workspace)


@pytest.fixture
def stripe_config(db, workspace):
    """Store Stripe credentials for the workspace."""
    return WorkspacePaymentConfigurationFactory(workspace=workspace)


# =============================================================================
# Session Fixtures
# =============================================================================


@pytest.fixture
def pending_session(db, workspace):
    return SyncSessionFactory(workspace=workspace)


@pytest.fixture
def running_session(db, workspace):
    session = SyncSessionFactory(workspace=workspace)
    session.start()
    session.save()
    return session


@pytest.fixture
def completed_session(db, running_session):
    running_session.complete()
    running_session.save()
    assert running_session.status == SyncSessionStatus.COMPLETED
    return running_session


# =============================================================================
# API Fixtures
# =============================================================================


@pytest.fixture
def user(db):
    return UserFactory()


@pytest.fixture
def api_client(user):
    """API client authenticated as a regular user."""
    client = APIClient()
    client.force_authenticate(user=user)
    return client
