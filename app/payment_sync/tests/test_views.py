"""
Tests for the sync session API.

Tests cover:
- Authentication requirement
- Starting an initial sync (202, validation errors, unknown workspace,
  missing provider configuration)
- Listing, filtering and retrieving sessions
- Cancelling sessions
- Session audit events
"""

import uuid
from unittest.mock import patch

from rest_framework.test import APIClient

from payment_sync.models import (
    SyncEvent,
    SyncEventType,
    SyncSession,
    SyncSessionStatus,
)
from payment_sync.tests.factories import SyncSessionFactory

SESSIONS_URL = "/api/v1/payment-sync/sessions/"
START_URL = f"{SESSIONS_URL}start/"


def session_url(session, suffix: str = "") -> str:
    return f"{SESSIONS_URL}{session.id}/{suffix}"


# =============================================================================
# Authentication Tests
# =============================================================================


class TestAuthentication:
    def test_list_requires_authentication(self, db):
        response = APIClient().get(SESSIONS_URL)

        assert response.status_code in (401, 403)

    def test_start_requires_authentication(self, db, workspace):
        response = APIClient().post(
            START_URL,
            {"workspace_id": str(workspace.id), "provider": "stripe"},
            format="json",
        )

        assert response.status_code in (401, 403)


# =============================================================================
# Start Tests
# =============================================================================


class TestStartSync:
    """Tests for POST /sessions/start/."""

    def test_start_returns_running_session(
        self, api_client, workspace, stripe_config, django_capture_on_commit_callbacks
    ):
        """Should create a running session and queue its run after commit."""
        with patch("payment_sync.tasks.run_initial_sync.delay") as mock_delay:
            with django_capture_on_commit_callbacks(execute=True):
                response = api_client.post(
                    START_URL,
                    {
                        "workspace_id": str(workspace.id),
                        "provider": "stripe",
                        "config": {"entity_types": ["customers", "products"], "batch_size": 50},
                    },
                    format="json",
                )

        assert response.status_code == 202
        assert response.data["status"] == SyncSessionStatus.RUNNING
        assert response.data["entity_types"] == ["customers", "products"]
        assert response.data["config"]["batch_size"] == 50
        mock_delay.assert_called_once_with(str(response.data["id"]))

    def test_start_applies_default_config(
        self, api_client, workspace, stripe_config, django_capture_on_commit_callbacks
    ):
        with patch("payment_sync.tasks.run_initial_sync.delay"):
            with django_capture_on_commit_callbacks(execute=True):
                response = api_client.post(
                    START_URL,
                    {"workspace_id": str(workspace.id), "provider": "stripe"},
                    format="json",
                )

        assert response.status_code == 202
        assert response.data["entity_types"] == [
            "customers",
            "products",
            "prices",
            "subscriptions",
        ]
        assert response.data["config"]["batch_size"] == 100

    def test_unknown_workspace_returns_404(self, api_client):
        response = api_client.post(
            START_URL,
            {"workspace_id": str(uuid.uuid4()), "provider": "stripe"},
            format="json",
        )

        assert response.status_code == 404
        assert response.data["error_code"] == "WORKSPACE_NOT_FOUND"

    def test_unregistered_provider_rejected(self, api_client, workspace):
        response = api_client.post(
            START_URL,
            {"workspace_id": str(workspace.id), "provider": "paypal"},
            format="json",
        )

        assert response.status_code == 400
        assert "provider" in response.data

    def test_missing_configuration_returns_400(self, api_client, workspace):
        """A workspace without credentials fails before a session exists."""
        response = api_client.post(
            START_URL,
            {"workspace_id": str(workspace.id), "provider": "stripe"},
            format="json",
        )

        assert response.status_code == 400
        assert response.data["error_code"] == "PROVIDER_CONFIGURATION_ERROR"
        assert not SyncSession.objects.exists()

    def test_cursor_options_mutually_exclusive(self, api_client, workspace, stripe_config):
        response = api_client.post(
            START_URL,
            {
                "workspace_id": str(workspace.id),
                "provider": "stripe",
                "config": {"starting_after": "cus_1", "ending_before": "cus_9"},
            },
            format="json",
        )

        assert response.status_code == 400

    def test_batch_size_above_provider_limit_rejected(
        self, api_client, workspace, stripe_config
    ):
        response = api_client.post(
            START_URL,
            {
                "workspace_id": str(workspace.id),
                "provider": "stripe",
                "config": {"batch_size": 500},
            },
            format="json",
        )

        assert response.status_code == 400


# =============================================================================
# List / Retrieve Tests
# =============================================================================


class TestListSessions:
    """Tests for GET /sessions/ and GET /sessions/{id}/."""

    def test_list_filtered_by_workspace(self, api_client, workspace, pending_session):
        SyncSessionFactory()

        response = api_client.get(SESSIONS_URL, {"workspace_id": str(workspace.id)})

        assert response.status_code == 200
        ids = [row["id"] for row in response.data["results"]]
        assert ids == [str(pending_session.id)]

    def test_list_with_malformed_workspace_id_returns_400(self, api_client, pending_session):
        response = api_client.get(SESSIONS_URL, {"workspace_id": "not-a-uuid"})

        assert response.status_code == 400
        assert "workspace_id" in response.data

    def test_list_filtered_by_status(self, api_client, pending_session, running_session):
        response = api_client.get(SESSIONS_URL, {"status": SyncSessionStatus.RUNNING})

        ids = [row["id"] for row in response.data["results"]]
        assert ids == [str(running_session.id)]

    def test_retrieve_includes_progress(self, api_client, running_session):
        running_session.progress = {"total_processed": 12, "current_entity": "customers"}
        running_session.save()

        response = api_client.get(session_url(running_session))

        assert response.status_code == 200
        assert response.data["progress"]["total_processed"] == 12
        assert str(response.data["workspace_id"]) == str(running_session.workspace_id)

    def test_retrieve_unknown_session(self, api_client):
        response = api_client.get(f"{SESSIONS_URL}{uuid.uuid4()}/")

        assert response.status_code == 404


# =============================================================================
# Cancel Tests
# =============================================================================


class TestCancelSession:
    """Tests for POST /sessions/{id}/cancel/."""

    def test_cancel_running_session(self, api_client, running_session):
        response = api_client.post(session_url(running_session, "cancel/"))

        assert response.status_code == 200
        assert response.data["status"] == SyncSessionStatus.CANCELLED
        running_session.refresh_from_db()
        assert running_session.status == SyncSessionStatus.CANCELLED

    def test_cancel_finished_session_conflicts(self, api_client, completed_session):
        response = api_client.post(session_url(completed_session, "cancel/"))

        assert response.status_code == 409
        assert response.data["error_code"] == "INVALID_SESSION_TRANSITION"


# =============================================================================
# Events Tests
# =============================================================================


class TestSessionEvents:
    """Tests for GET /sessions/{id}/events/."""

    def test_events_filtered_by_type(self, api_client, running_session):
        SyncEvent.objects.create(
            session=running_session,
            entity_type="customers",
            event_type=SyncEventType.SYNC_STARTED,
        )
        SyncEvent.objects.create(
            session=running_session,
            entity_type="customers",
            entity_id="cus_1",
            event_type=SyncEventType.SYNC_FAILED,
            message="Failed to sync cus_1",
        )

        response = api_client.get(
            session_url(running_session, "events/"),
            {"event_type": SyncEventType.SYNC_FAILED},
        )

        assert response.status_code == 200
        rows = response.data["results"]
        assert len(rows) == 1
        assert rows[0]["entity_id"] == "cus_1"
