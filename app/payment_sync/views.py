"""
Views for the sync session API.

ViewSets:
    SyncSessionViewSet: ReadOnlyModelViewSet with actions to start,
        cancel and inspect sync sessions

Endpoints:
    GET  /api/v1/payment-sync/sessions/?workspace_id=<uuid> - List sessions
    GET  /api/v1/payment-sync/sessions/{id}/ - Session detail with progress
    POST /api/v1/payment-sync/sessions/start/ - Start an initial sync
    POST /api/v1/payment-sync/sessions/{id}/cancel/ - Cancel a session
    GET  /api/v1/payment-sync/sessions/{id}/events/ - Session audit events

Usage:
    from rest_framework.routers import DefaultRouter
    from payment_sync.views import SyncSessionViewSet

    router = DefaultRouter()
    router.register(r"sessions", SyncSessionViewSet, basename="sync-session")
"""

from __future__ import annotations

import logging
import uuid

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from drf_spectacular.utils import (
    extend_schema,
    extend_schema_view,
    OpenApiParameter,
    OpenApiResponse,
)

from core.exceptions import NotFoundError

from payment_sync.adapters.registry import ProviderRegistry
from payment_sync.exceptions import (
    InvalidSessionTransitionError,
    PaymentSyncError,
    ProviderConfigurationError,
)
from payment_sync.models import SyncEventType, SyncSession, Workspace
from payment_sync.serializers import (
    StartSyncSerializer,
    SyncEventSerializer,
    SyncSessionSerializer,
)
from payment_sync.services import InitialSyncOrchestrator

logger = logging.getLogger(__name__)


@extend_schema_view(
    list=extend_schema(
        operation_id="list_sync_sessions",
        summary="List sync sessions",
        description="List sync sessions, optionally filtered by workspace and status.",
        parameters=[
            OpenApiParameter(
                name="workspace_id",
                type=str,
                location=OpenApiParameter.QUERY,
                description="Filter by workspace UUID",
                required=False,
            ),
            OpenApiParameter(
                name="status",
                type=str,
                location=OpenApiParameter.QUERY,
                description="Filter by session status",
                required=False,
            ),
        ],
        tags=["Payment Sync - Sessions"],
    ),
    retrieve=extend_schema(
        operation_id="get_sync_session",
        summary="Get sync session",
        description="Get a sync session with its progress and error summary.",
        tags=["Payment Sync - Sessions"],
    ),
)
class SyncSessionViewSet(viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for sync session operations.

    Provides:
    - list: GET / - List sessions
    - retrieve: GET /{id}/ - Session detail
    - start: POST /start/ - Start an initial sync
    - cancel: POST /{id}/cancel/ - Cancel a pending or running session
    - events: GET /{id}/events/ - Audit events of a session

    Permissions:
    - All endpoints require authentication
    """

    permission_classes = [IsAuthenticated]
    serializer_class = SyncSessionSerializer

    def get_queryset(self):
        queryset = SyncSession.objects.all()

        workspace_id = self.request.query_params.get("workspace_id")
        if workspace_id:
            try:
                workspace_id = uuid.UUID(workspace_id)
            except ValueError:
                raise ValidationError({"workspace_id": ["Must be a valid UUID."]}) from None
            queryset = queryset.filter(workspace_id=workspace_id)

        session_status = self.request.query_params.get("status")
        if session_status:
            queryset = queryset.filter(status=session_status)

        return queryset

    @extend_schema(
        operation_id="start_initial_sync",
        summary="Start an initial sync",
        description=(
            "Create a sync session and run it in the background. "
            "Returns immediately with the running session."
        ),
        request=StartSyncSerializer,
        responses={
            202: SyncSessionSerializer,
            400: OpenApiResponse(description="Invalid request or provider configuration"),
            404: OpenApiResponse(description="Workspace not found"),
        },
        tags=["Payment Sync - Sessions"],
    )
    @action(detail=False, methods=["post"])
    def start(self, request):
        serializer = StartSyncSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        workspace_id = serializer.validated_data["workspace_id"]
        provider = serializer.validated_data["provider"]

        if not Workspace.objects.filter(pk=workspace_id).exists():
            error = NotFoundError(
                f"Workspace not found: {workspace_id}",
                error_code="WORKSPACE_NOT_FOUND",
            )
            return Response(error.to_dict(), status=status.HTTP_404_NOT_FOUND)

        try:
            session = ProviderRegistry.start_initial_sync(
                workspace_id, provider, serializer.get_config()
            )
        except NotFoundError as e:
            return Response(e.to_dict(), status=status.HTTP_404_NOT_FOUND)
        except ProviderConfigurationError as e:
            return Response(e.to_dict(), status=status.HTTP_400_BAD_REQUEST)
        except PaymentSyncError as e:
            logger.warning(
                "Could not start initial sync",
                extra={"workspace_id": str(workspace_id), "error_code": e.error_code},
            )
            return Response(e.to_dict(), status=status.HTTP_400_BAD_REQUEST)

        return Response(
            SyncSessionSerializer(session).data,
            status=status.HTTP_202_ACCEPTED,
        )

    @extend_schema(
        operation_id="cancel_sync_session",
        summary="Cancel a sync session",
        description="Cancel a pending or running session. A running session stops at its next page.",
        request=None,
        responses={
            200: SyncSessionSerializer,
            404: OpenApiResponse(description="Session not found"),
            409: OpenApiResponse(description="Session already finished"),
        },
        tags=["Payment Sync - Sessions"],
    )
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        session = self.get_object()
        try:
            session = InitialSyncOrchestrator.cancel_session(session.id)
        except NotFoundError as e:
            return Response(e.to_dict(), status=status.HTTP_404_NOT_FOUND)
        except InvalidSessionTransitionError as e:
            return Response(e.to_dict(), status=status.HTTP_409_CONFLICT)

        return Response(SyncSessionSerializer(session).data)

    @extend_schema(
        operation_id="list_sync_session_events",
        summary="List sync session events",
        description="Audit events of a session in the order they were written.",
        parameters=[
            OpenApiParameter(
                name="event_type",
                type=str,
                location=OpenApiParameter.QUERY,
                description="Filter by event type",
                required=False,
                enum=SyncEventType.values,
            ),
            OpenApiParameter(
                name="entity_type",
                type=str,
                location=OpenApiParameter.QUERY,
                description="Filter by entity type",
                required=False,
            ),
        ],
        responses={200: SyncEventSerializer(many=True)},
        tags=["Payment Sync - Sessions"],
    )
    @action(detail=True, methods=["get"])
    def events(self, request, pk=None):
        session = self.get_object()
        events = session.events.all()

        event_type = request.query_params.get("event_type")
        if event_type:
            events = events.filter(event_type=event_type)

        entity_type = request.query_params.get("entity_type")
        if entity_type:
            events = events.filter(entity_type=entity_type)

        page = self.paginate_queryset(events)
        if page is not None:
            return self.get_paginated_response(SyncEventSerializer(page, many=True).data)
        return Response(SyncEventSerializer(events, many=True).data)
