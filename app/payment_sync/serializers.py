"""
Serializers for the sync session API.

Serializers:
    SyncSessionSerializer: Read-only session details with progress
    SyncEventSerializer: Read-only audit event
    InitialSyncConfigSerializer: Options accepted when starting a sync
    StartSyncSerializer: Request body of the start action

Usage:
    from payment_sync.serializers import StartSyncSerializer

    serializer = StartSyncSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    config = serializer.get_config()
"""

from __future__ import annotations

from rest_framework import serializers

from payment_sync.adapters.registry import ProviderRegistry
from payment_sync.canonical import InitialSyncConfig
from payment_sync.models import SyncEvent, SyncSession


class SyncSessionSerializer(serializers.ModelSerializer):
    """
    Serializer for SyncSession model.

    Usage:
        serializer = SyncSessionSerializer(session)
        serializer = SyncSessionSerializer(sessions, many=True)
    """

    workspace_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = SyncSession
        fields = [
            "id",
            "workspace_id",
            "provider",
            "session_type",
            "status",
            "entity_types",
            "config",
            "progress",
            "error_summary",
            "started_at",
            "completed_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class SyncEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = SyncEvent
        fields = [
            "id",
            "entity_type",
            "entity_id",
            "event_type",
            "message",
            "details",
            "created_at",
        ]
        read_only_fields = fields


class InitialSyncConfigSerializer(serializers.Serializer):
    """
    Options of an initial sync. Omitted values fall back to defaults.

    Unknown entity types are accepted; the run skips them.
    """

    batch_size = serializers.IntegerField(required=False, min_value=1, max_value=100)
    entity_types = serializers.ListField(
        child=serializers.CharField(max_length=30),
        required=False,
        help_text="Entity types in processing order",
    )
    full_sync = serializers.BooleanField(required=False, default=False)
    starting_after = serializers.CharField(required=False, allow_blank=True, default="")
    ending_before = serializers.CharField(required=False, allow_blank=True, default="")
    max_retries = serializers.IntegerField(required=False, min_value=1, max_value=10)
    retry_delay = serializers.FloatField(
        required=False,
        min_value=0.1,
        help_text="Base delay in seconds between provider retries",
    )

    def validate(self, attrs: dict) -> dict:
        if attrs.get("starting_after") and attrs.get("ending_before"):
            raise serializers.ValidationError(
                "starting_after and ending_before are mutually exclusive"
            )
        return attrs


class StartSyncSerializer(serializers.Serializer):
    """
    Request body for starting an initial sync.

    Fields:
        workspace_id: Workspace to sync
        provider: Registered provider name
        config: Optional InitialSyncConfig options
    """

    workspace_id = serializers.UUIDField()
    provider = serializers.CharField(max_length=50)
    config = InitialSyncConfigSerializer(required=False)

    def validate_provider(self, value: str) -> str:
        if not ProviderRegistry.is_registered(value):
            raise serializers.ValidationError(
                f"Payment provider '{value}' is not registered"
            )
        return value

    def get_config(self) -> InitialSyncConfig:
        return InitialSyncConfig.from_dict(self.validated_data.get("config"))
