"""
SyncSession and SyncEvent models.

A SyncSession is the durable handle of one bulk synchronization run.
Its status moves through a django-fsm state machine:

    pending → running → completed
    pending → running → failed
    pending/running → cancelled
    pending → failed (the run could not even start)

SyncEvents are an append-only audit trail of a session: once written
they are never updated. Only the owning session's status, progress and
error_summary change after creation.

Usage:
    session = SyncSession.objects.create(
        workspace=workspace,
        provider="stripe",
        entity_types=["customers", "products"],
    )
    session.start()
    session.save()
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone
from django_fsm import FSMField, transition

from core.managers import SoftDeleteManager
from core.model_mixins import SoftDeleteMixin, UUIDPrimaryKeyMixin
from core.models import BaseModel


class SyncSessionType(models.TextChoices):
    INITIAL_SYNC = "initial_sync", "Initial Sync"
    INCREMENTAL = "incremental", "Incremental"
    REPLAY = "replay", "Replay"


class SyncSessionStatus(models.TextChoices):
    """
    Lifecycle of a SyncSession.

    FAILED means the listing of at least one entity type was aborted.
    Per-item failures alone leave the session COMPLETED; they are counted
    in progress and error_summary. Every configured entity type is still
    attempted after an abort.
    """

    PENDING = "pending", "Pending"
    RUNNING = "running", "Running"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    CANCELLED = "cancelled", "Cancelled"


class SyncEventType(models.TextChoices):
    SYNC_STARTED = "sync_started", "Sync Started"
    SYNC_COMPLETED = "sync_completed", "Sync Completed"
    SYNC_FAILED = "sync_failed", "Sync Failed"


class SyncSession(UUIDPrimaryKeyMixin, SoftDeleteMixin, BaseModel):
    """
    One bulk synchronization run for a workspace and provider.

    Fields:
        session_type: initial_sync, incremental or replay
        status: FSM-managed lifecycle status
        entity_types: Ordered list of entity types, processed sequentially
        config: InitialSyncConfig as JSON (defaults applied)
        progress: Counters and timestamps, updated while running
        error_summary: Last failure per entity type; non-empty when failed
    """

    workspace = models.ForeignKey(
        "payment_sync.Workspace",
        on_delete=models.CASCADE,
        related_name="sync_sessions",
    )
    provider = models.CharField(max_length=50, db_index=True)
    session_type = models.CharField(
        max_length=20,
        choices=SyncSessionType.choices,
        default=SyncSessionType.INITIAL_SYNC,
    )
    status = FSMField(
        default=SyncSessionStatus.PENDING,
        choices=SyncSessionStatus.choices,
        db_index=True,
        help_text="Current session status (managed by FSM)",
    )
    entity_types = models.JSONField(default=list)
    config = models.JSONField(default=dict, blank=True)
    progress = models.JSONField(default=dict, blank=True)
    error_summary = models.JSONField(default=dict, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteManager()
    all_objects = models.Manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["workspace", "provider", "status"],
                name="syncsession_ws_prov_stat_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"SyncSession({self.id}, {self.provider}, {self.status})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=SyncSessionStatus.PENDING,
        target=SyncSessionStatus.RUNNING,
    )
    def start(self):
        """Transition: PENDING -> RUNNING."""
        self.started_at = timezone.now()

    @transition(
        field=status,
        source=SyncSessionStatus.RUNNING,
        target=SyncSessionStatus.COMPLETED,
    )
    def complete(self):
        """Transition: RUNNING -> COMPLETED."""
        self.completed_at = timezone.now()

    @transition(
        field=status,
        source=[SyncSessionStatus.PENDING, SyncSessionStatus.RUNNING],
        target=SyncSessionStatus.FAILED,
    )
    def fail(self, error_summary: dict | None = None):
        """
        Transition: PENDING/RUNNING -> FAILED.

        A failed session always carries an error summary; a generic one
        is recorded if the caller did not provide any.
        """
        if error_summary:
            self.error_summary = error_summary
        if not self.error_summary:
            self.error_summary = {"session": {"last_error": "sync failed"}}
        self.completed_at = timezone.now()

    @transition(
        field=status,
        source=[SyncSessionStatus.PENDING, SyncSessionStatus.RUNNING],
        target=SyncSessionStatus.CANCELLED,
    )
    def cancel(self):
        """Transition: PENDING/RUNNING -> CANCELLED."""
        self.completed_at = timezone.now()

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_finished(self) -> bool:
        return self.status in (
            SyncSessionStatus.COMPLETED,
            SyncSessionStatus.FAILED,
            SyncSessionStatus.CANCELLED,
        )


class SyncEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Append-only audit row for a SyncSession.

    Saving an existing SyncEvent raises; events are written once.
    """

    session = models.ForeignKey(
        SyncSession,
        on_delete=models.CASCADE,
        related_name="events",
    )
    entity_type = models.CharField(max_length=30, db_index=True)
    entity_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="External id of the entity, when the event concerns one",
    )
    event_type = models.CharField(
        max_length=20,
        choices=SyncEventType.choices,
        db_index=True,
    )
    message = models.TextField(blank=True, default="")
    details = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(
                fields=["session", "event_type"],
                name="syncevent_session_type_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"SyncEvent({self.entity_type}, {self.event_type})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("SyncEvent rows are append-only and cannot be updated")
        super().save(*args, **kwargs)
