"""
Service layer for payment synchronization.

Usage:
    from payment_sync.services import InitialSyncOrchestrator, ReconciliationService
"""

from payment_sync.services.reconciliation_service import (
    ReconciliationService,
    UpsertResult,
)
from payment_sync.services.sync_orchestrator import InitialSyncOrchestrator

__all__ = [
    "InitialSyncOrchestrator",
    "ReconciliationService",
    "UpsertResult",
]
