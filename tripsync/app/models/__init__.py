"""Models package - re-exports for convenience."""

from tripsync.app.models.common import (
    ClientContext,
    PendingIntentType,
    RiskSeverity,
    RunStatus,
    TripItemKind,
    TripItemSource,
    TripItemState,
    TripStatus,
)
from tripsync.app.models.diagnostics import DiagnosticsRefresh
from tripsync.app.models.ingest import (
    IngestApplied,
    IngestFailed,
    IngestMode,
    IngestNeedsClarification,
    IngestResult,
    PendingCandidate,
)
from tripsync.app.models.patch import OpType, PatchIntent, PatchOp, PatchOperation
from tripsync.app.models.reconstruction import ItineraryItem, TripDay, TripReconstruction

__all__ = [
    # Common
    "ClientContext",
    "TripItemKind",
    "TripItemState",
    "TripItemSource",
    "TripStatus",
    "RunStatus",
    "PendingIntentType",
    "RiskSeverity",
    # Reconstruction
    "TripReconstruction",
    "TripDay",
    "ItineraryItem",
    # Diagnostics
    "DiagnosticsRefresh",
    # Patch
    "OpType",
    "PatchOp",
    "PatchIntent",
    "PatchOperation",
    # Ingest
    "IngestMode",
    "IngestApplied",
    "IngestNeedsClarification",
    "IngestFailed",
    "IngestResult",
    "PendingCandidate",
]
