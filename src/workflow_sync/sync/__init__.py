"""Sync engine package for local <-> remote workflow synchronization."""

from workflow_sync.sync.cache import StateCache, WorkflowSnapshot
from workflow_sync.sync.conflict import ConflictResolution, ConflictResolver, ConflictStrategy
from workflow_sync.sync.engine import (
    STATUS_ACTIONS,
    StatusEntry,
    SyncAction,
    SyncEngine,
    SyncOutcome,
    SyncResult,
)
from workflow_sync.sync.hashing import (
    FileSetDigest,
    WorkflowFile,
    compute_digest,
    compute_fileset_digest,
)
from workflow_sync.sync.state import BaselineData, BaselineEntry, BaselineStore
from workflow_sync.sync.status import StatusResolver, WorkflowStatus, classify, classify_files
from workflow_sync.sync.watcher import WatchState, WorkflowWatcher

__all__ = [
    "STATUS_ACTIONS",
    "BaselineData",
    "BaselineEntry",
    "BaselineStore",
    "ConflictResolution",
    "ConflictResolver",
    "ConflictStrategy",
    "FileSetDigest",
    "StateCache",
    "StatusEntry",
    "StatusResolver",
    "SyncAction",
    "SyncEngine",
    "SyncOutcome",
    "SyncResult",
    "WatchState",
    "WorkflowFile",
    "WorkflowSnapshot",
    "WorkflowStatus",
    "WorkflowWatcher",
    "classify",
    "classify_files",
    "compute_digest",
    "compute_fileset_digest",
]
