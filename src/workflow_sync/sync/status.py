"""Three-way status classification of a workflow.

Compares the baseline digest, the local digest and the remote digest of
a workflow and names the kind of drift between them.  The same table is
applied per file to explain conflicts.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from workflow_sync.sync.cache import StateCache
    from workflow_sync.sync.state import BaselineStore

logger = logging.getLogger(__name__)


class WorkflowStatus(StrEnum):
    """Drift between baseline, local copy, and remote store."""

    UNKNOWN = "unknown"
    MISSING = "missing"
    NEW = "new"
    CONFLICT = "conflict"
    MODIFIED = "modified"
    OUTDATED = "outdated"
    SYNCED = "synced"

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_DESCRIPTIONS: dict[WorkflowStatus, str] = {
    WorkflowStatus.UNKNOWN: "Unknown status",
    WorkflowStatus.MISSING: "Missing locally",
    WorkflowStatus.NEW: "New (not on server)",
    WorkflowStatus.CONFLICT: "Conflict",
    WorkflowStatus.MODIFIED: "Modified locally",
    WorkflowStatus.OUTDATED: "Outdated (server has newer version)",
    WorkflowStatus.SYNCED: "Synced",
}


def classify(
    baseline: str | None, local: str | None, remote: str | None
) -> WorkflowStatus:
    """Classify one set of digests.

    Checks run in priority order; each assumes the earlier ones failed.
    When local and remote agree the result is ``SYNCED`` even if both
    moved away from the baseline: the two sides have converged on their
    own.

    Args:
        baseline: Last agreed digest, or ``None`` if never recorded.
        local: Current local digest, or ``None`` if absent locally.
        remote: Current remote digest, or ``None`` if absent remotely.
    """
    if baseline is None:
        return WorkflowStatus.UNKNOWN
    if local is None:
        return WorkflowStatus.MISSING
    if remote is None:
        return WorkflowStatus.NEW
    if local == remote:
        return WorkflowStatus.SYNCED
    if baseline != local and baseline != remote:
        return WorkflowStatus.CONFLICT
    if baseline != local:
        return WorkflowStatus.MODIFIED
    return WorkflowStatus.OUTDATED


def classify_files(
    baseline: dict[str, str] | None,
    local: dict[str, str] | None,
    remote: dict[str, str] | None,
) -> dict[str, WorkflowStatus]:
    """Apply ``classify`` to every file name seen on any side.

    Returns:
        A ``file name -> status`` map sorted by file name.
    """
    baseline = baseline or {}
    local = local or {}
    remote = remote or {}
    names = sorted(set(baseline) | set(local) | set(remote))
    return {
        name: classify(baseline.get(name), local.get(name), remote.get(name))
        for name in names
    }


class StatusResolver:
    """Resolves workflow status from the baseline store and state cache.

    Resolution adopts a converged digest as the new baseline: when local
    and remote are identical but differ from the recorded baseline, the
    baseline is rewritten to match and the workflow reads as ``SYNCED``.

    Args:
        cache: Source of local and remote snapshots.
        baseline_store: Source (and sink, for convergence) of baselines.
    """

    def __init__(self, cache: StateCache, baseline_store: BaselineStore) -> None:
        self._cache = cache
        self._baseline = baseline_store

    async def resolve(self, workflow: str) -> WorkflowStatus:
        """Return the current status of *workflow*.

        The remote is only consulted once the baseline and local copy are
        known to exist.
        """
        entry = self._baseline.get(workflow)
        if entry is None:
            return WorkflowStatus.UNKNOWN

        local = await self._cache.get_local(workflow)
        if local is None:
            return WorkflowStatus.MISSING

        remote = await self._cache.get_remote(workflow)
        if remote is None:
            return WorkflowStatus.NEW

        local_hash = local.digest.aggregate
        remote_hash = remote.digest.aggregate
        if local_hash == remote_hash and entry.hash != local_hash:
            logger.info(
                "%s: local and remote converged on %s; updating baseline",
                workflow,
                local_hash,
            )
            self._baseline.record(workflow, local.digest)

        return classify(entry.hash, local_hash, remote_hash)

    async def resolve_files(self, workflow: str) -> dict[str, WorkflowStatus]:
        """Per-file statuses, used to explain a workflow-level conflict."""
        entry = self._baseline.get(workflow)
        local = await self._cache.get_local(workflow)
        remote = await self._cache.get_remote(workflow)
        return classify_files(
            entry.file_hashes if entry is not None else None,
            local.digest.per_file if local is not None else None,
            remote.digest.per_file if remote is not None else None,
        )
