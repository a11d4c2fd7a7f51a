"""Per-run cache of local and remote workflow snapshots.

A snapshot is the file-set of one side of a workflow together with its
digest.  Absence is cached as well: a workflow that has no local
directory, or that the remote does not know, is stored as ``None``.
Entries stay valid until ``invalidate`` is called for the workflow.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from workflow_sync.sync.hashing import FileSetDigest, WorkflowFile, compute_fileset_digest

if TYPE_CHECKING:
    from workflow_sync.remote.base import RemoteClient
    from workflow_sync.workspace import Workspace

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkflowSnapshot:
    """One side's file-set of a workflow and its digest."""

    files: list[WorkflowFile]
    digest: FileSetDigest

    @classmethod
    def from_files(cls, files: list[WorkflowFile]) -> WorkflowSnapshot:
        return cls(files=list(files), digest=compute_fileset_digest(files))


class StateCache:
    """Caches local and remote snapshots per workflow.

    Args:
        workspace: Local working copy.
        remote: Remote workflow store.
    """

    def __init__(self, workspace: Workspace, remote: RemoteClient) -> None:
        self._workspace = workspace
        self._remote = remote
        self._local: dict[str, WorkflowSnapshot | None] = {}
        self._remote_cache: dict[str, WorkflowSnapshot | None] = {}

    async def get_local(self, workflow: str) -> WorkflowSnapshot | None:
        """Return the local snapshot, or ``None`` if the directory is absent.

        Raises:
            LocalStorageError: If the directory exists but cannot be read.
        """
        if workflow not in self._local:
            files = await asyncio.to_thread(self._workspace.read_files, workflow)
            self._local[workflow] = (
                WorkflowSnapshot.from_files(files) if files is not None else None
            )
        return self._local[workflow]

    async def get_remote(self, workflow: str) -> WorkflowSnapshot | None:
        """Return the remote snapshot, or ``None`` if the remote lacks it.

        Transport and authentication failures propagate as
        ``RemoteError`` and are not cached.
        """
        if workflow not in self._remote_cache:
            files = await self._remote.fetch_workflow(workflow)
            self._remote_cache[workflow] = (
                WorkflowSnapshot.from_files(files) if files is not None else None
            )
        return self._remote_cache[workflow]

    def invalidate(self, workflow: str) -> None:
        """Forget both cached snapshots of *workflow*."""
        self._local.pop(workflow, None)
        self._remote_cache.pop(workflow, None)
        logger.debug("Invalidated cached state for %s", workflow)

    def invalidate_all(self) -> None:
        self._local.clear()
        self._remote_cache.clear()
