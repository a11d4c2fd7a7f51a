"""Conflict resolution for workflows whose two sides both diverged.

Resolution is whole-file-set overwrite, never a content merge.  Four
strategies are available:

- ``skip`` -- do nothing; the baseline is left as it was.
- ``pull`` -- overwrite the local copy with the remote file-set.
- ``push`` -- overwrite the remote with the local file-set.
- ``auto`` -- ``pull`` followed by ``push``.  Because the pull replaces
  the local copy first, local edits are discarded and the push re-uploads
  the remote content.  This is a best-effort overwrite sequence, not a
  merge.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from workflow_sync.sync.hashing import FileSetDigest

logger = logging.getLogger(__name__)


class ConflictStrategy(StrEnum):
    """How to settle a conflicting workflow."""

    SKIP = "skip"
    PULL = "pull"
    PUSH = "push"
    AUTO = "auto"


class WorkflowTransfer(Protocol):
    """Moves a whole file-set between the two sides and records the
    resulting baseline.  Each call returns the digest that became the new
    baseline.
    """

    async def pull(self, workflow: str) -> FileSetDigest: ...

    async def push(self, workflow: str) -> FileSetDigest: ...


@dataclass(frozen=True)
class ConflictResolution:
    """Outcome of applying a strategy to one workflow."""

    workflow: str
    strategy: ConflictStrategy
    baseline: FileSetDigest | None = None

    @property
    def skipped(self) -> bool:
        return self.strategy is ConflictStrategy.SKIP


class ConflictResolver:
    """Applies a ``ConflictStrategy`` through a ``WorkflowTransfer``.

    The strategy is always chosen by the caller; the resolver never asks
    anyone.

    Args:
        transfer: Performs pulls and pushes and persists baselines.
    """

    def __init__(self, transfer: WorkflowTransfer) -> None:
        self._transfer = transfer

    async def resolve(
        self, workflow: str, strategy: ConflictStrategy
    ) -> ConflictResolution:
        """Apply *strategy* to *workflow*.

        Errors from the transfer propagate unchanged.  With ``auto``, a
        failed push leaves the baseline recorded by the preceding pull.
        """
        strategy = ConflictStrategy(strategy)
        logger.info("Resolving conflict in %s with strategy '%s'", workflow, strategy)

        if strategy is ConflictStrategy.SKIP:
            return ConflictResolution(workflow=workflow, strategy=strategy)

        if strategy is ConflictStrategy.PULL:
            baseline = await self._transfer.pull(workflow)
        elif strategy is ConflictStrategy.PUSH:
            baseline = await self._transfer.push(workflow)
        else:
            await self._transfer.pull(workflow)
            baseline = await self._transfer.push(workflow)

        return ConflictResolution(workflow=workflow, strategy=strategy, baseline=baseline)
