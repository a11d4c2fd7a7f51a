"""Sync engine orchestrator for local <-> remote workflow synchronization.

Coordinates the whole sync cycle for a batch of workflows: resolving
each workflow's status, choosing and executing the matching action,
recording the new baseline once the action has durably succeeded, and
reporting a per-workflow result.  Workflows are processed one at a time.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from enum import StrEnum
from typing import TYPE_CHECKING

from pydantic import BaseModel

from workflow_sync.errors import (
    WorkflowExistsError,
    WorkflowNotFoundError,
    WorkflowNotInProjectError,
    WorkflowSyncError,
)
from workflow_sync.sync.cache import StateCache
from workflow_sync.sync.conflict import ConflictResolver, ConflictStrategy
from workflow_sync.sync.hashing import FileSetDigest
from workflow_sync.sync.status import StatusResolver, WorkflowStatus

if TYPE_CHECKING:
    from workflow_sync.remote.base import RemoteClient
    from workflow_sync.sync.state import BaselineStore
    from workflow_sync.workspace import Workspace

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Result / action models
# ------------------------------------------------------------------


class SyncAction(StrEnum):
    """What the engine does for a given status."""

    UPLOAD = "upload"
    DOWNLOAD = "download"
    RESOLVE = "resolve"
    NONE = "none"


class SyncOutcome(StrEnum):
    """How processing one workflow ended."""

    PUSHED = "pushed"
    PULLED = "pulled"
    SKIPPED = "skipped"
    SYNCED = "synced"
    REPORTED = "reported"
    FAILED = "failed"


STATUS_ACTIONS: dict[WorkflowStatus, SyncAction] = {
    WorkflowStatus.NEW: SyncAction.UPLOAD,
    WorkflowStatus.MODIFIED: SyncAction.UPLOAD,
    WorkflowStatus.OUTDATED: SyncAction.DOWNLOAD,
    WorkflowStatus.CONFLICT: SyncAction.RESOLVE,
    WorkflowStatus.SYNCED: SyncAction.NONE,
    WorkflowStatus.MISSING: SyncAction.NONE,
    WorkflowStatus.UNKNOWN: SyncAction.NONE,
}


class SyncResult(BaseModel):
    """Outcome of processing a single workflow."""

    workflow: str
    status: WorkflowStatus | None = None
    outcome: SyncOutcome
    message: str = ""

    @property
    def success(self) -> bool:
        return self.outcome is not SyncOutcome.FAILED


class StatusEntry(BaseModel):
    """Status snapshot for one workflow, or why it could not be taken."""

    workflow: str
    status: WorkflowStatus | None = None
    error: str | None = None

    @property
    def description(self) -> str:
        if self.status is None:
            return self.error or "Unknown status"
        return self.status.description


StrategyChooser = Callable[[str, dict[str, WorkflowStatus]], Awaitable[ConflictStrategy]]
PreActionHook = Callable[[str, SyncAction], Awaitable[bool]]
PostActionHook = Callable[[str, SyncAction], Awaitable[None]]
ResultCallback = Callable[[SyncResult, int], None]


# ------------------------------------------------------------------
# Engine
# ------------------------------------------------------------------


class SyncEngine:
    """Orchestrates synchronization of workflows between the local
    working copy and the remote store.

    The cache is invalidated in exactly two places, right after a
    successful upload and right after a successful download, so every
    decision after an action reads fresh state.

    Args:
        remote: Remote workflow store.
        workspace: Local working copy.
        baseline_store: Persisted last-agreed digests.
        pre_action: Optional hook called before any remote-facing action;
            returning ``False`` vetoes the action and fails the workflow.
        post_action: Optional hook called after a remote-facing action
            succeeded.
    """

    def __init__(
        self,
        remote: RemoteClient,
        workspace: Workspace,
        baseline_store: BaselineStore,
        *,
        pre_action: PreActionHook | None = None,
        post_action: PostActionHook | None = None,
    ) -> None:
        self._remote = remote
        self._workspace = workspace
        self._baseline = baseline_store
        self._pre_action = pre_action
        self._post_action = post_action
        self._cache = StateCache(workspace, remote)
        self._resolver = StatusResolver(self._cache, baseline_store)
        self._conflicts = ConflictResolver(self)

    @property
    def cache(self) -> StateCache:
        return self._cache

    @property
    def workspace(self) -> Workspace:
        return self._workspace

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def tracked_workflows(self) -> list[str]:
        """Workflows with a baseline entry or a local manifest."""
        names = set(self._baseline.read().workflows) | set(self._workspace.list_workflows())
        return sorted(names)

    async def workflow_status(self, workflow: str) -> WorkflowStatus:
        return await self._resolver.resolve(workflow)

    async def file_statuses(self, workflow: str) -> dict[str, WorkflowStatus]:
        return await self._resolver.resolve_files(workflow)

    async def check_status(
        self, workflows: Iterable[str] | None = None
    ) -> list[StatusEntry]:
        """Resolve the status of each workflow without acting on it.

        A workflow whose status cannot be resolved gets an entry with
        ``error`` set; the remaining workflows are still checked.
        """
        names = list(workflows) if workflows is not None else self.tracked_workflows()
        entries: list[StatusEntry] = []
        for name in names:
            try:
                status = await self._resolver.resolve(name)
            except WorkflowSyncError as exc:
                logger.error("Cannot resolve status of %s: %s", name, exc)
                entries.append(StatusEntry(workflow=name, error=str(exc)))
                continue
            entries.append(StatusEntry(workflow=name, status=status))
        return entries

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    async def push(self, workflow: str) -> FileSetDigest:
        """Upload the local file-set and record it as the baseline.

        Returns:
            The digest recorded as the new baseline.

        Raises:
            WorkflowNotFoundError: If there is no local copy.
            RemoteError: If the upload fails; the baseline is untouched.
        """
        local = await self._cache.get_local(workflow)
        if local is None:
            raise WorkflowNotFoundError(workflow, where="local")

        await self._remote.upload_workflow(workflow, local.files)
        self._cache.invalidate(workflow)
        self._baseline.record(workflow, local.digest)

        logger.info("Pushed %s (%d file(s)) -> remote", workflow, len(local.files))
        return local.digest

    async def pull(self, workflow: str) -> FileSetDigest:
        """Overwrite the local copy with the remote file-set and record it
        as the baseline.

        Returns:
            The digest recorded as the new baseline.

        Raises:
            WorkflowNotFoundError: If the remote has no such workflow.
            LocalStorageError: If writing fails; the baseline is untouched.
        """
        remote = await self._cache.get_remote(workflow)
        if remote is None:
            raise WorkflowNotFoundError(workflow, where="remote")

        await asyncio.to_thread(self._workspace.write_files, workflow, remote.files)
        self._cache.invalidate(workflow)
        self._baseline.record(workflow, remote.digest)

        logger.info("Pulled %s (%d file(s)) <- remote", workflow, len(remote.files))
        return remote.digest

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    async def sync_workflow(
        self,
        workflow: str,
        strategy: ConflictStrategy | StrategyChooser = ConflictStrategy.SKIP,
    ) -> SyncResult:
        """Bring one workflow in sync.

        Any exception raised while resolving or acting is converted into
        a ``FAILED`` result.

        Args:
            workflow: Workflow name.
            strategy: Fixed conflict strategy, or a coroutine function
                called with the workflow name and its per-file statuses
                that returns one.
        """
        status: WorkflowStatus | None = None
        try:
            status = await self._resolver.resolve(workflow)
            action = STATUS_ACTIONS[status]

            if action is SyncAction.NONE:
                outcome = SyncOutcome.SYNCED if status is WorkflowStatus.SYNCED else SyncOutcome.REPORTED
                return SyncResult(
                    workflow=workflow, status=status, outcome=outcome, message=status.description
                )

            chosen: ConflictStrategy | None = None
            if action is SyncAction.RESOLVE:
                chosen = await self._choose_strategy(workflow, strategy)
                if chosen is ConflictStrategy.SKIP:
                    return SyncResult(
                        workflow=workflow,
                        status=status,
                        outcome=SyncOutcome.SKIPPED,
                        message="Skipped (conflict)",
                    )

            if self._pre_action is not None and not await self._pre_action(workflow, action):
                logger.warning("%s: %s vetoed by pre-action hook", workflow, action)
                return SyncResult(
                    workflow=workflow,
                    status=status,
                    outcome=SyncOutcome.FAILED,
                    message=f"{action.capitalize()} vetoed by pre-action check",
                )

            if chosen is None:
                outcome, message = await self._execute(workflow, action)
            else:
                outcome, message = await self._resolve_conflict(workflow, chosen)

            if self._post_action is not None:
                await self._post_action(workflow, action)

            return SyncResult(workflow=workflow, status=status, outcome=outcome, message=message)
        except Exception as exc:
            logger.error("Failed to sync %s: %s", workflow, exc)
            return SyncResult(
                workflow=workflow,
                status=status,
                outcome=SyncOutcome.FAILED,
                message=str(exc),
            )

    async def sync_workflows(
        self,
        workflows: Iterable[str],
        strategy: ConflictStrategy | StrategyChooser = ConflictStrategy.SKIP,
        on_result: ResultCallback | None = None,
    ) -> list[SyncResult]:
        """Sync a batch of workflows sequentially.

        The cache is cleared first so the batch starts from fresh state.
        ``on_result`` is called with each result and its index before the
        next workflow is started.  A failing workflow does not stop the
        batch.
        """
        self._cache.invalidate_all()
        results: list[SyncResult] = []
        for index, name in enumerate(workflows):
            result = await self.sync_workflow(name, strategy)
            results.append(result)
            if on_result is not None:
                on_result(result, index)
        return results

    # ------------------------------------------------------------------
    # Project management
    # ------------------------------------------------------------------

    async def available_workflows(self) -> list[str]:
        """Remote workflows that are not tracked in this project."""
        tracked = set(self.tracked_workflows())
        names = await self._remote.list_workflows()
        return sorted(name for name in names if name not in tracked)

    async def add_workflows(self, workflows: Iterable[str]) -> list[str]:
        """Download remote workflows into the project.

        Workflows already tracked, or not present on the remote, are
        skipped with a warning.

        Returns:
            The names that were added.
        """
        added: list[str] = []
        tracked = set(self.tracked_workflows())
        for name in workflows:
            if name in tracked:
                logger.warning("%s", WorkflowExistsError(name))
                continue
            try:
                await self.pull(name)
            except WorkflowNotFoundError as exc:
                logger.warning("Cannot add workflow: %s", exc)
                continue
            added.append(name)
        return added

    async def remove_workflows(
        self, workflows: Iterable[str], delete_files: bool = False
    ) -> list[str]:
        """Stop tracking workflows, optionally deleting their directories.

        Returns:
            The names that were removed.
        """
        tracked = set(self.tracked_workflows())
        removed: list[str] = []
        for name in workflows:
            if name not in tracked:
                logger.warning("%s", WorkflowNotInProjectError(name))
                continue
            removed.append(name)

        self._baseline.forget(removed)
        for name in removed:
            self._cache.invalidate(name)
            if delete_files:
                await asyncio.to_thread(self._workspace.delete, name)
                logger.info("Deleted workflow directory %s", name)
        return removed

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _choose_strategy(
        self, workflow: str, strategy: ConflictStrategy | StrategyChooser
    ) -> ConflictStrategy:
        if isinstance(strategy, str):
            return ConflictStrategy(strategy)
        file_statuses = await self._resolver.resolve_files(workflow)
        return ConflictStrategy(await strategy(workflow, file_statuses))

    async def _execute(self, workflow: str, action: SyncAction) -> tuple[SyncOutcome, str]:
        if action is SyncAction.UPLOAD:
            await self.push(workflow)
            return SyncOutcome.PUSHED, "Pushed to remote"
        if action is SyncAction.DOWNLOAD:
            await self.pull(workflow)
            return SyncOutcome.PULLED, "Pulled from remote"
        raise ValueError(f"Action {action} does not transfer a workflow")

    async def _resolve_conflict(
        self, workflow: str, strategy: ConflictStrategy
    ) -> tuple[SyncOutcome, str]:
        await self._conflicts.resolve(workflow, strategy)
        if strategy is ConflictStrategy.PULL:
            return SyncOutcome.PULLED, "Pulled from remote (local changes overwritten)"
        if strategy is ConflictStrategy.PUSH:
            return SyncOutcome.PUSHED, "Pushed to remote (remote changes overwritten)"
        return SyncOutcome.PUSHED, "Pulled remote then pushed (local changes overwritten)"
