"""Exception hierarchy for workflow-sync.

Only exceptional conditions live here.  Expected drift between the local
copy, the remote store, and the baseline is reported as a
``WorkflowStatus`` value instead.
"""

from __future__ import annotations

from pathlib import Path


class WorkflowSyncError(RuntimeError):
    """Base class for all workflow-sync errors."""


class WorkflowNotFoundError(WorkflowSyncError):
    """Raised when an action needs a side of a workflow that is absent."""

    def __init__(self, workflow: str, where: str = "remote") -> None:
        super().__init__(f"Workflow '{workflow}' could not be found ({where})")
        self.workflow = workflow
        self.where = where


class WorkflowExistsError(WorkflowSyncError):
    """Raised when adding a workflow that is already tracked."""

    def __init__(self, workflow: str) -> None:
        super().__init__(f"Workflow '{workflow}' already exists in the project")
        self.workflow = workflow


class WorkflowNotInProjectError(WorkflowSyncError):
    """Raised when removing a workflow that is not tracked."""

    def __init__(self, workflow: str) -> None:
        super().__init__(f"Workflow '{workflow}' doesn't exist in the project")
        self.workflow = workflow


class RemoteError(WorkflowSyncError):
    """Transport-level failure talking to the remote store.

    Never used for "workflow not found"; the remote client reports that
    case by returning ``None``.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        workflow: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.workflow = workflow

    def __str__(self) -> str:
        text = super().__str__()
        if self.status_code is not None:
            text = f"{text} (HTTP {self.status_code})"
        return text


class RemoteAuthError(RemoteError):
    """The remote rejected our credentials."""


class LocalStorageError(WorkflowSyncError):
    """Filesystem I/O failure in the local working copy."""

    def __init__(self, message: str, path: Path | str) -> None:
        super().__init__(f"{message}: {path}")
        self.path = Path(path)


class BaselineError(WorkflowSyncError):
    """The baseline file could not be written."""
