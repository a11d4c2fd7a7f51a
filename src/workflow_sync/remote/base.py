"""Interface the sync core expects from a remote workflow store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from workflow_sync.sync.hashing import WorkflowFile

if TYPE_CHECKING:
    from workflow_sync.logs import RuleLog, WorkflowRule


@runtime_checkable
class RemoteClient(Protocol):
    """Lists, fetches, and uploads workflow file-sets.

    ``fetch_workflow`` returns ``None`` when the remote has no workflow
    of that name.  Every other failure (network, authentication, server
    error) must be raised as ``RemoteError`` so that it is never mistaken
    for an absent workflow.
    """

    async def list_workflows(self) -> list[str]: ...

    async def fetch_workflow(self, name: str) -> list[WorkflowFile] | None: ...

    async def upload_workflow(self, name: str, files: list[WorkflowFile]) -> None: ...


@runtime_checkable
class RuleLogClient(Protocol):
    """Lists workflow rules and reads their execution logs."""

    async def list_workflow_rules(self) -> list[WorkflowRule]: ...

    async def fetch_rule_logs(
        self, workflow_id: str, rule_id: str, *, since: int = 0, top: int = -1
    ) -> list[RuleLog]: ...
