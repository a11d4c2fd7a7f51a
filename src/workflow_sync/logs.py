"""Incremental access to workflow rule execution logs.

The remote keeps a log per workflow rule.  ``LogTail`` remembers the
newest timestamp it has seen for each rule and only asks for entries
after it, so repeated fetches return new entries only.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import BaseModel

from workflow_sync.errors import WorkflowSyncError

if TYPE_CHECKING:
    from workflow_sync.remote.base import RuleLogClient
    from workflow_sync.workspace import Workspace

logger = logging.getLogger(__name__)

DEFAULT_POLL_SECONDS = 5.0


class RuleLog(BaseModel):
    """One log entry written by a workflow rule."""

    id: str = ""
    level: str | None = None
    message: str | None = None
    presentation: str | None = None
    stacktrace: str | None = None
    timestamp: int = 0
    username: str | None = None


@dataclass(frozen=True)
class WorkflowRule:
    workflow_id: str
    rule_id: str
    workflow_name: str
    rule_name: str

    @property
    def label(self) -> str:
        return f"{self.workflow_name}/{self.rule_name}"


LogsCallback = Callable[[WorkflowRule, list[RuleLog]], None]
ErrorCallback = Callable[[WorkflowRule, Exception], None]


class LogTail:
    """Fetches rule logs, remembering what has already been seen.

    Args:
        source: Client the entries are read from.
    """

    def __init__(self, source: RuleLogClient) -> None:
        self._source = source
        self._last_timestamps: dict[tuple[str, str], int] = {}

    def last_timestamp(self, rule: WorkflowRule) -> int:
        return self._last_timestamps.get((rule.workflow_id, rule.rule_id), 0)

    async def fetch(self, rule: WorkflowRule, top: int = -1) -> list[RuleLog]:
        """Return the entries of *rule* newer than the last seen one.

        Args:
            rule: Rule to read.
            top: Maximum number of entries; ``-1`` for all of them.
        """
        logs = await self._source.fetch_rule_logs(
            rule.workflow_id, rule.rule_id, since=self.last_timestamp(rule) + 1, top=top
        )
        if logs:
            self._last_timestamps[(rule.workflow_id, rule.rule_id)] = logs[-1].timestamp
        return logs

    async def fetch_all(
        self, rules: Iterable[WorkflowRule], top: int = -1
    ) -> list[tuple[WorkflowRule, list[RuleLog]]]:
        return [(rule, await self.fetch(rule, top)) for rule in rules]

    async def follow(
        self,
        rules: Iterable[WorkflowRule],
        on_logs: LogsCallback,
        *,
        on_error: ErrorCallback | None = None,
        interval: float = DEFAULT_POLL_SECONDS,
    ) -> None:
        """Poll *rules* every *interval* seconds until none are left.

        Only non-empty batches reach *on_logs*.  A rule whose fetch fails
        is reported to *on_error* and no longer polled.
        """
        active = list(rules)
        while active:
            await asyncio.sleep(interval)
            for rule in list(active):
                try:
                    logs = await self.fetch(rule)
                except WorkflowSyncError as exc:
                    logger.error("Stopped following logs of %s: %s", rule.label, exc)
                    active.remove(rule)
                    if on_error is not None:
                        on_error(rule, exc)
                    continue
                if logs:
                    on_logs(rule, logs)


async def select_rules(
    client: RuleLogClient, workspace: Workspace, workflows: Sequence[str] = ()
) -> list[WorkflowRule]:
    """Rules of the remote workflows that are also present locally.

    Args:
        client: Remote to list rules from.
        workspace: Local working copy.
        workflows: Restrict to these workflows; all when empty.

    Raises:
        WorkflowSyncError: If a named workflow has no rules that are both
            remote and local.
    """
    rules = [
        rule
        for rule in await client.list_workflow_rules()
        if workspace.is_tracked(rule.workflow_name)
    ]
    if not workflows:
        return rules
    known = {rule.workflow_name for rule in rules}
    invalid = [name for name in workflows if name not in known]
    if invalid:
        raise WorkflowSyncError(f"Invalid workflow names: {', '.join(invalid)}")
    return [rule for rule in rules if rule.workflow_name in workflows]
