"""MCP tools for checking status and syncing workflows."""

from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP

from workflow_sync.sync.conflict import ConflictStrategy
from workflow_sync.sync.engine import SyncEngine


def register_sync_tools(mcp: FastMCP, engine: SyncEngine) -> None:
    """Register status and sync tools with the MCP server."""

    @mcp.tool()
    async def get_sync_status(workflows: list[str] | None = None) -> list[dict[str, Any]]:
        """Check sync status between local workflows and the remote store.

        If workflows are given, checks only those.  Otherwise checks every
        workflow tracked in the project.

        Args:
            workflows: Optional workflow names to check.
        """
        engine.cache.invalidate_all()
        entries = await engine.check_status(workflows)
        return [
            {**entry.model_dump(mode="json"), "description": entry.description}
            for entry in entries
        ]

    @mcp.tool()
    async def sync_workflows(
        workflows: list[str] | None = None,
        strategy: str = ConflictStrategy.SKIP.value,
    ) -> list[dict[str, Any]]:
        """Sync workflows in both directions.

        Conflicts are resolved with the given strategy: "skip" leaves them
        alone, "pull" overwrites local files, "push" overwrites the remote,
        and "auto" pulls then pushes (local edits are lost).

        Args:
            workflows: Workflow names to sync.  Defaults to all tracked.
            strategy: Conflict strategy (skip, pull, push, auto).
        """
        names = workflows or engine.tracked_workflows()
        results = await engine.sync_workflows(names, ConflictStrategy(strategy))
        return [result.model_dump(mode="json") for result in results]

    @mcp.tool()
    async def list_remote_workflows() -> list[str]:
        """List remote workflows that are not yet part of the project."""
        return await engine.available_workflows()
