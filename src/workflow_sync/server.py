"""MCP server for local <-> remote workflow sync.

Creates a FastMCP server, initializes the remote client and sync
engine, and registers the sync tools.

Run with:
    uv run workflow-sync-mcp
"""

from __future__ import annotations

from mcp.server.fastmcp import FastMCP

from workflow_sync.config import settings
from workflow_sync.remote import HttpRemoteClient
from workflow_sync.sync.engine import SyncEngine
from workflow_sync.sync.state import BaselineStore
from workflow_sync.tools.sync_tools import register_sync_tools
from workflow_sync.workspace import Workspace

mcp = FastMCP(
    "workflow-sync",
    instructions=(
        "Workflow-sync MCP server for keeping local workflow directories "
        "in sync with the remote workflow store. Use these tools to check "
        "status, sync workflows, and discover remote workflows."
    ),
)


def _initialize() -> None:
    """Initialize all components and register tools."""
    settings.validate()

    engine = SyncEngine(
        remote=HttpRemoteClient(),
        workspace=Workspace(settings.project_root),
        baseline_store=BaselineStore(settings.baseline_path),
    )

    register_sync_tools(mcp, engine)


def main() -> None:
    """Entry point for the MCP server."""
    _initialize()
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
