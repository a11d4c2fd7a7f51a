"""Shared pytest fixtures for the workflow-sync test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from workflow_sync.errors import RemoteError
from workflow_sync.logs import RuleLog, WorkflowRule
from workflow_sync.sync.engine import SyncEngine
from workflow_sync.sync.hashing import FileSetDigest, WorkflowFile, compute_fileset_digest
from workflow_sync.sync.state import BaselineStore
from workflow_sync.workspace import Workspace


def make_files(**contents: str) -> list[WorkflowFile]:
    """Build a file-set; ``main_js="..."`` becomes ``main.js``."""
    return [
        WorkflowFile(name=key.replace("_", "."), content=value.encode("utf-8"))
        for key, value in contents.items()
    ]


def digest_of(files: list[WorkflowFile]) -> FileSetDigest:
    return compute_fileset_digest(files)


def write_local(root: Path, workflow: str, files: list[WorkflowFile]) -> Path:
    path = root / workflow
    path.mkdir(parents=True, exist_ok=True)
    for f in files:
        (path / f.name).write_bytes(f.content)
    return path


class FakeRemote:
    """In-memory ``RemoteClient`` and ``RuleLogClient`` recording every call."""

    def __init__(self, workflows: dict[str, list[WorkflowFile]] | None = None) -> None:
        self.workflows: dict[str, list[WorkflowFile]] = dict(workflows or {})
        self.uploads: list[str] = []
        self.fetches: list[str] = []
        self.fail_fetch: set[str] = set()
        self.fail_upload: set[str] = set()
        self.rules: list[WorkflowRule] = []
        self.rule_logs: dict[str, list[RuleLog]] = {}
        self.log_requests: list[tuple[str, int, int]] = []
        self.fail_logs: set[str] = set()

    async def list_workflows(self) -> list[str]:
        return sorted(self.workflows)

    async def fetch_workflow(self, name: str) -> list[WorkflowFile] | None:
        self.fetches.append(name)
        if name in self.fail_fetch:
            raise RemoteError(f"Cannot fetch '{name}'", status_code=500, workflow=name)
        files = self.workflows.get(name)
        return list(files) if files is not None else None

    async def upload_workflow(self, name: str, files: list[WorkflowFile]) -> None:
        if name in self.fail_upload:
            raise RemoteError(f"Cannot upload '{name}'", status_code=500, workflow=name)
        self.uploads.append(name)
        self.workflows[name] = list(files)

    async def list_workflow_rules(self) -> list[WorkflowRule]:
        return list(self.rules)

    async def fetch_rule_logs(
        self, workflow_id: str, rule_id: str, *, since: int = 0, top: int = -1
    ) -> list[RuleLog]:
        self.log_requests.append((rule_id, since, top))
        if rule_id in self.fail_logs:
            raise RemoteError(f"Cannot fetch logs of '{rule_id}'", status_code=500)
        entries = [e for e in self.rule_logs.get(rule_id, []) if e.timestamp >= since]
        return entries if top < 0 else entries[:top]


@pytest.fixture
def workspace(tmp_path: Path) -> Workspace:
    return Workspace(tmp_path)


@pytest.fixture
def store(tmp_path: Path) -> BaselineStore:
    return BaselineStore(tmp_path / "workflow-sync.lock.json")


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def engine(remote: FakeRemote, workspace: Workspace, store: BaselineStore) -> SyncEngine:
    return SyncEngine(remote=remote, workspace=workspace, baseline_store=store)
