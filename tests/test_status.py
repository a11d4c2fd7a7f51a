"""Tests for three-way status resolution."""

import pytest

from conftest import digest_of, make_files, write_local
from workflow_sync.sync.cache import StateCache
from workflow_sync.sync.status import StatusResolver, WorkflowStatus, classify, classify_files

H0, H1, H2 = "h0", "h1", "h2"


@pytest.mark.parametrize(
    ("baseline", "local", "remote", "expected"),
    [
        (H0, H0, H0, WorkflowStatus.SYNCED),
        (H0, H1, H0, WorkflowStatus.MODIFIED),
        (H0, H0, H2, WorkflowStatus.OUTDATED),
        (H0, H1, H2, WorkflowStatus.CONFLICT),
        (H0, H1, H1, WorkflowStatus.SYNCED),
        (None, H0, H0, WorkflowStatus.UNKNOWN),
        (None, None, None, WorkflowStatus.UNKNOWN),
        (H0, None, H0, WorkflowStatus.MISSING),
        (H0, None, None, WorkflowStatus.MISSING),
        (H0, H0, None, WorkflowStatus.NEW),
        (H0, H1, None, WorkflowStatus.NEW),
    ],
)
def test_classify_table(baseline, local, remote, expected):
    assert classify(baseline, local, remote) is expected


def test_classify_files_covers_union_of_names():
    result = classify_files(
        baseline={"a.js": "1", "b.js": "1", "c.js": "1"},
        local={"a.js": "1", "b.js": "2", "c.js": "2", "d.js": "1"},
        remote={"a.js": "1", "b.js": "1", "c.js": "3"},
    )
    assert result == {
        "a.js": WorkflowStatus.SYNCED,
        "b.js": WorkflowStatus.MODIFIED,
        "c.js": WorkflowStatus.CONFLICT,
        "d.js": WorkflowStatus.UNKNOWN,
    }


def test_classify_files_with_absent_sides():
    assert classify_files({"a.js": "1"}, None, {"a.js": "1"}) == {"a.js": WorkflowStatus.MISSING}


@pytest.fixture
def resolver(workspace, remote, store):
    return StatusResolver(StateCache(workspace, remote), store)


@pytest.mark.asyncio
async def test_no_baseline_is_unknown_without_touching_remote(resolver, workspace, remote):
    write_local(workspace.root, "wf", make_files(a_js="x"))
    assert await resolver.resolve("wf") is WorkflowStatus.UNKNOWN
    assert remote.fetches == []


@pytest.mark.asyncio
async def test_no_local_directory_is_missing(resolver, remote, store):
    files = make_files(a_js="x")
    remote.workflows["wf"] = files
    store.record("wf", digest_of(files))
    assert await resolver.resolve("wf") is WorkflowStatus.MISSING


@pytest.mark.asyncio
async def test_no_remote_is_new(resolver, workspace, store):
    files = make_files(a_js="x")
    write_local(workspace.root, "wf", files)
    store.record("wf", digest_of(files))
    assert await resolver.resolve("wf") is WorkflowStatus.NEW


@pytest.mark.asyncio
async def test_converged_sides_become_baseline(resolver, workspace, remote, store):
    old = make_files(a_js="old")
    new = make_files(a_js="new")
    store.record("wf", digest_of(old))
    write_local(workspace.root, "wf", new)
    remote.workflows["wf"] = new

    assert await resolver.resolve("wf") is WorkflowStatus.SYNCED
    assert store.get("wf").hash == digest_of(new).aggregate
    assert store.get("wf").file_hashes == digest_of(new).per_file


@pytest.mark.asyncio
async def test_resolve_does_not_touch_baseline_when_diverged(resolver, workspace, remote, store):
    base = make_files(a_js="base")
    store.record("wf", digest_of(base))
    write_local(workspace.root, "wf", make_files(a_js="local"))
    remote.workflows["wf"] = make_files(a_js="remote")
    before = store.path.read_text(encoding="utf-8")

    assert await resolver.resolve("wf") is WorkflowStatus.CONFLICT
    assert store.path.read_text(encoding="utf-8") == before


@pytest.mark.asyncio
async def test_resolve_files_explains_conflict(resolver, workspace, remote, store):
    base = make_files(a_js="1", b_js="1")
    store.record("wf", digest_of(base))
    write_local(workspace.root, "wf", make_files(a_js="2", b_js="1"))
    remote.workflows["wf"] = make_files(a_js="1", b_js="3")

    assert await resolver.resolve("wf") is WorkflowStatus.CONFLICT
    assert await resolver.resolve_files("wf") == {
        "a.js": WorkflowStatus.MODIFIED,
        "b.js": WorkflowStatus.OUTDATED,
    }
