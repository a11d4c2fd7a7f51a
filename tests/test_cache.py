"""Tests for the per-run state cache and the local workspace."""

import pytest

from conftest import digest_of, make_files, write_local
from workflow_sync.errors import RemoteError
from workflow_sync.sync.cache import StateCache
from workflow_sync.sync.status import WorkflowStatus


@pytest.fixture
def cache(workspace, remote):
    return StateCache(workspace, remote)


@pytest.mark.asyncio
async def test_local_absent_when_directory_missing(cache):
    assert await cache.get_local("nope") is None


@pytest.mark.asyncio
async def test_local_ignores_subdirectories(cache, workspace):
    files = make_files(a_js="a", manifest_json="{}")
    path = write_local(workspace.root, "wf", files)
    (path / "nested").mkdir()
    (path / "nested" / "deep.js").write_text("ignored", encoding="utf-8")

    snapshot = await cache.get_local("wf")
    assert [f.name for f in snapshot.files] == ["a.js", "manifest.json"]
    assert snapshot.digest == digest_of(files)


@pytest.mark.asyncio
async def test_local_is_cached_until_invalidated(cache, workspace):
    path = write_local(workspace.root, "wf", make_files(a_js="v1"))
    first = await cache.get_local("wf")

    (path / "a.js").write_text("v2", encoding="utf-8")
    assert await cache.get_local("wf") == first

    cache.invalidate("wf")
    assert (await cache.get_local("wf")).digest != first.digest


@pytest.mark.asyncio
async def test_remote_absent_is_cached(cache, remote):
    assert await cache.get_remote("wf") is None
    assert await cache.get_remote("wf") is None
    assert remote.fetches == ["wf"]


@pytest.mark.asyncio
async def test_remote_failure_is_raised_not_absent(cache, remote):
    remote.workflows["wf"] = make_files(a_js="x")
    remote.fail_fetch.add("wf")

    with pytest.raises(RemoteError):
        await cache.get_remote("wf")

    remote.fail_fetch.clear()
    assert (await cache.get_remote("wf")).digest == digest_of(make_files(a_js="x"))


@pytest.mark.asyncio
async def test_invalidate_all(cache, remote):
    remote.workflows["a"] = make_files(x_js="1")
    await cache.get_remote("a")
    cache.invalidate_all()
    await cache.get_remote("a")
    assert remote.fetches == ["a", "a"]


def test_workspace_lists_only_manifest_directories(workspace):
    write_local(workspace.root, "tracked", make_files(manifest_json="{}"))
    write_local(workspace.root, "plain", make_files(a_js=""))
    write_local(workspace.root, ".hidden", make_files(manifest_json="{}"))

    assert workspace.list_workflows() == ["tracked"]
    assert workspace.is_tracked("tracked")
    assert not workspace.is_tracked("plain")


def test_workspace_write_replaces_fileset(workspace):
    path = write_local(workspace.root, "wf", make_files(a_js="old", stale_js="gone"))
    (path / "sub").mkdir()

    workspace.write_files("wf", make_files(a_js="new", b_js="b"))

    assert sorted(p.name for p in path.iterdir() if p.is_file()) == ["a.js", "b.js"]
    assert (path / "a.js").read_text(encoding="utf-8") == "new"
    assert (path / "sub").is_dir()


def test_workspace_delete(workspace):
    write_local(workspace.root, "wf", make_files(a_js=""))
    workspace.delete("wf")
    workspace.delete("wf")
    assert workspace.read_files("wf") is None


def test_workspace_lists_scoped_workflows(workspace):
    write_local(workspace.root, "@scope/beta", make_files(manifest_json="{}"))
    write_local(workspace.root, "@scope/draft", make_files(a_js=""))
    write_local(workspace.root, "plain", make_files(manifest_json="{}"))

    assert workspace.list_workflows() == ["@scope/beta", "plain"]
    assert workspace.is_tracked("@scope/beta")


@pytest.mark.asyncio
async def test_scoped_workflow_without_baseline_is_tracked(engine, workspace, remote):
    files = make_files(manifest_json="{}", rule_js="x")
    write_local(workspace.root, "@scope/beta", files)
    remote.workflows["@scope/beta"] = files

    assert engine.tracked_workflows() == ["@scope/beta"]
    assert [(e.workflow, e.status) for e in await engine.check_status()] == [
        ("@scope/beta", WorkflowStatus.UNKNOWN)
    ]
