"""Tests for the HTTP remote client, served by ``httpx.MockTransport``."""

import httpx
import pytest

from conftest import make_files
from workflow_sync.errors import RemoteAuthError, RemoteError
from workflow_sync.remote import archive
from workflow_sync.remote.client import HttpRemoteClient

BASE_URL = "https://tracker.example.com"
FILES = make_files(manifest_json="{}", rule_js="rule")


def make_client(handler):
    return HttpRemoteClient(
        base_url=BASE_URL,
        token="perm:secret",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_list_workflows_sends_token_and_reads_names():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[{"id": "1", "name": "alpha"}, {"id": "2", "name": "@scope/beta"}, {"id": "3"}])

    async with make_client(handler) as client:
        names = await client.list_workflows()

    assert names == ["alpha", "@scope/beta"]
    assert seen[0].url.path == "/api/admin/workflows"
    assert seen[0].url.params["fields"] == "id,name"
    assert seen[0].headers["Authorization"] == "Bearer perm:secret"


@pytest.mark.asyncio
async def test_fetch_workflow_decodes_zip_and_strips_scope_marker():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, content=archive.encode(FILES))

    async with make_client(handler) as client:
        files = await client.fetch_workflow("@scope/beta")

    assert sorted(files, key=lambda f: f.name) == FILES
    assert seen[0].url.path == "/api/admin/workflows/scope/beta"
    assert seen[0].headers["Accept"] == "application/zip"


@pytest.mark.asyncio
async def test_fetch_missing_workflow_returns_none():
    async with make_client(lambda request: httpx.Response(404, text="Not Found")) as client:
        assert await client.fetch_workflow("ghost") is None


@pytest.mark.asyncio
async def test_fetch_unreadable_archive_raises():
    async with make_client(lambda request: httpx.Response(200, content=b"nope")) as client:
        with pytest.raises(RemoteError, match="unreadable archive"):
            await client.fetch_workflow("wf")


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 403])
async def test_rejected_token_raises_auth_error(status):
    async with make_client(lambda request: httpx.Response(status)) as client:
        with pytest.raises(RemoteAuthError) as excinfo:
            await client.fetch_workflow("wf")

    assert excinfo.value.status_code == status
    assert excinfo.value.workflow == "wf"


@pytest.mark.asyncio
async def test_server_error_keeps_first_paragraph_of_body():
    body = "Workflow import failed\n\nstack trace follows..."
    async with make_client(lambda request: httpx.Response(500, text=body)) as client:
        with pytest.raises(RemoteError) as excinfo:
            await client.list_workflows()

    assert excinfo.value.status_code == 500
    assert "Workflow import failed" in str(excinfo.value)
    assert "stack trace" not in str(excinfo.value)
    assert not isinstance(excinfo.value, RemoteAuthError)


@pytest.mark.asyncio
async def test_transport_failure_becomes_remote_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with make_client(handler) as client:
        with pytest.raises(RemoteError, match="connection refused"):
            await client.upload_workflow("wf", FILES)


@pytest.mark.asyncio
async def test_upload_posts_multipart_archive():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={})

    async with make_client(handler) as client:
        await client.upload_workflow("wf", FILES)

    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/api/admin/workflows/import"
    assert request.headers["Content-Type"].startswith("multipart/form-data")
    assert b'filename="wf.zip"' in request.content
    assert b'name="file"' in request.content


@pytest.mark.parametrize(("kwargs", "missing"), [({"token": "t"}, "base_url"), ({"base_url": BASE_URL}, "token")])
def test_missing_connection_settings_raise(monkeypatch, kwargs, missing):
    from workflow_sync.config import settings

    monkeypatch.setattr(settings, "base_url", "")
    monkeypatch.setattr(settings, "token", "")

    with pytest.raises(ValueError, match=missing):
        HttpRemoteClient(**kwargs)


@pytest.mark.asyncio
async def test_list_workflow_rules_flattens_rules():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(
            200,
            json=[
                {"id": "1-1", "name": "wf", "rules": [{"id": "r1", "name": "on-create", "title": None}]},
                {"id": "1-2", "name": "empty", "rules": []},
            ],
        )

    async with make_client(handler) as client:
        rules = await client.list_workflow_rules()

    assert [(r.workflow_id, r.rule_id, r.workflow_name, r.rule_name) for r in rules] == [
        ("1-1", "r1", "wf", "on-create")
    ]
    assert seen[0].url.params["fields"] == "id,name,rules(id,name,title)"
    assert seen[0].url.params["query"] == "language:JS,mps"


@pytest.mark.asyncio
async def test_fetch_rule_logs_passes_window_and_parses_entries():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(
            200,
            json=[{"$type": "RuleLog", "id": "l1", "level": "ERROR", "message": None, "timestamp": 1700000000000}],
        )

    async with make_client(handler) as client:
        entries = await client.fetch_rule_logs("1-1", "r1", since=42, top=10)

    assert seen[0].url.path == "/api/admin/workflows/1-1/rules/r1/logs"
    assert seen[0].url.params["query"] == "42"
    assert seen[0].url.params["$top"] == "10"
    assert entries[0].level == "ERROR"
    assert entries[0].message is None
    assert entries[0].timestamp == 1700000000000
