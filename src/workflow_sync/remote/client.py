"""HTTP client for the remote workflow admin API.

Wraps the ``/api/admin/workflows`` endpoints: list workflow names,
download a workflow as a zip archive, import a zip archive, and read
rule execution logs.  Authentication is a bearer token.
"""

from __future__ import annotations

import logging
import zipfile
from typing import Any

import httpx

from workflow_sync.config import settings
from workflow_sync.errors import RemoteAuthError, RemoteError
from workflow_sync.logs import RuleLog, WorkflowRule
from workflow_sync.remote import archive
from workflow_sync.sync.hashing import WorkflowFile

logger = logging.getLogger(__name__)

_WORKFLOWS_PATH = "/api/admin/workflows"
_RULE_LOG_FIELDS = "id,level,message,presentation,stacktrace,timestamp,username"


class HttpRemoteClient:
    """``RemoteClient`` implementation backed by ``httpx.AsyncClient``.

    Instantiate with no arguments to use settings from environment
    variables, or pass explicit values for testing.

    Usage::

        async with HttpRemoteClient() as remote:
            names = await remote.list_workflows()
            files = await remote.fetch_workflow(names[0])

    Args:
        base_url: Optional override for ``WORKFLOW_SYNC_BASE_URL``.
        token: Optional override for ``WORKFLOW_SYNC_TOKEN``.
        timeout: Optional override for ``WORKFLOW_SYNC_TIMEOUT``.
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        resolved_base_url = base_url or settings.base_url
        resolved_token = token or settings.token

        if not resolved_base_url:
            raise ValueError(
                "Remote base_url is required. Set WORKFLOW_SYNC_BASE_URL or pass base_url explicitly."
            )
        if not resolved_token:
            raise ValueError(
                "Remote token is required. Set WORKFLOW_SYNC_TOKEN or pass token explicitly."
            )

        self._base_url = resolved_base_url
        self._client = httpx.AsyncClient(
            base_url=resolved_base_url,
            headers={"Authorization": f"Bearer {resolved_token}"},
            timeout=timeout if timeout is not None else settings.timeout,
            transport=transport,
        )

    async def __aenter__(self) -> HttpRemoteClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # List
    # ------------------------------------------------------------------

    async def list_workflows(self) -> list[str]:
        """Return the names of all workflows on the remote.

        Raises:
            RemoteError: If the request fails.
        """
        response = await self._request(
            "GET",
            _WORKFLOWS_PATH,
            params={"fields": "id,name", "$top": "-1"},
            operation=f"list workflows on '{self._base_url}'",
        )
        self._check_response(response, f"list workflows on '{self._base_url}'")
        return [item["name"] for item in response.json() if item.get("name")]

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    async def fetch_workflow(self, name: str) -> list[WorkflowFile] | None:
        """Download a workflow's file-set.

        Args:
            name: Workflow name.  A leading ``@`` is dropped from the URL.

        Returns:
            The workflow files, or ``None`` if the remote has no such
            workflow.

        Raises:
            RemoteAuthError: If the token is rejected.
            RemoteError: For any other failure.
        """
        operation = f"fetch workflow '{name}'"
        response = await self._request(
            "GET",
            f"{_WORKFLOWS_PATH}/{name.lstrip('@')}",
            headers={"Accept": "application/zip"},
            operation=operation,
            workflow=name,
        )
        if response.status_code == 404:
            return None
        self._check_response(response, operation, workflow=name)
        try:
            return archive.decode(response.content)
        except zipfile.BadZipFile as exc:
            raise RemoteError(
                f"Remote returned an unreadable archive for '{name}': {exc}",
                workflow=name,
            ) from exc

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    async def upload_workflow(self, name: str, files: list[WorkflowFile]) -> None:
        """Import *files* as workflow *name*, replacing the remote copy.

        Raises:
            RemoteError: If the upload fails.
        """
        operation = f"upload workflow '{name}'"
        payload = archive.encode(files)
        response = await self._request(
            "POST",
            f"{_WORKFLOWS_PATH}/import",
            files={"file": (f"{name}.zip", payload, "application/zip")},
            data={"name": name},
            operation=operation,
            workflow=name,
        )
        self._check_response(response, operation, workflow=name)
        logger.debug("Uploaded %d file(s) for %s", len(files), name)

    # ------------------------------------------------------------------
    # Rule logs
    # ------------------------------------------------------------------

    async def list_workflow_rules(self) -> list[WorkflowRule]:
        """Return every rule of every scripted workflow on the remote.

        Raises:
            RemoteError: If the request fails.
        """
        operation = f"list workflow rules on '{self._base_url}'"
        response = await self._request(
            "GET",
            _WORKFLOWS_PATH,
            params={
                "fields": "id,name,rules(id,name,title)",
                "$top": "-1",
                "query": "language:JS,mps",
            },
            operation=operation,
        )
        self._check_response(response, operation)
        return [
            WorkflowRule(
                workflow_id=item["id"],
                rule_id=rule["id"],
                workflow_name=item["name"],
                rule_name=rule["name"],
            )
            for item in response.json()
            for rule in item.get("rules") or []
            if rule.get("id")
        ]

    async def fetch_rule_logs(
        self, workflow_id: str, rule_id: str, *, since: int = 0, top: int = -1
    ) -> list[RuleLog]:
        """Fetch log entries of one rule.

        Args:
            workflow_id: Remote id of the workflow.
            rule_id: Remote id of the rule.
            since: Only entries from this epoch-millisecond timestamp on.
            top: Maximum number of entries; ``-1`` for all of them.

        Raises:
            RemoteError: If the request fails.
        """
        operation = f"fetch logs of rule '{rule_id}'"
        response = await self._request(
            "GET",
            f"{_WORKFLOWS_PATH}/{workflow_id}/rules/{rule_id}/logs",
            params={
                "$top": str(top),
                "fields": _RULE_LOG_FIELDS,
                "query": str(since),
            },
            operation=operation,
        )
        self._check_response(response, operation)
        return [RuleLog.model_validate(item) for item in response.json()]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        url: str,
        *,
        operation: str,
        workflow: str | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise RemoteError(
                f"Remote error during '{operation}': {exc}", workflow=workflow
            ) from exc

    @staticmethod
    def _check_response(
        response: httpx.Response, operation: str, workflow: str | None = None
    ) -> None:
        """Raise ``RemoteError`` if the response indicates failure."""
        if response.status_code in (401, 403):
            raise RemoteAuthError(
                f"Unauthorized during '{operation}': token is invalid",
                status_code=response.status_code,
                workflow=workflow,
            )
        if response.is_success:
            return
        detail = response.text.split("\n\n")[0][:200] if response.text else ""
        raise RemoteError(
            f"Remote error during '{operation}': {detail or response.reason_phrase}",
            status_code=response.status_code,
            workflow=workflow,
        )
