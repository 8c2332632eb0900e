# site_rebuilder/remote/platform.py
"""
Thin wrappers over the generation platform's REST API.

Response shapes vary (``{"id": ...}`` vs ``{"project": {"id": ...}}``), so every
wrapper normalises what it returns.
"""
from __future__ import annotations

import asyncio
import hashlib
import time
from typing import Any, Dict, List, Optional

from site_rebuilder.errors import PermanentRemoteError, PollingTimeoutError, RemoteError
from site_rebuilder.logger import logger
from site_rebuilder.remote.client import NO_RETRY, ResilientHttpClient

__all__ = (
    "idempotency_key",
    "PlatformAPI",
    "DEPLOYMENT_SUCCESS",
    "DEPLOYMENT_FAILURE",
)

DEPLOYMENT_SUCCESS = frozenset({"ready", "completed", "succeeded"})
DEPLOYMENT_FAILURE = frozenset({"failed", "error"})


def idempotency_key(*parts: str) -> str:
    """sha256 over the colon-joined logical operation, e.g. ``("project", name)``."""
    return hashlib.sha256(":".join(parts).encode("utf-8")).hexdigest()


def _dig(data: Any, *paths: str) -> Any:
    """First non-empty value among dotted *paths* of a nested dict."""
    for path in paths:
        node = data
        for key in path.split("."):
            node = node.get(key) if isinstance(node, dict) else None
            if node is None:
                break
        if node:
            return node
    return None


def normalize_deployment(res: Any) -> Dict[str, Any]:
    record = dict(res.get("deployment") or res) if isinstance(res, dict) else {}
    record["id"] = _dig(res, "id", "deployment.id")
    record["webUrl"] = _dig(res, "webUrl", "deployment.webUrl")
    record["inspectorUrl"] = _dig(res, "inspectorUrl", "deployment.inspectorUrl")
    record["status"] = str(_dig(res, "status", "deployment.status") or "").lower() or None
    return record


class PlatformAPI:
    """Projects, chats, deployments and aliases on the generation platform."""

    def __init__(self, client: ResilientHttpClient) -> None:
        self.client = client

    async def create_project(self, name: str) -> str:
        res = await self.client.request(
            "POST",
            "/projects",
            body={"name": name},
            idempotency_key=idempotency_key("project", name),
        )
        project_id = _dig(res, "id", "project.id")
        if not project_id:
            raise PermanentRemoteError("Project creation returned no id", context={"response": res})
        return str(project_id)

    async def create_chat(self, project_id: str, message: str) -> Dict[str, Any]:
        """Returns ``{"id": ..., "latestVersion": {...} | None}``."""
        res = await self.client.request(
            "POST",
            "/chats",
            body={"projectId": project_id, "message": message},
            idempotency_key=idempotency_key("chat", project_id, message),
        )
        chat_id = _dig(res, "id", "chat.id", "data.id")
        if not chat_id:
            raise PermanentRemoteError("Chat creation returned no id", context={"response": res})
        return {
            "id": str(chat_id),
            "latestVersion": _dig(res, "latestVersion", "chat.latestVersion"),
        }

    async def get_chat(self, chat_id: str) -> Dict[str, Any]:
        res = await self.client.request("GET", f"/chats/{chat_id}")
        return res if isinstance(res, dict) else {}

    async def wait_for_chat_version(
        self, chat_id: str, *, timeout: float = 120.0, interval: float = 1.5
    ) -> str:
        """Poll the chat until its latest version is ``completed``; return the version id."""
        deadline = time.monotonic() + timeout
        last_status = "unknown"
        while time.monotonic() < deadline:
            detail = await self.get_chat(chat_id)
            version = detail.get("latestVersion") or {}
            status = str(version.get("status") or "missing").lower()
            if version.get("id") and status == "completed":
                return str(version["id"])
            if status == "failed":
                raise PermanentRemoteError(
                    f"Chat version failed for chat {chat_id}",
                    context={"chatId": chat_id, "latestVersion": version},
                )
            if status != last_status:
                logger.info("Chat %s version status: %s", chat_id, status)
            last_status = status
            await asyncio.sleep(interval)
        raise PollingTimeoutError(
            f"Timed out waiting for chat {chat_id} version to complete (last status: {last_status})",
            last_status=last_status,
        )

    async def create_deployment(
        self, project_id: str, chat_id: str, version_id: str, *, retry_of: Optional[str] = None
    ) -> Dict[str, Any]:
        """*retry_of* names a failed deployment of the same version and yields a fresh key."""
        key_parts = ("deployment", project_id, chat_id, version_id) + ((retry_of,) if retry_of else ())
        res = await self.client.request(
            "POST",
            "/deployments",
            body={"projectId": project_id, "chatId": chat_id, "versionId": version_id},
            idempotency_key=idempotency_key(*key_parts),
            retry=NO_RETRY,
        )
        record = normalize_deployment(res)
        if not record["id"]:
            raise PermanentRemoteError("Deployment response missing id", context={"response": res})
        return record

    async def get_deployment(self, deployment_id: str) -> Dict[str, Any]:
        return normalize_deployment(await self.client.request("GET", f"/deployments/{deployment_id}"))

    async def get_deployment_errors(self, deployment_id: str) -> List[Any]:
        res = await self.client.request("GET", f"/deployments/{deployment_id}/errors")
        if isinstance(res, list):
            return res
        if isinstance(res, dict):
            for key in ("data", "errors"):
                if isinstance(res.get(key), list):
                    return res[key]
        return []

    async def wait_for_deployment(
        self,
        deployment_id: str,
        *,
        timeout: float = 180.0,
        interval: float = 2.0,
        initial: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Poll until the deployment is ready; raise with error detail if it fails."""
        deadline = time.monotonic() + timeout
        record = initial or {}
        last_status = record.get("status") or "unknown"
        while True:
            if last_status in DEPLOYMENT_SUCCESS:
                return record
            if last_status in DEPLOYMENT_FAILURE:
                await self._raise_deployment_failure(deployment_id, record)
            if time.monotonic() >= deadline:
                break
            await asyncio.sleep(interval)
            fresh = await self.get_deployment(deployment_id)
            record = {**record, **{k: v for k, v in fresh.items() if v is not None}}
            status = record.get("status") or "unknown"
            if status != last_status:
                logger.info("Deployment %s status: %s", deployment_id, status)
            last_status = status
        raise PollingTimeoutError(
            f"Timed out waiting for deployment {deployment_id} (last status: {last_status})",
            last_status=last_status,
        )

    async def _raise_deployment_failure(self, deployment_id: str, record: Dict[str, Any]) -> None:
        errors: List[Any] = []
        try:
            errors = await self.get_deployment_errors(deployment_id)
        except RemoteError as exc:
            logger.warning("Could not fetch errors of deployment %s: %s", deployment_id, exc)
        detail = f": {str(errors[0])[:500]}" if errors else ""
        raise PermanentRemoteError(
            f"Deployment {deployment_id} reported status {record.get('status')}{detail}",
            context={"deployment": record, "errors": errors},
        )

    async def assign_alias(self, deployment_id: str, alias: str) -> Any:
        return await self.client.request(
            "POST",
            "/aliases",
            body={"deploymentId": deployment_id, "alias": alias},
            idempotency_key=idempotency_key("alias", deployment_id, alias),
        )

    async def notify_webhook(self, url: str, payload: Dict[str, Any]) -> Any:
        return await self.client.request("POST", url, body=payload, auth=False, retry=NO_RETRY)
