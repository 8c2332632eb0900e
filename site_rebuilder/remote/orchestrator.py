# === FILE: site_rebuilder/remote/orchestrator.py ===
"""
Remote resource orchestration for one site.

States, in order::

    NoProject -> ProjectCreated -> ChatCreated -> VersionReady -> Deployed
              -> AliasAssigned (best effort) -> NotifiedWebhook (best effort)

Each creating step first looks for its persisted identifier and reuses it, so
re-running after a partial failure resumes at the first missing step. Callers
must hold the per-slug lock (see :mod:`site_rebuilder.mutex`) around :meth:`Orchestrator.run`.
"""
from __future__ import annotations

import enum
import random
import string
from dataclasses import dataclass
from typing import Any, Dict, Optional

from site_rebuilder.errors import InvalidInputError, PermanentRemoteError, RebuilderError
from site_rebuilder.logger import logger
from site_rebuilder.remote.platform import DEPLOYMENT_SUCCESS, PlatformAPI
from site_rebuilder.remote.state import (
    RemoteResourceChain,
    ResourceStore,
    StepResult,
    StepStatus,
)

__all__ = ("ChainState", "OrchestrationSettings", "OrchestrationResult", "Orchestrator")

ALIAS_ATTEMPTS = 3


class ChainState(str, enum.Enum):
    NO_PROJECT = "NoProject"
    PROJECT_CREATED = "ProjectCreated"
    CHAT_CREATED = "ChatCreated"
    VERSION_READY = "VersionReady"
    DEPLOYED = "Deployed"
    ALIAS_ASSIGNED = "AliasAssigned"
    NOTIFIED_WEBHOOK = "NotifiedWebhook"


@dataclass(frozen=True, slots=True)
class OrchestrationSettings:
    chat_timeout: float = 120.0
    chat_interval: float = 1.5
    deployment_timeout: float = 180.0
    deployment_interval: float = 2.0
    assign_alias: bool = True
    alias_domain: str = "vercel.app"
    webhook_url: Optional[str] = None
    source_url: Optional[str] = None


@dataclass(slots=True)
class OrchestrationResult:
    chain: RemoteResourceChain
    state: ChainState
    alias: StepResult
    webhook: StepResult

    def as_dict(self) -> Dict[str, Any]:
        return {
            **self.chain.as_dict(),
            "state": self.state.value,
            "aliasStatus": self.alias.as_dict(),
            "webhookStatus": self.webhook.as_dict(),
        }


def derive_alias(slug: str, domain: str, suffix: str = "") -> str:
    label = slug.replace("_", "-").strip("-")[:50] or "site"
    return f"{label}{suffix}.{domain}"


class Orchestrator:
    """Drives the project -> chat -> version -> deployment chain for one slug."""

    def __init__(
        self,
        api: PlatformAPI,
        store: ResourceStore,
        settings: OrchestrationSettings = OrchestrationSettings(),
    ) -> None:
        self.api = api
        self.store = store
        self.settings = settings
        self.state = ChainState.NO_PROJECT

    async def run(self, name: str, message: str) -> OrchestrationResult:
        if not name:
            raise InvalidInputError("project name must not be empty")
        if not message:
            raise InvalidInputError("chat message must not be empty")

        chain = self.store.load_chain()
        self.state = ChainState.NO_PROJECT

        chain.project_id = await self._ensure_project(chain, name)
        self.state = ChainState.PROJECT_CREATED

        latest_version = await self._ensure_chat(chain, message)
        self.state = ChainState.CHAT_CREATED

        chain.version_id = await self._ensure_version(chain, latest_version)
        self.state = ChainState.VERSION_READY

        await self._ensure_deployment(chain)
        self.state = ChainState.DEPLOYED

        alias = await self._assign_alias(chain)
        if alias.status is StepStatus.SUCCEEDED:
            self.state = ChainState.ALIAS_ASSIGNED
        webhook = await self._notify_webhook(chain)
        if webhook.status is StepStatus.SUCCEEDED:
            self.state = ChainState.NOTIFIED_WEBHOOK

        logger.info(
            "Site %s deployed: %s (alias %s, webhook %s)",
            self.store.slug, chain.web_url, alias.status.value, webhook.status.value,
        )
        return OrchestrationResult(chain=chain, state=self.state, alias=alias, webhook=webhook)

    # ------------------------------------------------------------------ steps

    async def _ensure_project(self, chain: RemoteResourceChain, name: str) -> str:
        if chain.project_id:
            logger.info("Reusing project %s", chain.project_id)
            return chain.project_id
        project_id = await self.api.create_project(name)
        self.store.write_id("projectId", project_id)
        logger.info("Project created: %s", project_id)
        return project_id

    async def _ensure_chat(self, chain: RemoteResourceChain, message: str) -> Optional[Dict[str, Any]]:
        if chain.chat_id:
            logger.info("Reusing chat %s", chain.chat_id)
            return None
        chat = await self.api.create_chat(chain.project_id, message)
        chain.chat_id = chat["id"]
        self.store.write_id("chatId", chain.chat_id)
        logger.info("Chat created: %s", chain.chat_id)
        return chat.get("latestVersion")

    async def _ensure_version(
        self, chain: RemoteResourceChain, latest_version: Optional[Dict[str, Any]]
    ) -> str:
        if chain.version_id:
            return chain.version_id
        if (
            isinstance(latest_version, dict)
            and latest_version.get("id")
            and str(latest_version.get("status", "")).lower() == "completed"
        ):
            version_id = str(latest_version["id"])
        else:
            version_id = await self.api.wait_for_chat_version(
                chain.chat_id,
                timeout=self.settings.chat_timeout,
                interval=self.settings.chat_interval,
            )
        self.store.write_id("versionId", version_id)
        logger.info("Chat version ready: %s", version_id)
        return version_id

    async def _ensure_deployment(self, chain: RemoteResourceChain) -> None:
        existing = chain.deployment
        if existing and existing.get("status") in DEPLOYMENT_SUCCESS:
            logger.info("Reusing deployment %s", existing.get("id"))
            return

        initial: Optional[Dict[str, Any]] = None
        if not chain.deployment_id:
            initial = await self.api.create_deployment(
                chain.project_id,
                chain.chat_id,
                chain.version_id,
                retry_of=self.store.read_id("failedDeploymentId"),
            )
            chain.deployment_id = initial["id"]
            self.store.write_id("deploymentId", chain.deployment_id)
            logger.info("Deployment created: %s", chain.deployment_id)
        else:
            logger.info("Resuming deployment %s", chain.deployment_id)

        try:
            record = await self.api.wait_for_deployment(
                chain.deployment_id,
                timeout=self.settings.deployment_timeout,
                interval=self.settings.deployment_interval,
                initial=initial,
            )
        except PermanentRemoteError:
            # a dead deployment is never resumed; the next run deploys the version again
            self.store.write_id("failedDeploymentId", chain.deployment_id)
            self.store.clear_id("deploymentId")
            logger.warning("Deployment %s failed; cleared for redeploy", chain.deployment_id)
            chain.deployment_id = None
            raise
        chain.deployment = record
        chain.web_url = record.get("webUrl") or chain.web_url
        chain.inspector_url = record.get("inspectorUrl") or chain.inspector_url
        self.store.write_deployment(record)

    async def _assign_alias(self, chain: RemoteResourceChain) -> StepResult:
        if not self.settings.assign_alias:
            return StepResult(StepStatus.SKIPPED, "alias assignment disabled")
        if chain.alias:
            return StepResult(StepStatus.SUCCEEDED, chain.alias)

        suffix = ""
        for attempt in range(1, ALIAS_ATTEMPTS + 1):
            alias = derive_alias(self.store.slug, self.settings.alias_domain, suffix)
            try:
                await self.api.assign_alias(chain.deployment_id, alias)
            except PermanentRemoteError as exc:
                if exc.status == 409 and attempt < ALIAS_ATTEMPTS:
                    suffix = "-" + "".join(random.choices(string.ascii_lowercase + string.digits, k=4))
                    logger.info("Alias %s taken, retrying with suffix %s", alias, suffix)
                    continue
                logger.warning("Alias assignment failed: %s", exc)
                return StepResult(StepStatus.FAILED, str(exc))
            except RebuilderError as exc:
                logger.warning("Alias assignment failed: %s", exc)
                return StepResult(StepStatus.FAILED, str(exc))
            chain.alias = alias
            self.store.write_id("alias", alias)
            return StepResult(StepStatus.SUCCEEDED, alias)
        return StepResult(StepStatus.FAILED, "alias conflict")

    async def _notify_webhook(self, chain: RemoteResourceChain) -> StepResult:
        url = self.settings.webhook_url
        if not url:
            return StepResult(StepStatus.SKIPPED, "no webhook configured")
        new_url = f"https://{chain.alias}" if chain.alias else chain.web_url
        payload = {"oldUrl": self.settings.source_url, "newUrl": new_url, "slug": self.store.slug}
        try:
            await self.api.notify_webhook(url, payload)
        except RebuilderError as exc:
            logger.warning("Webhook notification to %s failed: %s", url, exc)
            return StepResult(StepStatus.FAILED, str(exc))
        return StepResult(StepStatus.SUCCEEDED, url)
