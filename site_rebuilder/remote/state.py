# site_rebuilder/remote/state.py
"""
Persisted orchestration state for one site.

Every identifier of the remote resource chain is written to
``<output_root>/<slug>/<slug>_<field>.txt`` the moment it is created; the
deployment record goes to ``<slug>_deployment.json``. A later run reads these
files back and skips the steps that already happened.
"""
from __future__ import annotations

import enum
import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from site_rebuilder.logger import logger

__all__ = ("StepStatus", "StepResult", "RemoteResourceChain", "ResourceStore")


class StepStatus(str, enum.Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(slots=True)
class StepResult:
    """Outcome of a best-effort step (alias, webhook); never raised."""

    status: StepStatus
    detail: str = ""

    def as_dict(self) -> Dict[str, str]:
        return {"status": self.status.value, "detail": self.detail}


@dataclass(slots=True)
class RemoteResourceChain:
    project_id: Optional[str] = None
    chat_id: Optional[str] = None
    version_id: Optional[str] = None
    deployment_id: Optional[str] = None
    web_url: Optional[str] = None
    inspector_url: Optional[str] = None
    alias: Optional[str] = None
    deployment: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("deployment")
        return data


class ResourceStore:
    """File-backed identifiers for one slug. Only the lock holder for the slug writes here."""

    ID_FIELDS = ("projectId", "chatId", "versionId", "deploymentId", "failedDeploymentId", "alias")

    def __init__(self, output_root: Path | str, slug: str) -> None:
        self.slug = slug
        self.site_dir = Path(output_root) / slug

    def id_path(self, name: str) -> Path:
        return self.site_dir / f"{self.slug}_{name}.txt"

    @property
    def deployment_path(self) -> Path:
        return self.site_dir / f"{self.slug}_deployment.json"

    def read_id(self, name: str) -> Optional[str]:
        path = self.id_path(name)
        if not path.is_file():
            return None
        value = path.read_text(encoding="utf-8").strip()
        return value or None

    def write_id(self, name: str, value: str) -> Path:
        if name not in self.ID_FIELDS:
            raise ValueError(f"Unknown identifier field: {name}")
        path = self.id_path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(str(value), encoding="utf-8")
        logger.debug("Persisted %s=%s to %s", name, value, path)
        return path

    def clear_id(self, name: str) -> None:
        if name not in self.ID_FIELDS:
            raise ValueError(f"Unknown identifier field: {name}")
        self.id_path(name).unlink(missing_ok=True)
        logger.debug("Cleared %s for %s", name, self.slug)

    def read_deployment(self) -> Optional[Dict[str, Any]]:
        path = self.deployment_path
        if not path.is_file():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            logger.warning("Ignoring unreadable %s: %s", path, exc)
            return None
        return data if isinstance(data, dict) else None

    def write_deployment(self, record: Dict[str, Any]) -> Path:
        path = self.deployment_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(record, ensure_ascii=False, indent=2), encoding="utf-8")
        return path

    def load_chain(self) -> RemoteResourceChain:
        """Whatever has been persisted so far, as a chain."""
        deployment = self.read_deployment() or {}
        return RemoteResourceChain(
            project_id=self.read_id("projectId"),
            chat_id=self.read_id("chatId"),
            version_id=self.read_id("versionId"),
            deployment_id=self.read_id("deploymentId") or deployment.get("id"),
            web_url=deployment.get("webUrl"),
            inspector_url=deployment.get("inspectorUrl"),
            alias=self.read_id("alias"),
            deployment=deployment,
        )
