# site_rebuilder/remote/__init__.py
"""Client, API wrappers and orchestration for the remote generation platform."""

from site_rebuilder.remote.client import DEFAULT_BASE_URL, ResilientHttpClient, RetryPolicy
from site_rebuilder.remote.orchestrator import (
    ChainState,
    OrchestrationResult,
    OrchestrationSettings,
    Orchestrator,
)
from site_rebuilder.remote.platform import PlatformAPI, idempotency_key
from site_rebuilder.remote.state import RemoteResourceChain, ResourceStore, StepResult, StepStatus

__all__ = [
    "DEFAULT_BASE_URL",
    "ChainState",
    "OrchestrationResult",
    "OrchestrationSettings",
    "Orchestrator",
    "PlatformAPI",
    "RemoteResourceChain",
    "ResilientHttpClient",
    "ResourceStore",
    "RetryPolicy",
    "StepResult",
    "StepStatus",
    "idempotency_key",
]
