# site_rebuilder/remote/client.py
"""
Resilient HTTP client: the single choke point for calls to the generation platform.

Bearer auth, optional Idempotency-Key header, exponential backoff on 429/5xx
and connection failures, typed errors for everything else.
"""
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from aiohttp import ClientError, ClientSession, ClientTimeout

from site_rebuilder.errors import (
    InvalidInputError,
    PermanentRemoteError,
    RemoteCallFailedError,
    TransientNetworkError,
)
from site_rebuilder.logger import logger

__all__ = ("DEFAULT_BASE_URL", "RetryPolicy", "ResilientHttpClient", "is_retriable_status")

DEFAULT_BASE_URL = "https://api.v0.dev/v1"
SNIPPET_LENGTH = 500


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """``attempts`` total tries; the n-th retry waits ``base_ms * 2**(n-1)`` ms."""

    attempts: int = 3
    base_ms: int = 300

    def delay(self, attempt: int) -> float:
        return max(0, self.base_ms) * (2 ** (attempt - 1)) / 1000.0


#: at-most-once semantics for billing-sensitive calls
NO_RETRY = RetryPolicy(attempts=1)


def is_retriable_status(status: int) -> bool:
    return status == 429 or 500 <= status <= 599


class ResilientHttpClient:
    """Async JSON client; use as an async context manager or pass an existing session."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_key: Optional[str] = None,
        *,
        retry: RetryPolicy = RetryPolicy(),
        timeout: float = 60.0,
        session: Optional[ClientSession] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.retry = retry
        self.timeout = timeout
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self) -> ResilientHttpClient:
        if self.session is None:
            self.session = ClientSession(timeout=ClientTimeout(total=self.timeout))
            self._owns_session = True
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self.session is not None and not self.session.closed:
            await self.session.close()
        if self._owns_session:
            self.session = None

    def _url(self, path: str, base_url: Optional[str]) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{(base_url or self.base_url).rstrip('/')}{path}"

    def _headers(
        self,
        headers: Optional[Mapping[str, str]],
        has_body: bool,
        idempotency_key: Optional[str],
        auth: bool,
    ) -> Dict[str, str]:
        out: Dict[str, str] = {"Accept": "application/json"}
        if auth:
            if not self.api_key:
                raise InvalidInputError("Missing API key: set V0_API_KEY or VERCEL_API_KEY")
            out["Authorization"] = f"Bearer {self.api_key}"
        if has_body:
            out["Content-Type"] = "application/json"
        out.update(headers or {})
        if idempotency_key:
            out["Idempotency-Key"] = str(idempotency_key)
        return out

    async def request(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        base_url: Optional[str] = None,
        idempotency_key: Optional[str] = None,
        retry: Optional[RetryPolicy] = None,
        auth: bool = True,
    ) -> Any:
        """Send one logical request, retrying transient failures; returns parsed JSON or text."""
        if self.session is None:
            raise RuntimeError("Session not initialized")
        policy = retry or self.retry
        attempts = max(1, policy.attempts)
        url = self._url(path, base_url)
        request_headers = self._headers(headers, body is not None, idempotency_key, auth)
        data = json.dumps(body) if body is not None else None

        attempt = 1
        while True:
            try:
                return await self._send(method, url, request_headers, data)
            except TransientNetworkError as exc:
                if attempt >= attempts:
                    logger.warning("%s %s failed after %d attempt(s): %s", method, url, attempts, exc)
                    raise RemoteCallFailedError(
                        f"{method} {path} failed after {attempts} attempt(s): {exc}",
                        attempts=attempts,
                        status=exc.status,
                        body=exc.body,
                    ) from exc
                delay = policy.delay(attempt)
                logger.debug(
                    "Retry %d/%d for %s %s after %.2f s (%s)",
                    attempt, attempts - 1, method, url, delay, exc,
                )
                await asyncio.sleep(delay)
                attempt += 1

    async def _send(self, method: str, url: str, headers: Dict[str, str], data: Optional[str]) -> Any:
        try:
            async with self.session.request(method, url, headers=headers, data=data) as resp:
                status = resp.status
                if status >= 400:
                    snippet = (await resp.text(errors="replace"))[:SNIPPET_LENGTH]
                    message = f"HTTP {status} {resp.reason or ''} - {snippet}".strip()
                    if is_retriable_status(status):
                        raise TransientNetworkError(message, status=status, body=snippet)
                    raise PermanentRemoteError(message, status=status, body=snippet)
                if "application/json" in resp.headers.get("Content-Type", "").lower():
                    raw = await resp.text(errors="replace")
                    try:
                        return json.loads(raw) if raw.strip() else None
                    except ValueError as exc:
                        snippet = raw[:SNIPPET_LENGTH]
                        raise PermanentRemoteError(
                            f"HTTP {status} invalid JSON body - {snippet}",
                            status=status,
                            body=snippet,
                        ) from exc
                return await resp.text()
        except (ClientError, asyncio.TimeoutError) as exc:
            raise TransientNetworkError(f"network error: {exc!r}") from exc
