# File: site_rebuilder/errors.py
"""site_rebuilder.errors: exception hierarchy shared by the crawler, the HTTP client and the orchestrator."""

from __future__ import annotations

from typing import Any, Dict, Optional

__all__ = (
    "RebuilderError",
    "InvalidInputError",
    "InvalidUrlError",
    "RemoteError",
    "TransientNetworkError",
    "RemoteCallFailedError",
    "PermanentRemoteError",
    "PollingTimeoutError",
    "HomepageNotFoundError",
    "PartialCrawlError",
)


class RebuilderError(Exception):
    """Base class for every error raised by site_rebuilder."""


class InvalidInputError(RebuilderError, ValueError):
    """Bad caller input (URL, missing field, missing credentials). Never retried."""


class InvalidUrlError(InvalidInputError):
    """The value is not a parseable absolute http(s) URL."""

    def __init__(self, url: object) -> None:
        super().__init__(f"Invalid URL: {url!r}")
        self.url = url


class RemoteError(RebuilderError):
    """An outbound call failed. Carries HTTP status, a body snippet and optional context."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        body: str = "",
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.body = body
        self.context: Dict[str, Any] = dict(context or {})


class TransientNetworkError(RemoteError):
    """429, 5xx or a connection-level failure; eligible for retry."""


class RemoteCallFailedError(RemoteError):
    """Retries were exhausted on a transient failure."""

    def __init__(self, message: str, *, attempts: int, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.attempts = attempts


class PermanentRemoteError(RemoteError):
    """Non-retriable failure: 4xx other than 429, or a terminal ``failed``/``error`` status."""


class PollingTimeoutError(RebuilderError, TimeoutError):
    """A polling loop exceeded its deadline. The remote operation is not cancelled."""

    def __init__(self, message: str, *, last_status: Optional[str] = None) -> None:
        super().__init__(message)
        self.last_status = last_status


class HomepageNotFoundError(RebuilderError, LookupError):
    """No crawled page could be identified as the homepage of the root URL."""

    def __init__(self, root_url: str) -> None:
        super().__init__(f"Homepage not found among crawled pages for {root_url}")
        self.root_url = root_url


class PartialCrawlError(RebuilderError):
    """A single page could not be visited; the crawl carries on without it."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason
