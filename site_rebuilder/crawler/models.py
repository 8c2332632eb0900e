# site_rebuilder/crawler/models.py
"""
Data models for the site crawler.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Set


@dataclass(slots=True, frozen=True)
class PageRecord:
    """One crawled page: normalized absolute URL, cleaned markup and visible text."""

    url: str
    html: str
    visible_text: str


@dataclass(slots=True)
class RenderedPage:
    """Raw output of a :class:`~site_rebuilder.crawler.browser.PageRenderer`."""

    url: str
    html: str
    visible_text: str
    screenshot: bytes = b""
    status: int = 200


@dataclass(slots=True)
class CrawlState:
    """Per-invocation traversal state; rebuilt on every crawl."""

    root_url: str
    max_depth: int
    visited: Set[str] = field(default_factory=set)
    order: List[str] = field(default_factory=list)

    def claim(self, url: str) -> bool:
        """Mark *url* as visited; False if it was already claimed.

        Check and insert happen without an await in between, so concurrent
        workers on one event loop never claim the same URL twice.
        """
        if url in self.visited:
            return False
        self.visited.add(url)
        self.order.append(url)
        return True

    def index_of(self, url: str) -> int:
        return self.order.index(url)


PageMap = Dict[str, PageRecord]
