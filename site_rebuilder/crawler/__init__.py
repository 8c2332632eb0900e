# site_rebuilder/crawler/__init__.py
"""Same-host site crawler on top of a rendering browser."""

from site_rebuilder.crawler.browser import PageRenderer, PlaywrightRenderer
from site_rebuilder.crawler.crawler import DEFAULT_MAX_DEPTH, SiteCrawler, SnapshotWriter
from site_rebuilder.crawler.link_extractor import clean_html, extract_links, extract_navigation_links
from site_rebuilder.crawler.models import CrawlState, PageMap, PageRecord, RenderedPage

__all__ = [
    "DEFAULT_MAX_DEPTH",
    "CrawlState",
    "PageMap",
    "PageRecord",
    "PageRenderer",
    "PlaywrightRenderer",
    "RenderedPage",
    "SiteCrawler",
    "SnapshotWriter",
    "clean_html",
    "extract_links",
    "extract_navigation_links",
]
