# File: site_rebuilder/selector.py
"""site_rebuilder.selector: picks the homepage and a short, ordered list of important pages."""

from __future__ import annotations

from typing import Callable, List, Mapping, Optional, Sequence
from urllib.parse import urlparse

from site_rebuilder.crawler.link_extractor import extract_navigation_links
from site_rebuilder.crawler.models import PageRecord
from site_rebuilder.errors import HomepageNotFoundError
from site_rebuilder.logger import logger
from site_rebuilder.utils import homepage_variants, is_homepage_path, path_depth, same_host

__all__ = (
    "DEFAULT_MAX_PAGES",
    "MAX_PAGES_CAP",
    "DEFAULT_VOCABULARY",
    "KeywordScorer",
    "PageScorer",
    "resolve_homepage",
    "select_top_pages",
)

DEFAULT_MAX_PAGES = 5
MAX_PAGES_CAP = 10

#: English and German fragments that usually mark pages worth rebuilding.
DEFAULT_VOCABULARY: Sequence[str] = (
    "about",
    "ueber",
    "uber",
    "team",
    "service",
    "leistung",
    "angebot",
    "product",
    "produkt",
    "pricing",
    "price",
    "preis",
    "contact",
    "kontakt",
    "portfolio",
    "project",
    "projekt",
    "faq",
    "blog",
    "news",
)

PageScorer = Callable[[str, Optional[PageRecord]], int]


class KeywordScorer:
    """Scores a page by how many vocabulary fragments occur in its URL path (case-insensitive)."""

    def __init__(self, vocabulary: Sequence[str] = DEFAULT_VOCABULARY) -> None:
        self.vocabulary = tuple(word.lower() for word in vocabulary)

    def __call__(self, url: str, record: Optional[PageRecord] = None) -> int:
        path = urlparse(url).path.lower()
        return sum(path.count(word) for word in self.vocabulary)


def resolve_homepage(page_map: Mapping[str, PageRecord], root_url: str) -> PageRecord:
    """Return the record of the site's homepage, never an arbitrary substitute."""
    for candidate in homepage_variants(root_url):
        record = page_map.get(candidate)
        if record is not None:
            return record

    for url, record in page_map.items():
        if same_host(url, root_url) and is_homepage_path(urlparse(url).path):
            logger.debug("Homepage resolved by path scan: %s", url)
            return record

    raise HomepageNotFoundError(root_url)


def _eligible(url: str, root_url: str) -> bool:
    return (
        same_host(url, root_url)
        and path_depth(url) <= 1
        and not is_homepage_path(urlparse(url).path)
    )


def select_top_pages(
    page_map: Mapping[str, PageRecord],
    root_url: str,
    max_count: int = DEFAULT_MAX_PAGES,
    scorer: Optional[PageScorer] = None,
) -> List[str]:
    """Homepage first, then navigation links, then keyword-ranked crawled pages.

    Only same-host pages at path depth <= 1 that are present in *page_map* are
    selected. *max_count* is clamped to ``[1, MAX_PAGES_CAP]``.
    """
    limit = max(1, min(int(max_count), MAX_PAGES_CAP))
    score = scorer or KeywordScorer()
    homepage = resolve_homepage(page_map, root_url)
    selected: List[str] = [homepage.url]

    for url in extract_navigation_links(homepage.html, homepage.url):
        if len(selected) >= limit:
            break
        if url in selected or url not in page_map or not _eligible(url, root_url):
            continue
        selected.append(url)
    nav_count = len(selected) - 1

    if len(selected) < limit:
        discovery = {url: index for index, url in enumerate(page_map)}
        rest = [u for u in page_map if u not in selected and _eligible(u, root_url)]
        rest.sort(key=lambda u: (-score(u, page_map.get(u)), path_depth(u), discovery[u]))
        selected.extend(rest[: limit - len(selected)])

    logger.info(
        "Selected %d page(s) for %s (%d from navigation)", len(selected), root_url, nav_count
    )
    return selected
