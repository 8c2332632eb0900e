# site_rebuilder/crawler/link_extractor.py
"""
Markup cleaning and link extraction for crawled pages.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from bs4.element import Comment, Tag

from site_rebuilder.errors import InvalidUrlError
from site_rebuilder.utils import normalize_url, remove_duplicates, same_host

SKIP_PREFIXES = ("#", "mailto:", "javascript:", "tel:")

_STRIP_TAGS = ("script", "style", "noscript", "template", "svg")
_NOISY_ATTR = re.compile(r"^(on[a-z]+|style|data-[\w-]+)$", re.IGNORECASE)


def _collapse_whitespace(markup: str) -> str:
    markup = markup.replace("\r", "").replace("\t", " ")
    markup = re.sub(r"\n\s*\n+", "\n", markup)
    markup = re.sub(r"[ \f\v]+", " ", markup)
    return markup.strip()


def clean_html(html: str) -> str:
    """
    Reduce rendered markup to its content.

    Drops script/style/noscript/template/svg blocks, comments, event-handler,
    inline-style and data-* attributes, keeps only the body and collapses
    whitespace. The page title is re-attached as a leading ``<title>`` marker.
    """
    soup = BeautifulSoup(html or "", "html.parser")

    title_tag = soup.find("title")
    title = title_tag.get_text(strip=True) if title_tag else ""

    for element in soup(list(_STRIP_TAGS)):
        element.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()

    root = soup.body if soup.body is not None else soup
    for tag in root.find_all(True):
        for attr in [name for name in tag.attrs if _NOISY_ATTR.match(name)]:
            del tag[attr]

    if soup.body is not None:
        markup = soup.body.decode_contents()
    else:
        if title_tag is not None and title_tag.parent is not None:
            title_tag.decompose()
        markup = str(soup)

    cleaned = _collapse_whitespace(markup)
    if title:
        cleaned = f"<title>{title}</title>\n{cleaned}"
    return cleaned


def _hrefs(anchors: Iterable[Tag]) -> List[str]:
    out: List[str] = []
    for tag in anchors:
        href_val = tag.get("href")
        if not isinstance(href_val, str):
            continue
        raw = href_val.strip()
        if not raw or raw.startswith(SKIP_PREFIXES):
            continue
        out.append(raw)
    return out


def resolve_links(hrefs: Iterable[str], page_url: str, root_url: str) -> List[str]:
    """Absolute, normalized, same-host (www-insensitive) links in document order."""
    links: List[str] = []
    for href in hrefs:
        try:
            absolute = normalize_url(urljoin(page_url, href))
        except InvalidUrlError:
            continue
        if same_host(absolute, root_url):
            links.append(absolute)
    return remove_duplicates(links)


def extract_links(html: str, page_url: str, root_url: Optional[str] = None) -> List[str]:
    """
    Extract internal HTTP(S) links from a page.

    Ignores fragments, mailto:, javascript:, tel: and external hosts.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    anchors = [a for a in soup.find_all("a", href=True) if isinstance(a, Tag)]
    return resolve_links(_hrefs(anchors), page_url, root_url or page_url)


def extract_navigation_links(html: str, page_url: str) -> List[str]:
    """Links of the page's navigation region: ``<nav>``, then ``<header>``, then a menu-like element."""
    soup = BeautifulSoup(html or "", "html.parser")
    region = (
        soup.find("nav")
        or soup.find("header")
        or soup.find(class_=re.compile(r"(menu|nav)", re.IGNORECASE))
    )
    if not isinstance(region, Tag):
        return []
    anchors = [a for a in region.find_all("a", href=True) if isinstance(a, Tag)]
    return resolve_links(_hrefs(anchors), page_url, page_url)
