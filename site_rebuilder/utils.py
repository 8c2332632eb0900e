# File: site_rebuilder/utils.py
"""site_rebuilder.utils: URL canonicalisation, slugs and homepage-variant generation."""

from __future__ import annotations

import re
from typing import List, Sequence
from urllib.parse import urlparse, urlunparse

from site_rebuilder.errors import InvalidUrlError
from site_rebuilder.logger import logger

__all__: Sequence[str] = (
    "HOMEPAGE_PATHS",
    "slugify",
    "normalize_url",
    "homepage_variants",
    "strip_www",
    "same_host",
    "path_depth",
    "is_homepage_path",
    "page_file_stem",
    "remove_duplicates",
)

#: Paths that serve a site's landing page on common stacks.
HOMEPAGE_PATHS: Sequence[str] = (
    "/",
    "/index",
    "/index.html",
    "/index.htm",
    "/index.php",
    "/default.aspx",
)

_NON_ALNUM = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def _parse_absolute(url: str):
    if not isinstance(url, str):
        raise InvalidUrlError(url)
    try:
        parsed = urlparse(url.strip())
        hostname = parsed.hostname
    except ValueError as exc:
        raise InvalidUrlError(url) from exc
    if parsed.scheme.lower() not in ("http", "https") or not hostname:
        raise InvalidUrlError(url)
    return parsed


def slugify(url: str) -> str:
    """Filesystem-safe site identifier: ``https://www.Foo-Bar.com/x`` -> ``www_foo_bar_com``."""
    hostname = _parse_absolute(url).hostname or ""
    return _NON_ALNUM.sub("_", hostname.lower())


def normalize_url(url: str) -> str:
    """Lower-case scheme and host, drop query and fragment, default an empty path to ``/``.

    A trailing slash on any other path is dropped: ``/about/`` and ``/about`` are one page.
    """
    parsed = _parse_absolute(url)
    path = parsed.path.rstrip("/") or "/"
    normalized = urlunparse((parsed.scheme.lower(), parsed.netloc.lower(), path, "", "", ""))
    logger.debug("Normalized URL: %s -> %s", url, normalized)
    return normalized


def _toggle_trailing_slash(url: str) -> str:
    return url[:-1] if url.endswith("/") else url + "/"


def strip_www(host: str) -> str:
    host = (host or "").lower()
    return host[4:] if host.startswith("www.") else host


def homepage_variants(url: str) -> List[str]:
    """Candidate spellings of the homepage of *url*'s site, most specific first.

    The exact input and its trailing-slash toggle come first, followed by
    {scheme, other scheme} x {www, bare host} x :data:`HOMEPAGE_PATHS`, each
    path with and without a trailing slash.
    """
    parsed = _parse_absolute(url)
    scheme = parsed.scheme.lower()
    other_scheme = "http" if scheme == "https" else "https"
    bare = strip_www(parsed.netloc)
    hosts = (parsed.netloc.lower(), f"www.{bare}" if parsed.netloc.lower() == bare else bare)

    candidates = [url, _toggle_trailing_slash(url)]
    for sch in (scheme, other_scheme):
        for host in hosts:
            for path in HOMEPAGE_PATHS:
                base = f"{sch}://{host}{path}"
                candidates.append(base)
                candidates.append(_toggle_trailing_slash(base))
    return remove_duplicates(candidates)


def same_host(a: str, b: str) -> bool:
    """True when both URLs point to the same host, ignoring a leading ``www.``."""
    try:
        host_a = urlparse(a).hostname
        host_b = urlparse(b).hostname
    except ValueError:
        return False
    if not host_a or not host_b:
        return False
    return strip_www(host_a) == strip_www(host_b)


def path_depth(url: str) -> int:
    """Number of non-empty path segments: ``/`` -> 0, ``/about/`` -> 1, ``/a/b`` -> 2."""
    return len([seg for seg in urlparse(url).path.split("/") if seg])


def is_homepage_path(path: str) -> bool:
    path = path or "/"
    return path in HOMEPAGE_PATHS or path.rstrip("/") in HOMEPAGE_PATHS


def page_file_stem(url: str) -> str:
    """Snapshot file stem for a page: sanitized path relative to the site root, or ``home``."""
    relative = urlparse(url).path.strip("/")
    return _NON_ALNUM.sub("_", relative) or "home"


def remove_duplicates(urls: Sequence[str]) -> List[str]:
    """Удаляет дубликаты из списка URL, сохраняя порядок."""
    unique = list(dict.fromkeys(urls))
    removed = len(urls) - len(unique)
    if removed:
        logger.debug("Removed %d duplicate URLs", removed)
    return unique
