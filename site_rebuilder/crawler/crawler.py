# === FILE: site_rebuilder/crawler/crawler.py ===
from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import List, Optional, Tuple

from site_rebuilder.crawler.browser import PageRenderer
from site_rebuilder.crawler.link_extractor import clean_html, extract_links
from site_rebuilder.crawler.models import CrawlState, PageMap, PageRecord, RenderedPage
from site_rebuilder.errors import PartialCrawlError
from site_rebuilder.logger import logger
from site_rebuilder.utils import normalize_url, page_file_stem, slugify

__all__ = ("DEFAULT_MAX_DEPTH", "SiteCrawler", "SnapshotWriter")

DEFAULT_MAX_DEPTH = 2


class SnapshotWriter:
    """Writes ``page-<name>.{html,txt}`` and ``screenshots/page-<name>.png`` under one site directory."""

    def __init__(self, site_dir: Path) -> None:
        self.site_dir = Path(site_dir)
        self.screenshot_dir = self.site_dir / "screenshots"

    def prepare(self) -> None:
        self.screenshot_dir.mkdir(parents=True, exist_ok=True)

    def write(self, record: PageRecord, screenshot: bytes) -> Path:
        stem = f"page-{page_file_stem(record.url)}"
        html_path = self.site_dir / f"{stem}.html"
        html_path.write_text(record.html, encoding="utf-8")
        (self.site_dir / f"{stem}.txt").write_text(record.visible_text, encoding="utf-8")
        if screenshot:
            (self.screenshot_dir / f"{stem}.png").write_bytes(screenshot)
        return html_path


class SiteCrawler:
    """Same-host crawler over a rendering browser: bounded depth, visited-set dedupe, fail-open per page."""

    def __init__(
        self,
        renderer: PageRenderer,
        output_root: Path | str,
        *,
        concurrency: int = 1,
        max_pages: Optional[int] = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.renderer = renderer
        self.output_root = Path(output_root)
        self.concurrency = concurrency
        self.max_pages = max_pages
        self.failures: List[PartialCrawlError] = []
        self.state: Optional[CrawlState] = None

    async def crawl(self, root_url: str, max_depth: int = DEFAULT_MAX_DEPTH) -> PageMap:
        """Crawl *root_url* and return the page map in discovery order."""
        if max_depth < 0:
            raise ValueError("max_depth must be >= 0")
        root = normalize_url(root_url)
        slug = slugify(root)
        writer = SnapshotWriter(self.output_root / slug)
        writer.prepare()

        self.failures = []
        self.state = state = CrawlState(root_url=root, max_depth=max_depth)
        pages: PageMap = {}

        logger.info("Crawl start: %s (max depth %d)", root, max_depth)
        start = time.monotonic()
        queue: asyncio.Queue[Tuple[str, int]] = asyncio.Queue()
        state.claim(root)
        await queue.put((root, 0))
        workers = [
            asyncio.create_task(self._worker(queue, state, pages, writer))
            for _ in range(self.concurrency)
        ]
        try:
            await queue.join()
        finally:
            for w in workers:
                w.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        # discovery order, independent of which worker finished first
        ordered: PageMap = {url: pages[url] for url in state.order if url in pages}
        duration = time.monotonic() - start
        logger.info(
            "Crawl done: %d pages, %d failed, %.2f s", len(ordered), len(self.failures), duration
        )
        return ordered

    async def _worker(
        self,
        queue: asyncio.Queue[Tuple[str, int]],
        state: CrawlState,
        pages: PageMap,
        writer: SnapshotWriter,
    ) -> None:
        while True:
            url, depth = await queue.get()
            try:
                if self.max_pages is not None and len(pages) >= self.max_pages:
                    continue
                links = await self._visit(url, depth, state, pages, writer)
                if depth < state.max_depth:
                    for link in links:
                        if self.max_pages is not None and len(state.visited) >= self.max_pages:
                            break
                        if state.claim(link):
                            queue.put_nowait((link, depth + 1))
            finally:
                queue.task_done()

    async def _visit(
        self,
        url: str,
        depth: int,
        state: CrawlState,
        pages: PageMap,
        writer: SnapshotWriter,
    ) -> List[str]:
        logger.info("Visiting (depth %d): %s", depth, url)
        try:
            rendered: RenderedPage = await self.renderer.render(url)
            record = PageRecord(
                url=url,
                html=clean_html(rendered.html),
                visible_text=rendered.visible_text,
            )
            links = extract_links(rendered.html, url, state.root_url)
            path = writer.write(record, rendered.screenshot)
            pages[url] = record
        except PartialCrawlError as exc:
            self._skip(exc)
            return []
        except Exception as exc:  # per-page failures never abort the crawl
            self._skip(PartialCrawlError(url, str(exc)))
            return []
        logger.debug("Saved %s (+ .txt, screenshot)", path)
        return links

    def _skip(self, error: PartialCrawlError) -> None:
        logger.warning("Skipping page %s", error)
        self.failures.append(error)
