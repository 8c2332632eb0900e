# File: site_rebuilder/engine.py
"""site_rebuilder.engine: end-to-end pipeline from a URL to a deployed one-page rebuild."""

from __future__ import annotations

import contextlib
from pathlib import Path
from typing import AsyncIterator, Callable, Dict, List, Optional

from site_rebuilder.config import RebuilderConfig
from site_rebuilder.crawler import PageMap, PageRenderer, PlaywrightRenderer, SiteCrawler
from site_rebuilder.generation import OpenAIGenerator, TextGenerator
from site_rebuilder.logger import logger
from site_rebuilder.mutex import KeyedMutex, site_lock
from site_rebuilder.prompts import (
    build_developer_prompt,
    build_initial_prompt,
    build_refinement_prompt,
)
from site_rebuilder.remote import (
    OrchestrationResult,
    OrchestrationSettings,
    Orchestrator,
    PlatformAPI,
    ResilientHttpClient,
    ResourceStore,
    RetryPolicy,
)
from site_rebuilder.report import PipelineReport
from site_rebuilder.selector import select_top_pages
from site_rebuilder.utils import normalize_url, slugify

__all__ = ["Engine"]

RendererFactory = Callable[[], contextlib.AbstractAsyncContextManager]


class Engine:
    """Фасад для CLI и тестов: обход, промпты, генерация и создание удалённых ресурсов."""

    def __init__(
        self,
        config: RebuilderConfig,
        *,
        renderer_factory: Optional[RendererFactory] = None,
        generator: Optional[TextGenerator] = None,
        client: Optional[ResilientHttpClient] = None,
        mutex: Optional[KeyedMutex] = None,
    ) -> None:
        self.config = config
        self.renderer_factory = renderer_factory or self._playwright
        self._generator = generator
        self._client = client
        self.mutex = mutex or site_lock

    # ---------------------------------------------------------------- wiring

    def _playwright(self) -> PlaywrightRenderer:
        kwargs = {"headless": self.config.headless, "timeout": self.config.navigation_timeout}
        if self.config.user_agent:
            kwargs["user_agent"] = self.config.user_agent
        return PlaywrightRenderer(**kwargs)

    @property
    def generator(self) -> TextGenerator:
        if self._generator is None:
            self._generator = OpenAIGenerator(
                self.config.secret("openai_api_key"), self.config.openai_model
            )
        return self._generator

    @contextlib.asynccontextmanager
    async def _http(self) -> AsyncIterator[ResilientHttpClient]:
        if self._client is not None:
            yield self._client
            return
        async with ResilientHttpClient(
            self.config.api_base_url,
            self.config.secret("api_key"),
            retry=RetryPolicy(self.config.retry_attempts, self.config.retry_base_ms),
        ) as client:
            yield client

    def _settings(self, source_url: Optional[str]) -> OrchestrationSettings:
        cfg = self.config
        return OrchestrationSettings(
            chat_timeout=cfg.chat_timeout,
            chat_interval=cfg.chat_interval,
            deployment_timeout=cfg.deployment_timeout,
            deployment_interval=cfg.deployment_interval,
            assign_alias=cfg.assign_alias,
            alias_domain=cfg.alias_domain,
            webhook_url=cfg.webhook_url,
            source_url=source_url,
        )

    # ---------------------------------------------------------------- stages

    async def crawl(self, url: str) -> tuple[PageMap, SiteCrawler]:
        async with self.renderer_factory() as renderer:
            crawler = SiteCrawler(
                renderer,
                self.config.output_dir,
                concurrency=self.config.concurrency,
                max_pages=self.config.max_pages,
            )
            pages = await crawler.crawl(url, self.config.max_depth)
        return pages, crawler

    async def analyse(self, page_map: PageMap, root_url: str, selected: List[str], site_dir: Path) -> Dict[str, str]:
        """Initial prompt, one refinement per secondary page, then the developer prompt."""
        slug = site_dir.name
        iterations = site_dir / "iterations"
        iterations.mkdir(parents=True, exist_ok=True)
        files: Dict[str, str] = {}

        prompt = build_initial_prompt(page_map, root_url)
        (iterations / "01_initial_prompt.txt").write_text(prompt, encoding="utf-8")
        output = await self.generator.generate(prompt)
        (iterations / "01_response.txt").write_text(output, encoding="utf-8")

        secondary = selected[1:] if self.config.refine_pages else []
        for step, url in enumerate(secondary, start=2):
            prompt = build_refinement_prompt(output, page_map[url].html, url)
            (iterations / f"{step:02d}_refine_prompt.txt").write_text(prompt, encoding="utf-8")
            output = await self.generator.generate(prompt)
            (iterations / f"{step:02d}_response.txt").write_text(output, encoding="utf-8")
            logger.info("Refined analysis with %s", url)

        prompt_path = site_dir / f"{slug}_full_analysis_prompt.txt"
        prompt_path.write_text(prompt, encoding="utf-8")
        analysis_path = site_dir / f"{slug}_site_analysis.txt"
        analysis_path.write_text(output, encoding="utf-8")
        files["analysisPrompt"] = str(prompt_path)
        files["siteAnalysis"] = str(analysis_path)

        if self.config.developer_prompt:
            brief = await self.generator.generate(build_developer_prompt(output))
            brief_path = site_dir / f"{slug}_developer_prompt.txt"
            brief_path.write_text(brief, encoding="utf-8")
            files["developerPrompt"] = str(brief_path)
            files["message"] = str(brief_path)
        else:
            files["message"] = str(analysis_path)
        return files

    async def deploy(self, slug: str, name: str, message: str, source_url: Optional[str] = None) -> OrchestrationResult:
        """Create or resume the remote resource chain. Caller holds the lock for *slug*."""
        async with self._http() as client:
            orchestrator = Orchestrator(
                PlatformAPI(client),
                ResourceStore(self.config.output_dir, slug),
                self._settings(source_url),
            )
            return await orchestrator.run(name, message)

    async def deploy_locked(self, slug: str, name: str, message: str, source_url: Optional[str] = None) -> OrchestrationResult:
        return await self.mutex.with_lock(slug, lambda: self.deploy(slug, name, message, source_url))

    # ---------------------------------------------------------------- entry

    async def run(self, url: str) -> PipelineReport:
        """Полный конвейер для *url*; весь запуск для одного slug идёт под замком."""
        root = normalize_url(url)
        slug = slugify(root)
        return await self.mutex.with_lock(slug, lambda: self._run(root, slug))

    async def _run(self, root: str, slug: str) -> PipelineReport:
        logger.info("Pipeline start: %s (%s)", root, slug)
        site_dir = Path(self.config.output_dir) / slug
        page_map, crawler = await self.crawl(root)
        report = PipelineReport(
            url=root,
            slug=slug,
            pages=list(page_map),
            failed_pages=[f.url for f in crawler.failures],
        )

        report.selected_pages = select_top_pages(page_map, root, self.config.max_selected_pages)
        report.files = await self.analyse(page_map, root, report.selected_pages, site_dir)

        if self.config.skip_remote:
            logger.info("Remote resource creation skipped for %s", slug)
            return report

        message = Path(report.files["message"]).read_text(encoding="utf-8")
        result = await self.deploy(slug, slug, message, source_url=root)
        report.remote = result.as_dict()
        return report
