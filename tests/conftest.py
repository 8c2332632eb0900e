# File: tests/conftest.py
from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import AsyncIterator
from typing import Dict, Iterable, List, Optional

import pytest
import pytest_asyncio
from aiohttp import web
from bs4 import BeautifulSoup

from site_rebuilder.config import RebuilderConfig
from site_rebuilder.crawler.models import PageRecord, RenderedPage
from site_rebuilder.errors import PartialCrawlError
from site_rebuilder.remote import PlatformAPI, ResilientHttpClient, RetryPolicy

PNG = b"\x89PNG\r\n\x1a\n"


class FakeRenderer:
    """In-memory PageRenderer: serves *site* (url -> html), 404 for everything else."""

    def __init__(self, site: Dict[str, str], *, broken: Iterable[str] = (), delay: float = 0.0) -> None:
        self.site = site
        self.broken = set(broken)
        self.delay = delay
        self.calls: List[str] = []

    async def __aenter__(self) -> FakeRenderer:
        return self

    async def __aexit__(self, *exc) -> None:
        return None

    async def render(self, url: str) -> RenderedPage:
        self.calls.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        if url in self.broken:
            raise RuntimeError("navigation crashed")
        html = self.site.get(url)
        if html is None:
            raise PartialCrawlError(url, "HTTP 404")
        text = BeautifulSoup(html, "html.parser").get_text(" ", strip=True)
        return RenderedPage(url=url, html=html, visible_text=text, screenshot=PNG)


class FakeGenerator:
    """TextGenerator that records prompts and answers with a numbered response."""

    def __init__(self) -> None:
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return f"response {len(self.prompts)}"


def make_page_map(pages: Dict[str, str]) -> Dict[str, PageRecord]:
    return {url: PageRecord(url=url, html=html, visible_text="") for url, html in pages.items()}


async def _serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on *port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "localhost", port)
    await site.start()
    try:
        yield f"http://localhost:{port}"
    finally:
        await runner.cleanup()


class FakePlatform:
    """Scriptable stand-in for the generation platform API.

    ``chat_statuses`` / ``deployment_statuses`` are consumed one per poll; the
    last value repeats. ``alias_conflicts`` answers 409 that many times.
    """

    def __init__(self) -> None:
        self.calls: Counter[str] = Counter()
        self.requests: List[dict] = []
        self.chat_statuses: List[str] = ["pending", "completed"]
        self.chat_returns_version = False
        self.deployment_statuses: List[str] = ["building", "ready"]
        self.deployment_errors: List[dict] = []
        self.alias_conflicts = 0
        self.webhook_status = 200
        self.fail_project_with: Optional[int] = None

    @staticmethod
    def _next(seq: List[str]) -> str:
        return seq.pop(0) if len(seq) > 1 else seq[0]

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/projects", self.create_project)
        app.router.add_post("/chats", self.create_chat)
        app.router.add_get("/chats/{id}", self.get_chat)
        app.router.add_post("/deployments", self.create_deployment)
        app.router.add_get("/deployments/{id}", self.get_deployment)
        app.router.add_get("/deployments/{id}/errors", self.get_errors)
        app.router.add_post("/aliases", self.create_alias)
        app.router.add_post("/hook", self.webhook)
        return app

    async def _record(self, name: str, request: web.Request) -> dict:
        self.calls[name] += 1
        body = await request.json() if request.can_read_body else {}
        self.requests.append({"name": name, "headers": dict(request.headers), "body": body})
        return body

    async def create_project(self, request: web.Request) -> web.Response:
        await self._record("create_project", request)
        if self.fail_project_with:
            return web.Response(status=self.fail_project_with, text="boom")
        return web.json_response({"project": {"id": "prj_1"}})

    async def create_chat(self, request: web.Request) -> web.Response:
        await self._record("create_chat", request)
        payload = {"id": "chat_1"}
        if self.chat_returns_version:
            payload["latestVersion"] = {"id": "ver_1", "status": "completed"}
        return web.json_response(payload)

    async def get_chat(self, request: web.Request) -> web.Response:
        await self._record("get_chat", request)
        status = self._next(self.chat_statuses)
        return web.json_response({"id": request.match_info["id"], "latestVersion": {"id": "ver_1", "status": status}})

    async def create_deployment(self, request: web.Request) -> web.Response:
        await self._record("create_deployment", request)
        return web.json_response(
            {"id": "dpl_1", "webUrl": "https://dpl-1.example.app", "inspectorUrl": "https://inspect/dpl_1", "status": "queued"}
        )

    async def get_deployment(self, request: web.Request) -> web.Response:
        await self._record("get_deployment", request)
        status = self._next(self.deployment_statuses)
        return web.json_response({"id": request.match_info["id"], "status": status, "webUrl": "https://dpl-1.example.app"})

    async def get_errors(self, request: web.Request) -> web.Response:
        await self._record("get_errors", request)
        return web.json_response(self.deployment_errors)

    async def create_alias(self, request: web.Request) -> web.Response:
        await self._record("create_alias", request)
        if self.alias_conflicts > 0:
            self.alias_conflicts -= 1
            return web.Response(status=409, text="alias taken")
        return web.json_response({"ok": True})

    async def webhook(self, request: web.Request) -> web.Response:
        await self._record("webhook", request)
        return web.Response(status=self.webhook_status, text="")


@pytest.fixture()
def platform() -> FakePlatform:
    return FakePlatform()


@pytest_asyncio.fixture
async def platform_url(platform: FakePlatform, unused_tcp_port: int) -> AsyncIterator[str]:
    async for url in _serve_app(platform.app(), unused_tcp_port):
        yield url


@pytest_asyncio.fixture
async def platform_client(platform_url: str) -> AsyncIterator[ResilientHttpClient]:
    async with ResilientHttpClient(platform_url, "test-key", retry=RetryPolicy(attempts=2, base_ms=1)) as client:
        yield client


@pytest.fixture()
def platform_api(platform_client: ResilientHttpClient) -> PlatformAPI:
    return PlatformAPI(platform_client)


@pytest.fixture()
def base_config(tmp_path) -> RebuilderConfig:
    return RebuilderConfig(
        output_dir=tmp_path / "output",
        api_key="test-key",
        chat_interval=0.01,
        deployment_interval=0.01,
        chat_timeout=2.0,
        deployment_timeout=2.0,
        retry_base_ms=1,
    )
