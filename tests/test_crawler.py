# File: tests/test_crawler.py
from __future__ import annotations

import time

import pytest

from site_rebuilder.crawler import SiteCrawler, clean_html, extract_links
from conftest import FakeRenderer

ROOT = "https://site.test/"


def cyclic_site() -> dict[str, str]:
    return {
        "https://site.test/": '<html><head><title>Home</title></head><body><a href="/about">About</a></body></html>',
        "https://site.test/about": '<html><body><a href="/">Home</a><a href="https://site.test/#top">Top</a></body></html>',
    }


@pytest.mark.asyncio()
async def test_two_page_cycle_visits_each_page_once(tmp_path):
    renderer = FakeRenderer(cyclic_site())
    crawler = SiteCrawler(renderer, tmp_path)
    pages = await crawler.crawl("https://site.test", max_depth=2)

    assert list(pages) == ["https://site.test/", "https://site.test/about"]
    assert sorted(renderer.calls) == sorted(set(renderer.calls))
    assert len(renderer.calls) == 2


@pytest.mark.asyncio()
async def test_snapshots_written_per_page(tmp_path):
    crawler = SiteCrawler(FakeRenderer(cyclic_site()), tmp_path)
    await crawler.crawl(ROOT)

    site_dir = tmp_path / "site_test"
    assert (site_dir / "page-home.html").read_text(encoding="utf-8").startswith("<title>Home</title>")
    assert "About" in (site_dir / "page-home.txt").read_text(encoding="utf-8")
    assert (site_dir / "page-about.html").exists()
    assert (site_dir / "screenshots" / "page-home.png").read_bytes().startswith(b"\x89PNG")
    assert (site_dir / "screenshots" / "page-about.png").exists()


@pytest.mark.asyncio()
async def test_depth_limit(tmp_path):
    site = {
        "https://site.test/": '<a href="/a">A</a>',
        "https://site.test/a": '<a href="/b">B</a>',
        "https://site.test/b": '<a href="/c">C</a>',
        "https://site.test/c": "<p>deep</p>",
    }
    renderer = FakeRenderer(site)
    pages = await SiteCrawler(renderer, tmp_path).crawl(ROOT, max_depth=2)
    assert list(pages) == ["https://site.test/", "https://site.test/a", "https://site.test/b"]
    assert "https://site.test/c" not in renderer.calls

    only_root = await SiteCrawler(FakeRenderer(site), tmp_path).crawl(ROOT, max_depth=0)
    assert list(only_root) == [ROOT]


@pytest.mark.asyncio()
async def test_external_and_special_links_are_not_followed(tmp_path):
    site = {
        "https://site.test/": (
            '<a href="https://other.test/">x</a>'
            '<a href="mailto:a@site.test">m</a>'
            '<a href="javascript:void(0)">j</a>'
            '<a href="https://www.site.test/team">t</a>'
        ),
        "https://www.site.test/team": "<p>team</p>",
    }
    renderer = FakeRenderer(site)
    pages = await SiteCrawler(renderer, tmp_path).crawl(ROOT)
    assert list(pages) == [ROOT, "https://www.site.test/team"]
    assert renderer.calls == [ROOT, "https://www.site.test/team"]


@pytest.mark.asyncio()
async def test_failed_pages_are_skipped(tmp_path):
    site = {
        "https://site.test/": '<a href="/missing">x</a><a href="/broken">y</a><a href="/ok">z</a>',
        "https://site.test/broken": "<p>never rendered</p>",
        "https://site.test/ok": "<p>fine</p>",
    }
    crawler = SiteCrawler(FakeRenderer(site, broken={"https://site.test/broken"}), tmp_path)
    pages = await crawler.crawl(ROOT)

    assert list(pages) == [ROOT, "https://site.test/ok"]
    assert sorted(f.url for f in crawler.failures) == [
        "https://site.test/broken",
        "https://site.test/missing",
    ]


@pytest.mark.asyncio()
async def test_concurrent_workers_do_not_duplicate_visits(tmp_path):
    links = "".join(f'<a href="/p{i}">p</a>' for i in range(10))
    site = {ROOT: links}
    for i in range(10):
        # every page links to every other page
        site[f"https://site.test/p{i}"] = links + '<a href="/">home</a>'
    renderer = FakeRenderer(site, delay=0.05)
    crawler = SiteCrawler(renderer, tmp_path, concurrency=5)

    start = time.perf_counter()
    pages = await crawler.crawl(ROOT, max_depth=2)
    elapsed = time.perf_counter() - start

    assert len(pages) == 11
    assert len(renderer.calls) == len(set(renderer.calls)) == 11
    assert list(pages)[0] == ROOT
    assert elapsed < 11 * 0.05


@pytest.mark.asyncio()
async def test_max_pages_cap(tmp_path):
    links = "".join(f'<a href="/p{i}">p</a>' for i in range(10))
    site = {ROOT: links, **{f"https://site.test/p{i}": "<p>x</p>" for i in range(10)}}
    pages = await SiteCrawler(FakeRenderer(site), tmp_path, max_pages=4).crawl(ROOT)
    assert len(pages) == 4


def test_clean_html_strips_noise_and_keeps_title():
    html = """
    <html><head><title> Acme Corp </title><style>body{}</style></head>
    <body onload="init()">
      <!-- tracking -->
      <script>alert(1)</script><noscript>enable js</noscript>
      <template><p>tpl</p></template>
      <svg><circle/></svg>
      <div style="color:red" data-id="7" class="hero" onclick="x()">Hello


         world</div>
    </body></html>
    """
    cleaned = clean_html(html)
    assert cleaned.startswith("<title>Acme Corp</title>\n")
    for noise in ("alert", "enable js", "tpl", "circle", "tracking", "style=", "data-id", "onclick", "body{}"):
        assert noise not in cleaned
    assert 'class="hero"' in cleaned
    assert "Hello" in cleaned and "world" in cleaned
    assert "\n\n" not in cleaned


def test_extract_links_resolves_against_page_url():
    html = '<a href="team">T</a><a href="/contact?x=1#f">C</a><a href="#top">top</a><a href="tel:123">t</a>'
    links = extract_links(html, "https://site.test/about/", ROOT)
    assert links == ["https://site.test/about/team", "https://site.test/contact"]


@pytest.mark.asyncio()
async def test_trailing_slash_spellings_are_one_page(tmp_path):
    site = {
        ROOT: '<a href="/about/">About</a><a href="/about">About</a><a href="about/#team">Team</a>',
        "https://site.test/about": "<p>about</p>",
    }
    renderer = FakeRenderer(site)
    pages = await SiteCrawler(renderer, tmp_path).crawl(ROOT)
    assert list(pages) == [ROOT, "https://site.test/about"]
    assert renderer.calls == [ROOT, "https://site.test/about"]
