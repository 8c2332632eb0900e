# File: tests/test_utils.py
import pytest

from site_rebuilder.errors import InvalidInputError, InvalidUrlError
from site_rebuilder.utils import (
    homepage_variants,
    normalize_url,
    page_file_stem,
    path_depth,
    same_host,
    slugify,
)


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://lichtweg.li/", "lichtweg_li"),
        ("https://www.Example.com/about?x=1", "www_example_com"),
        ("http://foo-bar.com:8080/x", "foo_bar_com"),
    ],
)
def test_slugify(url, expected):
    assert slugify(url) == expected
    assert slugify(url) == slugify(url)


@pytest.mark.parametrize("bad", ["", "example.com", "/relative/path", "ftp://example.com", "https://", None])
def test_slugify_rejects_non_absolute(bad):
    with pytest.raises(InvalidUrlError):
        slugify(bad)


def test_invalid_url_error_is_input_error():
    assert issubclass(InvalidUrlError, InvalidInputError)
    assert issubclass(InvalidUrlError, ValueError)


def test_normalize_strips_query_fragment_and_defaults_path():
    assert normalize_url("HTTPS://Example.COM") == "https://example.com/"
    assert normalize_url("https://example.com/About?a=1#top") == "https://example.com/About"


def test_normalize_folds_trailing_slash_except_root():
    assert normalize_url("https://example.com/about/") == normalize_url("https://example.com/about")
    assert normalize_url("https://example.com/a/b//") == "https://example.com/a/b"
    assert normalize_url("https://example.com/") == "https://example.com/"
    assert normalize_url("https://example.com//") == "https://example.com/"


def test_homepage_variants_cover_schemes_hosts_and_paths():
    variants = homepage_variants("https://example.com")
    assert variants[0] == "https://example.com"
    assert variants[1] == "https://example.com/"
    for expected in (
        "http://example.com/",
        "https://www.example.com/",
        "http://www.example.com/index.html",
        "https://example.com/index.php/",
        "https://example.com/default.aspx",
        "http://www.example.com/index.htm",
    ):
        assert expected in variants
    assert len(variants) == len(set(variants))


def test_homepage_variants_from_www_input():
    variants = homepage_variants("https://www.example.com/")
    assert "https://example.com/" in variants
    assert "https://www.example.com" in variants


def test_same_host_ignores_www():
    assert same_host("https://www.example.com/a", "https://example.com")
    assert not same_host("https://example.org/", "https://example.com/")
    assert not same_host("mailto:someone@example.com", "https://example.com/")


@pytest.mark.parametrize(
    "url,depth",
    [("https://e.com/", 0), ("https://e.com/about", 1), ("https://e.com/about/", 1), ("https://e.com/a/b", 2)],
)
def test_path_depth(url, depth):
    assert path_depth(url) == depth


def test_page_file_stem():
    assert page_file_stem("https://e.com/") == "home"
    assert page_file_stem("https://e.com/about") == "about"
    assert page_file_stem("https://e.com/team/jobs.html") == "team_jobs_html"
