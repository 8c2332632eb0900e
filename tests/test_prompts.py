# File: tests/test_prompts.py
from __future__ import annotations

import pytest

from site_rebuilder.errors import HomepageNotFoundError
from site_rebuilder.prompts import (
    PROMPT_CHAR_LIMIT,
    build_developer_prompt,
    build_initial_prompt,
    build_refinement_prompt,
    truncate_prompt,
)
from conftest import make_page_map


def test_initial_prompt_embeds_homepage():
    pages = make_page_map({"https://example.com/": "<h1>Acme</h1>"})
    prompt = build_initial_prompt(pages, "https://example.com")
    assert "Acme" in prompt
    assert "--- PAGE: https://example.com/ ---" in prompt
    assert len(prompt) <= PROMPT_CHAR_LIMIT


def test_initial_prompt_is_truncated():
    pages = make_page_map({"https://example.com/": "<p>" + "x" * (PROMPT_CHAR_LIMIT * 2) + "</p>"})
    prompt = build_initial_prompt(pages, "https://example.com/")
    assert len(prompt) == PROMPT_CHAR_LIMIT
    assert prompt.endswith("x")


def test_initial_prompt_without_homepage():
    pages = make_page_map({"https://example.com/about": "<p>a</p>"})
    with pytest.raises(HomepageNotFoundError):
        build_initial_prompt(pages, "https://example.com/")


def test_refinement_prompt_carries_previous_analysis_and_page():
    prompt = build_refinement_prompt("PREVIOUS ANALYSIS", "<h2>Pricing</h2>", "https://example.com/pricing")
    assert "PREVIOUS ANALYSIS" in prompt
    assert "<h2>Pricing</h2>" in prompt
    assert "NEW PAGE: https://example.com/pricing" in prompt
    assert prompt.index("PREVIOUS ANALYSIS") < prompt.index("<h2>Pricing</h2>")

    anonymous = build_refinement_prompt("prev", "<p>x</p>")
    assert "--- NEW PAGE ---" in anonymous


def test_developer_prompt_wraps_analysis():
    prompt = build_developer_prompt("FINAL ANALYSIS")
    assert prompt.rstrip().endswith("FINAL ANALYSIS")
    assert "junior web developer" in prompt


def test_truncate_prompt_is_a_plain_slice():
    assert truncate_prompt("abcdef", 3) == "abc"
    assert truncate_prompt("abc", 10) == "abc"
