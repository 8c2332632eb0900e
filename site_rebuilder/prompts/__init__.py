# File: site_rebuilder/prompts/__init__.py
"""site_rebuilder.prompts: pure string building for the generation stage.

Nothing in here calls a model or writes files; the engine does both.
Templates live in ``templates/`` and are rendered with Jinja2.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from site_rebuilder.crawler.models import PageRecord
from site_rebuilder.selector import resolve_homepage

__all__ = (
    "PROMPT_CHAR_LIMIT",
    "truncate_prompt",
    "build_initial_prompt",
    "build_refinement_prompt",
    "build_developer_prompt",
)

#: Hard ceiling for any prompt handed to the generation stage.
PROMPT_CHAR_LIMIT = 360_000

TEMPLATE_DIR = Path(__file__).parent / "templates"

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=False,
    undefined=StrictUndefined,
    keep_trailing_newline=False,
)


def _render(name: str, **context: Any) -> str:
    return _env.get_template(name).render(**context).strip()


def truncate_prompt(text: str, limit: int = PROMPT_CHAR_LIMIT) -> str:
    """Cut *text* to *limit* characters. Not markup-aware: may end mid-tag or mid-word."""
    return text[:limit]


def build_initial_prompt(page_map: Mapping[str, PageRecord], root_url: str) -> str:
    """Analysis prompt for the homepage. Raises HomepageNotFoundError if there is none."""
    homepage = resolve_homepage(page_map, root_url)
    return truncate_prompt(_render("initial.txt.j2", url=homepage.url, html=homepage.html))


def build_refinement_prompt(
    previous_output: str, new_page_html: str, page_url: Optional[str] = None
) -> str:
    """Fold one more page into an existing analysis, consolidating instead of duplicating."""
    return truncate_prompt(
        _render(
            "refine.txt.j2",
            previous_output=previous_output,
            html=new_page_html,
            url=page_url or "",
        )
    )


def build_developer_prompt(analysis_text: str) -> str:
    """Ask for a developer brief based on the final analysis."""
    return truncate_prompt(_render("developer.txt.j2", analysis=analysis_text))
