"""Static HTML rendering of a profile."""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ghprofile_core.models import RepoResult

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"
REPORT_TEMPLATE = "report.html.j2"
TOP_LANGUAGES = 5

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html", "j2"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def top_languages(results: list[RepoResult], n: int = TOP_LANGUAGES) -> list[str]:
    """Most common primary languages, ties in first-seen order."""
    counts = Counter(r.repo.language for r in results if r.repo.language)
    return [name for name, _ in counts.most_common(n)]


def render_html(user: str, results: list[RepoResult], headline: str = "", summary: str = "") -> str:
    template = _env.get_template(REPORT_TEMPLATE)
    return template.render(
        user=user,
        results=results,
        headline=headline,
        summary=summary,
        languages=top_languages(results),
    )


def report_filename(user: str) -> str:
    return f"profile-{user}.html"


def write_report(out_dir: str | Path, user: str, html: str) -> Path:
    """Write the report into ``out_dir`` (created if needed) and return its path."""
    directory = Path(out_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / report_filename(user)
    path.write_text(html, encoding="utf-8")
    logger.debug("Wrote report for @%s to %s", user, path)
    return path
