from __future__ import annotations

import re
import shutil
from pathlib import Path

TOKEN_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")
EXTERNAL_LINK_RE = re.compile(
    r"""<a\s+(?![^>]*\btarget=)[^>]*href=["']https?://[^"']+["'][^>]*>""",
    re.IGNORECASE,
)


class TemplateError(Exception):
    pass


def render_template(template: str, **context: object) -> str:
    """Replace ``{{ key }}`` tokens in one pass; missing or falsy values render empty."""

    def repl(match: re.Match) -> str:
        value = context.get(match.group(1))
        return str(value) if value else ""

    return TOKEN_RE.sub(repl, template)


def add_target_blank(html_text: str) -> str:
    def repl(match: re.Match) -> str:
        tag = match.group(0)
        return tag[:-1] + ' target="_blank" rel="noopener noreferrer">'

    return EXTERNAL_LINK_RE.sub(repl, html_text)


def read_template(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise TemplateError(f"Template rendering failed: cannot read {path}: {exc}") from exc


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def copy_static(static_dir: Path, output_dir: Path) -> None:
    for item in static_dir.iterdir():
        dest = output_dir / item.name
        if item.is_dir():
            if dest.exists():
                shutil.rmtree(dest)
            shutil.copytree(item, dest)
        else:
            shutil.copy2(item, dest)
