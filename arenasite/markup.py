from __future__ import annotations

import markdown
from pygments.formatters import HtmlFormatter

MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "codehilite"]
MARKDOWN_EXTENSION_CONFIGS = {"codehilite": {"css_class": "codehilite", "guess_lang": False}}


def render_markdown(text: str) -> str:
    # one Markdown instance per call; item pages render on worker threads
    md = markdown.Markdown(
        extensions=MARKDOWN_EXTENSIONS,
        extension_configs=MARKDOWN_EXTENSION_CONFIGS,
    )
    return md.convert(text)


def highlight_css(style: str = "default") -> str:
    return HtmlFormatter(style=style, cssclass="codehilite").get_style_defs(".codehilite")
