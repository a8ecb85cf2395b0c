from __future__ import annotations

import html
import re
import urllib.parse
from dataclasses import dataclass, field

from .content import normalize_list_spacing, parse_list
from .markup import render_markdown
from .render import add_target_blank

DIRECTIVE_RE = re.compile(r"^(pin|colour|tags|border|author):\s*(.+)$", re.IGNORECASE)
COLOUR_RE = re.compile(r"^colour:\s*(.+)$", re.IGNORECASE)
BORDER_RE = re.compile(r"^border:\s*(.+)$", re.IGNORECASE)
EXTRA_NEWLINES_RE = re.compile(r"\n{3,}")


@dataclass
class ParsedDescription:
    html: str = ""
    is_pinned: bool = False
    tags: list[str] = field(default_factory=list)
    author: str = ""
    background_color: str = ""
    border_color: str = ""


def render_tags(tags: list[str]) -> str:
    links = " ".join(
        f'<a href="/#{urllib.parse.quote(tag, safe="")}" class="tag-link">#{html.escape(tag)}</a>'
        for tag in tags
    )
    return (
        '<div class="description-field tags-field item-tags">'
        f'<span class="description-key">Tags:</span> {links}</div>'
    )


def render_author(name: str) -> str:
    return (
        '<div class="description-field author-field">'
        '<span class="description-key">Author:</span> '
        f'<a href="/{urllib.parse.quote(name, safe="")}">{html.escape(name)}</a></div>'
    )


def description_prose(text: str) -> str:
    """Return the description with every directive line removed."""
    if not text:
        return ""
    prose = [
        line.rstrip()
        for line in text.replace("\r\n", "\n").split("\n")
        if not DIRECTIVE_RE.match(line.strip())
    ]
    return EXTRA_NEWLINES_RE.sub("\n\n", "\n".join(prose)).strip()


def parse_description(text: str) -> ParsedDescription:
    """Separate ``key: value`` directive lines from the prose of a description.

    Recognised keys are pin, colour, border, tags and author. Directive lines
    never reach the rendered prose; tags and author become link fragments that
    precede the prose in the order they were found. The prose is rendered as
    a single markdown document after the scan so that lists and multi-line
    paragraphs survive.
    """
    parsed = ParsedDescription()
    if not text:
        return parsed

    fragments: list[str] = []
    for line in text.replace("\r\n", "\n").split("\n"):
        match = DIRECTIVE_RE.match(line.strip())
        if not match:
            continue
        key = match.group(1).lower()
        value = match.group(2).strip()
        if key == "pin":
            if value.lower() == "top":
                parsed.is_pinned = True
        elif key == "colour":
            parsed.background_color = parsed.background_color or value
        elif key == "border":
            parsed.border_color = parsed.border_color or value
        elif key == "tags":
            tags = parse_list(value)
            if tags:
                parsed.tags.extend(tags)
                fragments.append(render_tags(tags))
        elif key == "author":
            parsed.author = value
            fragments.append(render_author(value))

    markdown_text = description_prose(text)
    if markdown_text:
        prose_html = render_markdown(normalize_list_spacing(markdown_text))
        fragments.append(f'<div class="markdown-content">{prose_html}</div>')

    parsed.html = add_target_blank("\n".join(fragments))
    return parsed


def extract_style(description: str) -> tuple[str, str]:
    """Return ``(background_color, border_color)`` from raw description text."""
    background_color = ""
    border_color = ""
    if not description:
        return background_color, border_color
    for line in description.splitlines():
        stripped = line.strip()
        if not background_color:
            match = COLOUR_RE.match(stripped)
            if match:
                background_color = match.group(1).strip()
        if not border_color:
            match = BORDER_RE.match(stripped)
            if match:
                border_color = match.group(1).strip()
    return background_color, border_color


def style_attribute(description: str) -> str:
    background_color, border_color = extract_style(description)
    styles = []
    if background_color:
        styles.append(f"background-color: {html.escape(background_color)}")
    if border_color:
        styles.append(f"border: 1px solid {html.escape(border_color)}")
    if not styles:
        return ""
    return f' style="{"; ".join(styles)};"'
