from __future__ import annotations

import datetime as dt
import html as html_lib
import re
from typing import Optional

from .models import ContentItem

NON_WORD_RE = re.compile(r"[^\w\s-]", re.ASCII)
SEPARATOR_RE = re.compile(r"[\s_-]+", re.ASCII)
LEADING_NUMBER_RE = re.compile(r"^(?:\d+-)+")
HEADLINE_RE = re.compile(r"^(?:headline|Headline):\s*(.*)$")
LIST_MARKER_RE = re.compile(r"^(?P<indent>[ \t]*)(?:[-+*]|\d+[.)])\s+")
FENCE_RE = re.compile(r"^(?P<indent>[ \t]*)(`{3,}|~{3,})")

MAX_SLUG_LENGTH = 100
DISPLAY_TITLE_LENGTH = 50
NAV_TITLE_LENGTH = 30
DEFAULT_SLUG = "untitled"


def slugify(text: str, fallback: str = DEFAULT_SLUG) -> str:
    """Turn arbitrary text into a URL path segment.

    The result is lowercase ASCII, hyphen separated, at most 100 characters
    and never empty: when nothing survives, ``fallback`` is slugified instead.
    """
    text = (text or "").lower()
    text = NON_WORD_RE.sub("", text)
    text = SEPARATOR_RE.sub("-", text).strip("-")
    text = LEADING_NUMBER_RE.sub("", text)
    text = text[:MAX_SLUG_LENGTH].strip("-")
    if text:
        return text
    if fallback and fallback != DEFAULT_SLUG:
        return slugify(fallback)
    return DEFAULT_SLUG


def slug_source(item: ContentItem) -> str:
    if item.title and item.title.strip():
        return item.title.strip()
    if item.content and item.content.strip():
        return item.content.strip()
    return f"untitled-{item.id}"


def display_title(item: ContentItem) -> str:
    if item.title and item.title.strip():
        return item.title
    if item.content and item.content.strip():
        if len(item.content) > DISPLAY_TITLE_LENGTH:
            return item.content[:DISPLAY_TITLE_LENGTH] + "..."
        return item.content
    return f"Untitled #{item.id}"


def nav_title(item: ContentItem) -> str:
    title = item.title or item.content or f"Untitled #{item.id}"
    if len(title) > NAV_TITLE_LENGTH:
        return title[:NAV_TITLE_LENGTH] + "..."
    return title


def parse_list(value: str) -> list[str]:
    items = [item.strip() for item in value.split(",")]
    return [item for item in items if item]


def parse_timestamp(value: Optional[str]) -> Optional[dt.datetime]:
    value = (value or "").strip()
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = dt.datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


def format_timestamp(value: Optional[str]) -> str:
    parsed = parse_timestamp(value)
    if parsed is None:
        return ""
    return f"{parsed:%B} {parsed.day}, {parsed.year}, {parsed:%I:%M %p}"


def promote_headlines(text: str) -> str:
    # blank lines around the heading keep it a raw HTML block for markdown
    out: list[str] = []
    for line in text.replace("\r\n", "\n").split("\n"):
        match = HEADLINE_RE.match(line)
        if match:
            heading = html_lib.escape(match.group(1).strip(), quote=False)
            out.extend(["", f"<h3>{heading}</h3>", ""])
        else:
            out.append(line)
    return "\n".join(out)


def normalize_list_spacing(text: str) -> str:
    lines = text.splitlines()
    out: list[str] = []
    in_fence = False
    fence_marker = ""
    for line in lines:
        fence_match = FENCE_RE.match(line)
        if fence_match:
            marker = fence_match.group(2)
            if not in_fence:
                in_fence = True
                fence_marker = marker
            elif marker == fence_marker:
                in_fence = False
                fence_marker = ""
            out.append(line)
            continue
        if in_fence:
            out.append(line)
            continue
        list_match = LIST_MARKER_RE.match(line)
        if list_match and not list_match.group("indent"):
            if out and out[-1].strip() and not LIST_MARKER_RE.match(out[-1]):
                out.append("")
        out.append(line)
    return "\n".join(out)
